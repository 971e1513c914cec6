"""
System Permission Catalog Definition.

The permission catalog and role templates are system-defined: they ship as
code constants, are mirrored into the database by the seeding step, and are
never created or edited by tenants. Each (action, resource_type) pair maps to
exactly one permission.
"""

from ifarm.domain.entities.permission import PermissionEntity, RoleTemplateEntity
from ifarm.domain.enums import Action, PermissionCategory, ResourceType

# Reserved permission granting cross-tenant administration
SUPER_ADMIN_PERMISSION = "super_admin"


def _permission(
    permission_id: int,
    name: str,
    display_name: str,
    description: str,
    category: PermissionCategory,
    action: Action,
    resource_type: ResourceType,
) -> PermissionEntity:
    return PermissionEntity(
        id=permission_id,
        name=name,
        display_name=display_name,
        description=description,
        category=category,
        action=action,
        resource_type=resource_type,
    )


SYSTEM_PERMISSIONS: tuple[PermissionEntity, ...] = (
    # Animals
    _permission(1, "view_animals", "View Animals", "View list and details of animals",
                PermissionCategory.ANIMALS, Action.VIEW, ResourceType.ANIMAL),
    _permission(2, "create_animals", "Create Animals", "Add new animals to the system",
                PermissionCategory.ANIMALS, Action.CREATE, ResourceType.ANIMAL),
    _permission(3, "edit_animals", "Edit Animals", "Modify animal information",
                PermissionCategory.ANIMALS, Action.EDIT, ResourceType.ANIMAL),
    _permission(4, "delete_animals", "Delete Animals", "Remove animals from the system",
                PermissionCategory.ANIMALS, Action.DELETE, ResourceType.ANIMAL),
    _permission(5, "edit_health", "Edit Animal Health", "Update animal health status",
                PermissionCategory.ANIMALS, Action.EDIT, ResourceType.ANIMAL_HEALTH),
    # Activities
    _permission(6, "create_feeding", "Log Feeding", "Create feeding activity records",
                PermissionCategory.ACTIVITIES, Action.CREATE, ResourceType.FEEDING),
    _permission(7, "create_breeding", "Log Breeding", "Create breeding activity records",
                PermissionCategory.ACTIVITIES, Action.CREATE, ResourceType.BREEDING),
    _permission(8, "create_health_check", "Log Health Check",
                "Create health check/vaccination records",
                PermissionCategory.ACTIVITIES, Action.CREATE, ResourceType.HEALTH_CHECK),
    _permission(9, "create_general", "Log General Activity", "Create general activity records",
                PermissionCategory.ACTIVITIES, Action.CREATE, ResourceType.GENERAL_ACTIVITY),
    _permission(10, "edit_activities", "Edit Activities", "Modify existing activity records",
                PermissionCategory.ACTIVITIES, Action.EDIT, ResourceType.ACTIVITY),
    _permission(11, "delete_activities", "Delete Activities", "Remove activity records",
                PermissionCategory.ACTIVITIES, Action.DELETE, ResourceType.ACTIVITY),
    # Reports
    _permission(12, "view_health_reports", "View Health Reports", "Access health-related reports",
                PermissionCategory.REPORTS, Action.VIEW, ResourceType.HEALTH_REPORT),
    _permission(13, "view_operational_reports", "View Operational Reports",
                "Access operational/activity reports",
                PermissionCategory.REPORTS, Action.VIEW, ResourceType.OPERATIONAL_REPORT),
    _permission(14, "view_financial_reports", "View Financial Reports",
                "Access financial/invoice reports",
                PermissionCategory.REPORTS, Action.VIEW, ResourceType.FINANCIAL_REPORT),
    # Management
    _permission(15, "manage_users", "Manage Users", "Create, edit, and assign users to roles",
                PermissionCategory.MANAGEMENT, Action.MANAGE, ResourceType.USER),
    _permission(16, "manage_roles", "Manage Roles", "Create and customize roles and permissions",
                PermissionCategory.MANAGEMENT, Action.MANAGE, ResourceType.ROLE),
    _permission(17, "manage_subscriptions", "Manage Subscriptions",
                "View and manage subscription plans",
                PermissionCategory.MANAGEMENT, Action.MANAGE, ResourceType.SUBSCRIPTION),
    _permission(18, "view_audit_logs", "View Audit Logs", "Access audit trail and history",
                PermissionCategory.MANAGEMENT, Action.VIEW, ResourceType.AUDIT_LOG),
    _permission(19, SUPER_ADMIN_PERMISSION, "Super Admin",
                "Full system administration access across all tenants",
                PermissionCategory.MANAGEMENT, Action.ADMINISTER, ResourceType.SYSTEM),
)


SYSTEM_ROLE_TEMPLATES: tuple[RoleTemplateEntity, ...] = (
    RoleTemplateEntity(
        id=1,
        name="veterinarian",
        display_name="Veterinarian",
        description="Medical professional with full animal health access",
        category="medical",
        permission_ids=frozenset({1, 5, 8, 12}),
    ),
    RoleTemplateEntity(
        id=2,
        name="farm_manager",
        display_name="Farm Manager",
        description="Full operational control of the farm",
        category="operations",
        permission_ids=frozenset({1, 2, 3, 6, 7, 9, 10, 13}),
    ),
    RoleTemplateEntity(
        id=3,
        name="field_worker",
        display_name="Field Worker",
        description="Daily operational tasks and activity logging",
        category="operations",
        permission_ids=frozenset({1, 6, 9}),
    ),
    RoleTemplateEntity(
        id=4,
        name="accountant",
        display_name="Accountant",
        description="Financial reporting and sales management",
        category="financial",
        permission_ids=frozenset({1, 14, 17}),
    ),
)
