from ifarm.application.use_cases.roles.role_management import \
    RoleManagementService

__all__ = ["RoleManagementService"]
