"""Tests for the permission catalog and role resolution"""

import pytest

from ifarm.application.services.permission_catalog import PermissionCatalog
from ifarm.application.services.role_resolver import RoleResolver
from ifarm.domain.entities.permission import PermissionEntity
from ifarm.domain.entities.role import RoleEntity
from ifarm.domain.enums import (Action, GrantSource, PermissionCategory,
                                ResourceType)
from ifarm.domain.exceptions import UnknownPermission


@pytest.fixture
def catalog():
    return PermissionCatalog.system()


class TestCatalog:
    def test_system_catalog_contents(self, catalog):
        assert len(catalog) == 19
        assert catalog.get("view_animals").id == 1
        assert catalog.get("super_admin").key == (Action.ADMINISTER, ResourceType.SYSTEM)

    def test_every_pair_maps_to_one_permission(self, catalog):
        keys = [permission.key for permission in catalog.all()]

        assert len(keys) == len(set(keys))
        for permission in catalog.all():
            assert catalog.permission_for(permission.action, permission.resource_type) == permission

    def test_unmapped_pair_is_unknown(self, catalog):
        with pytest.raises(UnknownPermission):
            catalog.permission_for(Action.DELETE, ResourceType.ROLE)

    def test_resolve_reports_every_missing_name(self, catalog):
        with pytest.raises(UnknownPermission) as exc_info:
            catalog.resolve(["view_animals", "milk_cows", "shear_sheep"])

        assert exc_info.value.details["names"] == ["milk_cows", "shear_sheep"]

    def test_names_and_ids_round_trip(self, catalog):
        names = {"view_animals", "edit_health", "create_health_check"}

        assert catalog.names_for_ids(catalog.ids_for_names(names)) == names

    def test_duplicate_pair_rejected(self):
        twin = PermissionEntity(
            id=99,
            name="look_at_animals",
            display_name="Look",
            description="Duplicate of view_animals",
            category=PermissionCategory.ANIMALS,
            action=Action.VIEW,
            resource_type=ResourceType.ANIMAL,
        )
        base = PermissionCatalog.system().all()

        with pytest.raises(ValueError):
            PermissionCatalog([*base, twin])

    def test_templates(self, catalog):
        names = {template.name for template in catalog.templates()}

        assert names == {"veterinarian", "farm_manager", "field_worker", "accountant"}
        assert catalog.names_for_ids(catalog.get_template(3).permission_ids) == {
            "view_animals",
            "create_feeding",
            "create_general",
        }
        assert catalog.get_template(42) is None

    def test_by_category_covers_catalog(self, catalog):
        grouped = catalog.by_category()

        assert sum(len(items) for items in grouped.values()) == len(catalog)
        assert [p.name for p in grouped[PermissionCategory.REPORTS]] == [
            "view_health_reports",
            "view_operational_reports",
            "view_financial_reports",
        ]

    def test_tenant_permissions_exclude_super_admin(self, catalog):
        names = catalog.tenant_permission_names()

        assert "super_admin" not in names
        assert len(names) == 18


class TestRoleResolver:
    def test_union_of_roles(self, catalog):
        resolver = RoleResolver(catalog)
        roles = [
            RoleEntity(id="r1", tenant_id="t1", name="Vet", permission_ids=catalog.ids_for_names(["view_animals", "edit_health"])),
            RoleEntity(id="r2", tenant_id="t1", name="Feeder", permission_ids=catalog.ids_for_names(["view_animals", "create_feeding"])),
        ]

        grants = resolver.resolve(roles)

        assert grants.names == {"view_animals", "edit_health", "create_feeding"}
        assert {g.role_id for g in grants.grants_for("view_animals")} == {"r1", "r2"}

    def test_no_roles_is_empty(self, catalog):
        assert len(RoleResolver(catalog).resolve([])) == 0

    def test_owner_and_super_admin(self, catalog):
        resolver = RoleResolver(catalog)

        owner = resolver.resolve([], is_owner=True)
        admin = resolver.resolve([], is_super_admin=True)

        assert owner.names == catalog.tenant_permission_names()
        assert {g.source for g in owner} == {GrantSource.OWNER}
        assert "super_admin" in admin.names

    def test_template_round_trip(self, catalog):
        """A role cloned from a template resolves to exactly the template's permissions"""
        resolver = RoleResolver(catalog)

        for template in catalog.templates():
            role = RoleEntity.from_template(template, role_id=f"role-{template.id}", tenant_id="t1")

            assert resolver.resolve([role]).names == catalog.names_for_ids(template.permission_ids)

    def test_unknown_permission_id(self, catalog):
        role = RoleEntity(id="r1", tenant_id="t1", name="Broken", permission_ids=frozenset({404}))

        with pytest.raises(UnknownPermission):
            RoleResolver(catalog).resolve([role])
