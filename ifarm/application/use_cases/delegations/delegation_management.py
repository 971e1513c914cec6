"""
Delegation management use case.

Creates and revokes delegations and runs the periodic expiry cleanup. A
delegator may only lend permissions they currently hold; what the delegate
can actually use is recomputed against the delegator's live grants at every
decision.
"""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Any

import jsonschema

from ifarm.application.services.role_resolver import RoleResolver
from ifarm.domain.entities.delegation import (DelegationEntity,
                                              DelegationRestrictions)
from ifarm.domain.enums import DelegationStatus, DelegationType
from ifarm.domain.exceptions import (ConcurrentUpdateError,
                                     CrossTenantAccessError,
                                     ResourceNotFoundException,
                                     ValidationException)
from ifarm.shared.telemetry.logging import get_logger
from ifarm.shared.utils.datetime import ensure_utc, utc_now
from ifarm.shared.utils.generators import generate_cuid

if TYPE_CHECKING:
    from ifarm.application.interfaces.repositories import (
        IDelegationRepository, IRoleRepository, ITenantRepository,
        IUserRepository)
    from ifarm.application.services.permission_catalog import \
        PermissionCatalog

logger = get_logger(__name__)

RESTRICTIONS_SCHEMA: dict[str, Any] = {
    "$schema": "http://json-schema.org/draft-07/schema#",
    "title": "Delegation restrictions",
    "type": "object",
    "additionalProperties": False,
    "properties": {
        "time_restriction": {
            "type": ["object", "null"],
            "additionalProperties": False,
            "properties": {
                "start": {"type": "string", "pattern": "^(\\d{2}:\\d{2})?$"},
                "end": {"type": "string", "pattern": "^(\\d{2}:\\d{2})?$"},
            },
        },
        "resource_restriction": {
            "type": ["object", "null"],
            "additionalProperties": False,
            "properties": {
                "animal_ids": {"type": "array", "items": {"type": ["string", "integer"]}},
                "resource_ids": {"type": "array", "items": {"type": ["string", "integer"]}},
            },
        },
        "action_restriction": {
            "type": ["array", "null"],
            "items": {"type": "string"},
        },
    },
}


def parse_restrictions(
    raw: dict[str, Any] | None, catalog: "PermissionCatalog"
) -> DelegationRestrictions:
    """Validate the restrictions document and resolve its permission names"""
    if not raw:
        return DelegationRestrictions()
    try:
        jsonschema.validate(instance=raw, schema=RESTRICTIONS_SCHEMA)
    except jsonschema.ValidationError as e:
        field = ".".join(str(p) for p in e.absolute_path) or "restrictions"
        raise ValidationException(f"Invalid restrictions: {e.message}", field=f"restrictions.{field}") from e

    restrictions = DelegationRestrictions.from_dict(raw)
    if restrictions.action_restriction is not None:
        catalog.resolve(restrictions.action_restriction)
    return restrictions


class DelegationManagementService:
    def __init__(
        self,
        catalog: "PermissionCatalog",
        delegation_repo: "IDelegationRepository",
        role_repo: "IRoleRepository",
        user_repo: "IUserRepository",
        tenant_repo: "ITenantRepository",
    ) -> None:
        self.catalog = catalog
        self.delegation_repo = delegation_repo
        self.role_repo = role_repo
        self.user_repo = user_repo
        self.tenant_repo = tenant_repo
        self.role_resolver = RoleResolver(catalog)

    async def _require_member(self, tenant_id: str, user_id: str, field: str) -> None:
        user = await self.user_repo.get_entity(user_id)
        if user is None:
            raise ResourceNotFoundException("User", user_id)
        if user.tenant_id != tenant_id:
            raise CrossTenantAccessError(tenant_id, user.tenant_id)
        if not user.is_active():
            raise ValidationException(f"User {user_id} is not active", field=field)

    async def _delegator_permission_names(self, tenant_id: str, user_id: str) -> frozenset[str]:
        tenant = await self.tenant_repo.get_entity(tenant_id)
        roles = (await self.role_repo.list_for_users([user_id], tenant_id)).get(user_id, [])
        return self.role_resolver.resolve(
            roles, is_owner=tenant is not None and tenant.is_owner(user_id)
        ).names

    async def create_delegation(
        self,
        tenant_id: str,
        *,
        delegator_user_id: str,
        delegate_user_id: str,
        delegation_type: str,
        start_date: datetime,
        end_date: datetime,
        permission_names: list[str] | None = None,
        role_id: str | None = None,
        restrictions: dict[str, Any] | None = None,
        description: str | None = None,
    ) -> DelegationEntity:
        """
        Create an active delegation.

        Raises:
            ValidationException: bad dates, self-delegation, a permission the
                delegator does not hold, or malformed restrictions
            UnknownPermission: a permission name outside the catalog
            ResourceNotFoundException: unknown user or role
        """
        try:
            kind = DelegationType(delegation_type)
        except ValueError:
            raise ValidationException(
                f"Unknown delegation type '{delegation_type}'", field="delegation_type"
            ) from None

        await self._require_member(tenant_id, delegator_user_id, "delegator_user_id")
        await self._require_member(tenant_id, delegate_user_id, "delegate_user_id")

        parsed_restrictions = parse_restrictions(restrictions, self.catalog)
        held = await self._delegator_permission_names(tenant_id, delegator_user_id)

        permission_ids: frozenset[int] = frozenset()
        if kind == DelegationType.PERMISSION:
            permissions = self.catalog.resolve(permission_names or [])
            missing = sorted(p.name for p in permissions if p.name not in held)
            if missing:
                raise ValidationException(
                    f"Delegator does not hold: {', '.join(missing)}",
                    field="delegated_permission_ids",
                )
            permission_ids = frozenset(p.id for p in permissions)
        elif kind == DelegationType.ROLE:
            if not role_id:
                raise ValidationException("Role delegations must name a role", field="delegated_role_id")
            role = await self.role_repo.get_entity(role_id)
            if role is None or not role.belongs_to_tenant(tenant_id):
                raise ResourceNotFoundException("Role", role_id)
        elif not held:
            raise ValidationException(
                "Delegator holds no permissions to delegate", field="delegation_type"
            )

        delegation = DelegationEntity(
            id=generate_cuid(),
            tenant_id=tenant_id,
            delegator_user_id=delegator_user_id,
            delegate_user_id=delegate_user_id,
            delegation_type=kind,
            start_date=ensure_utc(start_date),
            end_date=ensure_utc(end_date),
            delegated_permission_ids=permission_ids,
            delegated_role_id=role_id if kind == DelegationType.ROLE else None,
            restrictions=parsed_restrictions,
            description=description,
        )
        created = await self.delegation_repo.add(delegation)
        await self.tenant_repo.bump_authz_version(tenant_id)
        logger.info(
            f"Created {kind.value} delegation {created.id} "
            f"from {delegator_user_id} to {delegate_user_id}"
        )
        return created

    async def list_delegations(
        self,
        tenant_id: str | None,
        *,
        status: str | None = None,
        user_id: str | None = None,
        direction: str | None = None,
        skip: int = 0,
        limit: int = 100,
    ) -> list[DelegationEntity]:
        """
        List delegations. `direction` is 'given' or 'received' relative to
        `user_id`; tenant_id None spans every tenant (super-admin view).
        """
        parsed_status = None
        if status is not None:
            try:
                parsed_status = DelegationStatus(status)
            except ValueError:
                raise ValidationException(f"Unknown status '{status}'", field="status") from None
        if direction is not None and direction not in ("given", "received"):
            raise ValidationException("direction must be 'given' or 'received'", field="direction")
        if direction is not None and user_id is None:
            raise ValidationException("direction requires a user", field="direction")
        return await self.delegation_repo.list_for_tenant(
            tenant_id,
            status=parsed_status,
            user_id=user_id,
            direction=direction,
            skip=skip,
            limit=limit,
        )

    async def get_delegation(self, tenant_id: str, delegation_id: str) -> DelegationEntity:
        delegation = await self.delegation_repo.get_entity(delegation_id)
        if delegation is None or delegation.tenant_id != tenant_id:
            raise ResourceNotFoundException("Delegation", delegation_id)
        return delegation

    async def revoke_delegation(
        self,
        tenant_id: str,
        delegation_id: str,
        *,
        expected_version: int | None = None,
        now: datetime | None = None,
    ) -> DelegationEntity:
        """Raises DelegationStateError if already revoked or expired"""
        delegation = await self.delegation_repo.get_entity(delegation_id)
        if delegation is None:
            raise ResourceNotFoundException("Delegation", delegation_id)
        if delegation.tenant_id != tenant_id:
            raise CrossTenantAccessError(tenant_id, delegation.tenant_id)

        revoked = delegation.revoke(now or utc_now())
        saved = await self.delegation_repo.save(
            revoked, expected_version if expected_version is not None else delegation.version
        )
        await self.tenant_repo.bump_authz_version(tenant_id)
        logger.info(f"Revoked delegation {delegation_id}")
        return saved

    async def expire_overdue(self, now: datetime | None = None, batch_size: int = 500) -> int:
        """
        Flip active delegations past their end date to expired.

        Idempotent: rows already expired are not selected again, and a row
        changed concurrently is skipped and picked up by the next run.
        """
        current = now or utc_now()
        expired = 0
        touched_tenants: set[str] = set()
        for delegation in await self.delegation_repo.list_overdue(current, limit=batch_size):
            try:
                await self.delegation_repo.save(delegation.expire(current), delegation.version)
            except ConcurrentUpdateError:
                logger.info(f"Delegation {delegation.id} changed concurrently, skipping")
                continue
            expired += 1
            touched_tenants.add(delegation.tenant_id)

        for tenant_id in sorted(touched_tenants):
            await self.tenant_repo.bump_authz_version(tenant_id)
        if expired:
            logger.info(f"Expired {expired} overdue delegation(s)")
        return expired
