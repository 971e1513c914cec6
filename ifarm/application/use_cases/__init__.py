"""Use cases orchestrating repositories around the access-control services."""

from ifarm.application.use_cases.access import AccessControlService
from ifarm.application.use_cases.delegations import \
    DelegationManagementService
from ifarm.application.use_cases.policies import PolicyManagementService
from ifarm.application.use_cases.roles import RoleManagementService

__all__ = [
    "AccessControlService",
    "DelegationManagementService",
    "PolicyManagementService",
    "RoleManagementService",
]
