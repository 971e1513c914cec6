from ifarm.application.use_cases.delegations.delegation_management import \
    DelegationManagementService

__all__ = ["DelegationManagementService"]
