from ifarm.application.use_cases.policies.policy_management import \
    PolicyManagementService

__all__ = ["PolicyManagementService"]
