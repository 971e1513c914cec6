from ifarm.application.use_cases.access.check_access import (
    AccessControlService, access_state_cache_key)

__all__ = ["AccessControlService", "access_state_cache_key"]
