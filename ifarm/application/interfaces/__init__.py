"""
Application layer interfaces (ports).

These protocols define the contracts between the application layer
and the infrastructure layer, following the Dependency Inversion Principle.
"""

from ifarm.application.interfaces.repositories import (IDelegationRepository,
                                                        IPolicyRepository,
                                                        IRoleRepository,
                                                        ITenantRepository,
                                                        IUserRepository)
from ifarm.application.interfaces.services import (IAuditLogWriter,
                                                    ICacheService)

__all__ = [
    # Repository interfaces
    "ITenantRepository",
    "IUserRepository",
    "IRoleRepository",
    "IPolicyRepository",
    "IDelegationRepository",
    # Service interfaces
    "IAuditLogWriter",
    "ICacheService",
]
