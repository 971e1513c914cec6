"""
Service interfaces (ports) for the application layer.

These protocols define the contracts for application services.
Following Dependency Inversion Principle (DIP).
"""

from __future__ import annotations

from typing import Any, Protocol

from ifarm.domain.entities.audit_log import AuditLogEntry


class IAuditLogWriter(Protocol):
    """Append-only audit sink. record() never raises for valid input."""

    async def record(self, entry: AuditLogEntry) -> None:
        ...


class ICacheService(Protocol):
    """Protocol for the key/value cache used for access state snapshots"""

    def is_available(self) -> bool:
        ...

    async def get(self, key: str) -> Any | None:
        ...

    async def set(self, key: str, value: Any, ttl: int = 300) -> bool:
        ...

    async def delete(self, key: str) -> bool:
        ...
