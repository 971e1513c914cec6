"""
In-memory audit log sink.

Append-only; used by tests and when the engine is embedded without a
database. The SQL-backed writer lives in infrastructure.
"""

import asyncio
from dataclasses import replace

from ifarm.domain.entities.audit_log import AuditLogEntry
from ifarm.shared.utils.generators import generate_cuid


class InMemoryAuditLogWriter:
    def __init__(self):
        self._entries: list[AuditLogEntry] = []
        self._lock = asyncio.Lock()

    async def record(self, entry: AuditLogEntry) -> None:
        async with self._lock:
            if entry.id is None:
                entry = replace(entry, id=generate_cuid())
            self._entries.append(entry)

    @property
    def entries(self) -> tuple[AuditLogEntry, ...]:
        return tuple(self._entries)

    def __len__(self) -> int:
        return len(self._entries)
