from abc import ABC
from typing import Any, Generic, TypeVar

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import object_session

from ifarm.domain.exceptions import ConcurrentUpdateError
from ifarm.infrastructure.persistence.database import Base

ModelType = TypeVar("ModelType", bound=Base)


class BaseRepository(ABC, Generic[ModelType]):
    """
    Base repository implementing common CRUD operations (LSP).

    Provides audit/cache hooks for subclasses to override.
    Subclasses should call super() methods to ensure proper lifecycle.
    """

    def __init__(self, db: AsyncSession, model: type[ModelType]):
        self.db = db
        self.model = model

    async def get_by_id(self, id: Any) -> ModelType | None:
        """Get a single record by ID"""
        model: Any = self.model
        result = await self.db.execute(select(self.model).where(model.id == id))
        return result.scalar_one_or_none()

    async def get_all(self, skip: int = 0, limit: int = 100) -> list[ModelType]:
        """Get all records with pagination"""
        result = await self.db.execute(select(self.model).offset(skip).limit(limit))
        return list(result.scalars().all())

    async def create(self, obj: ModelType) -> ModelType:
        """Create a new record and trigger the after-create hook"""
        self.db.add(obj)
        await self.db.flush()
        await self.db.refresh(obj)
        await self._on_after_create(obj)
        return obj

    async def update(self, obj: ModelType) -> ModelType:
        """
        Update an existing record and trigger the after-update hook.

        Handles potentially detached objects by merging back to session.
        """
        if object_session(obj) is None:
            obj = await self.db.merge(obj)
        await self.db.flush()
        await self.db.refresh(obj)
        await self._on_after_update(obj)
        return obj

    async def update_versioned(
        self, id: str, expected_version: int, values: dict[str, Any]
    ) -> int:
        """
        Conditional update for models with VersionedMixin.

        Applies `values` only if the stored version equals `expected_version`
        and returns the new version.

        Raises:
            ConcurrentUpdateError: the row was changed (or removed) since the
                caller read it
        """
        model: Any = self.model
        new_version = expected_version + 1
        result = await self.db.execute(
            update(self.model)
            .where(model.id == id, model.version == expected_version)
            .values(**values, version=new_version)
            .execution_options(synchronize_session="fetch")
        )
        if result.rowcount == 0:
            raise ConcurrentUpdateError(self.model.__name__, id, expected_version)
        return new_version

    async def delete(self, obj: ModelType) -> None:
        """Delete a record and trigger the before-delete hook"""
        await self._on_before_delete(obj)
        await self.db.delete(obj)
        await self.db.flush()

    # Lifecycle hooks - override in subclasses
    async def _on_after_create(self, obj: ModelType) -> None:
        """Hook called after creating a record."""
        pass

    async def _on_after_update(self, obj: ModelType) -> None:
        """Hook called after updating a record."""
        pass

    async def _on_before_delete(self, obj: ModelType) -> None:
        """Hook called before deleting a record."""
        pass
