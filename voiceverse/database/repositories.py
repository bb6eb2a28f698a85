"""
Database Repositories

Repository pattern implementation for data access, plus ``RecordStore``,
the session-per-call facade the pipeline writes through.
"""

from typing import Any, Dict, Generic, List, Optional, Sequence, Type, TypeVar

from sqlalchemy import and_, desc, func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from .base import Base, DatabaseManager
from .models import AudioFile, VoiceClone, VoiceTranslateBatch, VoiceTranslateOperation


# =============================================================================
# Generic Type Variable
# =============================================================================


ModelType = TypeVar("ModelType", bound=Base)


# =============================================================================
# Base Repository
# =============================================================================


class BaseRepository(Generic[ModelType]):
    """Base repository with common CRUD operations."""

    model: Type[ModelType]

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_id(self, id: str) -> Optional[ModelType]:
        """Get entity by ID."""
        result = await self.session.execute(
            select(self.model).where(self.model.id == id)
        )
        return result.scalar_one_or_none()

    async def get_many(self, ids: Sequence[str]) -> List[ModelType]:
        """Get every entity whose ID is in ``ids``."""
        if not ids:
            return []
        result = await self.session.execute(
            select(self.model).where(self.model.id.in_(list(ids)))
        )
        return list(result.scalars().all())

    async def create(self, **kwargs) -> ModelType:
        """Create a new entity."""
        instance = self.model(**kwargs)
        self.session.add(instance)
        await self.session.flush()
        await self.session.refresh(instance)
        return instance

    async def update(self, id: str, **kwargs) -> Optional[ModelType]:
        """Update an entity."""
        instance = await self.get_by_id(id)
        if not instance:
            return None

        for key, value in kwargs.items():
            if hasattr(instance, key):
                setattr(instance, key, value)

        await self.session.flush()
        await self.session.refresh(instance)
        return instance

    async def delete(self, id: str) -> bool:
        """Delete an entity."""
        instance = await self.get_by_id(id)
        if not instance:
            return False

        await self.session.delete(instance)
        return True

    async def count(self) -> int:
        """Count all entities."""
        result = await self.session.execute(
            select(func.count()).select_from(self.model)
        )
        return result.scalar_one()

    async def exists(self, id: str) -> bool:
        """Check if entity exists."""
        result = await self.session.execute(
            select(func.count())
            .select_from(self.model)
            .where(self.model.id == id)
        )
        return result.scalar_one() > 0


# =============================================================================
# Audio Repository
# =============================================================================


class AudioFileRepository(BaseRepository[AudioFile]):
    """Repository for AudioFile entities."""

    model = AudioFile


# =============================================================================
# Voice Translate Repositories
# =============================================================================


class OperationRepository(BaseRepository[VoiceTranslateOperation]):
    """Repository for VoiceTranslateOperation entities."""

    model = VoiceTranslateOperation

    def _user_filters(
        self,
        user_id: str,
        status: Optional[str] = None,
        target_language: Optional[str] = None,
    ) -> list:
        conditions = [VoiceTranslateOperation.user_id == user_id]
        if status:
            conditions.append(VoiceTranslateOperation.status == status)
        if target_language:
            conditions.append(
                VoiceTranslateOperation.target_language == target_language
            )
        return conditions

    async def list_for_user(
        self,
        user_id: str,
        status: Optional[str] = None,
        target_language: Optional[str] = None,
        skip: int = 0,
        limit: int = 10,
    ) -> List[VoiceTranslateOperation]:
        """List a user's operations, newest first."""
        conditions = self._user_filters(user_id, status, target_language)
        result = await self.session.execute(
            select(VoiceTranslateOperation)
            .where(and_(*conditions))
            .order_by(desc(VoiceTranslateOperation.created_at))
            .offset(skip)
            .limit(limit)
        )
        return list(result.scalars().all())

    async def count_for_user(
        self,
        user_id: str,
        status: Optional[str] = None,
        target_language: Optional[str] = None,
    ) -> int:
        """Count a user's operations with the same filters as ``list_for_user``."""
        conditions = self._user_filters(user_id, status, target_language)
        result = await self.session.execute(
            select(func.count())
            .select_from(VoiceTranslateOperation)
            .where(and_(*conditions))
        )
        return result.scalar_one()

    async def list_for_batch(self, batch_id: str) -> List[VoiceTranslateOperation]:
        """List a batch's operations in creation order."""
        result = await self.session.execute(
            select(VoiceTranslateOperation)
            .where(VoiceTranslateOperation.batch_id == batch_id)
            .order_by(
                VoiceTranslateOperation.batch_index,
                VoiceTranslateOperation.created_at,
            )
        )
        return list(result.scalars().all())


class BatchRepository(BaseRepository[VoiceTranslateBatch]):
    """Repository for VoiceTranslateBatch entities."""

    model = VoiceTranslateBatch

    async def get_with_operations(self, id: str) -> Optional[VoiceTranslateBatch]:
        """Get batch with its operations loaded."""
        result = await self.session.execute(
            select(VoiceTranslateBatch)
            .options(selectinload(VoiceTranslateBatch.operations))
            .execution_options(populate_existing=True)
            .where(VoiceTranslateBatch.id == id)
        )
        return result.scalar_one_or_none()


class VoiceCloneRepository(BaseRepository[VoiceClone]):
    """Repository for VoiceClone entities."""

    model = VoiceClone

    async def list_for_user(self, user_id: str) -> List[VoiceClone]:
        """A user's cloned voices, newest first."""
        result = await self.session.execute(
            select(VoiceClone)
            .where(VoiceClone.user_id == user_id)
            .order_by(desc(VoiceClone.created_at))
        )
        return list(result.scalars().all())


# =============================================================================
# Record Store
# =============================================================================


class RecordStore:
    """
    Record access for the pipeline and service.

    Each call opens its own session and commits before returning, so every
    update is an independent read-modify-write. Returned instances are
    detached snapshots (the session factory does not expire on commit).
    """

    def __init__(self, db: DatabaseManager):
        self.db = db

    # Audio files

    async def get_audio_file(self, audio_file_id: str) -> Optional[AudioFile]:
        async with self.db.session() as session:
            return await AudioFileRepository(session).get_by_id(audio_file_id)

    async def get_audio_files(self, audio_file_ids: Sequence[str]) -> List[AudioFile]:
        async with self.db.session() as session:
            return await AudioFileRepository(session).get_many(audio_file_ids)

    async def create_audio_file(self, **fields: Any) -> AudioFile:
        async with self.db.session() as session:
            return await AudioFileRepository(session).create(**fields)

    # Operations

    async def get_operation(self, operation_id: str) -> Optional[VoiceTranslateOperation]:
        async with self.db.session() as session:
            return await OperationRepository(session).get_by_id(operation_id)

    async def create_operation(self, **fields: Any) -> VoiceTranslateOperation:
        async with self.db.session() as session:
            return await OperationRepository(session).create(**fields)

    async def update_operation(
        self,
        operation_id: str,
        **fields: Any,
    ) -> Optional[VoiceTranslateOperation]:
        async with self.db.session() as session:
            return await OperationRepository(session).update(operation_id, **fields)

    async def list_operations_for_batch(
        self,
        batch_id: str,
    ) -> List[VoiceTranslateOperation]:
        async with self.db.session() as session:
            return await OperationRepository(session).list_for_batch(batch_id)

    async def list_operations_for_user(
        self,
        user_id: str,
        status: Optional[str] = None,
        target_language: Optional[str] = None,
        skip: int = 0,
        limit: int = 10,
    ) -> Dict[str, Any]:
        """Page of a user's operations together with the unpaged total."""
        async with self.db.session() as session:
            repo = OperationRepository(session)
            items = await repo.list_for_user(
                user_id,
                status=status,
                target_language=target_language,
                skip=skip,
                limit=limit,
            )
            total = await repo.count_for_user(
                user_id,
                status=status,
                target_language=target_language,
            )
        return {"items": items, "total": total}

    # Batches

    async def get_batch(self, batch_id: str) -> Optional[VoiceTranslateBatch]:
        async with self.db.session() as session:
            return await BatchRepository(session).get_by_id(batch_id)

    async def get_batch_with_operations(
        self,
        batch_id: str,
    ) -> Optional[VoiceTranslateBatch]:
        async with self.db.session() as session:
            return await BatchRepository(session).get_with_operations(batch_id)

    async def create_batch_with_operations(
        self,
        batch_fields: Dict[str, Any],
        operation_fields: Sequence[Dict[str, Any]],
    ) -> VoiceTranslateBatch:
        """Create a batch and all of its operations in one transaction."""
        async with self.db.session() as session:
            batch = await BatchRepository(session).create(
                total_files=len(operation_fields),
                **batch_fields,
            )
            repo = OperationRepository(session)
            for index, fields in enumerate(operation_fields):
                await repo.create(batch_id=batch.id, batch_index=index, **fields)
            return await BatchRepository(session).get_with_operations(batch.id)

    async def update_batch(
        self,
        batch_id: str,
        **fields: Any,
    ) -> Optional[VoiceTranslateBatch]:
        async with self.db.session() as session:
            return await BatchRepository(session).update(batch_id, **fields)

    # Voice clones

    async def create_voice_clone(self, **fields: Any) -> VoiceClone:
        async with self.db.session() as session:
            return await VoiceCloneRepository(session).create(**fields)

    async def get_voice_clone(self, voice_clone_id: str) -> Optional[VoiceClone]:
        async with self.db.session() as session:
            return await VoiceCloneRepository(session).get_by_id(voice_clone_id)

    async def list_voice_clones_for_user(self, user_id: str) -> List[VoiceClone]:
        async with self.db.session() as session:
            return await VoiceCloneRepository(session).list_for_user(user_id)


__all__ = [
    "BaseRepository",
    "AudioFileRepository",
    "OperationRepository",
    "BatchRepository",
    "VoiceCloneRepository",
    "RecordStore",
]
