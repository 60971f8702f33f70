"""
Base CRUD Repository Pattern
Generic repository with common database operations
"""

from datetime import datetime, timezone
from typing import Any, Dict, Generic, List, Optional, Type, TypeVar, Union
from uuid import UUID
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
import structlog

from social_inbox.core.database import Base

logger = structlog.get_logger()

ModelType = TypeVar("ModelType", bound=Base)


class CRUDBase(Generic[ModelType]):
    """
    Base CRUD repository with generic database operations
    """

    def __init__(self, model: Type[ModelType]):
        """
        Initialize CRUD repository

        Args:
            model: SQLAlchemy model class
        """
        self.model = model

    def _live(self, query, include_deleted: bool = False):
        if hasattr(self.model, "deleted_at") and not include_deleted:
            query = query.where(self.model.deleted_at.is_(None))
        return query

    async def get(
        self,
        db: AsyncSession,
        id: Union[UUID, str],
        include_deleted: bool = False
    ) -> Optional[ModelType]:
        """
        Get a single record by ID

        Args:
            db: Database session
            id: Record ID
            include_deleted: Include soft-deleted records

        Returns:
            Model instance or None
        """
        try:
            query = self._live(select(self.model).where(self.model.id == id), include_deleted)
            result = await db.execute(query)
            record = result.scalar_one_or_none()

            if record:
                logger.debug("Record retrieved", model=self.model.__name__, id=str(id))
            else:
                logger.debug("Record not found", model=self.model.__name__, id=str(id))

            return record

        except Exception as e:
            logger.error("Error retrieving record", model=self.model.__name__, id=str(id), error=str(e))
            raise

    async def get_multi(
        self,
        db: AsyncSession,
        *,
        filters: Optional[Dict[str, Any]] = None,
        include_deleted: bool = False
    ) -> List[ModelType]:
        """
        Get multiple records with equality / membership filters

        Args:
            db: Database session
            filters: Dictionary of field filters; list values become IN clauses
            include_deleted: Include soft-deleted records

        Returns:
            List of model instances ordered newest first
        """
        try:
            query = self._live(select(self.model), include_deleted)

            if filters:
                for field, value in filters.items():
                    if not hasattr(self.model, field):
                        continue
                    if isinstance(value, (list, tuple, set, frozenset)):
                        query = query.where(getattr(self.model, field).in_(list(value)))
                    else:
                        query = query.where(getattr(self.model, field) == value)

            if hasattr(self.model, "created_at"):
                query = query.order_by(self.model.created_at.desc())

            result = await db.execute(query)
            records = list(result.scalars().all())

            logger.debug("Multiple records retrieved", model=self.model.__name__, count=len(records))
            return records

        except Exception as e:
            logger.error("Error retrieving multiple records", model=self.model.__name__, error=str(e))
            raise

    async def soft_delete(
        self,
        db: AsyncSession,
        *,
        db_obj: ModelType,
        commit: bool = True
    ) -> ModelType:
        """
        Mark a record as deleted without removing the row

        Args:
            db: Database session
            db_obj: Existing model instance
            commit: Whether to commit the transaction

        Returns:
            The soft-deleted model instance
        """
        try:
            db_obj.deleted_at = datetime.now(timezone.utc)

            if commit:
                await db.commit()
                await db.refresh(db_obj)
            else:
                await db.flush()

            logger.info("Record soft-deleted", model=self.model.__name__, id=str(db_obj.id))
            return db_obj

        except Exception as e:
            if commit:
                await db.rollback()
            logger.error("Error deleting record", model=self.model.__name__, id=str(db_obj.id), error=str(e))
            raise
