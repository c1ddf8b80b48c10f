"""Base repository class with common CRUD operations."""

from typing import Generic, List, Optional, Type, TypeVar

import structlog
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from partner_portal.core.base import Base
from partner_portal.core.error_handling import StoreError

logger = structlog.get_logger(__name__)

ModelType = TypeVar("ModelType", bound=Base)


class BaseRepository(Generic[ModelType]):
    """Base repository with session-scoped CRUD helpers.

    Methods flush but never commit; the caller's session scope decides when
    a unit of work is committed or rolled back.
    """

    def __init__(self, model: Type[ModelType]):
        """Initialize repository with model class.

        Args:
            model: SQLAlchemy model class
        """
        self.model = model

    def create(self, db: Session, **kwargs) -> ModelType:
        """Create a new record.

        Args:
            db: Database session
            **kwargs: Model field values

        Returns:
            Created model instance

        Raises:
            StoreError: If creation fails due to constraint violations
        """
        instance = self.model(**kwargs)
        db.add(instance)
        try:
            db.flush()
        except IntegrityError as e:
            logger.error("Record creation failed", model=self.model.__name__, error=str(e))
            raise StoreError(f"Failed to create {self.model.__name__}", original_error=e)

        logger.info("Record created", model=self.model.__name__, id=str(instance.id))
        return instance

    def get_by_id(self, db: Session, id: str) -> Optional[ModelType]:
        return db.query(self.model).filter(self.model.id == id).first()

    def update(self, db: Session, id: str, **kwargs) -> Optional[ModelType]:
        """Update the given fields of a record.

        Only the keyword arguments passed are written, so ``None`` clears a
        column rather than being ignored.

        Args:
            db: Database session
            id: Record id
            **kwargs: Fields to update

        Returns:
            Updated model instance if found, None otherwise

        Raises:
            StoreError: If the update violates a constraint
        """
        instance = self.get_by_id(db, id)
        if not instance:
            logger.warning("Record not found for update", model=self.model.__name__, id=str(id))
            return None

        for field, value in kwargs.items():
            if hasattr(instance, field):
                setattr(instance, field, value)

        try:
            db.flush()
        except IntegrityError as e:
            logger.error("Record update failed", model=self.model.__name__, id=str(id), error=str(e))
            raise StoreError(f"Failed to update {self.model.__name__}", original_error=e)

        logger.info("Record updated", model=self.model.__name__, id=str(id), fields=sorted(kwargs))
        return instance

    def delete_many(self, db: Session, ids: List[str]) -> int:
        """Delete every record whose id is in ``ids``.

        Returns:
            Number of deleted rows
        """
        if not ids:
            return 0
        deleted = (
            db.query(self.model)
            .filter(self.model.id.in_(ids))
            .delete(synchronize_session=False)
        )
        logger.info("Records deleted", model=self.model.__name__, count=deleted)
        return deleted
