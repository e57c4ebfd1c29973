"""Base repository pattern implementation.

This module provides generic repositories that are used as a base for
domain-specific repositories.
"""

from typing import Any, Generic, TypeVar, cast
from uuid import UUID

from sqlalchemy.orm import Session

ModelType = TypeVar("ModelType")


class BaseRepository(Generic[ModelType]):
    """Generic repository with common CRUD operations.

    Example:
        ```python
        class VideoSessionRepository(BaseRepository[VideoSession]):
            def __init__(self, db: Session):
                super().__init__(db, VideoSession)
        ```
    """

    def __init__(self, db: Session, model: type[ModelType]):
        """Initialize repository with database session and model class.

        Args:
            db: SQLAlchemy session.
            model: The model class this repository operates on.
        """
        self.db = db
        self.model = model

    def get_by_id(self, entity_id: UUID) -> ModelType | None:
        """Get a single entity by ID, or None."""
        result = self.db.query(self.model).filter(self.model.id == entity_id).first()  # type: ignore[attr-defined]
        return cast(ModelType | None, result)

    def get_all(self, skip: int = 0, limit: int = 100) -> list[ModelType]:
        result = self.db.query(self.model).offset(skip).limit(limit).all()
        return cast(list[ModelType], result)

    def create(self, **kwargs: object) -> ModelType:
        instance = self.model(**kwargs)  # type: ignore[call-arg]
        self.db.add(instance)
        self.db.commit()
        self.db.refresh(instance)
        return instance

    def update(self, instance: ModelType, **kwargs: object) -> ModelType:
        for key, value in kwargs.items():
            if hasattr(instance, key):
                setattr(instance, key, value)
        self.db.commit()
        self.db.refresh(instance)
        return instance


class UserSessionLogRepository(Generic[ModelType]):
    """Repository for append-style rows keyed by ``(user_id, session_id)``.

    Rows are never updated through this class except by the caller; it only
    reads the log in a stable order and stages new rows. Committing is left
    to the service so that a whole batch lands in one transaction.
    """

    def __init__(self, db: Session, model: type[ModelType], order_by: str):
        self.db = db
        self.model = model
        self.order_by = order_by

    def _scoped(self, user_id: UUID, session_id: UUID) -> Any:
        model: Any = self.model
        return self.db.query(self.model).filter(
            model.user_id == user_id, model.session_id == session_id
        )

    def list_for(self, user_id: UUID, session_id: UUID) -> list[ModelType]:
        """Return the whole log for one learner and session, in log order."""
        column = getattr(self.model, self.order_by)
        result = self._scoped(user_id, session_id).order_by(column).all()
        return cast(list[ModelType], result)

    def find_by(self, user_id: UUID, session_id: UUID, **filters: object) -> ModelType | None:
        query = self._scoped(user_id, session_id).filter_by(**filters)
        return cast(ModelType | None, query.first())

    def add(self, **kwargs: object) -> ModelType:
        instance = self.model(**kwargs)  # type: ignore[call-arg]
        self.db.add(instance)
        return instance
