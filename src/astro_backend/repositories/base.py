"""
Base repository pattern implementation.

This module provides the abstract base repository used by the permission
catalog and the principal store, together with the error taxonomy shared by
every layer above the store.
"""

from abc import ABC
from typing import Callable, TypeVar, Generic, Iterable, List, Optional, Dict, Any, Type
from sqlalchemy.orm import Session
from sqlalchemy.exc import IntegrityError, OperationalError, SQLAlchemyError
from sqlalchemy import inspect

# Type variable for generic entity type
T = TypeVar('T')
R = TypeVar('R')


class RepositoryError(Exception):
    """Base exception for repository operations."""
    pass


class NotFoundError(RepositoryError):
    """Exception raised when entity is not found."""

    def __init__(self, entity_type: str, entity_id: Any):
        super().__init__(f"{entity_type} with id {entity_id} not found")
        self.entity_type = entity_type
        self.entity_id = entity_id


class DuplicateError(RepositoryError):
    """Exception raised when attempting to create duplicate entity."""

    def __init__(self, entity_type: str, criteria: Dict[str, Any]):
        super().__init__(f"{entity_type} already exists with criteria: {criteria}")
        self.entity_type = entity_type
        self.criteria = criteria


class ValidationFailedError(RepositoryError):
    """Exception raised when referenced ids are malformed or unknown."""

    def __init__(self, message: str, invalid_ids: Optional[Iterable[Any]] = None):
        self.invalid_ids = sorted(str(i) for i in (invalid_ids or []))
        if self.invalid_ids:
            message = f"{message}: {', '.join(self.invalid_ids)}"
        super().__init__(message)


class StoreUnavailableError(RepositoryError):
    """Exception raised when the backing store cannot be reached."""
    pass


class BaseRepository(ABC, Generic[T]):
    """
    Abstract base repository providing common database operations.

    This class implements the repository pattern, providing a clean
    abstraction over SQLAlchemy operations.
    """

    def __init__(self, db: Session, model: Type[T]):
        """
        Initialize repository with database session and model class.

        Args:
            db: SQLAlchemy database session
            model: SQLAlchemy model class
        """
        self.db = db
        self.model = model

    def get_by_id(self, entity_id: Any) -> T:
        """
        Get entity by ID.

        Args:
            entity_id: Entity identifier

        Returns:
            Entity instance

        Raises:
            NotFoundError: If entity not found
        """
        entity = self.get_by_id_optional(entity_id)
        if entity is None:
            raise NotFoundError(self.model.__name__, entity_id)
        return entity

    def get_by_id_optional(self, entity_id: Any) -> Optional[T]:
        """
        Get entity by ID, returning None if not found.

        Args:
            entity_id: Entity identifier

        Returns:
            Entity instance or None
        """
        return self._fetch(lambda: self.db.query(self.model).filter(
            self.model.id == entity_id
        ).first())

    def get_by_ids(self, entity_ids: Iterable[Any]) -> List[T]:
        """
        Get all entities whose ID is in ``entity_ids``.

        Unknown IDs are ignored; callers compare the result against the
        requested IDs when they need to report missing ones.
        """
        ids = list(dict.fromkeys(entity_ids))
        if not ids:
            return []
        return self._fetch(lambda: self.db.query(self.model).filter(
            self.model.id.in_(ids)
        ).all())

    def create(self, entity: T) -> T:
        """
        Create a new entity.

        Args:
            entity: Entity instance to create

        Returns:
            Created entity with updated fields (e.g., ID)

        Raises:
            DuplicateError: If entity violates unique constraints
            RepositoryError: If database operation fails
        """
        try:
            self.db.add(entity)
            self.db.commit()
            self.db.refresh(entity)
            return entity
        except IntegrityError:
            self.db.rollback()
            raise DuplicateError(
                self.model.__name__,
                self._extract_entity_dict(entity)
            )
        except SQLAlchemyError as e:
            self.db.rollback()
            raise self._store_error("create", e)

    def create_many(self, entities: List[T]) -> List[T]:
        """
        Create several entities in a single transaction.

        Either every entity is inserted or none is; a unique index violation
        on any of them rolls the whole batch back.
        """
        try:
            self.db.add_all(entities)
            self.db.commit()
            for entity in entities:
                self.db.refresh(entity)
            return entities
        except IntegrityError:
            self.db.rollback()
            raise DuplicateError(self.model.__name__, {"count": len(entities)})
        except SQLAlchemyError as e:
            self.db.rollback()
            raise self._store_error("create", e)

    def update(self, entity_id: Any, updates: Dict[str, Any]) -> T:
        """
        Update an existing entity.

        Args:
            entity_id: Entity identifier
            updates: Dictionary of fields to update

        Returns:
            Updated entity

        Raises:
            NotFoundError: If entity not found
            DuplicateError: If the update violates unique constraints
        """
        entity = self.get_by_id(entity_id)

        try:
            for key, value in updates.items():
                if hasattr(entity, key):
                    setattr(entity, key, value)

            self.db.commit()
            self.db.refresh(entity)
            return entity
        except IntegrityError:
            self.db.rollback()
            raise DuplicateError(self.model.__name__, updates)
        except SQLAlchemyError as e:
            self.db.rollback()
            raise self._store_error("update", e)

    def save(self, entity: T) -> T:
        """Commit pending changes made directly on a loaded entity."""
        try:
            self.db.commit()
            self.db.refresh(entity)
            return entity
        except IntegrityError:
            self.db.rollback()
            raise DuplicateError(self.model.__name__, self._extract_entity_dict(entity))
        except SQLAlchemyError as e:
            self.db.rollback()
            raise self._store_error("update", e)

    def delete(self, entity_id: Any) -> bool:
        """
        Delete an entity by ID.

        Args:
            entity_id: Entity identifier

        Returns:
            True if deletion successful

        Raises:
            NotFoundError: If entity not found
            RepositoryError: If deletion fails
        """
        entity = self.get_by_id(entity_id)

        try:
            self._delete_references(entity_id)
            self.db.delete(entity)
            self.db.commit()
            return True
        except SQLAlchemyError as e:
            self.db.rollback()
            raise self._store_error("delete", e)

    def _delete_references(self, entity_id: Any) -> None:
        """Hook for removing association rows before the entity itself is deleted."""
        pass

    def exists(self, entity_id: Any) -> bool:
        """
        Check if entity exists by ID.

        Args:
            entity_id: Entity identifier

        Returns:
            True if entity exists
        """
        return self._fetch(lambda: self.db.query(self.model).filter(
            self.model.id == entity_id
        ).count() > 0)

    def find_one_by(self, **criteria) -> Optional[T]:
        """
        Find single entity by criteria.

        Args:
            **criteria: Search criteria as keyword arguments

        Returns:
            First matching entity or None
        """
        return self._fetch(lambda: self._filtered(criteria).first())

    def count(self, **criteria) -> int:
        """
        Count entities matching criteria.

        Args:
            **criteria: Filter criteria as keyword arguments

        Returns:
            Number of matching entities
        """
        return self._fetch(lambda: self._filtered(criteria).count(), "count")

    def rollback(self) -> None:
        """Rollback the current transaction."""
        self.db.rollback()

    def _filtered(self, criteria: Dict[str, Any]):
        query = self.db.query(self.model)

        for key, value in criteria.items():
            if hasattr(self.model, key):
                query = query.filter(getattr(self.model, key) == value)

        return query

    def _fetch(self, read: Callable[[], R], operation: str = "load") -> R:
        """
        Run a read against the session.

        Raises:
            StoreUnavailableError: If the database cannot be reached
        """
        try:
            return read()
        except OperationalError as e:
            raise StoreUnavailableError(f"Failed to {operation} {self.model.__name__}: {str(e)}")

    def _store_error(self, operation: str, error: SQLAlchemyError) -> RepositoryError:
        message = f"Failed to {operation} {self.model.__name__}: {str(error)}"
        if isinstance(error, OperationalError):
            return StoreUnavailableError(message)
        return RepositoryError(message)

    def _extract_entity_dict(self, entity: T) -> Dict[str, Any]:
        """
        Extract entity column values as dictionary.

        Args:
            entity: Entity instance

        Returns:
            Dictionary of entity attributes
        """
        mapper = inspect(type(entity))
        return {
            column.key: getattr(entity, column.key, None)
            for column in mapper.column_attrs
        }
