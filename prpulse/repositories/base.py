"""Base repository class with common CRUD operations."""

from typing import Any, Generic, TypeVar

from sqlalchemy import func, inspect
from sqlalchemy.orm import Session

from prpulse.db import Base

T = TypeVar("T", bound=Base)


class BaseRepository(Generic[T]):
    """
    Base repository providing common CRUD operations.

    Primary keys may be integers (webhook_logs) or the deterministic string
    keys used for pull requests, issues and cache rows.

    Usage:
        class PullRequestRepository(BaseRepository[PullRequestRecord]):
            model = PullRequestRecord

        repo = PullRequestRepository(session)
        record = repo.get_by_id("pr-acme/widgets-1")
    """

    model: type[T]

    def __init__(self, session: Session):
        self.session = session

    def get_by_id(self, id: Any) -> T | None:
        """Get a single record by primary key."""
        return self.session.get(self.model, id)

    def delete(self, id: Any) -> bool:
        """Delete a record by primary key."""
        instance = self.get_by_id(id)
        if instance:
            self.session.delete(instance)
            self.session.flush()
            return True
        return False

    def count(self, **filters) -> int:
        """Get count of records, optionally filtered by column equality."""
        query = self.session.query(func.count()).select_from(self.model)
        for key, value in filters.items():
            if not hasattr(self.model, key):
                raise ValueError(f"Unknown filter key: {key}")
            query = query.filter(getattr(self.model, key) == value)
        return query.scalar() or 0

    def _assign(self, instance: T, values: dict[str, Any]) -> bool:
        """Copy values onto instance; True if any column actually changed."""
        changed = False
        for key, value in values.items():
            if getattr(instance, key) != value:
                setattr(instance, key, value)
                changed = True
        return changed

    def _upsert(self, id: Any, values: dict[str, Any]) -> tuple[T, bool]:
        """
        Insert or replace by primary key.

        Returns (instance, changed). Re-applying identical values leaves the
        row untouched and reports changed=False.
        """
        instance = self.get_by_id(id)
        if instance is None:
            pk_name = inspect(self.model).primary_key[0].name
            instance = self.model(**{pk_name: id}, **values)
            self.session.add(instance)
            self.session.flush()
            return instance, True

        changed = self._assign(instance, values)
        if changed:
            self.session.flush()
        return instance, changed
