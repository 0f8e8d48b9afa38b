"""Repository ports consumed by the domain services.

The services never touch the ORM directly; they go through these contracts
so the storage layer can be swapped (or faked in tests). Filters are passed
as keyword lookups (``status="approved"``, ``id__in=[...]``).
"""

from abc import ABC, abstractmethod
from collections.abc import Callable, Iterable, Sequence
from contextlib import AbstractContextManager
from typing import Any, Generic, TypeVar

T = TypeVar("T")


class Repository(ABC, Generic[T]):
    """Read/write access to one entity collection."""

    @abstractmethod
    def find(
        self,
        *,
        order_by: Sequence[str] = (),
        limit: int | None = None,
        offset: int = 0,
        **filters: Any,
    ) -> list[T]:
        pass

    @abstractmethod
    def find_one(self, **filters: Any) -> T | None:
        pass

    @abstractmethod
    def get(self, obj_id: int) -> T:
        """Return the entity or raise NotFoundError."""

    @abstractmethod
    def create(self, **fields: Any) -> T:
        pass

    @abstractmethod
    def update(self, obj_id: int, **fields: Any) -> T:
        pass

    @abstractmethod
    def update_where(self, filters: dict[str, Any], **fields: Any) -> int:
        """Bulk update every match; returns the number of rows changed."""

    @abstractmethod
    def delete(self, obj_id: int) -> bool:
        pass

    @abstractmethod
    def count(self, **filters: Any) -> int:
        pass


class SubjectRepository(Repository[T]):
    """Subjects plus their enrollment set."""

    @abstractmethod
    def member_ids(self, subject_id: int) -> frozenset[int]:
        """Enrolled student ids; an empty set (never None) when nobody is enrolled."""

    @abstractmethod
    def subject_ids_for_student(self, student_id: int) -> frozenset[int]:
        pass

    @abstractmethod
    def atomic_toggle_member(self, subject_id: int, student_id: int) -> bool:
        """Flip membership in one atomic step; returns True when now enrolled."""


class AnnouncementRepository(Repository[T]):

    @abstractmethod
    def visible_to_student(self, student_id: int) -> list[T]:
        """Global posts plus posts of the student's subjects, pinned first then newest."""


class NotificationRepository(Repository[T]):

    @abstractmethod
    def bulk_create(self, rows: Iterable[dict[str, Any]]) -> int:
        """Insert all rows as a single batch; returns how many were written."""


class Repositories(ABC):
    """Bundle of ports plus the transaction boundary they share."""
    users: Repository
    subjects: SubjectRepository
    projects: Repository
    submissions: Repository
    notifications: NotificationRepository
    announcements: AnnouncementRepository
    materials: Repository

    @abstractmethod
    def atomic(self) -> AbstractContextManager:
        """Context manager making the enclosed writes all-or-nothing."""

    @abstractmethod
    def on_commit(self, callback: Callable[[], None]) -> None:
        """Run ``callback`` once the current transaction has durably committed."""
