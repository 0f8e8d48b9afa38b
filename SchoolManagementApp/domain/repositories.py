"""Django ORM implementation of the repository ports.

Persistence errors are translated here and nowhere else: unique-constraint
violations become ConflictError, every other DatabaseError becomes
StorageError.
"""

import functools
import logging
from collections.abc import Callable, Iterable, Sequence
from typing import Any

from django.contrib.auth import get_user_model
from django.db import DatabaseError, IntegrityError, models, transaction

from SchoolManagementApp.academics.models import Announcement, Material, Subject, SubjectEnrollment
from SchoolManagementApp.core.exceptions import ConflictError, NotFoundError, StorageError
from SchoolManagementApp.domain.ports import (
    AnnouncementRepository,
    NotificationRepository,
    Repositories,
    Repository,
    SubjectRepository,
)
from SchoolManagementApp.learning.models import Project, Submission
from SchoolManagementApp.notifications.models import Notification

logger = logging.getLogger(__name__)


def storage_guard(fn: Callable) -> Callable:
    """Map driver-level failures onto the domain error taxonomy."""

    @functools.wraps(fn)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        try:
            return fn(*args, **kwargs)
        except IntegrityError as exc:
            raise ConflictError(f"Uniqueness violated: {exc}") from exc
        except DatabaseError as exc:
            logger.error("Storage failure in %s: %s", fn.__qualname__, exc)
            raise StorageError(str(exc)) from exc

    return wrapper


class DjangoRepository(Repository[models.Model]):
    """Generic port adapter over a model's default manager."""
    model: type[models.Model]

    def __init__(self, model: type[models.Model] | None = None) -> None:
        if model is not None:
            self.model = model

    def _queryset(self) -> models.QuerySet:
        return self.model.objects.all()

    @storage_guard
    def find(
        self,
        *,
        order_by: Sequence[str] = (),
        limit: int | None = None,
        offset: int = 0,
        **filters: Any,
    ) -> list[models.Model]:
        qs = self._queryset().filter(**filters)
        if order_by:
            qs = qs.order_by(*order_by)
        if limit is not None:
            qs = qs[offset:offset + limit]
        elif offset:
            qs = qs[offset:]
        return list(qs)

    @storage_guard
    def find_one(self, **filters: Any) -> models.Model | None:
        return self._queryset().filter(**filters).first()

    @storage_guard
    def get(self, obj_id: int) -> models.Model:
        try:
            return self._queryset().get(pk=obj_id)
        except self.model.DoesNotExist:
            raise NotFoundError(f"{self.model.__name__} {obj_id} not found")

    @storage_guard
    def create(self, **fields: Any) -> models.Model:
        with transaction.atomic():
            return self.model.objects.create(**fields)

    @storage_guard
    def update(self, obj_id: int, **fields: Any) -> models.Model:
        with transaction.atomic():
            obj = self._queryset().select_for_update().filter(pk=obj_id).first()
            if obj is None:
                raise NotFoundError(f"{self.model.__name__} {obj_id} not found")
            for name, value in fields.items():
                setattr(obj, name, value)
            obj.save()
            return obj

    @storage_guard
    def update_where(self, filters: dict[str, Any], **fields: Any) -> int:
        return self._queryset().filter(**filters).update(**fields)

    @storage_guard
    def delete(self, obj_id: int) -> bool:
        obj = self._queryset().filter(pk=obj_id).first()
        if obj is None:
            return False
        # instance delete so simple-history records the removal
        obj.delete()
        return True

    @storage_guard
    def count(self, **filters: Any) -> int:
        return self._queryset().filter(**filters).count()


class DjangoSubjectRepository(SubjectRepository, DjangoRepository):
    model = Subject

    def _queryset(self) -> models.QuerySet:
        return Subject.objects.select_related("teacher")

    @storage_guard
    def member_ids(self, subject_id: int) -> frozenset[int]:
        return frozenset(
            SubjectEnrollment.objects.filter(subject_id=subject_id).values_list("student_id", flat=True)
        )

    @storage_guard
    def subject_ids_for_student(self, student_id: int) -> frozenset[int]:
        return frozenset(
            Subject.objects.with_student(student_id).values_list("pk", flat=True)
        )

    @storage_guard
    def atomic_toggle_member(self, subject_id: int, student_id: int) -> bool:
        """Row-lock the subject, then delete the enrollment or insert it.

        The conditional delete decides the direction, so no separate read of
        the roster can go stale between the check and the write.
        """
        with transaction.atomic():
            locked = list(Subject.objects.select_for_update().filter(pk=subject_id).values_list("pk", flat=True))
            if not locked:
                raise NotFoundError(f"Subject {subject_id} not found")
            removed, _ = SubjectEnrollment.objects.filter(subject_id=subject_id, student_id=student_id).delete()
            if removed:
                return False
            SubjectEnrollment.objects.create(subject_id=subject_id, student_id=student_id)
            return True


class DjangoNotificationRepository(NotificationRepository, DjangoRepository):
    model = Notification

    @storage_guard
    def bulk_create(self, rows: Iterable[dict[str, Any]]) -> int:
        objs = [Notification(**row) for row in rows]
        if not objs:
            return 0
        return len(Notification.objects.bulk_create(objs))


class DjangoAnnouncementRepository(AnnouncementRepository, DjangoRepository):
    model = Announcement

    @storage_guard
    def visible_to_student(self, student_id: int) -> list[Announcement]:
        return list(
            Announcement.objects.visible_to_student(student_id).order_by("-is_pinned", "-created_at")
        )


class DjangoRepositories(Repositories):
    """Ports backed by the default Django database."""

    def __init__(self) -> None:
        self.users = DjangoRepository(get_user_model())
        self.subjects = DjangoSubjectRepository()
        self.projects = DjangoRepository(Project)
        self.submissions = DjangoRepository(Submission)
        self.notifications = DjangoNotificationRepository()
        self.announcements = DjangoAnnouncementRepository()
        self.materials = DjangoRepository(Material)

    def atomic(self):
        return transaction.atomic()

    def on_commit(self, callback: Callable[[], None]) -> None:
        transaction.on_commit(callback)
