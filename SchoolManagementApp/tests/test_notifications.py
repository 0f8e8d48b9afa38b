import logging
from unittest.mock import MagicMock

import pytest
from model_bakery import baker

from SchoolManagementApp.core.choices import NotificationKind, ProjectStatus, UserRole
from SchoolManagementApp.core.exceptions import StorageError, ValidationError
from SchoolManagementApp.domain.ports import NotificationRepository
from SchoolManagementApp.domain.repositories import DjangoRepositories
from SchoolManagementApp.domain.services.notification_service import NotificationDispatcher, NotificationInbox
from SchoolManagementApp.domain.services.project_service import ProjectService
from SchoolManagementApp.learning.models import Project
from SchoolManagementApp.notifications.models import Notification
from SchoolManagementApp.tests.helpers import actor_for, enroll


@pytest.fixture
def failing_store() -> MagicMock:
    store = MagicMock(spec=NotificationRepository)
    store.create.side_effect = StorageError("disk full")
    store.bulk_create.side_effect = StorageError("disk full")
    return store


class TestDispatcher:

    def test_notify_one_swallows_and_logs(self, failing_store, caplog) -> None:
        dispatcher = NotificationDispatcher(failing_store)
        with caplog.at_level(logging.ERROR):
            assert dispatcher.notify_one(7, NotificationKind.PROJECT_APPROVED, "t", "m", "/x") is False
        assert "notify_one failed" in caplog.text

    def test_notify_many_swallows(self, failing_store) -> None:
        dispatcher = NotificationDispatcher(failing_store)
        assert dispatcher.notify_many([1, 2], NotificationKind.PROJECT_PUBLISHED, "t", "m", "/x") == 0

    def test_missing_recipient_is_skipped(self) -> None:
        store = MagicMock(spec=NotificationRepository)
        assert NotificationDispatcher(store).notify_one(None, NotificationKind.PROJECT_APPROVED, "t", "m", "/x") is False
        store.create.assert_not_called()

    def test_notify_many_dedupes_into_one_batch(self) -> None:
        store = MagicMock(spec=NotificationRepository)
        store.bulk_create.side_effect = lambda rows: len(list(rows))
        written = NotificationDispatcher(store).notify_many(
            [3, 1, 3, 2, 1], NotificationKind.PROJECT_PUBLISHED, "t", "m", "/x"
        )
        assert written == 3
        store.bulk_create.assert_called_once()

    def test_empty_audience_writes_nothing(self) -> None:
        store = MagicMock(spec=NotificationRepository)
        assert NotificationDispatcher(store).notify_many([], NotificationKind.PROJECT_PUBLISHED, "t", "m", "/x") == 0
        store.bulk_create.assert_not_called()


@pytest.mark.django_db
class TestTransitionIsolation:

    def test_failed_dispatch_keeps_decision(
        self, admin, make_project, failing_store, django_capture_on_commit_callbacks
    ) -> None:
        project = make_project(status=ProjectStatus.PENDING)
        service = ProjectService(dispatcher=NotificationDispatcher(failing_store))
        with django_capture_on_commit_callbacks(execute=True):
            service.decide(actor_for(admin), project.pk, ProjectStatus.APPROVED, "")
        project.refresh_from_db()
        assert project.status == ProjectStatus.APPROVED

    def test_rolled_back_decision_sends_nothing(
        self, admin, subject, student, make_project, django_capture_on_commit_callbacks
    ) -> None:
        enroll(subject, student)
        project = make_project(status=ProjectStatus.PENDING)
        repos = DjangoRepositories()
        service = ProjectService(repos=repos)

        with django_capture_on_commit_callbacks(execute=True) as callbacks:
            with pytest.raises(ValidationError):
                with repos.atomic():
                    service.decide(actor_for(admin), project.pk, ProjectStatus.APPROVED, "")
                    raise ValidationError("abort")

        assert callbacks == []
        assert not Notification.objects.exists()
        assert Project.objects.get(pk=project.pk).status == ProjectStatus.PENDING


@pytest.mark.django_db
class TestInbox:

    @pytest.fixture
    def inbox_owner(self):
        user = baker.make("users.User", role=UserRole.STUDENT)
        baker.make("notifications.Notification", recipient=user, kind=NotificationKind.PROJECT_PUBLISHED, _quantity=3)
        return user

    def test_list_newest_first_with_unread_count(self, inbox_owner) -> None:
        page = NotificationInbox().list_for_recipient(inbox_owner.pk, limit=2)
        assert len(page.items) == 2
        assert page.unread_count == 3
        assert page.items[0].pk > page.items[1].pk

    def test_mark_read_is_recipient_scoped(self, inbox_owner) -> None:
        intruder = baker.make("users.User", role=UserRole.STUDENT)
        target = Notification.objects.filter(recipient=inbox_owner).first()
        inbox = NotificationInbox()
        assert inbox.mark_read(intruder.pk, target.pk) is False
        assert inbox.mark_read(inbox_owner.pk, target.pk) is True
        assert inbox.list_for_recipient(inbox_owner.pk).unread_count == 2

    def test_mark_all_and_unread_filter(self, inbox_owner) -> None:
        inbox = NotificationInbox()
        assert inbox.mark_all_read(inbox_owner.pk) == 3
        assert inbox.list_for_recipient(inbox_owner.pk, unread_only=True).items == []

    def test_delete_only_own(self, inbox_owner) -> None:
        intruder = baker.make("users.User", role=UserRole.STUDENT)
        target = Notification.objects.filter(recipient=inbox_owner).first()
        inbox = NotificationInbox()
        assert inbox.delete(intruder.pk, target.pk) is False
        assert inbox.delete(inbox_owner.pk, target.pk) is True
        assert Notification.objects.filter(recipient=inbox_owner).count() == 2
