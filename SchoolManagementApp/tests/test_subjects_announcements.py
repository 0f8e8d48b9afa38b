import pytest
from model_bakery import baker

from SchoolManagementApp.core.choices import AnnouncementScope, NotificationKind, UserRole
from SchoolManagementApp.core.exceptions import ConflictError, PermissionDeniedError, ValidationError
from SchoolManagementApp.domain.services.announcement_service import AnnouncementService
from SchoolManagementApp.domain.services.subject_service import SubjectService
from SchoolManagementApp.notifications.models import Notification
from SchoolManagementApp.tests.helpers import actor_for, enroll

pytestmark = pytest.mark.django_db


class TestSubjects:

    def test_create_uppercases_code(self, admin, teacher) -> None:
        subject = SubjectService().create(actor_for(admin), "Biology", " bio1 ", teacher_id=teacher.pk)
        assert subject.code == "BIO1"
        assert subject.teacher_id == teacher.pk

    def test_duplicate_code(self, admin, subject) -> None:
        with pytest.raises(ConflictError):
            SubjectService().create(actor_for(admin), "Maths again", "math101")

    def test_teacher_must_have_teacher_role(self, admin, student) -> None:
        with pytest.raises(ValidationError):
            SubjectService().create(actor_for(admin), "Art", "ART", teacher_id=student.pk)

    def test_assign_and_clear_teacher(self, admin, subject) -> None:
        service = SubjectService()
        assert service.assign_teacher(actor_for(admin), subject.pk, None).teacher_id is None

    def test_listing_by_role(self, admin, teacher, student, subject) -> None:
        other = baker.make("academics.Subject", code="OTHER")
        enroll(other, student)
        service = SubjectService()
        assert {s.pk for s in service.list_for(actor_for(admin))} == {subject.pk, other.pk}
        assert [s.pk for s in service.list_for(actor_for(teacher))] == [subject.pk]
        assert [s.pk for s in service.list_for(actor_for(student))] == [other.pk]

    def test_only_admin_manages(self, teacher, subject) -> None:
        with pytest.raises(PermissionDeniedError):
            SubjectService().delete(actor_for(teacher), subject.pk)


class TestAnnouncements:

    def test_subject_post_notifies_members(self, teacher, subject, student, django_capture_on_commit_callbacks) -> None:
        enroll(subject, student)
        baker.make("users.User", role=UserRole.STUDENT)
        with django_capture_on_commit_callbacks(execute=True):
            post = AnnouncementService().post(actor_for(teacher), "Quiz", "Friday", subject_id=subject.pk)
        assert post.scope == AnnouncementScope.SUBJECT
        notification = Notification.objects.get()
        assert notification.recipient_id == student.pk
        assert notification.kind == NotificationKind.ANNOUNCEMENT_POSTED

    def test_global_post_reaches_active_students(self, admin, django_capture_on_commit_callbacks) -> None:
        baker.make("users.User", role=UserRole.STUDENT, is_active=True, _quantity=2)
        baker.make("users.User", role=UserRole.STUDENT, is_active=False)
        with django_capture_on_commit_callbacks(execute=True):
            AnnouncementService().post(actor_for(admin), "Holiday", "No school Monday")
        assert Notification.objects.count() == 2

    def test_foreign_subject_post_denied(self, subject) -> None:
        stranger = baker.make("users.User", role=UserRole.TEACHER)
        with pytest.raises(PermissionDeniedError):
            AnnouncementService().post(actor_for(stranger), "Hi", "there", subject_id=subject.pk)

    def test_students_cannot_post(self, student) -> None:
        with pytest.raises(PermissionDeniedError):
            AnnouncementService().post(actor_for(student), "Hi", "there")

    def test_student_sees_global_and_own_subject(self, admin, teacher, subject, student) -> None:
        enroll(subject, student)
        service = AnnouncementService()
        glob = service.post(actor_for(admin), "Global", "all")
        mine = service.post(actor_for(teacher), "Mine", "x", subject_id=subject.pk, is_pinned=True)
        service.post(actor_for(admin), "Other", "x", subject_id=baker.make("academics.Subject").pk)
        assert [a.pk for a in service.list_for(actor_for(student))] == [mine.pk, glob.pk]
