from datetime import timedelta

import pytest
from django.utils import timezone
from model_bakery import baker
from rest_framework.test import APIClient

from SchoolManagementApp.core.choices import ProjectStatus, SubmissionStatus, UserRole
from SchoolManagementApp.notifications.models import Notification
from SchoolManagementApp.tests.helpers import enroll

pytestmark = pytest.mark.django_db

TOKEN_URL = "/api/v1/auth/token/"
SUBJECTS_URL = "/api/v1/subjects/"
PROJECTS_URL = "/api/v1/projects/"
NOTIFICATIONS_URL = "/api/v1/notifications/"
PROGRESS_URL = "/api/v1/progress/"


def client_for(user) -> APIClient:
    client = APIClient()
    client.force_authenticate(user=user)
    return client


def make_user(role: str, email: str):
    user = baker.make("users.User", email=email, role=role)
    user.set_password("pass1234")
    user.save()
    return user


def test_token_login():
    make_user(UserRole.STUDENT, "s@example.com")
    resp = APIClient().post(TOKEN_URL, {"email": "s@example.com", "password": "pass1234"}, format="json")
    assert resp.status_code == 200
    assert "access" in resp.data


def test_anonymous_is_rejected():
    assert APIClient().get(PROJECTS_URL).status_code == 401


def test_assignment_flow_end_to_end(django_capture_on_commit_callbacks):
    admin = make_user(UserRole.ADMIN, "a@example.com")
    teacher = make_user(UserRole.TEACHER, "t@example.com")
    student = make_user(UserRole.STUDENT, "s@example.com")
    a_client, t_client, s_client = client_for(admin), client_for(teacher), client_for(student)

    resp = a_client.post(SUBJECTS_URL, {"name": "History", "code": "hist", "teacher_id": teacher.pk}, format="json")
    assert resp.status_code == 201
    subject_id = resp.data["id"]
    assert resp.data["code"] == "HIST"

    resp = a_client.post(f"{SUBJECTS_URL}{subject_id}/toggle-member/", {"student_id": student.pk}, format="json")
    assert resp.status_code == 200
    assert resp.data == {"enrolled": True, "student_ids": [student.pk]}

    deadline = (timezone.now() + timedelta(days=3)).isoformat()
    resp = t_client.post(
        PROJECTS_URL, {"title": "Essay", "subject_id": subject_id, "deadline": deadline}, format="json"
    )
    assert resp.status_code == 201
    project_id = resp.data["id"]
    assert resp.data["status"] == ProjectStatus.PENDING

    assert s_client.get(f"{PROJECTS_URL}{project_id}/").status_code == 404

    with django_capture_on_commit_callbacks(execute=True):
        resp = a_client.post(f"{PROJECTS_URL}{project_id}/decide/", {"status": "approved"}, format="json")
    assert resp.status_code == 200
    assert Notification.objects.filter(recipient=student).count() == 1

    resp = s_client.get(PROJECTS_URL)
    assert [p["id"] for p in resp.data["results"]] == [project_id]

    submissions_url = f"{PROJECTS_URL}{project_id}/submissions/"
    with django_capture_on_commit_callbacks(execute=True):
        resp = s_client.post(submissions_url, {"text": "My essay"}, format="json")
    assert resp.status_code == 201
    submission_id = resp.data["id"]
    assert resp.data["is_late"] is False

    assert s_client.post(submissions_url, {"text": "Again"}, format="json").status_code == 409

    with django_capture_on_commit_callbacks(execute=True):
        resp = t_client.post(f"{submissions_url}{submission_id}/grade/", {"grade": 88, "feedback": "Nice"}, format="json")
    assert resp.status_code == 200
    assert resp.data["status"] == SubmissionStatus.GRADED

    resp = s_client.patch(f"{submissions_url}{submission_id}/", {"text": "edit"}, format="json")
    assert resp.status_code == 409

    resp = s_client.get(PROGRESS_URL)
    assert resp.data[0]["students"][0]["avg_grade"] == 88

    resp = s_client.get(NOTIFICATIONS_URL)
    assert resp.data["unread_count"] == 2
    resp = s_client.post(f"{NOTIFICATIONS_URL}read-all/")
    assert resp.data == {"updated": 2}


def test_rejected_project_resubmission_via_api():
    admin = make_user(UserRole.ADMIN, "a@example.com")
    teacher = make_user(UserRole.TEACHER, "t@example.com")
    subject = baker.make("academics.Subject", teacher=teacher)
    project = baker.make(
        "learning.Project", subject=subject, created_by=teacher, status=ProjectStatus.PENDING,
        deadline=timezone.now() + timedelta(days=5),
    )

    resp = client_for(admin).post(
        f"{PROJECTS_URL}{project.pk}/decide/", {"status": "rejected", "admin_note": "Add rubric"}, format="json"
    )
    assert resp.data["admin_note"] == "Add rubric"

    resp = client_for(teacher).patch(f"{PROJECTS_URL}{project.pk}/", {"description": "Rubric added"}, format="json")
    assert resp.status_code == 200
    assert resp.data["status"] == ProjectStatus.PENDING
    assert resp.data["admin_note"] == ""


def test_invalid_decision_is_400():
    admin = make_user(UserRole.ADMIN, "a@example.com")
    project = baker.make("learning.Project", status=ProjectStatus.PENDING, deadline=timezone.now())
    resp = client_for(admin).post(f"{PROJECTS_URL}{project.pk}/decide/", {"status": "published"}, format="json")
    assert resp.status_code == 400


def test_student_cannot_toggle_membership(student, subject):
    resp = client_for(student).post(f"{SUBJECTS_URL}{subject.pk}/toggle-member/", {"student_id": student.pk}, format="json")
    assert resp.status_code == 403


def test_notification_of_other_user_is_404(student):
    other = baker.make("users.User", role=UserRole.STUDENT)
    note = baker.make("notifications.Notification", recipient=other)
    assert client_for(student).delete(f"{NOTIFICATIONS_URL}{note.pk}/").status_code == 404
    assert Notification.objects.filter(pk=note.pk).exists()


def test_schema_is_served(admin):
    assert client_for(admin).get("/api/v1/schema/").status_code == 200


@pytest.mark.parametrize("query", [{"limit": -1}, {"limit": 0}, {"offset": -5}, {"limit": "ten"}])
def test_bad_notification_paging_is_400(student, query):
    assert client_for(student).get(NOTIFICATIONS_URL, query).status_code == 400


def test_submission_under_wrong_project_is_404(teacher, student, subject, make_project):
    enroll(subject, student)
    project, other = make_project(), make_project(title="Other")
    submission = baker.make("learning.Submission", project=project, student=student, status=SubmissionStatus.SUBMITTED)
    wrong_url = f"{PROJECTS_URL}{other.pk}/submissions/{submission.pk}/"

    assert client_for(teacher).post(f"{wrong_url}grade/", {"grade": 50}, format="json").status_code == 404
    assert client_for(student).patch(wrong_url, {"text": "edit"}, format="json").status_code == 404
    assert client_for(student).delete(wrong_url).status_code == 404
    submission.refresh_from_db()
    assert submission.grade is None
