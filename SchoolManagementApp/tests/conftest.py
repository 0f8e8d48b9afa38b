from datetime import timedelta

import pytest
from django.utils import timezone
from model_bakery import baker

from SchoolManagementApp.core.choices import ProjectStatus, UserRole


@pytest.fixture
def admin():
    return baker.make("users.User", role=UserRole.ADMIN)


@pytest.fixture
def teacher():
    return baker.make("users.User", role=UserRole.TEACHER)


@pytest.fixture
def student():
    return baker.make("users.User", role=UserRole.STUDENT)


@pytest.fixture
def subject(teacher):
    return baker.make("academics.Subject", name="Mathematics", code="MATH101", teacher=teacher)


@pytest.fixture
def make_project(teacher, subject):
    """Factory for projects owned by ``teacher`` in ``subject``; approved and due in 3 days by default."""

    def _make(**overrides):
        fields = {
            "title": "Algebra homework",
            "subject": subject,
            "created_by": teacher,
            "deadline": timezone.now() + timedelta(days=3),
            "max_score": 100,
            "status": ProjectStatus.APPROVED,
        }
        fields.update(overrides)
        return baker.make("learning.Project", **fields)

    return _make
