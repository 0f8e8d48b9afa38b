"""Learning app configuration (projects and submissions)."""

from django.apps import AppConfig


class LearningConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "SchoolManagementApp.learning"
    label = "learning"
