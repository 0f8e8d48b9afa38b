from django.apps import AppConfig


class AcademicsConfig(AppConfig):
    """AppConfig for subjects, enrollments and announcements."""
    default_auto_field = "django.db.models.BigAutoField"
    name = "SchoolManagementApp.academics"
    label = "academics"
