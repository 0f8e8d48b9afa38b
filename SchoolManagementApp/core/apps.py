"""Core app configuration (shared choices, access helpers, errors)."""

from django.apps import AppConfig


class CoreConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "SchoolManagementApp.core"
