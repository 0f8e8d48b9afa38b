from django.contrib.auth.models import AbstractUser
from django.db import models

from SchoolManagementApp.core.choices import UserRole


class User(AbstractUser):
    """Portal account; ``is_active`` doubles as the admin-controlled active flag."""
    email = models.EmailField(unique=True)
    name = models.CharField(max_length=150, blank=True)
    role = models.CharField(max_length=16, choices=UserRole.choices, default=UserRole.STUDENT)
    USERNAME_FIELD = "email"
    REQUIRED_FIELDS = ["username"]

    def __str__(self) -> str:
        return f"{self.name or self.email} ({self.role})"
