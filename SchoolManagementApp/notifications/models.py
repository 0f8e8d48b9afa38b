from django.conf import settings
from django.db import models

from SchoolManagementApp.core.choices import NotificationKind

User = settings.AUTH_USER_MODEL


class Notification(models.Model):
    """A message created as a side effect of a lifecycle transition."""
    recipient = models.ForeignKey(User, on_delete=models.CASCADE, related_name="notifications")
    kind = models.CharField(max_length=32, choices=NotificationKind.choices)
    title = models.CharField(max_length=255)
    message = models.TextField()
    link = models.CharField(max_length=500)
    is_read = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-created_at", "-id"]
        indexes = [
            models.Index(fields=["recipient", "is_read", "-created_at"], name="ix_notification_inbox"),
        ]

    def __str__(self) -> str:
        return f"{self.title} -> {self.recipient_id}"
