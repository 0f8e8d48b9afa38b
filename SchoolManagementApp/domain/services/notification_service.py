"""Notification fan-out and the recipient-facing notification sink.

Dispatch is best-effort: a failed write is logged and dropped so that it can
never make the triggering decide/grade/submit look failed. Callers schedule
dispatch through ``Repositories.on_commit`` so nothing is sent for a
transition that did not persist.
"""

import logging
from collections.abc import Iterable
from dataclasses import dataclass
from typing import Any

from django.conf import settings

from SchoolManagementApp.core.choices import NotificationKind
from SchoolManagementApp.core.exceptions import ValidationError
from SchoolManagementApp.domain.ports import NotificationRepository, Repositories
from SchoolManagementApp.domain.repositories import DjangoRepositories

logger = logging.getLogger(__name__)


class NotificationDispatcher:
    """Writes notifications for one or many recipients without ever raising."""

    def __init__(self, notifications: NotificationRepository) -> None:
        self.notifications = notifications

    def notify_one(self, recipient_id: int | None, kind: str, title: str, message: str, link: str) -> bool:
        """Create a single notification; returns False when nothing was written."""
        if recipient_id is None:
            return False
        try:
            self.notifications.create(
                recipient_id=recipient_id,
                kind=NotificationKind(kind),
                title=title,
                message=message,
                link=link,
            )
        except Exception:
            logger.exception("notify_one failed: kind=%s recipient=%s", kind, recipient_id)
            return False
        logger.debug("Notified %s (%s)", recipient_id, kind)
        return True

    def notify_many(
        self, recipient_ids: Iterable[int], kind: str, title: str, message: str, link: str
    ) -> int:
        """Create one notification per distinct recipient in a single batch write.

        Returns the number of rows written (0 on failure or empty audience).
        """
        unique_ids = list(dict.fromkeys(rid for rid in recipient_ids if rid is not None))
        if not unique_ids:
            return 0
        try:
            kind = NotificationKind(kind)
            written = self.notifications.bulk_create(
                {"recipient_id": rid, "kind": kind, "title": title, "message": message, "link": link}
                for rid in unique_ids
            )
        except Exception:
            logger.exception("notify_many failed: kind=%s recipients=%d", kind, len(unique_ids))
            return 0
        logger.info("Notified %d recipients (%s)", written, kind)
        return written


@dataclass
class NotificationPage:
    items: list[Any]
    unread_count: int


class NotificationInbox:
    """Recipient-scoped reads and the only mutations a recipient may make."""

    def __init__(self, repos: Repositories | None = None) -> None:
        self.repos = repos or DjangoRepositories()

    def list_for_recipient(
        self,
        recipient_id: int,
        limit: int | None = None,
        offset: int = 0,
        unread_only: bool = False,
    ) -> NotificationPage:
        if limit is None:
            limit = settings.NOTIFICATIONS_PAGE_SIZE
        elif limit <= 0:
            raise ValidationError("limit must be a positive integer")
        if offset < 0:
            raise ValidationError("offset cannot be negative")
        filters: dict[str, Any] = {"recipient_id": recipient_id}
        if unread_only:
            filters["is_read"] = False
        items = self.repos.notifications.find(
            order_by=("-created_at", "-id"), limit=limit, offset=offset, **filters
        )
        unread = self.repos.notifications.count(recipient_id=recipient_id, is_read=False)
        return NotificationPage(items=items, unread_count=unread)

    def mark_read(self, recipient_id: int, notification_id: int) -> bool:
        """Mark one notification read; another user's id is silently a no-op."""
        changed = self.repos.notifications.update_where(
            {"pk": notification_id, "recipient_id": recipient_id}, is_read=True
        )
        return bool(changed)

    def mark_all_read(self, recipient_id: int) -> int:
        return self.repos.notifications.update_where(
            {"recipient_id": recipient_id, "is_read": False}, is_read=True
        )

    def delete(self, recipient_id: int, notification_id: int) -> bool:
        target = self.repos.notifications.find_one(pk=notification_id, recipient_id=recipient_id)
        if target is None:
            return False
        return self.repos.notifications.delete(target.pk)
