"""Serialized membership toggling on Subject rosters.

Two layers keep concurrent toggles from losing updates:
- an in-process lock per subject id, so toggles of one subject queue up while
  toggles of different subjects run in parallel;
- the repository's ``atomic_toggle_member`` primitive, which decides the flip
  direction and writes it in one storage transaction (covers other processes).
"""

import logging
import threading
from collections import defaultdict
from contextlib import contextmanager
from collections.abc import Iterator

from SchoolManagementApp.core.access import Actor, ensure_role
from SchoolManagementApp.core.choices import UserRole
from SchoolManagementApp.core.exceptions import ValidationError
from SchoolManagementApp.domain.ports import Repositories
from SchoolManagementApp.domain.repositories import DjangoRepositories

logger = logging.getLogger(__name__)


class KeyedLock:
    """Lazily created mutex per key."""

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: defaultdict[int, threading.Lock] = defaultdict(threading.Lock)

    def __len__(self) -> int:
        with self._guard:
            return len(self._locks)

    @contextmanager
    def hold(self, key: int) -> Iterator[None]:
        with self._guard:
            lock = self._locks[key]
        with lock:
            yield


_subject_locks = KeyedLock()


class EnrollmentGuard:

    def __init__(self, repos: Repositories | None = None, locks: KeyedLock | None = None) -> None:
        self.repos = repos or DjangoRepositories()
        self.locks = locks if locks is not None else _subject_locks

    def toggle_membership(self, actor: Actor, subject_id: int, student_id: int) -> bool:
        """Enroll the student if absent, remove if present (admin only).

        Returns:
            True when the student is enrolled after the call.
        """
        ensure_role(actor, UserRole.ADMIN)
        student = self.repos.users.get(student_id)
        if student.role != UserRole.STUDENT:
            raise ValidationError("Only students can be enrolled")
        # unknown subjects never get a lock entry
        self.repos.subjects.get(subject_id)
        with self.locks.hold(subject_id):
            enrolled = self.repos.subjects.atomic_toggle_member(subject_id, student_id)
        logger.info(
            "Student %s %s subject %s", student_id, "enrolled in" if enrolled else "removed from", subject_id
        )
        return enrolled

    def members(self, subject_id: int) -> frozenset[int]:
        self.repos.subjects.get(subject_id)
        return self.repos.subjects.member_ids(subject_id)
