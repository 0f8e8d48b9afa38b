"""Read-only rollups for dashboards: student progress per subject and project overviews.

All joins are explicit lookups through the repository ports; a subject
without a teacher reports ``teacher_id=None``.
"""

from collections import defaultdict
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal

from django.conf import settings
from django.utils import timezone

from SchoolManagementApp.core.access import Actor, ensure_role
from SchoolManagementApp.core.choices import ProjectStatus, SubmissionStatus, UserRole
from SchoolManagementApp.core.exceptions import PermissionDeniedError
from SchoolManagementApp.domain.deadlines import days_left, round_half_up
from SchoolManagementApp.domain.ports import Repositories
from SchoolManagementApp.domain.repositories import DjangoRepositories

TURNED_IN = (SubmissionStatus.SUBMITTED, SubmissionStatus.GRADED)


def progress_percent(submitted: int, total_projects: int) -> int:
    if total_projects <= 0:
        return 0
    return round_half_up(Decimal(100 * submitted) / Decimal(total_projects))


def average_grade(grades: list[int]) -> int | None:
    """Rounded mean, or None when nothing has been graded (not 0)."""
    if not grades:
        return None
    return round_half_up(Decimal(sum(grades)) / Decimal(len(grades)))


@dataclass
class StudentProgress:
    student_id: int
    submitted: int
    graded: int
    total_projects: int
    progress_pct: int
    avg_grade: int | None


@dataclass
class SubjectProgress:
    subject_id: int
    name: str
    code: str
    teacher_id: int | None
    total_projects: int
    students: list[StudentProgress] = field(default_factory=list)


@dataclass
class ProjectOverview:
    project_id: int
    total_students: int
    submitted: int
    graded: int
    unsubmitted: int
    days_left: int
    warn_unsubmitted: bool


@dataclass
class ClassmateProgress:
    student_id: int
    name: str
    is_me: bool
    submitted: int
    total_projects: int
    progress_pct: int


@dataclass
class SubjectClassmates:
    subject_id: int
    name: str
    code: str
    teacher_id: int | None
    total_projects: int
    classmates: list[ClassmateProgress] = field(default_factory=list)


def summarize_student(student_id: int, total_projects: int, submissions: list) -> StudentProgress:
    """Fold one student's submissions (on approved projects) into a progress row."""
    submitted = sum(1 for s in submissions if s.status in TURNED_IN)
    grades = [s.grade for s in submissions if s.status == SubmissionStatus.GRADED and s.grade is not None]
    graded = sum(1 for s in submissions if s.status == SubmissionStatus.GRADED)
    return StudentProgress(
        student_id=student_id,
        submitted=submitted,
        graded=graded,
        total_projects=total_projects,
        progress_pct=progress_percent(submitted, total_projects),
        avg_grade=average_grade(grades),
    )


class ProgressAggregator:

    def __init__(self, repos: Repositories | None = None) -> None:
        self.repos = repos or DjangoRepositories()

    def subject_progress(self, actor: Actor, subject_id: int) -> SubjectProgress:
        """Progress of every enrolled student of a subject (its teacher or an admin)."""
        subject = self.repos.subjects.get(subject_id)
        if not actor.is_admin and subject.teacher_id != actor.user_id:
            raise PermissionDeniedError("Not the teacher of this subject")
        approved_ids = [p.pk for p in self.repos.projects.find(subject_id=subject_id, status=ProjectStatus.APPROVED)]
        member_ids = sorted(self.repos.subjects.member_ids(subject_id))
        by_student: defaultdict[int, list] = defaultdict(list)
        if approved_ids and member_ids:
            for sub in self.repos.submissions.find(project_id__in=approved_ids, student_id__in=member_ids):
                by_student[sub.student_id].append(sub)
        return SubjectProgress(
            subject_id=subject.pk,
            name=subject.name,
            code=subject.code,
            teacher_id=subject.teacher_id,
            total_projects=len(approved_ids),
            students=[summarize_student(sid, len(approved_ids), by_student[sid]) for sid in member_ids],
        )

    def teacher_dashboard(self, actor: Actor) -> list[SubjectProgress]:
        ensure_role(actor, UserRole.TEACHER)
        subjects = self.repos.subjects.find(order_by=("code",), teacher_id=actor.user_id)
        return [self.subject_progress(actor, s.pk) for s in subjects]

    def my_progress(self, actor: Actor) -> list[SubjectProgress]:
        """The student's own row for each subject they are enrolled in."""
        ensure_role(actor, UserRole.STUDENT)
        rows = []
        for subject_id in sorted(self.repos.subjects.subject_ids_for_student(actor.user_id)):
            subject = self.repos.subjects.get(subject_id)
            approved_ids = [p.pk for p in self.repos.projects.find(subject_id=subject_id, status=ProjectStatus.APPROVED)]
            subs = self.repos.submissions.find(project_id__in=approved_ids, student_id=actor.user_id) if approved_ids else []
            rows.append(SubjectProgress(
                subject_id=subject.pk,
                name=subject.name,
                code=subject.code,
                teacher_id=subject.teacher_id,
                total_projects=len(approved_ids),
                students=[summarize_student(actor.user_id, len(approved_ids), subs)],
            ))
        return rows

    def project_overview(self, actor: Actor, project_id: int, now: datetime | None = None) -> ProjectOverview:
        """Submission stats and the 'deadline close, work missing' flag for a project."""
        project = self.repos.projects.get(project_id)
        if not actor.is_admin and project.created_by_id != actor.user_id:
            raise PermissionDeniedError("Not the creator of this project")
        now = now or timezone.now()
        total = len(self.repos.subjects.member_ids(project.subject_id))
        subs = self.repos.submissions.find(project_id=project_id)
        submitted = sum(1 for s in subs if s.status in TURNED_IN)
        graded = sum(1 for s in subs if s.status == SubmissionStatus.GRADED)
        remaining = days_left(now, project.deadline)
        unsubmitted = max(total - submitted, 0)
        return ProjectOverview(
            project_id=project.pk,
            total_students=total,
            submitted=submitted,
            graded=graded,
            unsubmitted=unsubmitted,
            days_left=remaining,
            warn_unsubmitted=0 <= remaining <= settings.DEADLINE_WARNING_DAYS and unsubmitted > 0,
        )

    def classmates(self, actor: Actor) -> list[SubjectClassmates]:
        """Submission progress of everyone sharing a subject with the student.

        Grades are left out; the caller's own row comes first, then by
        progress descending.
        """
        ensure_role(actor, UserRole.STUDENT)
        result = []
        for subject_id in sorted(self.repos.subjects.subject_ids_for_student(actor.user_id)):
            subject = self.repos.subjects.get(subject_id)
            approved_ids = [p.pk for p in self.repos.projects.find(subject_id=subject_id, status=ProjectStatus.APPROVED)]
            member_ids = sorted(self.repos.subjects.member_ids(subject_id))
            names = {u.pk: u.name for u in self.repos.users.find(pk__in=member_ids)}
            turned_in: defaultdict[int, int] = defaultdict(int)
            if approved_ids:
                for sub in self.repos.submissions.find(
                    project_id__in=approved_ids, student_id__in=member_ids, status__in=list(TURNED_IN)
                ):
                    turned_in[sub.student_id] += 1
            rows = [
                ClassmateProgress(
                    student_id=sid,
                    name=names.get(sid, ""),
                    is_me=sid == actor.user_id,
                    submitted=turned_in[sid],
                    total_projects=len(approved_ids),
                    progress_pct=progress_percent(turned_in[sid], len(approved_ids)),
                )
                for sid in member_ids
            ]
            rows.sort(key=lambda r: (not r.is_me, -r.progress_pct, r.student_id))
            result.append(SubjectClassmates(
                subject_id=subject.pk,
                name=subject.name,
                code=subject.code,
                teacher_id=subject.teacher_id,
                total_projects=len(approved_ids),
                classmates=rows,
            ))
        return result
