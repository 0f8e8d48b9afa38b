from model_bakery import baker

from SchoolManagementApp.core.access import Actor


def actor_for(user) -> Actor:
    return Actor(user_id=user.pk, role=user.role)


def enroll(subject, *students) -> None:
    for student in students:
        baker.make("academics.SubjectEnrollment", subject=subject, student=student)
