"""REST API views for users, subjects, projects, submissions, notifications, announcements,
materials and progress.

Views translate HTTP payloads into service calls; role and ownership rules
live in ``SchoolManagementApp.domain.services``.
"""

from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.views import APIView

from drf_spectacular.utils import (
    extend_schema,
    extend_schema_view,
    OpenApiParameter,
    OpenApiResponse,
)

from SchoolManagementApp.api.mixins import PaginationMixin
from SchoolManagementApp.api.serializers import (
    AnnouncementReadSerializer,
    AnnouncementWriteSerializer,
    AssignTeacherSerializer,
    DecisionSerializer,
    GradeWriteSerializer,
    MaterialReadSerializer,
    MaterialWriteSerializer,
    NotificationPageSerializer,
    ProjectOverviewSerializer,
    ProjectReadSerializer,
    ProjectWriteSerializer,
    SubjectClassmatesSerializer,
    SubjectProgressSerializer,
    SubjectReadSerializer,
    SubjectWriteSerializer,
    SubmissionReadSerializer,
    SubmissionWriteSerializer,
    ToggleMembershipSerializer,
    UserAdminSerializer,
    UserCreateSerializer,
    UserUpdateSerializer,
)
from SchoolManagementApp.core.access import Actor
from SchoolManagementApp.core.permissions import (
    IsAdminOrReadOnly,
    IsAdminRole,
    IsStaffRole,
    IsStudentRole,
    IsTeacherRole,
)
from SchoolManagementApp.domain.services.announcement_service import AnnouncementService
from SchoolManagementApp.domain.services.enrollment_service import EnrollmentGuard
from SchoolManagementApp.domain.services.material_service import MaterialService
from SchoolManagementApp.domain.services.notification_service import NotificationInbox
from SchoolManagementApp.domain.services.progress_service import ProgressAggregator
from SchoolManagementApp.domain.services.project_service import ProjectService
from SchoolManagementApp.domain.services.subject_service import SubjectService
from SchoolManagementApp.domain.services.submission_service import SubmissionService
from SchoolManagementApp.domain.services.user_service import UserService

AUTH_RESPONSES = {
    401: OpenApiResponse(description="Authentication required."),
    403: OpenApiResponse(description="Forbidden"),
    404: OpenApiResponse(description="Not Found"),
}

CONFLICT_RESPONSE = {
    409: OpenApiResponse(description="Conflicts with the current state."),
}


def actor_of(request: Request) -> Actor:
    return Actor.from_user(request.user)


# ---------- Subjects ----------
@extend_schema_view(
    list=extend_schema(tags=["Subjects"], responses={200: SubjectReadSerializer(many=True), **AUTH_RESPONSES}),
    retrieve=extend_schema(tags=["Subjects"], responses={200: SubjectReadSerializer, **AUTH_RESPONSES}),
    create=extend_schema(
        tags=["Subjects"],
        request=SubjectWriteSerializer,
        responses={201: SubjectReadSerializer, **AUTH_RESPONSES, **CONFLICT_RESPONSE},
        extensions={"x-permissions": {"required_roles": ["admin"]}},
    ),
    destroy=extend_schema(
        tags=["Subjects"],
        responses={204: OpenApiResponse(description="Deleted"), **AUTH_RESPONSES},
        extensions={"x-permissions": {"required_roles": ["admin"]}},
    ),
)
class SubjectViewSet(PaginationMixin, viewsets.GenericViewSet):
    """Subject administration and enrollment toggling."""
    permission_classes = [IsAuthenticated, IsAdminOrReadOnly]
    serializer_class = SubjectReadSerializer

    def list(self, request: Request) -> Response:
        subjects = SubjectService().list_for(actor_of(request))
        return self.paginate_and_respond(subjects, SubjectReadSerializer)

    def retrieve(self, request: Request, pk: int | None = None) -> Response:
        actor = actor_of(request)
        visible = {s.pk: s for s in SubjectService().list_for(actor)}
        subject = visible.get(int(pk))
        if subject is None:
            return Response({"detail": "Not found."}, status=status.HTTP_404_NOT_FOUND)
        return Response(SubjectReadSerializer(subject).data)

    def create(self, request: Request) -> Response:
        ser = SubjectWriteSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        subject = SubjectService().create(actor_of(request), **ser.validated_data)
        return Response(SubjectReadSerializer(subject).data, status=status.HTTP_201_CREATED)

    def destroy(self, request: Request, pk: int | None = None) -> Response:
        SubjectService().delete(actor_of(request), int(pk))
        return Response(status=status.HTTP_204_NO_CONTENT)

    @extend_schema(
        tags=["Membership"],
        request=ToggleMembershipSerializer,
        responses={200: OpenApiResponse(description="`{\"enrolled\": bool, \"student_ids\": [...]}`"),
                   **AUTH_RESPONSES, **CONFLICT_RESPONSE},
        extensions={"x-permissions": {"required_roles": ["admin"]}},
    )
    @action(detail=True, methods=["post"], url_path="toggle-member", permission_classes=[IsAuthenticated, IsAdminRole])
    def toggle_member(self, request: Request, pk: int | None = None) -> Response:
        """Enroll the student if absent, remove if present."""
        ser = ToggleMembershipSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        guard = EnrollmentGuard()
        enrolled = guard.toggle_membership(actor_of(request), int(pk), ser.validated_data["student_id"])
        return Response({"enrolled": enrolled, "student_ids": sorted(guard.members(int(pk)))})

    @extend_schema(tags=["Subjects"], request=AssignTeacherSerializer, responses={200: SubjectReadSerializer, **AUTH_RESPONSES})
    @action(detail=True, methods=["post"], url_path="assign-teacher", permission_classes=[IsAuthenticated, IsAdminRole])
    def assign_teacher(self, request: Request, pk: int | None = None) -> Response:
        ser = AssignTeacherSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        subject = SubjectService().assign_teacher(actor_of(request), int(pk), ser.validated_data["teacher_id"])
        return Response(SubjectReadSerializer(subject).data)

    @extend_schema(tags=["Progress"], responses={200: SubjectProgressSerializer, **AUTH_RESPONSES})
    @action(detail=True, methods=["get"], url_path="progress", permission_classes=[IsAuthenticated, IsStaffRole])
    def progress(self, request: Request, pk: int | None = None) -> Response:
        """Per-student progress for the subject (its teacher or an admin)."""
        rollup = ProgressAggregator().subject_progress(actor_of(request), int(pk))
        return Response(SubjectProgressSerializer(rollup).data)


# ---------- Projects ----------
@extend_schema_view(
    list=extend_schema(
        tags=["Projects"],
        parameters=[OpenApiParameter("subject", int, OpenApiParameter.QUERY, required=False)],
        responses={200: ProjectReadSerializer(many=True), **AUTH_RESPONSES},
        description="Students only see approved projects of subjects they are enrolled in.",
    ),
    retrieve=extend_schema(tags=["Projects"], responses={200: ProjectReadSerializer, **AUTH_RESPONSES}),
    create=extend_schema(
        tags=["Projects"],
        request=ProjectWriteSerializer,
        responses={201: ProjectReadSerializer, **AUTH_RESPONSES},
        extensions={"x-permissions": {"required_roles": ["teacher"]}},
    ),
    partial_update=extend_schema(
        tags=["Projects"],
        request=ProjectWriteSerializer,
        responses={200: ProjectReadSerializer, **AUTH_RESPONSES},
        description="Edit a pending/rejected project; the project goes back to `pending` and the admin note is cleared.",
        extensions={"x-permissions": {"required_roles": ["teacher"], "ownership": "creator"}},
    ),
    destroy=extend_schema(
        tags=["Projects"],
        responses={204: OpenApiResponse(description="Deleted"), **AUTH_RESPONSES},
        extensions={"x-permissions": {"required_roles": ["teacher", "admin"], "ownership": "creator"}},
    ),
)
class ProjectViewSet(PaginationMixin, viewsets.GenericViewSet):
    """Project lifecycle endpoints."""
    permission_classes = [IsAuthenticated]
    serializer_class = ProjectReadSerializer

    def list(self, request: Request) -> Response:
        subject_id = request.query_params.get("subject")
        projects = ProjectService().visible_projects(
            actor_of(request), int(subject_id) if subject_id else None
        )
        return self.paginate_and_respond(projects, ProjectReadSerializer)

    def retrieve(self, request: Request, pk: int | None = None) -> Response:
        project = ProjectService().get_visible(actor_of(request), int(pk))
        return Response(ProjectReadSerializer(project).data)

    def create(self, request: Request) -> Response:
        ser = ProjectWriteSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        project = ProjectService().create(actor_of(request), **ser.validated_data)
        return Response(ProjectReadSerializer(project).data, status=status.HTTP_201_CREATED)

    def partial_update(self, request: Request, pk: int | None = None) -> Response:
        ser = ProjectWriteSerializer(data=request.data, partial=True)
        ser.is_valid(raise_exception=True)
        project = ProjectService().edit(actor_of(request), int(pk), dict(ser.validated_data))
        return Response(ProjectReadSerializer(project).data)

    def destroy(self, request: Request, pk: int | None = None) -> Response:
        ProjectService().delete(actor_of(request), int(pk))
        return Response(status=status.HTTP_204_NO_CONTENT)

    @extend_schema(
        tags=["Projects"],
        request=DecisionSerializer,
        responses={200: ProjectReadSerializer, **AUTH_RESPONSES},
        extensions={"x-permissions": {"required_roles": ["admin"]}},
    )
    @action(detail=True, methods=["post"], url_path="decide", permission_classes=[IsAuthenticated, IsAdminRole])
    def decide(self, request: Request, pk: int | None = None) -> Response:
        """Approve or reject a project; the creator (and students on approval) are notified."""
        ser = DecisionSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        project = ProjectService().decide(
            actor_of(request), int(pk), ser.validated_data["status"], ser.validated_data["admin_note"]
        )
        return Response(ProjectReadSerializer(project).data)

    @extend_schema(tags=["Progress"], responses={200: ProjectOverviewSerializer, **AUTH_RESPONSES})
    @action(detail=True, methods=["get"], url_path="overview", permission_classes=[IsAuthenticated, IsStaffRole])
    def overview(self, request: Request, pk: int | None = None) -> Response:
        stats = ProgressAggregator().project_overview(actor_of(request), int(pk))
        return Response(ProjectOverviewSerializer(stats).data)


# ---------- Submissions ----------
@extend_schema_view(
    list=extend_schema(
        tags=["Submissions"],
        responses={200: SubmissionReadSerializer(many=True), **AUTH_RESPONSES},
        description="Graders see every submission of the project; students see their own.",
    ),
    create=extend_schema(
        tags=["Submissions"],
        request=SubmissionWriteSerializer,
        responses={201: SubmissionReadSerializer, **AUTH_RESPONSES, **CONFLICT_RESPONSE},
        extensions={"x-permissions": {"required_roles": ["student"], "ownership": "self"}},
    ),
    partial_update=extend_schema(
        tags=["Submissions"],
        request=SubmissionWriteSerializer,
        responses={200: SubmissionReadSerializer, **AUTH_RESPONSES, **CONFLICT_RESPONSE},
        description="Save a draft, submit it, or resubmit before grading.",
        extensions={"x-permissions": {"required_roles": ["student"], "ownership": "submission-owner"}},
    ),
    destroy=extend_schema(
        tags=["Submissions"],
        responses={204: OpenApiResponse(description="Deleted"), **AUTH_RESPONSES, **CONFLICT_RESPONSE},
        extensions={"x-permissions": {"required_roles": ["student"], "ownership": "submission-owner"}},
    ),
)
@extend_schema(parameters=[OpenApiParameter("project_pk", int, OpenApiParameter.PATH)])
class SubmissionViewSet(PaginationMixin, viewsets.GenericViewSet):
    """Submission create/update/delete and grading, nested under a project."""
    permission_classes = [IsAuthenticated]
    serializer_class = SubmissionReadSerializer

    def list(self, request: Request, project_pk: int | None = None) -> Response:
        subs = SubmissionService().list_for_project(actor_of(request), int(project_pk))
        return self.paginate_and_respond(subs, SubmissionReadSerializer)

    def create(self, request: Request, project_pk: int | None = None) -> Response:
        ser = SubmissionWriteSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        submission = SubmissionService().create(
            actor_of(request),
            int(project_pk),
            file_ref=ser.validated_data.get("file_ref"),
            text=ser.validated_data.get("text"),
            is_draft=ser.validated_data["is_draft"],
        )
        return Response(SubmissionReadSerializer(submission).data, status=status.HTTP_201_CREATED)

    def partial_update(self, request: Request, pk: int | None = None, project_pk: int | None = None) -> Response:
        ser = SubmissionWriteSerializer(data=request.data, partial=True)
        ser.is_valid(raise_exception=True)
        submission = SubmissionService().update(
            actor_of(request),
            int(pk),
            file_ref=ser.validated_data.get("file_ref"),
            text=ser.validated_data.get("text"),
            is_draft=ser.validated_data.get("is_draft", False),
            project_id=int(project_pk),
        )
        return Response(SubmissionReadSerializer(submission).data)

    def destroy(self, request: Request, pk: int | None = None, project_pk: int | None = None) -> Response:
        SubmissionService().delete(actor_of(request), int(pk), project_id=int(project_pk))
        return Response(status=status.HTTP_204_NO_CONTENT)

    @extend_schema(
        tags=["Grades"],
        request=GradeWriteSerializer,
        responses={200: SubmissionReadSerializer, **AUTH_RESPONSES},
        extensions={"x-permissions": {"required_roles": ["teacher"], "ownership": "project-creator-or-subject-teacher"}},
    )
    @action(detail=True, methods=["post"], url_path="grade", permission_classes=[IsAuthenticated, IsTeacherRole])
    def grade(self, request: Request, pk: int | None = None, project_pk: int | None = None) -> Response:
        """Grade a submission; the student is notified."""
        ser = GradeWriteSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        submission = SubmissionService().grade(
            actor_of(request),
            int(pk),
            ser.validated_data["grade"],
            ser.validated_data["feedback"],
            project_id=int(project_pk),
        )
        return Response(SubmissionReadSerializer(submission).data)


@extend_schema(tags=["Submissions"], responses={200: SubmissionReadSerializer(many=True), **AUTH_RESPONSES})
class MySubmissionsView(APIView):
    """All submissions of the requesting student across projects."""
    permission_classes = [IsAuthenticated, IsStudentRole]

    def get(self, request: Request) -> Response:
        subs = SubmissionService().list_for_student(actor_of(request))
        return Response(SubmissionReadSerializer(subs, many=True).data)


# ---------- Progress ----------
@extend_schema(tags=["Progress"], responses={200: SubjectProgressSerializer(many=True), **AUTH_RESPONSES})
class ProgressView(APIView):
    """Teacher: progress of every subject taught. Student: own progress per subject."""

    def get(self, request: Request) -> Response:
        actor = actor_of(request)
        aggregator = ProgressAggregator()
        rows = aggregator.my_progress(actor) if actor.is_student else aggregator.teacher_dashboard(actor)
        return Response(SubjectProgressSerializer(rows, many=True).data)


# ---------- Notifications ----------
@extend_schema_view(
    list=extend_schema(
        tags=["Notifications"],
        parameters=[
            OpenApiParameter("limit", int, OpenApiParameter.QUERY, required=False),
            OpenApiParameter("offset", int, OpenApiParameter.QUERY, required=False),
            OpenApiParameter("unread", bool, OpenApiParameter.QUERY, required=False),
        ],
        responses={200: NotificationPageSerializer, **AUTH_RESPONSES},
    ),
    destroy=extend_schema(tags=["Notifications"], responses={204: OpenApiResponse(description="Deleted"), **AUTH_RESPONSES}),
)
class NotificationViewSet(viewsets.GenericViewSet):
    """The requesting user's inbox."""
    serializer_class = NotificationPageSerializer

    def list(self, request: Request) -> Response:
        params = request.query_params
        try:
            limit = int(params["limit"]) if "limit" in params else None
            offset = int(params.get("offset", 0))
        except ValueError:
            return Response({"detail": "limit/offset must be integers."}, status=status.HTTP_400_BAD_REQUEST)
        page = NotificationInbox().list_for_recipient(
            request.user.pk,
            limit=limit,
            offset=offset,
            unread_only=params.get("unread") == "true",
        )
        return Response(NotificationPageSerializer(page).data)

    def destroy(self, request: Request, pk: int | None = None) -> Response:
        if not NotificationInbox().delete(request.user.pk, int(pk)):
            return Response({"detail": "Not found."}, status=status.HTTP_404_NOT_FOUND)
        return Response(status=status.HTTP_204_NO_CONTENT)

    @extend_schema(tags=["Notifications"], request=None, responses={200: OpenApiResponse(description="Marked read")})
    @action(detail=True, methods=["post"], url_path="read")
    def read(self, request: Request, pk: int | None = None) -> Response:
        changed = NotificationInbox().mark_read(request.user.pk, int(pk))
        return Response({"success": changed})

    @extend_schema(tags=["Notifications"], request=None, responses={200: OpenApiResponse(description="Marked read")})
    @action(detail=False, methods=["post"], url_path="read-all")
    def read_all(self, request: Request) -> Response:
        return Response({"updated": NotificationInbox().mark_all_read(request.user.pk)})


# ---------- Announcements ----------
@extend_schema_view(
    list=extend_schema(tags=["Announcements"], responses={200: AnnouncementReadSerializer(many=True), **AUTH_RESPONSES}),
    create=extend_schema(
        tags=["Announcements"],
        request=AnnouncementWriteSerializer,
        responses={201: AnnouncementReadSerializer, **AUTH_RESPONSES},
        extensions={"x-permissions": {"required_roles": ["teacher", "admin"]}},
    ),
    destroy=extend_schema(tags=["Announcements"], responses={204: OpenApiResponse(description="Deleted"), **AUTH_RESPONSES}),
)
class AnnouncementViewSet(PaginationMixin, viewsets.GenericViewSet):
    serializer_class = AnnouncementReadSerializer

    def get_permissions(self) -> list:
        if self.action == "create":
            return [IsAuthenticated(), IsStaffRole()]
        return [IsAuthenticated()]

    def list(self, request: Request) -> Response:
        posts = AnnouncementService().list_for(actor_of(request))
        return self.paginate_and_respond(posts, AnnouncementReadSerializer)

    def create(self, request: Request) -> Response:
        ser = AnnouncementWriteSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        post = AnnouncementService().post(actor_of(request), **ser.validated_data)
        return Response(AnnouncementReadSerializer(post).data, status=status.HTTP_201_CREATED)

    def destroy(self, request: Request, pk: int | None = None) -> Response:
        AnnouncementService().delete(actor_of(request), int(pk))
        return Response(status=status.HTTP_204_NO_CONTENT)


# ---------- Users ----------
@extend_schema_view(
    list=extend_schema(
        tags=["Users"],
        parameters=[OpenApiParameter("role", str, OpenApiParameter.QUERY, required=False)],
        responses={200: UserAdminSerializer(many=True), **AUTH_RESPONSES},
    ),
    create=extend_schema(
        tags=["Users"],
        request=UserCreateSerializer,
        responses={201: UserAdminSerializer, **AUTH_RESPONSES, **CONFLICT_RESPONSE},
    ),
    partial_update=extend_schema(
        tags=["Users"],
        request=UserUpdateSerializer,
        responses={200: UserAdminSerializer, **AUTH_RESPONSES, **CONFLICT_RESPONSE},
        description="Change name, email, role, active flag or password.",
    ),
    destroy=extend_schema(tags=["Users"], responses={204: OpenApiResponse(description="Deleted"), **AUTH_RESPONSES}),
)
class UserViewSet(PaginationMixin, viewsets.GenericViewSet):
    """Account administration (admins only)."""
    permission_classes = [IsAuthenticated, IsAdminRole]
    serializer_class = UserAdminSerializer

    def list(self, request: Request) -> Response:
        users = UserService().list_users(actor_of(request), role=request.query_params.get("role"))
        return self.paginate_and_respond(users, UserAdminSerializer)

    def create(self, request: Request) -> Response:
        ser = UserCreateSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        user = UserService().create(actor_of(request), **ser.validated_data)
        return Response(UserAdminSerializer(user).data, status=status.HTTP_201_CREATED)

    def partial_update(self, request: Request, pk: int | None = None) -> Response:
        ser = UserUpdateSerializer(data=request.data, partial=True)
        ser.is_valid(raise_exception=True)
        user = UserService().update(actor_of(request), int(pk), dict(ser.validated_data))
        return Response(UserAdminSerializer(user).data)

    def destroy(self, request: Request, pk: int | None = None) -> Response:
        UserService().delete(actor_of(request), int(pk))
        return Response(status=status.HTTP_204_NO_CONTENT)


# ---------- Materials ----------
@extend_schema_view(
    list=extend_schema(
        tags=["Materials"],
        parameters=[OpenApiParameter("subject", int, OpenApiParameter.QUERY, required=False)],
        responses={200: MaterialReadSerializer(many=True), **AUTH_RESPONSES},
        description="Teachers get their own uploads; students get the materials of their subjects.",
    ),
    create=extend_schema(
        tags=["Materials"],
        request=MaterialWriteSerializer,
        responses={201: MaterialReadSerializer, **AUTH_RESPONSES},
        extensions={"x-permissions": {"required_roles": ["teacher"], "ownership": "subject-teacher"}},
    ),
    destroy=extend_schema(
        tags=["Materials"],
        responses={204: OpenApiResponse(description="Deleted"), **AUTH_RESPONSES},
        extensions={"x-permissions": {"required_roles": ["teacher"], "ownership": "uploader"}},
    ),
)
class MaterialViewSet(PaginationMixin, viewsets.GenericViewSet):
    serializer_class = MaterialReadSerializer

    def get_permissions(self) -> list:
        if self.action in ("create", "destroy"):
            return [IsAuthenticated(), IsTeacherRole()]
        return [IsAuthenticated()]

    def list(self, request: Request) -> Response:
        subject_id = request.query_params.get("subject")
        materials = MaterialService().list_for(actor_of(request), int(subject_id) if subject_id else None)
        return self.paginate_and_respond(materials, MaterialReadSerializer)

    def create(self, request: Request) -> Response:
        ser = MaterialWriteSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        material = MaterialService().create(actor_of(request), **ser.validated_data)
        return Response(MaterialReadSerializer(material).data, status=status.HTTP_201_CREATED)

    def destroy(self, request: Request, pk: int | None = None) -> Response:
        MaterialService().delete(actor_of(request), int(pk))
        return Response(status=status.HTTP_204_NO_CONTENT)


@extend_schema(tags=["Progress"], responses={200: SubjectClassmatesSerializer(many=True), **AUTH_RESPONSES})
class ClassmatesView(APIView):
    """Submission progress of the requesting student's classmates, per shared subject."""
    permission_classes = [IsAuthenticated, IsStudentRole]

    def get(self, request: Request) -> Response:
        rows = ProgressAggregator().classmates(actor_of(request))
        return Response(SubjectClassmatesSerializer(rows, many=True).data)
