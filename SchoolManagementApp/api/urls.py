from django.urls import path, include
from rest_framework_nested import routers
from rest_framework_simplejwt.views import TokenObtainPairView, TokenRefreshView
from drf_spectacular.views import SpectacularAPIView, SpectacularSwaggerView

from SchoolManagementApp.api.views import (
    AnnouncementViewSet,
    ClassmatesView,
    MaterialViewSet,
    MySubmissionsView,
    NotificationViewSet,
    ProgressView,
    ProjectViewSet,
    SubjectViewSet,
    SubmissionViewSet,
    UserViewSet,
)

router = routers.SimpleRouter()
router.register(r"subjects", SubjectViewSet, basename="subject")
router.register(r"projects", ProjectViewSet, basename="project")
router.register(r"notifications", NotificationViewSet, basename="notification")
router.register(r"announcements", AnnouncementViewSet, basename="announcement")
router.register(r"materials", MaterialViewSet, basename="material")
router.register(r"users", UserViewSet, basename="user")

projects_router = routers.NestedSimpleRouter(router, r"projects", lookup="project")
projects_router.register(r"submissions", SubmissionViewSet, basename="project-submissions")

urlpatterns = [
    path("schema/", SpectacularAPIView.as_view(), name="schema"),
    path("docs/", SpectacularSwaggerView.as_view(url_name="schema"), name="docs"),
    path("auth/token/", TokenObtainPairView.as_view(), name="token_obtain_pair"),
    path("auth/token/refresh/", TokenRefreshView.as_view(), name="token_refresh"),
    path("progress/", ProgressView.as_view(), name="progress"),
    path("classmates/", ClassmatesView.as_view(), name="classmates"),
    path("submissions/mine/", MySubmissionsView.as_view(), name="my-submissions"),
    path("", include(router.urls)),
    path("", include(projects_router.urls)),
]
