"""Custom DRF permission classes for role-gated endpoints.

Object ownership is checked by the domain services; these classes only keep
obviously wrong roles away from write endpoints.
"""

from typing import Any

from rest_framework.permissions import BasePermission, SAFE_METHODS
from rest_framework.request import Request

from SchoolManagementApp.core.choices import UserRole


def _has_role(request: Request, *roles: str) -> bool:
    user = request.user
    return bool(user and user.is_authenticated and getattr(user, "role", None) in roles)


class IsAdminRole(BasePermission):
    """Allow access only to administrators."""

    def has_permission(self, request: Request, view: Any) -> bool:
        return _has_role(request, UserRole.ADMIN)


class IsAdminOrReadOnly(BasePermission):
    """Reads for any authenticated user, writes for administrators."""

    def has_permission(self, request: Request, view: Any) -> bool:
        if request.method in SAFE_METHODS:
            return bool(request.user and request.user.is_authenticated)
        return _has_role(request, UserRole.ADMIN)


class IsTeacherRole(BasePermission):
    def has_permission(self, request: Request, view: Any) -> bool:
        return _has_role(request, UserRole.TEACHER)


class IsStaffRole(BasePermission):
    """Teachers and administrators."""

    def has_permission(self, request: Request, view: Any) -> bool:
        return _has_role(request, UserRole.TEACHER, UserRole.ADMIN)


class IsStudentRole(BasePermission):
    def has_permission(self, request: Request, view: Any) -> bool:
        return _has_role(request, UserRole.STUDENT)
