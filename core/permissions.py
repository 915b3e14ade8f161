"""
Role-based permissions shared by all apps.
"""

from rest_framework import permissions

from .models import UserRole


class IsAdminUser(permissions.BasePermission):
    """Permission for admin users only."""

    def has_permission(self, request, view):
        return request.user.is_authenticated and request.user.role == UserRole.ADMIN


class IsDriver(permissions.BasePermission):
    """Permission for driver users only."""

    def has_permission(self, request, view):
        return request.user.is_authenticated and request.user.role == UserRole.DRIVER


class IsAdminOrDriver(permissions.BasePermission):

    def has_permission(self, request, view):
        return request.user.is_authenticated and request.user.role in (
            UserRole.ADMIN, UserRole.DRIVER
        )
