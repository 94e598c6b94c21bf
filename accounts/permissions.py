"""
Custom permissions for role-based access
"""
from rest_framework import permissions


class IsTeacher(permissions.BasePermission):
    """Permission check for teacher role"""
    message = 'Access denied. Teacher role required.'

    def has_permission(self, request, view):
        return bool(
            request.user and
            request.user.is_authenticated and
            request.user.role == 'teacher'
        )


class IsStudent(permissions.BasePermission):
    """Permission check for student role"""
    message = 'Access denied. Student role required.'

    def has_permission(self, request, view):
        return bool(
            request.user and
            request.user.is_authenticated and
            request.user.role == 'student'
        )


class IsTeacherOrAdmin(permissions.BasePermission):
    """Teachers manage their own retests; admins act on behalf of any teacher."""
    message = 'Access denied. Teacher or admin role required.'

    def has_permission(self, request, view):
        return bool(
            request.user and
            request.user.is_authenticated and
            request.user.role in ('teacher', 'admin')
        )
