from rest_framework import permissions

from .models import User


class IsAdminRole(permissions.BasePermission):
    message = "Solo administradores"

    def has_permission(self, request, view):
        return bool(request.user and request.user.is_authenticated and request.user.role == User.Roles.ADMIN)


class IsDriver(permissions.BasePermission):
    message = "Solo conductores"

    def has_permission(self, request, view):
        return bool(request.user and request.user.is_authenticated and request.user.is_driver)


class IsCliente(permissions.BasePermission):
    message = "Solo clientes"

    def has_permission(self, request, view):
        return bool(request.user and request.user.is_authenticated and request.user.role == User.Roles.CLIENTE)
