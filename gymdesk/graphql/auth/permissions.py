from strawberry.types import Info
from strawberry.permission import BasePermission


class IsAuthenticated(BasePermission):
    message = "Authentication required."

    def has_permission(self, source, info: Info, **kwargs):
        return bool(info.context.user)


class IsStaff(BasePermission):
    message = "Admin or trainer role required."

    def has_permission(self, source, info: Info, **kwargs):
        user = info.context.user
        return bool(user) and user.role in ("admin", "trainer")


class IsAdmin(BasePermission):
    message = "Admin role required."

    def has_permission(self, source, info: Info, **kwargs):
        user = info.context.user
        return bool(user) and user.role == "admin"
