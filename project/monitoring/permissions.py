from rest_framework import permissions

from .models import User

# Higher rank satisfies every lower requirement.
ROLE_RANK = {
    User.VIEWER: 0,
    User.TECHNICIAN: 1,
    User.ADMIN: 2,
}


def role_satisfies(role, required_role):
    return ROLE_RANK.get(role, -1) >= ROLE_RANK[required_role]


class HasRole(permissions.IsAuthenticated):
    """
    Declarative role gate: ``HasRole.of('technician')`` builds a permission
    class that admits authenticated users whose role is at least
    ``technician``.
    """
    required_role = User.VIEWER
    message = 'Insufficient role for this action'

    def has_permission(self, request, view):
        if not super().has_permission(request, view):
            return False
        return role_satisfies(request.user.role, self.required_role)

    @classmethod
    def of(cls, required_role):
        return type(f'Has{required_role.title()}Role', (cls,), {'required_role': required_role})


IsTechnician = HasRole.of(User.TECHNICIAN)
IsAdmin = HasRole.of(User.ADMIN)


class IsSelfOrAdmin(permissions.IsAuthenticated):
    """Object-level gate for profile routes keyed by user id."""
    message = 'You can only modify your own account'

    def has_object_permission(self, request, view, obj):
        return obj.pk == request.user.pk or role_satisfies(request.user.role, User.ADMIN)
