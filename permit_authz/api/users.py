"""User-related API methods for authorization checks.

These functions are thin wrappers around the process-wide AuthorizationEngine,
so that applications can ask questions about a user without touching the engine
directly. Users can be given as model instances or primary keys.
"""

from permit_authz.engine.enforcer import AuthorizationEngine, get_user_id
from permit_authz.models import UserPermission, UserRole

__all__ = [
    "is_user_allowed",
    "is_user_denied",
    "authorize",
    "is_user_super_admin",
    "user_has_role",
    "user_has_any_role",
    "user_has_all_roles",
    "user_has_permission",
    "user_has_any_permission",
    "user_has_all_permissions",
    "get_user_roles",
    "get_user_role_names",
    "get_user_permissions",
    "get_user_permission_names",
    "unassign_all_roles_from_user",
    "revoke_all_permissions_from_user",
]


def _engine() -> AuthorizationEngine:
    return AuthorizationEngine.get_instance()


def is_user_allowed(user, ability: str, resource=None) -> bool:
    """Check whether a user may perform an ability, gates included.

    Args:
        user: User instance or primary key.
        ability: The ability to check (e.g., 'posts.update').
        resource: Optional resource passed to gate callbacks.

    Returns:
        bool: True if allowed, False otherwise.
    """
    return _engine().can(user, ability, resource)


def is_user_denied(user, ability: str, resource=None) -> bool:
    """Negation of ``is_user_allowed``."""
    return _engine().cannot(user, ability, resource)


def authorize(ability: str, resource=None) -> None:
    """Ensure the current user may perform an ability.

    Raises:
        UnauthenticatedError: If there is no authenticated current user.
        UnauthorizedError: If the current user may not perform the ability.
    """
    _engine().authorize(ability, resource)


def is_user_super_admin(user) -> bool:
    """Check whether a user holds the super-admin role."""
    return _engine().is_super_admin(user)


def user_has_role(user, role) -> bool:
    """Check whether a user holds a role, directly or through a child role."""
    return _engine().has_role(user, role)


def user_has_any_role(user, roles) -> bool:
    """Check whether a user holds at least one of the roles."""
    return _engine().has_any_role(user, roles)


def user_has_all_roles(user, roles) -> bool:
    """Check whether a user holds every one of the roles."""
    return _engine().has_all_roles(user, roles)


def user_has_permission(user, permission) -> bool:
    """Check whether a user holds a permission through roles or grants, and is not denied it."""
    return _engine().has_permission(user, permission)


def user_has_any_permission(user, permissions) -> bool:
    """Check whether a user holds at least one of the permissions."""
    return any(user_has_permission(user, permission) for permission in permissions)


def user_has_all_permissions(user, permissions) -> bool:
    """Check whether a user holds every one of the permissions."""
    return all(user_has_permission(user, permission) for permission in permissions)


def get_user_roles(user) -> list:
    """Get the roles of a user, ancestors included when the hierarchy is enabled."""
    return _engine().get_user_roles(user)


def get_user_role_names(user) -> list[str]:
    """Get the slugs of the roles of a user."""
    return [role.slug for role in get_user_roles(user)]


def get_user_permissions(user) -> list:
    """Get the permissions of a user: role permissions and grants, minus denies."""
    return _engine().get_user_permissions(user)


def get_user_permission_names(user) -> list[str]:
    """Get the slugs of the permissions of a user."""
    return [permission.slug for permission in get_user_permissions(user)]


def unassign_all_roles_from_user(user) -> None:
    """Remove every role assignment of a user."""
    UserRole.objects.filter(user_id=get_user_id(user)).delete()


def revoke_all_permissions_from_user(user) -> None:
    """Remove every direct grant and deny of a user."""
    UserPermission.objects.filter(user_id=get_user_id(user)).delete()
