"""Public API for permissions management.

Permissions are looked up by slug. Besides being assigned to roles, a permission
can be granted or denied directly to a single user. A direct deny overrides
every role that provides the permission; a direct grant gives it without a role.
"""

import logging
from collections.abc import Mapping

from django.db import IntegrityError, transaction

from permit_authz.engine.enforcer import AuthorizationEngine, get_user_id
from permit_authz.exceptions import InvalidArgumentError, PermissionAlreadyExistsError, PermissionNotFoundError
from permit_authz.models import Permission, PermissionType, UserPermission, generate_name_from_slug

__all__ = [
    "PermissionBuilder",
    "get_permission",
    "get_permission_or_fail",
    "create_permission",
    "find_or_create_permission",
    "create_many_permissions",
    "get_all_permissions",
    "get_grouped_permissions",
    "delete_permission",
    "grant_permission_to_user",
    "deny_permission_to_user",
    "revoke_permission_from_user",
    "sync_permissions_for_user",
    "clear_permission_cache",
]

logger = logging.getLogger(__name__)


def get_permission(slug: str) -> Permission | None:
    """Get a permission by slug, or None if it does not exist."""
    return Permission.objects.find_by_slug(slug)


def get_permission_or_fail(slug: str) -> Permission:
    """Get a permission by slug.

    Raises:
        PermissionNotFoundError: If the permission does not exist.
    """
    permission = get_permission(slug)
    if permission is None:
        raise PermissionNotFoundError(f"Permission '{slug}' not found.")
    return permission


def _resolve_permission_or_fail(permission) -> Permission:
    if isinstance(permission, Permission):
        return permission
    return get_permission_or_fail(permission)


def create_permission(
    slug: str,
    name: str | None = None,
    description: str | None = None,
    group: str | None = None,
) -> Permission:
    """Create a new permission.

    Args:
        slug: Unique permission slug (e.g., 'users.delete').
        name: Human readable name. Derived from the slug when omitted.
        description: Optional description.
        group: Optional group label used by ``get_grouped_permissions``.

    Returns:
        Permission: The created permission.

    Raises:
        PermissionAlreadyExistsError: If a permission with the slug already exists.
    """
    if get_permission(slug) is not None:
        raise PermissionAlreadyExistsError(f"Permission '{slug}' already exists.")

    try:
        with transaction.atomic():
            return Permission.objects.create(
                slug=slug,
                name=name or generate_name_from_slug(slug),
                description=description,
                group=group,
            )
    except IntegrityError as exc:
        raise PermissionAlreadyExistsError(f"Permission '{slug}' already exists.") from exc


def find_or_create_permission(slug: str, name: str | None = None, description: str | None = None) -> Permission:
    """Get the permission with the slug, creating it when missing.

    When created without a name, the name is derived from the slug:
    'reports.export' becomes 'Reports Export'.
    """
    return Permission.objects.find_or_create(slug, name, description)


def create_many_permissions(permissions) -> list[Permission]:
    """Find or create several permissions at once.

    Args:
        permissions: A list of slugs, or a mapping of slug to a dict with the
            optional keys name and description.

    Returns:
        list[Permission]: The permissions, in input order.
    """
    if isinstance(permissions, Mapping):
        items = [(slug, data or {}) for slug, data in permissions.items()]
    else:
        items = [(slug, {}) for slug in permissions]

    return [find_or_create_permission(slug, data.get("name"), data.get("description")) for slug, data in items]


def get_all_permissions() -> list[Permission]:
    """Get every permission, in creation order."""
    return list(Permission.objects.all())


def get_grouped_permissions() -> dict[str, list[Permission]]:
    """Get every permission bucketed by group. Ungrouped permissions go to 'general'."""
    return Permission.objects.grouped()


def delete_permission(permission) -> None:
    """Delete a permission, removing it from every role and user.

    Raises:
        PermissionNotFoundError: If the slug does not exist.
    """
    permission = _resolve_permission_or_fail(permission)
    slug = permission.slug
    with transaction.atomic():
        permission.delete()
    logger.info(f"Deleted permission '{slug}'")


def _set_user_override(user, permission, permission_type) -> UserPermission:
    permission = _resolve_permission_or_fail(permission)
    override, _ = UserPermission.objects.update_or_create(
        user_id=get_user_id(user),
        permission=permission,
        defaults={"type": permission_type},
    )
    return override


def grant_permission_to_user(user, permission) -> UserPermission:
    """Grant a permission directly to a user, replacing a direct deny if any.

    Args:
        user: User instance or primary key.
        permission: Permission instance or permission slug.

    Raises:
        PermissionNotFoundError: If the permission slug does not exist.
    """
    return _set_user_override(user, permission, PermissionType.GRANT)


def deny_permission_to_user(user, permission) -> UserPermission:
    """Deny a permission directly to a user, replacing a direct grant if any.

    The deny wins over every role providing the permission, but not over the
    super-admin role.

    Raises:
        PermissionNotFoundError: If the permission slug does not exist.
    """
    return _set_user_override(user, permission, PermissionType.DENY)


def revoke_permission_from_user(user, permission) -> None:
    """Remove the direct grant or deny of a permission. Unknown slugs are ignored."""
    if not isinstance(permission, Permission):
        permission = get_permission(permission)
        if permission is None:
            return
    UserPermission.objects.filter(user_id=get_user_id(user), permission=permission).delete()


def sync_permissions_for_user(user, grants, denies=()) -> None:
    """Replace every direct override of a user.

    A permission listed in both ``grants`` and ``denies`` ends up denied.

    Args:
        user: User instance or primary key.
        grants: Permissions (instances or slugs) to grant.
        denies: Permissions (instances or slugs) to deny.

    Raises:
        PermissionNotFoundError: If a slug does not exist. Nothing is changed then.
    """
    grants = [_resolve_permission_or_fail(permission) for permission in grants]
    denies = [_resolve_permission_or_fail(permission) for permission in denies]

    with transaction.atomic():
        UserPermission.objects.filter(user_id=get_user_id(user)).delete()
        for permission in grants:
            grant_permission_to_user(user, permission)
        for permission in denies:
            deny_permission_to_user(user, permission)


def clear_permission_cache() -> None:
    """Invalidate every memoized permission snapshot of the process-wide engine."""
    AuthorizationEngine.get_instance().clear_cache()


class PermissionBuilder:
    """Fluent builder for creating permissions.

    Examples:
        >>> PermissionBuilder().slug("reports.export").group("reports").create()
    """

    def __init__(self):
        self._slug = None
        self._name = None
        self._description = None
        self._group = None

    def slug(self, slug: str) -> "PermissionBuilder":
        self._slug = slug
        return self

    def name(self, name: str) -> "PermissionBuilder":
        self._name = name
        return self

    def description(self, description: str) -> "PermissionBuilder":
        self._description = description
        return self

    def group(self, group: str) -> "PermissionBuilder":
        self._group = group
        return self

    def _required_slug(self, slug):
        slug = slug or self._slug
        if not slug:
            raise InvalidArgumentError("Permission slug is required.")
        return slug

    def create(self, slug: str | None = None, name: str | None = None) -> Permission:
        """Create the permission.

        Raises:
            InvalidArgumentError: If no slug was given.
            PermissionAlreadyExistsError: If the slug is taken.
        """
        slug = self._required_slug(slug)
        return create_permission(slug, name or self._name, self._description, self._group)

    def find_or_create(self, slug: str | None = None, name: str | None = None) -> Permission:
        """Return the permission with the slug, creating it when missing."""
        slug = self._required_slug(slug)
        return find_or_create_permission(slug, name or self._name, self._description)
