"""Public API for roles management.

A role is a named group of permissions. Instead of granting permissions to each
user, permissions are assigned to a role and users holding the role get them.
Roles can inherit from a parent role, in which case they also get every
permission of their ancestors.
"""

import logging

from django.db import IntegrityError, transaction

from permit_authz.engine.enforcer import AuthorizationEngine, get_user_id
from permit_authz.engine.hierarchy import RoleGraph
from permit_authz.exceptions import InvalidArgumentError, RoleAlreadyExistsError, RoleNotFoundError
from permit_authz.models import Permission, Role, UserRole

__all__ = [
    "RoleBuilder",
    "create_role",
    "get_role",
    "get_role_or_fail",
    "get_all_roles",
    "delete_role",
    "give_permission_to_role",
    "revoke_permission_from_role",
    "sync_role_permissions",
    "get_role_ancestors",
    "get_role_descendants",
    "get_role_permissions",
    "role_has_permission",
    "assign_role_to_user",
    "unassign_role_from_user",
    "sync_roles_for_user",
    "get_users_with_role",
    "sync_role_definitions",
]

logger = logging.getLogger(__name__)


def _resolve_role_or_fail(role) -> Role:
    if isinstance(role, Role):
        return role
    return get_role_or_fail(role)


def create_role(slug: str, name: str, description: str | None = None, parent=None) -> Role:
    """Create a new role.

    Args:
        slug: Unique role slug (e.g., 'moderator').
        name: Human readable name.
        description: Optional description.
        parent: Optional parent Role or role slug the new role inherits from.

    Returns:
        Role: The created role.

    Raises:
        RoleAlreadyExistsError: If a role with the slug already exists.
        RoleNotFoundError: If the parent slug does not exist.
    """
    if Role.objects.find_by_slug(slug) is not None:
        raise RoleAlreadyExistsError(f"Role '{slug}' already exists.")

    if parent is not None:
        parent = _resolve_role_or_fail(parent)

    try:
        with transaction.atomic():
            role = Role.objects.create(slug=slug, name=name, description=description, parent=parent)
    except IntegrityError as exc:
        raise RoleAlreadyExistsError(f"Role '{slug}' already exists.") from exc
    logger.info(f"Created role '{slug}'")
    return role


def get_role(slug: str) -> Role | None:
    """Get a role by slug, or None if it does not exist."""
    return Role.objects.find_by_slug(slug)


def get_role_or_fail(slug: str) -> Role:
    """Get a role by slug.

    Raises:
        RoleNotFoundError: If the role does not exist.
    """
    role = get_role(slug)
    if role is None:
        raise RoleNotFoundError(f"Role '{slug}' not found.")
    return role


def get_all_roles() -> list[Role]:
    """Get every role, in creation order."""
    return list(Role.objects.all())


def delete_role(role) -> None:
    """Delete a role.

    Users lose the role, and the children of the role become root roles.

    Args:
        role: Role instance or role slug.

    Raises:
        RoleNotFoundError: If the slug does not exist.
    """
    role = _resolve_role_or_fail(role)
    slug = role.slug
    with transaction.atomic():
        role.delete()
    logger.info(f"Deleted role '{slug}'")


def give_permission_to_role(role, permission) -> None:
    """Assign a permission to a role. Assigning it twice is a no-op.

    Args:
        role: Role instance or role slug.
        permission: Permission instance or permission slug.

    Raises:
        RoleNotFoundError: If the role slug does not exist.
        InvalidArgumentError: If the permission slug does not exist.
    """
    _resolve_role_or_fail(role).give_permission(permission)


def revoke_permission_from_role(role, permission) -> None:
    """Remove a permission from a role. Unknown permission slugs are ignored."""
    _resolve_role_or_fail(role).revoke_permission(permission)


def sync_role_permissions(role, permissions) -> None:
    """Replace the direct permissions of a role with exactly the given ones.

    Args:
        role: Role instance or role slug.
        permissions: Iterable of Permission instances or permission slugs.
    """
    _resolve_role_or_fail(role).sync_permissions(permissions)


def get_role_ancestors(role) -> list[Role]:
    """Get the ancestors of a role, nearest parent first."""
    return RoleGraph.load().ancestors(_resolve_role_or_fail(role))


def get_role_descendants(role) -> list[Role]:
    """Get every transitive child of a role, depth first."""
    return RoleGraph.load().descendants(_resolve_role_or_fail(role))


def get_role_permissions(role) -> list[Permission]:
    """Get the effective permissions of a role, inherited ones included."""
    return RoleGraph.load().effective_permissions(_resolve_role_or_fail(role))


def role_has_permission(role, permission) -> bool:
    """Check whether a permission is in the effective permissions of a role."""
    return RoleGraph.load().has_permission(_resolve_role_or_fail(role), permission)


def assign_role_to_user(user, role) -> None:
    """Assign a role to a user. Assigning it twice is a no-op.

    Args:
        user: User instance or primary key.
        role: Role instance or role slug.

    Raises:
        RoleNotFoundError: If the role slug does not exist.
    """
    role = _resolve_role_or_fail(role)
    UserRole.objects.get_or_create(user_id=get_user_id(user), role=role)


def unassign_role_from_user(user, role) -> None:
    """Remove a role from a user. Unknown role slugs are ignored."""
    if not isinstance(role, Role):
        role = get_role(role)
        if role is None:
            return
    UserRole.objects.filter(user_id=get_user_id(user), role=role).delete()


def sync_roles_for_user(user, roles) -> None:
    """Replace every role of a user with the given roles.

    Args:
        user: User instance or primary key.
        roles: Iterable of Role instances or role slugs.

    Raises:
        RoleNotFoundError: If a role slug does not exist. Nothing is changed then.
    """
    roles = [_resolve_role_or_fail(role) for role in roles]
    with transaction.atomic():
        UserRole.objects.filter(user_id=get_user_id(user)).delete()
        for role in roles:
            assign_role_to_user(user, role)


def get_users_with_role(role) -> list:
    """Get the users directly assigned a role.

    Returns:
        list: User model instances, in assignment order.
    """
    role = _resolve_role_or_fail(role)
    return [user_role.user for user_role in UserRole.objects.filter(role=role).select_related("user").order_by("id")]


def sync_role_definitions(definitions):
    """Reconcile roles with declarative definitions. See ``AuthorizationEngine.sync``."""
    return AuthorizationEngine.get_instance().sync(definitions)


class RoleBuilder:
    """Fluent builder for creating and updating roles.

    Examples:
        >>> role = (
        ...     RoleBuilder()
        ...     .slug("moderator")
        ...     .name("Moderator")
        ...     .inherits("user")
        ...     .permissions(["content.moderate"])
        ...     .create()
        ... )
    """

    def __init__(self):
        self._id = None
        self._slug = None
        self._name = None
        self._description = None
        self._parent = None
        self._permissions = []
        self._assign_to = None

    def id(self, role_id) -> "RoleBuilder":
        self._id = role_id
        return self

    def slug(self, slug: str) -> "RoleBuilder":
        self._slug = slug
        return self

    def name(self, name: str) -> "RoleBuilder":
        self._name = name
        return self

    def description(self, description: str) -> "RoleBuilder":
        self._description = description
        return self

    def inherits(self, parent) -> "RoleBuilder":
        """Set the parent role, as a Role instance or role slug."""
        self._parent = parent
        return self

    def permissions(self, permissions) -> "RoleBuilder":
        """Set the permissions, as Permission instances or slugs (created if missing)."""
        self._permissions = list(permissions)
        return self

    def permission(self, permission) -> "RoleBuilder":
        """Add one permission."""
        self._permissions.append(permission)
        return self

    def assign(self, user) -> "RoleBuilder":
        """Assign the resulting role to a user."""
        self._assign_to = user
        return self

    def _resolve_parent(self) -> Role | None:
        if self._parent is None or isinstance(self._parent, Role):
            return self._parent
        parent = get_role(self._parent)
        if parent is None:
            raise InvalidArgumentError(f"Parent role '{self._parent}' not found.")
        return parent

    def _resolve_permissions(self) -> list[Permission]:
        return [
            permission if isinstance(permission, Permission) else Permission.objects.find_or_create(permission)
            for permission in self._permissions
        ]

    def _required_slug(self, slug):
        slug = slug or self._slug
        if not slug:
            raise InvalidArgumentError("Role slug is required.")
        return slug

    def create(self, slug: str | None = None, name: str | None = None) -> Role:
        """Create the role, give it its permissions and assign it.

        Raises:
            InvalidArgumentError: If no slug was given or the parent does not exist.
            RoleAlreadyExistsError: If the slug is taken.
        """
        slug = self._required_slug(slug)
        name = name or self._name or slug[:1].upper() + slug[1:]

        with transaction.atomic():
            role = create_role(slug, name, self._description, self._resolve_parent())
            for permission in self._resolve_permissions():
                role.give_permission(permission)
            if self._assign_to is not None:
                assign_role_to_user(self._assign_to, role)

        return role

    def find_or_create(self, slug: str | None = None, name: str | None = None) -> Role:
        """Return the role with the slug, creating it when missing."""
        slug = self._required_slug(slug)
        role = get_role(slug)
        if role is not None:
            return role
        return self.create(slug, name)

    def update(self) -> Role:
        """Update the role identified by id or slug with the values set on the builder.

        Unset values keep their current value. Permissions, when set, replace the
        role's direct permissions.

        Raises:
            InvalidArgumentError: If neither id nor slug was given, or the parent is invalid.
            RoleNotFoundError: If the role does not exist.
            RoleAlreadyExistsError: If the new slug belongs to another role.
        """
        if not self._id and not self._slug:
            raise InvalidArgumentError("Role id or slug is required for update.")

        role = Role.objects.filter(pk=self._id).first() if self._id else get_role(self._slug)
        if role is None:
            raise RoleNotFoundError(f"Role '{self._id or self._slug}' not found for update.")

        if self._slug and Role.objects.filter(slug=self._slug).exclude(pk=role.pk).exists():
            raise RoleAlreadyExistsError(f"Role '{self._slug}' already exists.")

        with transaction.atomic():
            role.name = self._name or role.name
            role.slug = self._slug or role.slug
            role.description = self._description or role.description
            parent = self._resolve_parent()
            if parent is not None:
                role.parent = parent
            role.save()

            if self._permissions:
                role.sync_permissions(self._resolve_permissions())
            if self._assign_to is not None:
                assign_role_to_user(self._assign_to, role)

        return role
