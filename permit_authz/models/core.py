"""Core models for the authorization framework.

Roles form a forest through a self-referencing ``parent`` key: each row only
stores the identifier of its parent, and the hierarchy is resolved by repeated
identifier lookups (see ``permit_authz.engine.hierarchy``). Role permissions,
user roles and user permission overrides are plain association tables with a
unique composite key.
"""

import logging

from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import models, transaction

from permit_authz.constants.abilities import DEFAULT_PERMISSION_GROUP, SLUG_NAME_SEPARATORS
from permit_authz.exceptions import InvalidArgumentError
from permit_authz.signals import permissions_changed

__all__ = [
    "PermissionType",
    "Role",
    "Permission",
    "RolePermission",
    "UserRole",
    "UserPermission",
    "generate_name_from_slug",
]

logger = logging.getLogger(__name__)


def generate_name_from_slug(slug: str) -> str:
    """Derive a human readable name from a slug.

    Separators (``-``, ``_`` and ``.``) become spaces and the first letter of
    each word is upper-cased. The rest of each word is left untouched.

    Examples:
        >>> generate_name_from_slug("reports.export")
        'Reports Export'
        >>> generate_name_from_slug("manage_api-keys")
        'Manage Api Keys'
    """
    name = slug
    for separator in SLUG_NAME_SEPARATORS:
        name = name.replace(separator, " ")
    return " ".join(word[:1].upper() + word[1:] for word in name.split(" "))


class PermissionType(models.TextChoices):
    """Type of a direct user permission override."""

    GRANT = "grant", "Grant"
    DENY = "deny", "Deny"


class SlugManager(models.Manager):
    """Manager with slug lookups shared by roles and permissions."""

    def find_by_slug(self, slug: str):
        """Return the instance with the given slug, or None if it does not exist."""
        return self.filter(slug=slug).first()


class PermissionManager(SlugManager):
    """Manager for the Permission model."""

    def find_or_create(self, slug: str, name: str | None = None, description: str | None = None):
        """Return the permission with the given slug, creating it when missing.

        Args:
            slug: Unique permission slug (e.g., 'reports.export').
            name: Name for a newly created permission. Derived from the slug when omitted.
            description: Description for a newly created permission.

        Returns:
            Permission: The existing or newly created permission. Existing permissions
            are returned as-is, their name and description are not updated.
        """
        permission, created = self.get_or_create(
            slug=slug,
            defaults={
                "name": name or generate_name_from_slug(slug),
                "description": description,
            },
        )
        if created:
            logger.debug(f"Created permission '{slug}'")
        return permission

    def grouped(self) -> dict[str, list["Permission"]]:
        """Bucket every permission by its group, ungrouped ones under 'general'."""
        grouped = {}
        for permission in self.all():
            grouped.setdefault(permission.group or DEFAULT_PERMISSION_GROUP, []).append(permission)
        return grouped


class Role(models.Model):
    """A named set of permissions that can be assigned to users.

    .. no_pii:

    A role may inherit from a parent role. With the role hierarchy enabled the
    effective permissions of a role are the union of its own permissions and the
    permissions of every ancestor. Deleting a role turns its children into roots.
    """

    slug = models.CharField(max_length=255, unique=True)
    name = models.CharField(max_length=255)
    description = models.TextField(blank=True, null=True)
    parent = models.ForeignKey(
        "self",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="children",
    )
    permissions = models.ManyToManyField(
        "Permission",
        through="RolePermission",
        related_name="roles",
        blank=True,
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = SlugManager()

    class Meta:
        db_table = "permit_role"
        ordering = ("id",)

    def __str__(self):
        return self.slug

    def validate_parent(self):
        """Ensure the parent chain of this role does not lead back to it.

        Raises:
            InvalidArgumentError: If the role is its own ancestor.
        """
        if self.parent_id is None or self.pk is None:
            return

        visited = set()
        current_id = self.parent_id
        while current_id is not None and current_id not in visited:
            if current_id == self.pk:
                raise InvalidArgumentError(f"Role '{self.slug}' cannot inherit from itself or its descendants.")
            visited.add(current_id)
            current_id = Role.objects.filter(pk=current_id).values_list("parent_id", flat=True).first()

    def clean(self):
        """Surface hierarchy errors as form validation errors."""
        super().clean()
        try:
            self.validate_parent()
        except InvalidArgumentError as exc:
            raise ValidationError({"parent": str(exc)}) from exc

    def save(self, *args, **kwargs):
        """Validate the hierarchy before writing."""
        self.validate_parent()
        super().save(*args, **kwargs)

    def _resolve_permission(self, permission):
        """Resolve a slug to a Permission, passing instances through."""
        if isinstance(permission, Permission):
            return permission
        return Permission.objects.find_by_slug(permission)

    def _resolve_permission_or_fail(self, permission):
        resolved = self._resolve_permission(permission)
        if resolved is None:
            raise InvalidArgumentError(f"Permission '{permission}' not found.")
        return resolved

    def has_direct_permission(self, permission) -> bool:
        """Check whether the permission is assigned to this role itself (no inheritance)."""
        slug = permission.slug if isinstance(permission, Permission) else permission
        return self.permissions.filter(slug=slug).exists()

    def give_permission(self, permission):
        """Assign a permission to this role. Assigning it twice is a no-op.

        Args:
            permission: A Permission instance or a permission slug.

        Raises:
            InvalidArgumentError: If the slug does not resolve to a permission.
        """
        permission = self._resolve_permission_or_fail(permission)
        RolePermission.objects.get_or_create(role=self, permission=permission)

    def revoke_permission(self, permission):
        """Remove a permission from this role. Unknown slugs are ignored."""
        permission = self._resolve_permission(permission)
        if permission is None:
            return
        RolePermission.objects.filter(role=self, permission=permission).delete()

    def sync_permissions(self, permissions):
        """Replace the direct permissions of this role with exactly the given set.

        Every slug is resolved before anything is deleted, and the delete and insert
        run in one transaction so readers never see the role without permissions.

        Args:
            permissions: Iterable of Permission instances or permission slugs.

        Raises:
            InvalidArgumentError: If a slug does not resolve to a permission.
        """
        resolved = {}
        for permission in permissions:
            permission = self._resolve_permission_or_fail(permission)
            resolved.setdefault(permission.pk, permission)

        with transaction.atomic():
            RolePermission.objects.filter(role=self).delete()
            RolePermission.objects.bulk_create(
                [RolePermission(role=self, permission=permission) for permission in resolved.values()]
            )

        permissions_changed.send(sender=RolePermission)


class Permission(models.Model):
    """A single ability that can be granted through roles or directly to users.

    .. no_pii:
    """

    slug = models.CharField(max_length=255, unique=True)
    name = models.CharField(max_length=255)
    description = models.TextField(blank=True, null=True)
    group = models.CharField(max_length=255, blank=True, null=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = PermissionManager()

    class Meta:
        db_table = "permit_permission"
        ordering = ("id",)

    def __str__(self):
        return self.slug


class RolePermission(models.Model):
    """Association between a role and one of its direct permissions.

    .. no_pii:
    """

    role = models.ForeignKey(Role, on_delete=models.CASCADE, related_name="role_permissions")
    permission = models.ForeignKey(Permission, on_delete=models.CASCADE, related_name="role_permissions")

    class Meta:
        db_table = "permit_role_permission"
        constraints = [
            models.UniqueConstraint(fields=["role", "permission"], name="permit_unique_role_permission"),
        ]

    def __str__(self):
        return f"{self.role_id}:{self.permission_id}"


class UserRole(models.Model):
    """Assignment of a role to a user.

    .. no_pii:
    """

    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="permit_roles")
    role = models.ForeignKey(Role, on_delete=models.CASCADE, related_name="user_roles")
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = "permit_user_role"
        constraints = [
            models.UniqueConstraint(fields=["user", "role"], name="permit_unique_user_role"),
        ]

    def __str__(self):
        return f"{self.user_id}:{self.role_id}"


class UserPermission(models.Model):
    """Direct grant or deny of a permission for a single user.

    .. no_pii:

    A user holds at most one override per permission, so granting a denied
    permission replaces the deny and the other way around.
    """

    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="permit_permissions")
    permission = models.ForeignKey(Permission, on_delete=models.CASCADE, related_name="user_permissions")
    type = models.CharField(max_length=10, choices=PermissionType.choices, default=PermissionType.GRANT)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "permit_user_permission"
        constraints = [
            models.UniqueConstraint(fields=["user", "permission"], name="permit_unique_user_permission"),
        ]

    def __str__(self):
        return f"{self.user_id}:{self.permission_id}:{self.type}"
