"""Test utilities for creating users, roles and permissions."""

from django.contrib.auth import get_user_model
from django.test import TestCase

from permit_authz.engine.enforcer import AuthorizationEngine
from permit_authz.models import Permission, Role, RolePermission, UserRole

User = get_user_model()


def make_user(username: str):
    """Create a user with a predictable email.

    Args:
        username: The username of the user.

    Returns:
        User: The created user.
    """
    return User.objects.create_user(username=username, email=f"{username}@example.com")


def make_permission(slug: str, group: str | None = None) -> Permission:
    """Create a permission with a name derived from its slug."""
    return Permission.objects.create(slug=slug, name=slug.title(), group=group)


def make_role(slug: str, permissions: list[str] | None = None, parent: Role | None = None) -> Role:
    """Create a role with the given direct permissions, creating missing permissions.

    Args:
        slug: The role slug.
        permissions: Permission slugs to assign to the role.
        parent: Optional parent role.

    Returns:
        Role: The created role.
    """
    role = Role.objects.create(slug=slug, name=slug.title(), parent=parent)
    for permission_slug in permissions or []:
        permission = Permission.objects.find_or_create(permission_slug)
        RolePermission.objects.create(role=role, permission=permission)
    return role


def assign(user, *roles: Role):
    """Assign roles to a user."""
    for role in roles:
        UserRole.objects.create(user=user, role=role)


class PermitTestCase(TestCase):
    """Base test case giving every test a clean engine state.

    The process-wide engine survives between tests, so its gates are removed and
    its permission cache invalidated before each test.
    """

    def setUp(self):
        super().setUp()
        self.engine = AuthorizationEngine.get_instance()
        self.engine.gates.clear()
        self.engine.clear_cache()
        self.addCleanup(self.engine.gates.clear)
