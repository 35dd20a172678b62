"""Tests for the roles public API."""

from unittest.mock import patch

from ddt import data, ddt

from permit_authz.api.roles import (
    RoleBuilder,
    assign_role_to_user,
    create_role,
    delete_role,
    get_all_roles,
    get_role,
    get_role_ancestors,
    get_role_descendants,
    get_role_or_fail,
    get_role_permissions,
    get_users_with_role,
    give_permission_to_role,
    revoke_permission_from_role,
    role_has_permission,
    sync_role_definitions,
    sync_role_permissions,
    sync_roles_for_user,
    unassign_role_from_user,
)
from permit_authz.api.users import get_user_role_names
from permit_authz.exceptions import (
    InvalidArgumentError,
    NotFoundError,
    RoleAlreadyExistsError,
    RoleNotFoundError,
)
from permit_authz.models import Role, UserRole
from permit_authz.tests.test_utils import PermitTestCase, make_permission, make_role, make_user


@ddt
class TestRoleFunctions(PermitTestCase):
    """Tests for creating, reading and deleting roles."""

    def setUp(self):
        super().setUp()
        self.user_role = make_role("user", ["profile.view"])
        self.moderator = make_role("moderator", ["content.moderate"], parent=self.user_role)

    def test_create_role(self):
        role = create_role("editor", "Editor", "Edits posts.", parent="user")

        self.assertEqual(role.parent, self.user_role)
        self.assertEqual(role.description, "Edits posts.")

    def test_create_duplicate_role(self):
        with self.assertRaises(RoleAlreadyExistsError):
            create_role("user", "User")

    def test_create_role_racing_duplicate(self):
        """A duplicate slug missed by the lookup still fails with RoleAlreadyExistsError.

        Expected result:
            - The unique constraint error is reported as an existing role.
            - The stored role is left as it was.
        """
        with patch.object(Role.objects, "find_by_slug", return_value=None):
            with self.assertRaises(RoleAlreadyExistsError):
                create_role("user", "Other user")

        self.assertEqual(Role.objects.get(slug="user").name, "User")

    def test_create_role_with_unknown_parent(self):
        """An unknown parent slug fails and creates nothing."""
        with self.assertRaises(RoleNotFoundError):
            create_role("editor", "Editor", parent="missing")

        self.assertIsNone(get_role("editor"))

    def test_get_role_or_fail(self):
        self.assertEqual(get_role_or_fail("user"), self.user_role)
        with self.assertRaises(NotFoundError):
            get_role_or_fail("missing")

    def test_get_all_roles(self):
        self.assertEqual([role.slug for role in get_all_roles()], ["user", "moderator"])

    @data("moderator", "slug")
    def test_delete_role(self, given_as):
        """Deleting a role by instance or slug removes it."""
        delete_role(self.moderator if given_as == "moderator" else "moderator")

        self.assertIsNone(get_role("moderator"))

    def test_delete_unknown_role(self):
        with self.assertRaises(RoleNotFoundError):
            delete_role("missing")

    def test_permission_management(self):
        """Permissions are given, synced and revoked through the role slug."""
        make_permission("posts.update")

        give_permission_to_role("moderator", "posts.update")
        self.assertTrue(role_has_permission("moderator", "posts.update"))

        sync_role_permissions("moderator", ["content.moderate"])
        self.assertFalse(role_has_permission("moderator", "posts.update"))

        revoke_permission_from_role("moderator", "content.moderate")
        self.assertFalse(role_has_permission("moderator", "content.moderate"))

    def test_give_unknown_permission(self):
        with self.assertRaises(InvalidArgumentError):
            give_permission_to_role("moderator", "missing.permission")

    def test_hierarchy_queries(self):
        """Ancestors, descendants and effective permissions are read from the stored hierarchy."""
        self.assertEqual([role.slug for role in get_role_ancestors("moderator")], ["user"])
        self.assertEqual([role.slug for role in get_role_descendants("user")], ["moderator"])
        self.assertEqual(
            {permission.slug for permission in get_role_permissions("moderator")},
            {"profile.view", "content.moderate"},
        )
        self.assertTrue(role_has_permission(self.moderator, "profile.view"))


class TestUserRoleFunctions(PermitTestCase):
    """Tests for assigning roles to users."""

    def setUp(self):
        super().setUp()
        self.editor = make_role("editor", ["posts.update"])
        self.viewer = make_role("viewer", ["posts.view"])
        self.user = make_user("grace")

    def test_assign_is_idempotent(self):
        assign_role_to_user(self.user, "editor")
        assign_role_to_user(self.user.pk, self.editor)

        self.assertEqual(UserRole.objects.filter(user=self.user).count(), 1)
        self.assertTrue(self.engine.can(self.user, "posts.update"))

    def test_assign_unknown_role(self):
        with self.assertRaises(RoleNotFoundError):
            assign_role_to_user(self.user, "missing")

    def test_unassign(self):
        """Unassigning removes the role, unknown or unassigned roles are a no-op."""
        assign_role_to_user(self.user, "editor")

        unassign_role_from_user(self.user, "editor")
        unassign_role_from_user(self.user, "editor")
        unassign_role_from_user(self.user, "missing")

        self.assertFalse(self.engine.can(self.user, "posts.update"))

    def test_sync_roles_for_user(self):
        """Syncing replaces every role of the user."""
        assign_role_to_user(self.user, "editor")

        sync_roles_for_user(self.user, ["viewer"])

        self.assertEqual(get_user_role_names(self.user), ["viewer"])

    def test_sync_roles_with_unknown_role_changes_nothing(self):
        assign_role_to_user(self.user, "editor")

        with self.assertRaises(RoleNotFoundError):
            sync_roles_for_user(self.user, ["viewer", "missing"])

        self.assertEqual(get_user_role_names(self.user), ["editor"])

    def test_get_users_with_role(self):
        other = make_user("heidi")
        assign_role_to_user(self.user, "editor")
        assign_role_to_user(other, "editor")
        assign_role_to_user(other, "viewer")

        self.assertEqual(get_users_with_role("editor"), [self.user, other])
        self.assertEqual(get_users_with_role(self.viewer), [other])

    def test_sync_role_definitions(self):
        report = sync_role_definitions({"editor": {"permissions": ["posts.view"]}})

        self.assertEqual(report.synced, ["editor"])
        self.assertEqual(report.created, [])


class TestRoleBuilder(PermitTestCase):
    """Tests for the fluent role builder."""

    def setUp(self):
        super().setUp()
        self.user_role = make_role("user", ["profile.view"])
        self.person = make_user("ivan")

    def test_create(self):
        """The builder creates the role, its missing permissions and the assignment."""
        role = (
            RoleBuilder()
            .slug("moderator")
            .description("Moderates content.")
            .inherits("user")
            .permissions(["content.moderate"])
            .permission("comments.delete")
            .assign(self.person)
            .create()
        )

        self.assertEqual(role.name, "Moderator")
        self.assertEqual(role.parent, self.user_role)
        self.assertEqual(
            set(role.permissions.values_list("slug", flat=True)), {"content.moderate", "comments.delete"}
        )
        self.assertTrue(self.engine.can(self.person, "profile.view"))
        self.assertTrue(self.engine.can(self.person, "comments.delete"))

    def test_create_without_slug(self):
        with self.assertRaises(InvalidArgumentError):
            RoleBuilder().name("Nameless").create()

    def test_create_with_unknown_parent(self):
        """An unknown parent is rejected and nothing is created."""
        with self.assertRaises(InvalidArgumentError):
            RoleBuilder().slug("moderator").inherits("missing").permissions(["content.moderate"]).create()

        self.assertIsNone(get_role("moderator"))

    def test_create_existing(self):
        with self.assertRaises(RoleAlreadyExistsError):
            RoleBuilder().create("user")

    def test_find_or_create(self):
        """An existing role is returned untouched, a missing one is created."""
        existing = RoleBuilder().name("Other").find_or_create("user")
        created = RoleBuilder().name("Guest role").find_or_create("guest")

        self.assertEqual(existing, self.user_role)
        self.assertEqual(existing.name, "User")
        self.assertEqual(created.name, "Guest role")

    def test_update_by_slug(self):
        """Updating changes the set values and replaces the permissions."""
        make_role("staff")

        role = RoleBuilder().slug("user").name("Member").inherits("staff").permissions(["profile.update"]).update()

        role.refresh_from_db()
        self.assertEqual(role.name, "Member")
        self.assertEqual(role.parent.slug, "staff")
        self.assertEqual(list(role.permissions.values_list("slug", flat=True)), ["profile.update"])

    def test_update_by_id_renames(self):
        role = RoleBuilder().id(self.user_role.pk).slug("member").update()

        self.assertEqual(role.slug, "member")
        self.assertFalse(Role.objects.filter(slug="user").exists())

    def test_update_requires_identifier(self):
        with self.assertRaises(InvalidArgumentError):
            RoleBuilder().name("Nobody").update()

    def test_update_unknown_role(self):
        with self.assertRaises(RoleNotFoundError):
            RoleBuilder().slug("missing").update()

    def test_update_rejects_cycle(self):
        """Making a role inherit from its own child is rejected."""
        make_role("moderator", parent=self.user_role)

        with self.assertRaises(InvalidArgumentError):
            RoleBuilder().slug("user").inherits("moderator").update()

        self.user_role.refresh_from_db()
        self.assertIsNone(self.user_role.parent)

    def test_update_rename_to_taken_slug(self):
        """Renaming a role to the slug of another role is rejected.

        Expected result:
            - RoleAlreadyExistsError is raised instead of a database error.
            - Both roles keep their slugs.
        """
        writer = create_role("writer", "Writer")

        with self.assertRaises(RoleAlreadyExistsError):
            RoleBuilder().id(writer.pk).slug("user").update()

        writer.refresh_from_db()
        self.assertEqual(writer.slug, "writer")
        self.assertEqual(Role.objects.filter(slug="user").count(), 1)

    def test_update_keeping_own_slug(self):
        """Setting a role's slug to its current value is not a conflict."""
        role = RoleBuilder().id(self.user_role.pk).slug("user").name("Member").update()

        self.assertEqual(role.slug, "user")
        self.assertEqual(role.name, "Member")
