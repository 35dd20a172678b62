"""Tests for the signal handlers keeping the permission cache fresh."""

from unittest.mock import patch

from ddt import data, ddt
from django.db.models.signals import m2m_changed, post_delete, post_save

from permit_authz.engine.enforcer import AuthorizationEngine
from permit_authz.handlers import TRACKED_MODELS, invalidate_permission_cache
from permit_authz.models import Role, UserRole
from permit_authz.signals import permissions_changed
from permit_authz.tests.test_utils import PermitTestCase, make_permission, make_role, make_user


@ddt
class TestCacheInvalidationHandlers(PermitTestCase):
    """Confirm writes to the permission tables invalidate the cache now and on commit."""

    def test_handlers_connected(self):
        """Every tracked model has a save and a delete receiver."""
        for model in TRACKED_MODELS:
            self.assertTrue(post_save.has_listeners(model))
            self.assertTrue(post_delete.has_listeners(model))
        self.assertTrue(m2m_changed.has_listeners(Role.permissions.through))
        self.assertTrue(permissions_changed.has_listeners())

    def test_invalidates_now_and_on_commit(self):
        """A write clears the cache right away and once more when the transaction commits.

        Expected result:
            - One invalidation happens during the write.
            - One more runs from the on-commit callback.
        """
        with patch.object(AuthorizationEngine, "clear_cache") as clear_cache:
            with self.captureOnCommitCallbacks(execute=True) as callbacks:
                make_role("editor")
                self.assertEqual(clear_cache.call_count, 1)

        self.assertEqual(len(callbacks), 1)
        self.assertEqual(clear_cache.call_count, 2)

    @data("role", "permission", "user_role")
    def test_delete_invalidates(self, kind):
        """Deleting a row of a tracked model invalidates the cache."""
        role = make_role("editor", ["posts.update"])
        objects = {
            "role": role,
            "permission": make_permission("posts.delete"),
            "user_role": UserRole.objects.create(user=make_user("erin"), role=role),
        }

        with patch.object(AuthorizationEngine, "clear_cache") as clear_cache:
            objects[kind].delete()

        self.assertTrue(clear_cache.called)

    def test_custom_signal_invalidates(self):
        """Sending permissions_changed invalidates the cache."""
        with patch.object(AuthorizationEngine, "clear_cache") as clear_cache:
            permissions_changed.send(sender=Role)

        clear_cache.assert_called_once_with()

    def test_handler_uses_process_wide_engine(self):
        """The handler can be called directly with any sender."""
        with patch.object(AuthorizationEngine, "clear_cache") as clear_cache:
            invalidate_permission_cache(sender=Role, instance=None)

        clear_cache.assert_called_once_with()
