"""Tests for the current user middleware."""

from django.contrib.auth.models import AnonymousUser
from django.http import HttpResponse
from django.test import RequestFactory

from permit_authz.api import authorize
from permit_authz.exceptions import UnauthenticatedError, UnauthorizedError
from permit_authz.middleware import CurrentUserMiddleware, get_current_user, reset_current_user, set_current_user
from permit_authz.tests.test_utils import PermitTestCase, assign, make_role, make_user


class TestCurrentUserMiddleware(PermitTestCase):
    """Tests for exposing the request user outside the request."""

    def setUp(self):
        super().setUp()
        self.user = make_user("frank")
        self.request = RequestFactory().get("/")
        self.request.user = self.user

    def test_current_user_set_during_request(self):
        """The request user is the current user while the view runs and is cleared afterwards."""
        seen = []

        def view(request):
            seen.append(get_current_user())
            return HttpResponse()

        CurrentUserMiddleware(view)(self.request)

        self.assertEqual(seen, [self.user])
        self.assertIsNone(get_current_user())

    def test_current_user_cleared_on_error(self):
        """The current user is cleared even when the view raises."""

        def view(request):
            raise RuntimeError("boom")

        with self.assertRaises(RuntimeError):
            CurrentUserMiddleware(view)(self.request)

        self.assertIsNone(get_current_user())

    def test_authorize_uses_current_user(self):
        """authorize checks the user set by the middleware."""
        assign(self.user, make_role("editor", ["posts.update"]))

        def view(request):
            authorize("posts.update")
            with self.assertRaises(UnauthorizedError):
                authorize("users.delete")
            return HttpResponse()

        CurrentUserMiddleware(view)(self.request)

    def test_authorize_outside_request(self):
        """Outside a request there is no current user."""
        with self.assertRaises(UnauthenticatedError):
            authorize("posts.update")

    def test_set_and_reset(self):
        """Setting the current user can be undone with the returned token."""
        token = set_current_user(AnonymousUser())
        self.assertIsInstance(get_current_user(), AnonymousUser)

        reset_current_user(token)

        self.assertIsNone(get_current_user())
