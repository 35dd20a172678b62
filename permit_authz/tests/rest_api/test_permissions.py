"""Tests for the REST framework permission class and decorator."""

from ddt import data, ddt, unpack
from rest_framework import status
from rest_framework.response import Response
from rest_framework.test import APIRequestFactory, force_authenticate
from rest_framework.views import APIView

from permit_authz.rest_api.decorators import requires_ability
from permit_authz.rest_api.permissions import HasAbility
from permit_authz.tests.test_utils import PermitTestCase, assign, make_role, make_user


class ReportView(APIView):
    permission_classes = [HasAbility]
    required_ability = "reports.view"

    def get(self, request):
        return Response({"ok": True})


class PostView(APIView):
    """View with per-method abilities and an object-level check."""

    permission_classes = [HasAbility]
    required_abilities = {"DELETE": "posts.delete"}

    @requires_ability("posts.view")
    def get(self, request):
        return Response({"ok": True})

    @requires_ability("posts.update", object_level=True)
    def put(self, request):
        self.check_object_permissions(request, {"author_id": int(request.data["author_id"])})
        return Response({"ok": True})

    def delete(self, request):
        return Response(status=status.HTTP_204_NO_CONTENT)


class UndeclaredView(APIView):
    permission_classes = [HasAbility]

    def get(self, request):
        return Response({"ok": True})


@ddt
class TestHasAbility(PermitTestCase):
    """Tests for checking view abilities against the engine."""

    def setUp(self):
        super().setUp()
        self.factory = APIRequestFactory()
        self.reader = make_user("reader")
        self.writer = make_user("writer")
        assign(self.reader, make_role("reader", ["reports.view", "posts.view"]))
        assign(self.writer, make_role("writer", ["posts.view", "posts.update", "posts.delete"]))

    def _call(self, view, method, user=None, body=None):
        request = getattr(self.factory, method)("/", body or {}, format="json")
        if user is not None:
            force_authenticate(request, user=user)
        return view.as_view()(request)

    def test_view_level_ability(self):
        self.assertEqual(self._call(ReportView, "get", self.reader).status_code, status.HTTP_200_OK)
        self.assertEqual(self._call(ReportView, "get", self.writer).status_code, status.HTTP_403_FORBIDDEN)

    def test_unauthenticated_user_rejected(self):
        """Anonymous requests are rejected before the engine is asked."""
        response = self._call(ReportView, "get")

        self.assertIn(response.status_code, (status.HTTP_401_UNAUTHORIZED, status.HTTP_403_FORBIDDEN))

    @data(
        ("get", "reader", status.HTTP_200_OK),
        ("get", "writer", status.HTTP_200_OK),
        ("delete", "reader", status.HTTP_403_FORBIDDEN),
        ("delete", "writer", status.HTTP_204_NO_CONTENT),
    )
    @unpack
    def test_method_abilities(self, method, username, expected_status):
        """Handler decorators and the per-method mapping both select the ability."""
        user = self.reader if username == "reader" else self.writer

        self.assertEqual(self._call(PostView, method, user).status_code, expected_status)

    def test_object_permission_uses_gate(self):
        """Object-level checks pass the object to the gate rule as resource."""
        self.engine.gates.define("posts.update", lambda user, post: post["author_id"] == user.pk)

        own = self._call(PostView, "put", self.writer, {"author_id": self.writer.pk})
        other = self._call(PostView, "put", self.writer, {"author_id": self.reader.pk})

        self.assertEqual(own.status_code, status.HTTP_200_OK)
        self.assertEqual(other.status_code, status.HTTP_403_FORBIDDEN)

    def test_view_without_ability_denied(self):
        with self.assertLogs("permit_authz.rest_api.permissions", level="WARNING"):
            response = self._call(UndeclaredView, "get", self.writer)

        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_decorator_keeps_handler(self):
        """The decorator records the ability and keeps the handler name."""
        self.assertEqual(PostView.get.required_ability, "posts.view")
        self.assertEqual(PostView.get.__name__, "get")
        self.assertFalse(PostView.get.object_level)
        self.assertTrue(PostView.put.object_level)

    def test_object_level_ability_still_rejects_anonymous(self):
        """Deferring an object-level ability to the object check never lets anonymous users through."""
        response = self._call(PostView, "put", body={"author_id": self.writer.pk})

        self.assertIn(response.status_code, (status.HTTP_401_UNAUTHORIZED, status.HTTP_403_FORBIDDEN))

    def test_object_level_ability_without_gate_uses_roles(self):
        """Without a gate the object check falls through to the user's role permissions."""
        allowed = self._call(PostView, "put", self.writer, {"author_id": self.reader.pk})
        denied = self._call(PostView, "put", self.reader, {"author_id": self.reader.pk})

        self.assertEqual(allowed.status_code, status.HTTP_200_OK)
        self.assertEqual(denied.status_code, status.HTTP_403_FORBIDDEN)
