"""Permissions for Django REST framework views backed by the authorization engine."""

import logging

from rest_framework.permissions import BasePermission

from permit_authz.engine.enforcer import AuthorizationEngine

logger = logging.getLogger(__name__)


class HasAbility(BasePermission):
    """Allow a request when its user may perform the ability the view requires.

    The required ability is looked up, in order, on:

    1. the handler method of the request, as set by ``@requires_ability``;
    2. the view's ``required_abilities`` mapping of HTTP method to ability;
    3. the view's ``required_ability`` attribute.

    Views that declare no ability are denied. Object-level checks pass the object
    to the engine as the gate resource. Abilities marked object-level are not
    checked by ``has_permission`` at all, so their views must call
    ``check_object_permissions`` (``get_object`` does).

    Examples:
        >>> class ReportExportView(APIView):
        ...     permission_classes = [HasAbility]
        ...     required_ability = "reports.export"
    """

    def get_required_ability(self, request, view) -> str | None:
        """Return the ability required for the request, or None if the view declares none."""
        handler = getattr(view, request.method.lower(), None)
        ability = getattr(handler, "required_ability", None)
        if ability:
            return ability

        ability = getattr(view, "required_abilities", {}).get(request.method)
        if ability:
            return ability

        return getattr(view, "required_ability", None)

    def is_object_level(self, request, view) -> bool:
        """Whether the ability of the request is only decided against an object.

        Set by ``@requires_ability(..., object_level=True)`` on the handler, or by an
        ``object_level`` attribute on the view.
        """
        handler = getattr(view, request.method.lower(), None)
        return bool(getattr(handler, "object_level", getattr(view, "object_level", False)))

    def _check(self, request, view, resource=None, defer=False) -> bool:
        ability = self.get_required_ability(request, view)
        if not ability:
            logger.warning(f"View {view.__class__.__name__} declares no required ability; denying access.")
            return False

        user = request.user
        if user is None or not user.is_authenticated:
            return False

        if defer:
            return True

        return AuthorizationEngine.get_instance().can(user, ability, resource)

    def has_permission(self, request, view) -> bool:
        """Check the required ability without a resource.

        Object-level abilities only require an authenticated user here; gate rules
        written for objects are run by ``has_object_permission`` instead of being
        called with no resource.
        """
        return self._check(request, view, defer=self.is_object_level(request, view))

    def has_object_permission(self, request, view, obj) -> bool:
        """Check the required ability with the object as resource."""
        return self._check(request, view, obj)
