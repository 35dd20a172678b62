"""
Current user tracking for ``authorize``.

``CurrentUserMiddleware`` exposes ``request.user`` to code that has no access to
the request, such as ``AuthorizationEngine.authorize``. The user is held in a
context variable, so concurrent requests (threads or async tasks) never see each
other's user. Add it after Django's ``AuthenticationMiddleware``.
"""

from contextvars import ContextVar

_current_user = ContextVar("permit_current_user", default=None)


def get_current_user():
    """Return the user of the request being processed, or None outside a request."""
    return _current_user.get()


def set_current_user(user):
    """Set the current user. Returns a token to restore the previous value with ``reset_current_user``."""
    return _current_user.set(user)


def reset_current_user(token):
    """Restore the current user that was set before ``set_current_user`` returned ``token``."""
    _current_user.reset(token)


class CurrentUserMiddleware:
    """Make ``request.user`` the current user for the duration of the request."""

    def __init__(self, get_response):
        self.get_response = get_response

    def __call__(self, request):
        token = set_current_user(getattr(request, "user", None))
        try:
            return self.get_response(request)
        finally:
            reset_current_user(token)
