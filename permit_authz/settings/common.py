"""
Common settings for the permit_authz application.
"""

from permit_authz.conf import DEFAULT_CACHE_SETTINGS, DEFAULT_CURRENT_USER_RESOLVER, DEFAULT_SUPER_ADMIN_ROLE


def plugin_settings(settings):
    """
    Configure the default settings of permit_authz.

    Call this function from the project settings module to fill in every
    permit_authz option that is not set yet.

    Args:
        settings: The Django settings object (or settings module)
    """
    # Slug of the role whose holders bypass every permission check.
    if not hasattr(settings, "PERMIT_SUPER_ADMIN_ROLE"):
        settings.PERMIT_SUPER_ADMIN_ROLE = DEFAULT_SUPER_ADMIN_ROLE

    # When enabled, roles inherit every permission of their ancestors.
    if not hasattr(settings, "PERMIT_ROLE_HIERARCHY"):
        settings.PERMIT_ROLE_HIERARCHY = True

    # Per-user permission cache. Missing keys fall back to their defaults.
    settings.PERMIT_CACHE = {**DEFAULT_CACHE_SETTINGS, **getattr(settings, "PERMIT_CACHE", {})}

    # Callable returning the current user for authorize().
    if not hasattr(settings, "PERMIT_CURRENT_USER_RESOLVER"):
        settings.PERMIT_CURRENT_USER_RESOLVER = DEFAULT_CURRENT_USER_RESOLVER

    # The middleware is what feeds the default resolver.
    middleware = "permit_authz.middleware.CurrentUserMiddleware"
    if settings.PERMIT_CURRENT_USER_RESOLVER == DEFAULT_CURRENT_USER_RESOLVER:
        if middleware not in settings.MIDDLEWARE:
            settings.MIDDLEWARE = [*settings.MIDDLEWARE, middleware]
