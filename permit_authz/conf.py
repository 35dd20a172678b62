"""Configuration for the authorization framework.

Every option lives in the Django settings module. Values are read on each access
so that ``override_settings`` in tests and runtime changes apply immediately.
"""

from attrs import define
from django.conf import settings

DEFAULT_SUPER_ADMIN_ROLE = "super-admin"
DEFAULT_CURRENT_USER_RESOLVER = "permit_authz.middleware.get_current_user"
DEFAULT_CACHE_SETTINGS = {
    "enabled": True,
    "ttl": 3600,
    "prefix": "permit:",
    "alias": "default",
}


@define(frozen=True)
class PermitConfig:
    """Resolved configuration values.

    Attributes:
        super_admin_role: Slug of the role that bypasses every check.
        role_hierarchy: Whether ancestor roles contribute their permissions.
        cache_enabled: Whether per-user permission snapshots are memoized.
        cache_ttl: Lifetime in seconds of a memoized snapshot (None: no expiry).
        cache_prefix: Prefix prepended to every cache key.
        cache_alias: Django cache alias used as the backend.
        current_user_resolver: Dotted path of the callable returning the current user.
    """

    super_admin_role: str = DEFAULT_SUPER_ADMIN_ROLE
    role_hierarchy: bool = True
    cache_enabled: bool = True
    cache_ttl: int | None = DEFAULT_CACHE_SETTINGS["ttl"]
    cache_prefix: str = DEFAULT_CACHE_SETTINGS["prefix"]
    cache_alias: str = DEFAULT_CACHE_SETTINGS["alias"]
    current_user_resolver: str = DEFAULT_CURRENT_USER_RESOLVER

    @classmethod
    def from_settings(cls) -> "PermitConfig":
        """Build the configuration from the Django settings.

        Returns:
            PermitConfig: The configuration, with defaults for unset options.
        """
        cache_settings = {**DEFAULT_CACHE_SETTINGS, **getattr(settings, "PERMIT_CACHE", {})}
        return cls(
            super_admin_role=getattr(settings, "PERMIT_SUPER_ADMIN_ROLE", DEFAULT_SUPER_ADMIN_ROLE),
            role_hierarchy=getattr(settings, "PERMIT_ROLE_HIERARCHY", True),
            cache_enabled=bool(cache_settings["enabled"]),
            cache_ttl=cache_settings["ttl"],
            cache_prefix=cache_settings["prefix"],
            cache_alias=cache_settings["alias"],
            current_user_resolver=getattr(settings, "PERMIT_CURRENT_USER_RESOLVER", DEFAULT_CURRENT_USER_RESOLVER),
        )


def get_config() -> PermitConfig:
    """Shortcut for ``PermitConfig.from_settings()``."""
    return PermitConfig.from_settings()
