"""Per-user permission cache.

Snapshots of what each user holds (roles, role permissions, grants and denies)
are memoized in the Django cache framework. Every key embeds a version token
and the role hierarchy setting, which effective permissions depend on.
Invalidation replaces the token, which makes all previously cached snapshots
unreachable at once without having to enumerate them.

Reads take the read side and invalidations the write side of a readers-writer
lock, so an invalidation never interleaves with the version lookup of a read.
The version is read before the snapshot is computed: a snapshot computed while
an invalidation happens is stored under the old version and never served.
"""

import logging
from uuid import uuid4

from casbin.util.rwlock import RWLockWrite
from django.core.cache import caches

from permit_authz.conf import get_config

logger = logging.getLogger(__name__)


class PermissionCache:
    """Versioned memoization of per-user permission snapshots."""

    VERSION_KEY = "version"

    def __init__(self):
        self._rwlock = RWLockWrite()
        self._read_lock = self._rwlock.gen_rlock()
        self._write_lock = self._rwlock.gen_wlock()

    @staticmethod
    def _backend(config):
        return caches[config.cache_alias]

    def _get_version(self, config) -> str:
        """Return the current version token, initializing it when missing."""
        backend = self._backend(config)
        version_key = f"{config.cache_prefix}{self.VERSION_KEY}"
        version = backend.get(version_key)
        if version is None:
            # add() keeps the token set by a concurrent initialization, if any.
            backend.add(version_key, uuid4().hex, None)
            version = backend.get(version_key)
        return version

    def make_key(self, config, version: str, user_id) -> str:
        """Build the cache key of a user snapshot for a version token and hierarchy setting."""
        return f"{config.cache_prefix}{version}:hierarchy-{int(config.role_hierarchy)}:user:{user_id}"

    def get_or_set(self, user_id, compute):
        """Return the cached snapshot of a user, computing and storing it on a miss.

        Args:
            user_id: Primary key of the user.
            compute: Callable without arguments returning the fresh snapshot.

        Returns:
            The cached or freshly computed snapshot. With the cache disabled the
            snapshot is always computed.
        """
        config = get_config()
        if not config.cache_enabled:
            return compute()

        with self._read_lock:
            version = self._get_version(config)
            key = self.make_key(config, version, user_id)
            snapshot = self._backend(config).get(key)

        if snapshot is not None:
            return snapshot

        snapshot = compute()
        self._backend(config).set(key, snapshot, config.cache_ttl)
        return snapshot

    def invalidate(self):
        """Drop every cached snapshot by replacing the version token."""
        config = get_config()
        with self._write_lock:
            self._backend(config).set(f"{config.cache_prefix}{self.VERSION_KEY}", uuid4().hex, None)
        logger.info("Invalidated permission cache")
