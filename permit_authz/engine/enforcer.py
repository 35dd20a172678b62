"""
Core authorization engine for the permit_authz framework.

Combines the role hierarchy, the direct user overrides and the gate registry into
a single allow/deny answer. A check runs these layers in order and stops at the
first one that decides:

    1. super-admin role (direct or inherited): allow, even over an explicit deny
    2. explicit deny override: deny
    3. gate (before-hooks, ability rule, after-hooks): allow or deny if decisive
    4. explicit grant override: allow
    5. effective permissions of the user's roles: allow if the ability is there
    6. deny

Components:
    - RoleGraph: hierarchy traversal and effective permissions
    - GateRegistry: dynamic rules
    - PermissionCache: memoized per-user snapshots of the static layers

Usage:
    from permit_authz.engine.enforcer import AuthorizationEngine
    engine = AuthorizationEngine.get_instance()
    allowed = engine.can(user, "posts.update", post)
"""

import logging

from django.utils.module_loading import import_string

from permit_authz.conf import get_config
from permit_authz.data import GateResult, SyncReport, UserPermissionSnapshot
from permit_authz.engine.cache import PermissionCache
from permit_authz.engine.gates import GateRegistry
from permit_authz.engine.hierarchy import RoleGraph
from permit_authz.engine.sync import SyncEngine
from permit_authz.exceptions import UnauthenticatedError, UnauthorizedError
from permit_authz.models import Permission, PermissionType, Role, UserPermission, UserRole

logger = logging.getLogger(__name__)


def get_user_id(user):
    """Return the primary key of a user instance, or the value itself for a raw identifier."""
    return getattr(user, "pk", user)


class AuthorizationEngine:
    """Decides whether a user may perform an ability.

    There are two main ways to get an engine:

    1. The process-wide instance, shared with the signal handlers that keep its
       cache fresh::

        engine = AuthorizationEngine.get_instance()

    2. A private instance, e.g. with its own gate registry::

        engine = AuthorizationEngine(gates=GateRegistry())

    Users can be given as model instances or primary keys everywhere.

    Attributes:
        gates (GateRegistry): The dynamic rules consulted by ``can``.
        cache (PermissionCache): Memoized per-user permission snapshots.
        sync_engine (SyncEngine): Applies declarative role definitions.
    """

    _instance = None

    def __init__(self, gates=None, cache=None, sync_engine=None, user_resolver=None):
        """Create an engine.

        Args:
            gates: Gate registry to consult. A new empty registry by default.
            cache: Permission cache. A new cache by default.
            sync_engine: Engine applying sync definitions.
            user_resolver: Callable returning the current user for ``authorize``.
                Defaults to the ``PERMIT_CURRENT_USER_RESOLVER`` setting.
        """
        self.gates = gates if gates is not None else GateRegistry()
        self.cache = cache if cache is not None else PermissionCache()
        self.sync_engine = sync_engine if sync_engine is not None else SyncEngine()
        self._user_resolver = user_resolver

    @classmethod
    def get_instance(cls) -> "AuthorizationEngine":
        """Get the process-wide engine, creating it if needed.

        Returns:
            AuthorizationEngine: The singleton engine instance.
        """
        if cls._instance is None:
            cls._instance = cls()
        return cls._instance

    @classmethod
    def reset_instance(cls):
        """Drop the process-wide engine so the next ``get_instance`` builds a new one."""
        cls._instance = None

    # Roles and permissions

    def get_user_roles(self, user, graph: RoleGraph | None = None) -> list[Role]:
        """Get the roles held by a user.

        Args:
            user: User instance or primary key.
            graph: Role graph to resolve ancestors with. Loaded when omitted.

        Returns:
            list[Role]: The directly assigned roles in assignment order, each
            followed by its ancestors when the role hierarchy is enabled,
            deduplicated by identity.
        """
        role_ids = list(
            UserRole.objects.filter(user_id=get_user_id(user)).order_by("id").values_list("role_id", flat=True)
        )
        if not role_ids:
            return []
        graph = graph if graph is not None else RoleGraph.load()
        return graph.expand(role_ids)

    def get_user_permissions(self, user) -> list[Permission]:
        """Get every permission a user holds through roles and direct overrides.

        The effective permissions of all the user's roles are merged with the
        direct grants; direct denies are removed last, so a deny always wins even
        when several roles provide the permission.

        Args:
            user: User instance or primary key.

        Returns:
            list[Permission]: The user's permissions, deduplicated by slug.
        """
        graph = RoleGraph.load()
        permissions = {}

        for role in self.get_user_roles(user, graph=graph):
            for permission in graph.effective_permissions(role):
                permissions.setdefault(permission.slug, permission)

        overrides = list(UserPermission.objects.filter(user_id=get_user_id(user)).select_related("permission"))
        for override in overrides:
            if override.type == PermissionType.GRANT:
                permissions.setdefault(override.permission.slug, override.permission)
        for override in overrides:
            if override.type == PermissionType.DENY:
                permissions.pop(override.permission.slug, None)

        return list(permissions.values())

    def build_snapshot(self, user) -> UserPermissionSnapshot:
        """Compute the static authorization data of a user from the database."""
        user_id = get_user_id(user)
        graph = RoleGraph.load()
        roles = self.get_user_roles(user_id, graph=graph)

        role_permissions = set()
        for role in roles:
            role_permissions.update(permission.slug for permission in graph.effective_permissions(role))

        grants, denies = set(), set()
        for slug, permission_type in UserPermission.objects.filter(user_id=user_id).values_list(
            "permission__slug", "type"
        ):
            (denies if permission_type == PermissionType.DENY else grants).add(slug)

        return UserPermissionSnapshot(
            roles=frozenset(role.slug for role in roles),
            role_permissions=frozenset(role_permissions),
            grants=frozenset(grants),
            denies=frozenset(denies),
        )

    def get_snapshot(self, user) -> UserPermissionSnapshot:
        """Get the static authorization data of a user, from the cache when enabled."""
        user_id = get_user_id(user)
        if user_id is None:
            # Anonymous users hold no roles or overrides.
            return UserPermissionSnapshot()
        return self.cache.get_or_set(user_id, lambda: self.build_snapshot(user_id))

    def is_super_admin(self, user) -> bool:
        """Check whether the user holds the super-admin role, directly or by inheritance."""
        return get_config().super_admin_role in self.get_snapshot(user).roles

    def has_role(self, user, role) -> bool:
        """Check whether the user holds a role, directly or by inheritance.

        Args:
            user: User instance or primary key.
            role: Role instance or role slug.
        """
        slug = role.slug if isinstance(role, Role) else role
        return slug in self.get_snapshot(user).roles

    def has_any_role(self, user, roles) -> bool:
        """Check whether the user holds at least one of the roles."""
        return any(self.has_role(user, role) for role in roles)

    def has_all_roles(self, user, roles) -> bool:
        """Check whether the user holds every one of the roles."""
        return all(self.has_role(user, role) for role in roles)

    def has_permission(self, user, permission) -> bool:
        """Check the static permissions of a user: roles and grants, minus denies.

        Unlike ``can`` this ignores gates and the super-admin bypass.

        Args:
            user: User instance or primary key.
            permission: Permission instance or permission slug.
        """
        slug = permission.slug if isinstance(permission, Permission) else permission
        return slug in self.get_snapshot(user).permissions

    # Decisions

    def can(self, user, ability: str, resource=None) -> bool:
        """Decide whether a user may perform an ability.

        Args:
            user: User instance or primary key. It is passed as-is to gate callbacks.
            ability: The ability to check (e.g., 'users.delete').
            resource: Optional resource passed to gate callbacks.

        Returns:
            bool: True if allowed, False otherwise.
        """
        snapshot = self.get_snapshot(user)
        user_id = get_user_id(user)

        if get_config().super_admin_role in snapshot.roles:
            logger.debug(f"User {user_id} is super-admin, allowing '{ability}'")
            return True

        if ability in snapshot.denies:
            logger.debug(f"User {user_id} has an explicit deny for '{ability}'")
            return False

        gate_result = self.gates.check(ability, user, resource)
        if gate_result.is_decisive:
            return gate_result is GateResult.ALLOW

        if ability in snapshot.grants:
            logger.debug(f"User {user_id} has an explicit grant for '{ability}'")
            return True

        allowed = ability in snapshot.role_permissions
        logger.debug(f"User {user_id} {'granted' if allowed else 'denied'} '{ability}' by role permissions")
        return allowed

    def cannot(self, user, ability: str, resource=None) -> bool:
        """Negation of ``can``."""
        return not self.can(user, ability, resource)

    def get_current_user(self):
        """Return the current user from the configured session collaborator."""
        resolver = self._user_resolver or import_string(get_config().current_user_resolver)
        return resolver()

    def authorize(self, ability: str, resource=None):
        """Ensure the current user may perform an ability.

        Args:
            ability: The ability to check.
            resource: Optional resource passed to gate callbacks.

        Raises:
            UnauthenticatedError: If there is no authenticated current user.
            UnauthorizedError: If the current user may not perform the ability.
        """
        user = self.get_current_user()

        if user is None or not getattr(user, "is_authenticated", True):
            raise UnauthenticatedError()

        if not self.can(user, ability, resource):
            raise UnauthorizedError(f"You are not authorized to perform this action: {ability}", ability=ability)

    # Maintenance

    def clear_cache(self):
        """Invalidate every memoized permission snapshot."""
        self.cache.invalidate()

    def sync(self, definitions) -> SyncReport:
        """Reconcile roles and their permissions with declarative definitions.

        See ``permit_authz.engine.sync`` for the definitions format.

        Args:
            definitions: Mapping of role slug to role definition.

        Returns:
            SyncReport: What was created, replaced and what failed.
        """
        try:
            return self.sync_engine.run(definitions)
        finally:
            self.clear_cache()
