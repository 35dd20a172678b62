"""Role hierarchy traversal.

The ``RoleGraph`` is an identifier-indexed snapshot of the role table: every role
is stored once in a flat mapping keyed by its primary key, and the hierarchy is
walked by looking up ``parent_id`` values in that mapping. Traversals keep a set
of visited identifiers, so a cyclic parent chain (which ``Role.save`` refuses to
write, but which could be introduced by raw SQL) stops instead of looping.

Usage:
    from permit_authz.engine.hierarchy import RoleGraph
    graph = RoleGraph.load()
    graph.effective_permissions("moderator")
"""

import logging
from collections import defaultdict

from permit_authz.conf import get_config
from permit_authz.models import Permission, Role

logger = logging.getLogger(__name__)


class RoleGraph:
    """Traversals over a snapshot of the role forest.

    Attributes:
        hierarchy_enabled: Whether ancestors contribute to effective permissions.
    """

    def __init__(self, roles, hierarchy_enabled: bool | None = None):
        """Index the given roles.

        Args:
            roles: Iterable of Role instances. Prefetching their ``permissions`` avoids
                one query per role when computing effective permissions.
            hierarchy_enabled: Overrides the ``PERMIT_ROLE_HIERARCHY`` setting.
        """
        self.hierarchy_enabled = get_config().role_hierarchy if hierarchy_enabled is None else hierarchy_enabled
        self._roles = {}
        self._slugs = {}
        self._children = defaultdict(list)

        for role in sorted(roles, key=lambda r: r.pk):
            self._roles[role.pk] = role
            self._slugs[role.slug] = role.pk
            if role.parent_id is not None:
                self._children[role.parent_id].append(role.pk)

    @classmethod
    def load(cls, hierarchy_enabled: bool | None = None) -> "RoleGraph":
        """Build a graph of every stored role with their direct permissions prefetched."""
        return cls(Role.objects.prefetch_related("permissions"), hierarchy_enabled=hierarchy_enabled)

    def __contains__(self, role) -> bool:
        try:
            self._resolve(role)
        except KeyError:
            return False
        return True

    def __len__(self) -> int:
        return len(self._roles)

    def get(self, role) -> Role | None:
        """Return the indexed role for a Role instance, primary key or slug, or None."""
        try:
            return self._resolve(role)
        except KeyError:
            return None

    def _resolve(self, role) -> Role:
        if isinstance(role, Role):
            return self._roles[role.pk]
        if isinstance(role, str):
            return self._roles[self._slugs[role]]
        return self._roles[role]

    def ancestors(self, role) -> list[Role]:
        """Return the ancestors of a role, nearest parent first.

        Args:
            role: Role instance, primary key or slug.

        Returns:
            list[Role]: Parent, grandparent and so on up to the root. Empty for a root
            role. A parent identifier missing from the snapshot ends the chain.
        """
        current = self._resolve(role)
        visited = {current.pk}
        ancestors = []

        while current.parent_id is not None:
            if current.parent_id in visited:
                logger.warning(f"Cycle detected in the parent chain of role '{role}' at role id {current.parent_id}")
                break
            parent = self._roles.get(current.parent_id)
            if parent is None:
                break
            visited.add(parent.pk)
            ancestors.append(parent)
            current = parent

        return ancestors

    def descendants(self, role) -> list[Role]:
        """Return every transitive child of a role, depth first.

        Each role is emitted before its own children, siblings in identifier order.

        Args:
            role: Role instance, primary key or slug.

        Returns:
            list[Role]: The descendants, excluding the role itself.
        """
        root = self._resolve(role)
        visited = {root.pk}
        descendants = []
        stack = list(reversed(self._children.get(root.pk, [])))

        while stack:
            role_id = stack.pop()
            if role_id in visited:
                logger.warning(f"Cycle detected below role '{root.slug}' at role id {role_id}")
                continue
            visited.add(role_id)
            descendants.append(self._roles[role_id])
            stack.extend(reversed(self._children.get(role_id, [])))

        return descendants

    def direct_permissions(self, role) -> list[Permission]:
        """Return the permissions assigned to the role itself."""
        return list(self._resolve(role).permissions.all())

    def effective_permissions(self, role) -> list[Permission]:
        """Return the union of the role's permissions and its ancestors' permissions.

        Ancestors only contribute when the role hierarchy is enabled. Permissions are
        deduplicated by slug and listed in discovery order, the role's own first.

        Args:
            role: Role instance, primary key or slug.

        Returns:
            list[Permission]: The effective permission set of the role.
        """
        role = self._resolve(role)
        sources = [role]
        if self.hierarchy_enabled:
            sources.extend(self.ancestors(role))

        permissions = {}
        for source in sources:
            for permission in source.permissions.all():
                permissions.setdefault(permission.slug, permission)
        return list(permissions.values())

    def has_permission(self, role, permission) -> bool:
        """Check whether a permission is in the effective permission set of a role.

        Args:
            role: Role instance, primary key or slug.
            permission: Permission instance or permission slug.
        """
        slug = permission.slug if isinstance(permission, Permission) else permission
        return any(p.slug == slug for p in self.effective_permissions(role))

    def expand(self, roles) -> list[Role]:
        """Return the given roles followed by their ancestors, deduplicated by identity.

        Ancestors are only included when the role hierarchy is enabled. Roles
        missing from the snapshot are skipped.

        Args:
            roles: Iterable of Role instances, primary keys or slugs.
        """
        expanded = {}
        for role in roles:
            resolved = self.get(role)
            if resolved is None:
                continue
            expanded.setdefault(resolved.pk, resolved)
            if self.hierarchy_enabled:
                for ancestor in self.ancestors(resolved):
                    expanded.setdefault(ancestor.pk, ancestor)
        return list(expanded.values())
