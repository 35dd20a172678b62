"""Data classes and enums exchanged between the engine and its callers."""

from collections.abc import Mapping
from enum import Enum

from attrs import define, field

from permit_authz.exceptions import InvalidArgumentError

__all__ = [
    "GateResult",
    "UserPermissionSnapshot",
    "RoleDefinition",
    "SyncReport",
]


class GateResult(Enum):
    """Tri-state outcome of a gate check.

    Attributes:
        ALLOW: The gate decided the ability is allowed.
        DENY: The gate decided the ability is denied.
        UNDECIDED: The gate has no opinion; the next authorization layer decides.
    """

    ALLOW = "allow"
    DENY = "deny"
    UNDECIDED = "undecided"

    @classmethod
    def from_value(cls, value) -> "GateResult":
        """Normalize a callback return value to a GateResult.

        ``None`` means undecided, any other non-GateResult value is judged by its
        truthiness.

        Examples:
            >>> GateResult.from_value(True)
            <GateResult.ALLOW: 'allow'>
            >>> GateResult.from_value(None)
            <GateResult.UNDECIDED: 'undecided'>
        """
        if isinstance(value, GateResult):
            return value
        if value is None:
            return cls.UNDECIDED
        return cls.ALLOW if value else cls.DENY

    @property
    def is_decisive(self) -> bool:
        """Whether this result is an allow or a deny."""
        return self is not GateResult.UNDECIDED

    def __bool__(self):
        """Only ALLOW is truthy, so ``result and ...`` in a hook keeps a DENY."""
        return self is GateResult.ALLOW


@define(frozen=True)
class UserPermissionSnapshot:
    """Everything the static layers of a check need to know about one user.

    Snapshots are what the permission cache stores, so they only hold slugs.

    Attributes:
        roles: Slugs of the roles held by the user, ancestors included when the
            role hierarchy is enabled.
        role_permissions: Slugs of the effective permissions of those roles.
        grants: Slugs directly granted to the user.
        denies: Slugs directly denied to the user.
    """

    roles: frozenset[str] = frozenset()
    role_permissions: frozenset[str] = frozenset()
    grants: frozenset[str] = frozenset()
    denies: frozenset[str] = frozenset()

    @property
    def permissions(self) -> frozenset[str]:
        """Role permissions plus grants, minus denies."""
        return (self.role_permissions | self.grants) - self.denies


def _to_permission_slugs(value):
    if value is None:
        return None
    if isinstance(value, str) or not isinstance(value, (list, tuple)):
        raise InvalidArgumentError("'permissions' must be a list of permission slugs.")
    for slug in value:
        if not isinstance(slug, str) or not slug:
            raise InvalidArgumentError(f"Invalid permission slug: {slug!r}")
    return tuple(value)


@define(frozen=True)
class RoleDefinition:
    """A declarative role entry consumed by the sync procedure.

    Attributes:
        slug: Role slug, the key of the entry in the definitions mapping.
        name: Name for a newly created role.
        description: Description for a newly created role.
        inherits: Slug of the parent of a newly created role.
        permissions: Permission slugs replacing the role's direct permissions, or
            None to leave them untouched.
    """

    slug: str
    name: str | None = None
    description: str | None = None
    inherits: str | None = None
    permissions: tuple[str, ...] | None = field(default=None, converter=_to_permission_slugs)

    @classmethod
    def from_dict(cls, slug, data) -> "RoleDefinition":
        """Parse a single entry of a sync definitions mapping.

        Args:
            slug: The role slug.
            data: Mapping with the optional keys name, description, inherits and
                permissions. None is accepted as an empty mapping.

        Raises:
            InvalidArgumentError: If the slug is empty or the entry is malformed.
        """
        if not isinstance(slug, str) or not slug:
            raise InvalidArgumentError(f"Invalid role slug: {slug!r}")
        if data is None:
            data = {}
        if not isinstance(data, Mapping):
            raise InvalidArgumentError(f"Definition of role '{slug}' must be a mapping.")

        return cls(
            slug=slug,
            name=data.get("name"),
            description=data.get("description"),
            inherits=data.get("inherits"),
            permissions=data.get("permissions"),
        )

    @property
    def default_name(self) -> str:
        """Name used when creating the role: the declared one, or the capitalized slug."""
        return self.name or self.slug[:1].upper() + self.slug[1:]


@define
class SyncReport:
    """Outcome of a sync run.

    Attributes:
        created: Slugs of the roles created by the run.
        synced: Slugs of the roles whose permissions were replaced.
        failed: Role slug mapped to the error message of each failed entry.
    """

    created: list[str] = field(factory=list)
    synced: list[str] = field(factory=list)
    failed: dict[str, str] = field(factory=dict)

    @property
    def succeeded(self) -> bool:
        """Whether every entry was applied."""
        return not self.failed
