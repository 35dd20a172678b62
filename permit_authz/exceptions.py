"""Exceptions raised by the authorization framework.

Lookups that end in ``_or_fail`` raise a ``NotFoundError`` subclass, while plain
lookups return ``None``. Creating a role or permission with a slug that is
already taken raises an ``AlreadyExistsError`` subclass instead of updating the
existing record.
"""

from django.core.exceptions import PermissionDenied

__all__ = [
    "PermitError",
    "NotFoundError",
    "RoleNotFoundError",
    "PermissionNotFoundError",
    "AlreadyExistsError",
    "RoleAlreadyExistsError",
    "PermissionAlreadyExistsError",
    "InvalidArgumentError",
    "UnauthenticatedError",
    "UnauthorizedError",
]


class PermitError(Exception):
    """Base class for all the errors raised by permit_authz."""


class NotFoundError(PermitError):
    """A role or permission looked up by slug does not exist."""


class RoleNotFoundError(NotFoundError):
    """Raised when a role slug does not resolve to a stored role."""


class PermissionNotFoundError(NotFoundError):
    """Raised when a permission slug does not resolve to a stored permission."""


class AlreadyExistsError(PermitError):
    """A role or permission with the same slug already exists."""


class RoleAlreadyExistsError(AlreadyExistsError):
    """Raised when creating a role whose slug is taken."""


class PermissionAlreadyExistsError(AlreadyExistsError):
    """Raised when creating a permission whose slug is taken."""


class InvalidArgumentError(PermitError, ValueError):
    """Raised for missing slugs, unresolved references and invalid hierarchies."""


class UnauthenticatedError(PermitError, PermissionDenied):
    """Raised by ``authorize`` when there is no current user."""

    def __init__(self, message="Unauthenticated."):
        super().__init__(message)


class UnauthorizedError(PermitError, PermissionDenied):
    """Raised by ``authorize`` when the current user may not perform the ability."""

    def __init__(self, message="This action is unauthorized.", ability=None):
        super().__init__(message)
        self.ability = ability
