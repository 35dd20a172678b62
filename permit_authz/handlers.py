"""
Signal handlers for the authorization framework.

These handlers keep the permission cache consistent with the database: any write
to roles, permissions or their associations invalidates every cached snapshot.
The invalidation runs right away and once more when the surrounding transaction
commits, so a snapshot recomputed from not yet committed data is not served.
"""

import logging

from django.db import transaction
from django.db.models.signals import m2m_changed, post_delete, post_save

from permit_authz.engine.enforcer import AuthorizationEngine
from permit_authz.models import Permission, Role, RolePermission, UserPermission, UserRole
from permit_authz.signals import permissions_changed

logger = logging.getLogger(__name__)

TRACKED_MODELS = (Role, Permission, RolePermission, UserRole, UserPermission)


def invalidate_permission_cache(sender, **kwargs):  # pylint: disable=unused-argument
    """
    Invalidate the permission cache of the process-wide engine.

    Args:
        sender: The model class whose rows changed.
        **kwargs: Additional keyword arguments from the signal.
    """
    engine = AuthorizationEngine.get_instance()
    engine.clear_cache()
    transaction.on_commit(engine.clear_cache)


def connect_handlers():
    """Connect ``invalidate_permission_cache`` to every signal that changes permissions."""
    for model in TRACKED_MODELS:
        post_save.connect(
            invalidate_permission_cache,
            sender=model,
            dispatch_uid=f"permit_authz_post_save_{model.__name__}",
        )
        post_delete.connect(
            invalidate_permission_cache,
            sender=model,
            dispatch_uid=f"permit_authz_post_delete_{model.__name__}",
        )

    m2m_changed.connect(
        invalidate_permission_cache,
        sender=Role.permissions.through,
        dispatch_uid="permit_authz_role_permissions_changed",
    )
    permissions_changed.connect(
        invalidate_permission_cache,
        dispatch_uid="permit_authz_permissions_changed",
    )
    logger.debug("Connected permission cache invalidation handlers")
