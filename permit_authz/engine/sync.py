"""Declarative reconciliation of role and permission definitions.

Definitions map a role slug to an optional name, description, parent
(``inherits``) and list of permission slugs::

    {
        "user": {"permissions": ["profile.view", "profile.update"]},
        "moderator": {"inherits": "user", "permissions": ["content.moderate"]},
    }

Missing roles are created, with their parent linked only if it already exists,
so parents must come before their children. Roles that already exist keep their
name, description and parent: only their permissions are replaced. Each entry is
applied in its own transaction and a failing entry does not stop the others.
"""

import logging
from collections.abc import Mapping

from django.db import transaction

from permit_authz.data import RoleDefinition, SyncReport
from permit_authz.exceptions import InvalidArgumentError
from permit_authz.models import Permission, Role

logger = logging.getLogger(__name__)


class SyncEngine:
    """Applies sync definitions entry by entry."""

    def sync_entry(self, definition: RoleDefinition) -> tuple[bool, bool]:
        """Apply a single role definition.

        Args:
            definition: The parsed role definition.

        Returns:
            tuple[bool, bool]: Whether the role was created, and whether its
            permissions were replaced.
        """
        created = synced = False

        with transaction.atomic():
            role = Role.objects.find_by_slug(definition.slug)

            if role is None:
                parent = None
                if definition.inherits:
                    parent = Role.objects.find_by_slug(definition.inherits)
                    if parent is None:
                        logger.warning(
                            f"Parent role '{definition.inherits}' of '{definition.slug}' does not exist yet; "
                            "creating it without a parent."
                        )
                role = Role.objects.create(
                    slug=definition.slug,
                    name=definition.default_name,
                    description=definition.description,
                    parent=parent,
                )
                created = True

            if definition.permissions is not None:
                permissions = [Permission.objects.find_or_create(slug) for slug in definition.permissions]
                role.sync_permissions(permissions)
                synced = True

        return created, synced

    def run(self, definitions) -> SyncReport:
        """Apply every entry of a definitions mapping, in order.

        Args:
            definitions: Mapping of role slug to role definition.

        Returns:
            SyncReport: Created and synced role slugs, and the error of each failed entry.

        Raises:
            InvalidArgumentError: If ``definitions`` is not a mapping.
        """
        if not isinstance(definitions, Mapping):
            raise InvalidArgumentError("Sync definitions must be a mapping of role slug to definition.")

        report = SyncReport()

        for slug, data in definitions.items():
            try:
                created, synced = self.sync_entry(RoleDefinition.from_dict(slug, data))
            except Exception as exc:  # pylint: disable=broad-exception-caught
                logger.exception(f"Failed to sync role '{slug}'")
                report.failed[str(slug)] = str(exc)
                continue

            if created:
                report.created.append(slug)
            if synced:
                report.synced.append(slug)

        logger.info(
            f"Synced roles: {len(report.created)} created, {len(report.synced)} permission sets replaced, "
            f"{len(report.failed)} failed"
        )
        return report
