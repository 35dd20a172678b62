"""
permit_authz Django application initialization.
"""

from django.apps import AppConfig


class PermitAuthzConfig(AppConfig):
    """
    Configuration for the permit_authz Django application.
    """

    name = "permit_authz"
    verbose_name = "Permit AuthZ"
    default_auto_field = "django.db.models.BigAutoField"

    def ready(self):
        """Connect the signal handlers that keep the permission cache fresh."""
        from permit_authz.handlers import connect_handlers  # pylint: disable=import-outside-toplevel

        connect_handlers()
