"""Custom signals for the authorization framework.

``permissions_changed`` is sent after association writes that bypass the model
``save``/``delete`` signals (``bulk_create``, queryset ``update``), so that the
permission cache is invalidated for them as well.
"""

from django.dispatch import Signal

# Sent with ``sender`` set to the model class whose rows changed.
permissions_changed = Signal()
