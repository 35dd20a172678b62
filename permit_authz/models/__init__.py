"""Database models for the authorization framework.

These models are the storage layer of roles, permissions and their associations
with each other and with users. The authorization engine only reads and writes
through them, it never owns their lifetime.
"""

from permit_authz.models.core import *
