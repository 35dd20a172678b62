"""Public API for the permit_authz framework.

This module provides the public API of the framework: roles, permissions, user
checks and gates. It abstracts the authorization engine and the storage models
behind plain functions and builders.
"""

from permit_authz.api.gates import *
from permit_authz.api.permissions import *
from permit_authz.api.roles import *
from permit_authz.api.users import *
from permit_authz.data import *
