"""Constants shared by the permission index and the gate registry."""

# Bucket used by ``get_grouped_permissions`` for permissions without a group.
DEFAULT_PERMISSION_GROUP = "general"

# Separators replaced by spaces when a permission name is derived from its slug.
SLUG_NAME_SEPARATORS = ("-", "_", ".")

# Abilities registered by ``GateRegistry.resource`` for a named resource, e.g.
# ``posts.viewAny``. Each one delegates to the policy method of the same name.
RESOURCE_ABILITIES = (
    "viewAny",
    "view",
    "create",
    "update",
    "delete",
    "restore",
    "forceDelete",
)
