"""Admin configuration for permit_authz."""

from django.contrib import admin

from permit_authz.models import Permission, Role, RolePermission, UserPermission, UserRole


class RolePermissionInline(admin.TabularInline):
    """Inline admin to edit the direct permissions of a role."""

    model = RolePermission
    extra = 0
    autocomplete_fields = ("permission",)


@admin.register(Role)
class RoleAdmin(admin.ModelAdmin):
    """Admin for roles. Hierarchy cycles are reported on the parent field."""

    list_display = ("id", "slug", "name", "parent", "created_at")
    search_fields = ("slug", "name")
    list_select_related = ("parent",)
    inlines = [RolePermissionInline]


@admin.register(Permission)
class PermissionAdmin(admin.ModelAdmin):
    """Admin for permissions."""

    list_display = ("id", "slug", "name", "group", "created_at")
    search_fields = ("slug", "name", "group")
    list_filter = ("group",)


@admin.register(UserRole)
class UserRoleAdmin(admin.ModelAdmin):
    """Admin for role assignments."""

    list_display = ("id", "user", "role", "created_at")
    list_select_related = ("user", "role")
    raw_id_fields = ("user",)


@admin.register(UserPermission)
class UserPermissionAdmin(admin.ModelAdmin):
    """Admin for direct grants and denies."""

    list_display = ("id", "user", "permission", "type", "updated_at")
    list_filter = ("type",)
    list_select_related = ("user", "permission")
    raw_id_fields = ("user",)
