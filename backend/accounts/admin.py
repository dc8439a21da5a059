from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as BaseUserAdmin

from .models import Role, User


@admin.register(Role)
class RoleAdmin(admin.ModelAdmin):
    list_display = ("name", "description")
    search_fields = ("name",)
    filter_horizontal = ("permissions",)


@admin.register(User)
class UserAdmin(BaseUserAdmin):
    list_display = ("username", "email", "role", "department",
                    "hierarchy_level", "total_assigned_count", "is_active")
    search_fields = ("username", "email", "phone_number", "department")
    list_filter = ("is_active", "is_staff", "role", "hierarchy_level")
    readonly_fields = ("total_assigned_count",)
    fieldsets = BaseUserAdmin.fieldsets + (
        ("Role", {"fields": ("phone_number", "role")}),
        ("Handler Profile", {"fields": ("department", "sub_department",
                                        "hierarchy_level", "rating",
                                        "total_assigned_count")}),
    )
    add_fieldsets = BaseUserAdmin.add_fieldsets + (
        ("Extra Info", {"fields": ("email", "phone_number", "role",
                                   "department", "sub_department",
                                   "hierarchy_level")}),
    )
