"""
Django admin configuration for the User model.
"""

from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as BaseUserAdmin

from authentication.models import User


@admin.register(User)
class UserAdmin(BaseUserAdmin):
    """Admin configuration for email-based users with owner/helper roles."""

    list_display = (
        "email",
        "full_name",
        "role",
        "team_owner",
        "is_active",
        "date_joined",
    )
    list_filter = ("role", "is_active", "is_staff", "is_superuser")
    search_fields = ("email", "full_name")
    ordering = ("-date_joined",)
    raw_id_fields = ("team_owner",)

    fieldsets = (
        (None, {"fields": ("email", "password")}),
        ("Business", {"fields": ("full_name", "role", "team_owner")}),
        ("Status", {"fields": ("is_active", "is_staff", "is_superuser")}),
        ("Permissions", {"fields": ("groups", "user_permissions")}),
        ("Important dates", {"fields": ("date_joined", "last_login")}),
    )

    add_fieldsets = (
        (
            None,
            {
                "classes": ("wide",),
                "fields": ("email", "role", "team_owner", "password1", "password2"),
            },
        ),
    )

    readonly_fields = ("date_joined", "last_login")
