"""
Django admin configuration for users and profiles.

Users are keyed on email (no username), so the stock ``UserAdmin`` fieldsets
are replaced; the profile is edited inline on the same page.
"""

from django.contrib import admin
from django.contrib.auth.admin import UserAdmin

from .models import Profile, User


class ProfileInline(admin.StackedInline):
    model = Profile
    can_delete = False
    fields = ("name", "phone", "role", "status", "avatar", "last_login")
    readonly_fields = ("last_login",)


@admin.register(User)
class FinanceUserAdmin(UserAdmin):
    """Email-keyed user admin with the profile inline."""

    inlines = [ProfileInline]
    ordering = ("-created_at",)
    list_display = ("email", "get_name", "get_role", "get_status", "created_at")
    search_fields = ("email", "profile__name")
    list_select_related = ("profile",)

    fieldsets = (
        (None, {"fields": ("email", "password")}),
        ("Permissions", {"fields": ("is_active", "is_staff", "is_superuser")}),
        ("Important dates", {"fields": ("last_login", "date_joined")}),
    )
    add_fieldsets = (
        (
            None,
            {
                "classes": ("wide",),
                "fields": ("email", "password1", "password2"),
            },
        ),
    )

    @admin.display(description="Name")
    def get_name(self, obj):
        return obj.name

    @admin.display(description="Role")
    def get_role(self, obj):
        return obj.role

    @admin.display(description="Active", boolean=True)
    def get_status(self, obj):
        profile = obj._get_profile()
        return profile.status if profile else False
