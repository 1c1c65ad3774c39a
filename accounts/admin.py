from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as BaseUserAdmin
from .models import User

@admin.register(User)
class UserAdmin(BaseUserAdmin):
    list_display = ("username", "email", "get_role", "get_school", "is_staff", "is_superuser")
    search_fields = ("username", "email", "first_name", "last_name")
    list_filter = ("role", "is_staff", "is_superuser", "is_active")
    autocomplete_fields = ("school",)

    fieldsets = BaseUserAdmin.fieldsets + (
        ("School", {"fields": ("role", "school")}),
    )
    add_fieldsets = BaseUserAdmin.add_fieldsets + (
        ("School", {"fields": ("role", "school")}),
    )

    def get_role(self, obj):
        return obj.get_role_display() if obj.role else "N/A"
    get_role.short_description = "Role"

    def get_school(self, obj):
        return obj.school.name if obj.school else "N/A"
    get_school.short_description = "School"
