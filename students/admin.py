# students/admin.py

from django.contrib import admin
from .models import Parent, Student


@admin.register(Student)
class StudentAdmin(admin.ModelAdmin):
    list_display = (
        "admission_number",
        "last_name",
        "first_name",
        "school",
        "school_class",
        "guardian",
        "is_active",
    )

    list_filter = ("school", "school_class", "is_active")
    search_fields = ("admission_number", "first_name", "last_name")
    ordering = ("school_class", "last_name")
    autocomplete_fields = ("guardian",)


@admin.register(Parent)
class ParentAdmin(admin.ModelAdmin):
    list_display = ("last_name", "first_name", "phone", "email", "school")
    list_filter = ("school",)
    search_fields = ("first_name", "last_name", "phone", "email")
