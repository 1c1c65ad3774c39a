from django.contrib import admin
from .models import TeacherProfile


@admin.register(TeacherProfile)
class TeacherProfileAdmin(admin.ModelAdmin):
    list_display = (
        "staff_id",
        "user",
        "school",
    )
    list_filter = (
        "school",
    )
    search_fields = (
        "staff_id",
        "user__username",
        "user__first_name",
        "user__last_name",
    )
    autocomplete_fields = (
        "user",
        "school",
    )
