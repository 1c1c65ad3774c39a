from django.contrib import admin

from .models import Notification


@admin.register(Notification)
class NotificationAdmin(admin.ModelAdmin):
    list_display = ("title", "notification_type", "target_audience", "recipient", "sent_date", "is_read")
    list_filter = ("notification_type", "target_audience", "is_read")
    search_fields = ("title", "message", "recipient__username")
    readonly_fields = ("sent_date",)
