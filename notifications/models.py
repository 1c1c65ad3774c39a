from django.conf import settings
from django.db import models


class Notification(models.Model):
    TYPE_CHOICES = (
        ("info", "Info"),
        ("warning", "Warning"),
        ("success", "Success"),
        ("error", "Error"),
    )
    AUDIENCE_CHOICES = (
        ("all", "All"),
        ("teachers", "Teachers"),
        ("parents", "Parents"),
        ("accountants", "Accountants"),
    )

    title = models.CharField(max_length=200)
    message = models.TextField()
    notification_type = models.CharField(max_length=10, choices=TYPE_CHOICES, default="info")
    target_audience = models.CharField(max_length=20, choices=AUDIENCE_CHOICES, default="all")
    recipient = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        null=True,
        blank=True,
        related_name="notifications",
        help_text="Leave empty to address the whole target audience"
    )
    sent_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="sent_notifications"
    )
    sent_date = models.DateTimeField(auto_now_add=True)
    is_read = models.BooleanField(default=False)
    read_by = models.ManyToManyField(
        settings.AUTH_USER_MODEL,
        blank=True,
        related_name="read_notifications"
    )

    class Meta:
        ordering = ["-sent_date"]
        indexes = [
            models.Index(fields=["recipient", "is_read"]),
            models.Index(fields=["sent_date"]),
        ]

    def __str__(self):
        return f"{self.title} ({self.notification_type})"

    def as_dict(self):
        return {
            "id": self.pk,
            "title": self.title,
            "message": self.message,
            "type": self.notification_type,
            "target_audience": self.target_audience,
            "sent_date": self.sent_date.isoformat() if self.sent_date else None,
            "is_read": self.is_read,
        }
