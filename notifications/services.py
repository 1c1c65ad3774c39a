"""
Notification intents emitted by the result workflow and their default sink.

The workflow only builds NotificationIntent values; what happens to them is up
to the sink it was given. DatabaseNotificationSink stores a Notification row
and broadcasts it in-process so live listeners can push it on.
"""
import logging
from dataclasses import dataclass
from typing import Any, Optional

from django.db.models import Q
from django.dispatch import Signal

from .models import Notification

logger = logging.getLogger(__name__)

# kwargs: notification, intent
notification_broadcast = Signal()


@dataclass(frozen=True)
class NotificationIntent:
    recipient: Optional[Any]
    title: str
    message: str
    notification_type: str = "info"
    target_audience: str = "all"
    sent_by: Optional[Any] = None


class NotificationSink:
    def emit(self, intent: NotificationIntent):
        raise NotImplementedError


class DatabaseNotificationSink(NotificationSink):

    def emit(self, intent: NotificationIntent):
        notification = Notification.objects.create(
            title=intent.title,
            message=intent.message,
            notification_type=intent.notification_type,
            target_audience=intent.target_audience,
            recipient=intent.recipient,
            sent_by=intent.sent_by,
        )
        logger.info(
            "Notification %s (%s) queued for %s",
            notification.pk, intent.notification_type, intent.recipient or intent.target_audience,
        )

        # Delivery is best-effort: a failing listener must not undo the workflow step
        responses = notification_broadcast.send_robust(
            sender=Notification, notification=notification, intent=intent
        )
        for receiver, response in responses:
            if isinstance(response, Exception):
                logger.error(
                    "Notification listener %r failed: %s", receiver, response,
                    exc_info=response,
                )
        return notification


def notifications_for(user, unread_only=False):
    """Notifications addressed to the user directly or to everyone."""
    queryset = Notification.objects.filter(
        Q(recipient=user) | Q(recipient__isnull=True, target_audience="all")
    )
    if unread_only:
        queryset = queryset.exclude(read_by=user)
    return queryset


def mark_read(notification, user):
    notification.read_by.add(user)
    if notification.recipient_id == user.pk and not notification.is_read:
        notification.is_read = True
        notification.save(update_fields=["is_read"])
    return notification
