from django.db import transaction
from django.dispatch import Signal

# Sent once the transaction that changed the status has committed.
# kwargs: instance, previous_status, status, actor
score_status_changed = Signal()
result_status_changed = Signal()


def send_after_commit(signal, sender, instance, previous_status, actor):
    status = instance.status

    def _send():
        signal.send(
            sender=sender,
            instance=instance,
            previous_status=previous_status,
            status=status,
            actor=actor,
        )

    transaction.on_commit(_send)
