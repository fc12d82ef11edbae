"""
State-change events. Transition and admin code emits, notification code listens.

All senders go through `emit`, which uses `send_robust` so a failing
receiver is logged and never breaks the action that fired the event.
"""
import logging

from django.dispatch import Signal

logger = logging.getLogger(__name__)

# kwargs: booking
booking_submitted = Signal()
# kwargs: booking, previous, actor, reason
booking_status_changed = Signal()
# kwargs: complaint
complaint_submitted = Signal()
# kwargs: complaint, previous_status, response_changed, actor
complaint_updated = Signal()
# kwargs: facility, previous, actor
facility_status_changed = Signal()


def emit(signal, sender, **kwargs):
    results = signal.send_robust(sender=sender, **kwargs)
    for receiver, outcome in results:
        if isinstance(outcome, Exception):
            logger.error(
                "Receiver %s failed for %s event: %s",
                getattr(receiver, "__qualname__", receiver),
                sender.__name__,
                outcome,
                exc_info=(type(outcome), outcome, outcome.__traceback__),
            )
    return results
