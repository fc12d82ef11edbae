import logging

from django.utils import timezone

from .exceptions import TransitionNotAllowed
from .models import Booking, Complaint
from .signals import booking_status_changed, complaint_updated, emit

logger = logging.getLogger(__name__)

BOOKING_TRANSITIONS = {
    Booking.STATUS_PENDING: {
        Booking.STATUS_APPROVED,
        Booking.STATUS_REJECTED,
        Booking.STATUS_CANCELLED,
    },
    Booking.STATUS_APPROVED: {
        Booking.STATUS_REJECTED,
        Booking.STATUS_CANCELLED,
    },
    Booking.STATUS_REJECTED: set(),
    Booking.STATUS_CANCELLED: set(),
}


def allowed_booking_targets(booking):
    return BOOKING_TRANSITIONS.get(booking.status, set())


def change_booking_status(booking, target, actor, reason=""):
    """
    Moves a booking along its lifecycle and emits `booking_status_changed`.
    Non-admins may only cancel their own bookings.
    """
    if target not in allowed_booking_targets(booking):
        raise TransitionNotAllowed(booking.status, target)
    if not actor.is_admin:
        if target != Booking.STATUS_CANCELLED or booking.user_id != actor.pk:
            raise TransitionNotAllowed(booking.status, target)

    previous = booking.status
    booking.status = target
    fields = ["status", "updated_at"]
    if reason:
        booking.admin_remarks = reason
        fields.append("admin_remarks")
    booking.save(update_fields=fields)

    logger.info(
        "Booking %s: %s -> %s by %s", booking.pk, previous, target, actor.email
    )
    emit(
        booking_status_changed,
        sender=Booking,
        booking=booking,
        previous=previous,
        actor=actor,
        reason=reason,
    )
    return booking


def update_complaint(complaint, actor, status=None, response=None):
    """
    Admin response and/or status change on a complaint. Resolving stamps
    who resolved it and when; reopening clears the stamp.
    """
    if not actor.is_admin:
        raise TransitionNotAllowed(complaint.status, status or complaint.status)

    valid = {value for value, _ in Complaint.STATUS_CHOICES}
    if status and status not in valid:
        raise TransitionNotAllowed(complaint.status, status)

    previous_status = complaint.status
    response = (response or "").strip()
    response_changed = bool(response) and response != complaint.admin_response

    if status:
        complaint.status = status
    if response_changed:
        complaint.admin_response = response
    if status == Complaint.STATUS_RESOLVED and previous_status != status:
        complaint.resolved_by_id = actor.pk
        complaint.resolved_at = timezone.now()
    elif complaint.is_open:
        complaint.resolved_by = None
        complaint.resolved_at = None
    complaint.save()

    logger.info(
        "Complaint %s updated by %s (status %s -> %s, response %s)",
        complaint.complaint_id, actor.email, previous_status, complaint.status,
        "changed" if response_changed else "unchanged",
    )
    emit(
        complaint_updated,
        sender=Complaint,
        complaint=complaint,
        previous_status=previous_status,
        response_changed=response_changed,
        actor=actor,
    )
    return complaint
