"""
Per-user notifications, and the receivers that turn booking, complaint
and facility events into notifications.
"""
import logging

from django.core.paginator import Paginator
from django.dispatch import receiver
from django.utils import timezone

from .models import Booking, Complaint, CustomUser, Facility, Notification
from .signals import (
    booking_status_changed,
    booking_submitted,
    complaint_submitted,
    complaint_updated,
    facility_status_changed,
)

logger = logging.getLogger(__name__)

FILTERS = {
    "all": {},
    "unread": {"is_read": False},
    "read": {"is_read": True},
    "booking": {"type": Notification.TYPE_BOOKING},
    "complaint": {"type": Notification.TYPE_COMPLAINT},
    "system": {"type": Notification.TYPE_SYSTEM},
    "facility": {"type": Notification.TYPE_FACILITY},
}

COMPLAINT_STATUS_MESSAGES = {
    Complaint.STATUS_IN_PROGRESS: "Your complaint is now being reviewed by our team.",
    Complaint.STATUS_RESOLVED: "Your complaint has been resolved. Thank you for your patience.",
    Complaint.STATUS_CLOSED: "Your complaint has been closed.",
}


def create_notification(
    user,
    title,
    message,
    type=Notification.TYPE_GENERAL,
    priority="medium",
    related_id=None,
    related_type=None,
    data=None,
):
    notification = Notification.objects.create(
        user=user,
        title=title,
        message=message,
        type=type,
        priority=priority,
        related_id=related_id,
        related_type=related_type,
        data=data or {},
    )
    logger.info("Notification %s created for %s: %s", notification.notification_id, user.email, title)
    return notification


# ---------------- Booking ----------------

def notify_booking_approved(booking):
    return create_notification(
        booking.user,
        "Booking Approved",
        f"Your booking for {booking.facility_name} on {booking.date} has been approved by the admin.",
        type=Notification.TYPE_BOOKING,
        priority="high",
        related_id=booking.pk,
        related_type="booking",
        data={"status": "approved", "facility": booking.facility_name, "date": str(booking.date)},
    )


def notify_booking_rejected(booking, reason=""):
    if reason:
        message = (
            f"Your booking for {booking.facility_name} on {booking.date} has been rejected. "
            f"Reason: {reason}"
        )
    else:
        message = f"Your booking for {booking.facility_name} on {booking.date} has been rejected by the admin."
    return create_notification(
        booking.user,
        "Booking Rejected",
        message,
        type=Notification.TYPE_BOOKING,
        priority="high",
        related_id=booking.pk,
        related_type="booking",
        data={
            "status": "rejected",
            "facility": booking.facility_name,
            "date": str(booking.date),
            "reason": reason,
        },
    )


def notify_booking_cancelled_by_admin(booking, reason=""):
    message = f"Your booking for {booking.facility_name} on {booking.date} was cancelled by the admin."
    if reason:
        message += f" Reason: {reason}"
    return create_notification(
        booking.user,
        "Booking Cancelled",
        message,
        type=Notification.TYPE_BOOKING,
        priority="high",
        related_id=booking.pk,
        related_type="booking",
        data={"status": "cancelled", "facility": booking.facility_name, "date": str(booking.date)},
    )


def notify_admins_new_booking(booking):
    for admin in CustomUser.objects.filter(role=CustomUser.ADMIN, is_active=True):
        create_notification(
            admin,
            "New Booking Request",
            f"{booking.user.full_name} requested {booking.facility_name} on {booking.date} "
            f"from {booking.start_time} to {booking.end_time}.",
            type=Notification.TYPE_BOOKING,
            related_id=booking.pk,
            related_type="booking",
        )


# ---------------- Complaint ----------------

def notify_complaint_response(complaint):
    return create_notification(
        complaint.user,
        "Admin Response to Your Complaint",
        f'Admin has responded to your complaint "{complaint.subject}": {complaint.admin_response}',
        type=Notification.TYPE_COMPLAINT,
        priority="high",
        related_id=complaint.pk,
        related_type="complaint",
        data={"response": complaint.admin_response, "subject": complaint.subject},
    )


def notify_complaint_status_update(complaint):
    status = complaint.status
    return create_notification(
        complaint.user,
        f"Complaint Status: {status}",
        f'Your complaint "{complaint.subject}" status has been updated to {status}. '
        f"{COMPLAINT_STATUS_MESSAGES.get(status, '')}".strip(),
        type=Notification.TYPE_COMPLAINT,
        related_id=complaint.pk,
        related_type="complaint",
        data={"status": status, "subject": complaint.subject},
    )


def notify_admins_new_complaint(complaint):
    for admin in CustomUser.objects.filter(role=CustomUser.ADMIN, is_active=True):
        create_notification(
            admin,
            "New Complaint",
            f"#{complaint.complaint_id} [{complaint.priority}] {complaint.subject}",
            type=Notification.TYPE_COMPLAINT,
            priority="urgent" if complaint.priority == "Urgent" else "medium",
            related_id=complaint.pk,
            related_type="complaint",
        )


# ---------------- System / Facility ----------------

def notify_system_maintenance(user, title, message, scheduled_time=None):
    return create_notification(
        user,
        title,
        message,
        type=Notification.TYPE_SYSTEM,
        data={"scheduled_time": scheduled_time.isoformat() if scheduled_time else None},
    )


def notify_facility_available(facility):
    """
    Tells everyone who has booked `facility` before that it can be booked
    again. Returns the number of notifications created.
    """
    users = CustomUser.objects.filter(
        is_active=True, bookings__facility=facility
    ).distinct()
    count = 0
    for user in users:
        create_notification(
            user,
            "Facility Now Available",
            f'The facility "{facility.name}" is now available for booking.',
            type=Notification.TYPE_FACILITY,
            priority="low",
            related_id=facility.pk,
            related_type="facility",
            data={"facility": facility.name},
        )
        count += 1
    return count


# ---------------- Queries ----------------

def get_user_notifications(user, filter_name="all", page=1, per_page=10):
    qs = Notification.objects.filter(user=user, **FILTERS.get(filter_name, {}))
    return Paginator(qs, per_page).get_page(page)


def get_notification_counts(user):
    qs = Notification.objects.filter(user=user)
    return {
        "total": qs.count(),
        "unread": qs.filter(is_read=False).count(),
        "booking": qs.filter(type=Notification.TYPE_BOOKING).count(),
        "complaint": qs.filter(type=Notification.TYPE_COMPLAINT).count(),
        "system": qs.filter(type=Notification.TYPE_SYSTEM).count(),
        "facility": qs.filter(type=Notification.TYPE_FACILITY).count(),
    }


def recent_notifications(user, limit=10):
    return list(Notification.objects.filter(user=user)[:limit])


def mark_as_read(notification_id, user):
    return Notification.objects.filter(pk=notification_id, user=user).update(
        is_read=True, read_at=timezone.now()
    )


def mark_all_as_read(user):
    return Notification.objects.filter(user=user, is_read=False).update(
        is_read=True, read_at=timezone.now()
    )


def delete_notification(notification_id, user):
    deleted, _ = Notification.objects.filter(pk=notification_id, user=user).delete()
    return deleted


# ---------------- Receivers ----------------

@receiver(booking_submitted, dispatch_uid="campus.notify_booking_submitted")
def on_booking_submitted(sender, booking, **kwargs):
    notify_admins_new_booking(booking)


@receiver(booking_status_changed, dispatch_uid="campus.notify_booking_status")
def on_booking_status_changed(sender, booking, previous, actor, reason="", **kwargs):
    if booking.user_id is None:
        return
    if booking.status == Booking.STATUS_APPROVED:
        notify_booking_approved(booking)
    elif booking.status == Booking.STATUS_REJECTED:
        notify_booking_rejected(booking, reason)
    elif booking.status == Booking.STATUS_CANCELLED and actor.pk != booking.user_id:
        notify_booking_cancelled_by_admin(booking, reason)


@receiver(complaint_submitted, dispatch_uid="campus.notify_complaint_submitted")
def on_complaint_submitted(sender, complaint, **kwargs):
    notify_admins_new_complaint(complaint)


@receiver(complaint_updated, dispatch_uid="campus.notify_complaint_updated")
def on_complaint_updated(sender, complaint, previous_status, response_changed, **kwargs):
    if response_changed:
        notify_complaint_response(complaint)
    if complaint.status != previous_status:
        notify_complaint_status_update(complaint)


@receiver(facility_status_changed, dispatch_uid="campus.notify_facility_status")
def on_facility_status_changed(sender, facility, previous, **kwargs):
    if facility.status == Facility.STATUS_ACTIVE and previous != Facility.STATUS_ACTIVE:
        notify_facility_available(facility)
