"""
Facility availability: overlap detection for bookings.

Times are "HH:MM" zero-padded 24-hour strings, so plain string comparison
orders them chronologically. Intervals are half-open, [start, end): a
booking ending at 10:00 does not clash with one starting at 10:00.
"""
import logging

from django.db import DatabaseError, transaction

from .exceptions import AvailabilityUnavailable, BookingConflict
from .models import Booking, Facility

logger = logging.getLogger(__name__)


def intervals_overlap(s1, e1, s2, e2):
    return s1 < e2 and s2 < e1


def find_conflicts(facility, date, start, end, exclude=None):
    """
    Pending/Approved bookings on `facility` and `date` whose interval
    overlaps [start, end). `exclude` drops one booking (the one being
    edited) from the scan.
    """
    qs = Booking.objects.filter(
        facility=facility,
        date=date,
        status__in=Booking.OCCUPYING_STATUSES,
        start_time__lt=end,
        end_time__gt=start,
    )
    if exclude is not None:
        qs = qs.exclude(pk=exclude.pk)
    return qs.order_by("start_time")


def first_conflict(facility, date, start, end, exclude=None):
    try:
        return find_conflicts(facility, date, start, end, exclude=exclude).first()
    except DatabaseError as exc:
        logger.error(
            "Availability lookup failed for facility %s on %s: %s",
            getattr(facility, "pk", facility), date, exc,
        )
        raise AvailabilityUnavailable(
            "Could not check availability right now. Please try again."
        ) from exc


def is_available(facility, date, start, end, exclude=None):
    return first_conflict(facility, date, start, end, exclude=exclude) is None


def _occupied(facility, date):
    return Booking.objects.filter(
        facility=facility, date=date, status__in=Booking.OCCUPYING_STATUSES
    ).order_by("start_time")


def day_slots(facility, date):
    """Occupied (start, end) pairs for a facility on one day, in order."""
    try:
        return list(_occupied(facility, date).values_list("start_time", "end_time"))
    except DatabaseError as exc:
        logger.error(
            "Day slot lookup failed for facility %s on %s: %s",
            getattr(facility, "pk", facility), date, exc,
        )
        raise AvailabilityUnavailable(
            "Could not load the day's bookings right now. Please try again."
        ) from exc


def _lock_facility(facility):
    # Serialises concurrent check-and-write on the same facility.
    return Facility.objects.select_for_update().get(pk=facility.pk)


def reserve_slot(facility, user, date, start, end, purpose):
    """
    Atomic check-and-insert of a Pending booking. Raises BookingConflict
    when the slot is taken, AvailabilityUnavailable when the store fails.
    """
    try:
        with transaction.atomic():
            locked = _lock_facility(facility)
            conflict = find_conflicts(locked, date, start, end).first()
            if conflict is not None:
                raise BookingConflict(conflict)
            booking = Booking.objects.create(
                facility=locked,
                user=user,
                date=date,
                start_time=start,
                end_time=end,
                purpose=purpose,
                status=Booking.STATUS_PENDING,
            )
    except DatabaseError as exc:
        logger.error("Reserving %s on %s failed: %s", facility, date, exc)
        raise AvailabilityUnavailable(
            "Could not save the booking right now. Please try again."
        ) from exc

    logger.info(
        "Booking %s created for %s on %s %s-%s",
        booking.pk, facility, date, start, end,
    )
    return booking


def reschedule(booking, date, start, end):
    """Moves a booking to a new slot, ignoring its own current interval."""
    try:
        with transaction.atomic():
            _lock_facility(booking.facility)
            conflict = find_conflicts(
                booking.facility, date, start, end, exclude=booking
            ).first()
            if conflict is not None:
                raise BookingConflict(conflict)
            booking.date = date
            booking.start_time = start
            booking.end_time = end
            booking.save(update_fields=["date", "start_time", "end_time", "updated_at"])
    except DatabaseError as exc:
        logger.error("Rescheduling booking %s failed: %s", booking.pk, exc)
        raise AvailabilityUnavailable(
            "Could not reschedule right now. Please try again."
        ) from exc

    logger.info("Booking %s moved to %s %s-%s", booking.pk, date, start, end)
    return booking
