import logging
from collections import Counter

from django.conf import settings
from django.contrib import messages
from django.core.exceptions import ValidationError
from django.db.models import Q
from django.http import JsonResponse
from django.shortcuts import get_object_or_404, redirect, render
from django.utils import timezone
from django.utils.dateparse import parse_date
from django.views.decorators.http import require_GET, require_POST

from . import availability
from . import notifications as notification_service
from .auth_utils import authenticate_user, get_current_actor, hash_user_password, login_user, logout_user
from .decorators import login_required
from .exceptions import AvailabilityUnavailable, BookingConflict, TransitionNotAllowed
from .forms import BookingForm, ComplaintForm, LoginForm, RescheduleForm, SignupForm
from .models import Booking, Complaint, CustomUser, Facility
from .signals import booking_submitted, complaint_submitted, emit
from .transitions import change_booking_status
from .utils import csv_response, last_month_labels, normalize_hhmm, report_window

logger = logging.getLogger(__name__)


def _dashboard_for(actor):
    return "admin_dashboard" if actor.is_admin else "user_dashboard"


# ================= Public / Home =================

def home(request):
    actor = get_current_actor(request)
    if actor:
        return redirect(_dashboard_for(actor))
    facilities = Facility.objects.active()[:6]
    return render(request, "index.html", {"facilities": facilities})


# ================= Auth =================

def login_view(request):
    actor = get_current_actor(request)
    if actor:
        return redirect(_dashboard_for(actor))

    form = LoginForm(request.POST or None)
    error = None
    if request.method == "POST":
        if form.is_valid():
            user = authenticate_user(form.cleaned_data["email"], form.cleaned_data["password"])
            if user:
                login_user(request, user)
                logger.info("User %s logged in", user.email)
                return redirect("admin_dashboard" if user.is_admin else "user_dashboard")
            logger.warning("Failed login for %s", form.cleaned_data["email"])
            error = "Invalid credentials"
        else:
            error = "Please provide both email and password"

    return render(request, "auth/login.html", {"form": form, "error": error})


def signup_view(request):
    form = SignupForm(request.POST or None)
    if request.method == "POST" and form.is_valid():
        data = form.cleaned_data
        user = CustomUser.objects.create(
            full_name=data["full_name"],
            email=data["email"],
            contact=data["contact"],
            department=data["department"],
            password=hash_user_password(data["password"]),
            role=CustomUser.USER,
        )
        logger.info("New user registered: %s (%s)", user.email, user.user_id)
        messages.success(request, "Account created successfully! Please login with your credentials.")
        return redirect("login")

    return render(request, "auth/signup.html", {"form": form})


def logout_view(request):
    logout_user(request)
    return redirect("home")


# ================= User Dashboard =================

@login_required
def user_dashboard(request, actor):
    own = Booking.objects.filter(user_id=actor.pk)
    context = {
        "total_bookings": own.count(),
        "pending_bookings": own.filter(status=Booking.STATUS_PENDING).count(),
        "approved_bookings": own.filter(status=Booking.STATUS_APPROVED).count(),
        "available_facilities": Facility.objects.active().count(),
        "recent_bookings": own.select_related("facility")[:5],
    }
    return render(request, "user/dashboard.html", context)


@login_required
def profile(request, actor):
    user = get_object_or_404(CustomUser.objects.select_related("department"), pk=actor.pk)
    return render(request, "user/profile.html", {"profile": user})


@login_required
def facility_list(request, actor):
    facility_type = request.GET.get("type") or ""
    if facility_type:
        facilities = Facility.objects.by_type(facility_type)
    else:
        facilities = Facility.objects.order_by("name")
    return render(request, "user/facilities.html", {
        "facilities": facilities,
        "types": Facility.TYPE_CHOICES,
        "current_type": facility_type,
    })


# ================= Booking =================

@login_required
def book_facility(request, actor):
    form = BookingForm(request.POST or None, initial={"facility": request.GET.get("facility")})
    error, status = None, 200

    if request.method == "POST" and form.is_valid():
        data = form.cleaned_data
        try:
            booking = availability.reserve_slot(
                facility=data["facility"],
                user=get_object_or_404(CustomUser, pk=actor.pk),
                date=data["date"],
                start=data["start_time"],
                end=data["end_time"],
                purpose=data["purpose"],
            )
        except BookingConflict as exc:
            error, status = str(exc), 409
        except AvailabilityUnavailable as exc:
            error, status = str(exc), 503
        else:
            emit(booking_submitted, sender=Booking, booking=booking)
            messages.success(request, "Booking request submitted successfully")
            return redirect("my_bookings")

    return render(request, "user/booking.html", {"form": form, "error": error}, status=status)


@login_required
def my_bookings(request, actor):
    bookings = Booking.objects.filter(user_id=actor.pk).select_related("facility")
    return render(request, "user/bookings.html", {"bookings": bookings})


@require_POST
@login_required
def cancel_booking(request, actor, booking_id):
    booking = get_object_or_404(Booking, id=booking_id, user_id=actor.pk)
    if not booking.can_cancel:
        messages.error(request, "This booking can no longer be cancelled.")
        return redirect("my_bookings")
    try:
        change_booking_status(booking, Booking.STATUS_CANCELLED, actor)
    except TransitionNotAllowed as exc:
        messages.error(request, str(exc))
    else:
        messages.success(request, "Booking cancelled successfully")
    return redirect("my_bookings")


@login_required
def reschedule_booking(request, actor, booking_id):
    booking = get_object_or_404(Booking.objects.select_related("facility"), id=booking_id, user_id=actor.pk)
    if not booking.can_reschedule:
        messages.error(request, "Only upcoming Pending bookings can be rescheduled.")
        return redirect("my_bookings")

    form = RescheduleForm(request.POST or None, booking=booking)
    error, status = None, 200
    if request.method == "POST" and form.is_valid():
        data = form.cleaned_data
        try:
            availability.reschedule(booking, data["date"], data["start_time"], data["end_time"])
        except BookingConflict as exc:
            error, status = str(exc), 409
        except AvailabilityUnavailable as exc:
            error, status = str(exc), 503
        else:
            messages.success(request, "Rescheduled successfully.")
            return redirect("my_bookings")

    return render(request, "user/reschedule.html", {"form": form, "booking": booking, "error": error}, status=status)


# === Availability API ===

@require_GET
@login_required
def api_availability(request, actor):
    facility_pk = request.GET.get("facility") or ""
    if not facility_pk.isdigit():
        return JsonResponse({"error": "facility is required"}, status=400)
    facility = get_object_or_404(Facility, pk=facility_pk)
    try:
        day = parse_date(request.GET.get("date") or "")
        start = normalize_hhmm(request.GET.get("start"))
        end = normalize_hhmm(request.GET.get("end"))
    except (ValueError, ValidationError):
        return JsonResponse({"error": "date must be YYYY-MM-DD, start and end HH:MM"}, status=400)
    if day is None or start >= end:
        return JsonResponse({"error": "Invalid date/time range"}, status=400)

    try:
        available = availability.is_available(facility, day, start, end)
    except AvailabilityUnavailable as exc:
        return JsonResponse({"error": str(exc), "retryable": True}, status=503)
    return JsonResponse({
        "facility": facility.facility_id,
        "date": day.isoformat(),
        "start": start,
        "end": end,
        "available": available,
    })


@require_GET
@login_required
def api_day_slots(request, actor):
    facility_pk = request.GET.get("facility") or ""
    try:
        day = parse_date(request.GET.get("date") or "")
    except ValueError:
        day = None
    if not (facility_pk.isdigit() and day):
        return JsonResponse([], safe=False)
    facility = get_object_or_404(Facility, pk=facility_pk)
    try:
        slots = availability.day_slots(facility, day)
    except AvailabilityUnavailable as exc:
        return JsonResponse({"error": str(exc), "retryable": True}, status=503)
    return JsonResponse([{"start": s, "end": e} for s, e in slots], safe=False)


# ================= Complaints =================

@login_required
def complaints(request, actor):
    return render(request, "user/complaints.html", {
        "complaints": Complaint.objects.filter(user_id=actor.pk),
        "form": ComplaintForm(),
    })


@require_POST
@login_required
def submit_complaint(request, actor):
    form = ComplaintForm(request.POST)
    if not form.is_valid():
        messages.error(request, "Subject and description are required")
        return redirect("complaints")

    complaint = form.save(commit=False)
    complaint.subject = complaint.subject.strip()
    complaint.description = complaint.description.strip()
    complaint.user_id = actor.pk
    complaint.save()
    logger.info("Complaint %s submitted by %s", complaint.complaint_id, actor.email)

    emit(complaint_submitted, sender=Complaint, complaint=complaint)
    messages.success(request, "Complaint submitted successfully! We will review it soon.")
    return redirect("complaints")


@login_required
def complaint_detail(request, actor, complaint_id):
    complaint = Complaint.objects.select_related("resolved_by").filter(pk=complaint_id, user_id=actor.pk).first()
    if complaint is None:
        messages.error(request, "Complaint not found")
        return redirect("complaints")
    return render(request, "user/complaint_detail.html", {"complaint": complaint})


# ================= Search =================

@login_required
def search(request, actor):
    term = (request.GET.get("q") or "").strip()
    search_type = request.GET.get("type") or "all"
    limit = settings.EDUNEXUS_SEARCH_LIMIT
    results = {"facilities": [], "bookings": [], "complaints": []}

    if term:
        if search_type in ("all", "facilities"):
            results["facilities"] = list(Facility.objects.filter(
                Q(name__icontains=term)
                | Q(facility_type__icontains=term)
                | Q(location__icontains=term)
                | Q(description__icontains=term)
            )[:limit])
        if search_type in ("all", "bookings"):
            results["bookings"] = list(Booking.objects.filter(
                Q(purpose__icontains=term) | Q(status__icontains=term),
                user_id=actor.pk,
            ).select_related("facility")[:limit])
        if search_type in ("all", "complaints"):
            results["complaints"] = list(Complaint.objects.filter(
                Q(subject__icontains=term)
                | Q(description__icontains=term)
                | Q(category__icontains=term)
                | Q(status__icontains=term),
                user_id=actor.pk,
            )[:limit])

    total = sum(len(v) for v in results.values())
    return render(request, "user/search_results.html", {
        "search_term": term,
        "search_type": search_type,
        "total_results": total,
        **results,
    })


# ================= Reports =================

@login_required
def reports(request, actor):
    period = request.GET.get("period") or "3months"
    start_str, end_str = request.GET.get("startDate", ""), request.GET.get("endDate", "")
    start, end = report_window(period, timezone.now(), start_str, end_str)

    bookings = Booking.objects.filter(user_id=actor.pk).select_related("facility")
    user_complaints = Complaint.objects.filter(user_id=actor.pk)
    if start:
        bookings = bookings.filter(created_at__gte=start)
        user_complaints = user_complaints.filter(created_at__gte=start)
    if end:
        bookings = bookings.filter(created_at__lt=end)
        user_complaints = user_complaints.filter(created_at__lt=end)

    bookings = list(bookings)
    user_complaints = list(user_complaints)
    by_status = Counter(b.status for b in bookings)
    stats = {
        "total_bookings": len(bookings),
        "approved_bookings": by_status[Booking.STATUS_APPROVED],
        "pending_bookings": by_status[Booking.STATUS_PENDING],
        "rejected_bookings": by_status[Booking.STATUS_REJECTED],
        "total_complaints": len(user_complaints),
        "resolved_complaints": sum(1 for c in user_complaints if c.status == Complaint.STATUS_RESOLVED),
        "pending_complaints": sum(1 for c in user_complaints if c.is_open),
    }

    facility_usage = Counter(b.facility_name for b in bookings)
    labels = last_month_labels(timezone.localdate())
    monthly_trends = dict.fromkeys(labels, 0)
    for b in bookings:
        label = timezone.localtime(b.created_at).strftime("%b %Y")
        if label in monthly_trends:
            monthly_trends[label] += 1

    return render(request, "user/reports.html", {
        "bookings": bookings,
        "complaints": user_complaints,
        "stats": stats,
        "facility_usage": dict(facility_usage.most_common()),
        "monthly_trends": monthly_trends,
        "current_period": period,
        "start_date": start_str,
        "end_date": end_str,
    })


@login_required
def reports_export(request, actor):
    bookings = Booking.objects.filter(user_id=actor.pk).select_related("facility")
    rows = (
        [
            b.date.isoformat(),
            b.facility_name,
            b.facility.facility_type if b.facility else "",
            b.facility.location if b.facility else "",
            b.start_time,
            b.end_time,
            b.purpose,
            b.status,
        ]
        for b in bookings
    )
    return csv_response(
        "my-bookings-report.csv",
        ["Date", "Facility", "Type", "Location", "Start Time", "End Time", "Purpose", "Status"],
        rows,
    )


# ================= Notifications =================

@login_required
def notification_list(request, actor):
    current_filter = request.GET.get("filter") or "all"
    if current_filter not in notification_service.FILTERS:
        current_filter = "all"
    page_obj = notification_service.get_user_notifications(
        actor.pk, current_filter, request.GET.get("page"), settings.EDUNEXUS_PAGE_SIZE
    )
    return render(request, "user/notifications.html", {
        "page_obj": page_obj,
        "notifications": page_obj.object_list,
        "counts": notification_service.get_notification_counts(actor.pk),
        "current_filter": current_filter,
    })


@require_POST
@login_required
def mark_notification_read(request, actor, notif_id):
    notification_service.mark_as_read(notif_id, actor.pk)
    messages.success(request, "Notification marked as read")
    return redirect("notifications")


@require_POST
@login_required
def mark_all_notifications_read(request, actor):
    notification_service.mark_all_as_read(actor.pk)
    messages.success(request, "All notifications marked as read")
    return redirect("notifications")


@require_POST
@login_required
def delete_notification(request, actor, notif_id):
    if notification_service.delete_notification(notif_id, actor.pk):
        messages.success(request, "Notification deleted")
    else:
        messages.error(request, "Notification not found")
    return redirect("notifications")


@require_GET
@login_required
def api_unread_count(request, actor):
    counts = notification_service.get_notification_counts(actor.pk)
    return JsonResponse({"unread": counts["unread"]})


@require_GET
@login_required
def api_recent_notifications(request, actor):
    recent = notification_service.recent_notifications(actor.pk)
    return JsonResponse({
        "notifications": [
            {
                "id": n.pk,
                "title": n.title,
                "message": n.message,
                "type": n.type,
                "priority": n.priority,
                "is_read": n.is_read,
                "created_at": n.created_at.isoformat(),
            }
            for n in recent
        ],
        "unreadCount": notification_service.get_notification_counts(actor.pk)["unread"],
    })
