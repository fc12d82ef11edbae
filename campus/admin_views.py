import logging

from django.contrib import messages
from django.core.paginator import Paginator
from django.shortcuts import get_object_or_404, redirect, render
from django.utils.dateparse import parse_date
from django.views.decorators.http import require_POST

from .decorators import admin_required
from .exceptions import TransitionNotAllowed
from .forms import BookingDecisionForm, ComplaintResponseForm, FacilityForm
from .models import Booking, Complaint, CustomUser, Facility
from .signals import emit, facility_status_changed
from .transitions import allowed_booking_targets, change_booking_status, update_complaint
from .utils import csv_response

logger = logging.getLogger(__name__)

PAGE_SIZE = 20


def _back(request, fallback):
    # Return to the filtered list the action came from
    target = request.POST.get("next")
    if target and target.startswith("/admin/"):
        return redirect(target)
    return redirect(fallback)


# ================= Dashboard =================

@admin_required
def admin_dashboard(request, actor):
    context = {
        "welcome_message": f"Welcome, {actor.full_name}!",
        "total_bookings": Booking.objects.count(),
        "pending_bookings": Booking.objects.filter(status=Booking.STATUS_PENDING).count(),
        "approved_bookings": Booking.objects.filter(status=Booking.STATUS_APPROVED).count(),
        "rejected_bookings": Booking.objects.filter(status=Booking.STATUS_REJECTED).count(),
        "total_users": CustomUser.objects.count(),
        "total_facilities": Facility.objects.active().count(),
        "recent_bookings": Booking.objects.select_related("facility", "user")[:10],
    }
    return render(request, "admin/dashboard.html", context)


# ================= Facilities =================

@admin_required
def manage_facilities(request, actor):
    return render(request, "admin/manage_facilities.html", {
        "facilities": Facility.objects.order_by("-created_at"),
        "form": FacilityForm(),
    })


@require_POST
@admin_required
def add_facility(request, actor):
    form = FacilityForm(request.POST)
    if not form.is_valid():
        messages.error(request, "Please fill in all required fields (Name, Type, Location, Capacity)")
        return render(request, "admin/manage_facilities.html", {
            "facilities": Facility.objects.order_by("-created_at"),
            "form": form,
        }, status=400)

    facility = form.save(commit=False)
    facility.created_by_id = actor.pk
    facility.save()
    logger.info("Facility %s (%s) added by %s", facility.facility_id, facility.name, actor.email)
    messages.success(request, "Facility added successfully!")
    return redirect("manage_facilities")


@admin_required
def update_facility(request, actor, pk):
    facility = get_object_or_404(Facility, pk=pk)
    previous = facility.status
    form = FacilityForm(request.POST or None, instance=facility)
    if request.method == "POST":
        if form.is_valid():
            form.save()
            if facility.status != previous:
                emit(facility_status_changed, sender=Facility, facility=facility, previous=previous, actor=actor)
            logger.info("Facility %s updated by %s", facility.facility_id, actor.email)
            messages.success(request, "Facility updated successfully!")
            return redirect("manage_facilities")
        messages.error(request, "Failed to update facility.")
    return render(request, "admin/edit_facility.html", {"form": form, "facility": facility})


@require_POST
@admin_required
def delete_facility(request, actor, pk):
    facility = get_object_or_404(Facility, pk=pk)
    name = facility.name
    kept = facility.bookings.count()
    facility.delete()
    logger.info("Facility %s deleted by %s (%d bookings kept)", name, actor.email, kept)
    messages.warning(request, f"Facility '{name}' deleted successfully!")
    return redirect("manage_facilities")


@require_POST
@admin_required
def toggle_facility(request, actor, pk):
    facility = get_object_or_404(Facility, pk=pk)
    previous = facility.status
    facility.status = (
        Facility.STATUS_INACTIVE if facility.is_active else Facility.STATUS_ACTIVE
    )
    facility.save(update_fields=["status", "updated_at"])
    logger.info("Facility %s is now %s", facility.facility_id, facility.status)
    emit(facility_status_changed, sender=Facility, facility=facility, previous=previous, actor=actor)
    messages.success(request, "Facility status updated successfully!")
    return redirect("manage_facilities")


# ================= Bookings =================

def _filtered_bookings(request):
    qs = Booking.objects.select_related("facility", "user")
    status = request.GET.get("status")
    facility_pk = request.GET.get("facility")
    try:
        day = parse_date(request.GET.get("date") or "")
    except ValueError:
        day = None
    if status:
        qs = qs.filter(status=status)
    if facility_pk and facility_pk.isdigit():
        qs = qs.filter(facility_id=facility_pk)
    if day:
        qs = qs.filter(date=day)
    return qs


@admin_required
def manage_bookings(request, actor):
    page_obj = Paginator(_filtered_bookings(request), PAGE_SIZE).get_page(request.GET.get("page"))
    for booking in page_obj.object_list:
        booking.targets = sorted(allowed_booking_targets(booking))
    return render(request, "admin/manage_bookings.html", {
        "page_obj": page_obj,
        "facilities": Facility.objects.order_by("name"),
        "statuses": Booking.STATUS_CHOICES,
        "filters": request.GET,
    })


@require_POST
@admin_required
def update_booking_status(request, actor, booking_id):
    booking = get_object_or_404(Booking.objects.select_related("facility", "user"), id=booking_id)
    form = BookingDecisionForm(request.POST)
    if not form.is_valid():
        messages.error(request, "Invalid status.")
        return _back(request, "manage_bookings")

    target = form.cleaned_data["status"]
    try:
        change_booking_status(booking, target, actor, reason=form.cleaned_data["reason"].strip())
    except TransitionNotAllowed as exc:
        messages.error(request, str(exc))
    else:
        messages.success(request, f"Booking {target.lower()}.")
    return _back(request, "manage_bookings")


@require_POST
@admin_required
def delete_booking(request, actor, booking_id):
    booking = get_object_or_404(Booking, id=booking_id)
    booking.delete()
    logger.info("Booking %s deleted by %s", booking_id, actor.email)
    messages.warning(request, "Booking deleted.")
    return _back(request, "manage_bookings")


@admin_required
def export_bookings(request, actor):
    rows = (
        [
            b.date.isoformat(),
            b.facility_name,
            b.facility.facility_type if b.facility else "",
            b.user_name,
            b.user_email,
            b.start_time,
            b.end_time,
            b.purpose,
            b.status,
            b.created_at.isoformat(),
        ]
        for b in _filtered_bookings(request)
    )
    return csv_response(
        "bookings.csv",
        ["Date", "Facility", "Type", "User", "Email", "Start Time", "End Time", "Purpose", "Status", "Created"],
        rows,
    )


# ================= Users =================

@admin_required
def manage_users(request, actor):
    users = CustomUser.objects.select_related("department").order_by("user_id")
    return render(request, "admin/manage_users.html", {"users": users})


@require_POST
@admin_required
def toggle_user(request, actor, pk):
    target = get_object_or_404(CustomUser, pk=pk)
    if target.pk == actor.pk:
        messages.error(request, "You cannot deactivate your own account.")
        return redirect("manage_users")
    target.is_active = not target.is_active
    target.save(update_fields=["is_active"])
    logger.info("User %s active=%s (by %s)", target.email, target.is_active, actor.email)
    messages.success(request, f"{target.full_name} is now {'active' if target.is_active else 'inactive'}.")
    return redirect("manage_users")


@require_POST
@admin_required
def delete_user(request, actor, pk):
    target = get_object_or_404(CustomUser, pk=pk)
    if target.pk == actor.pk:
        messages.error(request, "You cannot delete your own account.")
        return redirect("manage_users")
    email = target.email
    kept = target.bookings.count()
    target.delete()
    logger.info("User %s deleted by %s (%d bookings kept)", email, actor.email, kept)
    messages.warning(request, f"User {email} removed.")
    return redirect("manage_users")


# ================= Complaints =================

@admin_required
def manage_complaints(request, actor):
    qs = Complaint.objects.select_related("user", "resolved_by")
    status = request.GET.get("status")
    if status:
        qs = qs.filter(status=status)
    page_obj = Paginator(qs, PAGE_SIZE).get_page(request.GET.get("page"))
    return render(request, "admin/manage_complaints.html", {
        "page_obj": page_obj,
        "statuses": Complaint.STATUS_CHOICES,
        "current_status": status or "",
        "form": ComplaintResponseForm(),
    })


@require_POST
@admin_required
def respond_complaint(request, actor, pk):
    complaint = get_object_or_404(Complaint.objects.select_related("user"), pk=pk)
    form = ComplaintResponseForm(request.POST)
    if not form.is_valid():
        messages.error(request, "Provide a response or a new status.")
        return _back(request, "manage_complaints")
    try:
        update_complaint(
            complaint,
            actor,
            status=form.cleaned_data["status"] or None,
            response=form.cleaned_data["admin_response"],
        )
    except TransitionNotAllowed as exc:
        messages.error(request, str(exc))
    else:
        messages.success(request, f"Complaint #{complaint.complaint_id} updated.")
    return _back(request, "manage_complaints")


@admin_required
def export_complaints(request, actor):
    rows = (
        [
            c.complaint_id,
            c.subject,
            c.category,
            c.priority,
            c.status,
            c.user.email,
            c.admin_response,
            c.created_at.isoformat(),
            c.resolved_at.isoformat() if c.resolved_at else "",
        ]
        for c in Complaint.objects.select_related("user")
    )
    return csv_response(
        "complaints.csv",
        ["ID", "Subject", "Category", "Priority", "Status", "User", "Response", "Created", "Resolved"],
        rows,
    )
