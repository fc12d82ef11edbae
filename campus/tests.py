import json
from datetime import date, timedelta
from io import StringIO
from unittest.mock import patch

from django.core.exceptions import ValidationError
from django.core.management import call_command
from django.db import DatabaseError
from django.test import TestCase, Client, override_settings
from django.urls import reverse
from django.utils import timezone

from campus import availability
from campus.auth_utils import Actor, hash_user_password
from campus.exceptions import AvailabilityUnavailable, BookingConflict, TransitionNotAllowed
from campus.forms import BookingForm, FacilityForm
from campus.models import Booking, Complaint, CustomUser, Department, Facility, Notification
from campus.transitions import change_booking_status, update_complaint
from campus.utils import normalize_hhmm, report_window

PASSWORD = "test@123"


@override_settings(PASSWORD_HASHERS=["django.contrib.auth.hashers.MD5PasswordHasher"])
class CampusTestCase(TestCase):

    def setUp(self):
        self.client = Client()

        self.department = Department.objects.create(dept_id=1, dept_name="Computer Science", dept_head="Dr. John Smith")

        self.admin = CustomUser.objects.create(
            full_name="System Admin", email="admin@smartcampus.edu",
            role=CustomUser.ADMIN, password=hash_user_password(PASSWORD),
        )
        self.student = CustomUser.objects.create(
            full_name="Anita Antony", email="anita@smartcampus.edu", contact="9876543210",
            department=self.department, password=hash_user_password(PASSWORD),
        )
        self.other = CustomUser.objects.create(
            full_name="Rahul Menon", email="rahul@smartcampus.edu",
            password=hash_user_password(PASSWORD),
        )

        self.hall = Facility.objects.create(
            name="Main Auditorium", facility_type=Facility.AUDITORIUM, capacity=300,
            location="Academic Block A", amenities=["Projector", "AC"],
            opens_at="08:00", closes_at="20:00", created_by=self.admin,
        )
        self.lab = Facility.objects.create(
            name="Computer Lab 1", facility_type=Facility.COMPUTER_LAB, capacity=40,
            location="IT Block",
        )

        self.day = timezone.localdate() + timedelta(days=2)

    def login(self, user):
        return self.client.post(reverse("login"), {"email": user.email, "password": PASSWORD})

    def book(self, start, end, status=Booking.STATUS_APPROVED, user=None, facility=None, day=None):
        return Booking.objects.create(
            facility=facility or self.hall, user=user or self.student,
            date=day or self.day, start_time=start, end_time=end,
            purpose="Seminar", status=status,
        )


# ==========================================
# 1. AVAILABILITY RESOLVER
# ==========================================

class AvailabilityTests(CampusTestCase):

    def test_intervals_are_half_open(self):
        self.assertTrue(availability.intervals_overlap("10:00", "11:00", "10:30", "11:30"))
        self.assertTrue(availability.intervals_overlap("10:00", "12:00", "10:30", "11:00"))
        self.assertFalse(availability.intervals_overlap("10:00", "11:00", "11:00", "12:00"))
        self.assertFalse(availability.intervals_overlap("11:00", "12:00", "10:00", "11:00"))

    def test_booked_morning_scenario(self):
        may_first = date(2024, 5, 1)
        self.book("09:00", "10:00", day=may_first)
        self.assertFalse(availability.is_available(self.hall, may_first, "09:30", "10:30"))
        self.assertTrue(availability.is_available(self.hall, may_first, "10:00", "11:00"))
        self.assertTrue(availability.is_available(self.hall, date(2024, 5, 2), "09:00", "10:00"))

    def test_overlapping_slot_is_unavailable(self):
        self.book("10:00", "11:00")
        self.assertFalse(availability.is_available(self.hall, self.day, "10:30", "11:30"))
        self.assertFalse(availability.is_available(self.hall, self.day, "09:00", "12:00"))

    def test_adjacent_slots_are_available(self):
        self.book("10:00", "11:00")
        self.assertTrue(availability.is_available(self.hall, self.day, "11:00", "12:00"))
        self.assertTrue(availability.is_available(self.hall, self.day, "09:00", "10:00"))

    def test_pending_booking_occupies_slot(self):
        self.book("10:00", "11:00", status=Booking.STATUS_PENDING)
        self.assertFalse(availability.is_available(self.hall, self.day, "10:00", "11:00"))

    def test_cancelled_and_rejected_bookings_do_not_block(self):
        self.book("10:00", "11:00", status=Booking.STATUS_CANCELLED)
        self.book("10:00", "11:00", status=Booking.STATUS_REJECTED)
        self.assertTrue(availability.is_available(self.hall, self.day, "10:00", "11:00"))

    def test_other_date_and_facility_do_not_block(self):
        self.book("10:00", "11:00", day=self.day + timedelta(days=1))
        self.book("10:00", "11:00", facility=self.lab)
        self.assertTrue(availability.is_available(self.hall, self.day, "10:00", "11:00"))

    def test_booking_does_not_conflict_with_itself(self):
        booking = self.book("10:00", "11:00")
        self.assertFalse(availability.is_available(self.hall, self.day, "10:30", "11:30"))
        self.assertTrue(availability.is_available(self.hall, self.day, "10:30", "11:30", exclude=booking))
        self.assertTrue(self.hall.is_available_at(self.day, "10:00", "11:00", exclude=booking))

    def test_find_conflicts_lists_every_overlap_in_order(self):
        late = self.book("11:00", "12:00")
        early = self.book("09:00", "10:30", user=self.other)
        conflicts = list(availability.find_conflicts(self.hall, self.day, "10:00", "11:30"))
        self.assertEqual(conflicts, [early, late])

    def test_store_failure_is_not_reported_as_available(self):
        with patch("campus.availability.find_conflicts", side_effect=DatabaseError("db down")):
            with self.assertRaises(AvailabilityUnavailable) as ctx:
                availability.is_available(self.hall, self.day, "10:00", "11:00")
        self.assertTrue(ctx.exception.retryable)

    def test_reserve_slot_creates_pending_booking(self):
        booking = availability.reserve_slot(self.hall, self.student, self.day, "10:00", "11:00", "Talk")
        self.assertEqual(booking.status, Booking.STATUS_PENDING)
        self.assertFalse(availability.is_available(self.hall, self.day, "10:00", "11:00"))

    def test_reserve_slot_rejects_overlap(self):
        existing = self.book("10:00", "11:00")
        with self.assertRaises(BookingConflict) as ctx:
            availability.reserve_slot(self.hall, self.other, self.day, "10:30", "11:30", "Talk")
        self.assertEqual(ctx.exception.conflict, existing)
        self.assertIn("Main Auditorium is already booked", str(ctx.exception))
        self.assertEqual(Booking.objects.count(), 1)

    def test_reserve_slot_maps_store_failure(self):
        with patch("campus.availability._lock_facility", side_effect=DatabaseError("db down")):
            with self.assertRaises(AvailabilityUnavailable):
                availability.reserve_slot(self.hall, self.student, self.day, "10:00", "11:00", "Talk")
        self.assertEqual(Booking.objects.count(), 0)

    def test_reschedule_ignores_own_interval(self):
        booking = self.book("10:00", "11:00", status=Booking.STATUS_PENDING)
        self.book("12:00", "13:00", user=self.other)

        availability.reschedule(booking, self.day, "10:30", "11:30")
        booking.refresh_from_db()
        self.assertEqual((booking.start_time, booking.end_time), ("10:30", "11:30"))

        with self.assertRaises(BookingConflict):
            availability.reschedule(booking, self.day, "12:30", "13:30")
        booking.refresh_from_db()
        self.assertEqual(booking.start_time, "10:30")

    def test_day_slots_lists_occupied_intervals(self):
        self.book("14:00", "15:00")
        self.book("10:00", "12:00", status=Booking.STATUS_PENDING)
        self.book("12:00", "13:00", status=Booking.STATUS_CANCELLED)
        self.assertEqual(
            availability.day_slots(self.hall, self.day),
            [("10:00", "12:00"), ("14:00", "15:00")],
        )


# ==========================================
# 2. BOOKING FLOW
# ==========================================

class BookingViewTests(CampusTestCase):

    def booking_data(self, start="10:00", end="11:00", **extra):
        data = {
            "facility": self.hall.pk,
            "date": self.day.isoformat(),
            "start_time": start,
            "end_time": end,
            "purpose": "Guest lecture",
        }
        data.update(extra)
        return data

    def test_booking_success_notifies_admins(self):
        self.login(self.student)
        response = self.client.post(reverse("book_facility"), self.booking_data())
        self.assertRedirects(response, reverse("my_bookings"))

        booking = Booking.objects.get()
        self.assertEqual(booking.user, self.student)
        self.assertEqual(booking.status, Booking.STATUS_PENDING)
        self.assertTrue(Notification.objects.filter(user=self.admin, title="New Booking Request").exists())

    def test_conflicting_booking_returns_409(self):
        self.book("10:00", "11:00", user=self.other)
        self.login(self.student)
        response = self.client.post(reverse("book_facility"), self.booking_data("10:30", "11:30"))
        self.assertEqual(response.status_code, 409)
        self.assertContains(response, "is already booked", status_code=409)
        self.assertEqual(Booking.objects.count(), 1)

    def test_adjacent_booking_is_accepted(self):
        self.book("10:00", "11:00", user=self.other)
        self.login(self.student)
        response = self.client.post(reverse("book_facility"), self.booking_data("11:00", "12:00"))
        self.assertEqual(response.status_code, 302)
        self.assertEqual(Booking.objects.count(), 2)

    def test_cancelled_booking_frees_slot(self):
        self.book("10:00", "11:00", user=self.other, status=Booking.STATUS_CANCELLED)
        self.login(self.student)
        response = self.client.post(reverse("book_facility"), self.booking_data())
        self.assertEqual(response.status_code, 302)

    def test_store_failure_returns_503(self):
        self.login(self.student)
        with patch("campus.availability._lock_facility", side_effect=DatabaseError("db down")):
            response = self.client.post(reverse("book_facility"), self.booking_data())
        self.assertEqual(response.status_code, 503)
        self.assertEqual(Booking.objects.count(), 0)

    def test_user_cancels_own_booking(self):
        booking = self.book("10:00", "11:00")
        self.login(self.student)
        response = self.client.post(reverse("cancel_booking", args=[booking.id]))
        self.assertRedirects(response, reverse("my_bookings"))
        booking.refresh_from_db()
        self.assertEqual(booking.status, Booking.STATUS_CANCELLED)
        # Own cancellation does not notify the owner
        self.assertFalse(Notification.objects.filter(user=self.student).exists())

    def test_user_cannot_cancel_someone_elses_booking(self):
        booking = self.book("10:00", "11:00", user=self.other)
        self.login(self.student)
        response = self.client.post(reverse("cancel_booking", args=[booking.id]))
        self.assertEqual(response.status_code, 404)
        booking.refresh_from_db()
        self.assertEqual(booking.status, Booking.STATUS_APPROVED)

    def test_reschedule_view(self):
        booking = self.book("10:00", "11:00", status=Booking.STATUS_PENDING)
        self.book("12:00", "13:00", user=self.other)
        self.login(self.student)
        url = reverse("reschedule_booking", args=[booking.id])

        response = self.client.post(url, {"date": self.day.isoformat(), "start_time": "12:30", "end_time": "13:30"})
        self.assertContains(response, "is already booked", status_code=409)

        response = self.client.post(url, {"date": self.day.isoformat(), "start_time": "10:30", "end_time": "11:30"})
        self.assertRedirects(response, reverse("my_bookings"))
        booking.refresh_from_db()
        self.assertEqual(booking.start_time, "10:30")

    def test_approved_booking_cannot_be_rescheduled(self):
        booking = self.book("10:00", "11:00")
        self.login(self.student)
        response = self.client.get(reverse("reschedule_booking", args=[booking.id]))
        self.assertRedirects(response, reverse("my_bookings"))

    def test_reschedule_store_failure_returns_503(self):
        booking = self.book("10:00", "11:00", status=Booking.STATUS_PENDING)
        self.login(self.student)
        with patch("campus.availability._lock_facility", side_effect=DatabaseError("db down")):
            response = self.client.post(
                reverse("reschedule_booking", args=[booking.id]),
                {"date": self.day.isoformat(), "start_time": "12:00", "end_time": "13:00"},
            )
        self.assertEqual(response.status_code, 503)
        booking.refresh_from_db()
        self.assertEqual(booking.start_time, "10:00")


class BookingFormTests(CampusTestCase):

    def form(self, **overrides):
        data = {
            "facility": self.hall.pk,
            "date": self.day.isoformat(),
            "start_time": "10:00",
            "end_time": "11:00",
            "purpose": "Workshop",
        }
        data.update(overrides)
        return BookingForm(data)

    def test_valid_form_normalizes_times(self):
        form = self.form(start_time="9:00", end_time="10:30:00")
        self.assertTrue(form.is_valid(), form.errors)
        self.assertEqual(form.cleaned_data["start_time"], "09:00")
        self.assertEqual(form.cleaned_data["end_time"], "10:30")

    def test_end_must_follow_start(self):
        form = self.form(start_time="11:00", end_time="11:00")
        self.assertFalse(form.is_valid())
        self.assertIn("End time must be after start time.", form.non_field_errors())

    def test_past_date_rejected(self):
        form = self.form(date=(timezone.localdate() - timedelta(days=1)).isoformat())
        self.assertFalse(form.is_valid())
        self.assertIn("date", form.errors)

    def test_outside_opening_hours_rejected(self):
        form = self.form(start_time="19:00", end_time="21:00")
        self.assertFalse(form.is_valid())
        self.assertIn("Main Auditorium is open from 08:00 to 20:00.", form.non_field_errors())

    def test_inactive_facility_not_bookable(self):
        self.hall.status = Facility.STATUS_MAINTENANCE
        self.hall.save()
        form = self.form()
        self.assertFalse(form.is_valid())
        self.assertIn("facility", form.errors)

    def test_bad_time_format(self):
        with self.assertRaises(ValidationError):
            normalize_hhmm("25:00")
        self.assertFalse(self.form(start_time="noon").is_valid())

    def test_same_day_slot_must_start_in_future(self):
        noon = timezone.localtime().replace(hour=12, minute=0, second=0, microsecond=0)
        today = noon.date().isoformat()
        with patch("django.utils.timezone.localtime", return_value=noon):
            late = self.form(date=today, start_time="11:00", end_time="13:00")
            self.assertFalse(late.is_valid())
            self.assertIn("start_time", late.errors)
            self.assertTrue(self.form(date=today, start_time="12:30", end_time="13:30").is_valid())


# ==========================================
# 3. TRANSITIONS & NOTIFICATIONS
# ==========================================

class TransitionTests(CampusTestCase):

    def test_admin_approval_notifies_user(self):
        booking = self.book("10:00", "11:00", status=Booking.STATUS_PENDING)
        self.login(self.admin)
        self.client.post(reverse("update_booking_status", args=[booking.id]), {"status": "Approved"})

        booking.refresh_from_db()
        self.assertEqual(booking.status, Booking.STATUS_APPROVED)
        self.assertTrue(Notification.objects.filter(user=self.student, title="Booking Approved").exists())

    def test_admin_rejection_carries_reason(self):
        booking = self.book("10:00", "11:00", status=Booking.STATUS_PENDING)
        self.login(self.admin)
        self.client.post(
            reverse("update_booking_status", args=[booking.id]),
            {"status": "Rejected", "reason": "Exam week"},
        )

        booking.refresh_from_db()
        self.assertEqual(booking.status, Booking.STATUS_REJECTED)
        self.assertEqual(booking.admin_remarks, "Exam week")
        notification = Notification.objects.get(user=self.student, title="Booking Rejected")
        self.assertIn("Reason: Exam week", notification.message)
        self.assertEqual(notification.related_id, booking.pk)

    def test_admin_cancellation_notifies_user(self):
        booking = self.book("10:00", "11:00")
        change_booking_status(booking, Booking.STATUS_CANCELLED, Actor.from_user(self.admin))
        self.assertTrue(Notification.objects.filter(user=self.student, title="Booking Cancelled").exists())

    def test_terminal_status_cannot_change(self):
        booking = self.book("10:00", "11:00", status=Booking.STATUS_REJECTED)
        with self.assertRaises(TransitionNotAllowed):
            change_booking_status(booking, Booking.STATUS_APPROVED, Actor.from_user(self.admin))

        self.login(self.admin)
        self.client.post(reverse("update_booking_status", args=[booking.id]), {"status": "Approved"})
        booking.refresh_from_db()
        self.assertEqual(booking.status, Booking.STATUS_REJECTED)

    def test_user_may_only_cancel(self):
        booking = self.book("10:00", "11:00", status=Booking.STATUS_PENDING)
        with self.assertRaises(TransitionNotAllowed):
            change_booking_status(booking, Booking.STATUS_APPROVED, Actor.from_user(self.student))
        with self.assertRaises(TransitionNotAllowed):
            change_booking_status(booking, Booking.STATUS_CANCELLED, Actor.from_user(self.other))

    def test_notification_failure_does_not_abort_transition(self):
        booking = self.book("10:00", "11:00", status=Booking.STATUS_PENDING)
        with patch("campus.notifications.create_notification", side_effect=RuntimeError("mail down")):
            with self.assertLogs("campus.signals", level="ERROR"):
                change_booking_status(booking, Booking.STATUS_APPROVED, Actor.from_user(self.admin))

        booking.refresh_from_db()
        self.assertEqual(booking.status, Booking.STATUS_APPROVED)
        self.assertFalse(Notification.objects.exists())

    def test_manage_bookings_filters_by_status(self):
        self.book("10:00", "11:00", status=Booking.STATUS_PENDING)
        self.book("12:00", "13:00")
        self.login(self.admin)
        response = self.client.get(reverse("manage_bookings"), {"status": "Pending"})
        self.assertEqual(response.status_code, 200)
        bookings = list(response.context["page_obj"])
        self.assertEqual(len(bookings), 1)
        self.assertEqual(set(bookings[0].targets), {"Approved", "Rejected", "Cancelled"})


# ==========================================
# 4. COMPLAINTS
# ==========================================

class ComplaintTests(CampusTestCase):

    def test_submit_complaint_notifies_admins(self):
        self.login(self.student)
        response = self.client.post(reverse("submit_complaint"), {
            "subject": "  Projector broken ",
            "description": "The projector in the auditorium does not turn on.",
        })
        self.assertRedirects(response, reverse("complaints"))

        complaint = Complaint.objects.get()
        self.assertEqual(complaint.subject, "Projector broken")
        self.assertEqual(complaint.category, "Other")
        self.assertEqual(complaint.priority, "Medium")
        self.assertEqual(complaint.complaint_id, 1001)
        self.assertTrue(Notification.objects.filter(user=self.admin, title="New Complaint").exists())

    def test_missing_subject_rejected(self):
        self.login(self.student)
        self.client.post(reverse("submit_complaint"), {"subject": "", "description": "x"})
        self.assertEqual(Complaint.objects.count(), 0)

    def test_resolving_stamps_admin_and_notifies(self):
        complaint = Complaint.objects.create(subject="AC noisy", description="Loud", user=self.student)
        self.login(self.admin)
        self.client.post(reverse("respond_complaint", args=[complaint.pk]), {
            "status": "Resolved",
            "admin_response": "Serviced the unit.",
        })

        complaint.refresh_from_db()
        self.assertEqual(complaint.status, Complaint.STATUS_RESOLVED)
        self.assertEqual(complaint.resolved_by, self.admin)
        self.assertIsNotNone(complaint.resolved_at)
        titles = set(Notification.objects.filter(user=self.student).values_list("title", flat=True))
        self.assertEqual(titles, {"Admin Response to Your Complaint", "Complaint Status: Resolved"})

    def test_user_cannot_update_complaint(self):
        complaint = Complaint.objects.create(subject="AC noisy", description="Loud", user=self.student)
        with self.assertRaises(TransitionNotAllowed):
            update_complaint(complaint, Actor.from_user(self.student), status=Complaint.STATUS_CLOSED)

    def test_complaint_detail_is_owner_only(self):
        complaint = Complaint.objects.create(subject="AC noisy", description="Loud", user=self.other)
        self.login(self.student)
        response = self.client.get(reverse("complaint_detail", args=[complaint.pk]))
        self.assertRedirects(response, reverse("complaints"))

    def test_reopening_clears_resolution(self):
        complaint = Complaint.objects.create(subject="AC noisy", description="Loud", user=self.student)
        admin = Actor.from_user(self.admin)

        update_complaint(complaint, admin, status=Complaint.STATUS_RESOLVED)
        self.assertEqual(complaint.resolved_by, self.admin)

        update_complaint(complaint, admin, status=Complaint.STATUS_IN_PROGRESS)
        complaint.refresh_from_db()
        self.assertIsNone(complaint.resolved_by)
        self.assertIsNone(complaint.resolved_at)


# ==========================================
# 5. AUTH & ACCESS CONTROL
# ==========================================

class AuthTests(CampusTestCase):

    def signup_data(self, **overrides):
        data = {
            "full_name": "Meera Nair",
            "email": "Meera@SmartCampus.edu",
            "contact": "98765-43212",
            "department": self.department.pk,
            "password": "secret1",
            "confirm_password": "secret1",
            "terms": "on",
        }
        data.update(overrides)
        return data

    def test_signup_creates_user(self):
        response = self.client.post(reverse("signup"), self.signup_data())
        self.assertRedirects(response, reverse("login"))
        user = CustomUser.objects.get(email="meera@smartcampus.edu")
        self.assertEqual(user.role, CustomUser.USER)
        self.assertEqual(user.contact, "9876543212")
        self.assertNotEqual(user.password, "secret1")

    def test_signup_validation(self):
        response = self.client.post(reverse("signup"), self.signup_data(confirm_password="other"))
        self.assertContains(response, "Passwords do not match")

        response = self.client.post(reverse("signup"), self.signup_data(email=self.student.email))
        self.assertContains(response, "Email already registered")

        response = self.client.post(reverse("signup"), self.signup_data(contact="123"))
        self.assertContains(response, "valid 10-digit phone number")

    def test_login_redirects_by_role(self):
        self.assertRedirects(self.login(self.admin), reverse("admin_dashboard"))
        self.client.get(reverse("logout"))
        self.assertRedirects(self.login(self.student), reverse("user_dashboard"))

    def test_invalid_and_inactive_login(self):
        response = self.client.post(reverse("login"), {"email": self.student.email, "password": "wrong"})
        self.assertContains(response, "Invalid credentials")

        self.student.is_active = False
        self.student.save()
        response = self.login(self.student)
        self.assertContains(response, "Invalid credentials")

    def test_anonymous_redirected_to_login(self):
        response = self.client.get(reverse("my_bookings"))
        self.assertRedirects(response, reverse("login"))

    def test_user_forbidden_on_admin_pages(self):
        self.login(self.student)
        for name in ("admin_dashboard", "manage_facilities", "manage_bookings", "manage_users", "manage_complaints"):
            response = self.client.get(reverse(name))
            self.assertEqual(response.status_code, 403, name)

        self.client.get(reverse("logout"))
        self.login(self.admin)
        self.assertEqual(self.client.get(reverse("admin_dashboard")).status_code, 200)

    def test_deactivated_user_loses_session(self):
        self.login(self.student)
        self.student.is_active = False
        self.student.save()
        response = self.client.get(reverse("user_dashboard"))
        self.assertRedirects(response, reverse("login"))


# ==========================================
# 6. ADMIN MANAGEMENT
# ==========================================

class AdminManagementTests(CampusTestCase):

    def test_add_facility(self):
        self.login(self.admin)
        response = self.client.post(reverse("add_facility"), {
            "name": "Seminar Hall A",
            "facility_type": Facility.SEMINAR_HALL,
            "location": "Block B",
            "capacity": 80,
            "amenities": "Projector, AC, , Whiteboard",
        })
        self.assertRedirects(response, reverse("manage_facilities"))

        facility = Facility.objects.get(name="Seminar Hall A")
        self.assertEqual(facility.amenities, ["Projector", "AC", "Whiteboard"])
        self.assertEqual(facility.created_by, self.admin)
        self.assertEqual((facility.opens_at, facility.closes_at), ("09:00", "17:00"))
        self.assertEqual(facility.facility_id, 3)

    def test_add_facility_invalid(self):
        self.login(self.admin)
        response = self.client.post(reverse("add_facility"), {
            "name": "Broken",
            "facility_type": Facility.CLASSROOM,
            "location": "Block C",
            "capacity": 0,
        })
        self.assertEqual(response.status_code, 400)
        self.assertFalse(Facility.objects.filter(name="Broken").exists())

    def test_facility_hours_must_be_ordered(self):
        form = FacilityForm({
            "name": "Room", "facility_type": Facility.CLASSROOM, "location": "Block C",
            "capacity": 10, "opens_at": "18:00", "closes_at": "09:00",
        })
        self.assertFalse(form.is_valid())

    def test_toggle_facility_hides_it_from_booking(self):
        self.login(self.admin)
        self.client.post(reverse("toggle_facility", args=[self.hall.pk]))
        self.hall.refresh_from_db()
        self.assertEqual(self.hall.status, Facility.STATUS_INACTIVE)
        self.assertNotIn(self.hall, Facility.objects.active())

    def test_admin_cannot_deactivate_self(self):
        self.login(self.admin)
        self.client.post(reverse("toggle_user", args=[self.admin.pk]))
        self.admin.refresh_from_db()
        self.assertTrue(self.admin.is_active)

        self.client.post(reverse("toggle_user", args=[self.student.pk]))
        self.student.refresh_from_db()
        self.assertFalse(self.student.is_active)

    def test_export_bookings_csv(self):
        self.book("10:00", "11:00")
        self.login(self.admin)
        response = self.client.get(reverse("export_bookings"))
        self.assertEqual(response["Content-Type"], "text/csv")
        self.assertIn('filename="bookings.csv"', response["Content-Disposition"])
        lines = response.content.decode().splitlines()
        self.assertEqual(len(lines), 2)
        self.assertTrue(lines[0].startswith('"Date","Facility"'))
        self.assertIn('"Main Auditorium"', lines[1])
        self.assertIn('"anita@smartcampus.edu"', lines[1])

    def test_export_complaints_csv(self):
        Complaint.objects.create(subject="Wifi, slow", description="Library", user=self.student)
        self.login(self.admin)
        response = self.client.get(reverse("export_complaints"))
        self.assertIn('"Wifi, slow"', response.content.decode())

    def test_deleting_facility_keeps_bookings(self):
        booking = self.book("10:00", "11:00")
        self.login(self.admin)
        self.client.post(reverse("delete_facility", args=[self.hall.pk]))

        self.assertFalse(Facility.objects.filter(name="Main Auditorium").exists())
        booking.refresh_from_db()
        self.assertIsNone(booking.facility)
        self.assertEqual(booking.status, Booking.STATUS_APPROVED)
        self.assertEqual(booking.facility_name, "(deleted facility)")

        response = self.client.get(reverse("export_bookings"))
        self.assertIn('"(deleted facility)"', response.content.decode())

    def test_deleting_user_keeps_bookings(self):
        booking = self.book("10:00", "11:00", status=Booking.STATUS_PENDING)
        self.login(self.admin)
        self.client.post(reverse("delete_user", args=[self.student.pk]))

        self.assertFalse(CustomUser.objects.filter(email="anita@smartcampus.edu").exists())
        booking.refresh_from_db()
        self.assertIsNone(booking.user)

        # Still decidable, nobody left to notify
        self.client.post(reverse("update_booking_status", args=[booking.id]), {"status": "Approved"})
        booking.refresh_from_db()
        self.assertEqual(booking.status, Booking.STATUS_APPROVED)
        self.assertContains(self.client.get(reverse("manage_bookings")), "(deleted user)")

    def test_reactivated_facility_notifies_past_bookers(self):
        self.book("10:00", "11:00")
        self.book("12:00", "13:00", status=Booking.STATUS_CANCELLED)
        self.book("14:00", "15:00", user=self.other)
        self.book("10:00", "11:00", facility=self.lab, user=self.admin)
        self.hall.status = Facility.STATUS_MAINTENANCE
        self.hall.save()

        self.login(self.admin)
        self.client.post(reverse("toggle_facility", args=[self.hall.pk]))
        self.hall.refresh_from_db()
        self.assertTrue(self.hall.is_active)

        notified = Notification.objects.filter(type=Notification.TYPE_FACILITY)
        self.assertEqual(set(notified.values_list("user", flat=True)), {self.student.pk, self.other.pk})
        self.assertEqual(notified.count(), 2)
        notice = notified.get(user=self.student)
        self.assertEqual(notice.title, "Facility Now Available")
        self.assertEqual(notice.related_id, self.hall.pk)

        # Taking it offline again sends nothing
        self.client.post(reverse("toggle_facility", args=[self.hall.pk]))
        self.assertEqual(Notification.objects.filter(type=Notification.TYPE_FACILITY).count(), 2)

    def test_update_facility_back_to_active_notifies(self):
        self.book("10:00", "11:00")
        self.hall.status = Facility.STATUS_INACTIVE
        self.hall.save()

        self.login(self.admin)
        response = self.client.post(reverse("update_facility", args=[self.hall.pk]), {
            "name": "Main Auditorium",
            "facility_type": Facility.AUDITORIUM,
            "location": "Academic Block A",
            "capacity": 300,
            "amenities": "Projector, AC",
            "opens_at": "08:00",
            "closes_at": "20:00",
            "status": Facility.STATUS_ACTIVE,
        })
        self.assertRedirects(response, reverse("manage_facilities"))
        self.assertTrue(
            Notification.objects.filter(user=self.student, type=Notification.TYPE_FACILITY).exists()
        )


# ==========================================
# 7. API ENDPOINTS
# ==========================================

class ApiTests(CampusTestCase):

    def test_availability_api(self):
        self.book("10:00", "11:00")
        self.login(self.student)
        url = reverse("api_availability")

        data = json.loads(self.client.get(url, {
            "facility": self.hall.pk, "date": self.day.isoformat(), "start": "10:30", "end": "11:30",
        }).content)
        self.assertFalse(data["available"])

        data = json.loads(self.client.get(url, {
            "facility": self.hall.pk, "date": self.day.isoformat(), "start": "11:00", "end": "12:00",
        }).content)
        self.assertTrue(data["available"])
        self.assertEqual(data["start"], "11:00")

    def test_availability_api_bad_input(self):
        self.login(self.student)
        url = reverse("api_availability")
        self.assertEqual(self.client.get(url, {"facility": "x"}).status_code, 400)
        response = self.client.get(url, {
            "facility": self.hall.pk, "date": self.day.isoformat(), "start": "12:00", "end": "11:00",
        })
        self.assertEqual(response.status_code, 400)

    def test_availability_api_store_failure(self):
        self.login(self.student)
        with patch("campus.availability.find_conflicts", side_effect=DatabaseError("db down")):
            response = self.client.get(reverse("api_availability"), {
                "facility": self.hall.pk, "date": self.day.isoformat(), "start": "10:00", "end": "11:00",
            })
        self.assertEqual(response.status_code, 503)
        self.assertTrue(json.loads(response.content)["retryable"])

    def test_day_slots_api(self):
        self.book("10:00", "12:00")
        self.book("13:00", "14:00", status=Booking.STATUS_REJECTED)
        self.login(self.student)
        response = self.client.get(reverse("api_day_slots"), {"facility": self.hall.pk, "date": self.day.isoformat()})
        self.assertEqual(json.loads(response.content), [{"start": "10:00", "end": "12:00"}])

    def test_day_slots_api_store_failure(self):
        self.login(self.student)
        with patch("campus.availability._occupied", side_effect=DatabaseError("db down")):
            response = self.client.get(reverse("api_day_slots"), {"facility": self.hall.pk, "date": self.day.isoformat()})
        self.assertEqual(response.status_code, 503)
        self.assertEqual(response["Content-Type"], "application/json")
        self.assertTrue(json.loads(response.content)["retryable"])


# ==========================================
# 8. NOTIFICATIONS, SEARCH & REPORTS
# ==========================================

class NotificationTests(CampusTestCase):

    def setUp(self):
        super().setUp()
        self.first = Notification.objects.create(user=self.student, title="One", message="First", type=Notification.TYPE_BOOKING)
        self.second = Notification.objects.create(user=self.student, title="Two", message="Second")
        self.foreign = Notification.objects.create(user=self.other, title="Other", message="Not yours")
        self.login(self.student)

    def test_unread_count_and_recent(self):
        data = json.loads(self.client.get(reverse("api_unread_count")).content)
        self.assertEqual(data["unread"], 2)

        data = json.loads(self.client.get(reverse("api_recent_notifications")).content)
        self.assertEqual([n["title"] for n in data["notifications"]], ["Two", "One"])
        self.assertEqual(data["unreadCount"], 2)

    def test_mark_read(self):
        self.client.post(reverse("mark_notification_read", args=[self.first.pk]))
        self.first.refresh_from_db()
        self.assertTrue(self.first.is_read)
        self.assertIsNotNone(self.first.read_at)

        self.client.post(reverse("mark_all_notifications_read"))
        self.assertFalse(Notification.objects.filter(user=self.student, is_read=False).exists())
        self.assertFalse(Notification.objects.get(pk=self.foreign.pk).is_read)

    def test_delete_only_own(self):
        self.client.post(reverse("delete_notification", args=[self.foreign.pk]))
        self.assertTrue(Notification.objects.filter(pk=self.foreign.pk).exists())
        self.client.post(reverse("delete_notification", args=[self.first.pk]))
        self.assertFalse(Notification.objects.filter(pk=self.first.pk).exists())

    def test_list_filters(self):
        response = self.client.get(reverse("notifications"), {"filter": "booking"})
        self.assertEqual(list(response.context["notifications"]), [self.first])
        self.assertEqual(response.context["counts"]["total"], 2)

    def test_maintenance_notice_reaches_every_active_user(self):
        self.other.is_active = False
        self.other.save()
        call_command(
            "notify_maintenance", "--message", "Portal offline for upgrades.",
            "--at", "2024-05-01T22:00", stdout=StringIO(),
        )
        notices = Notification.objects.filter(type=Notification.TYPE_SYSTEM)
        self.assertEqual(set(notices.values_list("user", flat=True)), {self.admin.pk, self.student.pk})
        notice = notices.get(user=self.student)
        self.assertEqual(notice.title, "Scheduled Maintenance")
        self.assertTrue(notice.data["scheduled_time"].startswith("2024-05-01T22:00"))

        response = self.client.get(reverse("notifications"), {"filter": "system"})
        self.assertEqual(list(response.context["notifications"]), [notice])
        self.assertEqual(response.context["counts"]["system"], 1)


class SearchAndReportTests(CampusTestCase):

    def test_search_scopes_to_user(self):
        self.book("10:00", "11:00", user=self.student)
        Booking.objects.create(
            facility=self.hall, user=self.other, date=self.day, start_time="12:00",
            end_time="13:00", purpose="Seminar on AI",
        )
        self.login(self.student)
        response = self.client.get(reverse("search"), {"q": "seminar"})
        self.assertEqual(len(response.context["bookings"]), 1)

        response = self.client.get(reverse("search"), {"q": "auditorium", "type": "facilities"})
        self.assertEqual(response.context["facilities"], [self.hall])
        self.assertEqual(response.context["total_results"], 1)

    def test_facility_type_filter(self):
        self.login(self.student)
        response = self.client.get(reverse("facilities"), {"type": Facility.COMPUTER_LAB})
        self.assertEqual(list(response.context["facilities"]), [self.lab])

    def test_reports(self):
        self.book("10:00", "11:00")
        self.book("12:00", "13:00", status=Booking.STATUS_PENDING)
        self.login(self.student)
        response = self.client.get(reverse("reports"))
        stats = response.context["stats"]
        self.assertEqual(stats["total_bookings"], 2)
        self.assertEqual(stats["approved_bookings"], 1)
        self.assertEqual(response.context["facility_usage"], {"Main Auditorium": 2})
        self.assertEqual(sum(response.context["monthly_trends"].values()), 2)

        response = self.client.get(reverse("reports_export"))
        self.assertEqual(len(response.content.decode().splitlines()), 3)

    def test_report_window(self):
        now = timezone.now()
        start, end = report_window("custom", now, "2024-01-01", "2024-01-31")
        self.assertEqual((end - start).days, 31)
        self.assertEqual(report_window("all", now), (None, None))


# ==========================================
# 9. SEED COMMANDS
# ==========================================

class SeedCommandTests(TestCase):

    @override_settings(PASSWORD_HASHERS=["django.contrib.auth.hashers.MD5PasswordHasher"])
    def test_seed_is_idempotent(self):
        for _ in range(2):
            call_command("seed_users", stdout=StringIO())
            call_command("seed_facilities", stdout=StringIO())
        self.assertEqual(Department.objects.count(), 2)
        self.assertEqual(Facility.objects.count(), 5)
        self.assertTrue(CustomUser.objects.filter(role=CustomUser.ADMIN).exists())
