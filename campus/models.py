from django.core.validators import MaxLengthValidator, MinValueValidator
from django.db import models
from django.utils import timezone

from .utils import next_number, validate_hhmm


class Department(models.Model):
    dept_id = models.PositiveIntegerField(unique=True)
    dept_name = models.CharField(max_length=100)
    dept_head = models.CharField(max_length=100, blank=True)

    class Meta:
        ordering = ["dept_name"]

    def __str__(self):
        return self.dept_name


class CustomUser(models.Model):
    ADMIN = "admin"
    USER = "user"

    ROLE_CHOICES = [
        (ADMIN, "Admin"),
        (USER, "User"),
    ]

    user_id = models.PositiveIntegerField(unique=True, editable=False)
    full_name = models.CharField(max_length=100)
    email = models.EmailField(unique=True)
    password = models.CharField(max_length=128)
    role = models.CharField(max_length=10, choices=ROLE_CHOICES, default=USER)
    contact = models.CharField(max_length=10, blank=True)
    department = models.ForeignKey(
        Department,
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name="members",
    )
    is_active = models.BooleanField(default=True)
    registration_date = models.DateTimeField(default=timezone.now)

    class Meta:
        ordering = ["full_name"]

    def __str__(self):
        return f"{self.full_name} <{self.email}>"

    def save(self, *args, **kwargs):
        self.email = self.email.strip().lower()
        if not self.user_id:
            self.user_id = next_number(CustomUser, "user_id", 1001)
        super().save(*args, **kwargs)

    @property
    def is_admin(self):
        return self.role == self.ADMIN


class FacilityQuerySet(models.QuerySet):
    def active(self):
        return self.filter(status=Facility.STATUS_ACTIVE).order_by("name")

    def by_type(self, facility_type):
        return self.active().filter(facility_type=facility_type)


class Facility(models.Model):
    AUDITORIUM = "Auditorium"
    SEMINAR_HALL = "Seminar Hall"
    COMPUTER_LAB = "Computer Lab"
    PHYSICS_LAB = "Physics Lab"
    CHEMISTRY_LAB = "Chemistry Lab"
    CONFERENCE_ROOM = "Conference Room"
    SPORTS_GROUND = "Sports Ground"
    LIBRARY_HALL = "Library Hall"
    CLASSROOM = "Classroom"

    TYPE_CHOICES = [
        (AUDITORIUM, "Auditorium"),
        (SEMINAR_HALL, "Seminar Hall"),
        (COMPUTER_LAB, "Computer Lab"),
        (PHYSICS_LAB, "Physics Lab"),
        (CHEMISTRY_LAB, "Chemistry Lab"),
        (CONFERENCE_ROOM, "Conference Room"),
        (SPORTS_GROUND, "Sports Ground"),
        (LIBRARY_HALL, "Library Hall"),
        (CLASSROOM, "Classroom"),
    ]

    STATUS_ACTIVE = "active"
    STATUS_INACTIVE = "inactive"
    STATUS_MAINTENANCE = "maintenance"

    STATUS_CHOICES = [
        (STATUS_ACTIVE, "Active"),
        (STATUS_INACTIVE, "Inactive"),
        (STATUS_MAINTENANCE, "Maintenance"),
    ]

    facility_id = models.PositiveIntegerField(unique=True, editable=False)
    name = models.CharField(max_length=100, db_index=True)
    facility_type = models.CharField(max_length=30, choices=TYPE_CHOICES)
    capacity = models.PositiveIntegerField(validators=[MinValueValidator(1)])
    location = models.CharField(max_length=150)
    description = models.TextField(blank=True, validators=[MaxLengthValidator(500)])
    # ["Projector", "AC", "Whiteboard", ...]
    amenities = models.JSONField(default=list, blank=True)
    opens_at = models.CharField(max_length=5, default="09:00", validators=[validate_hhmm])
    closes_at = models.CharField(max_length=5, default="17:00", validators=[validate_hhmm])
    status = models.CharField(
        max_length=12, choices=STATUS_CHOICES, default=STATUS_ACTIVE
    )

    # Admin who added the facility
    created_by = models.ForeignKey(
        CustomUser,
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name="facilities_created",
    )

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = FacilityQuerySet.as_manager()

    class Meta:
        ordering = ["name"]
        verbose_name_plural = "facilities"
        indexes = [
            models.Index(fields=["facility_type", "status"]),
        ]

    def __str__(self):
        return self.name

    def save(self, *args, **kwargs):
        if not self.facility_id:
            self.facility_id = next_number(Facility, "facility_id", 1)
        super().save(*args, **kwargs)

    @property
    def is_active(self):
        return self.status == self.STATUS_ACTIVE

    @property
    def amenities_display(self):
        return ", ".join(self.amenities or [])

    def within_hours(self, start, end):
        return self.opens_at <= start and end <= self.closes_at

    def is_available_at(self, date, start, end, exclude=None):
        from .availability import is_available

        return is_available(self, date, start, end, exclude=exclude)


class Booking(models.Model):
    STATUS_PENDING = "Pending"
    STATUS_APPROVED = "Approved"
    STATUS_REJECTED = "Rejected"
    STATUS_CANCELLED = "Cancelled"

    STATUS_CHOICES = [
        (STATUS_PENDING, "Pending"),
        (STATUS_APPROVED, "Approved"),
        (STATUS_REJECTED, "Rejected"),
        (STATUS_CANCELLED, "Cancelled"),
    ]

    # Statuses that hold a slot on the facility's calendar
    OCCUPYING_STATUSES = (STATUS_PENDING, STATUS_APPROVED)

    # Bookings outlive the facility or account they reference
    facility = models.ForeignKey(
        Facility, null=True, on_delete=models.SET_NULL, related_name="bookings"
    )
    user = models.ForeignKey(
        CustomUser, null=True, on_delete=models.SET_NULL, related_name="bookings"
    )

    date = models.DateField()
    start_time = models.CharField(max_length=5, validators=[validate_hhmm])
    end_time = models.CharField(max_length=5, validators=[validate_hhmm])
    purpose = models.TextField()

    status = models.CharField(
        max_length=10, choices=STATUS_CHOICES, default=STATUS_PENDING
    )
    admin_remarks = models.TextField(blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["facility", "date", "status"]),
        ]

    def __str__(self):
        return f"{self.facility_name} on {self.date} {self.start_time}-{self.end_time} ({self.status})"

    @property
    def facility_name(self):
        return self.facility.name if self.facility_id else "(deleted facility)"

    @property
    def user_name(self):
        return self.user.full_name if self.user_id else "(deleted user)"

    @property
    def user_email(self):
        return self.user.email if self.user_id else ""

    @property
    def is_occupying(self):
        return self.status in self.OCCUPYING_STATUSES

    @property
    def can_cancel(self):
        today = timezone.localdate()
        return self.date >= today and self.is_occupying

    @property
    def can_reschedule(self):
        return (
            self.facility_id is not None
            and self.date >= timezone.localdate()
            and self.status == self.STATUS_PENDING
        )


class Complaint(models.Model):
    CATEGORY_CHOICES = [
        ("Facility", "Facility"),
        ("Booking", "Booking"),
        ("Technical", "Technical"),
        ("Staff", "Staff"),
        ("Other", "Other"),
    ]

    PRIORITY_CHOICES = [
        ("Low", "Low"),
        ("Medium", "Medium"),
        ("High", "High"),
        ("Urgent", "Urgent"),
    ]

    STATUS_SUBMITTED = "Submitted"
    STATUS_IN_PROGRESS = "In Progress"
    STATUS_RESOLVED = "Resolved"
    STATUS_CLOSED = "Closed"

    STATUS_CHOICES = [
        (STATUS_SUBMITTED, "Submitted"),
        (STATUS_IN_PROGRESS, "In Progress"),
        (STATUS_RESOLVED, "Resolved"),
        (STATUS_CLOSED, "Closed"),
    ]

    complaint_id = models.PositiveIntegerField(unique=True, editable=False)
    subject = models.CharField(max_length=200)
    description = models.TextField()
    category = models.CharField(max_length=20, choices=CATEGORY_CHOICES, default="Other")
    priority = models.CharField(max_length=10, choices=PRIORITY_CHOICES, default="Medium")
    status = models.CharField(
        max_length=15, choices=STATUS_CHOICES, default=STATUS_SUBMITTED
    )
    user = models.ForeignKey(
        CustomUser, on_delete=models.CASCADE, related_name="complaints"
    )

    admin_response = models.TextField(blank=True)
    resolved_by = models.ForeignKey(
        CustomUser,
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name="resolved_complaints",
    )
    resolved_at = models.DateTimeField(null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at"]

    def __str__(self):
        return f"#{self.complaint_id} {self.subject} ({self.status})"

    def save(self, *args, **kwargs):
        if not self.complaint_id:
            self.complaint_id = next_number(Complaint, "complaint_id", 1001)
        super().save(*args, **kwargs)

    @property
    def is_open(self):
        return self.status in (self.STATUS_SUBMITTED, self.STATUS_IN_PROGRESS)


class Notification(models.Model):
    TYPE_BOOKING = "booking"
    TYPE_COMPLAINT = "complaint"
    TYPE_SYSTEM = "system"
    TYPE_FACILITY = "facility"
    TYPE_GENERAL = "general"

    TYPE_CHOICES = [
        (TYPE_BOOKING, "Booking"),
        (TYPE_COMPLAINT, "Complaint"),
        (TYPE_SYSTEM, "System"),
        (TYPE_FACILITY, "Facility"),
        (TYPE_GENERAL, "General"),
    ]

    PRIORITY_CHOICES = [
        ("low", "Low"),
        ("medium", "Medium"),
        ("high", "High"),
        ("urgent", "Urgent"),
    ]

    RELATED_CHOICES = [
        ("booking", "Booking"),
        ("complaint", "Complaint"),
        ("facility", "Facility"),
    ]

    notification_id = models.PositiveIntegerField(unique=True, editable=False)
    user = models.ForeignKey(
        CustomUser, on_delete=models.CASCADE, related_name="notifications"
    )
    title = models.CharField(max_length=200)
    message = models.TextField()
    type = models.CharField(max_length=10, choices=TYPE_CHOICES, default=TYPE_GENERAL)
    priority = models.CharField(max_length=10, choices=PRIORITY_CHOICES, default="medium")
    is_read = models.BooleanField(default=False)
    read_at = models.DateTimeField(null=True, blank=True)

    related_id = models.PositiveBigIntegerField(null=True, blank=True)
    related_type = models.CharField(
        max_length=10, choices=RELATED_CHOICES, null=True, blank=True
    )
    data = models.JSONField(default=dict, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at", "-id"]

    def __str__(self):
        return f"{self.title} -> {self.user.email}"

    def save(self, *args, **kwargs):
        if not self.notification_id:
            self.notification_id = next_number(Notification, "notification_id", 1)
        super().save(*args, **kwargs)
