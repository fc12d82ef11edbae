from django.contrib import admin
from .models import Booking, Complaint, CustomUser, Department, Facility, Notification


@admin.register(Department)
class DepartmentAdmin(admin.ModelAdmin):
    list_display = ("dept_id", "dept_name", "dept_head")


@admin.register(CustomUser)
class CustomUserAdmin(admin.ModelAdmin):
    list_display = ("user_id", "full_name", "email", "role", "department", "is_active")
    list_filter = ("role", "is_active")
    search_fields = ("full_name", "email")
    exclude = ("password",)


@admin.register(Facility)
class FacilityAdmin(admin.ModelAdmin):
    list_display = ("facility_id", "name", "facility_type", "location", "capacity", "status")
    list_filter = ("facility_type", "status")
    search_fields = ("name", "location")


@admin.register(Booking)
class BookingAdmin(admin.ModelAdmin):
    list_display = ("facility", "date", "start_time", "end_time", "user", "status")
    list_filter = ("status", "facility", "date")
    search_fields = ("purpose", "user__email")


@admin.register(Complaint)
class ComplaintAdmin(admin.ModelAdmin):
    list_display = ("complaint_id", "subject", "category", "priority", "status", "user")
    list_filter = ("status", "category", "priority")


@admin.register(Notification)
class NotificationAdmin(admin.ModelAdmin):
    list_display = ("notification_id", "user", "title", "type", "priority", "is_read")
    list_filter = ("type", "is_read")
