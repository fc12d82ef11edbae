from django.contrib import admin
from django.urls import path
from campus import admin_views, views

urlpatterns = [
    # Public pages
    path("", views.home, name="home"),

    # Auth
    path("auth/login/", views.login_view, name="login"),
    path("auth/signup/", views.signup_view, name="signup"),
    path("auth/logout/", views.logout_view, name="logout"),

    # 🔹 Admin panel
    path("admin/dashboard/", admin_views.admin_dashboard, name="admin_dashboard"),
    path("admin/manageFacilities/", admin_views.manage_facilities, name="manage_facilities"),
    path("admin/manageFacilities/add/", admin_views.add_facility, name="add_facility"),
    path("admin/manageFacilities/update/<int:pk>/", admin_views.update_facility, name="update_facility"),
    path("admin/manageFacilities/delete/<int:pk>/", admin_views.delete_facility, name="delete_facility"),
    path("admin/manageFacilities/toggle/<int:pk>/", admin_views.toggle_facility, name="toggle_facility"),
    path("admin/bookings/", admin_views.manage_bookings, name="manage_bookings"),
    path("admin/bookings/export/", admin_views.export_bookings, name="export_bookings"),
    path("admin/bookings/<int:booking_id>/status/", admin_views.update_booking_status, name="update_booking_status"),
    path("admin/bookings/<int:booking_id>/delete/", admin_views.delete_booking, name="delete_booking"),
    path("admin/users/", admin_views.manage_users, name="manage_users"),
    path("admin/users/<int:pk>/toggle/", admin_views.toggle_user, name="toggle_user"),
    path("admin/users/<int:pk>/delete/", admin_views.delete_user, name="delete_user"),
    path("admin/complaints/", admin_views.manage_complaints, name="manage_complaints"),
    path("admin/complaints/export/", admin_views.export_complaints, name="export_complaints"),
    path("admin/complaints/<int:pk>/respond/", admin_views.respond_complaint, name="respond_complaint"),

    # User area
    path("user/dashboard/", views.user_dashboard, name="user_dashboard"),
    path("user/profile/", views.profile, name="profile"),
    path("user/facilities/", views.facility_list, name="facilities"),
    path("user/booking/", views.book_facility, name="book_facility"),
    path("user/bookings/", views.my_bookings, name="my_bookings"),
    path("user/bookings/<int:booking_id>/cancel/", views.cancel_booking, name="cancel_booking"),
    path("user/bookings/<int:booking_id>/reschedule/", views.reschedule_booking, name="reschedule_booking"),
    path("user/complaints/", views.complaints, name="complaints"),
    path("user/submit-complaint/", views.submit_complaint, name="submit_complaint"),
    path("user/complaints/<int:complaint_id>/", views.complaint_detail, name="complaint_detail"),
    path("user/search/", views.search, name="search"),
    path("user/reports/", views.reports, name="reports"),
    path("user/reports/export/", views.reports_export, name="reports_export"),

    # Notifications
    path("user/notifications/", views.notification_list, name="notifications"),
    path("user/notifications/read/<int:notif_id>/", views.mark_notification_read, name="mark_notification_read"),
    path("user/notifications/read-all/", views.mark_all_notifications_read, name="mark_all_notifications_read"),
    path("user/notifications/delete/<int:notif_id>/", views.delete_notification, name="delete_notification"),
    path("user/notifications/api/unread-count/", views.api_unread_count, name="api_unread_count"),
    path("user/notifications/api/recent/", views.api_recent_notifications, name="api_recent_notifications"),

    # API
    path("user/api/availability/", views.api_availability, name="api_availability"),
    path("user/api/day-slots/", views.api_day_slots, name="api_day_slots"),

    # Django's own admin site
    path("django-admin/", admin.site.urls),
]
