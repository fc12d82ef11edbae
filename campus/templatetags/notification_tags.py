from django import template

from campus.models import Notification

register = template.Library()


@register.simple_tag
def get_unread_notifications(actor, limit=5):
    # Anonymous pages render without an actor
    if not actor or not hasattr(actor, 'pk'):
        return []
    return Notification.objects.filter(user_id=actor.pk, is_read=False)[:limit]


@register.filter
def status_badge(status):
    return {
        "Pending": "warning",
        "Approved": "success",
        "Rejected": "danger",
        "Cancelled": "secondary",
        "Submitted": "info",
        "In Progress": "warning",
        "Resolved": "success",
        "Closed": "secondary",
    }.get(status, "light")
