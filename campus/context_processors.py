from .auth_utils import get_current_actor
from .models import Notification


def current_actor(request):
    actor = getattr(request, "actor", None) or get_current_actor(request)
    if actor is None:
        return {}
    unread = Notification.objects.filter(user_id=actor.pk, is_read=False).count()
    return {"actor": actor, "unread_notifications_count": unread}


def query_flash(request):
    # Links may carry ?success=... / ?error=... flash text
    return {
        "flash_success": request.GET.get("success"),
        "flash_error": request.GET.get("error"),
    }
