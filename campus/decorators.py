from functools import wraps

from django.contrib import messages
from django.shortcuts import redirect, render

from .auth_utils import get_current_actor
from .models import CustomUser


def role_required(*allowed_roles):
    """
    The single authorization check for every protected view.

    Resolves the session into an Actor, checks its role against
    `allowed_roles` (any role when none are given), and calls the view as
    view(request, actor, *args, **kwargs).
    """
    def decorator(view_func):
        @wraps(view_func)
        def wrapper(request, *args, **kwargs):
            actor = get_current_actor(request)
            if actor is None:
                messages.error(request, "You must be logged in to view this page.")
                return redirect("login")

            if allowed_roles and not actor.has_role(*allowed_roles):
                return render(
                    request,
                    "403.html",
                    {"message": "Access denied. You do not have permission to view this page."},
                    status=403,
                )

            request.actor = actor
            return view_func(request, actor, *args, **kwargs)
        return wrapper
    return decorator


login_required = role_required()
admin_required = role_required(CustomUser.ADMIN)
