import logging

from django.db import DatabaseError
from django.shortcuts import render

from .exceptions import AvailabilityUnavailable

logger = logging.getLogger(__name__)


class DatabaseErrorMiddleware:
    """
    Turns store failures that escape a view into a generic error page
    instead of a stack trace. Everything else propagates as usual.
    """

    def __init__(self, get_response):
        self.get_response = get_response

    def __call__(self, request):
        return self.get_response(request)

    def process_exception(self, request, exception):
        if not isinstance(exception, (DatabaseError, AvailabilityUnavailable)):
            return None
        logger.exception("Database error while handling %s %s", request.method, request.path)
        return render(
            request,
            "error.html",
            {"message": "Something went wrong on our side. Please try again in a moment."},
            status=503,
        )
