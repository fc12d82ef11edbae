import calendar
import csv
import re
from datetime import date, datetime, timedelta

from django.core.exceptions import ValidationError
from django.db.models import Max
from django.http import HttpResponse

# Zero-padded 24-hour clock. Only this shape sorts chronologically as a string.
HHMM_RE = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$")


def validate_hhmm(value):
    if not isinstance(value, str) or not HHMM_RE.match(value):
        raise ValidationError(
            "Enter a time as HH:MM (24-hour, zero-padded).", code="invalid_time"
        )


def normalize_hhmm(value):
    """
    Accepts "9:05", "09:05" or "09:05:00" (browser time inputs send seconds
    sometimes) and returns "09:05". Raises ValidationError otherwise.
    """
    value = (value or "").strip()
    parts = value.split(":")
    if len(parts) in (2, 3) and all(p.isdigit() for p in parts):
        value = f"{int(parts[0]):02d}:{int(parts[1]):02d}"
    validate_hhmm(value)
    return value


def next_number(model, field, start):
    """
    Next value for a human-facing numeric id (facility_id, complaint_id, ...):
    current max + 1, or `start` for an empty table.
    """
    current = model.objects.aggregate(top=Max(field))["top"]
    return current + 1 if current is not None else start


def months_ago(when, months):
    """Same day-of-month `months` back, clamped to the end of shorter months."""
    year, month = when.year, when.month - months
    while month <= 0:
        month += 12
        year -= 1
    day = min(when.day, calendar.monthrange(year, month)[1])
    return when.replace(year=year, month=month, day=day)


REPORT_PERIODS = {
    "1month": 1,
    "3months": 3,
    "6months": 6,
    "1year": 12,
}


def report_window(period, now, start_str=None, end_str=None):
    """
    Returns (start, end) datetimes for a reports period. Either bound may be
    None, meaning unbounded. "custom" uses the given ISO dates (end inclusive).
    """
    if period in REPORT_PERIODS:
        return months_ago(now, REPORT_PERIODS[period]), None
    if period == "custom" and start_str and end_str:
        try:
            start = date.fromisoformat(start_str)
            end = date.fromisoformat(end_str)
        except ValueError:
            return None, None
        tz = now.tzinfo
        return (
            datetime.combine(start, datetime.min.time(), tzinfo=tz),
            datetime.combine(end + timedelta(days=1), datetime.min.time(), tzinfo=tz),
        )
    return None, None


def last_month_labels(today, count=6):
    """Labels like "May 2024" for the last `count` months, oldest first."""
    labels = []
    for i in range(count - 1, -1, -1):
        d = months_ago(today.replace(day=1), i)
        labels.append(d.strftime("%b %Y"))
    return labels


def csv_response(filename, header, rows):
    response = HttpResponse(content_type="text/csv")
    response["Content-Disposition"] = f'attachment; filename="{filename}"'
    writer = csv.writer(response, quoting=csv.QUOTE_ALL)
    writer.writerow(header)
    for row in rows:
        writer.writerow(row)
    return response
