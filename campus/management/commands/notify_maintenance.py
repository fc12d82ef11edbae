from django.core.management.base import BaseCommand, CommandError
from django.utils import timezone
from django.utils.dateparse import parse_datetime

from campus.models import CustomUser
from campus.notifications import notify_system_maintenance


class Command(BaseCommand):
    help = "Sends a system maintenance notice to every active user"

    def add_arguments(self, parser):
        parser.add_argument("--title", default="Scheduled Maintenance")
        parser.add_argument("--message", required=True)
        parser.add_argument("--at", dest="scheduled", help="When maintenance starts, e.g. 2024-05-01T22:00")
        parser.add_argument("--role", choices=[CustomUser.ADMIN, CustomUser.USER], help="Only notify this role")

    def handle(self, *args, **options):
        scheduled = None
        if options["scheduled"]:
            scheduled = parse_datetime(options["scheduled"])
            if scheduled is None:
                raise CommandError("--at must be an ISO date-time, e.g. 2024-05-01T22:00")
            if timezone.is_naive(scheduled):
                scheduled = timezone.make_aware(scheduled)

        users = CustomUser.objects.filter(is_active=True)
        if options["role"]:
            users = users.filter(role=options["role"])

        count = 0
        for user in users:
            notify_system_maintenance(user, options["title"], options["message"], scheduled)
            count += 1

        self.stdout.write(self.style.SUCCESS(f"Notified {count} users."))
