from django.core.management.base import BaseCommand

from campus.auth_utils import hash_user_password
from campus.models import CustomUser, Department


class Command(BaseCommand):
    help = "Seeds departments, a default admin and demo users"

    def add_arguments(self, parser):
        parser.add_argument("--password", default="admin123", help="Password for every seeded account")

    def handle(self, *args, **options):
        password = options["password"]
        self.stdout.write("Seeding departments...")

        departments = [
            (1, "Computer Science", "Dr. John Smith"),
            (2, "Information Technology", "Dr. Sarah Johnson"),
        ]
        for dept_id, name, head in departments:
            Department.objects.get_or_create(
                dept_id=dept_id,
                defaults={"dept_name": name, "dept_head": head},
            )
        cs = Department.objects.get(dept_id=1)

        self.stdout.write("Seeding users...")

        # 1. Admin
        CustomUser.objects.get_or_create(
            email="admin@smartcampus.edu",
            defaults={
                "full_name": "System Admin",
                "contact": "1234567890",
                "department": cs,
                "role": CustomUser.ADMIN,
                "password": hash_user_password(password),
            }
        )

        # 2. Demo users
        users = [
            ("Anita Antony", "anita@smartcampus.edu", "9876543210", 1),
            ("Rahul Menon", "rahul@smartcampus.edu", "9876543211", 2),
            ("Meera Nair", "meera@smartcampus.edu", "9876543212", 1),
        ]
        for name, email, contact, dept_id in users:
            CustomUser.objects.get_or_create(
                email=email,
                defaults={
                    "full_name": name,
                    "contact": contact,
                    "department": Department.objects.get(dept_id=dept_id),
                    "role": CustomUser.USER,
                    "password": hash_user_password(password),
                }
            )

        self.stdout.write(self.style.SUCCESS("Successfully seeded users!"))
