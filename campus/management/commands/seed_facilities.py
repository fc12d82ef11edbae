from django.core.management.base import BaseCommand, CommandError

from campus.models import CustomUser, Facility


class Command(BaseCommand):
    help = "Seeds the default campus facilities"

    def handle(self, *args, **options):
        admin = CustomUser.objects.filter(role=CustomUser.ADMIN).order_by("user_id").first()
        if admin is None:
            raise CommandError("No admin user found. Run seed_users first.")

        self.stdout.write("Seeding facilities...")

        facilities_data = [
            {
                "name": "Main Auditorium",
                "facility_type": Facility.AUDITORIUM,
                "capacity": 300,
                "location": "Academic Block A, Ground Floor",
                "description": "Large auditorium with modern audio-visual equipment",
                "amenities": ["Projector", "Sound System", "AC", "Stage Lighting"],
                "opens_at": "08:00",
                "closes_at": "20:00",
            },
            {
                "name": "Computer Lab 1",
                "facility_type": Facility.COMPUTER_LAB,
                "capacity": 40,
                "location": "IT Block, 2nd Floor",
                "description": "Fully equipped computer lab with latest software",
                "amenities": ["40 PCs", "Projector", "AC", "Whiteboard"],
                "opens_at": "09:00",
                "closes_at": "17:00",
            },
            {
                "name": "Seminar Hall A",
                "facility_type": Facility.SEMINAR_HALL,
                "capacity": 80,
                "location": "Academic Block B, 1st Floor",
                "description": "Modern seminar hall for presentations and meetings",
                "amenities": ["Projector", "AC", "Sound System", "Whiteboard"],
                "opens_at": "09:00",
                "closes_at": "18:00",
            },
            {
                "name": "Physics Lab",
                "facility_type": Facility.PHYSICS_LAB,
                "capacity": 30,
                "location": "Science Block, 1st Floor",
                "description": "Well-equipped physics laboratory",
                "amenities": ["Lab Equipment", "Safety Gear", "Whiteboard"],
                "opens_at": "09:00",
                "closes_at": "17:00",
            },
            {
                "name": "Sports Ground",
                "facility_type": Facility.SPORTS_GROUND,
                "capacity": 100,
                "location": "Campus Ground",
                "description": "Multi-purpose sports ground",
                "amenities": ["Football Posts", "Basketball Court", "Track"],
                "opens_at": "06:00",
                "closes_at": "18:00",
            },
        ]

        created = 0
        for data in facilities_data:
            _, was_created = Facility.objects.get_or_create(
                name=data["name"],
                defaults={**data, "created_by": admin},
            )
            created += was_created

        self.stdout.write(self.style.SUCCESS(f"Successfully seeded {created} facilities!"))
