from django.apps import AppConfig


class CampusConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "campus"
    verbose_name = "Campus Facilities"

    def ready(self):
        # Connects the notification receivers
        from . import notifications  # noqa: F401
