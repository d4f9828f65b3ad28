from django.conf import settings
from django.core.management.base import BaseCommand

from monitoring.models import User


class Command(BaseCommand):
    help = "Create the default admin account when no admin exists yet."

    def handle(self, *args, **options):
        if User.objects.filter(role=User.ADMIN).exists():
            self.stdout.write("Admin user already exists")
            return
        if User.objects.filter(username=settings.DEFAULT_ADMIN_USERNAME).exists():
            self.stderr.write(f"User '{settings.DEFAULT_ADMIN_USERNAME}' exists but is not an admin; nothing created")
            return
        User.objects.create_user(
            username=settings.DEFAULT_ADMIN_USERNAME,
            password=settings.DEFAULT_ADMIN_PASSWORD,
            role=User.ADMIN,
            is_staff=True,
        )
        self.stdout.write(self.style.SUCCESS(f"Default admin user '{settings.DEFAULT_ADMIN_USERNAME}' created"))
