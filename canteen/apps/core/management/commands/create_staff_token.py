from django.conf import settings
from django.core.management.base import BaseCommand, CommandError

from apps.core.models import Staff, StaffToken


class Command(BaseCommand):
    help = "Issue a bearer token for a staff scanning device"

    def add_arguments(self, parser):
        parser.add_argument('staff_id')
        parser.add_argument('--label', default='Scanner')
        parser.add_argument('--days', type=int, default=settings.STAFF_TOKEN_EXPIRY_DAYS)

    def handle(self, *args, **options):
        try:
            staff = Staff.objects.get(staff_id=options['staff_id'])
        except Staff.DoesNotExist:
            raise CommandError(f"No staff member with id {options['staff_id']}")

        staff_token, token = StaffToken.create_token(staff, options['label'], options['days'])
        self.stdout.write(self.style.SUCCESS(f"Token for {staff}: {token}"))
        if staff_token.expires_at:
            self.stdout.write(f"Expires at {staff_token.expires_at:%Y-%m-%d %H:%M}")
