from django.core.management.base import BaseCommand, CommandError
from django.utils import timezone

from medical.exceptions import NotFound
from medical.services import registry, reports


class Command(BaseCommand):
    help = 'Lists vaccine lots past their expiry date that still hold doses'

    def add_arguments(self, parser):
        parser.add_argument('--center', help='Only lots stored at this center (id)')

    def handle(self, *args, **options):
        center_id = options.get('center')
        if center_id and not registry.exists('center', center_id):
            raise CommandError(str(NotFound('center', center_id)))

        today = timezone.localdate()
        self.stdout.write(f"Checking lots expired before {today}...")

        lots = reports.expired_lots(center_id=center_id, today=today)
        doses = 0
        for lot in lots:
            doses += lot.available_quantity
            self.stdout.write(
                f"{lot.center.name} | {lot.vaccine.name} | lot {lot.lot_number} | "
                f"expired {lot.expiry_date} | {lot.available_quantity} doses"
            )

        if doses:
            self.stdout.write(self.style.WARNING(f"{len(lots)} expired lots still hold {doses} doses."))
        else:
            self.stdout.write(self.style.SUCCESS("No expired stock."))
