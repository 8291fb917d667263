from django.core.management.base import BaseCommand

from apps.fleet.engine import FleetStateEngine


class Command(BaseCommand):
    help = "Recompute each car's status from its active bookings and repairs."

    def add_arguments(self, parser):
        parser.add_argument("car_ids", nargs="*", type=int, help="Limit to these car ids.")
        parser.add_argument("--database", default="default", help="Database alias to reconcile.")

    def handle(self, *args, **options):
        engine = FleetStateEngine(using=options["database"])
        changed = engine.reconcile(options["car_ids"] or None)

        for car in changed:
            self.stdout.write(f"{car.plate_number}: status corrected to {car.status}")
        self.stdout.write(self.style.SUCCESS(f"Reconciled fleet, {len(changed)} car(s) corrected."))
