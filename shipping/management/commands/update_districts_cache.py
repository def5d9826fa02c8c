from django.core.management.base import BaseCommand, CommandError

from shipping.conf import get_sendit_config
from shipping.districts import DistrictCatalogCache
from shipping.exceptions import ShippingError
from shipping.sendit import SenditClient


class Command(BaseCommand):
    help = "Fetch every Sendit district and store the catalog snapshot in Redis."

    def add_arguments(self, parser):
        parser.add_argument(
            "--skip-details",
            action="store_true",
            help="Do not fetch each district's details (Arabic name, pickup flag).",
        )
        parser.add_argument(
            "--clear",
            action="store_true",
            help="Only drop the cached catalog.",
        )

    def handle(self, *args, **options):
        cache = DistrictCatalogCache()

        if options["clear"]:
            cache.invalidate()
            self.stdout.write(self.style.SUCCESS("District catalog cleared."))
            return

        config = get_sendit_config()
        if not config.is_configured:
            raise CommandError("SENDIT_PUBLIC_KEY and SENDIT_SECRET_KEY must be set.")

        with_details = not options["skip_details"]
        self.stdout.write("Fetching districts from Sendit...")
        try:
            with SenditClient(config) as sendit:
                catalog = cache.refresh(sendit, with_details=with_details)
        except (ShippingError, ValueError) as exc:
            raise CommandError(f"District refresh failed: {exc}")

        with_arabic = sum(1 for e in catalog if e.arabic_name)
        self.stdout.write(
            self.style.SUCCESS(
                f"Stored {len(catalog)} districts in {len(catalog.cities)} cities "
                f"({with_arabic} with Arabic names)."
            )
        )
