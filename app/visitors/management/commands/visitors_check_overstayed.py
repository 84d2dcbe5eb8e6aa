from django.core.management.base import BaseCommand

from visitors.services.lifecycle import check_overstayed_visitors


class Command(BaseCommand):
    help = "Sweep checked-in visitors, flag overstays and record duration alerts"

    def add_arguments(self, parser):
        parser.add_argument("--verbose-list", action="store_true", help="Print each flagged visitor")

    def handle(self, *args, **options):
        result = check_overstayed_visitors()

        if options["verbose_list"]:
            for entry in result.overstayed:
                visitor = entry["visitor"]
                self.stdout.write(
                    f"OVERSTAY id={visitor.id} name={visitor.full_name} "
                    f"duration={entry['current_duration_minutes']} over={entry['overstay_minutes']}"
                )
            for entry in result.warnings:
                visitor = entry["visitor"]
                self.stdout.write(
                    f"WARNING id={visitor.id} name={visitor.full_name} "
                    f"duration={entry['current_duration_minutes']} remaining={entry['remaining_minutes']}"
                )

        counts = result.counts
        self.stdout.write(
            self.style.SUCCESS(
                f"Checked {counts['checked']} visitors: {counts['overstayed']} overstayed, "
                f"{counts['warnings']} approaching limit, {counts['new_alerts']} new alerts"
            )
        )
