from django.core.management.base import BaseCommand

from cart.services import WorkspaceService


class Command(BaseCommand):
    help = (
        "Discard held drafts that have not been touched for a number of hours. "
        "Reservations live in the server process, so run this while the POS server "
        "is stopped or use the release-stale API endpoint instead."
    )

    def add_arguments(self, parser):
        parser.add_argument(
            "--hours",
            type=int,
            default=12,
            help="Discard held drafts idle for longer than this many hours (default: 12)",
        )
        parser.add_argument(
            "--dry-run",
            action="store_true",
            help="Show what would be cleaned up without making changes",
        )

    def handle(self, *args, **options):
        hours = options["hours"]
        dry_run = options["dry_run"]

        if dry_run:
            self.stdout.write(self.style.WARNING("DRY RUN MODE - No changes will be made"))

        count = WorkspaceService.release_stale_holds(older_than_hours=hours, dry_run=dry_run)

        if dry_run:
            self.stdout.write(self.style.WARNING(f"DRY RUN: Would discard {count} held drafts"))
        else:
            self.stdout.write(self.style.SUCCESS(f"Discarded {count} held drafts idle for over {hours}h"))
