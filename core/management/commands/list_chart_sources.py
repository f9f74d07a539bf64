"""List the source tables selectable in the visualization builder."""

from __future__ import annotations

from django.core.management.base import BaseCommand, CommandError

from core.charting.errors import QueryExecutionError
from core.services import DjangoChartBackend


class Command(BaseCommand):
    """Print selectable source tables, optionally with preview row counts."""

    help = "List source tables available to the visualization builder."

    def add_arguments(self, parser) -> None:
        """Add command arguments."""

        parser.add_argument(
            "--database",
            default="default",
            help="Database alias to inspect.",
        )
        parser.add_argument(
            "--preview",
            action="store_true",
            help="Also report how many preview rows each table returns.",
        )

    def handle(self, *args, **options) -> str | None:
        """Run the command."""

        backend = DjangoChartBackend(using=options["database"])
        tables = backend.list_tables()
        if not tables:
            self.stdout.write("No source tables available.")
            return None

        for name in tables:
            if not options["preview"]:
                self.stdout.write(name)
                continue
            try:
                rows = backend.fetch_table(name)
            except QueryExecutionError as exc:
                raise CommandError(f"Could not preview {name!r}: {exc.message}") from exc
            self.stdout.write(f"{name}\t{len(rows)} preview rows")
        return None
