from __future__ import annotations

from pathlib import Path

from django.core.management.base import BaseCommand, CommandError

from companies.models import Company
from shipping.services.rate_import import import_rate_table


class Command(BaseCommand):
    help = "Import a rate table CSV for a company, replacing the locations it mentions."

    def add_arguments(self, parser):
        parser.add_argument("company_id", type=int, help="Company primary key")
        parser.add_argument("csv_path", type=str, help="Path to the CSV file")
        parser.add_argument(
            "--apply-corrections",
            action="store_true",
            help="Clamp values above their storage maximum instead of rejecting the row",
        )

    def handle(self, *args, **options):
        company = Company.objects.filter(pk=options["company_id"]).first()
        if company is None:
            raise CommandError(f"Company {options['company_id']} not found")
        path = Path(options["csv_path"])
        if not path.exists():
            raise CommandError(f"File not found: {path}")

        result = import_rate_table(company, path, apply_corrections=options["apply_corrections"])

        for row_error in result.row_errors:
            hint = " [auto-correctable]" if row_error.auto_correctable else ""
            self.stderr.write(f"Row {row_error.row}{hint}: {'; '.join(row_error.errors)}")
        if not result.success:
            raise CommandError(result.message)
        self.stdout.write(self.style.SUCCESS(result.message))
