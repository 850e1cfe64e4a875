from django.core.management.base import BaseCommand, CommandError
from django.utils.dateparse import parse_date

from ledger_core.exceptions import ConcurrencyError
from ledger_core.models import Company
from ledger_core.services.recurring import process_due


class Command(BaseCommand):
    help = "Generate journal entries for recurring templates that are due."

    def add_arguments(self, parser):
        parser.add_argument("--company", help="Company slug (default: every company)")
        parser.add_argument("--as-of", help="Run date YYYY-MM-DD (default: today)")

    def handle(self, *args, **options):
        as_of = None
        if options["as_of"]:
            as_of = parse_date(options["as_of"])
            if as_of is None:
                raise CommandError("--as-of must be a date (YYYY-MM-DD)")

        companies = Company.objects.order_by("name")
        if options["company"]:
            companies = companies.filter(slug=options["company"])
            if not companies.exists():
                raise CommandError(f"No company with slug {options['company']!r}")

        failed_total = 0
        for company in companies:
            try:
                summary = process_due(company, as_of=as_of)
            except ConcurrencyError as exc:
                self.stdout.write(self.style.WARNING(f"{company.slug}: {exc.message}"))
                continue
            failed_total += summary["failed"]
            self.stdout.write(
                f"{company.slug}: {summary['processed']} generated, {summary['failed']} failed"
            )
            for error in summary["errors"]:
                self.stdout.write(
                    self.style.ERROR(f"  {error['template_name']}: {error['error']}")
                )

        style = self.style.SUCCESS if failed_total == 0 else self.style.WARNING
        self.stdout.write(style("Recurring generation finished."))
