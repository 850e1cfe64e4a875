import datetime
from decimal import Decimal

from django.contrib.auth import get_user_model
from django.core.management.base import BaseCommand, CommandError
from django.db import transaction

from ledger_core.exceptions import LedgerError
from ledger_core.models import Company
from ledger_core.services.auto_entries import (create_bill_entry, create_invoice_entry,
                                               create_payment_entry)
from ledger_core.services.periods import create_fiscal_year
from ledger_core.services.posting import create_opening_entry
from ledger_core.services.recurring import create_template
from ledger_core.services.registry import resolve_account_by_code, seed_default_chart

User = get_user_model()


def indian_fiscal_year(day):
    """(name, start, end) of the April-March year containing `day`."""
    start_year = day.year if day.month >= 4 else day.year - 1
    start = datetime.date(start_year, 4, 1)
    end = datetime.date(start_year + 1, 3, 31)
    return f"FY {start_year}-{str(start_year + 1)[-2:]}", start, end


class Command(BaseCommand):
    help = (
        "Create a demo company, user, fiscal year, default chart of accounts "
        "and a handful of posted entries."
    )

    # Define command-line arguments
    def add_arguments(self, parser):
        parser.add_argument(
            "--company-name",  # Define flag
            default="Demo Company",
            help="Name of the demo company to create.",
        )
        parser.add_argument("--gstin", default="27AAPFU0939F1ZV", help="GSTIN of the demo company.")
        parser.add_argument("--username", default="demo", help="Username for the demo user.")
        parser.add_argument("--password", default="demo123", help="Password for the demo user.")

    @transaction.atomic
    def handle(self, *args, **options):
        # Read arguments from add_arguments()
        company_name = options["company_name"]
        username = options["username"]
        password = options["password"]

        # 1. Company + user
        if Company.objects.filter(name=company_name).exists():
            raise CommandError(f"Company {company_name!r} already exists")

        user, created = User.objects.get_or_create(
            username=username,
            defaults={"email": f"{username}@example.com"},
        )
        if created:  # if user newly created
            user.set_password(password)

        company = Company.objects.create(name=company_name, gstin=options["gstin"], owner=user)
        user.default_company = company
        user.save()
        self.stdout.write(self.style.SUCCESS(f"Created company: {company} ({company.slug})"))
        self.stdout.write(self.style.SUCCESS(f"Created user: {user.username} (pw={password})"))

        # 2. Fiscal year + chart
        today = datetime.date.today()
        name, start, end = indian_fiscal_year(today)
        fy = create_fiscal_year(company, name, start, end, is_current=True)
        accounts = seed_default_chart(company)
        self.stdout.write(self.style.SUCCESS(f"Created {fy.name} and {len(accounts)} accounts"))

        # 3. Sample postings
        try:
            self._post_samples(company, fy, user, today)
        except LedgerError as exc:
            raise CommandError(f"Demo postings failed: {exc.message}") from exc
        self.stdout.write(self.style.SUCCESS("Demo company setup complete!"))

    def _post_samples(self, company, fy, user, today):
        opening = create_opening_entry(
            company,
            fy,
            [
                {"account": resolve_account_by_code(company, "1220"), "debit": Decimal("500000.00")},
                {"account": resolve_account_by_code(company, "3100"), "credit": Decimal("500000.00")},
            ],
            user=user,
        )
        self.stdout.write(self.style.SUCCESS(f"Posted opening balances: {opening.entry_number}"))

        on_date = max(fy.start_date, today - datetime.timedelta(days=10))
        invoice = create_invoice_entry(
            company,
            invoice_date=on_date,
            receivable_account="1230",
            revenue_account="4100",
            taxable_amount=Decimal("100000.00"),
            gst_rate=Decimal("18"),
            is_inter_state=False,
            reference="INV-0001",
            source_id="INV-0001",
            user=user,
        )
        bill = create_bill_entry(
            company,
            bill_date=on_date,
            payable_account="2205",
            expense_account="5400",
            taxable_amount=Decimal("50000.00"),
            gst_rate=Decimal("18"),
            is_inter_state=True,
            tds_section="194J",
            reference="BILL-0001",
            source_id="BILL-0001",
            user=user,
        )
        receipt = create_payment_entry(
            company,
            payment_date=today,
            bank_account="1220",
            party_account="1230",
            amount=Decimal("59000.00"),
            direction="receipt",
            reference="RCPT-0001",
            source_id="RCPT-0001",
            user=user,
        )
        for entry in (invoice, bill, receipt):
            self.stdout.write(self.style.SUCCESS(f"Posted {entry.entry_type}: {entry.entry_number}"))

        template = create_template(
            company,
            name="Office rent",
            frequency="monthly",
            start_date=fy.start_date,
            next_run_date=today.replace(day=1) if today.replace(day=1) >= fy.start_date else fy.start_date,
            end_date=fy.end_date,
            narration="Monthly office rent",
            lines=[
                {"account_id": resolve_account_by_code(company, "5300").pk, "debit": "25000.00"},
                {"account_id": resolve_account_by_code(company, "1220").pk, "credit": "25000.00"},
            ],
            user=user,
        )
        self.stdout.write(self.style.SUCCESS(f"Created recurring template: {template}"))
