import datetime
from decimal import Decimal

from django.test import TestCase

from ledger_core.exceptions import NotFoundError, ValidationError
from ledger_core.models import StatementLine as SL
from ledger_core.models import StatementRun, StatementType
from ledger_core.services.exports import export_run
from ledger_core.services.statement_rules import LAYOUTS, check_layout, coverage_gaps, total
from ledger_core.services.statements import (build_balance_sheet, build_cash_flow,
                                             build_profit_and_loss, get_balance_sheet,
                                             get_profit_and_loss, get_trial_balance)

from .factories import FY_END, FY_START, acct, cr, dr, make_books, make_previous_year, post


def amount_of(payload, kind):
    row = next(r for r in payload["statement"] if r["code"] == kind)
    return Decimal(row["amount"])


class StatementFixtureMixin:

    def setUp(self):
        self.company, self.fy = make_books()
        make_previous_year(self.company)
        a = lambda code: acct(self.company, code)  # noqa: E731

        post(self.company, datetime.date(2023, 6, 1), dr(a("1220"), "100000"), cr(a("3100"), "100000"))

        post(
            self.company,
            datetime.date(2024, 5, 1),
            dr(a("1230"), "59000"),
            cr(a("4100"), "50000"),
            cr(a("2210"), "4500"),
            cr(a("2220"), "4500"),
        )
        post(self.company, datetime.date(2024, 6, 1), dr(a("1220"), "30000"), cr(a("1230"), "30000"))
        post(self.company, datetime.date(2024, 7, 1), dr(a("5300"), "10000"), cr(a("1220"), "10000"))
        post(self.company, datetime.date(2024, 8, 1), dr(a("1110"), "20000"), cr(a("1220"), "20000"))
        post(self.company, datetime.date(2024, 9, 1), dr(a("5600"), "2000"), cr(a("1130"), "2000"))
        post(self.company, datetime.date(2024, 10, 1), dr(a("1220"), "40000"), cr(a("2110"), "40000"))


class StatementDerivationTests(StatementFixtureMixin, TestCase):

    def test_profit_and_loss(self):
        pl = build_profit_and_loss(self.company, FY_START, FY_END)
        self.assertEqual(pl.amount(SL.PL_REVENUE_OPERATIONS), Decimal("50000"))
        self.assertEqual(pl.amount(SL.PL_OTHER_EXPENSES), Decimal("10000"))
        self.assertEqual(pl.amount(SL.PL_DEPRECIATION), Decimal("2000"))
        self.assertEqual(pl.amount(SL.PL_TOTAL_EXPENSES), Decimal("12000"))
        self.assertEqual(pl.summary["net_profit"], Decimal("38000"))
        # nothing was earned the year before
        revenue = next(r for r in pl.rows if r.code == SL.PL_REVENUE_OPERATIONS)
        self.assertEqual(revenue.previous_amount, Decimal("0"))
        self.assertEqual(pl.summary["previous_from_date"], datetime.date(2023, 4, 1))

    def test_balance_sheet_balances(self):
        bs = build_balance_sheet(self.company, FY_END)
        self.assertTrue(bs.summary["is_balanced"])
        self.assertEqual(bs.summary["total_assets"], Decimal("187000"))
        self.assertEqual(bs.amount(SL.BS_ASSET_NCA_PPE), Decimal("18000"))
        self.assertEqual(bs.amount(SL.BS_ASSET_CA_CASH), Decimal("140000"))
        self.assertEqual(bs.amount(SL.BS_ASSET_CA_RECEIVABLES), Decimal("29000"))
        # profit to date sits in reserves
        self.assertEqual(bs.amount(SL.BS_EQUITY_RESERVES), Decimal("38000"))
        self.assertEqual(bs.amount(SL.BS_LIAB_NCL_BORROWINGS), Decimal("40000"))
        self.assertEqual(bs.summary["total_liabilities"], Decimal("49000"))

    def test_balance_sheet_comparative_is_one_year_earlier(self):
        bs = build_balance_sheet(self.company, FY_END)
        capital = next(r for r in bs.rows if r.code == SL.BS_EQUITY_SHARE_CAPITAL)
        cash = next(r for r in bs.rows if r.code == SL.BS_ASSET_CA_CASH)
        self.assertEqual(capital.previous_amount, Decimal("100000"))
        self.assertEqual(cash.previous_amount, Decimal("100000"))
        self.assertEqual(bs.summary["previous_as_of_date"], datetime.date(2024, 3, 31))

    def test_cash_flow_reconciles_to_cash_accounts(self):
        cf = build_cash_flow(self.company, FY_START, FY_END)
        self.assertEqual(cf.amount(SL.CFO_NET_PROFIT), Decimal("38000"))
        self.assertEqual(cf.amount(SL.CFO_DEPRECIATION), Decimal("2000"))
        self.assertEqual(cf.amount(SL.CFO_RECEIVABLES), Decimal("-29000"))
        self.assertEqual(cf.amount(SL.CFO_OTHER_CL), Decimal("9000"))
        self.assertEqual(cf.amount(SL.CFO_TOTAL), Decimal("20000"))
        self.assertEqual(cf.amount(SL.CFI_TOTAL), Decimal("-20000"))
        self.assertEqual(cf.amount(SL.CFF_TOTAL), Decimal("40000"))
        self.assertEqual(cf.summary["opening_cash"], Decimal("100000"))
        self.assertEqual(cf.summary["closing_cash"], Decimal("140000"))
        self.assertTrue(cf.summary["is_reconciled"])
        self.assertEqual(cf.summary["ledger_cash_delta"], cf.summary["net_increase"])


class RuleTableTests(TestCase):

    def test_every_account_kind_lands_exactly_once(self):
        self.assertEqual(coverage_gaps(), {key: [] for key in LAYOUTS})

    def test_total_must_follow_its_components(self):
        with self.assertRaises(ValueError):
            check_layout((total(SL.PL_PAT, (SL.PL_PBT, 1)),))


class ReportCacheTests(StatementFixtureMixin, TestCase):

    def test_same_request_reuses_the_run(self):
        first = get_balance_sheet(self.company, FY_END)
        second = get_balance_sheet(self.company, FY_END)
        self.assertEqual(first["run_id"], second["run_id"])
        self.assertEqual(amount_of(first, SL.BS_ASSETS_TOTAL), Decimal("187000"))
        self.assertEqual(StatementRun.objects.for_company(self.company).count(), 1)

    def test_refresh_bypasses_the_cache(self):
        first = get_balance_sheet(self.company, FY_END)
        second = get_balance_sheet(self.company, FY_END, use_cache=False)
        self.assertNotEqual(first["run_id"], second["run_id"])

    def test_posting_marks_affected_runs_stale(self):
        early = get_balance_sheet(self.company, datetime.date(2024, 6, 30))
        late = get_balance_sheet(self.company, FY_END)

        post(
            self.company,
            datetime.date(2024, 12, 1),
            dr(acct(self.company, "1220"), "1000"),
            cr(acct(self.company, "4300"), "1000"),
        )

        self.assertFalse(StatementRun.objects.get(run_id=early["run_id"]).is_stale)
        self.assertTrue(StatementRun.objects.get(run_id=late["run_id"]).is_stale)

        fresh = get_balance_sheet(self.company, FY_END)
        self.assertNotEqual(fresh["run_id"], late["run_id"])
        self.assertEqual(amount_of(fresh, SL.BS_ASSETS_TOTAL), Decimal("188000"))
        self.assertEqual(get_balance_sheet(self.company, datetime.date(2024, 6, 30))["run_id"], early["run_id"])

    def test_profit_and_loss_defaults_to_fiscal_year_start(self):
        report = get_profit_and_loss(self.company, FY_END)
        self.assertEqual(report["summary"]["from_date"], "2024-04-01")
        self.assertEqual(amount_of(report, SL.PL_PAT), Decimal("38000"))


class ExportTests(StatementFixtureMixin, TestCase):

    def test_excel_export(self):
        run_id = get_balance_sheet(self.company, FY_END)["run_id"]
        content, content_type, filename = export_run(self.company, run_id, "xlsx")
        self.assertTrue(content.startswith(b"PK"))  # xlsx is a zip archive
        self.assertIn("spreadsheetml", content_type)
        self.assertEqual(filename, "balance_sheet_2025-03-31.xlsx")

    def test_csv_export_of_trial_balance(self):
        run_id = get_trial_balance(self.company, FY_END)["run_id"]
        content, content_type, _filename = export_run(self.company, run_id, "csv")
        lines = content.decode("utf-8").splitlines()
        self.assertEqual(content_type, "text/csv")
        self.assertEqual(lines[0], "Code,Account,Opening Dr,Opening Cr,Period Dr,Period Cr,Closing Dr,Closing Cr")
        self.assertTrue(any(line.startswith("1220,Bank Account,") for line in lines))

    def test_unknown_format_is_rejected(self):
        run_id = get_balance_sheet(self.company, FY_END)["run_id"]
        with self.assertRaises(ValidationError):
            export_run(self.company, run_id, "pdf")

    def test_runs_are_tenant_scoped(self):
        run_id = get_balance_sheet(self.company, FY_END)["run_id"]
        other, _fy = make_books(name="Other Co")
        with self.assertRaises(NotFoundError):
            export_run(other, run_id, "csv")
        with self.assertRaises(NotFoundError):
            export_run(self.company, "not-a-uuid", "csv")
