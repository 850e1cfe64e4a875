import datetime
from decimal import Decimal

from django.test import TestCase

from ledger_core.services.balances import (account_ledger, cash_balance, compute_balances,
                                           net_balance, summarize_by_type, trial_balance)
from ledger_core.services.posting import create_entry, reverse_entry

from .factories import FY_END, acct, cr, dr, make_books, make_previous_year, post


class BalanceTests(TestCase):

    def setUp(self):
        self.company, self.fy = make_books()
        make_previous_year(self.company)
        self.bank = acct(self.company, "1220")
        self.capital = acct(self.company, "3100")
        self.sales = acct(self.company, "4100")
        self.rent = acct(self.company, "5300")

        # prior year capital introduced, then a sale and rent in the current year
        post(self.company, datetime.date(2023, 6, 1), dr(self.bank, "100000"), cr(self.capital, "100000"))
        post(self.company, datetime.date(2024, 5, 1), dr(self.bank, "50000"), cr(self.sales, "50000"))
        post(self.company, datetime.date(2024, 6, 1), dr(self.rent, "10000"), cr(self.bank, "10000"))

    def row(self, tb, code):
        return next(r for r in tb.rows if r.code == code)

    def test_trial_balance_is_balanced(self):
        tb = trial_balance(self.company, FY_END, fiscal_year=self.fy)
        self.assertTrue(tb.is_balanced)
        self.assertEqual(tb.difference, Decimal("0.00"))
        self.assertEqual(tb.totals["closing_debit"], Decimal("150000.00"))
        self.assertEqual(tb.totals["closing_credit"], Decimal("150000.00"))
        self.assertEqual(tb.net_balance_sum, Decimal("0.00"))

    def test_opening_comes_from_earlier_years(self):
        tb = trial_balance(self.company, FY_END, fiscal_year=self.fy)
        bank = self.row(tb, "1220")
        self.assertEqual(bank.opening_debit, Decimal("100000.00"))
        self.assertEqual(bank.period_debit, Decimal("50000.00"))
        self.assertEqual(bank.period_credit, Decimal("10000.00"))
        self.assertEqual(bank.closing_debit, Decimal("140000.00"))
        self.assertEqual(bank.net_balance, Decimal("140000.00"))
        self.assertEqual(self.row(tb, "3100").closing_credit, Decimal("100000.00"))

    def test_groups_roll_up_their_ledgers(self):
        tb = trial_balance(self.company, FY_END, fiscal_year=self.fy)
        self.assertEqual(self.row(tb, "1200").closing_debit, Decimal("140000.00"))
        self.assertEqual(self.row(tb, "1000").closing_debit, Decimal("140000.00"))
        self.assertEqual(self.row(tb, "5000").period_debit, Decimal("10000.00"))
        # group rows do not count twice in the totals
        self.assertEqual(tb.totals["period_debit"], Decimal("60000.00"))

    def test_zero_rows_are_hidden_unless_asked(self):
        tb = trial_balance(self.company, FY_END, fiscal_year=self.fy)
        self.assertNotIn("5600", [r.code for r in tb.rows])
        tb = trial_balance(self.company, FY_END, fiscal_year=self.fy, include_zero=True)
        self.assertIn("5600", [r.code for r in tb.rows])

    def test_drafts_are_not_in_balances(self):
        create_entry(
            self.company,
            entry_date=datetime.date(2024, 7, 1),
            lines=[dr(self.bank, "999"), cr(self.sales, "999")],
        )
        balances = compute_balances(self.company, FY_END)
        self.assertEqual(balances[self.bank.pk].debit, Decimal("150000.00"))

    def test_reversed_entries_count_both_ways(self):
        entry = post(self.company, datetime.date(2024, 7, 1), dr(self.bank, "5000"), cr(self.sales, "5000"))
        reverse_entry(entry, reversal_date=datetime.date(2024, 7, 2))

        balances = compute_balances(self.company, FY_END)
        self.assertEqual(balances[self.bank.pk].debit, Decimal("155000.00"))
        self.assertEqual(balances[self.bank.pk].credit, Decimal("15000.00"))
        self.assertEqual(cash_balance(self.company, FY_END), Decimal("140000.00"))

        # between the entry and its reversal the sale is still on the books
        self.assertEqual(cash_balance(self.company, datetime.date(2024, 7, 1)), Decimal("145000.00"))

    def test_summarize_by_type(self):
        summary = summarize_by_type(self.company, FY_END)
        self.assertEqual(summary["asset"]["net"], Decimal("140000.00"))
        self.assertEqual(summary["income"]["net"], Decimal("50000.00"))
        self.assertEqual(summary["expense"]["net"], Decimal("10000.00"))
        self.assertEqual(summary["equity"]["net"], Decimal("100000.00"))
        self.assertEqual(summary["liability"]["net"], Decimal("0.00"))

    def test_net_balance_follows_normal_side(self):
        self.assertEqual(net_balance("asset", Decimal("10"), Decimal("4")), Decimal("6"))
        self.assertEqual(net_balance(self.sales, Decimal("10"), Decimal("4")), Decimal("-6"))

    def test_account_ledger_running_balance(self):
        ledger = account_ledger(self.bank, datetime.date(2024, 4, 1), FY_END)
        self.assertEqual(ledger["opening_balance"], Decimal("100000.00"))
        self.assertEqual(ledger["opening_balance_type"], "Dr")
        self.assertEqual([line["balance"] for line in ledger["lines"]], [Decimal("150000.00"), Decimal("140000.00")])
        self.assertEqual(ledger["closing_balance"], Decimal("140000.00"))

        sales = account_ledger(self.sales, datetime.date(2024, 4, 1), FY_END)
        self.assertEqual(sales["closing_balance"], Decimal("50000.00"))
        self.assertEqual(sales["closing_balance_type"], "Cr")
