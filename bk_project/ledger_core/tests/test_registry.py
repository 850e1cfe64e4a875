from django.test import TestCase

from ledger_core.exceptions import NotFoundError, ValidationError
from ledger_core.models import Account, Company, StatementLine
from ledger_core.services.registry import (DEFAULT_CHART, account_tree, create_account,
                                           deactivate_account, import_accounts, is_postable,
                                           reactivate_account, resolve_account,
                                           seed_default_chart)


class ChartOfAccountsTests(TestCase):

    def setUp(self):
        self.company = Company.objects.create(name="Chart Co")
        self.assets = create_account(self.company, code="1000", name="Assets", ac_type="asset", is_group=True)

    def test_level_follows_parent(self):
        current = create_account(
            self.company, code="1200", name="Current", ac_type="asset", is_group=True, parent=self.assets
        )
        cash = create_account(self.company, code="1210", name="Cash", ac_type="asset", parent="1200")
        self.assertEqual(self.assets.level, 1)
        self.assertEqual(current.level, 2)
        self.assertEqual(cash.level, 3)
        self.assertEqual(cash.normal_balance, "debit")
        self.assertTrue(is_postable(cash))
        self.assertFalse(is_postable(current))

    def test_parent_must_be_a_group(self):
        cash = create_account(self.company, code="1210", name="Cash", ac_type="asset", parent=self.assets)
        with self.assertRaises(ValidationError):
            create_account(self.company, code="1211", name="Petty", ac_type="asset", parent=cash)

    def test_parent_must_have_same_type(self):
        with self.assertRaises(ValidationError):
            create_account(self.company, code="4100", name="Sales", ac_type="income", parent=self.assets)

    def test_depth_is_capped_at_five_levels(self):
        parent = self.assets
        for level in range(2, 6):
            parent = create_account(
                self.company, code=f"1{level}00", name=f"L{level}", ac_type="asset", is_group=True, parent=parent
            )
        self.assertEqual(parent.level, 5)
        with self.assertRaises(ValidationError):
            create_account(self.company, code="1999", name="Too deep", ac_type="asset", parent=parent)

    def test_codes_are_unique_per_company(self):
        with self.assertRaises(ValidationError):
            create_account(self.company, code="1000", name="Again", ac_type="asset")
        # same code in another company is fine
        other = Company.objects.create(name="Other Co")
        create_account(other, code="1000", name="Assets", ac_type="asset", is_group=True)

    def test_statement_line_must_fit_the_type(self):
        with self.assertRaises(ValidationError):
            create_account(
                self.company,
                code="1300",
                name="Odd",
                ac_type="asset",
                statement_line=StatementLine.PL_REVENUE_OPERATIONS,
            )

    def test_line_kind_defaults_by_type(self):
        misc = create_account(self.company, code="1900", name="Misc", ac_type="asset")
        self.assertEqual(misc.line_kind, StatementLine.BS_ASSET_CA_OTHER)

    def test_resolve_account_is_tenant_scoped(self):
        other = Company.objects.create(name="Other Co")
        with self.assertRaises(NotFoundError):
            resolve_account(other, self.assets.pk)
        with self.assertRaises(NotFoundError):
            resolve_account(self.company, "not-a-number")


class DefaultChartTests(TestCase):

    def setUp(self):
        self.company = Company.objects.create(name="Seeded Co")
        self.created = seed_default_chart(self.company)

    def test_seed_creates_whole_chart_once(self):
        self.assertEqual(len(self.created), len(DEFAULT_CHART))
        self.assertEqual(seed_default_chart(self.company), [])
        self.assertEqual(Account.objects.for_company(self.company).count(), len(DEFAULT_CHART))

    def test_system_accounts_cannot_be_deactivated(self):
        tds = Account.objects.get(company=self.company, code="2240")
        self.assertTrue(tds.is_system)
        with self.assertRaises(ValidationError):
            deactivate_account(tds)

    def test_deactivate_and_reactivate(self):
        rent = Account.objects.get(company=self.company, code="5300")
        deactivate_account(rent)
        self.assertFalse(is_postable(rent))
        reactivate_account(rent)
        self.assertTrue(is_postable(rent))

    def test_account_tree_nests_children(self):
        roots = account_tree(self.company)
        self.assertEqual([node["account"].code for node in roots], ["1000", "2000", "3000", "4000", "5000"])
        assets = roots[0]
        self.assertIn("1200", [child["account"].code for child in assets["children"]])

    def test_import_is_all_or_nothing(self):
        rows = [
            {"code": "6000", "name": "Memo", "ac_type": "asset", "is_group": True},
            {"code": "6100", "name": "Memo ledger", "ac_type": "asset", "parent_code": "6000"},
            {"code": "6200", "name": "Broken", "ac_type": "asset", "parent_code": "9999"},
        ]
        with self.assertRaises(NotFoundError):
            import_accounts(self.company, rows)
        self.assertFalse(Account.objects.filter(company=self.company, code="6000").exists())
