import datetime
from decimal import Decimal
from unittest import mock

from django.core.exceptions import ValidationError as ModelValidationError
from django.db import IntegrityError
from django.db.models.deletion import ProtectedError
from django.test import TestCase

from ledger_core.exceptions import (ConcurrencyError, InvalidStateError, LockedPeriodError,
                                    NotFoundError, UnbalancedJournalError, ValidationError)
from ledger_core.models import JournalEntry, JournalLine, User
from ledger_core.services import posting
from ledger_core.services.periods import lock_fiscal_year, unlock_fiscal_year
from ledger_core.services.posting import (create_entry, delete_entry, post_entry, reject_entry,
                                          reverse_entry, submit_for_approval, update_entry)
from ledger_core.services.registry import deactivate_account

from .factories import acct, cr, dr, make_books, post

DAY = datetime.date(2024, 9, 15)


""" Success tests """
class JournalEntrySuccessTests(TestCase):

    def setUp(self):
        self.company, self.fy = make_books()
        self.user = User.objects.create(username="poster")
        self.bank = acct(self.company, "1220")
        self.sales = acct(self.company, "4100")

    def make_draft(self, amount="100.00"):
        return create_entry(
            self.company,
            entry_date=DAY,
            lines=[dr(self.bank, amount), cr(self.sales, amount)],
            narration="Cash sale",
        )

    """ Test Balanced Entry """
    def test_balanced_entry_posts_successfully(self):
        je = self.make_draft()
        self.assertEqual(je.status, "draft")

        post_entry(je, user=self.user)
        je.refresh_from_db()

        self.assertEqual(je.status, "posted")
        self.assertEqual(je.posted_by, self.user)
        self.assertIsNotNone(je.posted_at)
        self.assertEqual(je.total_debit, Decimal("100.00"))
        self.assertEqual(je.total_credit, Decimal("100.00"))
        self.assertEqual(je.lines.count(), 2)

    def test_entry_numbers_are_sequential_per_fiscal_year(self):
        first = self.make_draft()
        second = self.make_draft()
        self.assertEqual(first.entry_number, "JV/2024-25/0001")
        self.assertEqual(second.entry_number, "JV/2024-25/0002")
        self.assertEqual(first.fiscal_year, self.fy)

    def test_approval_workflow(self):
        je = submit_for_approval(self.make_draft())
        self.assertEqual(je.status, "pending_approval")

        je = post_entry(je, user=self.user)
        self.assertEqual(je.status, "posted")
        self.assertEqual(je.approved_by, self.user)
        self.assertIsNotNone(je.approved_at)

    def test_reject_sends_pending_entry_back_to_draft(self):
        je = submit_for_approval(self.make_draft())
        je = reject_entry(je)
        self.assertEqual(je.status, "draft")

    def test_system_generated_types_are_posted_on_create(self):
        je = create_entry(
            self.company,
            entry_date=DAY,
            lines=[dr(self.bank, "50"), cr(self.sales, "50")],
            entry_type="auto_payment",
        )
        self.assertEqual(je.status, "posted")

    def test_amounts_are_stored_to_paise(self):
        je = self.make_draft(amount="100.000")
        self.assertEqual(je.total_debit, Decimal("100.00"))
        self.assertEqual(set(je.lines.values_list("debit", flat=True)), {Decimal("100.00"), Decimal("0.00")})

    def test_update_draft_replaces_lines(self):
        je = self.make_draft()
        je = update_entry(
            je,
            lines=[dr(self.bank, "75"), cr(self.sales, "75")],
            narration="Corrected",
        )
        self.assertEqual(je.total_debit, Decimal("75.00"))
        self.assertEqual(je.narration, "Corrected")
        self.assertEqual(je.lines.count(), 2)

    def test_delete_draft(self):
        je = self.make_draft()
        delete_entry(je)
        self.assertFalse(JournalEntry.objects.filter(pk=je.pk).exists())

    def test_retry_once_on_number_collision(self):
        real_insert = posting._insert
        calls = []

        def flaky(build):
            calls.append(build)
            if len(calls) == 1:
                raise ConcurrencyError("collision")
            return real_insert(build)

        with mock.patch.object(posting, "_insert", side_effect=flaky):
            je = self.make_draft()

        self.assertEqual(len(calls), 2)
        self.assertEqual(je.entry_number, "JV/2024-25/0001")


""" Failure tests """
class JournalEntryFailureTests(TestCase):

    def setUp(self):
        self.company, self.fy = make_books()
        self.bank = acct(self.company, "1220")
        self.sales = acct(self.company, "4100")

    """ Test for Unbalanced Entry """
    def test_unbalanced_entry_is_rejected(self):
        with self.assertRaises(UnbalancedJournalError) as cm:
            create_entry(
                self.company,
                entry_date=DAY,
                lines=[dr(self.bank, "100.00"), cr(self.sales, "99.99")],
            )

        self.assertIn("Journal not balanced", str(cm.exception))
        self.assertEqual(cm.exception.difference, Decimal("0.01"))
        # nothing was stored
        self.assertEqual(JournalEntry.objects.count(), 0)
        self.assertEqual(JournalLine.objects.count(), 0)

    def test_single_line_is_rejected(self):
        with self.assertRaises(ValidationError):
            create_entry(self.company, entry_date=DAY, lines=[dr(self.bank, "10")])

    def test_line_with_both_sides_is_rejected(self):
        lines = [
            {"account": self.bank, "debit": "10", "credit": "10"},
            cr(self.sales, "0"),
        ]
        with self.assertRaises(ValidationError):
            create_entry(self.company, entry_date=DAY, lines=lines)

    def test_negative_amount_is_rejected(self):
        with self.assertRaises(ValidationError):
            create_entry(
                self.company,
                entry_date=DAY,
                lines=[dr(self.bank, "-10"), cr(self.sales, "-10")],
            )

    def test_group_account_is_rejected(self):
        group = acct(self.company, "1200")
        with self.assertRaises(ValidationError):
            create_entry(self.company, entry_date=DAY, lines=[dr(group, "10"), cr(self.sales, "10")])

    def test_inactive_account_is_rejected(self):
        rent = deactivate_account(acct(self.company, "5300"))
        with self.assertRaises(ValidationError):
            create_entry(self.company, entry_date=DAY, lines=[dr(rent, "10"), cr(self.bank, "10")])

    def test_account_of_another_company_is_not_found(self):
        other, _fy = make_books(name="Other Co")
        foreign = acct(other, "1220")
        with self.assertRaises(NotFoundError):
            create_entry(self.company, entry_date=DAY, lines=[dr(foreign, "10"), cr(self.sales, "10")])
        with self.assertRaises(NotFoundError):
            create_entry(
                self.company,
                entry_date=DAY,
                lines=[{"account_id": foreign.pk, "debit": "10"}, cr(self.sales, "10")],
            )

    def test_date_outside_any_fiscal_year(self):
        with self.assertRaises(NotFoundError):
            create_entry(
                self.company,
                entry_date=datetime.date(2030, 1, 1),
                lines=[dr(self.bank, "10"), cr(self.sales, "10")],
            )

    def test_locked_fiscal_year_rejects_new_entries(self):
        lock_fiscal_year(self.fy)
        with self.assertRaises(LockedPeriodError):
            create_entry(self.company, entry_date=DAY, lines=[dr(self.bank, "10"), cr(self.sales, "10")])

    def test_post_atomicity_on_locked_year(self):
        je = create_entry(self.company, entry_date=DAY, lines=[dr(self.bank, "10"), cr(self.sales, "10")])
        lock_fiscal_year(self.fy)

        with self.assertRaises(LockedPeriodError):
            post_entry(je)

        je.refresh_from_db()
        self.assertEqual(je.status, "draft")
        self.assertIsNone(je.posted_at)

    def test_posting_twice_is_invalid(self):
        je = post(self.company, DAY, dr(self.bank, "10"), cr(self.sales, "10"))
        with self.assertRaises(InvalidStateError):
            post_entry(je)

    def test_posted_entry_cannot_be_edited_or_deleted(self):
        je = post(self.company, DAY, dr(self.bank, "10"), cr(self.sales, "10"))
        with self.assertRaises(InvalidStateError):
            update_entry(je, narration="changed")
        with self.assertRaises(InvalidStateError):
            delete_entry(je)
        with self.assertRaises(ModelValidationError):
            je.delete()

    def test_collision_after_retry_is_reported(self):
        # a row already holds the next number, so both attempts collide
        JournalEntry.objects.create(
            company=self.company, fiscal_year=self.fy, entry_number="JV/2024-25/0001", entry_date=DAY
        )
        with self.assertRaises(ConcurrencyError):
            create_entry(self.company, entry_date=DAY, lines=[dr(self.bank, "10"), cr(self.sales, "10")])

    def test_sub_paisa_amounts_are_refused(self):
        for amount in ("100.005", "100.004", Decimal("0.001")):
            with self.assertRaises(ValidationError):
                create_entry(
                    self.company,
                    entry_date=DAY,
                    lines=[dr(self.bank, amount), cr(self.sales, amount)],
                )
        self.assertFalse(JournalEntry.objects.filter(company=self.company).exists())

    def test_other_integrity_errors_are_not_retried(self):
        failure = IntegrityError("CHECK constraint failed: jl_debit_xor_credit")
        with mock.patch.object(posting, "_write_lines", side_effect=failure) as write_lines:
            with self.assertRaises(IntegrityError):
                create_entry(self.company, entry_date=DAY, lines=[dr(self.bank, "10"), cr(self.sales, "10")])
        self.assertEqual(write_lines.call_count, 1)
        self.assertFalse(JournalEntry.objects.filter(company=self.company).exists())

    def test_number_collision_is_recognised(self):
        self.assertTrue(posting._is_number_collision(IntegrityError(
            'duplicate key value violates unique constraint "uq_je_company_fy_number"')))
        self.assertTrue(posting._is_number_collision(IntegrityError(
            "UNIQUE constraint failed: ledger_core_journalentry.company_id, "
            "ledger_core_journalentry.fiscal_year_id, ledger_core_journalentry.entry_number")))
        self.assertFalse(posting._is_number_collision(IntegrityError(
            "FOREIGN KEY constraint failed")))


class JournalEntryReversalTests(TestCase):

    def setUp(self):
        self.company, self.fy = make_books()
        self.bank = acct(self.company, "1220")
        self.sales = acct(self.company, "4100")
        self.je = post(self.company, DAY, dr(self.bank, "250"), cr(self.sales, "250"), narration="Sale")

    def test_reverse_swaps_lines_and_marks_original(self):
        reversal = reverse_entry(self.je, reversal_date=datetime.date(2024, 9, 30))
        self.je.refresh_from_db()

        self.assertEqual(self.je.status, "reversed")
        self.assertEqual(reversal.status, "posted")
        self.assertEqual(reversal.entry_type, "reversal")
        self.assertEqual(reversal.reverses, self.je)
        self.assertEqual(self.je.reversed_by, reversal)
        self.assertEqual(reversal.narration, f"Reversal of {self.je.entry_number}")

        lines = {line.account.code: line for line in reversal.lines.all()}
        self.assertEqual(lines["1220"].credit, Decimal("250.00"))
        self.assertEqual(lines["4100"].debit, Decimal("250.00"))
        self.assertTrue(lines["1220"].description.startswith("Reversal: "))

    def test_reversal_defaults_to_original_date(self):
        reversal = reverse_entry(self.je)
        self.assertEqual(reversal.entry_date, DAY)

    def test_reverse_twice_is_invalid(self):
        reverse_entry(self.je)
        with self.assertRaises(InvalidStateError):
            reverse_entry(self.je)

    def test_draft_cannot_be_reversed(self):
        draft = create_entry(self.company, entry_date=DAY, lines=[dr(self.bank, "5"), cr(self.sales, "5")])
        with self.assertRaises(InvalidStateError):
            reverse_entry(draft)

    def test_reversal_into_locked_year_is_rejected(self):
        lock_fiscal_year(self.fy)
        with self.assertRaises(LockedPeriodError):
            reverse_entry(self.je)
        self.je.refresh_from_db()
        self.assertEqual(self.je.status, "posted")

        unlock_fiscal_year(self.fy)
        reverse_entry(self.je)
        self.je.refresh_from_db()
        self.assertEqual(self.je.status, "reversed")

    def test_reversal_before_original_date_is_rejected(self):
        with self.assertRaises(ValidationError):
            reverse_entry(self.je, reversal_date=DAY - datetime.timedelta(days=1))


class JournalEntryFreezeTests(TestCase):
    def setUp(self):
        self.company, self.fy = make_books()
        self.je = post(
            self.company, DAY, dr(acct(self.company, "1220"), "100"), cr(acct(self.company, "4100"), "100")
        )

    def test_posted_line_update_raises_validationerror(self):
        line = self.je.lines.order_by("pk").first()
        original_debit = line.debit
        line.debit = original_debit + Decimal("50.00")

        with self.assertRaises(ModelValidationError):
            line.save()

        # ensure DB value is unchanged (double-check)
        line.refresh_from_db()
        self.assertEqual(line.debit, original_debit)

    def test_posted_line_deletion_is_prevented(self):
        line = self.je.lines.first()
        with self.assertRaises(ModelValidationError):
            line.delete()
        self.assertTrue(self.je.lines.filter(pk=line.pk).exists())

    def test_posted_header_is_frozen(self):
        self.je.narration = "rewritten"
        with self.assertRaises(ModelValidationError):
            self.je.save()

    def test_used_account_cannot_be_deleted(self):
        # PROTECT on the line FK or the pre_delete guard, whichever fires first
        with self.assertRaises((ProtectedError, ModelValidationError)):
            acct(self.company, "1220").delete()
