from decimal import Decimal

from django.conf import settings
from django.db import transaction

# Import models
from ..exceptions import ValidationError
from ..models import Account, JournalEntry
from .money import ZERO, to_money
from .posting import create_entry
from .registry import resolve_account_by_code
from .tax import compute_tds_for_section, split_gst


# ----------------------------
# Collaborator-driven entries
# ----------------------------
def _tax_account(company, key):
    """Ledger account for a tax head, looked up by code from LEDGER_TAX_ACCOUNTS."""
    try:
        code = settings.LEDGER_TAX_ACCOUNTS[key]
    except KeyError:
        raise ValidationError(f"No tax account configured for {key}", tax_head=key)
    return resolve_account_by_code(company, code)


def _account(company, value):
    # Account instance or account code
    if isinstance(value, Account):
        return value
    return resolve_account_by_code(company, value)


def _existing(company, source_type, source_id, entry_type):
    # same source posted before → hand back that entry
    if not source_id:
        return None
    return (
        JournalEntry.objects.for_company(company)
        .filter(source_type=source_type, source_id=str(source_id), entry_type=entry_type)
        .exclude(status="reversed")
        .first()
    )


def _gst_lines(company, gst, side, prefix, label):
    """One line per non-zero GST component on the given side."""
    lines = []
    for head, amount in (("igst", gst.igst), ("cgst", gst.cgst), ("sgst", gst.sgst)):
        if amount <= 0:
            continue
        lines.append(
            {
                "account": _tax_account(company, f"{prefix}_{head}"),
                side: amount,
                "description": f"{head.upper()} on {label}",
            }
        )
    return lines


def create_invoice_entry(
    company,
    *,
    invoice_date,
    receivable_account,
    revenue_account,
    taxable_amount,
    gst_rate=Decimal("0"),
    is_inter_state=False,
    reference="",
    source_id="",
    narration="",
    user=None,
):
    """
    Create & post the sales entry for an invoice.
    Produces:
      Debit: receivable = taxable amount + GST
      Credit: revenue = taxable amount
      Credit: output IGST, or output CGST + SGST
    """
    taxable = to_money(taxable_amount, field="taxable_amount")
    if taxable <= 0:
        raise ValidationError("Invoice amount must be > 0 to post revenue", amount=str(taxable))

    existing = _existing(company, "invoice", source_id, "auto_invoice")
    if existing:
        return existing

    gst = split_gst(taxable, gst_rate, is_inter_state)
    label = reference or f"invoice {source_id}".strip()
    lines = [
        {
            "account": _account(company, receivable_account),
            "debit": taxable + gst.total,
            "description": f"Receivable for {label}",
        },
        {
            "account": _account(company, revenue_account),
            "credit": taxable,
            "description": f"Revenue: {label}",
        },
    ]
    lines += _gst_lines(company, gst, "credit", "output", label)

    return create_entry(
        company,
        entry_date=invoice_date,
        lines=lines,
        entry_type="auto_invoice",
        narration=narration or f"Sales {label}",
        reference=reference,
        source_type="invoice",
        source_id=source_id,
        user=user,
    )


def create_bill_entry(
    company,
    *,
    bill_date,
    payable_account,
    expense_account,
    taxable_amount,
    gst_rate=Decimal("0"),
    is_inter_state=False,
    tds_section=None,
    payee_is_company=False,
    reference="",
    source_id="",
    narration="",
    user=None,
):
    """
    Create & post the purchase entry for a vendor bill.
    Produces:
      Debit: expense = taxable amount
      Debit: input IGST, or input CGST + SGST
      Credit: TDS payable = tax withheld on the taxable amount (if the section applies)
      Credit: payable = the rest
    """
    taxable = to_money(taxable_amount, field="taxable_amount")
    if taxable <= 0:
        raise ValidationError("Bill amount must be > 0 to post expense", amount=str(taxable))

    existing = _existing(company, "bill", source_id, "auto_expense")
    if existing:
        return existing

    gst = split_gst(taxable, gst_rate, is_inter_state)
    tds_amount = ZERO
    if tds_section:
        tds_amount = compute_tds_for_section(taxable, tds_section, payee_is_company).tds_amount

    label = reference or f"bill {source_id}".strip()
    lines = [
        {
            "account": _account(company, expense_account),
            "debit": taxable,
            "description": f"Expense: {label}",
        },
    ]
    lines += _gst_lines(company, gst, "debit", "input", label)
    if tds_amount > 0:
        lines.append(
            {
                "account": _tax_account(company, "tds_payable"),
                "credit": tds_amount,
                "description": f"TDS u/s {tds_section} on {label}",
            }
        )
    lines.append(
        {
            "account": _account(company, payable_account),
            "credit": taxable + gst.total - tds_amount,
            "description": f"Payable for {label}",
        }
    )

    return create_entry(
        company,
        entry_date=bill_date,
        lines=lines,
        entry_type="auto_expense",
        narration=narration or f"Purchase {label}",
        reference=reference,
        source_type="bill",
        source_id=source_id,
        user=user,
    )


PAYMENT_DIRECTIONS = ("receipt", "payment")


@transaction.atomic
def create_payment_entry(
    company,
    *,
    payment_date,
    bank_account,
    party_account,
    amount,
    direction="receipt",
    reference="",
    source_id="",
    user=None,
):
    """
    Create & post a bank movement against a party.
      receipt: Debit bank, Credit party (clears a receivable)
      payment: Debit party, Credit bank (clears a payable)
    """
    if direction not in PAYMENT_DIRECTIONS:
        raise ValidationError(f"Unknown payment direction {direction}", direction=direction)
    amount = to_money(amount, field="amount")
    if amount <= 0:
        raise ValidationError("Payment amount must be positive", amount=str(amount))

    existing = _existing(company, "payment", source_id, "auto_payment")
    if existing:
        return existing

    bank = _account(company, bank_account)
    party = _account(company, party_account)
    debit_account, credit_account = (bank, party) if direction == "receipt" else (party, bank)
    label = reference or f"{direction} {source_id}".strip()

    return create_entry(
        company,
        entry_date=payment_date,
        lines=[
            {"account": debit_account, "debit": amount, "description": label},
            {"account": credit_account, "credit": amount, "description": label},
        ],
        entry_type="auto_payment",
        narration=f"Bank {label}",
        reference=reference,
        source_type="payment",
        source_id=source_id,
        user=user,
    )
