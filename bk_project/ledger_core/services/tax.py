"""
Indian GST and TDS computations.

Pure functions with no ledger state; the posting services call them when
turning invoices and bills into journal entries, and views expose them
directly for line-building UIs.
"""
import re
from dataclasses import asdict, dataclass
from decimal import Decimal

from django.db import models

from ..exceptions import NotFoundError, ValidationError
from .money import ZERO, round_money, to_money

HUNDRED = Decimal("100")


@dataclass(frozen=True)
class GstSplit:
    igst: Decimal
    cgst: Decimal
    sgst: Decimal

    @property
    def total(self):
        return self.igst + self.cgst + self.sgst

    def as_dict(self):
        return {**asdict(self), "total": self.total}


@dataclass(frozen=True)
class TdsResult:
    tds_amount: Decimal
    net_payable: Decimal
    is_applicable: bool

    def as_dict(self):
        return asdict(self)


def _rate(value, field="rate"):
    try:
        rate = value if isinstance(value, Decimal) else Decimal(str(value))
    except ArithmeticError as exc:
        raise ValidationError(f"{field} is not a number: {value!r}", field=field) from exc
    if not rate.is_finite() or rate < 0 or rate > HUNDRED:
        raise ValidationError(f"{field} must be between 0 and 100", field=field)
    return rate


def split_gst(amount, rate, is_inter_state):
    """Split GST on a taxable amount.

    Inter-state supplies carry the full rate as IGST; intra-state
    supplies carry half the rate each as CGST and SGST, rounded
    separately to the paisa.

    >>> split_gst(10000, 18, True).igst
    Decimal('1800.00')
    """
    amount = to_money(amount)
    rate = _rate(rate)
    if amount < 0:
        raise ValidationError("Taxable amount cannot be negative", amount=str(amount))

    if is_inter_state:
        return GstSplit(igst=round_money(amount * rate / HUNDRED), cgst=ZERO, sgst=ZERO)

    half = round_money(amount * (rate / 2) / HUNDRED)
    return GstSplit(igst=ZERO, cgst=half, sgst=half)


def compute_tds(amount, rate, threshold):
    """Withhold `rate`% of `amount` once it reaches `threshold`."""
    amount = to_money(amount)
    rate = _rate(rate)
    threshold = to_money(threshold, field="threshold")

    if amount < threshold or rate == 0:
        return TdsResult(tds_amount=ZERO, net_payable=amount, is_applicable=False)

    tds = round_money(amount * rate / HUNDRED)
    return TdsResult(tds_amount=tds, net_payable=amount - tds, is_applicable=True)


# ---------- TDS sections ----------
@dataclass(frozen=True)
class TdsSection:
    code: str
    description: str
    rate_individual: Decimal
    rate_company: Decimal
    threshold: Decimal


TDS_SECTIONS = {
    s.code: s
    for s in (
        TdsSection("192", "Salary", Decimal("30"), Decimal("0"), Decimal("250000")),
        TdsSection("194A", "Interest other than on securities", Decimal("10"), Decimal("10"), Decimal("40000")),
        TdsSection("194C", "Payment to contractors", Decimal("1"), Decimal("2"), Decimal("30000")),
        TdsSection("194H", "Commission or brokerage", Decimal("5"), Decimal("5"), Decimal("15000")),
        TdsSection("194I", "Rent", Decimal("10"), Decimal("10"), Decimal("240000")),
        TdsSection("194J", "Professional or technical fees", Decimal("10"), Decimal("10"), Decimal("30000")),
        TdsSection("194M", "Contract work by individuals/HUF", Decimal("5"), Decimal("5"), Decimal("50000000")),
        TdsSection("194Q", "Purchase of goods", Decimal("0.10"), Decimal("0.10"), Decimal("5000000")),
        TdsSection("195", "Payment to non-residents", Decimal("20"), Decimal("20"), Decimal("0")),
    )
}


class PaymentCategory(models.TextChoices):
    SALARY = "salary", "Salary"
    INTEREST = "interest", "Interest"
    CONTRACTOR = "contractor", "Contractor"
    COMMISSION = "commission", "Commission"
    RENT = "rent", "Rent"
    PROFESSIONAL = "professional", "Professional fees"
    PURCHASE = "purchase", "Purchase of goods"
    NON_RESIDENT = "non_resident", "Non-resident payment"


CATEGORY_SECTIONS = {
    PaymentCategory.SALARY: "192",
    PaymentCategory.INTEREST: "194A",
    PaymentCategory.CONTRACTOR: "194C",
    PaymentCategory.COMMISSION: "194H",
    PaymentCategory.RENT: "194I",
    PaymentCategory.PROFESSIONAL: "194J",
    PaymentCategory.PURCHASE: "194Q",
    PaymentCategory.NON_RESIDENT: "195",
}


def get_tds_section(code_or_category):
    code = CATEGORY_SECTIONS.get(code_or_category, code_or_category)
    try:
        return TDS_SECTIONS[code]
    except KeyError:
        raise NotFoundError(f"Unknown TDS section {code_or_category}", section=code_or_category)


def tds_rate_for(section, payee_is_company=False):
    section = section if isinstance(section, TdsSection) else get_tds_section(section)
    return section.rate_company if payee_is_company else section.rate_individual


def compute_tds_for_section(amount, section, payee_is_company=False):
    """compute_tds with the rate and threshold of a section or payment category."""
    section = section if isinstance(section, TdsSection) else get_tds_section(section)
    return compute_tds(amount, tds_rate_for(section, payee_is_company), section.threshold)


# ---------- GSTIN ----------
GSTIN_PATTERN = re.compile(r"^[0-9]{2}[A-Z]{5}[0-9]{4}[A-Z][1-9A-Z]Z[0-9A-Z]$")
GSTIN_CHARSET = "0123456789ABCDEFGHIJKLMNOPQRSTUVWXYZ"

# 01 Jammu & Kashmir ... 38 Ladakh
VALID_STATE_CODES = {f"{n:02d}" for n in range(1, 39)}


def gstin_checksum(first14):
    """Mod-36 check character over the first 14 characters."""
    total = 0
    for i, char in enumerate(first14):
        factor = 2 if i % 2 else 1
        product = GSTIN_CHARSET.index(char) * factor
        total += product // 36 + product % 36
    return GSTIN_CHARSET[(36 - total % 36) % 36]


def validate_gstin(gstin):
    """Return the normalised GSTIN or raise ValidationError."""
    gstin = (gstin or "").strip().upper()
    if not GSTIN_PATTERN.match(gstin):
        raise ValidationError("GSTIN format is invalid", gstin=gstin)
    if gstin[:2] not in VALID_STATE_CODES:
        raise ValidationError(f"GSTIN state code {gstin[:2]} is invalid", gstin=gstin)
    if gstin_checksum(gstin[:14]) != gstin[14]:
        raise ValidationError("GSTIN checksum does not match", gstin=gstin)
    return gstin


def gstin_state_code(gstin):
    return validate_gstin(gstin)[:2]


def is_inter_state(supplier_state, place_of_supply):
    """Different state codes mean IGST; accepts GSTINs or 2-digit codes."""
    supplier = (supplier_state or "")[:2]
    destination = (place_of_supply or "")[:2]
    if not supplier or not destination:
        raise ValidationError(
            "Both supplier state and place of supply are needed to pick the GST type"
        )
    return supplier != destination
