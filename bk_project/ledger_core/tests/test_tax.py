from decimal import Decimal

import pytest

from ledger_core.exceptions import NotFoundError, ValidationError
from ledger_core.services.tax import (PaymentCategory, compute_tds, compute_tds_for_section,
                                      gstin_checksum, gstin_state_code, is_inter_state,
                                      split_gst, tds_rate_for, validate_gstin)

GSTIN_MH = "27AAPFU0939F1ZV"


def test_intra_state_gst_splits_in_half():
    gst = split_gst(Decimal("10000"), Decimal("18"), False)
    assert gst.cgst == Decimal("900.00")
    assert gst.sgst == Decimal("900.00")
    assert gst.igst == Decimal("0.00")
    assert gst.total == Decimal("1800.00")


def test_inter_state_gst_is_igst():
    gst = split_gst(Decimal("10000"), Decimal("18"), True)
    assert gst.igst == Decimal("1800.00")
    assert gst.cgst == gst.sgst == Decimal("0.00")


def test_halves_are_rounded_separately():
    # 55 @ 5%: 1.375 each half rounds up; IGST is 2.75
    intra = split_gst(Decimal("55"), Decimal("5"), False)
    assert intra.cgst == Decimal("1.38")
    assert intra.total == Decimal("2.76")
    assert split_gst(Decimal("55"), Decimal("5"), True).total == Decimal("2.75")


def test_gst_rejects_bad_input():
    with pytest.raises(ValidationError):
        split_gst(Decimal("-1"), Decimal("18"), False)
    with pytest.raises(ValidationError):
        split_gst(Decimal("100"), Decimal("101"), False)
    with pytest.raises(ValidationError):
        split_gst(Decimal("100"), "abc", False)


@pytest.mark.parametrize(
    "amount, applicable, tds",
    [
        ("29999.99", False, "0.00"),
        ("30000", True, "3000.00"),
        ("45678.91", True, "4567.89"),
    ],
)
def test_tds_threshold(amount, applicable, tds):
    result = compute_tds(Decimal(amount), Decimal("10"), Decimal("30000"))
    assert result.is_applicable is applicable
    assert result.tds_amount == Decimal(tds)
    assert result.net_payable == Decimal(amount) - Decimal(tds)


def test_zero_rate_withholds_nothing():
    result = compute_tds(Decimal("100000"), Decimal("0"), Decimal("0"))
    assert not result.is_applicable
    assert result.net_payable == Decimal("100000.00")


def test_contractor_rate_depends_on_payee():
    assert tds_rate_for("194C") == Decimal("1")
    assert tds_rate_for("194C", payee_is_company=True) == Decimal("2")
    assert compute_tds_for_section(Decimal("50000"), "194C").tds_amount == Decimal("500.00")
    assert compute_tds_for_section(Decimal("50000"), PaymentCategory.CONTRACTOR, True).tds_amount == Decimal("1000.00")


def test_unknown_section():
    with pytest.raises(NotFoundError):
        compute_tds_for_section(Decimal("50000"), "999Z")


def test_gstin_checksum():
    assert gstin_checksum(GSTIN_MH[:14]) == "V"
    assert validate_gstin(GSTIN_MH.lower()) == GSTIN_MH
    assert gstin_state_code(GSTIN_MH) == "27"


@pytest.mark.parametrize(
    "gstin",
    [
        "27AAPFU0939F1ZA",  # wrong check character
        "99AAPFU0939F1ZV",  # no such state
        "27AAPFU0939F1Z",  # too short
        "",
    ],
)
def test_invalid_gstin(gstin):
    with pytest.raises(ValidationError):
        validate_gstin(gstin)


def test_inter_state_detection():
    assert is_inter_state("27", "29")
    assert not is_inter_state(GSTIN_MH, "27")
    with pytest.raises(ValidationError):
        is_inter_state("27", "")
