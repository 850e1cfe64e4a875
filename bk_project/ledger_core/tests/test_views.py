import datetime
import json

import pytest
from django.urls import reverse

from ledger_core.services.periods import lock_fiscal_year

from .factories import acct, cr, dr, post


def entry_payload(company, amount_dr="1000", amount_cr="1000", **extra):
    return {
        "entry_date": "2024-05-01",
        "narration": "Cash sale",
        "lines": [
            {"account_id": acct(company, "1220").pk, "debit": amount_dr},
            {"account_id": acct(company, "4100").pk, "credit": amount_cr},
        ],
        **extra,
    }


def post_json(client, url, data=None):
    return client.post(url, data=json.dumps(data or {}), content_type="application/json")


@pytest.mark.django_db
def test_create_and_post_entry(api, books):
    company, _fy = books
    response = post_json(api, reverse("ledger:entry-create"), entry_payload(company))
    assert response.status_code == 201
    entry = response.json()["entry"]
    assert entry["status"] == "draft"
    assert entry["entry_number"] == "JV/2024-25/0001"
    assert len(entry["lines"]) == 2

    response = post_json(api, reverse("ledger:entry-post", args=[entry["id"]]))
    assert response.status_code == 200
    assert response.json()["entry"]["status"] == "posted"

    # posting again is a state conflict
    response = post_json(api, reverse("ledger:entry-post", args=[entry["id"]]))
    assert response.status_code == 409
    assert response.json()["error"]["error"] == "invalid_state"


@pytest.mark.django_db
def test_unbalanced_entry_is_rejected(api, books):
    company, _fy = books
    response = post_json(api, reverse("ledger:entry-create"), entry_payload(company, amount_cr="999.99"))
    assert response.status_code == 400
    error = response.json()["error"]
    assert error["error"] == "unbalanced_entry"
    assert response.json()["ok"] is False


@pytest.mark.django_db
def test_bad_json_and_missing_date(api):
    response = api.post(reverse("ledger:entry-create"), data="{not json", content_type="application/json")
    assert response.status_code == 400
    response = post_json(api, reverse("ledger:entry-create"), {"lines": []})
    assert response.status_code == 400
    assert response.json()["error"]["details"]["field"] == "entry_date"


@pytest.mark.django_db
def test_locked_year_returns_423(api, books):
    company, fy = books
    lock_fiscal_year(fy)
    response = post_json(api, reverse("ledger:entry-create"), entry_payload(company, post=True))
    assert response.status_code == 423
    assert response.json()["error"]["error"] == "locked_period"


@pytest.mark.django_db
def test_foreign_entry_is_not_found(api, other_books):
    other, _fy = other_books
    entry = post(other, datetime.date(2024, 5, 1), dr(acct(other, "1220"), "10"), cr(acct(other, "4100"), "10"))
    assert api.get(reverse("ledger:entry-detail", args=[entry.pk])).status_code == 404
    assert post_json(api, reverse("ledger:entry-reverse", args=[entry.pk])).status_code == 404


@pytest.mark.django_db
def test_foreign_account_is_not_found(api, books, other_books):
    company, _fy = books
    other, _fy = other_books
    payload = entry_payload(company)
    payload["lines"][0]["account_id"] = acct(other, "1220").pk
    response = post_json(api, reverse("ledger:entry-create"), payload)
    assert response.status_code == 404


@pytest.mark.django_db
def test_account_given_as_id_under_account_key(api, books):
    company, _fy = books
    payload = entry_payload(company)
    for line in payload["lines"]:
        line["account"] = line.pop("account_id")
    payload["lines"][0]["description"] = 42
    response = post_json(api, reverse("ledger:entry-create"), payload)
    assert response.status_code == 201
    assert response.json()["entry"]["lines"][0]["description"] == "42"


@pytest.mark.django_db
def test_unknown_account_under_account_key(api, books):
    company, _fy = books
    payload = entry_payload(company)
    payload["lines"][0] = {"account": 999999, "debit": "1000"}
    response = post_json(api, reverse("ledger:entry-create"), payload)
    assert response.status_code == 404

    payload["lines"][0] = {"account": {"code": "1220"}, "debit": "1000"}
    response = post_json(api, reverse("ledger:entry-create"), payload)
    assert response.status_code == 404


@pytest.mark.django_db
@pytest.mark.parametrize(
    "lines",
    [
        "not a list",
        {"account_id": 1, "debit": "10"},
        [["1220", "10"], ["4100", "10"]],
        [None, None],
        ["line one", "line two"],
    ],
)
def test_malformed_lines_are_rejected(api, books, lines):
    response = post_json(
        api, reverse("ledger:entry-create"), {"entry_date": "2024-05-01", "lines": lines}
    )
    assert response.status_code == 400
    assert response.json()["error"]["error"] == "validation_error"


@pytest.mark.django_db
def test_body_must_be_an_object(api):
    response = api.post(reverse("ledger:entry-create"), data=json.dumps([1, 2]), content_type="application/json")
    assert response.status_code == 400
    response = post_json(api, reverse("ledger:entry-create"), {"entry_date": 20240501, "lines": []})
    assert response.status_code == 400
    assert response.json()["error"]["details"]["field"] == "entry_date"


@pytest.mark.django_db
def test_submit_and_reverse(api, books):
    company, _fy = books
    entry_id = post_json(api, reverse("ledger:entry-create"), entry_payload(company)).json()["entry"]["id"]

    response = post_json(api, reverse("ledger:entry-submit", args=[entry_id]))
    assert response.json()["entry"]["status"] == "pending_approval"
    post_json(api, reverse("ledger:entry-post", args=[entry_id]))

    response = post_json(api, reverse("ledger:entry-reverse", args=[entry_id]), {"reversal_date": "2024-05-02"})
    assert response.status_code == 201
    reversal = response.json()["reversal"]
    assert reversal["entry_type"] == "reversal"
    assert reversal["reverses"] == entry_id
    assert api.get(reverse("ledger:entry-detail", args=[entry_id])).json()["entry"]["status"] == "reversed"


@pytest.mark.django_db
def test_reports_carry_run_ids(api, books):
    company, _fy = books
    post(company, datetime.date(2024, 5, 1), dr(acct(company, "1220"), "1000"), cr(acct(company, "3100"), "1000"))
    post(company, datetime.date(2024, 5, 2), dr(acct(company, "5300"), "400"), cr(acct(company, "1220"), "400"))

    tb = api.get(reverse("ledger:trial-balance"), {"as_of": "2024-06-30"}).json()
    assert tb["summary"]["is_balanced"] is True
    assert tb["run_id"]

    bs = api.get(reverse("ledger:balance-sheet"), {"as_of": "2024-06-30"}).json()
    assert bs["summary"]["is_balanced"] is True
    again = api.get(reverse("ledger:balance-sheet"), {"as_of": "2024-06-30"}).json()
    assert again["run_id"] == bs["run_id"]
    refreshed = api.get(reverse("ledger:balance-sheet"), {"as_of": "2024-06-30", "refresh": "1"}).json()
    assert refreshed["run_id"] != bs["run_id"]

    pl = api.get(reverse("ledger:profit-and-loss"), {"as_of": "2024-06-30"}).json()
    assert pl["summary"]["net_profit"] == "-400.00"

    cf = api.get(reverse("ledger:cash-flow"), {"as_of": "2024-06-30", "from": "2024-05-01"}).json()
    assert cf["summary"]["closing_cash"] == "600.00"
    assert cf["summary"]["is_reconciled"] is True


@pytest.mark.django_db
def test_report_needs_a_date(api):
    response = api.get(reverse("ledger:balance-sheet"))
    assert response.status_code == 400


@pytest.mark.django_db
def test_export_run(api, books):
    run_id = api.get(reverse("ledger:trial-balance"), {"as_of": "2024-06-30"}).json()["run_id"]
    response = api.get(reverse("ledger:run-export", args=[run_id]), {"format": "csv"})
    assert response.status_code == 200
    assert response["Content-Type"] == "text/csv"
    assert 'filename="trial_balance_2024-06-30.csv"' in response["Content-Disposition"]

    response = api.get(reverse("ledger:run-export", args=[run_id]), {"format": "pdf"})
    assert response.status_code == 400


@pytest.mark.django_db
def test_generate_recurring(api, books):
    from ledger_core.services.recurring import create_template

    company, _fy = books
    create_template(
        company,
        name="Office rent",
        frequency="monthly",
        start_date=datetime.date(2024, 5, 31),
        lines=[dr(acct(company, "5300"), "25000"), cr(acct(company, "1220"), "25000")],
    )
    response = post_json(api, reverse("ledger:recurring-generate"), {"as_of": "2024-05-31"})
    assert response.status_code == 200
    assert response.json()["processed"] == 1
    assert response.json()["entries"] == ["JV/2024-25/0001"]


@pytest.mark.django_db
def test_tax_endpoints(api):
    data = api.get(reverse("ledger:split-gst"), {"amount": "10000", "rate": "18"}).json()
    assert (data["cgst"], data["sgst"], data["igst"]) == ("900.00", "900.00", "0.00")

    data = api.get(reverse("ledger:split-gst"), {"amount": "10000", "rate": "18", "inter_state": "true"}).json()
    assert data["igst"] == "1800.00"

    data = api.get(reverse("ledger:compute-tds"), {"amount": "50000", "section": "194C", "payee_is_company": "1"}).json()
    assert data["tds_amount"] == "1000.00"
    assert data["is_applicable"] is True

    data = api.get(reverse("ledger:compute-tds"), {"amount": "1000", "rate": "10", "threshold": "5000"}).json()
    assert data["is_applicable"] is False
    assert data["net_payable"] == "1000.00"

    assert api.get(reverse("ledger:split-gst"), {"amount": "x", "rate": "18"}).status_code == 400
