import datetime
import json

import pytest
from django.test import RequestFactory, TestCase
from django.urls import reverse

from ledger_core.models import Account, JournalEntry
from ledger_core.views import entry_detail_view

from .factories import acct, cr, dr, make_books, post


class TenantIsolationManagerTests(TestCase):
    def setUp(self):
        self.company_a, _fy = make_books(name="Company A")
        self.company_b, _fy = make_books(name="Company B")

        # one entry per company
        self.je_a = post(
            self.company_a,
            datetime.date(2024, 5, 1),
            dr(acct(self.company_a, "1220"), "200"),
            cr(acct(self.company_a, "4100"), "200"),
        )
        self.je_b = post(
            self.company_b,
            datetime.date(2024, 5, 1),
            dr(acct(self.company_b, "1220"), "100"),
            cr(acct(self.company_b, "4100"), "100"),
        )

    def test_for_company_returns_only_that_company_objects(self):
        """Compare entry primary keys"""
        self.assertListEqual(
            list(
                JournalEntry.objects.for_company(self.company_a)
                .order_by("id")
                .values_list("pk", flat=True)
            ),
            [self.je_a.pk],
        )
        self.assertListEqual(
            list(
                JournalEntry.objects.for_company(self.company_b)
                .order_by("id")
                .values_list("pk", flat=True)
            ),
            [self.je_b.pk],
        )

    def test_numbering_is_per_company(self):
        # both companies start their own sequence
        self.assertEqual(self.je_a.entry_number, "JV/2024-25/0001")
        self.assertEqual(self.je_b.entry_number, "JV/2024-25/0001")

    def test_get_other_company_object_raises_does_not_exist(self):
        # `for_company` shouldn't return the other company's record
        with self.assertRaises(JournalEntry.DoesNotExist):
            JournalEntry.objects.for_company(self.company_a).get(pk=self.je_b.pk)
        with self.assertRaises(Account.DoesNotExist):
            Account.objects.for_company(self.company_a).get(pk=acct(self.company_b, "1220").pk)


@pytest.mark.django_db
def test_entry_detail_returns_only_tenant_data(django_user_model):
    c1, _fy = make_books(name="Company A")
    c2, _fy = make_books(name="Company B")
    u1 = django_user_model.objects.create_user(username="alice", password="pw")
    entry_c2 = post(c2, datetime.date(2024, 5, 1), dr(acct(c2, "1220"), "100"), cr(acct(c2, "4100"), "100"))

    # Bypass client & call view with a RequestFactory
    request = RequestFactory().get(f"/api/ledger/entries/{entry_c2.pk}/")
    request.user = u1
    # attach company to request before hitting view
    request.company = c1  # manually simulate middleware

    response = entry_detail_view(request, entry_id=entry_c2.pk)
    data = json.loads(response.content)

    assert response.status_code == 404
    assert data["error"]["error"] == "not_found"

    request.company = c2
    response = entry_detail_view(request, entry_id=entry_c2.pk)
    assert json.loads(response.content)["entry"]["total_debit"] == "100.00"


@pytest.mark.django_db
def test_session_cannot_switch_into_a_foreign_company(api, other_books):
    other, _fy = other_books
    session = api.session
    session["active_company_id"] = other.pk
    session.save()

    response = api.get(reverse("ledger:trial-balance"), {"as_of": "2024-06-30"})
    assert response.status_code == 403
    assert response.json()["error"]["error"] == "no_company"


@pytest.mark.django_db
def test_session_switches_to_an_owned_company(api, user, other_books):
    other, _fy = other_books
    other.owner = user
    other.save()
    entry = post(other, datetime.date(2024, 5, 1), dr(acct(other, "1220"), "100"), cr(acct(other, "4100"), "100"))

    session = api.session
    session["active_company_id"] = other.pk
    session.save()

    response = api.get(reverse("ledger:entry-detail", args=[entry.pk]))
    assert response.status_code == 200
    assert response.json()["entry"]["entry_number"] == entry.entry_number


@pytest.mark.django_db
def test_anonymous_requests_have_no_company(client, books):
    response = client.get(reverse("ledger:trial-balance"), {"as_of": "2024-06-30"})
    assert response.status_code == 403
