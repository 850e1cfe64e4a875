from django.urls import path

from . import views

app_name = "ledger"

urlpatterns = [
    path("entries/", views.create_entry_view, name="entry-create"),
    path("entries/<int:entry_id>/", views.entry_detail_view, name="entry-detail"),
    path("entries/<int:entry_id>/submit/", views.submit_entry_view, name="entry-submit"),
    path("entries/<int:entry_id>/post/", views.post_entry_view, name="entry-post"),
    path("entries/<int:entry_id>/reverse/", views.reverse_entry_view, name="entry-reverse"),
    path("reports/trial-balance/", views.trial_balance_view, name="trial-balance"),
    path("reports/balance-sheet/", views.balance_sheet_view, name="balance-sheet"),
    path("reports/profit-and-loss/", views.profit_and_loss_view, name="profit-and-loss"),
    path("reports/cash-flow/", views.cash_flow_view, name="cash-flow"),
    path("reports/runs/<uuid:run_id>/export/", views.export_run_view, name="run-export"),
    path("recurring/generate/", views.generate_recurring_view, name="recurring-generate"),
    path("tax/split-gst/", views.split_gst_view, name="split-gst"),
    path("tax/compute-tds/", views.compute_tds_view, name="compute-tds"),
]
