import functools
import json
import logging

from django.core.exceptions import ValidationError as ModelValidationError
from django.http import HttpResponse, JsonResponse
from django.utils.dateparse import parse_date
from django.views.decorators.http import require_GET, require_POST

from .exceptions import (ConcurrencyError, InvalidStateError, LedgerError,
                         LockedPeriodError, NotFoundError, ValidationError)
from .serializers import entry_to_dict, recurring_summary_to_dict
from .services import (compute_tds, compute_tds_for_section, create_entry, get_entry,
                       post_entry, process_due, reverse_entry, split_gst,
                       submit_for_approval)
from .services.exports import export_run
from .services.statements import (get_balance_sheet, get_cash_flow, get_profit_and_loss,
                                  get_trial_balance)

logger = logging.getLogger(__name__)

# ledger error → HTTP status
ERROR_STATUS = (
    (NotFoundError, 404),
    (LockedPeriodError, 423),
    (InvalidStateError, 409),
    (ConcurrencyError, 409),
    (ValidationError, 400),
)


def status_for(exc):
    for exc_class, status in ERROR_STATUS:
        if isinstance(exc, exc_class):
            return status
    return 400


def ledger_api(view):
    """Require a tenant on the request and turn ledger errors into JSON responses."""

    @functools.wraps(view)
    def wrapper(request, *args, **kwargs):
        if getattr(request, "company", None) is None:
            return JsonResponse({"ok": False, "error": {"error": "no_company", "message": "No active company"}}, status=403)
        try:
            return view(request, *args, **kwargs)
        except LedgerError as e:
            return JsonResponse({"ok": False, "error": e.as_dict()}, status=status_for(e))
        except ModelValidationError as e:
            # model guards (clean/save/pre_delete)
            return JsonResponse(
                {"ok": False, "error": {"error": "validation_error", "message": "; ".join(e.messages)}},
                status=400,
            )

    return wrapper


def _json_body(request):
    try:
        data = json.loads(request.body or b"{}")
    except (ValueError, UnicodeDecodeError):
        raise ValidationError("Request body is not valid JSON")
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")
    return data


def _date_param(value, name, required=True):
    if not value:
        if required:
            raise ValidationError(f"{name} is required", field=name)
        return None
    try:
        parsed = parse_date(value)
    except (ValueError, TypeError):
        parsed = None
    if parsed is None:
        raise ValidationError(f"{name} must be a date (YYYY-MM-DD)", field=name)
    return parsed


def _user(request):
    return request.user if request.user.is_authenticated else None


# ---------- journal entries ----------
@require_POST
@ledger_api
def create_entry_view(request):
    data = _json_body(request)
    entry = create_entry(
        request.company,
        entry_date=_date_param(data.get("entry_date"), "entry_date"),
        lines=data.get("lines") or [],
        entry_type=data.get("entry_type", "manual"),
        narration=data.get("narration", ""),
        reference=data.get("reference", ""),
        fiscal_year=data.get("fiscal_year"),
        user=_user(request),
        post=data.get("post"),
    )
    return JsonResponse({"ok": True, "entry": entry_to_dict(entry)}, status=201)


@require_GET
@ledger_api
def entry_detail_view(request, entry_id):
    entry = get_entry(request.company, entry_id)
    return JsonResponse({"ok": True, "entry": entry_to_dict(entry)})


@require_POST
@ledger_api
def submit_entry_view(request, entry_id):
    entry = submit_for_approval(get_entry(request.company, entry_id), user=_user(request))
    return JsonResponse({"ok": True, "entry": entry_to_dict(entry, with_lines=False)})


@require_POST
@ledger_api
def post_entry_view(request, entry_id):
    entry = post_entry(get_entry(request.company, entry_id), user=_user(request))
    return JsonResponse({"ok": True, "entry": entry_to_dict(entry, with_lines=False)})


@require_POST
@ledger_api
def reverse_entry_view(request, entry_id):
    data = _json_body(request)
    reversal = reverse_entry(
        get_entry(request.company, entry_id),
        reversal_date=_date_param(data.get("reversal_date"), "reversal_date", required=False),
        narration=data.get("narration"),
        user=_user(request),
    )
    return JsonResponse({"ok": True, "reversal": entry_to_dict(reversal)}, status=201)


# ---------- reports ----------
def _report_args(request):
    return {
        "as_of_date": _date_param(request.GET.get("as_of"), "as_of"),
        "fiscal_year": request.GET.get("fiscal_year") or None,
        "user": _user(request),
        "use_cache": request.GET.get("refresh") not in ("1", "true"),
    }


@require_GET
@ledger_api
def trial_balance_view(request):
    return JsonResponse({"ok": True, **get_trial_balance(request.company, **_report_args(request))})


@require_GET
@ledger_api
def balance_sheet_view(request):
    return JsonResponse({"ok": True, **get_balance_sheet(request.company, **_report_args(request))})


@require_GET
@ledger_api
def profit_and_loss_view(request):
    from_date = _date_param(request.GET.get("from"), "from", required=False)
    report = get_profit_and_loss(request.company, from_date=from_date, **_report_args(request))
    return JsonResponse({"ok": True, **report})


@require_GET
@ledger_api
def cash_flow_view(request):
    from_date = _date_param(request.GET.get("from"), "from", required=False)
    report = get_cash_flow(request.company, from_date=from_date, **_report_args(request))
    return JsonResponse({"ok": True, **report})


@require_GET
@ledger_api
def export_run_view(request, run_id):
    content, content_type, filename = export_run(
        request.company, run_id, request.GET.get("format", "xlsx")
    )
    response = HttpResponse(content, content_type=content_type)
    response["Content-Disposition"] = f'attachment; filename="{filename}"'
    return response


# ---------- recurring ----------
@require_POST
@ledger_api
def generate_recurring_view(request):
    data = _json_body(request)
    summary = process_due(
        request.company,
        as_of=_date_param(data.get("as_of"), "as_of", required=False),
        user=_user(request),
    )
    return JsonResponse({"ok": True, **recurring_summary_to_dict(summary)})


# ---------- tax helpers ----------
def _flag(value):
    return str(value).lower() in ("1", "true", "yes")


@require_GET
@ledger_api
def split_gst_view(request):
    split = split_gst(
        request.GET.get("amount"),
        request.GET.get("rate", "0"),
        _flag(request.GET.get("inter_state", "false")),
    )
    return JsonResponse({"ok": True, **{k: str(v) for k, v in split.as_dict().items()}})


@require_GET
@ledger_api
def compute_tds_view(request):
    amount = request.GET.get("amount")
    section = request.GET.get("section")
    if section:
        result = compute_tds_for_section(amount, section, _flag(request.GET.get("payee_is_company", "false")))
    else:
        result = compute_tds(amount, request.GET.get("rate", "0"), request.GET.get("threshold", "0"))
    return JsonResponse(
        {
            "ok": True,
            "tds_amount": str(result.tds_amount),
            "net_payable": str(result.net_payable),
            "is_applicable": result.is_applicable,
        }
    )
