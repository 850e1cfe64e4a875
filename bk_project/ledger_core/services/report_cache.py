"""
Report runs: cached derived statements keyed by
(company, fiscal year, statement type, as-of date, from date).

A run is served again until a posting or reversal dated on or before its
as-of date marks it stale. The payload is never authoritative.
"""
import json
import logging

from django.core.exceptions import ValidationError as ModelValidationError
from django.core.serializers.json import DjangoJSONEncoder

from ..exceptions import NotFoundError
from ..models import StatementRun

logger = logging.getLogger(__name__)


def to_json_ready(payload):
    """Decimals → strings, dates → ISO strings (what a stored run holds)."""
    return json.loads(json.dumps(payload, cls=DjangoJSONEncoder))


def find_fresh_run(company, fiscal_year, statement_type, as_of_date, from_date=None):
    return (
        StatementRun.objects.for_company(company)
        .filter(
            fiscal_year=fiscal_year,
            statement_type=statement_type,
            as_of_date=as_of_date,
            from_date=from_date,
            is_stale=False,
        )
        .order_by("-generated_at", "-id")
        .first()
    )


def cached_report(
    company,
    fiscal_year,
    statement_type,
    as_of_date,
    build,
    from_date=None,
    user=None,
    use_cache=True,
):
    """Return {statement, summary, run_id}; call build() only on a miss.

    build() returns {"statement": [...], "summary": {...}}.
    """
    if use_cache:
        run = find_fresh_run(company, fiscal_year, statement_type, as_of_date, from_date)
        if run is not None:
            logger.debug("Report cache hit", extra={"run_id": str(run.run_id)})
            return {**run.payload, "run_id": str(run.run_id)}

    payload = to_json_ready(build())
    run = StatementRun.objects.create(
        company=company,
        fiscal_year=fiscal_year,
        statement_type=statement_type,
        as_of_date=as_of_date,
        from_date=from_date,
        payload=payload,
        generated_by=user,
    )
    logger.info(
        "Report generated",
        extra={
            "company": company.slug,
            "statement_type": statement_type,
            "as_of_date": str(as_of_date),
            "run_id": str(run.run_id),
        },
    )
    return {**payload, "run_id": str(run.run_id)}


def invalidate_for_entry(entry):
    """Mark stale every fresh run whose as-of date the entry affects."""
    count = (
        StatementRun.objects.for_company(entry.company)
        .filter(is_stale=False, as_of_date__gte=entry.entry_date)
        .update(is_stale=True)
    )
    if count:
        logger.info(
            "Report cache invalidated",
            extra={"company": entry.company.slug, "entry_number": entry.entry_number, "runs": count},
        )
    return count


def get_run(company, run_id):
    try:
        return StatementRun.objects.for_company(company).get(run_id=run_id)
    except (StatementRun.DoesNotExist, ModelValidationError, ValueError, TypeError):
        # malformed UUIDs surface as django ValidationError
        raise NotFoundError(f"Report run {run_id} not found", run_id=str(run_id))


def statement_history(company, statement_type=None, limit=20):
    """Most recent runs first."""
    qs = StatementRun.objects.for_company(company)
    if statement_type:
        qs = qs.filter(statement_type=statement_type)
    return list(qs.order_by("-generated_at", "-id")[:limit])
