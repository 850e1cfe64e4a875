import datetime
import logging

from celery import shared_task

logger = logging.getLogger(__name__)


@shared_task  # register this function as a Celery task
def generate_due_entries_task(company_id, as_of=None):
    # import lazily to avoid circular imports at module import time
    from .models import Company
    from .services.recurring import process_due

    company = Company.objects.get(pk=company_id)
    # as_of arrives as an ISO string when the task goes through the broker
    if isinstance(as_of, str):
        as_of = datetime.date.fromisoformat(as_of)
    summary = process_due(company, as_of=as_of)
    # {"processed": 3, "failed": 0, "errors": [], "entries": ["JV/2024-25/0042", ...]}
    return summary


@shared_task
def process_all_companies(as_of=None):
    """Daily beat entry: one recurring batch per company."""
    from .models import Company

    company_ids = list(Company.objects.values_list("id", flat=True))
    for company_id in company_ids:
        generate_due_entries_task.delay(company_id, as_of)
    logger.info("Recurring batches queued", extra={"companies": len(company_ids)})
    return len(company_ids)
