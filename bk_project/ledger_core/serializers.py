"""Plain dict builders for JSON responses."""


def _money(value):
    return str(value) if value is not None else None


def _date(value):
    return value.isoformat() if value else None


def line_to_dict(line):
    return {
        "id": line.pk,
        "account_id": line.account_id,
        "account_code": line.account.code,
        "account_name": line.account.name,
        "debit": _money(line.debit),
        "credit": _money(line.credit),
        "description": line.description,
    }


def entry_to_dict(entry, with_lines=True):
    data = {
        "id": entry.pk,
        "entry_number": entry.entry_number,
        "entry_date": _date(entry.entry_date),
        "entry_type": entry.entry_type,
        "status": entry.status,
        "fiscal_year": entry.fiscal_year.name,
        "narration": entry.narration,
        "reference": entry.reference,
        "total_debit": _money(entry.total_debit),
        "total_credit": _money(entry.total_credit),
        "source_type": entry.source_type,
        "source_id": entry.source_id,
        "reverses": entry.reverses_id,
        "posted_at": _date(entry.posted_at),
    }
    if with_lines:
        data["lines"] = [line_to_dict(line) for line in entry.lines.select_related("account")]
    return data


def recurring_summary_to_dict(summary):
    return {
        "processed": summary["processed"],
        "failed": summary["failed"],
        "errors": summary["errors"],
        "entries": summary["entries"],
    }
