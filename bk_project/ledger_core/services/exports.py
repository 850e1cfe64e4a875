"""
Export of stored report runs to Excel (.xlsx) or CSV.

Works on the run payload (strings already), so an export always matches
what the run returned when it was generated.
"""
import csv
import io
from decimal import Decimal, InvalidOperation

from openpyxl import Workbook
from openpyxl.styles import Alignment, Border, Font, PatternFill, Side
from openpyxl.utils import get_column_letter

from ..exceptions import ValidationError
from ..models import StatementType
from .report_cache import get_run


class ExportFormat:
    EXCEL = "xlsx"
    CSV = "csv"

    CHOICES = [EXCEL, CSV]
    CONTENT_TYPES = {
        EXCEL: "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
        CSV: "text/csv",
    }


STATEMENT_COLUMNS = [
    {"key": "code", "header": "Code", "width": 24},
    {"key": "name", "header": "Particulars", "width": 48},
    {"key": "amount", "header": "Current Period", "width": 18, "numeric": True},
    {"key": "previous_amount", "header": "Previous Period", "width": 18, "numeric": True},
]

TRIAL_BALANCE_COLUMNS = [
    {"key": "code", "header": "Code", "width": 12},
    {"key": "name", "header": "Account", "width": 40},
    {"key": "opening_debit", "header": "Opening Dr", "width": 16, "numeric": True},
    {"key": "opening_credit", "header": "Opening Cr", "width": 16, "numeric": True},
    {"key": "period_debit", "header": "Period Dr", "width": 16, "numeric": True},
    {"key": "period_credit", "header": "Period Cr", "width": 16, "numeric": True},
    {"key": "closing_debit", "header": "Closing Dr", "width": 16, "numeric": True},
    {"key": "closing_credit", "header": "Closing Cr", "width": 16, "numeric": True},
]


def columns_for(statement_type):
    if statement_type == StatementType.TRIAL_BALANCE:
        return TRIAL_BALANCE_COLUMNS
    return STATEMENT_COLUMNS


def _cell_value(value, numeric):
    if value is None:
        return ""
    if numeric:
        try:
            # numbers stay numbers in Excel
            return Decimal(str(value))
        except InvalidOperation:
            return str(value)
    if isinstance(value, bool):
        return "Yes" if value else "No"
    return str(value)


def export_to_excel(rows, columns, title="Report", sheet_name="Report"):
    wb = Workbook()
    ws = wb.active
    ws.title = sheet_name[:31]  # Excel limit

    header_font = Font(bold=True, color="FFFFFF")
    header_fill = PatternFill(start_color="1F4E78", end_color="1F4E78", fill_type="solid")
    thin = Side(style="thin")
    border = Border(left=thin, right=thin, top=thin, bottom=thin)

    ws.merge_cells(start_row=1, start_column=1, end_row=1, end_column=len(columns))
    title_cell = ws.cell(row=1, column=1, value=title)
    title_cell.font = Font(bold=True, size=14)
    title_cell.alignment = Alignment(horizontal="center")

    header_row = 3
    for col_idx, col in enumerate(columns, 1):
        cell = ws.cell(row=header_row, column=col_idx, value=col["header"])
        cell.font = header_font
        cell.fill = header_fill
        cell.border = border
        cell.alignment = Alignment(horizontal="center", vertical="center")
        ws.column_dimensions[get_column_letter(col_idx)].width = col.get("width", 15)

    for row_idx, row in enumerate(rows, header_row + 1):
        bold = bool(row.get("is_bold") or row.get("is_total") or row.get("is_group"))
        for col_idx, col in enumerate(columns, 1):
            value = _cell_value(row.get(col["key"]), col.get("numeric"))
            cell = ws.cell(row=row_idx, column=col_idx, value=value)
            cell.border = border
            if bold:
                cell.font = Font(bold=True)
            if col.get("numeric"):
                cell.number_format = "#,##0.00"
                cell.alignment = Alignment(horizontal="right")
            elif col["key"] == "name" and row.get("indent_level"):
                cell.alignment = Alignment(indent=row["indent_level"])

    ws.freeze_panes = ws.cell(row=header_row + 1, column=1)

    output = io.BytesIO()
    wb.save(output)
    return output.getvalue()


def export_to_csv(rows, columns):
    output = io.StringIO()
    writer = csv.writer(output, quoting=csv.QUOTE_MINIMAL)
    writer.writerow([col["header"] for col in columns])
    for row in rows:
        writer.writerow([_cell_value(row.get(col["key"]), col.get("numeric")) for col in columns])
    return output.getvalue()


def export_run(company, run_id, fmt=ExportFormat.EXCEL):
    """Return (content bytes, content type, filename) for a stored run."""
    if fmt not in ExportFormat.CHOICES:
        raise ValidationError(
            f"Unsupported export format {fmt}", format=fmt, supported=ExportFormat.CHOICES
        )
    run = get_run(company, run_id)
    rows = run.payload.get("statement", [])
    columns = columns_for(run.statement_type)
    label = run.get_statement_type_display()
    filename = f"{run.statement_type}_{run.as_of_date.isoformat()}.{fmt}"

    if fmt == ExportFormat.EXCEL:
        title = f"{run.company.name} - {label} as of {run.as_of_date.isoformat()}"
        content = export_to_excel(rows, columns, title=title, sheet_name=label)
    else:
        content = export_to_csv(rows, columns).encode("utf-8")
    return content, ExportFormat.CONTENT_TYPES[fmt], filename
