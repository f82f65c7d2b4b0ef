import io
from datetime import datetime
from typing import List

from openpyxl import Workbook

from app.models.ledger import LedgerEntryInDB, LedgerKind

XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


def build_workbook(kind: LedgerKind, entries: List[LedgerEntryInDB]) -> bytes:
    """One sheet named after the kind with label, amount and date columns."""
    wb = Workbook()
    ws = wb.active
    ws.title = kind.display_name
    ws.append([kind.label_field.capitalize(), "Amount", "Date"])
    for entry in entries:
        ws.append([entry.label, float(entry.amount), datetime.fromisoformat(entry.date)])

    buffer = io.BytesIO()
    wb.save(buffer)
    return buffer.getvalue()


def attachment_filename(kind: LedgerKind) -> str:
    return f"{kind.value}-details.xlsx"
