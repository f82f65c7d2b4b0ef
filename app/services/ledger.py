import logging
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import List, Optional

from app.core.errors import NotFoundError, ValidationError
from app.db.dynamo import LedgerStore
from app.models.ledger import LedgerEntryInDB, LedgerKind
from app.utils import spreadsheet

logger = logging.getLogger(__name__)

# Amounts are kept to the cent
CENT = Decimal("0.01")


def normalize_date(value: str) -> str:
    """Parse an ISO date or datetime into a naive UTC timestamp with second precision."""
    try:
        parsed = datetime.fromisoformat(value.strip())
    except ValueError:
        raise ValidationError("Invalid Date")
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed.isoformat(timespec="seconds")


class LedgerService:
    """Add, list, delete and export the entries of one ledger kind."""

    def __init__(self, store: LedgerStore, kind: LedgerKind):
        self._store = store
        self.kind = kind

    def add(
        self,
        user_id: str,
        label: Optional[str],
        amount: Optional[Decimal],
        date: Optional[str],
        icon: Optional[str] = None,
    ) -> LedgerEntryInDB:
        if not label or not label.strip() or amount is None or not date:
            raise ValidationError()
        if not amount.is_finite() or amount < 0:
            raise ValidationError("Amount Must Be A Non-Negative Number")
        try:
            amount = amount.quantize(CENT)
        except InvalidOperation:
            raise ValidationError("Amount Too Large")

        entry = LedgerEntryInDB(
            user_id=user_id,
            kind=self.kind,
            icon=icon,
            label=label.strip(),
            amount=amount,
            date=normalize_date(date),
        )
        self._store.insert(entry)
        logger.info(f"Added {self.kind.value} {entry.entry_id} for user {user_id}")
        return entry

    def list(self, user_id: str) -> List[LedgerEntryInDB]:
        return self._store.list_by_owner(user_id, self.kind)

    def delete(self, user_id: str, entry_id: str) -> LedgerEntryInDB:
        deleted = self._store.delete_by_id(user_id, self.kind, entry_id)
        if deleted is None:
            raise NotFoundError(f"{self.kind.display_name} Not Found")
        logger.info(f"Deleted {self.kind.value} {entry_id} for user {user_id}")
        return deleted

    def export_workbook(self, user_id: str) -> bytes:
        return spreadsheet.build_workbook(self.kind, self.list(user_id))
