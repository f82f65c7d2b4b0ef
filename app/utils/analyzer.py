from __future__ import annotations

from datetime import datetime, timedelta
from decimal import Decimal
from typing import Iterable, List

from app.models.ledger import DashboardSummary, LedgerEntryInDB, LedgerEntryPublic, WindowSummary


class LedgerAnalyzer:
    """
    Pure helpers behind the dashboard: totals, date windows and the merged
    recent-transactions feed. No I/O, so routes and tests can use it directly.
    """

    def __init__(self, recent_limit: int = 5) -> None:
        self._recent_limit = recent_limit

    @staticmethod
    def total(entries: Iterable[LedgerEntryInDB]) -> Decimal:
        return sum((entry.amount for entry in entries), Decimal("0"))

    @staticmethod
    def window_floor(now: datetime, days: int) -> str:
        """ISO timestamp `days` before now, comparable with stored entry dates."""
        return (now - timedelta(days=days)).isoformat(timespec="seconds")

    def merge_recent(
        self,
        income: List[LedgerEntryInDB],
        expenses: List[LedgerEntryInDB],
    ) -> List[LedgerEntryInDB]:
        """The newest entries of both kinds, newest first, at most recent_limit of each."""
        merged = income[: self._recent_limit] + expenses[: self._recent_limit]
        return sorted(merged, key=lambda entry: entry.date, reverse=True)

    def summarize(
        self,
        total_income: Decimal,
        total_expenses: Decimal,
        income_window: List[LedgerEntryInDB],
        expense_window: List[LedgerEntryInDB],
        recent_income: List[LedgerEntryInDB],
        recent_expenses: List[LedgerEntryInDB],
    ) -> DashboardSummary:
        return DashboardSummary(
            total_balance=total_income - total_expenses,
            total_income=total_income,
            total_expenses=total_expenses,
            last60_days_income=WindowSummary(
                total=self.total(income_window),
                transactions=[LedgerEntryPublic.from_db(e) for e in income_window],
            ),
            last30_days_expenses=WindowSummary(
                total=self.total(expense_window),
                transactions=[LedgerEntryPublic.from_db(e) for e in expense_window],
            ),
            recent_transactions=[
                LedgerEntryPublic.from_db(e) for e in self.merge_recent(recent_income, recent_expenses)
            ],
        )
