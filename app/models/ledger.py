from decimal import Decimal
from enum import Enum
from typing import List, Optional
from uuid import uuid4
from datetime import datetime

from pydantic import BaseModel, Field

from app.models.common import CamelModel


class LedgerKind(str, Enum):
    INCOME = "income"
    EXPENSE = "expense"

    @property
    def label_field(self) -> str:
        """Name of the free-text label column: income has a source, expense a category."""
        return "source" if self is LedgerKind.INCOME else "category"

    @property
    def display_name(self) -> str:
        return self.value.capitalize()

    @property
    def key_prefix(self) -> str:
        return f"{self.value.upper()}#"


class IncomeCreate(CamelModel):
    icon: Optional[str] = None
    source: Optional[str] = None
    amount: Optional[Decimal] = None
    date: Optional[str] = None


class ExpenseCreate(CamelModel):
    icon: Optional[str] = None
    category: Optional[str] = None
    amount: Optional[Decimal] = None
    date: Optional[str] = None


class LedgerEntryInDB(BaseModel):
    user_id: str
    entry_id: str = Field(default_factory=lambda: str(uuid4()))
    kind: LedgerKind
    icon: Optional[str] = None
    label: str
    amount: Decimal
    date: str  # ISO timestamp, second precision, UTC
    created_at: str = Field(default_factory=lambda: datetime.utcnow().isoformat(timespec="seconds"))

    @property
    def kind_date(self) -> str:
        return f"{self.kind.key_prefix}{self.date}"


class LedgerEntryPublic(CamelModel):
    id: str
    user_id: str
    type: LedgerKind
    icon: Optional[str] = None
    source: Optional[str] = None
    category: Optional[str] = None
    amount: float
    date: str
    created_at: str

    @classmethod
    def from_db(cls, entry: LedgerEntryInDB) -> "LedgerEntryPublic":
        return cls(
            id=entry.entry_id,
            user_id=entry.user_id,
            type=entry.kind,
            icon=entry.icon,
            amount=entry.amount,
            date=entry.date,
            created_at=entry.created_at,
            **{entry.kind.label_field: entry.label},
        )


class WindowSummary(CamelModel):
    total: float
    transactions: List[LedgerEntryPublic]


class DashboardSummary(CamelModel):
    total_balance: float
    total_income: float
    total_expenses: float
    last60_days_income: WindowSummary = Field(alias="last60DaysIncome")
    last30_days_expenses: WindowSummary = Field(alias="last30DaysExpenses")
    recent_transactions: List[LedgerEntryPublic]
