from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional, Tuple


@dataclass(frozen=True)
class LineItem:
    brand: Optional[str] = None
    model: Optional[str] = None
    capacity: Optional[str] = None
    capacity_unit: Optional[str] = None
    color: Optional[str] = None
    carrier: Optional[str] = None
    imei: Optional[str] = None
    status: Optional[str] = None
    storage_location: Optional[str] = None
    unit_cost: float = 0.0

    @property
    def total(self) -> float:
        # One row per physical unit, so there is no quantity multiplier.
        return self.unit_cost


@dataclass(frozen=True)
class Party:
    name: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    email: Optional[str] = None
    id: Optional[str] = None


@dataclass(frozen=True)
class PaymentBreakdown:
    cash: float = 0.0
    bank: float = 0.0
    credit_card: float = 0.0
    total_paid: float = 0.0
    remaining_credit: float = 0.0


@dataclass(frozen=True)
class PaymentSplit:
    cash: float = 0.0
    bank: float = 0.0
    credit_card: float = 0.0
    credit: float = 0.0


@dataclass(frozen=True)
class MiddlemanPayment:
    name: str
    amount: float
    unit: str
    split: PaymentSplit = field(default_factory=PaymentSplit)


@dataclass(frozen=True)
class CompanyProfile:
    address: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None


@dataclass(frozen=True)
class PurchaseRecord:
    """Snapshot of one purchase, ready for rendering.

    Totals are displayed exactly as given; reconciling ``grand_total`` with
    the subtotal, taxes and adjustment is the data layer's job.
    """

    id: str
    transaction_date: datetime
    order_number: int
    subtotal: float
    gst_percentage: float
    gst_amount: float
    pst_percentage: float
    pst_amount: float
    adjustment_amount: float
    adjustment_unit: str
    grand_total: float
    notes: str = ""
    supplier: Party = field(default_factory=Party)
    payments: PaymentBreakdown = field(default_factory=PaymentBreakdown)
    items: Tuple[LineItem, ...] = ()
    middleman: Optional[MiddlemanPayment] = None


class EntryKind(str, Enum):
    SALE = "Sale"
    PURCHASE = "Purchase"
    EXPENSE = "Expense"
    MIDDLEMAN = "Middleman"
    CURRENCY_REGULAR = "Currency"
    CURRENCY_EXCHANGE = "Exchange"
    BALANCE_ADJUSTMENT = "Balance Adjustment"


@dataclass(frozen=True)
class LedgerEntry:
    id: str
    kind: EntryKind
    date: datetime
    amount: float = 0.0
    grand_total: Optional[float] = None
    paid: Optional[float] = None
    credit: Optional[float] = None
    order_number: Optional[int] = None
    notes: Optional[str] = None
    cash_paid: Optional[float] = None
    bank_paid: Optional[float] = None
    credit_card_paid: Optional[float] = None
    middleman_cash: Optional[float] = None
    middleman_bank: Optional[float] = None
    middleman_credit_card: Optional[float] = None
    middleman_credit: Optional[float] = None
    middleman_unit: Optional[str] = None
    giver: Optional[str] = None
    taker: Optional[str] = None
    role: Optional[str] = None
    adjustment_type: Optional[str] = None

    @property
    def middleman_total(self) -> float:
        return (self.middleman_cash or 0.0) + (self.middleman_bank or 0.0) + (self.middleman_credit_card or 0.0)


@dataclass(frozen=True)
class LedgerRequest:
    entity: Party
    entries: Tuple[LedgerEntry, ...] = ()
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    generated_at: Optional[datetime] = None


@dataclass(frozen=True)
class HistoryEntry:
    """A ledger entry tagged with the entity it was recorded against."""

    entity_id: str
    entity_name: str
    entry: LedgerEntry


@dataclass(frozen=True)
class HistoryRequest:
    tab_name: str
    entries: Tuple[HistoryEntry, ...] = ()
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    generated_at: Optional[datetime] = None
