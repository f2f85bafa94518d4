from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, time, timedelta
from html import escape
from typing import Callable, Iterable, List, Optional, Sequence, Tuple, TypeVar

from .. import config
from .formatting import NEGATIVE_CLASS, NEUTRAL_CLASS, POSITIVE_CLASS, format_grouped
from .records import EntryKind, HistoryEntry, LedgerEntry

TIME_FORMAT = "%I:%M %p"
GIVE_UNIT = "give"
TO_RECEIVE = "To Receive"
THRESHOLD = 0.01

TYPE_COLORS = {
    EntryKind.PURCHASE: "#34C759",
    EntryKind.SALE: "#007AFF",
    EntryKind.MIDDLEMAN: "#CC6633",
    EntryKind.CURRENCY_REGULAR: "#FF9500",
    EntryKind.CURRENCY_EXCHANGE: "#AF52DE",
    EntryKind.EXPENSE: "#FF3B30",
    EntryKind.BALANCE_ADJUSTMENT: "#5856D6",
}
CURRENCY_KINDS = (EntryKind.CURRENCY_REGULAR, EntryKind.CURRENCY_EXCHANGE)
HOUSE_IDS = (config.HOUSE_CASH_ID, config.HOUSE_BANK_ID)

T = TypeVar("T")


@dataclass(frozen=True)
class LedgerSummary:
    total_inflow: float = 0.0
    total_outflow: float = 0.0
    total_credit: float = 0.0

    @property
    def net_balance(self) -> float:
        return self.total_inflow - self.total_outflow


def _itself(entry: LedgerEntry) -> LedgerEntry:
    return entry


def _money(value: float) -> str:
    return "$" + format_grouped(value)


def _settled_amount(entry: LedgerEntry) -> float:
    for value in (entry.paid, entry.grand_total):
        if value is not None:
            return value
    return entry.amount


def has_activity(entry: LedgerEntry) -> bool:
    if entry.credit is not None and abs(entry.credit) > THRESHOLD:
        return True
    if entry.kind in (EntryKind.SALE, EntryKind.PURCHASE, EntryKind.EXPENSE):
        value = entry.grand_total if entry.grand_total is not None else entry.amount
        return abs(value) > THRESHOLD
    if entry.kind == EntryKind.MIDDLEMAN:
        return abs(entry.middleman_total) > THRESHOLD
    return abs(entry.amount) > THRESHOLD


def filter_entries(
    entries: Iterable[T],
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
    key: Callable[[T], LedgerEntry] = _itself,
) -> List[T]:
    """
    Entries inside the period with something to show, oldest first.

    The period runs from the start of ``start_date``'s day up to, but not
    including, the start of the day after ``end_date``. ``key`` picks the
    ledger entry out of wrapped items such as history entries.
    """
    selected = list(entries)
    if start_date is not None:
        lower = datetime.combine(start_date.date(), time.min, tzinfo=start_date.tzinfo)
        selected = [item for item in selected if key(item).date >= lower]
    if end_date is not None:
        upper = datetime.combine(end_date.date(), time.min, tzinfo=end_date.tzinfo) + timedelta(days=1)
        selected = [item for item in selected if key(item).date < upper]
    selected = [item for item in selected if has_activity(key(item))]
    selected.sort(key=lambda item: key(item).date)
    return selected


def _currency_direction(entry: LedgerEntry, entity_id: Optional[str]) -> bool:
    """True when money flows in from the entity's point of view."""
    if entity_id is not None and entry.taker == entity_id:
        return False
    if entity_id is not None and entry.giver == entity_id:
        return True
    return entry.role == "giver"


def entry_amount(entry: LedgerEntry, entity_id: Optional[str], tab_name: Optional[str] = None) -> Tuple[str, str]:
    """Signed amount text and its CSS class for one ledger row.

    On the Cash and Bank history tabs a currency movement between two outside
    parties is shown unsigned and neutral.
    """
    kind = entry.kind
    if kind in (EntryKind.SALE, EntryKind.PURCHASE):
        value = _settled_amount(entry)
        if abs(value) < THRESHOLD:
            return _money(value), NEUTRAL_CLASS
        if kind == EntryKind.SALE:
            return "+" + _money(value), POSITIVE_CLASS
        return "-" + _money(value), NEGATIVE_CLASS

    if kind == EntryKind.EXPENSE:
        if abs(entry.amount) < THRESHOLD:
            return _money(entry.amount), NEUTRAL_CLASS
        return "-" + _money(entry.amount), NEGATIVE_CLASS

    if kind == EntryKind.MIDDLEMAN:
        total = entry.middleman_total
        if abs(total) < THRESHOLD:
            return _money(total), NEUTRAL_CLASS
        if entry.middleman_unit is not None:
            if entry.middleman_unit == GIVE_UNIT:
                return "-" + _money(total), NEGATIVE_CLASS
            return "+" + _money(total), POSITIVE_CLASS
        return _money(total), POSITIVE_CLASS if total >= 0 else NEGATIVE_CLASS

    if kind in CURRENCY_KINDS:
        if abs(entry.amount) < THRESHOLD:
            return _money(entry.amount), NEUTRAL_CLASS
        if tab_name in config.HOUSE_TABS and entry.giver not in HOUSE_IDS and entry.taker not in HOUSE_IDS:
            return _money(entry.amount), NEUTRAL_CLASS
        if _currency_direction(entry, entity_id):
            return "+" + _money(entry.amount), POSITIVE_CLASS
        return "-" + _money(entry.amount), NEGATIVE_CLASS

    if abs(entry.amount) < THRESHOLD:
        return _money(entry.amount), NEUTRAL_CLASS
    if entry.adjustment_type is not None:
        if entry.adjustment_type == TO_RECEIVE:
            return "+" + _money(abs(entry.amount)), POSITIVE_CLASS
        return "-" + _money(abs(entry.amount)), NEGATIVE_CLASS
    return _money(entry.amount), POSITIVE_CLASS if entry.amount >= 0 else NEGATIVE_CLASS


def credit_cell(entry: LedgerEntry) -> str:
    if entry.kind in (EntryKind.SALE, EntryKind.PURCHASE):
        credit = entry.credit
        css = POSITIVE_CLASS if entry.kind == EntryKind.SALE else NEGATIVE_CLASS
    elif entry.kind == EntryKind.MIDDLEMAN:
        credit = entry.middleman_credit
        css = POSITIVE_CLASS if entry.middleman_unit not in (None, GIVE_UNIT) else NEGATIVE_CLASS
    else:
        return "-"
    if credit is None or abs(credit) <= THRESHOLD:
        return "-"
    return f'<span class="{css}">{_money(abs(credit))}</span>'


def payment_cell(entry: LedgerEntry) -> str:
    if entry.kind in CURRENCY_KINDS:
        for party in (entry.giver, entry.taker):
            if party == config.HOUSE_CASH_ID:
                return "Cash"
            if party == config.HOUSE_BANK_ID:
                return "Bank"
        return "Cash"
    if entry.kind == EntryKind.BALANCE_ADJUSTMENT:
        return "-"
    if entry.kind == EntryKind.MIDDLEMAN:
        parts = (entry.middleman_cash, entry.middleman_bank, entry.middleman_credit_card)
    else:
        parts = (entry.cash_paid, entry.bank_paid, entry.credit_card_paid)
    labels = ("Cash", "Bank", "Card")
    methods = [f"{label}: {_money(value)}" for label, value in zip(labels, parts) if value and value > 0]
    return ", ".join(methods) if methods else "-"


def describe_entry(entry: LedgerEntry) -> str:
    kind = entry.kind
    notes = entry.notes or ""
    if kind in (EntryKind.SALE, EntryKind.PURCHASE):
        if entry.order_number is not None:
            description = f"Order #{entry.order_number}"
        else:
            description = kind.value
        if notes:
            description += f" - {notes}"
    elif kind == EntryKind.EXPENSE:
        description = entry.notes if entry.notes is not None else "Expense"
    elif kind == EntryKind.BALANCE_ADJUSTMENT:
        description = entry.notes if entry.notes is not None else "Balance Adjustment"
    else:
        description = notes
    return escape(description) if description else kind.value


def type_badge(kind: EntryKind) -> str:
    if kind == EntryKind.MIDDLEMAN:
        return ""
    color = TYPE_COLORS.get(kind, "#86868b")
    return f'<span class="transaction-type" style="background-color: {color};">{kind.value}</span>'


def format_ledger_row(
    entry: LedgerEntry,
    entity_name: str,
    entity_id: Optional[str],
    tab_name: Optional[str] = None,
) -> str:
    amount_html, amount_class = entry_amount(entry, entity_id, tab_name)
    return (
        "<tr>\n"
        f"    <td>{entry.date.strftime('%b %d, %Y')}</td>\n"
        f"    <td>{entry.date.strftime(TIME_FORMAT).lstrip('0')}</td>\n"
        f"    <td>{escape(entity_name)}</td>\n"
        f"    <td>{type_badge(entry.kind)}</td>\n"
        f"    <td>{describe_entry(entry)}</td>\n"
        f'    <td class="payment-method">{payment_cell(entry)}</td>\n'
        f'    <td class="text-right {amount_class}">{amount_html}</td>\n'
        f'    <td class="text-right">{credit_cell(entry)}</td>\n'
        "</tr>\n"
    )


def summarize(entries: Sequence[LedgerEntry], entity_id: Optional[str]) -> LedgerSummary:
    return _summarize((entry, entity_id) for entry in entries)


def summarize_history(entries: Sequence[HistoryEntry]) -> LedgerSummary:
    """Totals across entities; currency direction follows each row's own entity."""
    return _summarize((item.entry, item.entity_id) for item in entries)


def _summarize(rows: Iterable[Tuple[LedgerEntry, Optional[str]]]) -> LedgerSummary:
    inflow = 0.0
    outflow = 0.0
    credit = 0.0
    for entry, entity_id in rows:
        kind = entry.kind
        if kind == EntryKind.SALE:
            inflow += _settled_amount(entry)
            if entry.credit is not None and abs(entry.credit) > THRESHOLD:
                credit += entry.credit
        elif kind in (EntryKind.PURCHASE, EntryKind.EXPENSE):
            outflow += _settled_amount(entry)
            if entry.credit is not None and abs(entry.credit) > THRESHOLD:
                credit -= entry.credit
        elif kind == EntryKind.MIDDLEMAN:
            total = entry.middleman_total
            if entry.middleman_unit is not None:
                if entry.middleman_unit == GIVE_UNIT:
                    outflow += total
                else:
                    inflow += total
            owed = entry.middleman_credit
            if owed is not None and abs(owed) > THRESHOLD:
                if entry.middleman_unit not in (None, GIVE_UNIT):
                    credit += owed
                else:
                    credit -= owed
        elif kind in CURRENCY_KINDS:
            if _currency_direction(entry, entity_id):
                inflow += entry.amount
            else:
                outflow += entry.amount
        elif entry.adjustment_type is not None:
            if entry.adjustment_type == TO_RECEIVE:
                inflow += abs(entry.amount)
            else:
                outflow += abs(entry.amount)
    return LedgerSummary(total_inflow=inflow, total_outflow=outflow, total_credit=credit)


def summary_values(summary: LedgerSummary) -> dict:
    return {
        "total_inflow": _money(summary.total_inflow),
        "total_outflow": _money(summary.total_outflow),
    }
