from __future__ import annotations

from html import escape
from typing import Iterable, Optional

from .. import config
from .records import LineItem

NEGATIVE_CLASS = "amount-negative"
POSITIVE_CLASS = "amount-positive"
NEUTRAL_CLASS = "amount-neutral"


def _text(value: Optional[str]) -> str:
    return escape(value) if value else ""


def _or_na(value: Optional[str]) -> str:
    return escape(value) if value else config.NOT_AVAILABLE


def format_number(value: float) -> str:
    return "%.2f" % value


def format_currency(value: float) -> str:
    return "$" + format_number(value)


def format_grouped(value: float) -> str:
    """Two decimals with thousands separators, e.g. ``1,234,567.50``."""
    return f"{value:,.2f}"


def format_amount(value: float) -> str:
    """
    Render a signed amount as markup.

    The text always shows the absolute value; a negative amount is only
    conveyed by the wrapping ``amount-negative`` span.
    """
    text = format_currency(abs(value))
    if value < 0:
        return f'<span class="{NEGATIVE_CLASS}">{text}</span>'
    return text


def describe_item(item: LineItem) -> str:
    description = f"{_or_na(item.brand)} {_or_na(item.model)}"
    if item.capacity and item.capacity != config.NOT_AVAILABLE:
        description += f", {_text(item.capacity)} {_text(item.capacity_unit)}"
    if item.color:
        description += f", {_text(item.color)}"
    if item.carrier:
        description += f", {_text(item.carrier)}"
    return description


def format_row(item: LineItem) -> str:
    return (
        "<tr>\n"
        "    <td>\n"
        f'        <div class="item-description">{describe_item(item)}</div>\n'
        "    </td>\n"
        f'    <td class="text-center">{_or_na(item.imei)}</td>\n'
        f'    <td class="text-center">{_or_na(item.status)}</td>\n'
        f'    <td class="text-center">{_or_na(item.storage_location)}</td>\n'
        f'    <td class="text-right">{format_currency(item.unit_cost)}</td>\n'
        f'    <td class="text-right">{format_currency(item.total)}</td>\n'
        "</tr>\n"
    )


def format_rows(items: Iterable[LineItem]) -> str:
    return "".join(format_row(item) for item in items)
