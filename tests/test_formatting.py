from __future__ import annotations

from billdocs.documents.formatting import (
    describe_item,
    format_amount,
    format_currency,
    format_grouped,
    format_row,
)
from billdocs.documents.records import LineItem


def test_description_skips_empty_carrier() -> None:
    item = LineItem(brand="Acme", model="X1", capacity="128", capacity_unit="GB", color="Black", carrier="")
    assert describe_item(item) == "Acme X1, 128 GB, Black"


def test_description_full() -> None:
    item = LineItem(brand="Apple", model="iPhone 13", capacity="256", capacity_unit="GB", color="Red", carrier="Bell")
    assert describe_item(item) == "Apple iPhone 13, 256 GB, Red, Bell"


def test_description_missing_fields() -> None:
    assert describe_item(LineItem()) == "N/A N/A"
    assert describe_item(LineItem(brand="Nokia", model="3310", capacity="N/A", capacity_unit="GB")) == "Nokia 3310"


def test_description_is_escaped() -> None:
    assert describe_item(LineItem(brand="A&B", model="<X>")) == "A&amp;B &lt;X&gt;"


def test_negative_amount_is_styled_without_minus() -> None:
    negative = format_amount(-42.5)
    assert negative == '<span class="amount-negative">$42.50</span>'
    assert "-" not in negative.replace("amount-negative", "")
    assert format_amount(42.5) == "$42.50"
    assert format_amount(0) == "$0.00"


def test_currency_and_grouping() -> None:
    assert format_currency(3) == "$3.00"
    assert format_currency(1234.567) == "$1234.57"
    assert format_grouped(1234567.5) == "1,234,567.50"


def test_row_uses_unit_cost_as_total() -> None:
    row = format_row(LineItem(brand="Acme", model="X1", imei="35000", unit_cost=99.9))
    assert row.count("$99.90") == 2
    assert '<td class="text-center">35000</td>' in row
    assert row.count('<td class="text-center">N/A</td>') == 2


def test_row_defaults_cost_to_zero() -> None:
    row = format_row(LineItem(brand="Acme", model="X1"))
    assert row.count("$0.00") == 2
