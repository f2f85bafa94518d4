from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path
from typing import Callable

import pytest

from billdocs import config
from billdocs.documents.records import LineItem, Party, PaymentBreakdown, PurchaseRecord
from billdocs.models import reset_engine


def phone(index: int) -> LineItem:
    return LineItem(
        brand="Acme",
        model=f"X{index}",
        capacity="128",
        capacity_unit="GB",
        color="Black",
        imei=f"3500000000{index:05d}",
        unit_cost=100.0 + index,
    )


@pytest.fixture
def make_record() -> Callable[..., PurchaseRecord]:
    def _make(count: int = 3, **overrides) -> PurchaseRecord:
        values = dict(
            id="p-1",
            transaction_date=datetime(2025, 9, 7, 15, 30, tzinfo=timezone.utc),
            order_number=1042,
            subtotal=1000.0,
            gst_percentage=5.0,
            gst_amount=50.0,
            pst_percentage=7.0,
            pst_amount=70.0,
            adjustment_amount=20.0,
            adjustment_unit="discount",
            grand_total=1100.0,
            notes="",
            supplier=Party(name="North Wireless"),
            payments=PaymentBreakdown(cash=600.0, total_paid=600.0, remaining_credit=-500.0),
            items=tuple(phone(index) for index in range(count)),
        )
        values.update(overrides)
        return PurchaseRecord(**values)

    return _make


@pytest.fixture
def out_dir(tmp_path: Path):
    previous = config.OUT_DIR
    config.set_out_dir(tmp_path / "out")
    reset_engine()
    yield config.OUT_DIR
    config.set_out_dir(previous)
    reset_engine()
