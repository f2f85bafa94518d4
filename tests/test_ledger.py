from __future__ import annotations

from datetime import datetime, timedelta, timezone

from billdocs.documents.assemble import generate_history_ledger, generate_ledger
from billdocs.documents.ledger import (
    credit_cell,
    entry_amount,
    filter_entries,
    format_ledger_row,
    payment_cell,
    summarize,
    summarize_history,
)
from billdocs.documents.records import EntryKind, HistoryEntry, HistoryRequest, LedgerEntry, LedgerRequest, Party
from billdocs.documents.templating import MappingTemplateLoader

UTC = timezone.utc
ENTITY = Party(id="cust-1", name="Dana Phones", phone="555-0100")
LEDGER_TEMPLATE = (
    "<!--{{ENTITY_SECTION_START}}-->HEAD {{entity_name}} {{period_start}}-{{period_end}}"
    "<!--{{ENTITY_SECTION_END}}-->"
    "[{{transactions}}]"
    "<!--{{SUMMARY_SECTION_START}}-->IN {{total_inflow}} OUT {{total_outflow}}<!--{{SUMMARY_SECTION_END}}-->"
    "<!--{{FOOTER_SECTION_START}}-->END<!--{{FOOTER_SECTION_END}}-->"
)


def at(day: int, hour: int = 12) -> datetime:
    return datetime(2025, 9, day, hour, tzinfo=UTC)


def sale(day: int, amount: float, **extra) -> LedgerEntry:
    return LedgerEntry(id=f"s{day}", kind=EntryKind.SALE, date=at(day), amount=amount, **extra)


def test_filter_by_whole_days_and_activity() -> None:
    entries = [
        sale(5, 10.0),
        sale(1, 20.0),
        LedgerEntry(id="late", kind=EntryKind.SALE, date=at(10, 23), amount=30.0),
        sale(11, 40.0),
        sale(3, 0.0),
        sale(4, 0.0, credit=15.0),
    ]
    selected = filter_entries(entries, start_date=at(1, 18), end_date=at(10, 0))
    assert [entry.id for entry in selected] == ["s1", "s4", "s5", "late"]


def test_amount_signs() -> None:
    assert entry_amount(sale(1, 100.0, paid=80.0), "cust-1") == ("+$80.00", "amount-positive")
    purchase = LedgerEntry(id="p", kind=EntryKind.PURCHASE, date=at(1), amount=1500.0, grand_total=1234.5)
    assert entry_amount(purchase, "cust-1") == ("-$1,234.50", "amount-negative")
    assert entry_amount(sale(1, 0.0), "cust-1") == ("$0.00", "amount-neutral")

    taken = LedgerEntry(id="c", kind=EntryKind.CURRENCY_REGULAR, date=at(1), amount=50.0, taker="cust-1")
    given = LedgerEntry(id="c", kind=EntryKind.CURRENCY_EXCHANGE, date=at(1), amount=50.0, giver="cust-1")
    assert entry_amount(taken, "cust-1")[0] == "-$50.00"
    assert entry_amount(given, "cust-1")[0] == "+$50.00"

    middleman = LedgerEntry(
        id="m", kind=EntryKind.MIDDLEMAN, date=at(1), middleman_cash=30.0, middleman_bank=20.0, middleman_unit="give"
    )
    assert entry_amount(middleman, None) == ("-$50.00", "amount-negative")

    adjustment = LedgerEntry(
        id="b", kind=EntryKind.BALANCE_ADJUSTMENT, date=at(1), amount=-25.0, adjustment_type="To Receive"
    )
    assert entry_amount(adjustment, None) == ("+$25.00", "amount-positive")


def test_summary_over_entries() -> None:
    entries = [
        sale(1, 100.0, credit=40.0),
        LedgerEntry(id="p", kind=EntryKind.PURCHASE, date=at(2), amount=300.0, paid=250.0, credit=50.0),
        LedgerEntry(id="e", kind=EntryKind.EXPENSE, date=at(3), amount=20.0),
        LedgerEntry(id="c", kind=EntryKind.CURRENCY_REGULAR, date=at(4), amount=70.0, giver="cust-1"),
        LedgerEntry(id="b", kind=EntryKind.BALANCE_ADJUSTMENT, date=at(5), amount=5.0, adjustment_type="To Pay"),
    ]
    summary = summarize(entries, "cust-1")
    assert summary.total_inflow == 170.0
    assert summary.total_outflow == 275.0
    assert summary.total_credit == -10.0
    assert summary.net_balance == -105.0


def test_payment_and_credit_cells() -> None:
    paid = sale(1, 100.0, cash_paid=60.0, bank_paid=40.0, credit=25.0)
    assert payment_cell(paid) == "Cash: $60.00, Bank: $40.00"
    assert credit_cell(paid) == '<span class="amount-positive">$25.00</span>'
    assert payment_cell(sale(1, 100.0)) == "-"
    bank = LedgerEntry(id="c", kind=EntryKind.CURRENCY_REGULAR, date=at(1), amount=5.0, taker="myself_bank_special_id")
    assert payment_cell(bank) == "Bank"
    assert credit_cell(bank) == "-"


def test_row_has_no_badge_for_middleman() -> None:
    middleman = LedgerEntry(id="m", kind=EntryKind.MIDDLEMAN, date=at(1, 9), middleman_cash=10.0, notes="fee")
    row = format_ledger_row(middleman, "Dana Phones", "cust-1")
    assert "transaction-type" not in row
    assert "<td>9:00 AM</td>" in row
    assert "<td>fee</td>" in row
    assert "transaction-type" in format_ledger_row(sale(1, 10.0, order_number=7), "Dana Phones", "cust-1")


def test_ledger_pages_toggle_sections() -> None:
    loader = MappingTemplateLoader({"ledger_page": LEDGER_TEMPLATE})
    start = datetime(2025, 9, 1, tzinfo=UTC)
    entries = tuple(
        LedgerEntry(id=str(i), kind=EntryKind.SALE, date=start + timedelta(hours=i), amount=10.0) for i in range(45)
    )
    request = LedgerRequest(entity=ENTITY, entries=entries, start_date=start, generated_at=start)
    pages = generate_ledger(request, loader=loader)

    assert len(pages) == 3
    assert pages[0].startswith("HEAD Dana Phones Sep 01, 2025-Forever[")
    assert "IN" not in pages[0].split("]")[-1]
    assert not pages[1].startswith("HEAD")
    assert pages[1].endswith("]")
    assert pages[2].endswith("IN $450.00 OUT $0.00END")
    assert [page.count("<tr>") for page in pages] == [20, 22, 3]


def test_single_page_ledger_shows_everything() -> None:
    loader = MappingTemplateLoader({"ledger_page": LEDGER_TEMPLATE})
    request = LedgerRequest(entity=ENTITY, entries=(sale(2, 12.5),), generated_at=at(30))
    (page,) = generate_ledger(request, loader=loader)
    assert page.startswith("HEAD Dana Phones Forever-Forever[")
    assert page.endswith("IN $12.50 OUT $0.00END")


def test_bundled_ledger_template_leaves_no_tokens() -> None:
    start = datetime(2025, 9, 1, tzinfo=UTC)
    entries = tuple(sale(1 + i % 28, 10.0 + i) for i in range(30))
    request = LedgerRequest(entity=ENTITY, entries=entries, start_date=start, end_date=at(30), generated_at=start)
    pages = generate_ledger(request)
    assert len(pages) == 2
    assert all("{{" not in page for page in pages)
    assert "Phone: 555-0100" in pages[0]
    assert "Total Inflow" not in pages[0]
    assert "Total Inflow" in pages[1]


def test_house_tab_leaves_outside_currency_unsigned() -> None:
    outside = LedgerEntry(id="c", kind=EntryKind.CURRENCY_EXCHANGE, date=at(1), amount=120.0, giver="cust-1", taker="sup-2")
    assert entry_amount(outside, "cust-1", "Cash") == ("$120.00", "amount-neutral")
    assert entry_amount(outside, "cust-1", "Bank") == ("$120.00", "amount-neutral")
    assert entry_amount(outside, "cust-1", "Customers") == ("+$120.00", "amount-positive")
    assert entry_amount(outside, "cust-1") == ("+$120.00", "amount-positive")

    house = LedgerEntry(id="c", kind=EntryKind.CURRENCY_REGULAR, date=at(1), amount=40.0, giver="myself_special_id", taker="cust-1")
    assert entry_amount(house, "cust-1", "Cash") == ("-$40.00", "amount-negative")


def test_history_summary_uses_each_entity() -> None:
    entries = [
        HistoryEntry("a", "Alpha", LedgerEntry(id="1", kind=EntryKind.CURRENCY_REGULAR, date=at(1), amount=10.0, giver="a")),
        HistoryEntry("b", "Beta", LedgerEntry(id="2", kind=EntryKind.CURRENCY_REGULAR, date=at(2), amount=30.0, taker="b")),
        HistoryEntry("b", "Beta", sale(3, 5.0)),
    ]
    summary = summarize_history(entries)
    assert (summary.total_inflow, summary.total_outflow) == (15.0, 30.0)


def test_history_ledger_pages() -> None:
    loader = MappingTemplateLoader({"ledger_page": LEDGER_TEMPLATE})
    start = datetime(2025, 9, 1, tzinfo=UTC)
    entries = tuple(
        HistoryEntry(
            entity_id=f"e{i % 2}",
            entity_name="Alpha" if i % 2 == 0 else "Beta",
            entry=LedgerEntry(id=str(i), kind=EntryKind.SALE, date=start + timedelta(hours=25 - i), amount=2.0),
        )
        for i in range(25)
    )
    entries += (HistoryEntry("e0", "Alpha", LedgerEntry(id="zero", kind=EntryKind.SALE, date=start, amount=0.0)),)
    request = HistoryRequest(tab_name="Cash", entries=entries, start_date=start, generated_at=start)
    pages = generate_history_ledger(request, loader=loader)

    assert len(pages) == 2
    assert pages[0].startswith("HEAD Cash Sep 01, 2025-Forever[")
    assert not pages[1].startswith("HEAD")
    assert pages[1].endswith("IN $50.00 OUT $0.00END")
    assert [page.count("<tr>") for page in pages] == [20, 5]
    assert "<td>Beta</td>" in pages[0]
    assert "<td>Alpha</td>" in pages[0]
    joined = "".join(pages)
    assert joined.index("<td>Sep 01, 2025</td>") < joined.index("<td>Sep 02, 2025</td>")


def test_bundled_template_renders_history_without_tokens() -> None:
    entries = (HistoryEntry("cust-1", "Dana <Phones>", sale(4, 80.0)),)
    (page,) = generate_history_ledger(HistoryRequest(tab_name="Sales", entries=entries, generated_at=at(30)))
    assert "{{" not in page
    assert "Dana &lt;Phones&gt;" in page
    assert '<div id="entity_phone_section"></div>' in page
    assert "Total Inflow" in page
