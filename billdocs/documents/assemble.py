from __future__ import annotations

from datetime import datetime, timezone
from html import escape
from typing import Dict, List, Mapping, Optional, Sequence

from .. import config
from .ledger import filter_entries, format_ledger_row, summarize, summarize_history, summary_values
from .pagination import INVOICE_CAPACITY, LEDGER_CAPACITY, PageKind, PlannedPage, plan
from .records import CompanyProfile, HistoryRequest, LedgerRequest, PurchaseRecord
from .templating import (
    DirectoryTemplateLoader,
    TemplateLoader,
    company_values,
    format_date,
    populate,
    replace_tokens,
    toggle_section,
)

LEDGER_TEMPLATE = "ledger_page"


def _load_templates(loader: TemplateLoader, pages: List[PlannedPage]) -> Dict[PageKind, str]:
    templates: Dict[PageKind, str] = {}
    for page in pages:
        if page.kind not in templates:
            templates[page.kind] = loader.load(page.kind.template_name)
    return templates


def generate_invoice(
    record: PurchaseRecord,
    loader: Optional[TemplateLoader] = None,
    company: Optional[CompanyProfile] = None,
) -> List[str]:
    """
    Render a purchase invoice as a list of HTML pages in print order.

    Every template the page plan needs is loaded before the first page is
    populated, so a missing template raises ``TemplateNotFoundError`` without
    any pages having been produced.
    """
    loader = loader or DirectoryTemplateLoader()
    items = record.items
    pages = plan(len(items), INVOICE_CAPACITY)
    templates = _load_templates(loader, pages)
    return [
        populate(templates[page.kind], record, items[page.start:page.end], company)
        for page in pages
    ]


def _period(value: Optional[datetime]) -> str:
    return format_date(value) if value is not None else config.OPEN_PERIOD_TEXT


def _period_values(
    start_date: Optional[datetime],
    end_date: Optional[datetime],
    generated_at: Optional[datetime],
) -> Dict[str, str]:
    generated = generated_at or datetime.now(timezone.utc)
    return {
        "period_start": _period(start_date),
        "period_end": _period(end_date),
        "generated_date": format_date(generated),
    }


def _entity_values(request: LedgerRequest) -> Dict[str, str]:
    entity = request.entity
    values = {
        "entity_name": escape(entity.name or ""),
        "entity_phone": f"<div>Phone: {escape(entity.phone)}</div>" if entity.phone else "",
        "entity_email": f"<div>Email: {escape(entity.email)}</div>" if entity.email else "",
    }
    values.update(_period_values(request.start_date, request.end_date, request.generated_at))
    return values


def _ledger_pages(template: str, rows: Sequence[str], values: Mapping[str, str]) -> List[str]:
    documents: List[str] = []
    for page in plan(len(rows), LEDGER_CAPACITY):
        html = toggle_section(template, "entity", page.kind.shows_header)
        html = toggle_section(html, "summary", page.kind.shows_totals)
        html = toggle_section(html, "footer", page.kind.shows_totals)
        page_values = dict(values)
        page_values["transactions"] = "".join(rows[page.start:page.end])
        documents.append(replace_tokens(html, page_values))
    return documents


def generate_ledger(
    request: LedgerRequest,
    loader: Optional[TemplateLoader] = None,
    company: Optional[CompanyProfile] = None,
) -> List[str]:
    """Render an entity ledger over its period as HTML pages in print order."""
    loader = loader or DirectoryTemplateLoader()
    template = loader.load(LEDGER_TEMPLATE)

    entries = filter_entries(request.entries, request.start_date, request.end_date)
    entity = request.entity
    entity_name = entity.name or ""
    values = company_values(company)
    values.update(_entity_values(request))
    values.update(summary_values(summarize(entries, entity.id)))
    rows = [format_ledger_row(entry, entity_name, entity.id) for entry in entries]
    return _ledger_pages(template, rows, values)


def generate_history_ledger(
    request: HistoryRequest,
    loader: Optional[TemplateLoader] = None,
    company: Optional[CompanyProfile] = None,
) -> List[str]:
    """
    Render a history tab as ledger pages, one row per entry across entities.

    The tab name heads the first page and each row names its own entity.
    Currency rows take their sign from that row's entity.
    """
    loader = loader or DirectoryTemplateLoader()
    template = loader.load(LEDGER_TEMPLATE)

    entries = filter_entries(request.entries, request.start_date, request.end_date, key=lambda item: item.entry)
    values = company_values(company)
    values.update(
        entity_name=escape(request.tab_name),
        entity_phone="",
        entity_email="",
    )
    values.update(_period_values(request.start_date, request.end_date, request.generated_at))
    values.update(summary_values(summarize_history(entries)))
    rows = [
        format_ledger_row(item.entry, item.entity_name, item.entity_id, request.tab_name)
        for item in entries
    ]
    return _ledger_pages(template, rows, values)
