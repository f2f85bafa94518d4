from __future__ import annotations

from html import escape
import re
from pathlib import Path
from typing import Dict, Mapping, Optional, Protocol, Sequence

from .. import config
from ..errors import TemplateNotFoundError
from .formatting import format_amount, format_currency, format_number, format_rows
from .records import CompanyProfile, LineItem, MiddlemanPayment, PurchaseRecord

DATE_FORMAT = "%b %d, %Y"
TOKEN_PATTERN = re.compile(r"\{\{(\w+)\}\}")


class TemplateLoader(Protocol):
    def load(self, name: str) -> str:
        ...


class DirectoryTemplateLoader:
    """Reads ``<name>.html`` files from one directory."""

    def __init__(self, directory: Path | None = None, suffix: str = ".html") -> None:
        self.directory = Path(directory or config.TEMPLATE_DIR)
        self.suffix = suffix

    def load(self, name: str) -> str:
        path = self.directory / f"{name}{self.suffix}"
        try:
            return path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            raise TemplateNotFoundError(name, str(path)) from exc


class MappingTemplateLoader:
    def __init__(self, templates: Mapping[str, str]) -> None:
        self.templates = dict(templates)

    def load(self, name: str) -> str:
        try:
            return self.templates[name]
        except KeyError:
            raise TemplateNotFoundError(name) from None


def replace_tokens(template: str, values: Mapping[str, str]) -> str:
    """Replace every ``{{name}}`` token in one pass; unknown tokens are kept.

    Substituted values are never rescanned, so record text that looks like a
    token stays literal.
    """
    return TOKEN_PATTERN.sub(lambda match: values.get(match.group(1), match.group(0)), template)


def _section_markers(name: str) -> tuple[str, str]:
    upper = name.upper()
    return (
        f"<!--{{{{{upper}_SECTION_START}}}}-->",
        f"<!--{{{{{upper}_SECTION_END}}}}-->",
    )


def reveal_section(html: str, name: str) -> str:
    start, end = _section_markers(name)
    return html.replace(start, "").replace(end, "")


def strip_section(html: str, name: str) -> str:
    start, end = _section_markers(name)
    begin = html.find(start)
    if begin < 0:
        return html
    finish = html.find(end, begin)
    if finish < 0:
        return html
    return html[:begin] + html[finish + len(end):]


def toggle_section(html: str, name: str, visible: bool) -> str:
    return reveal_section(html, name) if visible else strip_section(html, name)


def format_date(value) -> str:
    return value.strftime(DATE_FORMAT)


def company_values(company: CompanyProfile | None) -> Dict[str, str]:
    values: Dict[str, str] = {}
    for key, default in config.DEFAULT_COMPANY.items():
        provided = getattr(company, key, None) if company is not None else None
        values[f"company_{key}"] = escape(provided) if provided else escape(default)
    return values


def middleman_details(middleman: Optional[MiddlemanPayment]) -> str:
    if middleman is None:
        return ""
    split = middleman.split
    return f"""<div class="middleman-section">
    <div class="section-title">Middleman Details</div>
    <div class="middleman-info">
        <div class="middleman-details">
            <div><strong>Name:</strong> {escape(middleman.name)}</div>
            <div><strong>Entity Type:</strong> Middleman</div>
            <div><strong>Amount:</strong> {format_currency(middleman.amount)} ({escape(middleman.unit)})</div>
        </div>
        <div class="middleman-payment">
            <div class="section-title">Payment Split</div>
            <div class="middleman-payment-grid">
                <div class="middleman-payment-item"><span>Cash:</span><span>{format_currency(split.cash)}</span></div>
                <div class="middleman-payment-item"><span>Bank:</span><span>{format_currency(split.bank)}</span></div>
                <div class="middleman-payment-item"><span>Credit Card:</span><span>{format_currency(split.credit_card)}</span></div>
                <div class="middleman-payment-item"><span>Credit:</span><span>{format_currency(split.credit)}</span></div>
            </div>
        </div>
    </div>
</div>"""


def purchase_values(record: PurchaseRecord, items_html: str, company: CompanyProfile | None = None) -> Dict[str, str]:
    supplier = record.supplier
    payments = record.payments
    values = {
        "supplier_name": escape(supplier.name) if supplier.name else config.NOT_AVAILABLE,
        "supplier_entity_type": config.SUPPLIER_ENTITY_TYPE,
        "supplier_phone": escape(supplier.phone or ""),
        "supplier_address": escape(supplier.address or ""),
        "order_number": f"ORD-{record.order_number}",
        "transaction_date": format_date(record.transaction_date),
        "subtotal": format_number(record.subtotal),
        "gst_percentage": "%.1f" % record.gst_percentage,
        "gst_amount": format_number(record.gst_amount),
        "pst_percentage": "%.1f" % record.pst_percentage,
        "pst_amount": format_number(record.pst_amount),
        "adjustment_amount": format_number(record.adjustment_amount),
        "adjustment_unit": escape(record.adjustment_unit),
        "grand_total": format_number(record.grand_total),
        "notes": escape(record.notes) if record.notes else config.EMPTY_NOTES_TEXT,
        "payment_cash": format_amount(payments.cash),
        "payment_bank": format_amount(payments.bank),
        "payment_credit_card": format_amount(payments.credit_card),
        "payment_total_paid": format_amount(payments.total_paid),
        "payment_remaining_credit": format_amount(payments.remaining_credit),
        "middleman_details": middleman_details(record.middleman),
    }
    values.update(company_values(company))
    values["items"] = items_html
    return values


def populate(
    template: str,
    record: PurchaseRecord,
    items: Sequence[LineItem],
    company: CompanyProfile | None = None,
) -> str:
    return replace_tokens(template, purchase_values(record, format_rows(items), company))
