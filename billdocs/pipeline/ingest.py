from __future__ import annotations

import hashlib
import json
import re
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Iterable, List, Mapping, Optional

from slugify import slugify
from sqlmodel import select

from .. import config
from ..documents.records import (
    EntryKind,
    HistoryEntry,
    HistoryRequest,
    LedgerEntry,
    LedgerRequest,
    LineItem,
    MiddlemanPayment,
    Party,
    PaymentBreakdown,
    PaymentSplit,
    PurchaseRecord,
)
from ..errors import InvalidRecordError
from ..models import Artifact, DocumentJob, DocumentKind, JobStatus, get_session, init_db


PURCHASE_REQUIRED_NUMBERS = (
    "subtotal",
    "gstPercentage",
    "gstAmount",
    "pstPercentage",
    "pstAmount",
    "adjustmentAmount",
    "grandTotal",
)

ENTRY_KINDS = {
    "sale": EntryKind.SALE,
    "purchase": EntryKind.PURCHASE,
    "expense": EntryKind.EXPENSE,
    "middleman": EntryKind.MIDDLEMAN,
    "currencyregular": EntryKind.CURRENCY_REGULAR,
    "currency": EntryKind.CURRENCY_REGULAR,
    "currencyexchange": EntryKind.CURRENCY_EXCHANGE,
    "exchange": EntryKind.CURRENCY_EXCHANGE,
    "balanceadjustment": EntryKind.BALANCE_ADJUSTMENT,
}


def load_json(path: Path) -> dict:
    if not path.exists():
        raise FileNotFoundError(f"Record not found: {path}")
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise InvalidRecordError(f"{path.name}: not valid JSON ({exc.msg})") from exc
    if not isinstance(data, dict):
        raise InvalidRecordError(f"{path.name}: top-level value must be an object")
    return data


def detect_kind(data: Mapping[str, Any]) -> DocumentKind:
    if "purchasedPhones" in data:
        return DocumentKind.INVOICE
    if "transactions" in data and "entity" in data:
        return DocumentKind.LEDGER
    if "tabName" in data and "entries" in data:
        return DocumentKind.HISTORY
    raise InvalidRecordError("Record is not a purchase, ledger or history")


def parse_timestamp(value: Any, field: str) -> datetime:
    """Accept ISO-8601 text, epoch seconds, or a Firestore ``{"_seconds": n}`` map."""
    if isinstance(value, Mapping):
        seconds = value.get("_seconds", value.get("seconds"))
        if isinstance(seconds, (int, float)) and not isinstance(seconds, bool):
            nanos = value.get("_nanoseconds", value.get("nanoseconds", 0)) or 0
            return datetime.fromtimestamp(seconds + nanos / 1e9, tz=timezone.utc)
    elif isinstance(value, (int, float)) and not isinstance(value, bool):
        return datetime.fromtimestamp(value, tz=timezone.utc)
    elif isinstance(value, str):
        try:
            parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError as exc:
            raise InvalidRecordError(f"{field}: invalid date {value!r}") from exc
        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=timezone.utc)
        return parsed
    raise InvalidRecordError(f"{field}: missing or invalid date")


def _optional_timestamp(value: Any, field: str) -> Optional[datetime]:
    return None if value is None else parse_timestamp(value, field)


def _number(data: Mapping[str, Any], key: str) -> float:
    value = data.get(key)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise InvalidRecordError(f"{key}: expected a number, got {value!r}")
    return float(value)


def _lenient_number(value: Any) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return 0.0
    return float(value)


def _optional_number(value: Any) -> Optional[float]:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return float(value)


def _text(value: Any) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    if isinstance(value, str):
        return value
    return None


def _line_item(data: Any) -> LineItem:
    if not isinstance(data, Mapping):
        raise InvalidRecordError("purchasedPhones: every entry must be an object")
    return LineItem(
        brand=_text(data.get("brand")),
        model=_text(data.get("model")),
        capacity=_text(data.get("capacity")),
        capacity_unit=_text(data.get("capacityUnit")),
        color=_text(data.get("color")),
        carrier=_text(data.get("carrier")),
        imei=_text(data.get("imei")),
        status=_text(data.get("status")),
        storage_location=_text(data.get("storageLocation")),
        unit_cost=_lenient_number(data.get("unitCost")),
    )


def payment_breakdown(methods: Mapping[str, Any]) -> PaymentBreakdown:
    return PaymentBreakdown(
        cash=_lenient_number(methods.get("cash")),
        bank=_lenient_number(methods.get("bank")),
        credit_card=_lenient_number(methods.get("creditCard")),
        total_paid=_lenient_number(methods.get("totalPaid")),
        remaining_credit=_lenient_number(methods.get("remainingCredit")),
    )


def _middleman(data: Mapping[str, Any]) -> Optional[MiddlemanPayment]:
    name = _text(data.get("middlemanName"))
    payment = data.get("middlemanPayment")
    if not name or not isinstance(payment, Mapping):
        return None
    amount = _optional_number(payment.get("amount"))
    unit = _text(payment.get("unit"))
    split = payment.get("paymentSplit")
    if amount is None or unit is None or not isinstance(split, Mapping):
        return None
    return MiddlemanPayment(
        name=name,
        amount=amount,
        unit=unit,
        split=PaymentSplit(
            cash=_lenient_number(split.get("cash")),
            bank=_lenient_number(split.get("bank")),
            credit_card=_lenient_number(split.get("creditCard")),
            credit=_lenient_number(split.get("credit")),
        ),
    )


def purchase_from_mapping(data: Mapping[str, Any], record_id: str) -> PurchaseRecord:
    order_number = data.get("orderNumber")
    if isinstance(order_number, bool) or not isinstance(order_number, int):
        raise InvalidRecordError(f"orderNumber: expected an integer, got {order_number!r}")
    numbers = {key: _number(data, key) for key in PURCHASE_REQUIRED_NUMBERS}
    adjustment_unit = data.get("adjustmentUnit")
    notes = data.get("notes")
    phones = data.get("purchasedPhones")
    methods = data.get("paymentMethods")
    if not isinstance(adjustment_unit, str):
        raise InvalidRecordError("adjustmentUnit: expected text")
    if not isinstance(notes, str):
        raise InvalidRecordError("notes: expected text")
    if not isinstance(phones, list):
        raise InvalidRecordError("purchasedPhones: expected a list")
    if not isinstance(methods, Mapping):
        raise InvalidRecordError("paymentMethods: expected an object")

    return PurchaseRecord(
        id=str(data.get("id") or record_id),
        transaction_date=parse_timestamp(data.get("transactionDate"), "transactionDate"),
        order_number=order_number,
        subtotal=numbers["subtotal"],
        gst_percentage=numbers["gstPercentage"],
        gst_amount=numbers["gstAmount"],
        pst_percentage=numbers["pstPercentage"],
        pst_amount=numbers["pstAmount"],
        adjustment_amount=numbers["adjustmentAmount"],
        adjustment_unit=adjustment_unit,
        grand_total=numbers["grandTotal"],
        notes=notes,
        supplier=Party(
            name=_text(data.get("supplierName")),
            phone=_text(data.get("supplierPhone")),
            address=_text(data.get("supplierAddress")),
        ),
        payments=payment_breakdown(methods),
        items=tuple(_line_item(phone) for phone in phones),
        middleman=_middleman(data),
    )


def _entry_kind(value: Any, label: str) -> EntryKind:
    key = re.sub(r"[^a-z]", "", str(value or "").lower())
    try:
        return ENTRY_KINDS[key]
    except KeyError:
        raise InvalidRecordError(f"{label}: unknown type {value!r}") from None


def ledger_entry_from_mapping(data: Any, index: int, field: str = "transactions") -> LedgerEntry:
    if not isinstance(data, Mapping):
        raise InvalidRecordError(f"{field}[{index}]: expected an object")
    order_number = data.get("orderNumber")
    balances = data.get("balancesAfterTransaction")
    adjustment_type = data.get("adjustmentType")
    if adjustment_type is None and isinstance(balances, Mapping):
        adjustment_type = balances.get("adjustmentType")
    return LedgerEntry(
        id=str(data.get("id") or index),
        kind=_entry_kind(data.get("type"), f"{field}[{index}].type"),
        date=parse_timestamp(data.get("date"), f"{field}[{index}].date"),
        amount=_lenient_number(data.get("amount")),
        grand_total=_optional_number(data.get("grandTotal")),
        paid=_optional_number(data.get("paid")),
        credit=_optional_number(data.get("credit")),
        order_number=order_number if isinstance(order_number, int) and not isinstance(order_number, bool) else None,
        notes=_text(data.get("notes")),
        cash_paid=_optional_number(data.get("cashPaid")),
        bank_paid=_optional_number(data.get("bankPaid")),
        credit_card_paid=_optional_number(data.get("creditCardPaid")),
        middleman_cash=_optional_number(data.get("middlemanCash")),
        middleman_bank=_optional_number(data.get("middlemanBank")),
        middleman_credit_card=_optional_number(data.get("middlemanCreditCard")),
        middleman_credit=_optional_number(data.get("middlemanCredit")),
        middleman_unit=_text(data.get("middlemanUnit")),
        giver=_text(data.get("giver")),
        taker=_text(data.get("taker")),
        role=_text(data.get("role")),
        adjustment_type=_text(adjustment_type),
    )


def ledger_from_mapping(data: Mapping[str, Any], generated_at: Optional[datetime] = None) -> LedgerRequest:
    entity = data.get("entity")
    transactions = data.get("transactions")
    if not isinstance(entity, Mapping) or not _text(entity.get("name")):
        raise InvalidRecordError("entity: expected an object with a name")
    if not isinstance(transactions, list):
        raise InvalidRecordError("transactions: expected a list")
    return LedgerRequest(
        entity=Party(
            id=_text(entity.get("id")),
            name=_text(entity.get("name")),
            phone=_text(entity.get("phone")),
            email=_text(entity.get("email")),
            address=_text(entity.get("address")),
        ),
        entries=tuple(ledger_entry_from_mapping(item, index) for index, item in enumerate(transactions)),
        start_date=_optional_timestamp(data.get("startDate"), "startDate"),
        end_date=_optional_timestamp(data.get("endDate"), "endDate"),
        generated_at=generated_at,
    )


def history_from_mapping(data: Mapping[str, Any], generated_at: Optional[datetime] = None) -> HistoryRequest:
    """Build a history tab request from ``{"tabName", "entries": [{entityId, entityName, transaction}]}``."""
    tab_name = _text(data.get("tabName"))
    entries = data.get("entries")
    if not tab_name:
        raise InvalidRecordError("tabName: expected a non-empty string")
    if not isinstance(entries, list):
        raise InvalidRecordError("entries: expected a list")
    history: List[HistoryEntry] = []
    for index, item in enumerate(entries):
        if not isinstance(item, Mapping):
            raise InvalidRecordError(f"entries[{index}]: expected an object")
        entity_id = _text(item.get("entityId"))
        if not entity_id:
            raise InvalidRecordError(f"entries[{index}].entityId: expected a non-empty string")
        history.append(
            HistoryEntry(
                entity_id=entity_id,
                entity_name=_text(item.get("entityName")) or config.NOT_AVAILABLE,
                entry=ledger_entry_from_mapping(item.get("transaction"), index, field="entries"),
            )
        )
    return HistoryRequest(
        tab_name=tab_name,
        entries=tuple(history),
        start_date=_optional_timestamp(data.get("startDate"), "startDate"),
        end_date=_optional_timestamp(data.get("endDate"), "endDate"),
        generated_at=generated_at,
    )


def slug_for(data: Mapping[str, Any], kind: DocumentKind, fallback: str) -> str:
    if kind == DocumentKind.INVOICE:
        title = f"purchase {data.get('orderNumber', '')} {data.get('supplierName') or ''}"
    elif kind == DocumentKind.HISTORY:
        title = f"history {data.get('tabName') or ''}"
    else:
        entity = data.get("entity") if isinstance(data.get("entity"), Mapping) else {}
        title = f"ledger {entity.get('name') or ''} {entity.get('id') or ''}"
    slug = slugify(title)
    slug = re.sub(r"[^a-z0-9-]+", "-", slug.lower()).strip("-")
    if not slug:
        slug = hashlib.md5(fallback.encode("utf-8")).hexdigest()[:12]
    if ".." in slug or "/" in slug or "\\" in slug:
        raise ValueError("Invalid slug generated from record")
    return slug


def register_jobs(paths: Iterable[Path]) -> List[DocumentJob]:
    """Queue record files as PENDING jobs, one job per slug.

    Re-registering a slug resets its existing job and drops the artifacts of
    the previous run. Shape errors surface when the job runs.
    """
    init_db()
    pending: List[tuple[str, DocumentKind, Path]] = []
    seen = set()
    for path in paths:
        data = load_json(path)
        kind = detect_kind(data)
        slug = slug_for(data, kind, fallback=str(path))
        if slug in seen:
            raise ValueError(f"Duplicate document slug: {slug}")
        seen.add(slug)
        pending.append((slug, kind, path))

    jobs: List[DocumentJob] = []
    with get_session() as session:
        for slug, kind, path in pending:
            job = session.exec(select(DocumentJob).where(DocumentJob.slug == slug)).first()
            if job is None:
                job = DocumentJob(slug=slug, kind=kind, source_path=str(path.resolve()))
            else:
                for artifact in session.exec(select(Artifact).where(Artifact.job_id == job.id)).all():
                    session.delete(artifact)
                job.kind = kind
                job.source_path = str(path.resolve())
                job.status = JobStatus.PENDING
                job.page_count = 0
                job.fail_code = None
                job.fail_detail = None
            session.add(job)
            jobs.append(job)
        session.commit()
        for job in jobs:
            session.refresh(job)
    return jobs


def record_paths(source: Path) -> List[Path]:
    if source.is_dir():
        paths = sorted(source.glob("*.json"))
        if not paths:
            raise ValueError(f"No JSON records in {source}")
        return paths
    if not source.exists():
        raise FileNotFoundError(f"Record not found: {source}")
    return [source]


def list_jobs(statuses: Iterable[JobStatus], kind: DocumentKind | None = None) -> List[DocumentJob]:
    init_db()
    with get_session() as session:
        statement = select(DocumentJob)
        if kind:
            statement = statement.where(DocumentJob.kind == kind)
        if statuses:
            statement = statement.where(DocumentJob.status.in_(list(statuses)))
        return list(session.exec(statement))
