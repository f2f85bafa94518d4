from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from sqlmodel import Field, SQLModel, create_engine, Session

from . import config


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class DocumentKind(str, Enum):
    INVOICE = "INVOICE"
    LEDGER = "LEDGER"
    HISTORY = "HISTORY"


class JobStatus(str, Enum):
    PENDING = "PENDING"
    READY = "READY"
    FAILED = "FAILED"


class DocumentJob(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    slug: str = Field(index=True)
    kind: DocumentKind = Field(default=DocumentKind.INVOICE)
    source_path: str
    status: JobStatus = Field(default=JobStatus.PENDING)
    page_count: int = 0
    fail_code: Optional[str] = None
    fail_detail: Optional[str] = None
    created_at: datetime = Field(default_factory=utc_now)


class Artifact(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    job_id: int = Field(foreign_key="documentjob.id")
    type: str
    path: str
    created_at: datetime = Field(default_factory=utc_now)


engine = create_engine(f"sqlite:///{config.DB_PATH}")


def reset_engine() -> None:
    global engine
    engine = create_engine(f"sqlite:///{config.DB_PATH}")


def init_db() -> None:
    config.OUT_DIR.mkdir(parents=True, exist_ok=True)
    SQLModel.metadata.create_all(engine)


def get_session() -> Session:
    return Session(engine, expire_on_commit=False)
