from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
import logging
import shutil
from typing import Iterable, List, Optional

from .. import config
from ..documents.assemble import generate_history_ledger, generate_invoice, generate_ledger
from ..documents.records import CompanyProfile
from ..documents.templating import DirectoryTemplateLoader, TemplateLoader
from ..errors import InvalidRecordError, TemplateNotFoundError
from ..models import DocumentJob, DocumentKind, JobStatus, get_session, init_db
from ..storage import artifact_path, page_path, record_artifacts
from .ingest import history_from_mapping, ledger_from_mapping, load_json, purchase_from_mapping
from .render_pdf import render_pdf
from .render_preview import render_previews


logger = logging.getLogger(__name__)

FAIL_CODES = {
    TemplateNotFoundError: "TEMPLATE_NOT_FOUND",
    InvalidRecordError: "INVALID_RECORD",
}


@dataclass
class RunOptions:
    paper: str = "letter"
    render: bool = True
    previews: bool = True
    company: Optional[CompanyProfile] = None
    loader: Optional[TemplateLoader] = None
    generated_at: Optional[datetime] = None


@dataclass
class JobOutcome:
    status: JobStatus
    artifacts: List[tuple[str, Path]] = field(default_factory=list)
    page_count: int = 0


def fail_code(exc: BaseException) -> str:
    for error_type, code in FAIL_CODES.items():
        if isinstance(exc, error_type):
            return code
    return "PIPELINE_ERROR"


def build_pages(job: DocumentJob, options: RunOptions) -> List[str]:
    data = load_json(Path(job.source_path))
    loader = options.loader or DirectoryTemplateLoader()
    generated_at = options.generated_at or datetime.now(timezone.utc)
    if job.kind == DocumentKind.LEDGER:
        request = ledger_from_mapping(data, generated_at=generated_at)
        return generate_ledger(request, loader=loader, company=options.company)
    if job.kind == DocumentKind.HISTORY:
        history = history_from_mapping(data, generated_at=generated_at)
        return generate_history_ledger(history, loader=loader, company=options.company)
    record = purchase_from_mapping(data, record_id=job.slug)
    return generate_invoice(record, loader=loader, company=options.company)


def _write_error(slug: str, message: str) -> None:
    error_path = artifact_path(slug, "error", base_dir=config.OUT_DIR)
    error_path.write_text(message, encoding="utf-8")


def _prepare_temp_dir(slug: str) -> Path:
    temp_dir = config.OUT_DIR / f"{slug}.tmp"
    if temp_dir.exists():
        shutil.rmtree(temp_dir)
    temp_dir.mkdir(parents=True, exist_ok=True)
    return temp_dir


def _finalize_artifacts(
    temp_dir: Path,
    final_dir: Path,
    artifacts: List[tuple[str, Path]],
) -> List[tuple[str, Path]]:
    if final_dir.exists():
        shutil.rmtree(final_dir)
    temp_dir.replace(final_dir)
    finalized: List[tuple[str, Path]] = []
    for artifact_type, path in artifacts:
        finalized.append((artifact_type, final_dir / path.relative_to(temp_dir)))
    return finalized


def process_job(job: DocumentJob, options: RunOptions) -> JobOutcome:
    # Every page is built in memory before anything is written.
    pages = build_pages(job, options)

    temp_dir = _prepare_temp_dir(job.slug)
    try:
        artifacts: List[tuple[str, Path]] = []
        for index, html in enumerate(pages, start=1):
            path = page_path(job.slug, index, base_dir=temp_dir, include_slug=False)
            path.write_text(html, encoding="utf-8")
            artifacts.append((f"page_{index:02d}", path))

        record_copy = artifact_path(job.slug, "record", base_dir=temp_dir, include_slug=False)
        shutil.copyfile(job.source_path, record_copy)
        artifacts.append(("record", record_copy))

        if options.render:
            pdf_path, _ = render_pdf(job.slug, pages, paper=options.paper, base_dir=temp_dir, include_slug=False)
            artifacts.append(("pdf", pdf_path))
            if options.previews:
                previews = render_previews(job.slug, pdf_path, base_dir=temp_dir, include_slug=False)
                for index, preview in enumerate(previews, start=1):
                    artifacts.append((f"preview_{index}", preview))
    except Exception:
        shutil.rmtree(temp_dir, ignore_errors=True)
        raise

    final_dir = config.OUT_DIR / job.slug
    artifacts = _finalize_artifacts(temp_dir, final_dir, artifacts)
    return JobOutcome(status=JobStatus.READY, artifacts=artifacts, page_count=len(pages))


def run_pipeline(jobs: Iterable[DocumentJob], options: RunOptions | None = None) -> dict[str, list[str]]:
    options = options or RunOptions()
    init_db()
    results: dict[str, list[str]] = {"READY": [], "FAILED": []}
    with get_session() as session:
        for job in jobs:
            errors: List[str] = []
            code: Optional[str] = None
            try:
                outcome = process_job(job, options)
            except (TemplateNotFoundError, InvalidRecordError) as exc:
                logger.error("Cannot generate %s: %s", job.slug, exc)
                outcome = JobOutcome(status=JobStatus.FAILED)
                errors = [str(exc)]
                code = fail_code(exc)
            except Exception as exc:
                logger.exception("Pipeline error for %s", job.slug)
                outcome = JobOutcome(status=JobStatus.FAILED)
                errors = [str(exc) or exc.__class__.__name__]
                code = fail_code(exc)

            job.status = outcome.status
            job.page_count = outcome.page_count
            job.fail_code = code
            job.fail_detail = errors[0] if errors else None
            session.add(job)
            session.commit()
            session.refresh(job)

            if outcome.status == JobStatus.READY:
                record_artifacts(job, outcome.artifacts)
                results["READY"].append(job.slug)
                logger.info("Generated %s (%d pages)", job.slug, outcome.page_count)
            else:
                _write_error(job.slug, "\n".join(errors))
                results["FAILED"].append(job.slug)
    return results

