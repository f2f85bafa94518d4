from __future__ import annotations

from pathlib import Path
from typing import Iterable

from . import config
from .models import Artifact, DocumentJob, get_session


ARTIFACT_NAMES = {
    "pdf": "document.pdf",
    "preview_1": "preview_1.png",
    "preview_2": "preview_2.png",
    "record": "record.json",
    "error": "error.log",
}


def job_dir(slug: str, base_dir: Path | None = None, include_slug: bool = True) -> Path:
    root = base_dir or config.OUT_DIR
    path = root / slug if include_slug else root
    path.mkdir(parents=True, exist_ok=True)
    return path


def artifact_path(
    slug: str,
    artifact_type: str,
    base_dir: Path | None = None,
    include_slug: bool = True,
) -> Path:
    filename = ARTIFACT_NAMES[artifact_type]
    return job_dir(slug, base_dir=base_dir, include_slug=include_slug) / filename


def page_path(
    slug: str,
    index: int,
    base_dir: Path | None = None,
    include_slug: bool = True,
) -> Path:
    return job_dir(slug, base_dir=base_dir, include_slug=include_slug) / f"page_{index:02d}.html"


def record_artifacts(job: DocumentJob, artifacts: Iterable[tuple[str, Path]]) -> None:
    with get_session() as session:
        for artifact_type, path in artifacts:
            session.add(
                Artifact(
                    job_id=job.id,
                    type=artifact_type,
                    path=str(path.relative_to(config.OUT_DIR)),
                )
            )
        session.commit()
