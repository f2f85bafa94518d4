from __future__ import annotations

import logging
from pathlib import Path
from typing import Sequence

import fitz  # PyMuPDF

from ..storage import artifact_path

logger = logging.getLogger(__name__)

PAGE_SIZES = ("letter", "a4")
MARGIN = 18


def _place_document(writer: fitz.DocumentWriter, html: str, paper: str) -> int:
    """Flow one page document into the writer; returns how many PDF pages it took."""
    mediabox = fitz.paper_rect(paper)
    where = mediabox + (MARGIN, MARGIN, -MARGIN, -MARGIN)
    story = fitz.Story(html=html)
    pages = 0
    more = 1
    while more:
        device = writer.begin_page(mediabox)
        more, _ = story.place(where)
        story.draw(device)
        writer.end_page()
        pages += 1
    return pages


def render_pdf(
    slug: str,
    pages: Sequence[str],
    paper: str = "letter",
    base_dir: Path | None = None,
    include_slug: bool = True,
) -> tuple[Path, int]:
    """
    Render page documents, in order, into one merged PDF.

    Each page document starts on a new PDF page. Returns the PDF path and the
    number of PDF pages written.
    """
    if paper not in PAGE_SIZES:
        raise ValueError(f"Unsupported paper size: {paper}")
    if not pages:
        raise ValueError(f"[{slug}] nothing to render")
    path = artifact_path(slug, "pdf", base_dir=base_dir, include_slug=include_slug)
    writer = fitz.DocumentWriter(str(path))
    written = 0
    try:
        for index, html in enumerate(pages, start=1):
            used = _place_document(writer, html, paper)
            if used > 1:
                logger.warning("[%s] page %d overflowed onto %d PDF pages", slug, index, used)
            written += used
    finally:
        writer.close()
    return path, written
