from __future__ import annotations

from pathlib import Path
from typing import List

import fitz  # PyMuPDF

from ..storage import artifact_path

PREVIEW_TYPES = ("preview_1", "preview_2")


def _render_page_to_png(doc: fitz.Document, page_index: int, out_path: Path, min_px: int = 1600) -> None:
    page = doc.load_page(page_index)
    rect = page.rect
    short_side = min(rect.width, rect.height)
    zoom = max(2.0, min_px / float(short_side))
    pix = page.get_pixmap(matrix=fitz.Matrix(zoom, zoom))
    out_path.parent.mkdir(parents=True, exist_ok=True)
    pix.save(str(out_path))


def render_previews(
    slug: str,
    pdf_path: Path,
    base_dir: Path | None = None,
    include_slug: bool = True,
) -> List[Path]:
    """PNG previews of the first pages (at most two) of a rendered document."""
    previews: List[Path] = []
    with fitz.open(str(pdf_path)) as doc:
        count = min(doc.page_count, len(PREVIEW_TYPES))
        for index in range(count):
            out_path = artifact_path(slug, PREVIEW_TYPES[index], base_dir=base_dir, include_slug=include_slug)
            _render_page_to_png(doc, index, out_path)
            previews.append(out_path)
    return previews
