"""
PDF Rendering
=============

Thin wrapper around pdf2image (poppler) used by document discovery and
sample loading. The vision model does not accept PDF input, so every page
that should be compared is rendered to a PNG on disk first.

All failures are reported as `RenderError`, which is fatal to the sample
load or discovery pass that triggered it.
"""

from __future__ import annotations

import os
from pathlib import Path

import structlog
from pdf2image import convert_from_path, pdfinfo_from_path
from pdf2image.exceptions import PDFInfoNotInstalledError, PDFPageCountError, PDFSyntaxError

from .config import Settings
from .errors import RenderError

log = structlog.get_logger(__name__)

DEFAULT_DPI = 200

_PDF2IMAGE_ERRORS = (
    PDFInfoNotInstalledError,
    PDFPageCountError,
    PDFSyntaxError,
    OSError,
    ValueError,
)


def get_page_count(path: str) -> int:
    """Return the number of pages in the PDF at *path*."""
    try:
        info = pdfinfo_from_path(path)
        return int(info["Pages"])
    except _PDF2IMAGE_ERRORS + (KeyError, TypeError) as e:
        raise RenderError(f"Unable to read page count for {path}: {e}") from e


def render_page(path: str, output_path: str, page_index: int, dpi: int = DEFAULT_DPI) -> None:
    """
    Render the zero-based page *page_index* of *path* into a PNG at *output_path*.
    """
    if page_index < 0:
        raise RenderError(f"Invalid page index {page_index} for {path}")
    page_num = page_index + 1
    try:
        images = convert_from_path(path, dpi=dpi, first_page=page_num, last_page=page_num)
    except _PDF2IMAGE_ERRORS as e:
        raise RenderError(f"Unable to render page {page_index} of {path}: {e}") from e

    if not images:
        raise RenderError(f"Page {page_index} of {path} produced no image")

    try:
        os.makedirs(os.path.dirname(output_path) or ".", exist_ok=True)
        images[0].save(output_path, format="PNG")
    except OSError as e:
        raise RenderError(f"Unable to write {output_path}: {e}") from e
    finally:
        for image in images:
            image.close()

    log.debug("Rendered page", pdf=path, page_index=page_index, output=output_path)


def image_path_for(image_dir: str, pdf_path: str, page_index: int | None = None) -> str:
    """
    Return the PNG path for a PDF page.

    Single-page documents use ``<stem>.png``; pages of multi-page documents
    are suffixed with their index (``<stem>_<i>.png``).
    """
    stem = Path(pdf_path).stem
    if page_index is None:
        return os.path.join(image_dir, f"{stem}.png")
    return os.path.join(image_dir, f"{stem}_{page_index}.png")


class PdfRenderer:
    """Renderer bound to the configured DPI, injectable for tests."""

    def __init__(self, settings: Settings):
        self.settings = settings

    def page_count(self, path: str) -> int:
        return get_page_count(path)

    def render_page(self, path: str, output_path: str, page_index: int) -> None:
        render_page(path, output_path, page_index, dpi=self.settings.RENDER_DPI)
