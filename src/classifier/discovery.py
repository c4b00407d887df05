"""
Document discovery: one pass over the PDF directory at startup.

Every PDF whose filename is not yet in the store is rendered page by page
and inserted as a new, unclassified record. Filenames already present are
skipped entirely, so nothing is rendered twice.
"""

from __future__ import annotations

import os

import structlog

from common.errors import RenderError
from common.render import image_path_for
from docstore.models import Document
from docstore.store import DocumentStore
from .samples import Renderer

log = structlog.get_logger(__name__)


def _iter_pdfs(pdf_path: str):
    for root, dirs, files in os.walk(pdf_path):
        dirs.sort()
        for name in sorted(files):
            if name.lower().endswith(".pdf"):
                yield os.path.join(root, name)


def render_document(path: str, image_path: str, renderer: Renderer) -> list[str]:
    """Render every page of *path* and return the image paths in page order."""
    page_count = renderer.page_count(path)
    if page_count < 1:
        raise RenderError(f"{path} has no pages")

    if page_count == 1:
        output_path = image_path_for(image_path, path)
        renderer.render_page(path, output_path, 0)
        return [output_path]

    image_paths = []
    for page_index in range(page_count):
        output_path = image_path_for(image_path, path, page_index)
        renderer.render_page(path, output_path, page_index)
        image_paths.append(output_path)
    return image_paths


def discover_documents(
    store: DocumentStore,
    pdf_path: str,
    image_path: str,
    renderer: Renderer,
) -> int:
    """
    Add a record for every new PDF under *pdf_path*; return how many were added.
    """
    log.info("Loading documents", pdf_path=pdf_path)
    added = 0
    for path in _iter_pdfs(pdf_path):
        file_name = os.path.basename(path)
        if store.contains(file_name):
            log.debug("Document already exists; skipping", doc_id=file_name)
            continue

        image_paths = render_document(path, image_path, renderer)
        store.put(
            file_name,
            Document(
                id=file_name,
                source_url=path,
                pdf_path=path,
                image_paths=image_paths,
            ),
        )
        added += 1
        log.info("Added document", doc_id=file_name, page_count=len(image_paths))

    log.info("Loaded documents", added=added, total=store.count())
    return added
