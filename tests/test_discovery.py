import os

import pytest

from classifier.discovery import discover_documents, render_document
from common.errors import RenderError
from docstore.models import Document
from docstore.store import DocumentStore


class FakeRenderer:
    def __init__(self, pages=None):
        self.pages = pages or {}
        self.rendered = []

    def page_count(self, path):
        return self.pages.get(os.path.basename(path), 1)

    def render_page(self, path, output_path, page_index):
        self.rendered.append((os.path.basename(path), output_path, page_index))


@pytest.fixture
def pdf_dir(tmp_path):
    pdf_dir = tmp_path / "pdfs"
    (pdf_dir / "2023").mkdir(parents=True)
    (pdf_dir / "single.pdf").write_bytes(b"%PDF-1.4")
    (pdf_dir / "2023" / "multi.PDF").write_bytes(b"%PDF-1.4")
    (pdf_dir / "notes.txt").write_text("ignore me")
    return pdf_dir


@pytest.fixture
def store(tmp_path):
    store = DocumentStore(tmp_path / "data" / "data.json")
    store.initialize()
    return store


def test_discover_adds_new_documents(store, pdf_dir, tmp_path):
    image_dir = str(tmp_path / "images")
    renderer = FakeRenderer(pages={"multi.PDF": 3})

    added = discover_documents(store, str(pdf_dir), image_dir, renderer)

    assert added == 2
    assert store.count() == 2

    single = store.get("single.pdf")
    assert single.pdf_path == str(pdf_dir / "single.pdf")
    assert single.source_url == single.pdf_path
    assert single.image_paths == [os.path.join(image_dir, "single.png")]
    assert single.type == ""

    multi = store.get("multi.PDF")
    assert multi.image_paths == [
        os.path.join(image_dir, "multi_0.png"),
        os.path.join(image_dir, "multi_1.png"),
        os.path.join(image_dir, "multi_2.png"),
    ]
    assert [r[2] for r in renderer.rendered if r[0] == "multi.PDF"] == [0, 1, 2]


def test_discover_is_idempotent(store, pdf_dir, tmp_path):
    image_dir = str(tmp_path / "images")
    discover_documents(store, str(pdf_dir), image_dir, FakeRenderer())
    before = {doc.id: doc for doc in store.list()}

    renderer = FakeRenderer()
    added = discover_documents(store, str(pdf_dir), image_dir, renderer)

    assert added == 0
    assert renderer.rendered == []
    assert {doc.id: doc for doc in store.list()} == before


def test_discover_skips_known_documents_even_when_classified(store, pdf_dir, tmp_path):
    store.put("single.pdf", Document(id="single.pdf", type="a", image_paths=["x.png"]))
    renderer = FakeRenderer()

    added = discover_documents(store, str(pdf_dir), str(tmp_path / "images"), renderer)

    assert added == 1
    assert store.get("single.pdf").type == "a"
    assert [r[0] for r in renderer.rendered] == ["multi.PDF"]


def test_discover_missing_directory_adds_nothing(store, tmp_path):
    assert discover_documents(store, str(tmp_path / "nope"), str(tmp_path), FakeRenderer()) == 0


def test_render_document_zero_pages_raises():
    renderer = FakeRenderer(pages={"empty.pdf": 0})

    with pytest.raises(RenderError, match="no pages"):
        render_document("/pdfs/empty.pdf", "/images", renderer)


def test_render_error_aborts_discovery(store, pdf_dir, tmp_path):
    class FailingRenderer(FakeRenderer):
        def render_page(self, path, output_path, page_index):
            raise RenderError("boom")

    with pytest.raises(RenderError):
        discover_documents(store, str(pdf_dir), str(tmp_path / "images"), FailingRenderer())

    assert store.count() == 0
