"""
Sample Registry
===============

Labelled reference documents, rendered once per run. The vision model does
not take PDF input, so each sample's first page is rendered to a PNG before
any comparison happens. Samples are curated, so a single render failure
aborts the whole load.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Iterator, Mapping, Protocol

import structlog

from docstore.models import Document

log = structlog.get_logger(__name__)


def sample_image_path(image_path: str, label: str, sample_path: str) -> str:
    """
    PNG path for a sample: ``<image_path>/samples/<label>/<sample path>.png``.

    Sample images live apart from document images and keep the sample's
    relative path, so equal basenames under different labels or folders
    never overwrite each other.
    """
    parts = [p for p in Path(sample_path).with_suffix("").parts if p not in ("/", "\\", ".", "..")]
    return os.path.join(image_path, "samples", label, *parts) + ".png"


class Renderer(Protocol):
    def page_count(self, path: str) -> int: ...

    def render_page(self, path: str, output_path: str, page_index: int) -> None: ...


class SampleRegistry:
    """In-memory mapping of label -> non-empty ordered list of samples."""

    def __init__(self, samples: Mapping[str, list[Document]] | None = None):
        self._samples: dict[str, list[Document]] = {}
        for label, docs in (samples or {}).items():
            if docs:
                self._samples[label] = list(docs)

    @classmethod
    def load(
        cls,
        sample_data: Mapping[str, list[str]],
        samples_path: str,
        image_path: str,
        renderer: Renderer,
    ) -> "SampleRegistry":
        """
        Render every configured sample and build the registry.

        Raises `RenderError` if any sample fails to render and `ValueError`
        if no samples are configured at all.
        """
        log.info("Loading samples", label_count=len(sample_data))
        samples: dict[str, list[Document]] = {}
        for label, paths in sample_data.items():
            if not paths:
                log.warning("Label has no samples configured; skipping", label=label)
                continue
            for sample_path in paths:
                full_path = os.path.join(samples_path, sample_path)
                output_path = sample_image_path(image_path, label, sample_path)
                log.debug("Rendering sample", label=label, path=full_path)
                renderer.render_page(full_path, output_path, 0)
                samples.setdefault(label, []).append(
                    Document(
                        id=os.path.basename(full_path),
                        source_url=full_path,
                        pdf_path=full_path,
                        image_paths=[output_path],
                        type=label,
                    )
                )

        registry = cls(samples)
        if not registry:
            raise ValueError("No samples configured; set SAMPLE_DATA or SAMPLE_DATA_FILE")
        log.info("Loaded samples", sample_count=registry.count(), labels=registry.labels())
        return registry

    def labels(self) -> list[str]:
        """Labels in configuration order."""
        return list(self._samples)

    def samples_for(self, label: str) -> list[Document]:
        return list(self._samples.get(label, []))

    def representative(self, label: str) -> Document:
        """The sample used for comparisons: the first one configured."""
        return self._samples[label][0]

    def count(self) -> int:
        return sum(len(docs) for docs in self._samples.values())

    def __len__(self) -> int:
        return len(self._samples)

    def __contains__(self, label: object) -> bool:
        return label in self._samples

    def __iter__(self) -> Iterator[str]:
        return iter(self._samples)
