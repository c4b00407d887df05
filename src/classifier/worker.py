"""
Document Classification Worker
==============================

`ClassificationEngine` decides which label, if any, applies to a document by
comparing its first page with one representative sample per label. The
first label the model calls similar wins; there is no ranking across labels.

`DocumentClassifier` wraps the engine for the daemon loop: it classifies a
single stored document and writes the label back through the store.
"""

from __future__ import annotations

import datetime as dt

import structlog

from docstore.models import Document
from docstore.store import DocumentStore
from .provider import ClassificationProvider, SimilarityVerdict
from .samples import SampleRegistry

log = structlog.get_logger(__name__)


class ClassificationEngine:
    """First-match-wins classification against a sample registry."""

    def __init__(self, provider: ClassificationProvider, registry: SampleRegistry):
        self.provider = provider
        self.registry = registry

    def classify(self, document: Document) -> SimilarityVerdict | None:
        """
        Return the verdict for the first matching label, or None if none match.

        Oracle, parse and encoding errors propagate immediately; a failure for
        one label aborts the whole classification.
        """
        document_image = self.provider.encode(document.first_image())

        for label in self.registry.labels():
            sample = self.registry.representative(label)
            log.debug("Comparing with sample", doc_id=document.id, label=label)
            sample_image = self.provider.encode(sample.first_image())
            verdict = self.provider.compare(document_image, sample_image)
            if verdict.similar:
                return SimilarityVerdict(similar=True, label=label)

        return None


class DocumentClassifier:
    """Classifies one stored document and persists the result."""

    def __init__(self, store: DocumentStore, engine: ClassificationEngine):
        self.store = store
        self.engine = engine

    def process(self, document: Document) -> str | None:
        """Classify *document*; return the label written, or None."""
        if document.is_classified:
            log.info("Skipping document; already classified", doc_id=document.id)
            return None

        log.info("Classifying document", doc_id=document.id)
        start_time = dt.datetime.now()
        verdict = self.engine.classify(document)
        elapsed_time = (dt.datetime.now() - start_time).total_seconds()

        if verdict is None:
            log.info(
                "No sample matched; leaving unclassified",
                doc_id=document.id,
                elapsed_time=f"{elapsed_time:.2f}s",
            )
            return None

        self.store.set_label(document.id, verdict.label)
        log.info(
            "Classified document",
            doc_id=document.id,
            label=verdict.label,
            elapsed_time=f"{elapsed_time:.2f}s",
        )
        return verdict.label
