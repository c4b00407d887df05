"""
Classification domain package.

This package contains:

- the similarity provider (prompt + verdict parsing + vision model calls)
- the sample registry
- document discovery
- the classification engine and per-document worker
- the long-running classification daemon entrypoint
"""

from .discovery import discover_documents
from .provider import (
    ClassificationProvider,
    SimilarityVerdict,
    parse_similarity_response,
)
from .samples import SampleRegistry
from .worker import ClassificationEngine, DocumentClassifier

__all__ = [
    "ClassificationEngine",
    "ClassificationProvider",
    "DocumentClassifier",
    "SampleRegistry",
    "SimilarityVerdict",
    "discover_documents",
    "parse_similarity_response",
]
