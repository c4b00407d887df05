"""
Document store package.

- the `Document` record model
- the JSON snapshot `DocumentStore`
"""

from .models import Document
from .store import DocumentStore

__all__ = [
    "Document",
    "DocumentStore",
]
