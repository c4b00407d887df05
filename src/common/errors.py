"""
Error types shared by the store, renderer and classification pipeline.

The daemon loop catches everything per document, so these classes exist to
let callers tell the failure kinds apart (fatal startup errors versus
per-document errors that are retried on the next pass).
"""


class VoteClassifierError(Exception):
    """Base class for all pipeline errors."""


class StorageError(VoteClassifierError):
    """The snapshot file could not be read, parsed or written."""


class NotFoundError(VoteClassifierError, KeyError):
    """A document id is not present in the store."""

    def __init__(self, doc_id: str):
        super().__init__(doc_id)
        self.doc_id = doc_id

    def __str__(self) -> str:
        return f"document not found: {self.doc_id}"


class RenderError(VoteClassifierError):
    """A PDF page could not be counted or rendered to an image."""


class EncodingError(VoteClassifierError):
    """A page image required for classification is missing or unreadable."""


class OracleError(VoteClassifierError):
    """The vision model call failed or returned no usable content."""


class RateLimitedError(OracleError):
    """The vision model signalled a rate limit; the caller may retry later."""


class ParseError(VoteClassifierError, ValueError):
    """The model's verdict could not be parsed as the expected JSON."""
