"""
Document Store
==============

A small file-backed store for document records.

The whole state is one JSON object, ``{"documents": {id: record}}``, kept in
memory and written back in full after every mutation. A single lock guards
every operation, including the disk write, so concurrent callers never lose
updates. Writes go to a temporary file that is then renamed over the
snapshot, so a crash mid-write leaves the previous snapshot intact.

If persisting a mutation fails, the in-memory change is rolled back before
`StorageError` is raised; memory never runs ahead of disk.
"""

from __future__ import annotations

import json
import os
import tempfile
import threading
from pathlib import Path

import structlog

from common.errors import NotFoundError, StorageError
from .models import Document

log = structlog.get_logger(__name__)

_MISSING = object()


class DocumentStore:
    """Thread-safe JSON snapshot store keyed by document id."""

    def __init__(self, path: str | os.PathLike):
        self.path = Path(path)
        self._lock = threading.Lock()
        self._documents: dict[str, Document] | None = None

    def initialize(self) -> None:
        """
        Load the snapshot into memory, creating an empty one if missing.
        """
        with self._lock:
            try:
                self.path.parent.mkdir(parents=True, exist_ok=True)
                if not self.path.exists():
                    log.info("Initializing store", path=str(self.path))
                    self._write_atomic("{}")
                raw = self.path.read_text(encoding="utf-8")
            except (OSError, UnicodeDecodeError) as e:
                raise StorageError(f"Unable to initialize store at {self.path}: {e}") from e

            self._documents = self._parse_snapshot(raw)
            log.info(
                "Store initialized",
                path=str(self.path),
                size_bytes=len(raw.encode("utf-8")),
                document_count=len(self._documents),
            )

    def put(self, doc_id: str, document: Document) -> None:
        """Insert or overwrite *doc_id* and persist the snapshot."""
        with self._lock:
            documents = self._loaded()
            previous = documents.get(doc_id, _MISSING)
            documents[doc_id] = document.copy()
            try:
                self._save()
            except StorageError:
                self._restore(doc_id, previous)
                raise

    def get(self, doc_id: str) -> Document | None:
        """Return a copy of the record, or None when *doc_id* is unknown."""
        with self._lock:
            document = self._loaded().get(doc_id)
            return document.copy() if document is not None else None

    def require(self, doc_id: str) -> Document:
        """Return a copy of the record, raising `NotFoundError` if unknown."""
        document = self.get(doc_id)
        if document is None:
            raise NotFoundError(doc_id)
        return document

    def contains(self, doc_id: str) -> bool:
        with self._lock:
            return doc_id in self._loaded()

    def list(self) -> list[Document]:
        """Return copies of all records; order is unspecified."""
        with self._lock:
            return [document.copy() for document in self._loaded().values()]

    def count(self) -> int:
        with self._lock:
            return len(self._loaded())

    def set_label(self, doc_id: str, label: str) -> None:
        """Set the classification label of an existing document."""
        self._update(doc_id, type=label)

    def set_json_path(self, doc_id: str, json_path: str) -> None:
        """Record where extracted data for *doc_id* lives."""
        self._update(doc_id, json_path=json_path)

    def _update(self, doc_id: str, **changes: str) -> None:
        with self._lock:
            documents = self._loaded()
            previous = documents.get(doc_id)
            if previous is None:
                raise NotFoundError(doc_id)
            updated = previous.copy()
            for key, value in changes.items():
                setattr(updated, key, value)
            documents[doc_id] = updated
            try:
                self._save()
            except StorageError:
                self._restore(doc_id, previous)
                raise

    def _loaded(self) -> dict[str, Document]:
        if self._documents is None:
            raise StorageError("Store used before initialize()")
        return self._documents

    def _restore(self, doc_id: str, previous: object) -> None:
        """Undo an in-memory mutation after a failed write."""
        if previous is _MISSING:
            self._documents.pop(doc_id, None)
        else:
            self._documents[doc_id] = previous
        log.warning("Rolled back store mutation after failed write", doc_id=doc_id)

    def _parse_snapshot(self, raw: str) -> dict[str, Document]:
        try:
            data = json.loads(raw)
        except json.JSONDecodeError as e:
            raise StorageError(f"Store file {self.path} is not valid JSON: {e}") from e
        if not isinstance(data, dict):
            raise StorageError(f"Store file {self.path} must contain a JSON object")

        documents = data.get("documents")
        if documents is None:
            documents = {}
        if not isinstance(documents, dict):
            raise StorageError(f"'documents' in {self.path} must be a JSON object")

        parsed = {}
        for doc_id, record in documents.items():
            if not isinstance(record, dict):
                raise StorageError(f"Record {doc_id!r} in {self.path} is not an object")
            try:
                parsed[doc_id] = Document.from_dict(record)
            except (TypeError, ValueError) as e:
                raise StorageError(f"Record {doc_id!r} in {self.path} is malformed: {e}") from e
        return parsed

    def _save(self) -> None:
        """Serialize the full snapshot to disk. Caller must hold the lock."""
        payload = {
            "documents": {
                doc_id: document.to_dict() for doc_id, document in self._documents.items()
            }
        }
        try:
            self._write_atomic(json.dumps(payload, indent=2, ensure_ascii=False))
        except (OSError, TypeError, ValueError) as e:
            raise StorageError(f"Unable to write store file {self.path}: {e}") from e

    def _write_atomic(self, content: str) -> None:
        fd, tmp_path = tempfile.mkstemp(
            dir=self.path.parent, prefix=f".{self.path.name}.", suffix=".tmp"
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as tmp_file:
                tmp_file.write(content)
                tmp_file.flush()
                os.fsync(tmp_file.fileno())
            os.replace(tmp_path, self.path)
        except BaseException:
            try:
                os.remove(tmp_path)
            except FileNotFoundError:
                pass
            raise
