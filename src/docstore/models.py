"""Document record persisted in the snapshot store."""

from __future__ import annotations

import copy
from dataclasses import asdict, dataclass, field

from common.errors import EncodingError

@dataclass
class Document:
    """
    Metadata for one voting document (or one sample).

    ``id`` is the source PDF's filename. ``type`` holds the classification
    label and stays empty until a label matched.
    """

    id: str = ""
    source_url: str = ""
    image_paths: list[str] = field(default_factory=list)
    pdf_path: str = ""
    json_path: str = ""
    type: str = ""

    @property
    def is_classified(self) -> bool:
        return bool(self.type)

    def first_image(self) -> str:
        """Return the first page image, the one used for comparison."""
        if not self.image_paths:
            raise EncodingError(f"document {self.id or self.pdf_path!r} has no page images")
        return self.image_paths[0]

    def copy(self) -> "Document":
        return copy.deepcopy(self)

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> "Document":
        def get_str(key: str) -> str:
            value = data.get(key)
            return str(value) if value is not None else ""

        image_paths = data.get("image_paths") or []
        if isinstance(image_paths, str):
            image_paths = [image_paths]
        if not isinstance(image_paths, list):
            raise TypeError(f"image_paths must be a list, got {type(image_paths).__name__}")

        return cls(
            id=get_str("id"),
            source_url=get_str("source_url"),
            image_paths=[str(p) for p in image_paths],
            pdf_path=get_str("pdf_path"),
            json_path=get_str("json_path"),
            type=get_str("type"),
        )
