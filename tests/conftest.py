"""
Pytest configuration.

The project uses a ``src/`` layout with several top-level packages
(``common``, ``docstore``, ``classifier``). Normally tests run after
``pip install -e .``; when the editable install is not picked up (for
example a hidden ``.pth`` file in a dot-prefixed virtualenv), ``src/`` is
added to ``sys.path`` so the packages still import.
"""

from __future__ import annotations

import os
import sys
from pathlib import Path

import pytest


def _ensure_src_on_path() -> None:
    try:
        import common  # noqa: F401
        import docstore  # noqa: F401
        return
    except ModuleNotFoundError:
        pass

    repo_root = Path(__file__).resolve().parents[1]
    src_dir = repo_root / "src"
    sys.path.insert(0, str(src_dir))


_ensure_src_on_path()


@pytest.fixture
def settings(mocker, tmp_path):
    """Settings with every path pointing inside tmp_path."""
    from common.config import Settings

    mocker.patch.dict(
        os.environ,
        {
            "OPENAI_API_KEY": "test_api_key",
            "PDF_PATH": str(tmp_path / "pdfs"),
            "IMAGE_PATH": str(tmp_path / "images"),
            "JSON_PATH": str(tmp_path / "json"),
            "STORE_PATH": str(tmp_path / "data" / "data.json"),
            "SAMPLES_PATH": str(tmp_path / "samples"),
            "SAMPLE_DATA": '{"a": ["a1.pdf"], "b": ["b1.pdf", "b2.pdf"]}',
            "MAX_RETRIES": "2",
        },
        clear=True,
    )
    return Settings()
