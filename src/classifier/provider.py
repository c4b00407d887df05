"""
Similarity Oracle Provider
==========================

This module asks an OpenAI-compatible vision model whether a document page
looks like a labelled sample page. It provides:

- image encoding into ``data:`` URIs,
- a parsing layer for the model's JSON verdict (tolerating fenced code
  blocks around it),
- the provider class that performs one comparison call.

Transient network failures are retried by the shared mixin. A rate-limit
response is not retried: the provider waits a fixed cool-down and raises
`RateLimitedError` so the daemon can pick the document up on a later pass.
"""

from __future__ import annotations

import base64
import json
import re
import time
from dataclasses import dataclass
from io import BytesIO
from typing import Callable

import openai
import structlog
from PIL import Image, UnidentifiedImageError

from common.config import Settings
from common.errors import EncodingError, OracleError, ParseError, RateLimitedError
from common.llm import OpenAIChatMixin

log = structlog.get_logger(__name__)

SIMILARITY_PROMPT = """
Analyze the layout and format of the two images.
The first image is a scanned voting document, the second one is a reference sample.
If the images are highly similar, return a JSON object with the following structure:
{"similar": true}
If the images are not similar return:
{"similar": false}
Don't return any more output than JSON.
""".strip()

_FENCE_RE = re.compile(r"```(?:[a-zA-Z]+)?\s*(.*?)\s*```", re.DOTALL)


@dataclass(frozen=True)
class SimilarityVerdict:
    similar: bool
    label: str = ""


def encode_image(path: str, max_side: int) -> str:
    """
    Load a page image, shrink it to *max_side* on the long edge and return it
    as a base64 PNG data URI.
    """
    try:
        with Image.open(path) as image:
            image.load()
            image.thumbnail((max_side, max_side))
            buffer = BytesIO()
            image.save(buffer, format="PNG")
    except FileNotFoundError as e:
        raise EncodingError(f"Page image not found: {path}") from e
    except (UnidentifiedImageError, OSError) as e:
        raise EncodingError(f"Unable to encode page image {path}: {e}") from e
    payload = base64.b64encode(buffer.getvalue()).decode()
    return f"data:image/png;base64,{payload}"


def _strip_code_fence(text: str) -> str:
    """Return the body of the first fenced block, or *text* unchanged."""
    match = _FENCE_RE.search(text)
    if match:
        return match.group(1).strip()
    return text


def _extract_json(text: str) -> object:
    """Parse JSON from raw model output, trimming surrounding text if needed."""
    try:
        return json.loads(text)
    except json.JSONDecodeError:
        start = text.find("{")
        end = text.rfind("}")
        if start == -1 or end == -1 or end <= start:
            raise
        return json.loads(text[start : end + 1])


def parse_similarity_response(text: str) -> SimilarityVerdict:
    """
    Parse the model's answer into a `SimilarityVerdict`.

    Accepts a bare JSON object or one wrapped in a ```json fenced block.
    """
    raw = (text or "").strip()
    if not raw:
        raise ParseError("Similarity response is empty.")

    body = _strip_code_fence(raw)
    try:
        data = _extract_json(body)
    except json.JSONDecodeError as e:
        raise ParseError(f"Similarity response is not valid JSON: {raw[:200]!r}") from e

    if not isinstance(data, dict):
        raise ParseError("Similarity response is not a JSON object.")
    if "similar" not in data:
        raise ParseError("Similarity response has no 'similar' field.")

    value = data["similar"]
    if isinstance(value, str) and value.strip().lower() in ("true", "false"):
        value = value.strip().lower() == "true"
    if not isinstance(value, bool):
        raise ParseError(f"'similar' must be a boolean, got {value!r}")
    return SimilarityVerdict(similar=value)


class ClassificationProvider(OpenAIChatMixin):
    """
    Compares a document page with a sample page using a vision model.
    """

    def __init__(self, settings: Settings, sleep: Callable[[float], None] = time.sleep):
        self.settings = settings
        self._sleep = sleep
        self.model = settings.AI_MODELS[0]

    def encode(self, path: str) -> str:
        return encode_image(path, self.settings.CLASSIFY_MAX_SIDE)

    def compare(self, document_image: str, sample_image: str) -> SimilarityVerdict:
        """
        Ask the model whether two page images (data URIs) share layout and format.
        """
        messages = [
            {
                "role": "user",
                "content": [
                    {"type": "text", "text": SIMILARITY_PROMPT},
                    {"type": "image_url", "image_url": {"url": document_image}},
                    {"type": "image_url", "image_url": {"url": sample_image}},
                ],
            }
        ]
        params = {
            "model": self.model,
            "messages": messages,
            "max_tokens": self.settings.CLASSIFY_MAX_TOKENS,
            "timeout": self.settings.REQUEST_TIMEOUT,
        }

        try:
            response = self._create_completion(**params)
        except openai.RateLimitError as e:
            cooldown = self.settings.RATE_LIMIT_COOLDOWN_SECONDS
            log.warning(
                "Rate limited by model; cooling down",
                model=self.model,
                cooldown_seconds=cooldown,
            )
            self._sleep(cooldown)
            raise RateLimitedError(f"rate limited by {self.model}: {e}") from e
        except openai.APIError as e:
            raise OracleError(f"completion call to {self.model} failed: {e}") from e

        choices = getattr(response, "choices", None) or []
        if not choices:
            raise OracleError("no choices returned from completion API")

        content = choices[0].message.content or ""
        if not content.strip():
            raise OracleError("no content found in completion response")

        return parse_similarity_response(content)
