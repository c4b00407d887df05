"""
Configuration module for the vote document classifier.

This module centralizes the loading and validation of all configuration
parameters from environment variables. It provides a single `Settings`
class that acts as a container for all configurable values, ensuring
that they are defined in one place and can be easily imported and used
throughout the application.
"""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Literal

import openai
from PIL import Image


class Settings:
    """
    A container for all configuration settings, loaded from environment variables.

    This class centralizes configuration, providing default values for optional
    settings and raising errors for missing required settings.
    """

    # --- LLM Provider Configuration ---
    LLM_PROVIDER: Literal["openai", "ollama"]
    OLLAMA_BASE_URL: str | None
    OPENAI_API_KEY: str | None
    AI_MODELS: list[str]

    # --- Paths ---
    PDF_PATH: str
    IMAGE_PATH: str
    JSON_PATH: str
    STORE_PATH: str
    SAMPLES_PATH: str

    # --- Samples: label -> list of sample PDF paths ---
    SAMPLE_DATA: dict[str, list[str]]

    # --- Daemon Configuration ---
    POLL_INTERVAL: int
    RATE_LIMIT_COOLDOWN_SECONDS: int
    MAX_RETRIES: int
    MAX_RETRY_BACKOFF_SECONDS: int
    REQUEST_TIMEOUT: int

    # --- Classification / Rendering ---
    CLASSIFY_MAX_TOKENS: int
    CLASSIFY_MAX_SIDE: int
    RENDER_DPI: int

    # --- Logging ---
    LOG_LEVEL: str
    LOG_FORMAT: Literal["console", "json"]

    def __init__(self):
        """
        Loads settings from environment variables and performs validation.
        """
        # --- LLM Provider Configuration ---
        self.LLM_PROVIDER = os.getenv("LLM_PROVIDER", "openai")
        if self.LLM_PROVIDER not in ("openai", "ollama"):
            raise ValueError("LLM_PROVIDER must be 'openai' or 'ollama'")

        if self.LLM_PROVIDER == "ollama":
            self.OLLAMA_BASE_URL = os.getenv(
                "OLLAMA_BASE_URL", "http://localhost:11434/v1/"
            )
            self.OPENAI_API_KEY = None  # Not used for Ollama
            default_models = "llava:13b"
        else:  # openai
            self.OLLAMA_BASE_URL = None
            self.OPENAI_API_KEY = self._get_required_env("OPENAI_API_KEY")
            default_models = "gpt-4o"

        self.AI_MODELS = _parse_list(os.getenv("AI_MODELS", default_models))
        if not self.AI_MODELS:
            raise ValueError("AI_MODELS must contain at least one model name")

        # --- Paths ---
        cwd = Path.cwd()
        self.PDF_PATH = os.getenv("PDF_PATH", str(cwd / "pdfs"))
        self.IMAGE_PATH = os.getenv("IMAGE_PATH", str(cwd / "images"))
        self.JSON_PATH = os.getenv("JSON_PATH", str(cwd / "json"))
        self.STORE_PATH = os.getenv("STORE_PATH", str(cwd / "data" / "data.json"))
        self.SAMPLES_PATH = os.getenv("SAMPLES_PATH", str(cwd / "samples"))

        self.SAMPLE_DATA = self._load_sample_data()

        # --- Daemon Configuration ---
        self.POLL_INTERVAL = self._get_int("POLL_INTERVAL", 5, minimum=1)
        self.RATE_LIMIT_COOLDOWN_SECONDS = self._get_int(
            "RATE_LIMIT_COOLDOWN_SECONDS", 60, minimum=0
        )
        self.MAX_RETRIES = self._get_int("MAX_RETRIES", 5, minimum=1)
        self.MAX_RETRY_BACKOFF_SECONDS = self._get_int(
            "MAX_RETRY_BACKOFF_SECONDS", 30, minimum=1
        )
        self.REQUEST_TIMEOUT = self._get_int("REQUEST_TIMEOUT", 180, minimum=1)

        # --- Classification / Rendering ---
        self.CLASSIFY_MAX_TOKENS = self._get_int("CLASSIFY_MAX_TOKENS", 3000, minimum=1)
        self.CLASSIFY_MAX_SIDE = self._get_int("CLASSIFY_MAX_SIDE", 1600, minimum=1)
        self.RENDER_DPI = self._get_int("RENDER_DPI", 200, minimum=1)

        # --- Logging ---
        self.LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
        self.LOG_FORMAT = os.getenv("LOG_FORMAT", "console").lower()
        if self.LOG_FORMAT not in ("console", "json"):
            raise ValueError("LOG_FORMAT must be 'console' or 'json'")

    def _get_required_env(self, var_name: str) -> str:
        """
        Gets a required environment variable, raising an error if it's not set.
        """
        value = os.getenv(var_name)
        if value is None:
            raise ValueError(f"Required environment variable '{var_name}' is not set.")
        return value

    def _get_int(self, var_name: str, default: int, minimum: int) -> int:
        """Read an integer environment variable with a lower bound."""
        raw = os.getenv(var_name)
        if raw is None or not raw.strip():
            return default
        try:
            value = int(raw)
        except ValueError as e:
            raise ValueError(f"{var_name} must be an integer, got {raw!r}") from e
        if value < minimum:
            raise ValueError(f"{var_name} must be >= {minimum}, got {value}")
        return value

    def _load_sample_data(self) -> dict[str, list[str]]:
        """
        Read the label -> sample paths mapping from SAMPLE_DATA or SAMPLE_DATA_FILE.

        The file variant also accepts the whole application config with a
        ``sample_data`` key.
        """
        raw = os.getenv("SAMPLE_DATA")
        source = "SAMPLE_DATA"
        if raw is None:
            path = os.getenv("SAMPLE_DATA_FILE")
            if path is None:
                return {}
            source = f"SAMPLE_DATA_FILE ({path})"
            try:
                raw = Path(path).read_text(encoding="utf-8")
            except OSError as e:
                raise ValueError(f"Unable to read {source}: {e}") from e

        try:
            data = json.loads(raw)
        except json.JSONDecodeError as e:
            raise ValueError(f"{source} is not valid JSON: {e}") from e

        if isinstance(data, dict) and isinstance(data.get("sample_data"), dict):
            data = data["sample_data"]
        if not isinstance(data, dict):
            raise ValueError(f"{source} must be a JSON object of label -> paths")

        sample_data: dict[str, list[str]] = {}
        for label, paths in data.items():
            if isinstance(paths, str):
                paths = [paths]
            if not isinstance(paths, list) or not all(
                isinstance(p, str) for p in paths
            ):
                raise ValueError(f"{source}: samples for {label!r} must be a list of paths")
            sample_data[str(label)] = [p for p in paths if p.strip()]
        return sample_data


def _parse_list(value: str) -> list[str]:
    """Split a comma separated value, dropping blanks and duplicates."""
    seen = set()
    items = []
    for token in value.split(","):
        token = token.strip()
        if not token or token in seen:
            continue
        seen.add(token)
        items.append(token)
    return items


def setup_libraries(settings: Settings) -> None:
    """
    Configures third-party libraries based on the application settings.
    """
    # Disable Pillow's safety check that prevents huge images
    Image.MAX_IMAGE_PIXELS = None

    # Configure OpenAI SDK
    if settings.LLM_PROVIDER == "ollama":
        openai.base_url = settings.OLLAMA_BASE_URL
        openai.api_key = "dummy"
    else:
        openai.api_key = settings.OPENAI_API_KEY

    # common.utils.retry is the only retry layer; a 429 must surface at once
    openai.max_retries = 0


def ensure_directories(settings: Settings) -> None:
    """Create the working directories used by the pipeline."""
    for directory in (
        settings.PDF_PATH,
        settings.IMAGE_PATH,
        settings.JSON_PATH,
        str(Path(settings.STORE_PATH).parent),
    ):
        os.makedirs(directory, exist_ok=True)
