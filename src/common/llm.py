"""
Shared LLM helpers.

This module centralizes the OpenAI-compatible chat completion call so every
caller gets the same retry behavior for transient failures.

Rate limits are deliberately not in the retryable set: a 429 means the
caller should back off for a fixed cool-down and move on, which the
classification provider handles itself.
"""

import openai

from .utils import retry

RETRYABLE_OPENAI_EXCEPTIONS = (
    openai.APIConnectionError,
    openai.APITimeoutError,
    openai.InternalServerError,
)


class OpenAIChatMixin:
    """
    Mixin providing a retried OpenAI-compatible chat completion call.

    The mixin expects ``self.settings`` to expose ``MAX_RETRIES`` and
    ``MAX_RETRY_BACKOFF_SECONDS`` for the retry decorator.
    """

    @retry(retryable_exceptions=RETRYABLE_OPENAI_EXCEPTIONS)
    def _create_completion(self, **kwargs):
        """Call the OpenAI-compatible chat completion API with retries."""
        return openai.chat.completions.create(**kwargs)
