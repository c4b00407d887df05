"""
Common building blocks for the vote document classifier.

This package contains reusable, domain-agnostic code:

- configuration loading (environment variables)
- logging configuration
- error types
- retry/backoff helpers and the OpenAI-compatible chat call
- PDF page rendering
- a small sequential polling loop
"""
