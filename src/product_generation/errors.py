"""Errors raised at the Gemini boundary."""

from __future__ import annotations


class GenerationError(RuntimeError):
    """A gateway call failed or returned data we could not use."""
