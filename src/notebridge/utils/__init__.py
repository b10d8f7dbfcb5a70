"""Shared utility helpers for notebridge."""

from .redact import redact

__all__ = ["redact"]
