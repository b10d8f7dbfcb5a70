"""Configuration for notebridge.

:class:`NotebridgeConfig` is a plain dataclass that captures every
user-supplied setting: endpoint URLs, the bearer token, the optional store
connection string, and the request-shape variants of the remote service.
Instances are passed to :class:`~notebridge.pipeline.PublishPipeline` and
:func:`~notebridge.pipeline.build_pipeline`.
"""

from __future__ import annotations

import dataclasses
import os
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Literal
from urllib.parse import urlparse

_UPLOAD_MODES = ("batch", "per_image")
_REVALIDATE_FORMATS = ("json", "multipart")

_ENV_PREFIX = "NOTEBRIDGE_"


@dataclass
class NotebridgeConfig:
    """Complete configuration for a notebridge pipeline.

    Defaults are placeholders pointing at a local development server; no
    value is enforced beyond basic shape checks.

    Parameters
    ----------
    upload_url:
        Endpoint receiving image uploads (and, in ``"batch"`` mode, the
        note content and slug).
    unpublish_url:
        Endpoint notified when a note is unpublished.
    token:
        Bearer token sent in the ``Authorization`` header.  Never logged.
    database_url:
        SQLAlchemy connection string for the post store.  ``None`` disables
        store persistence.
    revalidate_url:
        Endpoint notified after a successful publish.  ``None`` skips
        publish-time revalidation.
    upload_mode:
        * ``"batch"`` -- one request with ``content``, ``slug`` and every
          image as an ``images`` part.
        * ``"per_image"`` -- one request per image with a ``url`` field and
          an ``image`` part; the response carries the hosted URL.
    revalidate_format:
        * ``"json"`` -- body ``{"slug": ..., "content": ...}``.
        * ``"multipart"`` -- form fields ``slug``, ``shortened``, ``tags``.
    timeout_seconds:
        HTTP request timeout in seconds.
    http_proxy:
        Optional HTTP/HTTPS proxy URL.
    metrics:
        Optional :class:`~notebridge.observability.MetricsHook`.
    debug_dump_payload:
        Write a redacted request/response dump to *stderr*.
    """

    # ── Endpoints ───────────────────────────────────────────────────────
    upload_url: str = "http://localhost:3000/api/upload"

    unpublish_url: str = "http://localhost:3000/api/unpublish"

    revalidate_url: str | None = None

    token: str = ""

    # ── Store ───────────────────────────────────────────────────────────
    database_url: str | None = None

    # ── Request variants ────────────────────────────────────────────────
    upload_mode: Literal["batch", "per_image"] = "batch"

    revalidate_format: Literal["json", "multipart"] = "json"

    # ── HTTP ────────────────────────────────────────────────────────────
    timeout_seconds: float = 30.0

    http_proxy: str | None = None

    # ── Observability ──────────────────────────────────────────────────
    metrics: Any | None = None

    # ── Debug ───────────────────────────────────────────────────────────
    debug_dump_payload: bool = False

    def __post_init__(self) -> None:
        """Validate configuration after initialization."""
        for name in ("upload_url", "unpublish_url", "revalidate_url"):
            value = getattr(self, name)
            if value is None:
                continue
            parsed = urlparse(value)
            if parsed.scheme not in ("http", "https") or not parsed.netloc:
                raise ValueError(f"{name} must be an http(s) URL, got {value!r}")

        if self.upload_mode not in _UPLOAD_MODES:
            raise ValueError(
                f"upload_mode must be one of {_UPLOAD_MODES}, got {self.upload_mode!r}"
            )
        if self.revalidate_format not in _REVALIDATE_FORMATS:
            raise ValueError(
                f"revalidate_format must be one of {_REVALIDATE_FORMATS}, "
                f"got {self.revalidate_format!r}"
            )
        if self.timeout_seconds <= 0:
            raise ValueError(f"timeout_seconds must be > 0, got {self.timeout_seconds}")

    def __repr__(self) -> str:
        """Mask the token and database URL to prevent credential leakage."""
        parts: list[str] = []
        for f in dataclasses.fields(self):
            val = getattr(self, f.name)
            if f.name == "token":
                masked = f"...{val[-4:]}" if len(val) >= 4 else "****"
                parts.append(f"token='{masked}'")
            elif f.name == "database_url" and val is not None:
                parts.append("database_url='<redacted>'")
            else:
                parts.append(f"{f.name}={val!r}")
        return f"NotebridgeConfig({', '.join(parts)})"

    @classmethod
    def from_env(
        cls,
        environ: Mapping[str, str] | None = None,
        **overrides: Any,
    ) -> NotebridgeConfig:
        """Build a configuration from ``NOTEBRIDGE_*`` environment variables.

        Unset variables keep their defaults.  Keyword *overrides* win over
        the environment.
        """
        env = os.environ if environ is None else environ
        values: dict[str, Any] = {}
        for key, field_name in (
            ("UPLOAD_URL", "upload_url"),
            ("UNPUBLISH_URL", "unpublish_url"),
            ("REVALIDATE_URL", "revalidate_url"),
            ("TOKEN", "token"),
            ("DATABASE_URL", "database_url"),
            ("UPLOAD_MODE", "upload_mode"),
            ("REVALIDATE_FORMAT", "revalidate_format"),
        ):
            raw = env.get(_ENV_PREFIX + key)
            if raw:
                values[field_name] = raw
        timeout = env.get(_ENV_PREFIX + "TIMEOUT")
        if timeout:
            try:
                values["timeout_seconds"] = float(timeout)
            except ValueError as exc:
                raise ValueError(
                    f"{_ENV_PREFIX}TIMEOUT must be a number, got {timeout!r}"
                ) from exc
        values.update(overrides)
        return cls(**values)
