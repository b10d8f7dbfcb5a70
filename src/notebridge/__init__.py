"""notebridge -- publish Markdown notes and their images to a content service.

Public re-exports
-----------------

* **Pipeline:** :class:`PublishPipeline`, :func:`publish_note`,
  :func:`unpublish_note`, :func:`build_pipeline`
* **Configuration:** :class:`NotebridgeConfig`
* **Building blocks:** :func:`scan`, :func:`normalize_embeds`,
  :class:`ImageResolver`, :func:`encode_multipart`, :class:`Vault`,
  :class:`SqlPostStore`
* **Errors:** Every :class:`NotebridgeError` subclass and :class:`ErrorCode`
* **Models:** All result and record dataclasses

Usage::

    from notebridge import NotebridgeConfig, publish_note

    config = NotebridgeConfig(
        upload_url="https://example.com/api/upload",
        token="secret",
    )
    result = publish_note("vault/blog/hello.md", config, vault_root="vault")
    print(result.message)
"""

from __future__ import annotations

__version__ = "0.1.0"

# ── Configuration ───────────────────────────────────────────────────────
from notebridge.config import NotebridgeConfig

# ── Errors ──────────────────────────────────────────────────────────────
from notebridge.errors import (
    ErrorCode,
    NotebridgeError,
    NotebridgeFrontmatterError,
    NotebridgeImageError,
    NotebridgeImageNotFoundError,
    NotebridgeNetworkError,
    NotebridgeRevalidationError,
    NotebridgeStoreError,
    NotebridgeTransportError,
    NotebridgeUploadError,
)

# ── Building blocks ─────────────────────────────────────────────────────
from notebridge.api import FilePart, HttpTransport, PublishAPI, encode_multipart
from notebridge.images import ImageResolver, iter_references, normalize_embeds, scan

# ── Models ──────────────────────────────────────────────────────────────
from notebridge.models import (
    HttpResponse,
    ImageReference,
    NoteDocument,
    OperationResult,
    Post,
    PublishState,
    ResolvedAsset,
)

# ── Pipeline ────────────────────────────────────────────────────────────
from notebridge.pipeline import (
    PublishPipeline,
    build_pipeline,
    publish_note,
    unpublish_note,
)
from notebridge.store import PostStore, SqlPostStore
from notebridge.vault import Vault

# ── Public surface ──────────────────────────────────────────────────────

__all__ = [
    "__version__",
    # Pipeline
    "PublishPipeline",
    "build_pipeline",
    "publish_note",
    "unpublish_note",
    # Configuration
    "NotebridgeConfig",
    # Building blocks
    "FilePart",
    "HttpTransport",
    "ImageResolver",
    "PostStore",
    "PublishAPI",
    "SqlPostStore",
    "Vault",
    "encode_multipart",
    "iter_references",
    "normalize_embeds",
    "scan",
    # Errors
    "ErrorCode",
    "NotebridgeError",
    "NotebridgeFrontmatterError",
    "NotebridgeImageError",
    "NotebridgeImageNotFoundError",
    "NotebridgeNetworkError",
    "NotebridgeRevalidationError",
    "NotebridgeStoreError",
    "NotebridgeTransportError",
    "NotebridgeUploadError",
    # Models
    "HttpResponse",
    "ImageReference",
    "NoteDocument",
    "OperationResult",
    "Post",
    "PublishState",
    "ResolvedAsset",
]
