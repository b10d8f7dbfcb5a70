"""Public data models for notebridge.

All types are plain dataclasses with no behaviour beyond what is needed
for structural equality, hashing (where frozen), and a few convenience
constructors.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from enum import Enum
from pathlib import PurePosixPath
from typing import Any


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------

class PublishState(str, Enum):
    """Lifecycle states of a single publish invocation."""

    SCANNING = "scanning"
    """Embeds are normalised and image references collected."""

    RESOLVING = "resolving"
    """References are being mapped to local files."""

    UPLOADING = "uploading"
    """The multipart request(s) are in flight."""

    PERSISTING = "persisting"
    """The post record is written to the store."""

    REVALIDATING = "revalidating"
    """The downstream revalidation endpoint is being notified."""

    DONE = "done"
    """All steps completed."""

    FAILED = "failed"
    """A fatal error occurred; reachable from every non-terminal state."""


# ---------------------------------------------------------------------------
# Images
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ImageReference:
    """A located mention of an image inside a document.

    Attributes
    ----------
    raw_path:
        The path or URL exactly as written in the markup, without query
        string or fragment.
    is_remote:
        ``True`` when *raw_path* starts with ``http``.  Remote references
        are never resolved to local files.
    """

    raw_path: str
    is_remote: bool = False

    @classmethod
    def from_raw(cls, raw_path: str) -> ImageReference:
        return cls(raw_path=raw_path, is_remote=raw_path.startswith("http"))


@dataclass
class ResolvedAsset:
    """The bytes of a local image, ready to be encoded into a request.

    Created per upload call and discarded once the request completes.

    Attributes
    ----------
    file_name:
        File name sent in the multipart ``filename`` parameter.
    content_type:
        MIME type derived from the file extension.
    data:
        Raw file bytes.
    raw_path:
        The reference this asset was resolved from.
    source_path:
        Vault-relative path of the file that was read.
    """

    file_name: str
    content_type: str
    data: bytes
    raw_path: str = ""
    source_path: str = ""


# ---------------------------------------------------------------------------
# Documents and posts
# ---------------------------------------------------------------------------

@dataclass
class NoteDocument:
    """A note as read from the vault.

    Attributes
    ----------
    path:
        Vault-relative POSIX path, e.g. ``"blog/hello world.md"``.
    text:
        Full file contents including any frontmatter block.
    """

    path: str
    text: str

    @property
    def basename(self) -> str:
        """File name without extension; the default slug."""
        return PurePosixPath(self.path).stem

    @property
    def folder(self) -> str:
        """Vault-relative folder containing the note (``""`` at the root)."""
        parent = PurePosixPath(self.path).parent.as_posix()
        return "" if parent == "." else parent


@dataclass
class Post:
    """The durable record mirrored into the post store.

    ``slug`` is the sole identity key.  Re-publishing the same slug
    overwrites every column and replaces the tag and keyword sets.
    """

    slug: str
    title: str
    content: str
    description: str | None = None
    date: str | None = None
    excerpt: str | None = None
    locale: str | None = None
    cover: str | None = None
    cover_square: str | None = None
    last_modified: str | None = None
    shortened: str | None = None
    short_excerpt: str | None = None
    tags: set[str] = field(default_factory=set)
    keywords: set[str] = field(default_factory=set)


# ---------------------------------------------------------------------------
# Transport and results
# ---------------------------------------------------------------------------

@dataclass
class HttpResponse:
    """Status and raw body of a completed HTTP exchange."""

    status: int
    body: bytes = b""

    @property
    def text(self) -> str:
        return self.body.decode("utf-8", errors="replace")

    def json(self) -> Any:
        return json.loads(self.body)


@dataclass
class OperationResult:
    """Uniform outcome of a publish or unpublish call.

    Attributes
    ----------
    success:
        ``True`` when every fatal step succeeded.
    message:
        Human-readable summary, suitable for showing to the end user.
    slug:
        The slug the operation acted on, when known.
    state:
        The last state the pipeline reached.
    images_uploaded:
        Number of image files included in upload requests.
    skipped:
        Raw paths of references that could not be resolved.
    """

    success: bool
    message: str
    slug: str | None = None
    state: PublishState | None = None
    images_uploaded: int = 0
    skipped: list[str] = field(default_factory=list)
