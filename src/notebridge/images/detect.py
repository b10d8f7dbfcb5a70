"""Image path classification.

Small helpers shared by the scanner and the resolver: deciding whether a
reference is remote, whether a path names an image file, and which MIME
type to send for it.
"""

from __future__ import annotations

import mimetypes
from pathlib import PurePosixPath

# Extensions considered image files when searching the vault.
IMAGE_EXTENSIONS = frozenset({
    ".jpg", ".jpeg", ".png", ".gif", ".webp", ".svg", ".bmp", ".tiff",
})

_CONTENT_TYPES: dict[str, str] = {
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".png": "image/png",
    ".gif": "image/gif",
    ".webp": "image/webp",
    ".svg": "image/svg+xml",
    ".bmp": "image/bmp",
    ".tiff": "image/tiff",
    ".tif": "image/tiff",
}


def is_remote(raw_path: str) -> bool:
    """Return ``True`` if *raw_path* is an ``http``/``https`` reference.

    The check is a case-sensitive prefix match, so ``HTTP://`` is treated
    as a local path.
    """
    return raw_path.startswith("http")


def is_image_path(path: str) -> bool:
    """Return ``True`` if *path* has one of :data:`IMAGE_EXTENSIONS` (any case)."""
    return PurePosixPath(path).suffix.lower() in IMAGE_EXTENSIONS


def content_type_for(file_name: str) -> str:
    """Map a file name to the MIME type sent with its multipart part.

    Parameters
    ----------
    file_name:
        A file name or path.  Only the extension is inspected.

    Returns
    -------
    str
        The MIME type, ``"application/octet-stream"`` when unknown.
    """
    suffix = PurePosixPath(file_name).suffix.lower()
    if suffix in _CONTENT_TYPES:
        return _CONTENT_TYPES[suffix]
    guessed, _ = mimetypes.guess_type(file_name)
    return guessed or "application/octet-stream"
