"""``multipart/form-data`` body encoding.

The remote service receives images and text in a single
``multipart/form-data`` request.  :func:`encode_multipart` builds the
complete body in memory as one contiguous buffer:

* one part per text field, in input order::

    --{boundary}\\r\\n
    Content-Disposition: form-data; name="{name}"\\r\\n
    \\r\\n
    {value}\\r\\n

* one part per file, in input order, with the raw bytes copied verbatim::

    --{boundary}\\r\\n
    Content-Disposition: form-data; name="{field}"; filename="{file}"\\r\\n
    Content-Type: {content_type}\\r\\n
    \\r\\n
    {bytes}\\r\\n

* the closing delimiter ``--{boundary}--\\r\\n``.

Names, values and file names are inserted as given.  Quotes or CR/LF inside
them are not escaped and will corrupt the body; callers must pass clean
strings.  The boundary is random and payloads are not scanned for it.
"""

from __future__ import annotations

import secrets
from collections.abc import Iterable
from typing import NamedTuple

BOUNDARY_PREFIX = "----NotebridgeFormBoundary"

CRLF = b"\r\n"


class FilePart(NamedTuple):
    """A binary attachment in a multipart body."""

    field_name: str
    file_name: str
    content_type: str
    data: bytes


def make_boundary() -> str:
    """Return a fresh boundary token: a fixed prefix plus 16 random hex digits."""
    return f"{BOUNDARY_PREFIX}{secrets.token_hex(8)}"


def content_type_header(boundary: str) -> str:
    """Value of the ``Content-Type`` header for a body using *boundary*."""
    return f"multipart/form-data; boundary={boundary}"


def encode_multipart(
    fields: Iterable[tuple[str, str]],
    files: Iterable[FilePart] = (),
    boundary: str | None = None,
) -> tuple[str, bytes]:
    """Serialize text *fields* and binary *files* into one multipart body.

    Parameters
    ----------
    fields:
        Ordered ``(name, value)`` pairs.  Values are UTF-8 encoded.
    files:
        Ordered :class:`FilePart` attachments.
    boundary:
        Boundary token to use.  A random one is generated when omitted.

    Returns
    -------
    tuple[str, bytes]
        ``(boundary, body)``.  The body length is exactly the sum of its
        segments; nothing is padded.
    """
    if boundary is None:
        boundary = make_boundary()
    delimiter = f"--{boundary}\r\n".encode()

    segments: list[bytes] = []

    for name, value in fields:
        segments.append(delimiter)
        segments.append(
            f'Content-Disposition: form-data; name="{name}"\r\n\r\n'.encode()
        )
        segments.append(value.encode("utf-8"))
        segments.append(CRLF)

    for part in files:
        segments.append(delimiter)
        segments.append(
            (
                f'Content-Disposition: form-data; name="{part.field_name}"; '
                f'filename="{part.file_name}"\r\n'
                f"Content-Type: {part.content_type}\r\n\r\n"
            ).encode()
        )
        segments.append(bytes(part.data))
        segments.append(CRLF)

    segments.append(f"--{boundary}--\r\n".encode())

    return boundary, b"".join(segments)
