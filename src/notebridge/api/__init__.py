"""Outbound HTTP: multipart encoding, transport and endpoint wrappers."""

from .endpoints import PublishAPI, Transport
from .multipart import FilePart, content_type_header, encode_multipart, make_boundary
from .transport import HttpTransport

__all__ = [
    "FilePart",
    "HttpTransport",
    "PublishAPI",
    "Transport",
    "content_type_header",
    "encode_multipart",
    "make_boundary",
]
