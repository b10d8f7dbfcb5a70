"""Shared test fixtures for the notebridge test suite."""

from __future__ import annotations

import re
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path

import pytest
from python_multipart.multipart import MultipartParser

from notebridge.config import NotebridgeConfig
from notebridge.models import HttpResponse
from notebridge.vault import Vault

# ---------------------------------------------------------------------------
# Multipart decoding
# ---------------------------------------------------------------------------

_PARAM_RE = re.compile(r'(\w+)="([^"]*)"')


@dataclass
class ParsedPart:
    """One decoded part of a multipart body."""

    name: str
    filename: str | None
    content_type: str | None
    data: bytes


def parse_multipart_body(body: bytes, content_type: str) -> list[ParsedPart]:
    """Decode *body* with a standard multipart parser, preserving part order."""
    boundary = content_type.split("boundary=", 1)[1].strip()
    parts: list[ParsedPart] = []
    headers: dict[str, str] = {}
    state: dict = {"field": b"", "value": b"", "data": bytearray()}

    def on_part_begin() -> None:
        headers.clear()
        state["data"] = bytearray()

    def on_header_field(data: bytes, start: int, end: int) -> None:
        state["field"] += data[start:end]

    def on_header_value(data: bytes, start: int, end: int) -> None:
        state["value"] += data[start:end]

    def on_header_end() -> None:
        headers[state["field"].decode().lower()] = state["value"].decode()
        state["field"] = b""
        state["value"] = b""

    def on_part_data(data: bytes, start: int, end: int) -> None:
        state["data"] += data[start:end]

    def on_part_end() -> None:
        params = dict(_PARAM_RE.findall(headers.get("content-disposition", "")))
        parts.append(
            ParsedPart(
                name=params["name"],
                filename=params.get("filename"),
                content_type=headers.get("content-type"),
                data=bytes(state["data"]),
            )
        )

    parser = MultipartParser(
        boundary,
        {
            "on_part_begin": on_part_begin,
            "on_header_field": on_header_field,
            "on_header_value": on_header_value,
            "on_header_end": on_header_end,
            "on_part_data": on_part_data,
            "on_part_end": on_part_end,
        },
    )
    parser.write(body)
    parser.finalize()
    return parts


@pytest.fixture
def parse_multipart() -> Callable[[bytes, str], list[ParsedPart]]:
    """The multipart decoder, as a fixture so test modules need no imports."""
    return parse_multipart_body


# ---------------------------------------------------------------------------
# Recording transport
# ---------------------------------------------------------------------------

@dataclass
class RecordedRequest:
    url: str
    headers: dict[str, str]
    body: bytes


@dataclass
class RecordingTransport:
    """In-memory transport that records every request.

    Responses are popped from *responses* in order; once exhausted every
    request answers ``default``.
    """

    responses: list[HttpResponse] = field(default_factory=list)
    default: HttpResponse = field(default_factory=lambda: HttpResponse(200, b"{}"))
    requests: list[RecordedRequest] = field(default_factory=list)

    def post(self, url: str, headers: dict[str, str], body: bytes) -> HttpResponse:
        self.requests.append(RecordedRequest(url, dict(headers), body))
        if self.responses:
            return self.responses.pop(0)
        return self.default

    def requests_to(self, url: str) -> list[RecordedRequest]:
        return [r for r in self.requests if r.url == url]


@pytest.fixture
def transport() -> RecordingTransport:
    return RecordingTransport()


# ---------------------------------------------------------------------------
# Configuration and vault
# ---------------------------------------------------------------------------

@pytest.fixture
def config() -> NotebridgeConfig:
    """Default test configuration with a dummy token."""
    return NotebridgeConfig(
        upload_url="https://blog.test/api/upload",
        unpublish_url="https://blog.test/api/unpublish",
        token="test_token_1234",
    )


@pytest.fixture
def make_vault(tmp_path: Path) -> Callable[[dict[str, bytes | str]], Vault]:
    """Build a vault under ``tmp_path`` from a ``{relative_path: content}`` map."""

    def _make(files: dict[str, bytes | str]) -> Vault:
        root = tmp_path / "vault"
        root.mkdir(exist_ok=True)
        for rel, content in files.items():
            target = root / rel
            target.parent.mkdir(parents=True, exist_ok=True)
            if isinstance(content, str):
                target.write_text(content, encoding="utf-8")
            else:
                target.write_bytes(content)
        return Vault(root)

    return _make
