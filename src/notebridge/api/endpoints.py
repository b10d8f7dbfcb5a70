"""Request builders for the upload and revalidation endpoints.

Wraps :class:`~notebridge.api.transport.HttpTransport` with the request
shapes the remote content service expects:

1. **Batch upload** -- ``content``, ``slug`` and every image as an
   ``images`` file part, in one request.
2. **Per-image upload** -- a ``url`` field with the desired file name and
   one ``image`` part; the JSON response carries the hosted ``url``.
3. **Revalidation** -- ``{"slug", "content"}`` as JSON, or ``slug``,
   ``shortened`` and comma-joined ``tags`` as form fields.

Any status other than 200 is a failure.
"""

from __future__ import annotations

import json
from collections.abc import Sequence
from typing import Any, Protocol

from notebridge.api.multipart import FilePart, content_type_header, encode_multipart
from notebridge.config import NotebridgeConfig
from notebridge.errors import (
    NotebridgeRevalidationError,
    NotebridgeTransportError,
    NotebridgeUploadError,
)
from notebridge.models import HttpResponse, ResolvedAsset
from notebridge.observability import get_logger

log = get_logger("notebridge.transport")


class Transport(Protocol):
    """Anything with the ``post(url, headers, body)`` primitive."""

    def post(self, url: str, headers: dict[str, str], body: bytes) -> HttpResponse:
        ...


def _truncate(text: str, max_len: int = 500) -> str:
    if len(text) <= max_len:
        return text
    return text[:max_len] + "..."


class PublishAPI:
    """Endpoint wrappers for one configured content service.

    Parameters
    ----------
    transport:
        The HTTP primitive, normally an :class:`HttpTransport`.
    config:
        Supplies endpoint URLs, the bearer token and the revalidation format.
    """

    def __init__(self, transport: Transport, config: NotebridgeConfig) -> None:
        self._transport = transport
        self._config = config

    def _auth_headers(self, content_type: str) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self._config.token}",
            "Content-Type": content_type,
        }

    def _post_multipart(
        self,
        url: str,
        fields: Sequence[tuple[str, str]],
        files: Sequence[FilePart] = (),
    ) -> HttpResponse:
        boundary, body = encode_multipart(fields, files)
        return self._transport.post(url, self._auth_headers(content_type_header(boundary)), body)

    # -- uploads -----------------------------------------------------------

    def upload_batch(
        self,
        content: str,
        slug: str,
        assets: Sequence[ResolvedAsset],
    ) -> None:
        """Send the note content, its slug and all images in one request.

        Raises
        ------
        NotebridgeUploadError
            If the endpoint does not answer 200.
        NotebridgeNetworkError
            If no response was received.
        """
        url = self._config.upload_url
        files = [
            FilePart("images", asset.file_name, asset.content_type, asset.data)
            for asset in assets
        ]
        response = self._post_multipart(url, [("content", content), ("slug", slug)], files)
        if response.status != 200:
            log.error(
                "Upload failed",
                extra={
                    "extra_fields": {
                        "op": "upload",
                        "url": url,
                        "slug": slug,
                        "status_code": response.status,
                        "body": _truncate(response.text),
                    }
                },
            )
            raise NotebridgeUploadError(
                message=f"Upload failed with status: {response.status}",
                context={
                    "url": url,
                    "status_code": response.status,
                    "body": _truncate(response.text),
                    "images": [asset.file_name for asset in assets],
                },
            )

    def upload_image(self, asset: ResolvedAsset) -> str:
        """Upload a single image and return the URL it is served from.

        Raises
        ------
        NotebridgeUploadError
            If the endpoint does not answer 200 or the response has no
            ``url``.
        NotebridgeNetworkError
            If no response was received.
        """
        url = self._config.upload_url
        file_part = FilePart("image", asset.file_name, asset.content_type, asset.data)
        response = self._post_multipart(url, [("url", asset.file_name)], [file_part])
        context: dict[str, Any] = {
            "url": url,
            "status_code": response.status,
            "file_name": asset.file_name,
        }
        if response.status != 200:
            context["body"] = _truncate(response.text)
            log.error("Image upload failed", extra={"extra_fields": {"op": "upload_image", **context}})
            raise NotebridgeUploadError(
                message=f"Image upload failed with status: {response.status}",
                context=context,
            )
        try:
            payload = response.json()
            hosted_url = payload["url"]
        except (ValueError, KeyError, TypeError) as exc:
            raise NotebridgeUploadError(
                message="Image upload response has no url",
                context=context,
                cause=exc,
            ) from exc
        if not isinstance(hosted_url, str) or not hosted_url:
            raise NotebridgeUploadError(
                message="Image upload response has no url",
                context=context,
            )
        return hosted_url

    # -- revalidation ------------------------------------------------------

    def revalidate(
        self,
        url: str,
        slug: str,
        content: str,
        *,
        shortened: str | None = None,
        tags: Sequence[str] = (),
    ) -> None:
        """Notify a revalidation endpoint that *slug* changed.

        The body shape follows ``config.revalidate_format``.

        Raises
        ------
        NotebridgeRevalidationError
            On a non-200 answer or when no response was received.
        """
        try:
            if self._config.revalidate_format == "multipart":
                response = self._post_multipart(
                    url,
                    [
                        ("slug", slug),
                        ("shortened", shortened or ""),
                        ("tags", ",".join(tags)),
                    ],
                )
            else:
                body = json.dumps({"slug": slug, "content": content}).encode("utf-8")
                response = self._transport.post(
                    url, self._auth_headers("application/json"), body,
                )
        except NotebridgeTransportError as exc:
            raise NotebridgeRevalidationError(
                message=f"Revalidation request failed: {exc.message}",
                context={"url": url, "slug": slug},
                cause=exc,
            ) from exc

        if response.status != 200:
            log.error(
                "Revalidation failed",
                extra={
                    "extra_fields": {
                        "op": "revalidate",
                        "url": url,
                        "slug": slug,
                        "status_code": response.status,
                        "body": _truncate(response.text),
                    }
                },
            )
            raise NotebridgeRevalidationError(
                message=f"Revalidation failed with status: {response.status}",
                context={"url": url, "status_code": response.status, "slug": slug},
            )
