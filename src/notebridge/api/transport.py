"""HTTP transport for the publishing endpoints.

:class:`HttpTransport` is the single outbound primitive the pipeline uses:
``post(url, headers, body) -> HttpResponse``.  It sends one request and
reports whatever status came back; deciding which statuses count as
failure is left to :mod:`notebridge.api.endpoints`.  There are no retries.
A network failure (timeout, DNS, connection reset) is raised as
:class:`~notebridge.errors.NotebridgeNetworkError`.
"""

from __future__ import annotations

import json as _json
import sys
import time
from typing import Any

import httpx

from notebridge.config import NotebridgeConfig
from notebridge.errors import NotebridgeNetworkError
from notebridge.models import HttpResponse
from notebridge.observability import NoopMetricsHook, get_logger

log = get_logger("notebridge.transport")


def _dump_exchange(
    url: str,
    headers: dict[str, str],
    body: bytes,
    response: httpx.Response,
    token: str | None,
) -> None:
    """Write a redacted debug dump of the request/response to stderr."""
    from notebridge.utils.redact import redact

    dump: dict[str, Any] = {
        "method": "POST",
        "url": url,
        "request_headers": dict(headers),
        "request_body": body,
        "response_status": response.status_code,
        "response_body": response.text[:1000],
    }
    print(
        _json.dumps(redact(dump, token), indent=2, default=str),
        file=sys.stderr,
    )


class HttpTransport:
    """Synchronous HTTP transport built on :class:`httpx.Client`.

    Parameters
    ----------
    config:
        Supplies the timeout, proxy, metrics hook and debug flags.
    """

    def __init__(self, config: NotebridgeConfig) -> None:
        self._config = config
        self._metrics = config.metrics if config.metrics is not None else NoopMetricsHook()
        self._client = httpx.Client(
            timeout=httpx.Timeout(config.timeout_seconds),
            proxy=config.http_proxy,
        )

    def post(self, url: str, headers: dict[str, str], body: bytes) -> HttpResponse:
        """POST *body* to *url* and return the raw outcome.

        Parameters
        ----------
        url:
            Absolute endpoint URL.
        headers:
            Request headers, including ``Authorization`` and
            ``Content-Type``.
        body:
            Encoded request body.

        Returns
        -------
        HttpResponse
            Status code and body bytes, whatever the status.

        Raises
        ------
        NotebridgeNetworkError
            If no HTTP response was received.
        """
        t0 = time.monotonic()
        try:
            response = self._client.post(url, headers=headers, content=body)
        except httpx.TransportError as exc:
            self._metrics.increment(
                "notebridge.requests_total",
                tags={"url": url, "status": "error"},
            )
            log.error(
                "Request network error",
                extra={
                    "extra_fields": {
                        "op": "post",
                        "url": url,
                        "error": str(exc),
                    }
                },
            )
            raise NotebridgeNetworkError(
                message=f"Network error on POST {url}: {exc}",
                context={"url": url},
                cause=exc,
            ) from exc

        elapsed_ms = (time.monotonic() - t0) * 1000
        tags = {"url": url, "status": str(response.status_code)}
        self._metrics.increment("notebridge.requests_total", tags=tags)
        self._metrics.timing("notebridge.request_duration_ms", elapsed_ms, tags=tags)
        self._metrics.gauge("notebridge.request_bytes", len(body), tags={"url": url})
        log.debug(
            "Request complete",
            extra={
                "extra_fields": {
                    "op": "post",
                    "url": url,
                    "status_code": response.status_code,
                    "bytes_sent": len(body),
                    "elapsed_ms": round(elapsed_ms, 1),
                }
            },
        )

        if self._config.debug_dump_payload:
            _dump_exchange(url, headers, body, response, self._config.token)

        return HttpResponse(status=response.status_code, body=response.content)

    def close(self) -> None:
        """Close the underlying HTTP client."""
        self._client.close()

    def __enter__(self) -> HttpTransport:
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()
