"""Metrics hook protocol and its no-op default.

A publish run reports how many requests it sent, how long they took, how
large the bodies were and how many image references resolved.  Pass any
object with ``increment``/``timing``/``gauge`` as
``NotebridgeConfig(metrics=...)`` to forward these to StatsD, Prometheus or
similar; otherwise :class:`NoopMetricsHook` drops them.

Metric names (kind, tags):

* ``notebridge.requests_total`` -- counter, ``url`` and ``status``
* ``notebridge.request_duration_ms`` -- timing, ``url`` and ``status``
* ``notebridge.request_bytes`` -- gauge, ``url``
* ``notebridge.images_resolved_total`` -- counter
* ``notebridge.images_missing_total`` -- counter
* ``notebridge.publish_total`` -- counter, ``outcome``
* ``notebridge.unpublish_total`` -- counter, ``outcome``
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

Tags = dict[str, str]


@runtime_checkable
class MetricsHook(Protocol):
    """What a metrics backend has to provide."""

    def increment(self, name: str, value: int = 1, tags: Tags | None = None) -> None:
        """Add *value* to the counter *name*."""
        ...

    def timing(self, name: str, ms: float, tags: Tags | None = None) -> None:
        """Record one duration, in milliseconds."""
        ...

    def gauge(self, name: str, value: float, tags: Tags | None = None) -> None:
        """Report the current value of *name*."""
        ...


class NoopMetricsHook:
    """Discards every data point."""

    __slots__ = ()

    def increment(self, name: str, value: int = 1, tags: Tags | None = None) -> None:
        pass

    def timing(self, name: str, ms: float, tags: Tags | None = None) -> None:
        pass

    def gauge(self, name: str, value: float, tags: Tags | None = None) -> None:
        pass
