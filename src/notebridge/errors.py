"""Full error hierarchy for notebridge.

Every public error class inherits from NotebridgeError. Each carries a
machine-readable ``code`` (from :class:`ErrorCode`), a human-readable
``message``, an optional structured ``context`` dict, and an optional
``cause`` (chained exception).

Scanning never fails, so there is no scan error class.  Everything else
raised inside the pipeline is caught at the public operation boundary and
converted into an :class:`~notebridge.models.OperationResult`.
"""

from __future__ import annotations

from enum import Enum
from typing import Any

# ---------------------------------------------------------------------------
# Error code enum
# ---------------------------------------------------------------------------

class ErrorCode(str, Enum):
    """Machine-readable error codes for every error notebridge can raise."""

    IMAGE_ERROR = "IMAGE_ERROR"
    IMAGE_NOT_FOUND = "IMAGE_NOT_FOUND"
    TRANSPORT_ERROR = "TRANSPORT_ERROR"
    NETWORK_ERROR = "NETWORK_ERROR"
    UPLOAD_ERROR = "UPLOAD_ERROR"
    REVALIDATION_ERROR = "REVALIDATION_ERROR"
    STORE_ERROR = "STORE_ERROR"
    FRONTMATTER_ERROR = "FRONTMATTER_ERROR"


# ---------------------------------------------------------------------------
# Base error
# ---------------------------------------------------------------------------

class NotebridgeError(Exception):
    """Base exception for all notebridge errors.

    Parameters
    ----------
    code:
        A value from :class:`ErrorCode` (or any string) identifying the
        error category.
    message:
        A developer-friendly description of what went wrong.
    context:
        Arbitrary structured data providing extra diagnostic detail.
    cause:
        The underlying exception, if this error wraps another.
    """

    def __init__(
        self,
        code: str,
        message: str,
        context: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ) -> None:
        self.code: str = code
        self.message: str = message
        self.context: dict[str, Any] = context or {}
        self.cause: Exception | None = cause
        super().__init__(message)
        if cause is not None:
            self.__cause__ = cause

    def __repr__(self) -> str:
        ctx = f", context={self.context!r}" if self.context else ""
        return f"{type(self).__name__}(code={self.code!r}, message={self.message!r}{ctx})"


# ---------------------------------------------------------------------------
# Image errors
# ---------------------------------------------------------------------------

class NotebridgeImageError(NotebridgeError):
    """Base class for image-related errors."""

    def __init__(
        self,
        code: str = ErrorCode.IMAGE_ERROR,
        message: str = "Image error",
        context: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(code=code, message=message, context=context, cause=cause)


class NotebridgeImageNotFoundError(NotebridgeImageError):
    """No local file could be found for an image reference.

    Non-fatal inside the publish pipeline: the reference is skipped.

    Context keys: ``raw_path``, ``document``.
    """

    def __init__(
        self,
        message: str,
        context: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(
            code=ErrorCode.IMAGE_NOT_FOUND,
            message=message,
            context=context,
            cause=cause,
        )


# ---------------------------------------------------------------------------
# Transport errors
# ---------------------------------------------------------------------------

class NotebridgeTransportError(NotebridgeError):
    """An outbound HTTP call failed (non-200 status or no response at all).

    Context keys: ``url``, ``status_code``, ``body``.
    """

    def __init__(
        self,
        message: str,
        context: dict[str, Any] | None = None,
        cause: Exception | None = None,
        code: str = ErrorCode.TRANSPORT_ERROR,
    ) -> None:
        super().__init__(code=code, message=message, context=context, cause=cause)


class NotebridgeNetworkError(NotebridgeTransportError):
    """A transport-level failure occurred (timeout, DNS, connection reset).

    Context keys: ``url``.
    """

    def __init__(
        self,
        message: str,
        context: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(
            message=message,
            context=context,
            cause=cause,
            code=ErrorCode.NETWORK_ERROR,
        )


class NotebridgeUploadError(NotebridgeTransportError):
    """The upload endpoint answered with a status other than 200.

    Context keys: ``url``, ``status_code``, ``body``, ``images``.
    """

    def __init__(
        self,
        message: str,
        context: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(
            message=message,
            context=context,
            cause=cause,
            code=ErrorCode.UPLOAD_ERROR,
        )


class NotebridgeRevalidationError(NotebridgeError):
    """The revalidation endpoint rejected the notification.

    Raised after the store mutation has already happened; it never undoes it.

    Context keys: ``url``, ``status_code``, ``slug``.
    """

    def __init__(
        self,
        message: str,
        context: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(
            code=ErrorCode.REVALIDATION_ERROR,
            message=message,
            context=context,
            cause=cause,
        )


# ---------------------------------------------------------------------------
# Store / document errors
# ---------------------------------------------------------------------------

class NotebridgeStoreError(NotebridgeError):
    """The post store failed (constraint violation, connection failure).

    Context keys: ``slug``, ``operation``.
    """

    def __init__(
        self,
        message: str,
        context: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(
            code=ErrorCode.STORE_ERROR,
            message=message,
            context=context,
            cause=cause,
        )


class NotebridgeFrontmatterError(NotebridgeError):
    """The note's frontmatter block is not a valid YAML mapping.

    Context keys: ``document``, ``reason``.
    """

    def __init__(
        self,
        message: str,
        context: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(
            code=ErrorCode.FRONTMATTER_ERROR,
            message=message,
            context=context,
            cause=cause,
        )

