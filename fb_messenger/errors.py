"""Error types for webhook ingestion and Graph API calls.

Two families live here:

- ``MessengerError``: local failures of this library (classification,
  hook registration, pagination invariants).
- ``FacebookError``: the platform answered with an ``{"error": {...}}``
  body. ``raise_for_vendor_error`` converts that shape into a typed
  exception chosen from the vendor error code.
"""

from __future__ import annotations

from typing import Any, Mapping


class MessengerError(Exception):
    """Base exception for local webhook and pagination errors."""

    pass


class UnrecognizedEventError(MessengerError):
    """Raised when a messaging entry matches no known event discriminator."""

    def __init__(self, message: str, entry: Any = None):
        super().__init__(message)
        self.entry = entry


class EnvelopeEntryError(UnrecognizedEventError):
    """Raised by ``HookRegistry.receive`` when an envelope entry fails to classify.

    Attributes:
        index: Position of the failing entry within the envelope
    """

    def __init__(self, message: str, entry: Any = None, index: int = 0):
        super().__init__(message, entry=entry)
        self.index = index


class InvalidEventKind(MessengerError, ValueError):
    """Raised when registering a hook for a kind outside EventKind."""

    pass


class MalformedPageError(MessengerError):
    """Raised when a list page lacks ``data`` or carries an unusable cursor."""

    pass


class PaginationLoopError(MessengerError):
    """Raised when a cursor repeats or the page ceiling is exceeded."""

    pass


class FacebookError(Exception):
    """The Graph API returned an ``error`` object.

    Attributes:
        message: Human readable vendor message
        type: Vendor error type (e.g. ``OAuthException``)
        code: Vendor error code
        subcode: Optional ``error_subcode``
        fbtrace_id: Trace id for vendor support requests
        error: The raw error mapping
    """

    def __init__(self, error: Mapping[str, Any]):
        self.error = dict(error)
        self.message: str = str(error.get("message", "Unknown Facebook error"))
        self.type: str | None = error.get("type")
        self.code: int | None = _as_int(error.get("code"))
        self.subcode: int | None = _as_int(error.get("error_subcode"))
        self.fbtrace_id: str | None = error.get("fbtrace_id")
        super().__init__(self.message)

    def __str__(self) -> str:
        parts = [self.message]
        if self.type:
            parts.append(f"type={self.type}")
        if self.code is not None:
            parts.append(f"code={self.code}")
        if self.subcode is not None:
            parts.append(f"subcode={self.subcode}")
        return " ".join(parts)


class VendorError(FacebookError):
    """Generic vendor error; base for the code-specific classes below."""

    pass


class AccessTokenError(VendorError):
    """Access token is invalid, expired or revoked (code 190)."""

    pass


class PermissionDeniedError(VendorError):
    """The token lacks a permission (code 10 or 200-299)."""

    pass


class RateLimitError(VendorError):
    """Call volume limit reached."""

    pass


class BadParameterError(VendorError):
    """Invalid request parameter (code 100)."""

    pass


class InternalError(VendorError):
    """Transient platform-side failure."""

    pass


_ERROR_CLASSES_BY_CODE: dict[int, type[VendorError]] = {
    1: InternalError,
    2: InternalError,
    1200: InternalError,
    4: RateLimitError,
    17: RateLimitError,
    32: RateLimitError,
    613: RateLimitError,
    10: PermissionDeniedError,
    100: BadParameterError,
    190: AccessTokenError,
}


def _as_int(value: Any) -> int | None:
    try:
        return int(value) if value is not None else None
    except (TypeError, ValueError):
        return None


def error_class_for(code: int | None) -> type[VendorError]:
    """Map a vendor error code to its exception class."""
    if code is None:
        return VendorError
    if 200 <= code <= 299:
        return PermissionDeniedError
    return _ERROR_CLASSES_BY_CODE.get(code, VendorError)


def raise_for_vendor_error(body: Any) -> None:
    """Raise the typed vendor error if ``body`` carries an ``error`` object.

    Bodies that are not mappings, or mappings without ``error``, pass through.
    A non-mapping ``error`` value is wrapped so its text is not lost.
    """
    if not isinstance(body, Mapping) or "error" not in body:
        return
    error = body["error"]
    if not isinstance(error, Mapping):
        error = {"message": str(error)}
    raise error_class_for(_as_int(error.get("code")))(error)
