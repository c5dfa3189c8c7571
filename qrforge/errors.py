"""Structured error types used throughout the QR code library."""

from __future__ import annotations

import threading
from enum import Enum
from typing import Any, Callable, TypeVar

T = TypeVar("T")


class ErrorCode(str, Enum):
    """Machine-readable error categories."""

    UNKNOWN = "UNKNOWN"
    VALIDATION = "VALIDATION"
    ENCODING = "ENCODING"
    RENDERING = "RENDERING"
    TIMEOUT = "TIMEOUT"
    CLOSED = "CLOSED"
    PAYLOAD = "PAYLOAD"
    BATCH = "BATCH"
    DATA_TOO_LONG = "DATA_TOO_LONG"
    FILE_WRITE = "FILE_WRITE"
    STORAGE = "STORAGE"
    CONFIG = "CONFIG"
    INTERNAL = "INTERNAL"

    def __str__(self) -> str:
        return self.value


_RETRYABLE_CODES = frozenset({ErrorCode.TIMEOUT, ErrorCode.INTERNAL, ErrorCode.STORAGE})

_HTTP_STATUS = {
    ErrorCode.UNKNOWN: 500,
    ErrorCode.VALIDATION: 400,
    ErrorCode.ENCODING: 422,
    ErrorCode.RENDERING: 422,
    ErrorCode.TIMEOUT: 504,
    ErrorCode.CLOSED: 503,
    ErrorCode.PAYLOAD: 400,
    ErrorCode.BATCH: 207,
    ErrorCode.DATA_TOO_LONG: 413,
    ErrorCode.FILE_WRITE: 500,
    ErrorCode.STORAGE: 503,
    ErrorCode.CONFIG: 400,
    ErrorCode.INTERNAL: 500,
}

_DEFAULT_HTTP_STATUS = 500


def _normalise_code(code: ErrorCode | str) -> ErrorCode | str:
    if isinstance(code, ErrorCode):
        return code
    try:
        return ErrorCode(code)
    except ValueError:
        return code


class QRCodeError(Exception):
    """The library's domain error: a code, a message and an optional cause."""

    def __init__(
        self,
        code: ErrorCode | str,
        message: str,
        cause: BaseException | None = None,
    ) -> None:
        super().__init__(message)
        self.code = _normalise_code(code)
        self.message = message
        self.cause = cause
        self.__cause__ = cause
        self.meta: dict[str, Any] | None = None
        self._retryable: bool | None = None

    def __str__(self) -> str:
        text = f"[{self.code}] {self.message}"
        if self.cause is not None:
            text += f": {self.cause}"
        return text

    def retryable(self) -> bool:
        """Whether the failed operation may reasonably be retried."""
        if self._retryable is not None:
            return self._retryable
        return self.code in _RETRYABLE_CODES

    def metadata(self) -> dict[str, Any] | None:
        """A copy of the attached metadata, or None when there is none."""
        if self.meta is None:
            return None
        return dict(self.meta)

    def _copy(self) -> QRCodeError:
        clone = QRCodeError(self.code, self.message, self.cause)
        clone.meta = None if self.meta is None else dict(self.meta)
        clone._retryable = self._retryable
        return clone

    def with_meta(self, key: str, value: Any) -> QRCodeError:
        """Return a copy of this error with one more metadata entry."""
        clone = self._copy()
        clone.meta = {**(self.meta or {}), key: value}
        return clone

    def with_retryable(self, retryable: bool) -> QRCodeError:
        """Return a copy of this error with its retryability overridden."""
        clone = self._copy()
        clone._retryable = bool(retryable)
        return clone

    def http_status(self) -> int:
        """The HTTP status code recommended for this error."""
        return _HTTP_STATUS.get(self.code, _DEFAULT_HTTP_STATUS)


class _CombinedError(Exception):
    """Several errors reported through the first of them."""

    def __init__(self, first: BaseException, others: int) -> None:
        super().__init__(f"{first} (and {others} more errors)")
        self.first = first
        self.others = others
        self.__cause__ = first


class BatchError(Exception):
    """Errors of a batch operation, keyed by item index."""

    def __init__(self, total: int) -> None:
        total = max(int(total), 0)
        super().__init__(total)
        self.total = total
        self.errors: dict[int, BaseException] = {}
        self._lock = threading.RLock()

    def __str__(self) -> str:
        with self._lock:
            return (
                f"batch operation failed: {len(self.errors)} of "
                f"{self.total} items had errors"
            )

    def __bool__(self) -> bool:
        return True

    def set(self, index: int, error: BaseException) -> None:
        """Record the error for the item at index."""
        with self._lock:
            self.errors[index] = error

    def get(self, index: int) -> BaseException | None:
        """The error for the item at index, or None."""
        with self._lock:
            return self.errors.get(index)

    def __len__(self) -> int:
        with self._lock:
            return len(self.errors)


CLOSED_ERROR = QRCodeError(ErrorCode.CLOSED, "client is closed")
DATA_TOO_LONG_ERROR = QRCodeError(ErrorCode.DATA_TOO_LONG, "data too long for QR code")
INVALID_CONFIG_ERROR = QRCodeError(ErrorCode.CONFIG, "invalid configuration")
NIL_PAYLOAD_ERROR = QRCodeError(ErrorCode.PAYLOAD, "payload is nil")


def wrap(code: ErrorCode | str, message: str, cause: BaseException | None) -> QRCodeError:
    """Create a QRCodeError that wraps cause."""
    return QRCodeError(code, message, cause)


def wrapf(code: ErrorCode | str, template: str, *args: Any) -> QRCodeError:
    """Create a QRCodeError whose message is template formatted with args."""
    message = template % args if args else template
    return QRCodeError(code, message)


def find_qrcode_error(error: BaseException | None) -> QRCodeError | None:
    """The first QRCodeError in error's cause chain, or None."""
    seen: set[int] = set()
    current = error
    while current is not None and id(current) not in seen:
        if isinstance(current, QRCodeError):
            return current
        seen.add(id(current))
        current = current.__cause__
    return None


def is_code(error: BaseException | None, code: ErrorCode | str) -> bool:
    """Whether the first QRCodeError in the chain carries code."""
    found = find_qrcode_error(error)
    return found is not None and found.code == _normalise_code(code)


def is_retryable(error: BaseException | None) -> bool:
    """Whether the first QRCodeError in the chain is retryable."""
    found = find_qrcode_error(error)
    return found is not None and found.retryable()


def http_status(error: BaseException | None) -> int:
    """The recommended HTTP status for error; 500 when it is not a QRCodeError."""
    found = find_qrcode_error(error)
    if found is None:
        return _DEFAULT_HTTP_STATUS
    return found.http_status()


def join_errors(*args: BaseException | None) -> BaseException | None:
    """Combine errors, ignoring None; a single error is returned unchanged."""
    present = [error for error in args if error is not None]
    if not present:
        return None
    if len(present) == 1:
        return present[0]
    return _CombinedError(present[0], len(present) - 1)


def safe_execute(fn: Callable[[], T]) -> T:
    """Call fn, turning any exception it raises into an INTERNAL QRCodeError."""
    try:
        return fn()
    except Exception as exc:
        raise wrap(ErrorCode.INTERNAL, "panic in safe_execute", exc) from exc