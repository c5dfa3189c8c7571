"""The QR code client: payload encoding, rendering, saving and batches."""

from __future__ import annotations

import contextvars
import os
import threading
from abc import ABC, abstractmethod
from concurrent.futures import ThreadPoolExecutor
from contextlib import contextmanager
from dataclasses import dataclass
from enum import IntEnum
from pathlib import Path
from typing import Any, BinaryIO, Callable, Iterator, Mapping, Sequence

from qrforge.config import (
    Config,
    ConfigError,
    ConfigPatch,
    ECLevel,
    apply_patch,
    default_config,
    parse_ec_level,
)
from qrforge.errors import BatchError, ErrorCode, QRCodeError, wrap

Encoder = Callable[[bytes, ECLevel, int], Any]
Renderer = Callable[..., bytes]


class OutputFormat(IntEnum):
    """Output formats a QR code can be rendered to."""

    PNG = 0
    SVG = 1
    TERMINAL = 2
    PDF = 3
    BASE64 = 4

    def extension(self) -> str:
        """The file extension, with its leading dot, for this format."""
        return _EXTENSIONS[self]

    @classmethod
    def from_path(cls, path: str | os.PathLike[str]) -> OutputFormat:
        """The format named by the extension of path; PNG when unrecognised."""
        suffix = Path(path).suffix.lower()
        return _FORMATS_BY_EXTENSION.get(suffix, cls.PNG)


_EXTENSIONS = {
    OutputFormat.PNG: ".png",
    OutputFormat.SVG: ".svg",
    OutputFormat.TERMINAL: ".txt",
    OutputFormat.PDF: ".pdf",
    OutputFormat.BASE64: ".b64",
}
_FORMATS_BY_EXTENSION = {ext: fmt for fmt, ext in _EXTENSIONS.items()}


class Payload(ABC):
    """Data that can be validated and encoded into the text of a QR code."""

    @abstractmethod
    def validate(self) -> None:
        """Raise ValueError if the payload cannot be encoded."""

    @abstractmethod
    def encode(self) -> str:
        """The text to store in the QR code."""


@dataclass
class TextPayload(Payload):
    """Plain text."""

    text: str = ""

    def validate(self) -> None:
        if not self.text:
            raise ValueError("text payload: text must not be empty")

    def encode(self) -> str:
        return self.text


class Storage(ABC):
    """Somewhere rendered output can be written."""

    @abstractmethod
    def save(self, path: str | os.PathLike[str], data: bytes, mode: int = 0o644) -> None:
        """Write data to path."""


class FileSystemStorage(Storage):
    """Writes files to the local file system, creating parent directories."""

    def save(self, path: str | os.PathLike[str], data: bytes, mode: int = 0o644) -> None:
        target = Path(path)
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_bytes(data)
            os.chmod(target, mode)
        except OSError as exc:
            raise wrap(ErrorCode.STORAGE, f"failed to write {target}", exc) from exc


class _Call:
    def __init__(self) -> None:
        self.done = threading.Event()
        self.value: Any = None
        self.error: BaseException | None = None


class _SingleFlight:
    """Runs one call per key at a time; concurrent callers share its outcome."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._calls: dict[str, _Call] = {}

    def do(self, key: str, fn: Callable[[], Any]) -> Any:
        with self._lock:
            call = self._calls.get(key)
            leader = call is None
            if leader:
                call = _Call()
                self._calls[key] = call
        if leader:
            try:
                call.value = fn()
            except Exception as exc:
                call.error = exc
            finally:
                with self._lock:
                    del self._calls[key]
                call.done.set()
        else:
            call.done.wait()
        if call.error is not None:
            raise call.error
        return call.value


class Generator:
    """Generates and renders QR codes; safe for use from several threads.

    The encoder turns bytes, an error correction level and a version (0 for
    automatic) into a QR code; renderers map each output format to a callable
    that turns a QR code into bytes.
    """

    def __init__(
        self,
        config: Config,
        encoder: Encoder | None = None,
        renderers: Mapping[OutputFormat, Renderer] | None = None,
        storage: Storage | None = None,
    ) -> None:
        self._lock = threading.RLock()
        self._config = config
        self._encoder = encoder
        self._renderers = dict(renderers or {})
        self._storage = storage if storage is not None else FileSystemStorage()
        self._closed = False
        self._flight = _SingleFlight()

    def _snapshot(self) -> Config:
        with self._lock:
            return self._config.clone()

    def generate(self, payload: Payload) -> Any:
        """Encode payload into a QR code without rendering it."""
        return self._generate(payload, self._snapshot())

    def _generate(self, payload: Payload, config: Config) -> Any:
        if self._closed:
            raise QRCodeError(ErrorCode.CLOSED, "client is closed")
        try:
            payload.validate()
        except Exception as exc:
            raise wrap(ErrorCode.PAYLOAD, "payload validation failed", exc) from exc
        try:
            data = payload.encode()
        except Exception as exc:
            raise wrap(ErrorCode.PAYLOAD, "payload encode failed", exc) from exc
        ec_level = parse_ec_level(config.default_ec_level)
        if ec_level is None:
            ec_level = ECLevel.M
        version = config.default_version

        def encode() -> Any:
            if self._encoder is None:
                raise LookupError("no encoder configured")
            return self._encoder(data.encode("utf-8"), ec_level, version)

        try:
            return self._flight.do(data, encode)
        except Exception as exc:
            raise wrap(ErrorCode.ENCODING, "QR encoding failed", exc) from exc

    def generate_with_options(self, payload: Payload, patch: ConfigPatch | None = None) -> Any:
        """Encode payload with per-call overrides; the client's settings are kept."""
        config = self._snapshot()
        if patch is not None:
            config = apply_patch(config, patch)
        try:
            config.validate()
        except ConfigError as exc:
            raise wrap(ErrorCode.VALIDATION, "invalid per-call options", exc) from exc
        return self._generate(payload, config)

    def generate_to_writer(
        self, payload: Payload, writer: BinaryIO, output_format: OutputFormat
    ) -> None:
        """Render payload and write the output to writer."""
        writer.write(self.render(payload, output_format))

    def render(self, payload: Payload, output_format: OutputFormat) -> bytes:
        """Encode payload and return it rendered in output_format."""
        qr = self.generate(payload)
        with self._lock:
            options = {
                "width": self._config.default_size,
                "height": self._config.default_size,
                "quiet_zone": self._config.quiet_zone,
                "foreground_color": self._config.foreground_color,
                "background_color": self._config.background_color,
            }
        renderer = self._renderers.get(output_format)
        if renderer is None:
            raise wrap(
                ErrorCode.RENDERING,
                "renderer lookup failed",
                LookupError(f"no renderer for format {output_format!r}"),
            )
        return renderer(qr, **options)

    def save(self, payload: Payload, path: str | os.PathLike[str]) -> None:
        """Render payload in the format named by path's extension and store it."""
        data = self.render(payload, OutputFormat.from_path(path))
        self._storage.save(path, data, 0o644)

    def batch(self, payloads: Sequence[Payload], patch: ConfigPatch | None = None) -> list[Any]:
        """Encode payloads concurrently, returning QR codes in input order.

        When any item fails a BATCH QRCodeError is raised; its cause is a
        BatchError and its ``results`` attribute holds the codes, None where
        an item failed.
        """
        if not payloads:
            return []
        with self._lock:
            workers = self._config.worker_count

        def run(item: Payload) -> tuple[Any, BaseException | None]:
            try:
                return self.generate_with_options(item, patch), None
            except Exception as exc:
                return None, exc

        with ThreadPoolExecutor(max_workers=workers) as pool:
            outcomes = list(pool.map(run, payloads))

        results = [qr for qr, _ in outcomes]
        batch_error = BatchError(len(outcomes))
        for index, (_, error) in enumerate(outcomes):
            if error is not None:
                batch_error.set(index, error)
        if len(batch_error) == 0:
            return results
        failure = wrap(ErrorCode.BATCH, "batch generation completed with errors", batch_error)
        failure.results = results
        raise failure

    def close(self) -> None:
        """Release the client; later calls raise CLOSED errors."""
        with self._lock:
            self._closed = True

    def set_options(self, patch: ConfigPatch) -> None:
        """Validate and apply patch to the client's settings."""
        with self._lock:
            if self._closed:
                raise QRCodeError(ErrorCode.CLOSED, "cannot set options on closed client")
            updated = apply_patch(self._config, patch)
            try:
                updated.validate()
            except ConfigError as exc:
                raise wrap(
                    ErrorCode.VALIDATION, "invalid options for SetOptions", exc
                ) from exc
            self._config = updated

    def closed(self) -> bool:
        """Whether the client has been closed."""
        return self._closed

    def __enter__(self) -> Generator:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()


def new_client(
    patch: ConfigPatch | None = None,
    *,
    encoder: Encoder | None = None,
    renderers: Mapping[OutputFormat, Renderer] | None = None,
    storage: Storage | None = None,
) -> Generator:
    """Create a client from the defaults with patch applied, validated first."""
    config = default_config()
    if patch is not None:
        config = apply_patch(config, patch)
    try:
        config.validate()
    except ConfigError as exc:
        raise wrap(ErrorCode.VALIDATION, "invalid configuration", exc) from exc
    return Generator(config, encoder, renderers, storage)


_current: contextvars.ContextVar[Generator | None] = contextvars.ContextVar(
    "qrforge_client", default=None
)


@contextmanager
def use_client(client: Generator) -> Iterator[Generator]:
    """Make client the current one for the duration of the block."""
    token = _current.set(client)
    try:
        yield client
    finally:
        _current.reset(token)


def current_client() -> Generator | None:
    """The client made current by use_client, or None."""
    return _current.get()