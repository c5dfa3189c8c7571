"""A fluent builder for clients, and one-call helpers for quick output."""

from __future__ import annotations

import os
from typing import Mapping

from qrforge.client import (
    Encoder,
    Generator,
    OutputFormat,
    Renderer,
    TextPayload,
    new_client,
)
from qrforge.config import ConfigPatch, ECLevel

DEFAULT_QUICK_SIZE = 256


def quick_size(size: int | None = None) -> int:
    """The requested size when it is positive, otherwise 256."""
    if size is not None and size > 0:
        return size
    return DEFAULT_QUICK_SIZE


def _merge(patches: list[ConfigPatch]) -> ConfigPatch:
    changes: dict[str, object] = {}
    for patch in patches:
        changes.update(patch.changes())
    return ConfigPatch(**changes)


class Builder:
    """Accumulates settings fluently and builds a client from them."""

    def __init__(
        self,
        encoder: Encoder | None = None,
        renderers: Mapping[OutputFormat, Renderer] | None = None,
    ) -> None:
        self._encoder = encoder
        self._renderers = dict(renderers or {})
        self._patches: list[ConfigPatch] = []

    def _add(self, **changes: object) -> Builder:
        self._patches.append(ConfigPatch(**changes))
        return self

    @property
    def patch(self) -> ConfigPatch:
        """All accumulated settings as one patch; later settings win."""
        return _merge(self._patches)

    def size(self, size: int) -> Builder:
        """Set the output image size in pixels."""
        return self._add(default_size=size)

    def margin(self, margin: int) -> Builder:
        """Set the quiet zone around the code."""
        return self._add(quiet_zone=margin)

    def error_correction(self, level: ECLevel | str) -> Builder:
        """Set the error correction level."""
        return self._add(default_ec_level=str(level))

    def version(self, version: int) -> Builder:
        """Set the QR version (1-40), or 0 for automatic."""
        return self._add(default_version=version)

    def min_version(self, version: int) -> Builder:
        """Set the minimum QR version."""
        return self._add(min_version=version)

    def max_version(self, version: int) -> Builder:
        """Set the maximum QR version."""
        return self._add(max_version=version)

    def mask_pattern(self, pattern: int) -> Builder:
        """Set the mask pattern (-1 for automatic, 0-7)."""
        return self._add(mask_pattern=pattern)

    def output_format(self, output_format: OutputFormat | str) -> Builder:
        """Set the default output format."""
        if isinstance(output_format, OutputFormat):
            name = output_format.name.lower()
        else:
            name = str(output_format)
        return self._add(default_format=name)

    def foreground_color(self, color: str) -> Builder:
        """Set the foreground colour, e.g. "#000000"."""
        return self._add(foreground_color=color)

    def background_color(self, color: str) -> Builder:
        """Set the background colour, e.g. "#FFFFFF"."""
        return self._add(background_color=color)

    def logo(self, source: str, size_ratio: float) -> Builder:
        """Set a logo image and its size relative to the code."""
        return self._add(logo_source=source, logo_size_ratio=size_ratio)

    def logo_overlay(self, enabled: bool) -> Builder:
        """Enable or disable the logo overlay."""
        return self._add(logo_overlay=enabled)

    def logo_tint(self, color: str) -> Builder:
        """Set the tint colour applied to the logo."""
        return self._add(logo_tint=color)

    def worker_count(self, count: int) -> Builder:
        """Set the number of concurrent workers for batches."""
        return self._add(worker_count=count)

    def queue_size(self, size: int) -> Builder:
        """Set the internal queue size."""
        return self._add(queue_size=size)

    def prefix(self, prefix: str) -> Builder:
        """Set the file name prefix for batch output."""
        return self._add(prefix=prefix)

    def auto_size(self, enabled: bool) -> Builder:
        """Enable or disable automatic version selection."""
        return self._add(auto_size=enabled)

    def options(self, *args: ConfigPatch) -> Builder:
        """Append raw configuration patches."""
        self._patches.extend(args)
        return self

    def build(self) -> Generator:
        """Create a client from the accumulated settings."""
        return new_client(self.patch, encoder=self._encoder, renderers=self._renderers)

    def clone(self) -> Builder:
        """An independent builder with the same settings."""
        copy = Builder(self._encoder, self._renderers)
        copy._patches = list(self._patches)
        return copy

    def _render(self, data: str, output_format: OutputFormat, size: int | None) -> bytes:
        with self.clone().size(quick_size(size)).build() as client:
            return client.render(TextPayload(data), output_format)

    def quick(self, data: str, size: int | None = None) -> bytes:
        """Render text as PNG bytes using this builder's settings."""
        return self._render(data, OutputFormat.PNG, size)

    def quick_svg(self, data: str, size: int | None = None) -> str:
        """Render text as an SVG string using this builder's settings."""
        return self._render(data, OutputFormat.SVG, size).decode("utf-8")

    def quick_file(
        self, data: str, path: str | os.PathLike[str], size: int | None = None
    ) -> None:
        """Render text and save it; the format follows the file extension."""
        with self.clone().size(quick_size(size)).build() as client:
            client.save(TextPayload(data), path)


def _quick_client(
    size: int | None,
    encoder: Encoder | None,
    renderers: Mapping[OutputFormat, Renderer] | None,
) -> Generator:
    return new_client(
        ConfigPatch(default_size=quick_size(size)), encoder=encoder, renderers=renderers
    )


def quick(
    data: str,
    size: int | None = None,
    *,
    encoder: Encoder | None = None,
    renderers: Mapping[OutputFormat, Renderer] | None = None,
) -> bytes:
    """Render text as PNG bytes with a temporary default client."""
    with _quick_client(size, encoder, renderers) as client:
        return client.render(TextPayload(data), OutputFormat.PNG)


def quick_svg(
    data: str,
    size: int | None = None,
    *,
    encoder: Encoder | None = None,
    renderers: Mapping[OutputFormat, Renderer] | None = None,
) -> str:
    """Render text as an SVG string with a temporary default client."""
    with _quick_client(size, encoder, renderers) as client:
        return client.render(TextPayload(data), OutputFormat.SVG).decode("utf-8")


def quick_file(
    data: str,
    path: str | os.PathLike[str],
    size: int | None = None,
    *,
    encoder: Encoder | None = None,
    renderers: Mapping[OutputFormat, Renderer] | None = None,
) -> None:
    """Render text and save it to path; the format follows the extension."""
    with _quick_client(size, encoder, renderers) as client:
        client.save(TextPayload(data), path)