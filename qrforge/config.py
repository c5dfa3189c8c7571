"""Generation settings, partial overrides and their validation."""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass, field
from datetime import timedelta
from enum import IntEnum


class ECLevel(IntEnum):
    """QR error correction levels, from lowest to highest redundancy."""

    L = 0
    M = 1
    Q = 2
    H = 3

    def __str__(self) -> str:
        return self.name


class ConfigError(ValueError):
    """A configuration or configuration patch holds an invalid value."""


@dataclass
class Config:
    """All settings that control QR code generation."""

    default_version: int = 0
    default_ec_level: str = "M"
    min_version: int = 1
    max_version: int = 40
    auto_size: bool = True
    worker_count: int = 4
    queue_size: int = 1024
    default_format: str = "png"
    default_size: int = 300
    quiet_zone: int = 4
    foreground_color: str = "#000000"
    background_color: str = "#FFFFFF"
    mask_pattern: int = -1
    logo_source: str = ""
    logo_size_ratio: float = 0.25
    logo_overlay: bool = False
    logo_tint: str = ""
    prefix: str = ""
    slow_operation: timedelta = field(default_factory=lambda: timedelta(milliseconds=100))

    def clone(self) -> Config:
        """Return an independent copy of this configuration."""
        return dataclasses.replace(self)

    def validate(self) -> None:
        """Raise ConfigError describing the first invalid value found."""
        if self.min_version > self.max_version:
            raise ConfigError(
                f"config: min_version ({self.min_version}) must be <= "
                f"max_version ({self.max_version})"
            )
        if self.default_version != 0 and not (
            self.min_version <= self.default_version <= self.max_version
        ):
            raise ConfigError(
                f"config: default_version ({self.default_version}) must be between "
                f"{self.min_version} and {self.max_version}"
            )
        if not 1 <= self.worker_count <= 64:
            raise ConfigError(
                f"config: worker_count must be between 1 and 64, got {self.worker_count}"
            )
        if self.queue_size < 1:
            raise ConfigError(f"config: queue_size must be >= 1, got {self.queue_size}")
        if not 100 <= self.default_size <= 4000:
            raise ConfigError(
                "config: default_size must be between 100 and 4000, "
                f"got {self.default_size}"
            )
        if not 0 <= self.quiet_zone <= 20:
            raise ConfigError(
                f"config: quiet_zone must be between 0 and 20, got {self.quiet_zone}"
            )
        if self.logo_overlay and self.logo_source == "":
            raise ConfigError(
                "config: logo_source must be specified when logo_overlay is enabled"
            )
        if self.logo_size_ratio > 0 and not 0.05 <= self.logo_size_ratio <= 0.9:
            raise ConfigError(
                "config: logo_size_ratio must be between 0.05 and 0.9, "
                f"got {self.logo_size_ratio:.2f}"
            )
        if not -1 <= self.mask_pattern <= 7:
            raise ConfigError(
                f"config: mask_pattern must be between -1 and 7, got {self.mask_pattern}"
            )


@dataclass
class ConfigPatch:
    """Explicit overrides for a Config; a field left as None means no change."""

    default_version: int | None = None
    default_ec_level: str | None = None
    min_version: int | None = None
    max_version: int | None = None
    auto_size: bool | None = None
    worker_count: int | None = None
    queue_size: int | None = None
    default_format: str | None = None
    default_size: int | None = None
    quiet_zone: int | None = None
    foreground_color: str | None = None
    background_color: str | None = None
    mask_pattern: int | None = None
    logo_source: str | None = None
    logo_size_ratio: float | None = None
    logo_overlay: bool | None = None
    logo_tint: str | None = None
    prefix: str | None = None
    slow_operation: timedelta | None = None

    def changes(self) -> dict[str, object]:
        """The fields this patch sets, by name."""
        return {
            f.name: getattr(self, f.name)
            for f in dataclasses.fields(self)
            if getattr(self, f.name) is not None
        }


def default_config() -> Config:
    """A Config holding the library defaults."""
    return Config()


def apply_patch(base: Config, patch: ConfigPatch) -> Config:
    """Return a new Config: base with every set field of patch applied."""
    return dataclasses.replace(base, **patch.changes())


def config_to_patch(config: Config) -> ConfigPatch:
    """A ConfigPatch that sets every field to the value it has in config."""
    return ConfigPatch(
        **{f.name: getattr(config, f.name) for f in dataclasses.fields(config)}
    )


def validate_patch(patch: ConfigPatch) -> None:
    """Raise ConfigError if any field the patch sets holds an invalid value."""
    if patch.min_version is not None and patch.max_version is not None:
        if patch.min_version > patch.max_version:
            raise ConfigError(
                f"config patch: min_version ({patch.min_version}) must be <= "
                f"max_version ({patch.max_version})"
            )
    if patch.worker_count is not None and not 1 <= patch.worker_count <= 64:
        raise ConfigError(
            "config patch: worker_count must be between 1 and 64, "
            f"got {patch.worker_count}"
        )
    if patch.queue_size is not None and patch.queue_size < 1:
        raise ConfigError(
            f"config patch: queue_size must be >= 1, got {patch.queue_size}"
        )
    if patch.default_size is not None and not 100 <= patch.default_size <= 4000:
        raise ConfigError(
            "config patch: default_size must be between 100 and 4000, "
            f"got {patch.default_size}"
        )
    if patch.quiet_zone is not None and not 0 <= patch.quiet_zone <= 20:
        raise ConfigError(
            f"config patch: quiet_zone must be between 0 and 20, got {patch.quiet_zone}"
        )
    if patch.logo_overlay and patch.logo_source is not None and patch.logo_source == "":
        raise ConfigError(
            "config patch: logo_source must be specified when logo_overlay is enabled"
        )
    ratio = patch.logo_size_ratio
    if ratio is not None and ratio > 0 and not 0.05 <= ratio <= 0.4:
        raise ConfigError(
            f"config patch: logo_size_ratio must be between 0.05 and 0.4, got {ratio:.2f}"
        )
    if patch.mask_pattern is not None and not -1 <= patch.mask_pattern <= 7:
        raise ConfigError(
            "config patch: mask_pattern must be between -1 and 7, "
            f"got {patch.mask_pattern}"
        )


def parse_ec_level(level: str | ECLevel) -> ECLevel | None:
    """The ECLevel named by level ("L", "M", "Q" or "H"), or None if unknown."""
    if isinstance(level, ECLevel):
        return level
    try:
        return ECLevel[level]
    except KeyError:
        return None