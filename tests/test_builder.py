import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass

import pytest

from qrforge.builder import Builder, quick, quick_file, quick_size, quick_svg
from qrforge.client import OutputFormat, TextPayload
from qrforge.config import ConfigPatch, ECLevel
from qrforge.errors import ErrorCode, QRCodeError


@dataclass(frozen=True)
class FakeQR:
    data: bytes
    level: ECLevel
    version: int


class Recorder:
    def __init__(self):
        self.encoded = []
        self.rendered = []
        self._lock = threading.Lock()

    def encoder(self, data, level, version):
        with self._lock:
            self.encoded.append((data, level, version))
        return FakeQR(data, level, version)

    def _png(self, qr, **options):
        with self._lock:
            self.rendered.append(("png", options))
        return b"PNG:" + qr.data

    def _svg(self, qr, **options):
        with self._lock:
            self.rendered.append(("svg", options))
        return b"<svg>" + qr.data + b"</svg>"

    def _txt(self, qr, **options):
        with self._lock:
            self.rendered.append(("txt", options))
        return b"TXT:" + qr.data

    @property
    def renderers(self):
        return {
            OutputFormat.PNG: self._png,
            OutputFormat.SVG: self._svg,
            OutputFormat.TERMINAL: self._txt,
        }


@pytest.fixture
def rec():
    return Recorder()


@pytest.fixture
def builder(rec):
    return Builder(rec.encoder, rec.renderers)


@pytest.mark.parametrize(
    "size, expected", [(None, 256), (0, 256), (-5, 256), (512, 512), (128, 128)]
)
def test_quick_size(size, expected):
    assert quick_size(size) == expected


def test_all_fluent_methods_build(builder):
    b = (
        builder.version(5)
        .min_version(2)
        .max_version(10)
        .mask_pattern(3)
        .output_format(OutputFormat.SVG)
        .logo("logo.png", 0.2)
        .logo_overlay(True)
        .logo_tint("#FF0000")
        .queue_size(512)
        .prefix("qr_")
        .auto_size(False)
        .options(ConfigPatch(quiet_zone=6))
    )
    assert b is builder
    client = b.build()
    try:
        assert client.closed() is False
    finally:
        client.close()
    assert client.closed() is True
    patch = b.patch
    assert patch.default_version == 5
    assert patch.quiet_zone == 6
    assert patch.default_format == "svg"


@pytest.mark.parametrize(
    "method, args, field, expected",
    [
        ("size", (400,), "default_size", 400),
        ("margin", (6,), "quiet_zone", 6),
        ("error_correction", (ECLevel.Q,), "default_ec_level", "Q"),
        ("version", (10,), "default_version", 10),
        ("min_version", (3,), "min_version", 3),
        ("max_version", (20,), "max_version", 20),
        ("mask_pattern", (5,), "mask_pattern", 5),
        ("output_format", (OutputFormat.PDF,), "default_format", "pdf"),
        ("foreground_color", ("#1a1a2e",), "foreground_color", "#1a1a2e"),
        ("background_color", ("#e0e0e0",), "background_color", "#e0e0e0"),
        ("logo_overlay", (True,), "logo_overlay", True),
        ("logo_tint", ("#00FF00",), "logo_tint", "#00FF00"),
        ("worker_count", (8,), "worker_count", 8),
        ("queue_size", (2048,), "queue_size", 2048),
        ("prefix", ("test_",), "prefix", "test_"),
        ("auto_size", (False,), "auto_size", False),
    ],
)
def test_each_fluent_method_sets_field(builder, method, args, field, expected):
    result = getattr(builder, method)(*args)
    assert result is builder
    assert getattr(builder.patch, field) == expected


def test_logo_sets_source_and_ratio(builder):
    patch = builder.logo("test.png", 0.15).patch
    assert patch.logo_source == "test.png"
    assert patch.logo_size_ratio == 0.15


def test_options_adds_patches_and_later_wins(builder):
    builder.options(ConfigPatch(quiet_zone=10), ConfigPatch(default_size=400))
    assert builder.patch.quiet_zone == 10
    assert builder.patch.default_size == 400
    builder.options(ConfigPatch(quiet_zone=2))
    assert builder.patch.quiet_zone == 2
    assert builder.patch.default_size == 400


def test_empty_builder_patch_sets_nothing(builder):
    assert builder.patch.changes() == {}


def test_settings_reach_renderer(builder, rec):
    client = (
        builder.size(400)
        .margin(8)
        .foreground_color("#ff6600")
        .background_color("#fffbe6")
        .build()
    )
    with client:
        out = client.render(TextPayload("hi"), OutputFormat.PNG)
    assert out == b"PNG:hi"
    kind, options = rec.rendered[-1]
    assert kind == "png"
    assert options == {
        "width": 400,
        "height": 400,
        "quiet_zone": 8,
        "foreground_color": "#ff6600",
        "background_color": "#fffbe6",
    }


def test_error_correction_and_version_reach_encoder(builder, rec):
    with builder.error_correction(ECLevel.H).version(7).build() as client:
        qr = client.generate(TextPayload("abc"))
    assert qr == FakeQR(b"abc", ECLevel.H, 7)
    assert rec.encoded[-1] == (b"abc", ECLevel.H, 7)


def test_clone_is_independent(builder):
    builder.size(400)
    copy = builder.clone()
    copy.size(500).margin(2)
    assert builder.patch.default_size == 400
    assert builder.patch.quiet_zone is None
    assert copy.patch.default_size == 500
    assert copy.patch.quiet_zone == 2


def test_build_rejects_invalid_size(builder):
    with pytest.raises(QRCodeError) as info:
        builder.size(50).build()
    assert info.value.code == ErrorCode.VALIDATION


def test_build_rejects_overlay_without_logo(builder):
    with pytest.raises(QRCodeError) as info:
        builder.logo_overlay(True).build()
    assert info.value.code == ErrorCode.VALIDATION


def test_builder_quick_uses_quick_size_and_builder_colors(builder, rec):
    builder.size(500).foreground_color("#123456")
    out = builder.quick("hello builder")
    assert out == b"PNG:hello builder"
    _, options = rec.rendered[-1]
    assert options["width"] == 256
    assert options["foreground_color"] == "#123456"
    assert builder.patch.default_size == 500


def test_builder_quick_with_explicit_size(builder, rec):
    out = builder.quick("sized", 300)
    assert out == b"PNG:sized"
    assert rec.rendered[-1][1]["height"] == 300


def test_builder_quick_svg_returns_text(builder):
    assert builder.quick_svg("vector", 256) == "<svg>vector</svg>"


def test_builder_quick_file(builder, tmp_path):
    path = tmp_path / "builder_quick.png"
    builder.quick_file("hello builder", path, 256)
    assert path.read_bytes() == b"PNG:hello builder"


def test_builder_quick_file_subdirectory_and_format(builder, tmp_path):
    path = tmp_path / "sub" / "dir" / "test.svg"
    builder.quick_file("save test", path)
    assert path.read_bytes() == b"<svg>save test</svg>"


def test_builder_quick_empty_data_is_payload_error(builder):
    with pytest.raises(QRCodeError) as info:
        builder.quick("")
    assert info.value.code == ErrorCode.PAYLOAD


def test_module_quick(rec):
    out = quick("Quick Hello!", 256, encoder=rec.encoder, renderers=rec.renderers)
    assert out == b"PNG:Quick Hello!"
    assert rec.rendered[-1][1]["width"] == 256


def test_module_quick_default_size(rec):
    quick("x", encoder=rec.encoder, renderers=rec.renderers)
    _, options = rec.rendered[-1]
    assert options["width"] == 256
    assert options["foreground_color"] == "#000000"


def test_module_quick_svg(rec):
    assert quick_svg("s", encoder=rec.encoder, renderers=rec.renderers) == "<svg>s</svg>"


def test_module_quick_file_text_format(rec, tmp_path):
    path = tmp_path / "out.txt"
    quick_file("term", path, encoder=rec.encoder, renderers=rec.renderers)
    assert path.read_bytes() == b"TXT:term"


def test_module_quick_rejects_small_size(rec):
    with pytest.raises(QRCodeError) as info:
        quick("x", 50, encoder=rec.encoder, renderers=rec.renderers)
    assert info.value.code == ErrorCode.VALIDATION


def test_module_quick_without_encoder_is_encoding_error():
    with pytest.raises(QRCodeError) as info:
        quick("x")
    assert info.value.code == ErrorCode.ENCODING


def test_module_quick_svg_without_renderer_is_rendering_error(rec):
    with pytest.raises(QRCodeError) as info:
        quick_svg("x", encoder=rec.encoder, renderers={})
    assert info.value.code == ErrorCode.RENDERING


def test_concurrent_render_on_built_client(builder):
    client = builder.build()
    try:
        with ThreadPoolExecutor(max_workers=10) as pool:
            results = list(
                pool.map(
                    lambda i: client.render(
                        TextPayload(f"concurrent-{i}"), OutputFormat.PNG
                    ),
                    range(10),
                )
            )
    finally:
        client.close()
    assert results == [f"PNG:concurrent-{i}".encode() for i in range(10)]