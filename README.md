# qrforge

A QR code generation client built around a validated configuration, a
thread-safe generator, a fluent builder and structured, classifiable errors.

The package handles configuration, payload validation, concurrency,
output-format selection and file output. It does not contain a QR matrix
encoder or image renderers: you supply them when you create a client.

## Installation

```
pip install qrforge
```

## Modules

- `qrforge.config`: `Config`, `ConfigPatch`, `ECLevel`, `ConfigError` and helpers.
- `qrforge.client`: `Generator` (the client), `new_client`, `OutputFormat`,
  `Payload`, `TextPayload`, `Storage`, `FileSystemStorage`, `use_client`,
  `current_client`.
- `qrforge.builder`: `Builder` and the `quick`, `quick_svg`, `quick_file` helpers.
- `qrforge.errors`: `QRCodeError`, `ErrorCode`, `BatchError` and classification helpers.

## Configuration

`default_config()` returns a `Config` with these defaults: error correction
level `"M"`, versions 1 to 40, an automatic version (`default_version=0`),
output size 300 pixels, a quiet zone of 4, 4 workers, a queue size of 1024,
automatic mask selection (`mask_pattern=-1`), black on white.

Changes are expressed as a `ConfigPatch`. Only fields that are not `None` are
applied, so zero, empty and false values can be set on purpose:

```python
from qrforge.config import ConfigPatch, apply_patch, default_config, validate_patch

patch = ConfigPatch(worker_count=8, auto_size=False)
validate_patch(patch)
config = apply_patch(default_config(), patch)   # the base is not modified
config.validate()
```

`Config.validate()` and `validate_patch()` raise `ConfigError` (a
`ValueError`) for the first out-of-range value, for example a size outside
100 to 4000, a worker count outside 1 to 64, a quiet zone outside 0 to 20 or
a mask pattern outside -1 to 7. `config_to_patch()` turns a full
configuration into a patch that sets every field, and `parse_ec_level()`
maps `"L"`, `"M"`, `"Q"` or `"H"` to an `ECLevel`, returning `None` for
anything else.

## Supplying an encoder and renderers

The encoder is a callable taking the encoded payload as UTF-8 bytes, an
`ECLevel` and a version (0 for automatic); whatever it returns is the QR
code object. Renderers are given as a mapping from `OutputFormat` to a
callable that receives that object plus the keyword arguments `width`,
`height`, `quiet_zone`, `foreground_color` and `background_color`, and
returns bytes.

```python
from qrforge.client import OutputFormat

def my_encoder(data, level, version):
    ...  # build and return a QR matrix

my_renderers = {
    OutputFormat.PNG: lambda qr, **opts: ...,
    OutputFormat.SVG: lambda qr, **opts: ...,
}
```

Without an encoder, generation raises a `QRCodeError` with code `ENCODING`;
rendering to a format with no renderer raises one with code `RENDERING`.

## Generating codes

```python
from qrforge.client import OutputFormat, TextPayload, new_client
from qrforge.config import ConfigPatch

with new_client(ConfigPatch(default_size=400), encoder=my_encoder, renderers=my_renderers) as client:
    matrix = client.generate(TextPayload("hello"))
    png = client.render(TextPayload("hello"), OutputFormat.PNG)
    client.save(TextPayload("hello"), "out/hello.svg")
```

- `new_client()` validates the configuration and raises a `VALIDATION`
  error when it is invalid.
- `save()` picks the format from the file extension (`.png`, `.svg`, `.txt`,
  `.pdf`, `.b64`; PNG otherwise) and writes through the client's `Storage`,
  by default `FileSystemStorage`, which creates parent directories.
- `generate_to_writer()` renders and writes the bytes to a binary file object.
- `generate_with_options()` applies a patch to one call only;
  `set_options()` validates a patch and applies it to the client.
- `batch()` encodes payloads on a thread pool of `worker_count` threads,
  returning results in input order. If any item fails it raises a `BATCH`
  `QRCodeError` whose cause is a `BatchError` and whose `results` attribute
  holds the codes, with `None` for failed items.
- Concurrent calls for identical data share a single encoder call.
- After `close()`, generation and `set_options()` raise a `CLOSED` error;
  `closed()` reports the state.

Payloads are `Payload` subclasses with `validate()` and `encode()`;
`TextPayload` rejects empty text with a `PAYLOAD` error.

`use_client(client)` is a context manager that makes a client current for
the enclosed code; `current_client()` returns it, or `None`.

## The builder and quick helpers

```python
from qrforge.builder import Builder, quick

builder = Builder(my_encoder, my_renderers).size(500).margin(6).foreground_color("#ff6600")
client = builder.build()
png = builder.quick("Built with the builder", 256)
svg = builder.quick_svg("As SVG", 256)
builder.quick_file("Saved", "code.png")

png = quick("hello", encoder=my_encoder, renderers=my_renderers)
```

Every builder setter returns the builder; `options()` appends raw
`ConfigPatch` objects, later settings win, and `clone()` gives an
independent copy. The quick helpers create a temporary client, produce one
code and close it again; without a positive size they use 256 pixels.

## Errors

Every failure is a `QRCodeError` with an `ErrorCode`, a message, an optional
cause and metadata:

```python
from qrforge.errors import ErrorCode, http_status, is_code, is_retryable

try:
    client.render(payload, OutputFormat.PNG)
except Exception as error:
    if is_code(error, ErrorCode.VALIDATION):
        ...
    status = http_status(error)
    retry = is_retryable(error)
```

The helpers look at the first `QRCodeError` in the `__cause__` chain
(`find_qrcode_error()`). `TIMEOUT`, `INTERNAL` and `STORAGE` errors are
retryable by default; `with_retryable()` and `with_meta()` return modified
copies. `http_status()` maps each code to a status and gives 500 for
anything else. `wrap()`, `wrapf()`, `join_errors()` and `safe_execute()`
(which turns any exception into an `INTERNAL` error) complete the set.

## What this package does not do

- It does not encode QR matrices or draw images; an encoder and renderers
  must be supplied.
- It has no batch processor for reading items from JSON or CSV, collecting
  timing statistics or writing a directory of files; only `Generator.batch()`
  for encoding a list of payloads is provided.
- Only plain text payloads are included; URL, Wi-Fi, contact and other
  formats must be written as `Payload` subclasses.
- It has no command-line tool or HTTP server.