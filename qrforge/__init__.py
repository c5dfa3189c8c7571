"""QR code generation client with validated configuration, a fluent builder and structured errors."""

__version__ = "2.0.0"

__all__ = ["builder", "client", "config", "errors"]