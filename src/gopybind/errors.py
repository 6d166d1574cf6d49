"""Domain-specific errors for gopybind."""

from __future__ import annotations


class GoPyBindError(Exception):
    """Base error for gopybind."""


class DescriptionError(GoPyBindError):
    """Raised when a package description cannot be read or is malformed."""


class ConfigError(GoPyBindError):
    """Raised when the generation configuration is invalid."""


class UnsupportedTypeError(GoPyBindError):
    """Raised when a parameter/result type cannot cross the boundary."""


class UnsupportedSignatureError(GoPyBindError):
    """Raised when a Go function signature is not supported by the bridge."""


class GenerationError(GoPyBindError):
    """Raised when generation hits a broken internal invariant (fatal)."""
