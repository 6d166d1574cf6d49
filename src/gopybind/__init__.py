"""gopybind: generate CPython bindings for Go packages through opaque handles."""

from __future__ import annotations

from . import errors
from .analysis import analyze
from .config import GenOptions, HandleRepr
from .description import load_description, parse_description
from .emit import Generated, generate
from .handles import HandleRegistry

__all__ = [
    "GenOptions",
    "Generated",
    "HandleRegistry",
    "HandleRepr",
    "analyze",
    "errors",
    "generate",
    "load_description",
    "parse_description",
]
