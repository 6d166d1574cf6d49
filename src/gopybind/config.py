"""Generation configuration: handle representation and package identity."""

from __future__ import annotations

import os
import re
import sys
from dataclasses import dataclass, field

from .errors import ConfigError

_GO_INT_TYPES = {"int", "int32", "int64", "uint", "uint32", "uint64"}
_IDENT_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


@dataclass(frozen=True)
class HandleRepr:
    """Native, shim and host representations of a handle.

    Fixed for the whole process before generation begins.
    """

    go: str = "int64"
    cgo: str = "C.longlong"
    py: str = "int64_t"

    def __post_init__(self) -> None:
        # The emitted registry increments a counter, so the native side must be an integer.
        if self.go not in _GO_INT_TYPES:
            raise ConfigError(f"handle go type must be an integer type, got {self.go!r}")
        if not self.cgo.startswith("C."):
            raise ConfigError(f"handle cgo type must be a C type, got {self.cgo!r}")
        if not self.py:
            raise ConfigError("handle host type tag must not be empty")


def default_vm() -> str:
    """Return the Python interpreter used by the generated Makefile.

    Override with `GOPYBIND_VM`.
    """
    return os.environ.get("GOPYBIND_VM") or "python3"


def default_libext() -> str:
    """Return the shared library extension for the host platform.

    Override with `GOPYBIND_LIBEXT`.
    """
    override = os.environ.get("GOPYBIND_LIBEXT")
    if override:
        return override

    if sys.platform.startswith("win"):
        return ".dll"
    if sys.platform == "darwin":
        return ".dylib"
    if sys.platform.startswith("linux"):
        return ".so"
    raise ConfigError(f"unsupported platform: {sys.platform}")


@dataclass(frozen=True)
class GenOptions:
    package: str
    name: str
    vm: str = field(default_factory=default_vm)
    libext: str = field(default_factory=default_libext)
    handle: HandleRepr = field(default_factory=HandleRepr)

    def __post_init__(self) -> None:
        if not self.package:
            raise ConfigError("package import path is required")
        if not _IDENT_RE.fullmatch(self.name):
            raise ConfigError(f"package display name must be an identifier, got {self.name!r}")

    @property
    def command(self) -> str:
        """Command line that regenerates the outputs."""
        vm = os.path.basename(self.vm)
        return f"gopybind gen -vm={vm} {self.package}"
