"""Immutable model of an analyzed Go package."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .types import SymbolTable


class Kind(enum.Enum):
    BASIC = "basic"
    STRUCT = "struct"
    INTERFACE = "interface"
    POINTER = "pointer"
    SLICE = "slice"
    MAP = "map"
    ARRAY = "array"
    FUNC = "func"
    ERROR = "error"


@dataclass(frozen=True, eq=False)
class Symbol:
    """One native type and everything needed to move it across the boundary.

    Symbols compare by identity: the table hands out one instance per Go type.
    """

    kind: Kind
    id: str  # Go type expression, local to the package (`*Foo`, `int`, `[]string`)
    goname: str
    gofmt: str
    cgoname: str = ""
    cpyname: str = ""
    pyname: str = ""
    go2py: str = ""
    py2go: str = ""
    zval: str = ""
    has_handle: bool = False
    elem: "Symbol | None" = None
    doc: str = ""

    @property
    def supported(self) -> bool:
        """True when values of this type may appear in an exposed signature."""
        if self.kind in (Kind.BASIC, Kind.STRUCT, Kind.INTERFACE):
            return True
        if self.kind is Kind.POINTER:
            return self.elem is not None and self.elem.kind is Kind.STRUCT
        return False

    def is_error(self) -> bool:
        return self.kind is Kind.ERROR

    def is_signature(self) -> bool:
        return self.kind is Kind.FUNC

    def is_interface(self) -> bool:
        return self.kind is Kind.INTERFACE

    def is_ptr_or_iface(self) -> bool:
        return self.kind in (Kind.POINTER, Kind.INTERFACE)

    def __repr__(self) -> str:
        return f"Symbol({self.kind.value} {self.id!r})"


@dataclass(frozen=True)
class Param:
    name: str
    type: str
    sym: Symbol | None  # None when the type could not be resolved


@dataclass(frozen=True)
class Func:
    name: str
    params: tuple[Param, ...] = ()
    results: tuple[Param, ...] = ()
    recv: Symbol | None = None
    doc: str = ""
    variadic: bool = False

    @property
    def err(self) -> bool:
        """True when the final result is the failure indicator."""
        return bool(self.results) and self.results[-1].sym is not None and self.results[-1].sym.is_error()

    @property
    def is_method(self) -> bool:
        return self.recv is not None

    @property
    def label(self) -> str:
        if self.recv is None:
            return self.name
        return f"{self.recv.goname}.{self.name}"


@dataclass(frozen=True)
class Field:
    name: str
    type: str
    sym: Symbol | None
    doc: str = ""


@dataclass(frozen=True)
class Struct:
    sym: Symbol
    fields: tuple[Field, ...] = ()
    methods: tuple[Func, ...] = ()
    ctors: tuple[Func, ...] = ()
    doc: str = ""

    @property
    def name(self) -> str:
        return self.sym.goname


@dataclass(frozen=True)
class Interface:
    sym: Symbol
    methods: tuple[Func, ...] = ()
    doc: str = ""

    @property
    def name(self) -> str:
        return self.sym.goname


@dataclass(frozen=True)
class Const:
    name: str
    sym: Symbol | None
    value: str
    doc: str = ""


@dataclass(frozen=True)
class Var:
    name: str
    type: str
    sym: Symbol | None
    doc: str = ""


@dataclass(frozen=True)
class Diagnostic:
    symbol: str
    reason: str

    def __str__(self) -> str:
        return f"{self.symbol}: {self.reason}"


@dataclass(frozen=True)
class Package:
    path: str
    name: str
    syms: "SymbolTable"
    doc: str = ""
    structs: tuple[Struct, ...] = ()
    ifaces: tuple[Interface, ...] = ()
    funcs: tuple[Func, ...] = ()
    consts: tuple[Const, ...] = ()
    vars: tuple[Var, ...] = ()
    diagnostics: tuple[Diagnostic, ...] = field(default=(), repr=False)

    def struct(self, name: str) -> Struct | None:
        for s in self.structs:
            if s.name == name:
                return s
        return None
