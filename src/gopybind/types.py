"""Type classifier and conversion table.

Every Go type that appears in the package's exported surface is classified
exactly once into a `Symbol`. The Symbol carries the shim-side (cgo) and
host-side (pybindgen / Python) spellings of the type plus the conversion
functions needed in each direction.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from .config import HandleRepr
from .model import Kind, Symbol

# name -> (cgo type, pybindgen tag, python type, go2py, py2go, zero value)
_BASIC: dict[str, tuple[str, str, str, str, str, str]] = {
    "bool": ("C.char", "bool", "bool", "boolGoToPy", "boolPyToGo", "C.char(0)"),
    "int": ("C.long", "long", "int", "C.long", "int", "C.long(0)"),
    "int8": ("C.schar", "int8_t", "int", "C.schar", "int8", "C.schar(0)"),
    "int16": ("C.short", "int16_t", "int", "C.short", "int16", "C.short(0)"),
    "int32": ("C.int", "int32_t", "int", "C.int", "int32", "C.int(0)"),
    "int64": ("C.longlong", "int64_t", "int", "C.longlong", "int64", "C.longlong(0)"),
    "uint": ("C.ulong", "unsigned long", "int", "C.ulong", "uint", "C.ulong(0)"),
    "uint8": ("C.uchar", "uint8_t", "int", "C.uchar", "uint8", "C.uchar(0)"),
    "uint16": ("C.ushort", "uint16_t", "int", "C.ushort", "uint16", "C.ushort(0)"),
    "uint32": ("C.uint", "uint32_t", "int", "C.uint", "uint32", "C.uint(0)"),
    "uint64": ("C.ulonglong", "uint64_t", "int", "C.ulonglong", "uint64", "C.ulonglong(0)"),
    "uintptr": ("C.ulonglong", "uint64_t", "int", "C.ulonglong", "uintptr", "C.ulonglong(0)"),
    "float32": ("C.float", "float", "float", "C.float", "float32", "C.float(0)"),
    "float64": ("C.double", "double", "float", "C.double", "float64", "C.double(0)"),
    "string": ("*C.char", "char*", "str", "C.CString", "C.GoString", 'C.CString("")'),
}

_ALIASES = {"byte": "uint8", "rune": "int32"}

# Predeclared Go type names; each doubles as a conversion function in shim bodies.
BASIC_TYPES = frozenset(_BASIC) | frozenset(_ALIASES) | {"error"}

_ARRAY_RE = re.compile(r"^\[(\d+)\]")


@dataclass(frozen=True)
class TypeDecl:
    """A named type declared by the analyzed package."""

    name: str
    kind: str  # "struct" | "interface" | "basic"
    underlying: str = ""
    doc: str = ""


def needs_helpers(sym: Symbol) -> bool:
    """True when the shim must define conversion helpers for `sym`."""
    if sym.has_handle:
        return True
    return sym.kind is Kind.BASIC and sym.elem is not None


class SymbolTable:
    """Memoized classification of Go types, keyed by type expression."""

    def __init__(self, *, pkg_name: str, decls: list[TypeDecl], handle: HandleRepr | None = None):
        self.pkg_name = pkg_name
        self.handle = handle or HandleRepr()
        self._decls = {d.name: d for d in decls}
        self._syms: dict[str, Symbol] = {}
        self._resolving: set[str] = set()
        # Declared types and pointers to declared structs exist before any
        # signature is looked at, so the Types section does not depend on usage.
        for d in decls:
            self.symtype(d.name)
            if d.kind == "struct":
                self.symtype("*" + d.name)

    def names(self) -> list[str]:
        return sorted(self._syms)

    def sym(self, name: str) -> Symbol | None:
        return self._syms.get(name)

    def symtype(self, go_type: str) -> Symbol | None:
        """Return the Symbol for `go_type`, or None if it cannot be resolved."""
        t = _normalize(go_type)
        existing = self._syms.get(t)
        if existing is not None:
            return existing
        if t in self._resolving:
            return None
        self._resolving.add(t)
        try:
            sym = self._classify(t)
        finally:
            self._resolving.discard(t)
        if sym is not None:
            self._syms[t] = sym
        return sym

    def _classify(self, t: str) -> Symbol | None:
        if not t:
            return None
        if t.startswith("func(") or t == "func":
            return Symbol(kind=Kind.FUNC, id=t, goname=t, gofmt=t)
        if t.startswith("..."):
            elem = self.symtype(t[3:])
            return Symbol(kind=Kind.SLICE, id=t, goname=t, gofmt=t, elem=elem)
        if t.startswith("[]"):
            elem = self.symtype(t[2:])
            return Symbol(kind=Kind.SLICE, id=t, goname=t, gofmt=t, elem=elem)
        if _ARRAY_RE.match(t):
            elem = self.symtype(_ARRAY_RE.sub("", t, count=1))
            return Symbol(kind=Kind.ARRAY, id=t, goname=t, gofmt=t, elem=elem)
        if t.startswith("map["):
            return Symbol(kind=Kind.MAP, id=t, goname=t, gofmt=t)
        if t.startswith("*"):
            return self._pointer(t)
        if t == "error":
            return Symbol(
                kind=Kind.ERROR,
                id=t,
                goname="error",
                gofmt="error",
                cgoname="*C.char",
                cpyname="char*",
                pyname="str",
                zval='C.CString("")',
            )
        if t in _BASIC:
            cgo, cpy, py, go2py, py2go, zval = _BASIC[t]
            return Symbol(
                kind=Kind.BASIC,
                id=t,
                goname=t,
                gofmt=t,
                cgoname=cgo,
                cpyname=cpy,
                pyname=py,
                go2py=go2py,
                py2go=py2go,
                zval=zval,
            )

        decl = self._decls.get(t)
        if decl is None:
            # Qualified names come from packages that were not analyzed.
            return None
        if decl.kind == "struct":
            return self._handle_sym(
                Kind.STRUCT, t, gofmt=f"{self.pkg_name}.{t}", go2py=f"handleFromVal_{t}", py2go=f"valFromHandle_{t}",
                doc=decl.doc,
            )
        if decl.kind == "interface":
            return self._handle_sym(
                Kind.INTERFACE, t, gofmt=f"{self.pkg_name}.{t}", go2py=f"handleFromIface_{t}",
                py2go=f"ifaceFromHandle_{t}", doc=decl.doc,
            )
        if decl.kind == "basic":
            under = self.symtype(decl.underlying)
            if under is None or under.kind is not Kind.BASIC or under.elem is not None:
                return None
            return Symbol(
                kind=Kind.BASIC,
                id=t,
                goname=t,
                gofmt=f"{self.pkg_name}.{t}",
                cgoname=under.cgoname,
                cpyname=under.cpyname,
                pyname=under.pyname,
                go2py=f"goToPy_{t}",
                py2go=f"pyToGo_{t}",
                zval=under.zval,
                elem=under,
                doc=decl.doc,
            )
        return None

    def _pointer(self, t: str) -> Symbol | None:
        elem = self.symtype(t[1:])
        if elem is None:
            return None
        if elem.kind is not Kind.STRUCT:
            # Recorded so the signature can be rejected with a precise reason.
            return Symbol(kind=Kind.POINTER, id=t, goname=t, gofmt="*" + elem.gofmt, elem=elem)
        return Symbol(
            kind=Kind.POINTER,
            id=t,
            goname=f"Ptr_{elem.goname}",
            gofmt="*" + elem.gofmt,
            cgoname="CGoHandle",
            cpyname=self.handle.py,
            pyname=elem.pyname,
            go2py=f"handleFromPtr_{elem.goname}",
            py2go=f"ptrFromHandle_{elem.goname}",
            zval="CGoHandle(0)",
            has_handle=True,
            elem=elem,
            doc=elem.doc,
        )

    def _handle_sym(self, kind: Kind, name: str, *, gofmt: str, go2py: str, py2go: str, doc: str) -> Symbol:
        return Symbol(
            kind=kind,
            id=name,
            goname=name,
            gofmt=gofmt,
            cgoname="CGoHandle",
            cpyname=self.handle.py,
            pyname=name,
            go2py=go2py,
            py2go=py2go,
            zval="CGoHandle(0)",
            has_handle=True,
            doc=doc,
        )


def _normalize(go_type: str) -> str:
    t = go_type.strip()
    while t.startswith("(") and t.endswith(")"):
        t = t[1:-1].strip()
    if t.startswith("*"):
        return "*" + _normalize(t[1:])
    if t.startswith("[]"):
        return "[]" + _normalize(t[2:])
    if t.startswith("..."):
        return "..." + _normalize(t[3:])
    return _ALIASES.get(t, t)


def conversion_helpers(sym: Symbol) -> list[str]:
    """Go source for the conversion helpers named by `sym.go2py` / `sym.py2go`."""
    if sym.kind is Kind.BASIC and sym.elem is not None:
        under = sym.elem
        to_go = f"{under.py2go}(v)"
        to_py = f"{under.go2py}({under.gofmt}(v))"
        return [
            f"// {sym.py2go} converts a shim value into a {sym.gofmt}",
            f"func {sym.py2go}(v {sym.cgoname}) {sym.gofmt} {{",
            f"\treturn {sym.gofmt}({to_go})",
            "}",
            "",
            f"// {sym.go2py} converts a {sym.gofmt} into its shim value",
            f"func {sym.go2py}(v {sym.gofmt}) {sym.cgoname} {{",
            f"\treturn {to_py}",
            "}",
        ]
    if sym.kind is Kind.POINTER:
        return [
            f"// {sym.go2py} allocates a handle for a {sym.gofmt}",
            f"func {sym.go2py}(p {sym.gofmt}) CGoHandle {{",
            "\tif p == nil {",
            "\t\treturn CGoHandle(0)",
            "\t}",
            "\treturn CGoHandle(handles.Allocate(p))",
            "}",
            "",
            f"// {sym.py2go} resolves a handle to a {sym.gofmt}, nil if it is unknown or of another type",
            f"func {sym.py2go}(h CGoHandle) {sym.gofmt} {{",
            f'\tv, err := handles.Resolve(GoHandle(h), "{sym.gofmt}")',
            "\tif err != nil {",
            "\t\treturn nil",
            "\t}",
            f"\treturn v.({sym.gofmt})",
            "}",
        ]
    if sym.kind is Kind.STRUCT:
        ptr = "*" + sym.gofmt
        return [
            f"// {sym.go2py} allocates a handle for a copy of a {sym.gofmt}",
            f"func {sym.go2py}(v {sym.gofmt}) CGoHandle {{",
            f"\treturn handleFromPtr_{sym.goname}(&v)",
            "}",
            "",
            f"// {sym.py2go} resolves a handle to a {sym.gofmt}, the zero value if it is unknown",
            f"func {sym.py2go}(h CGoHandle) {sym.gofmt} {{",
            f"\tp := ptrFromHandle_{sym.goname}(h)",
            "\tif p == nil {",
            f"\t\treturn {sym.gofmt}{{}}",
            "\t}",
            "\treturn *p",
            "}",
        ]
    if sym.kind is Kind.INTERFACE:
        return [
            f"// {sym.go2py} allocates a handle for a {sym.gofmt}",
            f"func {sym.go2py}(v {sym.gofmt}) CGoHandle {{",
            "\tif v == nil {",
            "\t\treturn CGoHandle(0)",
            "\t}",
            "\treturn CGoHandle(handles.Allocate(v))",
            "}",
            "",
            f"// {sym.py2go} resolves a handle to a {sym.gofmt}, nil if the value does not implement it",
            f"func {sym.py2go}(h CGoHandle) {sym.gofmt} {{",
            '\tv, err := handles.Resolve(GoHandle(h), "")',
            "\tif err != nil {",
            "\t\treturn nil",
            "\t}",
            f"\tiv, ok := v.({sym.gofmt})",
            "\tif !ok {",
            "\t\treturn nil",
            "\t}",
            "\treturn iv",
            "}",
        ]
    return []
