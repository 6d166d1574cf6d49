"""Signature translator.

Turns one Go function, method, field or variable into three aligned
fragments: the cgo export in the shim, the pybindgen declaration in the build
script and the call in the Python wrapper. The argument order is the same in
all three: receiver handle first for methods, then the declared parameters.
"""

from __future__ import annotations

import keyword
import logging
import re
from dataclasses import dataclass

from .config import HandleRepr
from .errors import GenerationError, UnsupportedSignatureError, UnsupportedTypeError
from .model import Const, Diagnostic, Field, Func, Kind, Package, Param, Struct, Symbol, Var
from .types import BASIC_TYPES

logger = logging.getLogger(__name__)

# Locals and preamble globals referenced inside shim bodies and wrappers;
# parameters are renamed away from them.
_RESERVED = {
    "_handle", "vifc", "recv", "ok", "err", "cret", "p", "val", "self", "handle",
    "handles", "C", "setPyErr", "GoHandle", "CGoHandle", "boolGoToPy", "boolPyToGo",
}

_NUMBER_RE = re.compile(r"^[+-]?(\d+(\.\d*)?|\.\d+)([eE][+-]?\d+)?$")
_RATIO_RE = re.compile(r"^[+-]?\d+/\d+$")
_GO_ESCAPE_RE = re.compile(r'\\(?:([abfnrtv\\"])|x([0-9a-fA-F]{2})|([0-7]{3})|u([0-9a-fA-F]{4})|U([0-9a-fA-F]{8}))')
_GO_SIMPLE_ESCAPES = {
    "a": b"\a", "b": b"\b", "f": b"\f", "n": b"\n", "r": b"\r", "t": b"\t", "v": b"\v", "\\": b"\\", '"': b'"',
}


@dataclass(frozen=True)
class Binding:
    """The three fragments emitted for one exposed entry point."""

    name: str  # shim export name, also the name declared to pybindgen
    pyname: str  # name in the wrapper namespace (module or class)
    shim: tuple[str, ...]
    decl: str
    wrapper: tuple[str, ...]
    owner: Symbol | None = None  # class the wrapper fragment belongs to


class Translator:
    def __init__(self, pkg: Package, handle: HandleRepr | None = None, *, module: str | None = None):
        self.pkg = pkg
        self.handle = handle or pkg.syms.handle
        # Name of the extension module the wrapper imports as `_<module>`.
        self.module = module or pkg.name
        self.diagnostics: list[Diagnostic] = []
        # Package qualifier, extension module, wrapper classes and the scalar
        # conversions all appear as bare names next to the arguments.
        self._taken = _RESERVED | BASIC_TYPES | set(pkg.syms.names()) | {pkg.name, f"_{self.module}"}

    # ---- functions and methods ---

    def translate(self, fn: Func) -> Binding | None:
        """Binding for `fn`, or None (with a diagnostic) if it cannot be exposed."""
        try:
            check_signature(fn)
        except (UnsupportedSignatureError, UnsupportedTypeError) as e:
            self.skip(fn.label, str(e))
            return None
        return self.render(fn)

    def render(self, fn: Func) -> Binding:
        """Emit the fragments for a signature that already passed `check_signature`."""
        recv = fn.recv
        name = shim_name(fn)
        args = _arg_names(fn.params, self._taken)
        res = _result_syms(fn)
        rv_is_err = len(fn.results) == 1 and fn.err

        go_params: list[str] = []
        decl_params: list[str] = []
        py_params: list[str] = []
        if recv is not None:
            go_params.append("_handle CGoHandle")
            decl_params.append(f"param('{self.handle.py}', '_handle')")
            py_params.append("self")
        for a, p in zip(args, fn.params):
            sym = _need(p.sym, fn, p.type)
            go_params.append(f"{a} {sym.cgoname}")
            decl_params.append(f"param('{sym.cpyname}', '{a}')")
            py_params.append(a)

        ret = res[0] if res and not rv_is_err else None
        go_ret = f" {ret.cgoname}" if ret is not None else ""

        # ---- shim ---
        shim = [f"//export {name}", f"func {name}({', '.join(go_params)}){go_ret} {{"]
        early = ""
        if recv is not None or fn.err:
            early = "return" if ret is None else f"return {_zero(ret, fn)}"
        if recv is not None:
            shim.extend(_resolve_recv(recv, early))
        call_args = [f"{p.sym.py2go}({a})" if p.sym.py2go else a for a, p in zip(args, fn.params)]  # type: ignore[union-attr]
        target = "recv" if recv is not None else self.pkg.name
        call = f"{target}.{fn.name}({', '.join(call_args)})"
        if not fn.results:
            shim.append(f"\t{call}")
        elif rv_is_err:
            shim.extend([f"\tif err := {call}; err != nil {{", "\t\tsetPyErr(err.Error())", "\t}"])
        elif fn.err:
            shim.extend(
                [
                    f"\tcret, err := {call}",
                    "\tif err != nil {",
                    "\t\tsetPyErr(err.Error())",
                    f"\t\t{early}",
                    "\t}",
                    f"\treturn {_to_py(ret, 'cret')}",
                ]
            )
        else:
            shim.append(f"\treturn {_to_py(ret, call)}")
        shim.append("}")

        # ---- declaration ---
        retval = f"retval('{ret.cpyname}')" if ret is not None else "None"
        decl = f"mod.add_function('{name}', {retval}, [{', '.join(decl_params)}])"

        # ---- wrapper ---
        wrap_args = ["self.handle"] if recv is not None else []
        for a, p in zip(args, fn.params):
            wrap_args.append(f"{a}.handle" if p.sym.has_handle else a)  # type: ignore[union-attr]
        wcall = f"_{self.module}.{name}({', '.join(wrap_args)})"
        wrapper = [f"def {fn.name}({', '.join(py_params)}):"]
        wrapper.extend(_docstring(fn.doc))
        if ret is None:
            wrapper.append(f"    {wcall}")
        elif ret.has_handle:
            wrapper.append(f"    return {ret.pyname}(handle={wcall})")
        else:
            wrapper.append(f"    return {wcall}")

        return Binding(
            name=name,
            pyname=fn.name,
            shim=tuple(shim),
            decl=decl,
            wrapper=tuple(wrapper),
            owner=recv,
        )

    # ---- struct support ---

    def zero_ctor(self, st: Struct) -> Binding:
        """`<Type>_CTor`: allocate a zero value; used by the wrapper class __init__."""
        sym = st.sym
        name = f"{sym.goname}_CTor"
        shim = (
            f"//export {name}",
            f"func {name}() CGoHandle {{",
            f"\treturn handleFromPtr_{sym.goname}(&{sym.gofmt}{{}})",
            "}",
        )
        decl = f"mod.add_function('{name}', retval('{self.handle.py}'), [])"
        return Binding(name=name, pyname="", shim=shim, decl=decl, wrapper=(), owner=sym)

    def field(self, st: Struct, fld: Field) -> list[Binding]:
        """Getter and setter bindings for an exported struct field."""
        label = f"{st.name}.{fld.name}"
        try:
            sym = _field_sym(fld.sym, fld.type)
        except UnsupportedTypeError as e:
            self.skip(label, str(e))
            return []

        zero = _zero(sym, label)
        get_name = f"{st.name}_{fld.name}_Get"
        set_name = f"{st.name}_{fld.name}_Set"
        ptr = f"ptrFromHandle_{st.name}"
        get_shim = (
            f"//export {get_name}",
            f"func {get_name}(_handle CGoHandle) {sym.cgoname} {{",
            f"\tp := {ptr}(_handle)",
            "\tif p == nil {",
            f"\t\treturn {zero}",
            "\t}",
            f"\treturn {_to_py(sym, 'p.' + fld.name)}",
            "}",
        )
        set_shim = (
            f"//export {set_name}",
            f"func {set_name}(_handle CGoHandle, val {sym.cgoname}) {{",
            f"\tp := {ptr}(_handle)",
            "\tif p == nil {",
            "\t\treturn",
            "\t}",
            f"\tp.{fld.name} = {_to_go(sym, 'val')}",
            "}",
        )
        h = self.handle.py
        get_decl = f"mod.add_function('{get_name}', retval('{sym.cpyname}'), [param('{h}', '_handle')])"
        set_decl = f"mod.add_function('{set_name}', None, [param('{h}', '_handle'), param('{sym.cpyname}', 'val')])"

        get_call = f"_{self.module}.{get_name}(self.handle)"
        get_wrap = ["@property", f"def {fld.name}(self):"]
        get_wrap.extend(_docstring(fld.doc))
        if sym.has_handle:
            get_wrap.append(f"    return {sym.pyname}(handle={get_call})")
        else:
            get_wrap.append(f"    return {get_call}")
        value = "value.handle" if sym.has_handle else "value"
        set_wrap = (
            f"@{fld.name}.setter",
            f"def {fld.name}(self, value):",
            f"    _{self.module}.{set_name}(self.handle, {value})",
        )
        return [
            Binding(name=get_name, pyname=fld.name, shim=get_shim, decl=get_decl, wrapper=tuple(get_wrap), owner=st.sym),
            Binding(name=set_name, pyname=f"{fld.name}.setter", shim=set_shim, decl=set_decl, wrapper=set_wrap, owner=st.sym),
        ]

    # ---- package-level values ---

    def var(self, v: Var) -> list[Binding]:
        """Accessor pair for a package variable; the host never writes Go storage directly."""
        try:
            sym = _field_sym(v.sym, v.type)
        except UnsupportedTypeError as e:
            self.skip(v.name, str(e))
            return []

        pkg = self.pkg.name
        get_name = f"{pkg}_{v.name}"
        set_name = f"{pkg}_Set_{v.name}"
        get_shim = (
            f"//export {get_name}",
            f"func {get_name}() {sym.cgoname} {{",
            f"\treturn {_to_py(sym, pkg + '.' + v.name)}",
            "}",
        )
        set_shim = (
            f"//export {set_name}",
            f"func {set_name}(val {sym.cgoname}) {{",
            f"\t{pkg}.{v.name} = {_to_go(sym, 'val')}",
            "}",
        )
        get_decl = f"mod.add_function('{get_name}', retval('{sym.cpyname}'), [])"
        set_decl = f"mod.add_function('{set_name}', None, [param('{sym.cpyname}', 'val')])"

        get_call = f"_{self.module}.{get_name}()"
        get_wrap = [f"def {v.name}():"]
        get_wrap.extend(_docstring(f"{v.name} Gets Go Variable: {pkg}.{v.name}\n{v.doc}".strip()))
        get_wrap.append(f"    return {sym.pyname}(handle={get_call})" if sym.has_handle else f"    return {get_call}")
        value = "value.handle" if sym.has_handle else "value"
        set_wrap = [f"def Set_{v.name}(value):"]
        set_wrap.extend(_docstring(f"Set_{v.name} Sets Go Variable: {pkg}.{v.name}"))
        set_wrap.append(f"    _{self.module}.{set_name}({value})")
        return [
            Binding(name=get_name, pyname=v.name, shim=get_shim, decl=get_decl, wrapper=tuple(get_wrap)),
            Binding(name=set_name, pyname=f"Set_{v.name}", shim=set_shim, decl=set_decl, wrapper=tuple(set_wrap)),
        ]

    def const(self, c: Const) -> str | None:
        """Python literal for a constant, or None if it cannot be expressed."""
        sym = c.sym
        if sym is None or sym.kind is not Kind.BASIC:
            self.skip(c.name, "constant type is not a basic type")
            return None
        value = c.value.strip()
        if sym.pyname == "bool":
            if value not in ("true", "false"):
                self.skip(c.name, f"invalid bool constant {value!r}")
                return None
            return "True" if value == "true" else "False"
        if sym.pyname == "str":
            if len(value) >= 2 and value[0] == value[-1] == "`":
                value = value[1:-1]
            elif len(value) >= 2 and value[0] == value[-1] == '"':
                try:
                    value = _go_unquote(value)
                except ValueError as e:
                    self.skip(c.name, f"invalid string constant {value}: {e}")
                    return None
            return repr(value)
        if _NUMBER_RE.match(value) or _RATIO_RE.match(value):
            # Untyped float constants may be spelled as exact ratios.
            return f"({value})" if "/" in value else value
        self.skip(c.name, f"constant value {value!r} is not a number")
        return None

    def skip(self, label: str, reason: str) -> None:
        logger.info("skipping %s: %s", label, reason)
        self.diagnostics.append(Diagnostic(label, reason))


def check_signature(fn: Func) -> None:
    """Raise if `fn` cannot be exposed through the bridge."""
    if fn.variadic:
        raise UnsupportedSignatureError("variadic signatures are not supported")
    nres = len(fn.results)
    if nres > 2:
        raise UnsupportedSignatureError(f"too many results ({nres})")
    if nres == 2 and not fn.err:
        raise UnsupportedSignatureError("second of two results must be error")
    for p in fn.params:
        if p.sym is None:
            raise UnsupportedTypeError(f"unresolved parameter type {p.type}")
        if p.sym.is_signature():
            raise UnsupportedSignatureError(f"function-typed parameter {p.name or p.type}")
        if p.sym.is_error() or not p.sym.supported:
            raise UnsupportedTypeError(f"unsupported parameter type {p.type}")
    for i, r in enumerate(fn.results):
        if r.sym is None:
            raise UnsupportedTypeError(f"unresolved result type {r.type}")
        if r.sym.is_error():
            if i != nres - 1:
                raise UnsupportedSignatureError("error must be the last result")
            continue
        if r.sym.is_signature():
            raise UnsupportedSignatureError(f"function-typed result {r.type}")
        if not r.sym.supported:
            raise UnsupportedTypeError(f"unsupported result type {r.type}")


def shim_name(fn: Func) -> str:
    if fn.recv is None:
        return fn.name
    return f"{fn.recv.goname}_{fn.name}"


def _resolve_recv(recv: Symbol, early: str) -> list[str]:
    if recv.is_interface():
        return [
            '\tvifc, err := handles.Resolve(GoHandle(_handle), "")',
            "\tif err != nil {",
            f"\t\t{early}",
            "\t}",
            f"\trecv, ok := vifc.({recv.gofmt})",
            "\tif !ok {",
            f"\t\t{early}",
            "\t}",
        ]
    ptr = "*" + recv.gofmt
    return [
        f'\tvifc, err := handles.Resolve(GoHandle(_handle), "{ptr}")',
        "\tif err != nil {",
        f"\t\t{early}",
        "\t}",
        f"\trecv := vifc.({ptr})",
    ]


def _arg_names(params: tuple[Param, ...], taken: set[str]) -> list[str]:
    out: list[str] = []
    for i, p in enumerate(params):
        n = p.name
        if not n or n == "_":
            n = f"arg_{i}"
        elif keyword.iskeyword(n) or n in taken:
            n = n + "_"
        while n in out or n in taken:
            n = n + "_"
        out.append(n)
    return out


def _result_syms(fn: Func) -> list[Symbol]:
    return [_need(r.sym, fn, r.type) for r in fn.results]


def _need(sym: Symbol | None, fn: Func, go_type: str) -> Symbol:
    if sym is None:
        raise GenerationError(f"{fn.label}: no symbol for {go_type!r} at the point its conversion is emitted")
    return sym


def _zero(sym: Symbol, where: object) -> str:
    if not sym.zval:
        label = where.label if isinstance(where, Func) else where
        raise GenerationError(f"{label}: empty zero value in symbol {sym!r}")
    return sym.zval


def _field_sym(sym: Symbol | None, go_type: str) -> Symbol:
    if sym is None:
        raise UnsupportedTypeError(f"unresolved type {go_type}")
    if sym.is_error() or not sym.supported:
        raise UnsupportedTypeError(f"unsupported type {go_type}")
    return sym


def _to_py(sym: Symbol, expr: str) -> str:
    return f"{sym.go2py}({expr})" if sym.go2py else expr


def _to_go(sym: Symbol, expr: str) -> str:
    return f"{sym.py2go}({expr})" if sym.py2go else expr


def _docstring(doc: str) -> list[str]:
    doc = doc.strip()
    if not doc:
        return []
    doc = doc.replace("\\", "\\\\").replace('"""', '\\"\\"\\"')
    lines = doc.split("\n")
    if len(lines) == 1:
        return [f'    """{lines[0]}"""']
    out = [f'    """{lines[0]}']
    out.extend(f"    {ln}" if ln else "" for ln in lines[1:])
    out.append('    """')
    return out


def _go_unquote(lit: str) -> str:
    """Decode an interpreted Go string literal; ValueError if it is malformed."""
    body = lit[1:-1]
    out = bytearray()
    pos = 0
    for m in _GO_ESCAPE_RE.finditer(body):
        out += _plain(body[pos : m.start()])
        simple, hx, octal, u4, u8 = m.groups()
        if simple:
            out += _GO_SIMPLE_ESCAPES[simple]
        elif hx:
            out.append(int(hx, 16))
        elif octal:
            n = int(octal, 8)
            if n > 0xFF:
                raise ValueError(f"octal escape \\{octal} out of range")
            out.append(n)
        else:
            out += chr(int(u4 or u8, 16)).encode("utf-8")
        pos = m.end()
    out += _plain(body[pos:])
    # \x and octal escapes are raw bytes; a Python str needs them to form valid UTF-8.
    return out.decode("utf-8")


def _plain(chunk: str) -> bytes:
    if "\\" in chunk:
        raise ValueError(f"unknown escape in {chunk!r}")
    if '"' in chunk or "\n" in chunk:
        raise ValueError(f"unescaped quote or newline in {chunk!r}")
    return chunk.encode("utf-8")
