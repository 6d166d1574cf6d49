"""Single analysis pass: package description -> immutable `Package` model."""

from __future__ import annotations

import keyword
import logging

from .config import HandleRepr
from .description import DescFunc, Description
from .model import Const, Diagnostic, Field, Func, Interface, Kind, Package, Param, Struct, Symbol, Var
from .types import SymbolTable, TypeDecl

logger = logging.getLogger(__name__)


def analyze(desc: Description, *, handle: HandleRepr | None = None) -> Package:
    diags: list[Diagnostic] = []
    # A keyword cannot name a wrapper class; such types stay unresolved.
    types = []
    for t in desc.types:
        if keyword.iskeyword(t.name):
            diags.append(Diagnostic(t.name, "type name is a Python keyword"))
        else:
            types.append(t)
    decls = [TypeDecl(name=t.name, kind=t.kind, underlying=t.underlying, doc=t.doc) for t in types]
    syms = SymbolTable(pkg_name=desc.name, decls=decls, handle=handle)

    methods_by_recv: dict[str, list[Func]] = {}
    for m in desc.methods:
        base = m.recv.lstrip("*").strip() if m.recv else ""
        recv = syms.sym(base)
        if recv is None or recv.kind not in (Kind.STRUCT, Kind.INTERFACE):
            diags.append(Diagnostic(f"{base}.{m.name}", f"receiver type {m.recv!r} is not an exported struct or interface"))
            continue
        if not m.name[:1].isupper():
            continue
        methods_by_recv.setdefault(base, []).append(_func(syms, m, recv=recv))

    ctors_by_struct: dict[str, list[Func]] = {}
    funcs: list[Func] = []
    for f in desc.funcs:
        if not f.name[:1].isupper():
            continue
        fn = _func(syms, f)
        target = _ctor_target(fn)
        if target is not None:
            ctors_by_struct.setdefault(target.goname, []).append(fn)
        else:
            funcs.append(fn)

    structs: list[Struct] = []
    ifaces: list[Interface] = []
    for t in types:
        sym = syms.sym(t.name)
        if sym is None:
            diags.append(Diagnostic(t.name, f"underlying type {t.underlying!r} is not a basic type"))
            continue
        if t.kind == "struct":
            fields = tuple(
                Field(name=f.name, type=f.type, sym=syms.symtype(f.type), doc=f.doc)
                for f in (t.fields or [])
                if f.name[:1].isupper()
            )
            structs.append(
                Struct(
                    sym=sym,
                    fields=fields,
                    methods=tuple(methods_by_recv.get(t.name, [])),
                    ctors=tuple(ctors_by_struct.get(t.name, [])),
                    doc=t.doc,
                )
            )
        elif t.kind == "interface":
            ifaces.append(Interface(sym=sym, methods=tuple(methods_by_recv.get(t.name, [])), doc=t.doc))

    consts = tuple(Const(name=c.name, sym=syms.symtype(c.type), value=c.value, doc=c.doc) for c in desc.consts)
    vars_ = tuple(Var(name=v.name, type=v.type, sym=syms.symtype(v.type), doc=v.doc) for v in desc.vars)

    for d in diags:
        logger.info("skipping %s", d)

    logger.debug(
        "analyzed %s: %d structs, %d interfaces, %d funcs, %d consts, %d vars",
        desc.path,
        len(structs),
        len(ifaces),
        len(funcs),
        len(consts),
        len(vars_),
    )
    return Package(
        path=desc.path,
        name=desc.name,
        syms=syms,
        doc=desc.doc,
        structs=tuple(structs),
        ifaces=tuple(ifaces),
        funcs=tuple(funcs),
        consts=consts,
        vars=vars_,
        diagnostics=tuple(diags),
    )


def _func(syms: SymbolTable, f: DescFunc, *, recv: Symbol | None = None) -> Func:
    return Func(
        name=f.name,
        params=tuple(Param(name=p.name, type=p.type, sym=syms.symtype(p.type)) for p in f.params),
        results=tuple(Param(name=r.name, type=r.type, sym=syms.symtype(r.type)) for r in f.results),
        recv=recv,
        doc=f.doc,
        variadic=f.variadic,
    )


def _ctor_target(fn: Func) -> Symbol | None:
    """Struct constructed by `fn`: it returns `T` or `*T` (optionally with an error)."""
    if not fn.results or len(fn.results) > 2:
        return None
    if len(fn.results) == 2 and not fn.err:
        return None
    sym = fn.results[0].sym
    if sym is None:
        return None
    if sym.kind is Kind.STRUCT:
        return sym
    if sym.kind is Kind.POINTER and sym.has_handle:
        return sym.elem
    return None
