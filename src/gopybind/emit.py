"""Emission orchestrator.

`Planner` walks the package once, in a fixed section order, and produces a
flat list of emission events. Each output stream is then rendered from the
same events by its own renderer with its own `Printer`, so nesting in one
stream (a class body in the wrapper) can never leak into another (the flat
Go shim).
"""

from __future__ import annotations

import keyword
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Union

from .config import GenOptions
from .errors import ConfigError, GenerationError
from .handles import registry_go_source
from .model import Diagnostic, Package, Symbol
from .printer import Printer
from .templates import BUILD_FOOTER, BUILD_PREAMBLE, MAKEFILE, SHIM_PREAMBLE, WRAPPER_PREAMBLE, pkgconfig_name
from .translate import Binding, Translator
from .types import conversion_helpers, needs_helpers

logger = logging.getLogger(__name__)

SECTIONS = ("Types", "Constants", "Variables", "Interfaces", "Structs", "Constructors", "Functions")


@dataclass(frozen=True)
class Section:
    title: str


@dataclass(frozen=True)
class TypeHelpers:
    sym: Symbol


@dataclass(frozen=True)
class OpenClass:
    sym: Symbol
    doc: str = ""
    fields: tuple[str, ...] = ()
    constructible: bool = False


@dataclass(frozen=True)
class CloseClass:
    sym: Symbol


@dataclass(frozen=True)
class Emit:
    binding: Binding


@dataclass(frozen=True)
class Constant:
    name: str
    literal: str
    doc: str = ""


Event = Union[Section, TypeHelpers, OpenClass, CloseClass, Emit, Constant]


class Planner:
    """Builds the event sequence and enforces name uniqueness.

    Shim export names share one namespace; wrapper names share the module
    namespace or, for methods and fields, their class namespace.
    """

    def __init__(self, pkg: Package, translator: Translator):
        self.pkg = pkg
        self.tr = translator
        self._shim_names: set[str] = {"main", "gopybind_release"}
        self._module_names: set[str] = {"GoClass", f"_{translator.module}"}
        self._class_names: dict[str, set[str]] = {}

    @property
    def diagnostics(self) -> list[Diagnostic]:
        return self.tr.diagnostics

    def plan(self) -> list[Event]:
        pkg = self.pkg
        # Class names are claimed first so functions cannot shadow them.
        for ifc in pkg.ifaces:
            self._module_names.add(ifc.name)
        for st in pkg.structs:
            self._module_names.add(st.name)

        events: list[Event] = []
        for title in SECTIONS:
            events.append(Section(title))
            events.extend(getattr(self, f"_plan_{title.lower()}")())

        logger.debug("planned %d events for %s (%d skipped)", len(events), pkg.path, len(self.diagnostics))
        return events

    def _plan_types(self) -> list[Event]:
        syms = self.pkg.syms
        return [TypeHelpers(s) for s in (syms.sym(n) for n in syms.names()) if s is not None and needs_helpers(s)]

    def _plan_constants(self) -> list[Event]:
        events: list[Event] = []
        for c in self.pkg.consts:
            literal = self.tr.const(c)
            if literal is not None and self._claim_module(c.name, c.name):
                events.append(Constant(c.name, literal, c.doc))
        return events

    def _plan_variables(self) -> list[Event]:
        events: list[Event] = []
        for v in self.pkg.vars:
            events.extend(self._claim_all(self.tr.var(v), label=v.name))
        return events

    def _plan_interfaces(self) -> list[Event]:
        events: list[Event] = []
        for ifc in self.pkg.ifaces:
            events.append(OpenClass(ifc.sym, doc=ifc.doc))
            for m in ifc.methods:
                events.extend(self._claim_all(_one(self.tr.translate(m)), label=m.label))
            events.append(CloseClass(ifc.sym))
        return events

    def _plan_structs(self) -> list[Event]:
        events: list[Event] = []
        for st in self.pkg.structs:
            ctor = self.tr.zero_ctor(st)
            fields: list[str] = []
            body: list[Event] = []
            for fld in st.fields:
                emitted = self._claim_all(self.tr.field(st, fld), label=f"{st.name}.{fld.name}")
                if emitted:
                    fields.append(fld.name)
                body.extend(emitted)
            for m in st.methods:
                body.extend(self._claim_all(_one(self.tr.translate(m)), label=m.label))
            ctor_events = self._claim_all([ctor], label=ctor.name)
            events.append(OpenClass(st.sym, doc=st.doc, fields=tuple(fields), constructible=bool(ctor_events)))
            events.extend(ctor_events)
            events.extend(body)
            events.append(CloseClass(st.sym))
        return events

    def _plan_constructors(self) -> list[Event]:
        events: list[Event] = []
        for st in self.pkg.structs:
            for fn in st.ctors:
                events.extend(self._claim_all(_one(self.tr.translate(fn)), label=fn.label))
        return events

    def _plan_functions(self) -> list[Event]:
        events: list[Event] = []
        for fn in self.pkg.funcs:
            events.extend(self._claim_all(_one(self.tr.translate(fn)), label=fn.label))
        return events

    def _claim_all(self, bindings: list[Binding], *, label: str) -> list[Event]:
        """Emit `bindings` together, or none of them if any name is taken."""
        if not bindings:
            return []
        shim = [b.name for b in bindings]
        py = [(b.owner, b.pyname) for b in bindings if b.wrapper]
        # Property setters are named `<field>.setter`; the field part is the identifier.
        keywords = [n for _, n in py if keyword.iskeyword(n.split(".")[0])]
        if keywords:
            self.tr.skip(label, f"wrapper name is a Python keyword: {keywords[0]}")
            return []
        taken = [n for n in shim if n in self._shim_names]
        taken += [n for owner, n in py if self._wrapper_taken(owner, n)]
        if len(set(shim)) != len(shim):
            taken.append(shim[0])
        if taken:
            self.tr.skip(label, f"name collides with an already emitted symbol: {', '.join(taken)}")
            return []
        self._shim_names.update(shim)
        for owner, n in py:
            self._wrapper_ns(owner).add(n)
        return [Emit(b) for b in bindings]

    def _claim_module(self, name: str, label: str) -> bool:
        if keyword.iskeyword(name):
            self.tr.skip(label, f"wrapper name is a Python keyword: {name}")
            return False
        if name in self._module_names:
            self.tr.skip(label, f"name collides with an already emitted symbol: {name}")
            return False
        self._module_names.add(name)
        return True

    def _wrapper_taken(self, owner: Symbol | None, name: str) -> bool:
        if owner is None:
            return name in self._module_names
        return name in self._wrapper_ns(owner)

    def _wrapper_ns(self, owner: Symbol | None) -> set[str]:
        if owner is None:
            return self._module_names
        return self._class_names.setdefault(owner.goname, {"handle", "release"})


def _one(b: Binding | None) -> list[Binding]:
    return [] if b is None else [b]


# ---- renderers ---


def render_shim(events: list[Event], pkg: Package, opts: GenOptions) -> str:
    body = Printer("\t")
    for ev in events:
        if isinstance(ev, Section):
            body.blank()
            body.line(f"// ---- {ev.title} ---")
            body.line()
        elif isinstance(ev, TypeHelpers):
            body.lines(conversion_helpers(ev.sym))
            body.line()
        elif isinstance(ev, Emit):
            body.lines(ev.binding.shim)
            body.line()
    text = body.output()

    # Go rejects unused imports; keep the package linked even if nothing references it.
    import_ = f'"{pkg.path}"'
    if f"{pkg.name}." not in text:
        import_ = f'_ "{pkg.path}"'
    out = Printer("\t")
    out.raw(
        SHIM_PREAMBLE.format(
            name=opts.name,
            path=pkg.path,
            cmd=opts.command,
            pkgconfig=pkgconfig_name(opts.vm),
            import_=import_,
            handle_go=opts.handle.go,
            handle_cgo=opts.handle.cgo,
            handle_py=opts.handle.py,
            registry=registry_go_source(opts.handle),
        )
    )
    out.raw(text)
    return out.output()


def render_build(events: list[Event], pkg: Package, opts: GenOptions) -> str:
    out = Printer()
    out.raw(BUILD_PREAMBLE.format(name=opts.name, path=pkg.path, cmd=opts.command, handle_py=opts.handle.py))
    for ev in events:
        if isinstance(ev, Section):
            out.blank()
            out.line(f"# ---- {ev.title} ---")
        elif isinstance(ev, Emit):
            out.line(ev.binding.decl)
    out.raw(BUILD_FOOTER.format(name=opts.name))
    return out.output()


def render_wrapper(events: list[Event], pkg: Package, opts: GenOptions) -> str:
    out = Printer("    ")
    doc = f'"""\n{pkg.doc}\n"""\n\n' if pkg.doc else ""
    out.raw(WRAPPER_PREAMBLE.format(doc=doc, name=opts.name, path=pkg.path, cmd=opts.command))
    open_cls: Symbol | None = None
    for ev in events:
        if isinstance(ev, Section):
            out.line()
            out.line()
            out.line(f"# ---- {ev.title} ---")
        elif isinstance(ev, Constant):
            if ev.doc:
                out.lines(f"# {ln}".rstrip() for ln in ev.doc.split("\n"))
            out.line(f"{ev.name} = {ev.literal}")
        elif isinstance(ev, OpenClass):
            if open_cls is not None:
                raise GenerationError(f"class {ev.sym.goname} opened inside unclosed class {open_cls.goname}")
            open_cls = ev.sym
            out.line()
            out.lines(_class_header(ev, opts.name))
            out.indent()
        elif isinstance(ev, CloseClass):
            if open_cls is not ev.sym:
                raise GenerationError(f"close of class {ev.sym.goname} that is not open")
            out.outdent()
            open_cls = None
        elif isinstance(ev, Emit):
            b = ev.binding
            if not b.wrapper:
                continue
            if b.owner is not None and b.owner is not open_cls:
                raise GenerationError(f"{b.name}: wrapper for {b.owner.goname} emitted outside its class")
            if b.owner is None and open_cls is not None:
                raise GenerationError(f"{b.name}: module-level wrapper emitted inside class {open_cls.goname}")
            out.line()
            out.lines(b.wrapper)
    if open_cls is not None or out.depth != 0:
        raise GenerationError(f"class {open_cls.goname if open_cls else '?'} left open at end of wrapper module")
    return out.output()


def _class_header(ev: OpenClass, name: str) -> list[str]:
    cls = ev.sym.goname
    lines = [f"class {cls}(GoClass):"]
    doc = ev.doc.replace('"""', '\\"\\"\\"')
    if doc:
        lines.append(f'    """{doc}"""'.replace("\n", "\n    "))
    lines.append(f"    _fields = ({''.join(repr(f) + ', ' for f in ev.fields).rstrip()})")
    lines.append("")
    lines.append("    def __init__(self, *args, **kwargs):")
    lines.append("        if len(kwargs) == 1 and 'handle' in kwargs:")
    lines.append("            self.handle = kwargs['handle']")
    lines.append("        elif len(args) == 1 and not kwargs and isinstance(args[0], GoClass):")
    lines.append("            self.handle = args[0].handle")
    if not ev.constructible:
        lines.append("        else:")
        lines.append(f"            raise TypeError('{cls} must be created from a handle')")
        return _split(lines)
    lines.append("        else:")
    lines.append(f"            self.handle = _{name}.{cls}_CTor()")
    lines.append("            if len(args) > len(self._fields):")
    lines.append(f"                raise TypeError('{cls} takes at most %d positional arguments' % len(self._fields))")
    lines.append("            for fname, value in zip(self._fields, args):")
    lines.append("                setattr(self, fname, value)")
    lines.append("            for fname, value in kwargs.items():")
    lines.append("                if fname not in self._fields:")
    lines.append(f"                    raise TypeError('{cls} has no field %r' % fname)")
    lines.append("                setattr(self, fname, value)")
    return _split(lines)


def _split(lines: list[str]) -> list[str]:
    out: list[str] = []
    for ln in lines:
        out.extend(ln.split("\n"))
    return out


def render_makefile(pkg: Package, opts: GenOptions) -> str:
    return MAKEFILE.format(name=opts.name, path=pkg.path, cmd=opts.command, vm=opts.vm, libext=opts.libext)


@dataclass(frozen=True)
class Generated:
    name: str
    shim: str
    build: str
    wrapper: str
    makefile: str
    diagnostics: tuple[Diagnostic, ...] = field(default=())

    def files(self) -> dict[str, str]:
        return {
            f"{self.name}.go": self.shim,
            "build.py": self.build,
            f"{self.name}.py": self.wrapper,
            "Makefile": self.makefile,
        }

    def write(self, out_dir: str | Path) -> list[Path]:
        out_dir = Path(out_dir)
        out_dir.mkdir(parents=True, exist_ok=True)
        written: list[Path] = []
        for fname, text in self.files().items():
            p = out_dir / fname
            p.write_text(text, encoding="utf-8")
            written.append(p)
        return written


def generate(pkg: Package, opts: GenOptions) -> Generated:
    """Render all four outputs for an analyzed package."""
    if pkg.syms.handle != opts.handle:
        raise ConfigError(
            f"package was analyzed with handle {pkg.syms.handle}, generation configured with {opts.handle}"
        )
    translator = Translator(pkg, opts.handle, module=opts.name)
    planner = Planner(pkg, translator)
    events = planner.plan()
    diags = (*pkg.diagnostics, *planner.diagnostics)
    return Generated(
        name=opts.name,
        shim=render_shim(events, pkg, opts),
        build=render_build(events, pkg, opts),
        wrapper=render_wrapper(events, pkg, opts),
        makefile=render_makefile(pkg, opts),
        diagnostics=tuple(diags),
    )
