from __future__ import annotations

import copy

import pytest


_FOO = {
    "path": "example.com/foo",
    "name": "foo",
    "doc": "Package foo is used by the gopybind tests.",
    "types": [
        {
            "name": "Foo",
            "kind": "struct",
            "doc": "Foo holds a value.",
            "fields": [{"name": "Val", "type": "int"}],
        },
        {"name": "Shape", "kind": "interface", "doc": "Shape has an area."},
        {"name": "Celsius", "kind": "basic", "underlying": "float64"},
    ],
    "funcs": [
        {"name": "NewFoo", "params": [{"name": "v", "type": "int"}], "results": [{"type": "*Foo"}]},
        {
            "name": "Divide",
            "params": [{"name": "a", "type": "int"}, {"name": "b", "type": "int"}],
            "results": [{"type": "int"}, {"type": "error"}],
            "doc": "Divide returns a/b.",
        },
        {"name": "Triple", "params": [], "results": ["int", "int", "int"]},
        {"name": "Pair", "params": [], "results": ["int", "string"]},
        {"name": "Apply", "params": [{"name": "f", "type": "func(int) int"}], "results": ["int"]},
    ],
    "methods": [
        {"recv": "*Foo", "name": "Get", "params": [], "results": ["int"]},
        {"recv": "Shape", "name": "Area", "params": [], "results": ["float64"]},
    ],
    "consts": [{"name": "Pi", "type": "float64", "value": "3.14"}],
    "vars": [{"name": "Count", "type": "int"}],
}


@pytest.fixture
def foo_desc() -> dict:
    return copy.deepcopy(_FOO)


@pytest.fixture
def build():
    """Return a helper: raw description dict -> (Package, Generated)."""
    from gopybind.analysis import analyze
    from gopybind.config import GenOptions
    from gopybind.description import parse_description
    from gopybind.emit import generate

    def _build(desc: dict, **opts):
        pkg = analyze(parse_description(desc), handle=opts.get("handle"))
        gen_opts = GenOptions(package=pkg.path, name=opts.pop("name", pkg.name), vm="python3", libext=".so", **opts)
        return pkg, generate(pkg, gen_opts)

    return _build


@pytest.fixture
def translator():
    """Return a helper: raw description dict -> (Package, Translator)."""
    from gopybind.analysis import analyze
    from gopybind.description import parse_description
    from gopybind.translate import Translator

    def _make(desc: dict):
        pkg = analyze(parse_description(desc))
        return pkg, Translator(pkg)

    return _make
