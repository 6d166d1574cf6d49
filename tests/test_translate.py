from __future__ import annotations

import pytest

from gopybind.errors import GenerationError
from gopybind.model import Func, Kind, Param, Symbol
from gopybind.translate import check_signature, shim_name


def _method(pkg, recv: str, name: str):
    for m in pkg.struct(recv).methods:
        if m.name == name:
            return m
    raise AssertionError(name)


def _func(pkg, name: str):
    for f in pkg.funcs:
        if f.name == name:
            return f
    for st in pkg.structs:
        for f in st.ctors:
            if f.name == name:
                return f
    raise AssertionError(name)


def test_method_resolves_receiver_and_returns_converted_result(foo_desc, translator):
    pkg, tr = translator(foo_desc)
    b = tr.translate(_method(pkg, "Foo", "Get"))
    assert b is not None
    assert b.name == "Foo_Get"
    assert b.owner is pkg.struct("Foo").sym
    assert b.shim == (
        "//export Foo_Get",
        "func Foo_Get(_handle CGoHandle) C.long {",
        '\tvifc, err := handles.Resolve(GoHandle(_handle), "*foo.Foo")',
        "\tif err != nil {",
        "\t\treturn C.long(0)",
        "\t}",
        "\trecv := vifc.(*foo.Foo)",
        "\treturn C.long(recv.Get())",
        "}",
    )
    assert b.decl == "mod.add_function('Foo_Get', retval('long'), [param('int64_t', '_handle')])"
    assert b.wrapper == ("def Get(self):", "    return _foo.Foo_Get(self.handle)")
    assert not any("setPyErr" in ln for ln in b.shim)


def test_value_and_error_sets_host_error_and_returns_zero(foo_desc, translator):
    pkg, tr = translator(foo_desc)
    b = tr.translate(_func(pkg, "Divide"))
    assert b is not None
    assert b.shim == (
        "//export Divide",
        "func Divide(a C.long, b C.long) C.long {",
        "\tcret, err := foo.Divide(int(a), int(b))",
        "\tif err != nil {",
        "\t\tsetPyErr(err.Error())",
        "\t\treturn C.long(0)",
        "\t}",
        "\treturn C.long(cret)",
        "}",
    )
    assert b.decl == "mod.add_function('Divide', retval('long'), [param('long', 'a'), param('long', 'b')])"
    assert b.wrapper == (
        "def Divide(a, b):",
        '    """Divide returns a/b."""',
        "    return _foo.Divide(a, b)",
    )


def test_constructor_returns_handle_wrapped_in_class(foo_desc, translator):
    pkg, tr = translator(foo_desc)
    assert [f.name for f in pkg.struct("Foo").ctors] == ["NewFoo"]
    b = tr.translate(_func(pkg, "NewFoo"))
    assert b is not None
    assert b.shim == (
        "//export NewFoo",
        "func NewFoo(v C.long) CGoHandle {",
        "\treturn handleFromPtr_Foo(foo.NewFoo(int(v)))",
        "}",
    )
    assert b.decl == "mod.add_function('NewFoo', retval('int64_t'), [param('long', 'v')])"
    assert b.wrapper == ("def NewFoo(v):", "    return Foo(handle=_foo.NewFoo(v))")


def test_error_only_function_is_void(translator):
    pkg, tr = translator(
        {
            "path": "example.com/foo",
            "funcs": [{"name": "Check", "params": [{"name": "s", "type": "string"}], "results": ["error"]}],
        }
    )
    b = tr.translate(_func(pkg, "Check"))
    assert b is not None
    assert b.shim == (
        "//export Check",
        "func Check(s *C.char) {",
        "\tif err := foo.Check(C.GoString(s)); err != nil {",
        "\t\tsetPyErr(err.Error())",
        "\t}",
        "}",
    )
    assert b.decl == "mod.add_function('Check', None, [param('char*', 's')])"
    assert b.wrapper == ("def Check(s):", "    _foo.Check(s)")


def test_interface_receiver_checks_dynamic_capability(foo_desc, translator):
    pkg, tr = translator(foo_desc)
    area = pkg.ifaces[0].methods[0]
    b = tr.translate(area)
    assert b is not None
    assert b.name == "Shape_Area"
    assert '\tvifc, err := handles.Resolve(GoHandle(_handle), "")' in b.shim
    assert "\trecv, ok := vifc.(foo.Shape)" in b.shim
    assert "\t\treturn C.double(0)" in b.shim


def test_handle_arguments_pass_their_handle(translator):
    pkg, tr = translator(
        {
            "path": "example.com/foo",
            "types": [{"name": "Foo", "kind": "struct"}],
            "funcs": [{"name": "Use", "params": [{"name": "f", "type": "*Foo"}, {"name": "flag", "type": "bool"}]}],
        }
    )
    b = tr.translate(_func(pkg, "Use"))
    assert b is not None
    assert b.shim[1] == "func Use(f CGoHandle, flag C.char) {"
    assert b.shim[2] == "\tfoo.Use(ptrFromHandle_Foo(f), boolPyToGo(flag))"
    assert b.wrapper[-1] == "    _foo.Use(f.handle, flag)"


@pytest.mark.parametrize(
    ("fname", "reason"),
    [
        ("Triple", "too many results"),
        ("Pair", "second of two results must be error"),
        ("Apply", "function-typed parameter"),
    ],
)
def test_unsupported_signatures_are_skipped_with_a_diagnostic(foo_desc, translator, fname, reason):
    pkg, tr = translator(foo_desc)
    assert tr.translate(_func(pkg, fname)) is None
    assert len(tr.diagnostics) == 1
    assert tr.diagnostics[0].symbol == fname
    assert reason in tr.diagnostics[0].reason


def test_unresolved_and_unsupported_types_are_skipped(translator):
    pkg, tr = translator(
        {
            "path": "example.com/foo",
            "funcs": [
                {"name": "Ext", "params": [{"name": "t", "type": "bar.Thing"}]},
                {"name": "Sum", "params": [{"name": "xs", "type": "[]int"}], "results": ["int"]},
                {"name": "Join", "params": [{"name": "xs", "type": "...string"}], "results": ["string"]},
                {"name": "Fail", "results": ["error", "int"]},
            ],
        }
    )
    for fn in pkg.funcs:
        assert tr.translate(fn) is None
    reasons = {d.symbol: d.reason for d in tr.diagnostics}
    assert reasons["Ext"] == "unresolved parameter type bar.Thing"
    assert reasons["Sum"] == "unsupported parameter type []int"
    assert reasons["Join"] == "variadic signatures are not supported"
    assert "second of two results must be error" in reasons["Fail"]


def test_parameter_names_avoid_keywords_and_shim_locals(translator):
    pkg, tr = translator(
        {
            "path": "example.com/foo",
            "funcs": [
                {
                    "name": "Odd",
                    "params": [
                        {"name": "lambda", "type": "int"},
                        {"name": "err", "type": "int"},
                        {"name": "", "type": "int"},
                    ],
                }
            ],
        }
    )
    b = tr.translate(_func(pkg, "Odd"))
    assert b is not None
    assert b.wrapper[0] == "def Odd(lambda_, err_, arg_2):"


def test_method_names_are_prefixed_by_their_type():
    recv = Symbol(kind=Kind.STRUCT, id="Foo", goname="Foo", gofmt="foo.Foo")
    assert shim_name(Func(name="Bar", recv=recv)) == "Foo_Bar"
    assert shim_name(Func(name="Bar")) == "Bar"


def test_missing_zero_value_is_fatal(translator):
    pkg, tr = translator({"path": "example.com/foo"})
    broken = Symbol(kind=Kind.BASIC, id="int", goname="int", gofmt="int", cgoname="C.long", cpyname="long")
    err = Symbol(kind=Kind.ERROR, id="error", goname="error", gofmt="error")
    fn = Func(name="Broken", results=(Param("", "int", broken), Param("", "error", err)))
    check_signature(fn)
    with pytest.raises(GenerationError):
        tr.translate(fn)


def test_rendering_an_unresolved_result_is_fatal(translator):
    pkg, tr = translator({"path": "example.com/foo"})
    fn = Func(name="Lost", results=(Param("", "bar.Thing", None),))
    with pytest.raises(GenerationError):
        tr.render(fn)


def test_field_accessors(foo_desc, translator):
    pkg, tr = translator(foo_desc)
    st = pkg.struct("Foo")
    get, set_ = tr.field(st, st.fields[0])
    assert get.name == "Foo_Val_Get"
    assert set_.name == "Foo_Val_Set"
    assert "\tp := ptrFromHandle_Foo(_handle)" in get.shim
    assert "\treturn C.long(p.Val)" in get.shim
    assert "\tp.Val = int(val)" in set_.shim
    assert get.wrapper == ("@property", "def Val(self):", "    return _foo.Foo_Val_Get(self.handle)")
    assert set_.wrapper[0] == "@Val.setter"


def test_package_variable_accessors(foo_desc, translator):
    pkg, tr = translator(foo_desc)
    get, set_ = tr.var(pkg.vars[0])
    assert get.name == "foo_Count"
    assert set_.name == "foo_Set_Count"
    assert "\treturn C.long(foo.Count)" in get.shim
    assert "\tfoo.Count = int(val)" in set_.shim
    assert set_.wrapper[-1] == "    _foo.foo_Set_Count(value)"


@pytest.mark.parametrize(
    ("typ", "value", "literal"),
    [
        ("bool", "true", "True"),
        ("string", '"a\\tb"', repr("a\tb")),
        ("string", "`raw\\n`", repr("raw\\n")),
        ("int", "42", "42"),
        ("float64", "1/3", "(1/3)"),
        ("float64", "6.02e23", "6.02e23"),
    ],
)
def test_constant_literals(translator, typ, value, literal):
    pkg, tr = translator(
        {"path": "example.com/foo", "consts": [{"name": "C", "type": typ, "value": value}]}
    )
    assert tr.const(pkg.consts[0]) == literal


def test_constant_with_bad_value_is_skipped(translator):
    pkg, tr = translator({"path": "example.com/foo", "consts": [{"name": "C", "type": "int", "value": "iota"}]})
    assert tr.const(pkg.consts[0]) is None
    assert tr.diagnostics[0].symbol == "C"


def test_parameter_named_after_the_package_is_renamed(translator):
    pkg, tr = translator(
        {
            "path": "example.com/color",
            "funcs": [{"name": "Scale", "params": [{"name": "color", "type": "int"}], "results": ["int"]}],
        }
    )
    b = tr.translate(_func(pkg, "Scale"))
    assert b is not None
    assert b.shim[1] == "func Scale(color_ C.long) C.long {"
    assert b.shim[2] == "\treturn C.long(color.Scale(int(color_)))"
    assert b.decl == "mod.add_function('Scale', retval('long'), [param('long', 'color_')])"
    assert b.wrapper[0] == "def Scale(color_):"


def test_parameters_avoid_shim_globals_and_type_names(foo_desc, translator):
    foo_desc["methods"].append(
        {
            "recv": "*Foo",
            "name": "Mix",
            "params": [
                {"name": "handles", "type": "int"},
                {"name": "int", "type": "int"},
                {"name": "Foo", "type": "*Foo"},
                {"name": "C", "type": "bool"},
            ],
            "results": ["*Foo"],
        }
    )
    pkg, tr = translator(foo_desc)
    b = tr.translate(_method(pkg, "Foo", "Mix"))
    assert b is not None
    assert b.shim[1] == "func Foo_Mix(_handle CGoHandle, handles_ C.long, int_ C.long, Foo_ CGoHandle, C_ C.char) CGoHandle {"
    assert '\tvifc, err := handles.Resolve(GoHandle(_handle), "*foo.Foo")' in b.shim
    assert b.shim[-2] == "\treturn handleFromPtr_Foo(recv.Mix(int(handles_), int(int_), ptrFromHandle_Foo(Foo_), boolPyToGo(C_)))"
    assert b.wrapper[-1] == "    return Foo(handle=_foo.Foo_Mix(self.handle, handles_, int_, Foo_.handle, C_))"


@pytest.mark.parametrize(
    ("value", "literal"),
    [
        ('"\\x41\\x42"', repr("AB")),
        ('"\\101"', repr("A")),
        ('"caf\\u00e9"', repr("café")),
        ('"\\U0001F600"', repr("\U0001F600")),
        ('"\\xc3\\xa9"', repr("é")),
        ('"say \\"hi\\""', repr('say "hi"')),
    ],
)
def test_go_string_escapes_are_decoded(translator, value, literal):
    pkg, tr = translator(
        {"path": "example.com/foo", "consts": [{"name": "S", "type": "string", "value": value}]}
    )
    assert tr.const(pkg.consts[0]) == literal
    assert tr.diagnostics == []


@pytest.mark.parametrize("value", ['"\\xff"', '"\\q"', '"\\400"', '"\\ud800"'])
def test_undecodable_string_constant_is_skipped(translator, value):
    pkg, tr = translator(
        {"path": "example.com/foo", "consts": [{"name": "S", "type": "string", "value": value}]}
    )
    assert tr.const(pkg.consts[0]) is None
    assert tr.diagnostics[0].symbol == "S"
    assert tr.diagnostics[0].reason.startswith("invalid string constant")
