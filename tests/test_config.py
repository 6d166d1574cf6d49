from __future__ import annotations

import sys

import pytest

from gopybind.config import GenOptions, HandleRepr, default_libext, default_vm
from gopybind.errors import ConfigError


def test_default_handle_repr():
    h = HandleRepr()
    assert (h.go, h.cgo, h.py) == ("int64", "C.longlong", "int64_t")


def test_handle_repr_rejects_non_integer_go_type():
    with pytest.raises(ConfigError):
        HandleRepr(go="string")


def test_handle_repr_rejects_non_c_shim_type():
    with pytest.raises(ConfigError):
        HandleRepr(cgo="int64")


def test_vm_env_override(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setenv("GOPYBIND_VM", "/opt/py/bin/python3.12")
    assert default_vm() == "/opt/py/bin/python3.12"
    monkeypatch.delenv("GOPYBIND_VM")
    assert default_vm() == "python3"


def test_libext_env_override(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setenv("GOPYBIND_LIBEXT", ".pyd")
    assert default_libext() == ".pyd"


def test_libext_follows_platform(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.delenv("GOPYBIND_LIBEXT", raising=False)
    monkeypatch.setattr(sys, "platform", "darwin")
    assert default_libext() == ".dylib"
    monkeypatch.setattr(sys, "platform", "win32")
    assert default_libext() == ".dll"
    monkeypatch.setattr(sys, "platform", "sunos5")
    with pytest.raises(ConfigError):
        default_libext()


def test_gen_options_command_uses_interpreter_basename():
    opts = GenOptions(package="example.com/foo", name="foo", vm="/usr/bin/python3", libext=".so")
    assert opts.command == "gopybind gen -vm=python3 example.com/foo"


def test_gen_options_validation():
    with pytest.raises(ConfigError):
        GenOptions(package="", name="foo", vm="python3", libext=".so")
    with pytest.raises(ConfigError):
        GenOptions(package="example.com/foo", name="foo-bar", vm="python3", libext=".so")
