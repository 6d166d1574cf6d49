"""Preambles for the four output streams.

All templates take: name (Go package name), path (import path), cmd
(regenerate command). The shim preamble also takes the handle triple.
"""

from __future__ import annotations

import os

SHIM_PREAMBLE = """\
/*
cgo stubs for package {path}.
File is generated by gopybind gen. Do not edit.
{cmd}
*/

package main

// #cgo pkg-config: {pkgconfig}
// #define Py_LIMITED_API
// #include <Python.h>
// #include <stdlib.h>
import "C"
import (
	"errors"
	"fmt"
	"sync"
	"unsafe"

	{import_}
)

func main() {{}}

// handle representation: go={handle_go} cgo={handle_cgo} py={handle_py}
{registry}
// boolGoToPy converts a Go bool to python-compatible C.char
func boolGoToPy(b bool) C.char {{
	if b {{
		return 1
	}}
	return 0
}}

// boolPyToGo converts a python-compatible C.char to Go bool
func boolPyToGo(b C.char) bool {{
	return b != 0
}}

// setPyErr raises a RuntimeError carrying msg in the calling Python thread
func setPyErr(msg string) {{
	cs := C.CString(msg)
	defer C.free(unsafe.Pointer(cs))
	C.PyErr_SetString(C.PyExc_RuntimeError, cs)
}}

// --- generated code for package: {name} below: ---
"""

BUILD_PREAMBLE = """\
# python build stubs for package {path}
# File is generated by gopybind gen. Do not edit.
# {cmd}

from pybindgen import retval, param, Module
import sys

mod = Module('_{name}')
mod.add_include('"{name}_go.h"')
mod.add_function('gopybind_release', None, [param('{handle_py}', 'h')])
"""

BUILD_FOOTER = """\

mod.generate(open('{name}.c', 'w'))
"""

WRAPPER_PREAMBLE = """\
{doc}# python wrapper for package {path}
# This is what you import to use the package.
# File is generated by gopybind gen. Do not edit.
# {cmd}

import _{name}


class GoClass(object):
    \"\"\"GoClass is the base class for all gopybind wrapper classes\"\"\"

    handle = 0

    def release(self):
        \"\"\"release drops the Go value behind this object; it must not be used afterwards\"\"\"
        if self.handle:
            _{name}.gopybind_release(self.handle)
            self.handle = 0

    def __repr__(self):
        return '%s(handle=%d)' % (type(self).__name__, self.handle)
"""

MAKEFILE = """\
# Makefile for python interface to Go package {path}.
# File is generated by gopybind gen. Do not edit.
# {cmd}

GOCMD=go
GOBUILD=$(GOCMD) build
PYTHON={vm}
PYTHON_CFG=$(PYTHON)-config
GCC=gcc
LIBEXT={libext}

# get the flags used to build python:
CFLAGS = $(shell $(PYTHON_CFG) --cflags)
LDFLAGS = $(shell $(PYTHON_CFG) --ldflags)

all: build

gen:
\t{cmd}

build:
\t# this will otherwise be built during go build and may be out of date
\t- rm {name}.c
\t# generate {name}_go$(LIBEXT) from {name}.go -- the cgo wrappers to go functions
\t$(GOBUILD) -buildmode=c-shared -ldflags="-s -w" -o {name}_go$(LIBEXT) {name}.go
\t# use pybindgen to build the {name}.c file which are the CPython wrappers to cgo wrappers..
\t# note: pip install pybindgen to get pybindgen if this fails
\t$(PYTHON) build.py
\t# build the _{name}$(LIBEXT) library that contains the cgo and CPython wrappers
\t# generated {name}.py python wrapper imports this c-code package
\t$(GCC) {name}.c -shared {name}_go$(LIBEXT) -o _{name}$(LIBEXT) $(CFLAGS) $(LDFLAGS)
"""


def pkgconfig_name(vm: str) -> str:
    """pkg-config target for the interpreter: a bare name, or a .pc path next to an absolute vm."""
    pypath, pyonly = os.path.split(vm)
    if not pypath:
        return pyonly
    pyroot = os.path.dirname(os.path.normpath(pypath))
    return os.path.join(pyroot, "lib", "pkgconfig", pyonly + ".pc")
