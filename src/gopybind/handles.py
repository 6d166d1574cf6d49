"""Opaque handle registry.

Native values whose layout cannot cross the boundary are stored here and
the host holds the integer handle instead. `HandleRegistry` is the reference
implementation; `registry_go_source` renders the same design as Go for the
shim, where it is created in `init()` and lives until the process exits.
"""

from __future__ import annotations

import enum
import itertools
import threading
from dataclasses import dataclass
from typing import Any

from .config import HandleRepr


class Status(enum.Enum):
    FOUND = "found"
    NOT_FOUND = "not_found"
    TYPE_MISMATCH = "type_mismatch"


@dataclass(frozen=True)
class Resolution:
    status: Status
    value: Any = None
    kind: str | None = None

    @property
    def ok(self) -> bool:
        return self.status is Status.FOUND


def kind_of(value: Any) -> str:
    """Dynamic kind tag for `value` (the Python analogue of Go's `%T`)."""
    t = type(value)
    return f"{t.__module__}.{t.__qualname__}"


class HandleRegistry:
    """Process-wide table mapping handles to (kind, value).

    Handles start at 1 and are never reused, so a stale handle held by the
    host can only miss, never alias a newer value. Every operation takes the
    single lock; no ordering is promised between concurrent allocations.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._counter = itertools.count(1)
        self._entries: dict[int, tuple[str, Any]] = {}

    def allocate(self, value: Any, *, kind: str | None = None) -> int:
        k = kind if kind is not None else kind_of(value)
        with self._lock:
            h = next(self._counter)
            self._entries[h] = (k, value)
        return h

    def resolve(self, handle: int, kind: str | None = None) -> Resolution:
        """Look up `handle`, checking its stored kind against `kind`.

        `kind=None` accepts any stored kind; the caller then performs its own
        capability check (interface receivers).
        """
        with self._lock:
            entry = self._entries.get(handle)
        if entry is None:
            return Resolution(Status.NOT_FOUND)
        stored_kind, value = entry
        if kind is not None and kind != stored_kind:
            return Resolution(Status.TYPE_MISMATCH, kind=stored_kind)
        return Resolution(Status.FOUND, value=value, kind=stored_kind)

    def release(self, handle: int) -> bool:
        with self._lock:
            return self._entries.pop(handle, None) is not None

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, handle: object) -> bool:
        with self._lock:
            return handle in self._entries


def registry_go_source(handle: HandleRepr) -> str:
    """Go source of the registry emitted into the shim preamble."""
    return _GO_REGISTRY.format(go=handle.go, cgo=handle.cgo)


_GO_REGISTRY = """\
// GoHandle is the go-side key of the handle table, CGoHandle its shim form.
type GoHandle {go}
type CGoHandle {cgo}

var errHandleNotFound = errors.New("gopybind: handle not found")
var errHandleTypeMismatch = errors.New("gopybind: handle type mismatch")

type handleEntry struct {{
	kind  string
	value interface{{}}
}}

// HandleRegistry maps handles to Go values that cannot cross into Python.
// Handles are never reused; 0 is never issued.
type HandleRegistry struct {{
	mu   sync.Mutex
	last GoHandle
	vars map[GoHandle]handleEntry
}}

func NewHandleRegistry() *HandleRegistry {{
	return &HandleRegistry{{vars: map[GoHandle]handleEntry{{}}}}
}}

// Allocate stores v and returns a fresh handle for it.
func (r *HandleRegistry) Allocate(v interface{{}}) GoHandle {{
	r.mu.Lock()
	defer r.mu.Unlock()
	r.last++
	r.vars[r.last] = handleEntry{{kind: fmt.Sprintf("%T", v), value: v}}
	return r.last
}}

// Resolve returns the value for h. An empty kind accepts any stored value.
func (r *HandleRegistry) Resolve(h GoHandle, kind string) (interface{{}}, error) {{
	r.mu.Lock()
	defer r.mu.Unlock()
	e, ok := r.vars[h]
	if !ok {{
		return nil, errHandleNotFound
	}}
	if kind != "" && kind != e.kind {{
		return nil, errHandleTypeMismatch
	}}
	return e.value, nil
}}

// Release drops h from the table.
func (r *HandleRegistry) Release(h GoHandle) {{
	r.mu.Lock()
	defer r.mu.Unlock()
	delete(r.vars, h)
}}

var handles *HandleRegistry

func init() {{
	handles = NewHandleRegistry()
}}

//export gopybind_release
func gopybind_release(h CGoHandle) {{
	handles.Release(GoHandle(h))
}}
"""
