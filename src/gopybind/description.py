"""Package description interchange.

The package scanner (run outside gopybind) writes the exported surface of a
Go package as JSON, or as MessagePack for `.msgpack` / `.mpk` files. This
module reads that document into plain frozen records; `analysis` turns the
records into the `Package` model.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import msgpack

from .errors import DescriptionError

_MSGPACK_SUFFIXES = {".msgpack", ".mpk"}


@dataclass(frozen=True)
class DescParam:
    name: str
    type: str


@dataclass(frozen=True)
class DescFunc:
    name: str
    params: list[DescParam]
    results: list[DescParam]
    recv: str | None = None
    doc: str = ""
    variadic: bool = False


@dataclass(frozen=True)
class DescField:
    name: str
    type: str
    doc: str = ""


@dataclass(frozen=True)
class DescType:
    name: str
    kind: str
    underlying: str = ""
    fields: list[DescField] | None = None
    doc: str = ""


@dataclass(frozen=True)
class DescConst:
    name: str
    type: str
    value: str
    doc: str = ""


@dataclass(frozen=True)
class DescVar:
    name: str
    type: str
    doc: str = ""


@dataclass(frozen=True)
class Description:
    path: str
    name: str
    doc: str
    types: list[DescType]
    funcs: list[DescFunc]
    methods: list[DescFunc]
    consts: list[DescConst]
    vars: list[DescVar]


def load_description(path: str | Path) -> Description:
    path = Path(path)
    if not path.exists():
        raise DescriptionError(f"package description not found at {path}")
    try:
        if path.suffix in _MSGPACK_SUFFIXES:
            obj = msgpack.unpackb(path.read_bytes(), raw=False)
        else:
            obj = json.loads(path.read_text(encoding="utf-8"))
    except Exception as e:  # noqa: BLE001 - boundary parse
        raise DescriptionError(f"failed to parse package description {path}: {e}") from e
    return parse_description(obj)


def dump_description(obj: dict[str, Any], path: str | Path) -> None:
    """Write a raw description document, choosing the format from the suffix."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    if path.suffix in _MSGPACK_SUFFIXES:
        path.write_bytes(msgpack.packb(obj, use_bin_type=True))
    else:
        path.write_text(json.dumps(obj, indent=2), encoding="utf-8")


def parse_description(obj: Any) -> Description:
    if not isinstance(obj, dict):
        raise DescriptionError("package description must be an object")
    pkg_path = obj.get("path")
    if not isinstance(pkg_path, str) or not pkg_path:
        raise DescriptionError("package description requires a non-empty 'path'")
    name = obj.get("name")
    if name is None:
        name = pkg_path.rsplit("/", 1)[-1]
    if not isinstance(name, str) or not name:
        raise DescriptionError("package description 'name' must be a non-empty string")

    types: list[DescType] = []
    for item in _list(obj, "types"):
        tname = _str(item, "name", where="type")
        kind = item.get("kind")
        if kind not in ("struct", "interface", "basic"):
            raise DescriptionError(f"type {tname}: unknown kind {kind!r}")
        fields: list[DescField] | None = None
        if kind == "struct":
            fields = [
                DescField(
                    name=_str(f, "name", where=f"field of {tname}"),
                    type=_str(f, "type", where=f"field of {tname}"),
                    doc=_doc(f),
                )
                for f in _list(item, "fields")
            ]
        underlying = ""
        if kind == "basic":
            underlying = _str(item, "underlying", where=f"type {tname}")
        types.append(DescType(name=tname, kind=kind, underlying=underlying, fields=fields, doc=_doc(item)))

    funcs = [_func(item, method=False) for item in _list(obj, "funcs")]
    methods = [_func(item, method=True) for item in _list(obj, "methods")]

    consts: list[DescConst] = []
    for item in _list(obj, "consts"):
        cname = _str(item, "name", where="const")
        value = item.get("value")
        if isinstance(value, bool):
            value = "true" if value else "false"
        elif isinstance(value, (int, float)):
            value = repr(value)
        if not isinstance(value, str):
            raise DescriptionError(f"const {cname}: 'value' must be a string")
        consts.append(DescConst(name=cname, type=_str(item, "type", where=f"const {cname}"), value=value, doc=_doc(item)))

    vars_: list[DescVar] = []
    for item in _list(obj, "vars"):
        vname = _str(item, "name", where="var")
        vars_.append(DescVar(name=vname, type=_str(item, "type", where=f"var {vname}"), doc=_doc(item)))

    return Description(
        path=pkg_path,
        name=name,
        doc=_doc(obj),
        types=types,
        funcs=funcs,
        methods=methods,
        consts=consts,
        vars=vars_,
    )


def _func(item: dict[str, Any], *, method: bool) -> DescFunc:
    where = "method" if method else "func"
    name = _str(item, "name", where=where)
    recv = None
    if method:
        recv = _str(item, "recv", where=f"method {name}")
    params = [_param(p, i, where=f"{where} {name}") for i, p in enumerate(_list(item, "params"))]
    results = [_param(p, i, where=f"{where} {name}") for i, p in enumerate(_list(item, "results"))]
    variadic = bool(item.get("variadic", False)) or any(p.type.startswith("...") for p in params)
    return DescFunc(name=name, params=params, results=results, recv=recv, doc=_doc(item), variadic=variadic)


def _param(p: Any, i: int, *, where: str) -> DescParam:
    # Scanner output may list bare type strings for unnamed params.
    if isinstance(p, str):
        return DescParam(name="", type=p)
    if not isinstance(p, dict):
        raise DescriptionError(f"{where}: parameter {i} must be an object or a type string")
    name = p.get("name", "")
    if not isinstance(name, str):
        raise DescriptionError(f"{where}: parameter {i} name must be a string")
    return DescParam(name=name, type=_str(p, "type", where=where))


def _list(obj: dict[str, Any], key: str) -> list[Any]:
    v = obj.get(key)
    if v is None:
        return []
    if not isinstance(v, list):
        raise DescriptionError(f"'{key}' must be a list")
    for x in v:
        if not isinstance(x, (dict, str)):
            raise DescriptionError(f"'{key}' entries must be objects")
    return v


def _str(obj: Any, key: str, *, where: str) -> str:
    if not isinstance(obj, dict):
        raise DescriptionError(f"{where}: expected an object")
    v = obj.get(key)
    if not isinstance(v, str) or not v:
        raise DescriptionError(f"{where}: '{key}' must be a non-empty string")
    return v


def _doc(obj: dict[str, Any]) -> str:
    d = obj.get("doc")
    return d.strip() if isinstance(d, str) else ""
