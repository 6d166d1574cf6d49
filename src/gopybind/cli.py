from __future__ import annotations

import argparse
import importlib.metadata
import logging
from pathlib import Path


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(prog="gopybind")
    parser.add_argument("-v", "--verbose", action="count", default=0, help="Log skipped symbols (-vv: debug).")
    sub = parser.add_subparsers(dest="cmd", required=True)

    sub.add_parser("version", help="Print gopybind version.")

    p_gen = sub.add_parser("gen", help="Generate shim, build script, wrapper and Makefile for a Go package.")
    p_gen.add_argument(
        "--desc",
        required=True,
        help="Package description written by the scanner (.json, or .msgpack/.mpk).",
    )
    p_gen.add_argument("--out", required=True, help="Output directory.")
    p_gen.add_argument("--name", default=None, help="Package display name (default: Go package name).")
    p_gen.add_argument("-vm", "--vm", default=None, help="Python interpreter for the Makefile (default: GOPYBIND_VM or python3).")
    p_gen.add_argument("--libext", default=None, help="Shared library extension (default: host platform).")
    p_gen.add_argument("--handle-go", default="int64", help="Go type of a handle.")
    p_gen.add_argument("--handle-cgo", default="C.longlong", help="cgo type of a handle.")
    p_gen.add_argument("--handle-py", default="int64_t", help="pybindgen type tag of a handle.")

    args = parser.parse_args(argv)
    if args.verbose:
        logging.basicConfig(
            level=logging.DEBUG if args.verbose > 1 else logging.INFO,
            format="gopybind: %(message)s",
        )

    if args.cmd == "version":
        try:
            print(importlib.metadata.version("gopybind"))
        except importlib.metadata.PackageNotFoundError:
            print("0.0.0")
        return

    if args.cmd == "gen":
        from .analysis import analyze
        from .config import GenOptions, HandleRepr
        from .description import load_description
        from .emit import generate
        from .errors import GoPyBindError

        try:
            handle = HandleRepr(go=args.handle_go, cgo=args.handle_cgo, py=args.handle_py)
            desc = load_description(Path(args.desc))
            pkg = analyze(desc, handle=handle)
            kw = {}
            if args.vm:
                kw["vm"] = args.vm
            if args.libext:
                kw["libext"] = args.libext
            opts = GenOptions(package=pkg.path, name=args.name or pkg.name, handle=handle, **kw)
            out = generate(pkg, opts)
        except GoPyBindError as e:
            raise SystemExit(f"gopybind: {e}") from e

        for p in out.write(Path(args.out)):
            print(str(p))
        if out.diagnostics:
            print(f"skipped {len(out.diagnostics)} symbol(s); rerun with -v for details")
        return
