"""Indenting line buffer used by every output stream."""

from __future__ import annotations

from collections.abc import Iterable


class Printer:
    """Line buffer with its own nesting state.

    Each output stream owns one Printer, so opening a block in one stream
    never shifts the indentation of another.
    """

    def __init__(self, indent: str = "    "):
        self._lines: list[str] = []
        self._depth = 0
        self._indent = indent

    @property
    def depth(self) -> int:
        return self._depth

    def line(self, text: str = "") -> None:
        if text:
            self._lines.append(self._indent * self._depth + text)
        else:
            self._lines.append("")

    def lines(self, texts: Iterable[str]) -> None:
        for text in texts:
            self.line(text)

    def raw(self, text: str) -> None:
        """Append text verbatim (preambles)."""
        self._lines.extend(text.split("\n"))

    def blank(self) -> None:
        if self._lines and self._lines[-1] != "":
            self._lines.append("")

    def indent(self) -> None:
        self._depth += 1

    def outdent(self) -> None:
        if self._depth == 0:
            raise ValueError("outdent below zero")
        self._depth -= 1

    def output(self) -> str:
        return "\n".join(self._lines).rstrip("\n") + "\n"
