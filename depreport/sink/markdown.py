"""Markdown rendering of the report."""

from __future__ import annotations

import html
from collections.abc import Sequence

from depreport.sink.base import Bold, Image, Inline, Justify, Link

_ALIGN = {Justify.LEFT: ":---", Justify.CENTER: ":---:", Justify.RIGHT: "---:"}


def _escape(text: str) -> str:
    return text.replace("\\", "\\\\").replace("|", "\\|").replace("\n", " ")


def render_inline(part: Inline) -> str:
    if isinstance(part, Bold):
        return f"**{_escape(part.text)}**" if part.text else ""
    if isinstance(part, Image):
        return f"![{_escape(part.alt)}]({part.src})"
    if isinstance(part, Link):
        content = part.content
        label = render_inline(content) if isinstance(content, Image) else _escape(content)
        return f"[{label}]({part.href})" if part.href else label
    return _escape(part)


class MarkdownSink:
    """Collects Markdown lines; read the document back with :meth:`getvalue`."""

    def __init__(self) -> None:
        self._lines: list[str] = []
        self._list_depth = 0
        self._details_depth = 0
        self._table_has_header = False
        self._justification: list[Justify] = []

    def getvalue(self) -> str:
        return "\n".join(self._lines).rstrip() + "\n"

    # ── helpers ────────────────────────────────────────────────────────────

    @property
    def _indent(self) -> str:
        return "  " * self._list_depth

    def _emit(self, line: str = "") -> None:
        self._lines.append(f"{self._indent}{line}" if line else "")

    def _blank(self) -> None:
        if self._lines and self._lines[-1] != "":
            self._lines.append("")

    # ── sections ───────────────────────────────────────────────────────────

    def start_section(self, level: int, title: str, anchor: str) -> None:
        self._blank()
        self._emit(f'<a id="{anchor}"></a>')
        self._emit(f"{'#' * max(1, min(level, 6))} {_escape(title)}")
        self._blank()

    def end_section(self, level: int) -> None:
        self._blank()

    # ── blocks ─────────────────────────────────────────────────────────────

    def paragraph(self, *parts: Inline) -> None:
        text = "".join(render_inline(p) for p in parts)
        if self._details_depth:
            self._emit(f"{text}<br/>")
            return
        self._blank()
        self._emit(text)
        self._blank()

    def start_table(self, justification: Sequence[Justify]) -> None:
        self._blank()
        self._table_has_header = False
        self._justification = list(justification)

    def table_header(self, cells: Sequence[Inline]) -> None:
        if not self._table_has_header:
            self._row(cells)
            aligns = [_ALIGN[j] for j in self._justification[: len(cells)]]
            aligns += ["---"] * (len(cells) - len(aligns))
            self._emit("| " + " | ".join(aligns) + " |")
            self._table_has_header = True
            return
        # repeated headers (totals) render as a bold row
        self._row([Bold(c) if isinstance(c, str) else c for c in cells])

    def table_row(self, cells: Sequence[Inline]) -> None:
        self._row(cells)

    def _row(self, cells: Sequence[Inline]) -> None:
        self._emit("| " + " | ".join(render_inline(c) for c in cells) + " |")

    def end_table(self) -> None:
        self._blank()

    # ── lists ──────────────────────────────────────────────────────────────

    def start_list(self) -> None:
        if self._list_depth == 0:
            self._blank()

    def start_list_item(self, *parts: Inline) -> None:
        self._emit("- " + "".join(render_inline(p) for p in parts))
        self._list_depth += 1

    def end_list_item(self) -> None:
        self._list_depth -= 1

    def end_list(self) -> None:
        if self._list_depth == 0:
            self._blank()

    # ── expandable detail blocks ──────────────────────────────────────────

    def start_details(self, title: str) -> None:
        summary = html.escape(title.replace("\n", " "))
        self._emit(f"<details><summary>{summary}</summary>")
        self._details_depth += 1

    def end_details(self) -> None:
        self._details_depth -= 1
        self._emit("</details>")
