"""Document sink interface the renderer writes into."""

from __future__ import annotations

import enum
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Protocol, Union, runtime_checkable


class Justify(enum.Enum):
    LEFT = "left"
    CENTER = "center"
    RIGHT = "right"


@dataclass(frozen=True)
class Image:
    src: str
    alt: str = ""


@dataclass(frozen=True)
class Bold:
    text: str


@dataclass(frozen=True)
class Link:
    href: str
    content: str | Image


Inline = Union[str, Bold, Link, Image]


@runtime_checkable
class Sink(Protocol):
    """Ordered structural calls; every start_* is closed by its end_*."""

    def start_section(self, level: int, title: str, anchor: str) -> None: ...

    def end_section(self, level: int) -> None: ...

    def paragraph(self, *parts: Inline) -> None: ...

    def start_table(self, justification: Sequence[Justify]) -> None: ...

    def table_header(self, cells: Sequence[Inline]) -> None: ...

    def table_row(self, cells: Sequence[Inline]) -> None: ...

    def end_table(self) -> None: ...

    def start_list(self) -> None: ...

    def start_list_item(self, *parts: Inline) -> None: ...

    def end_list_item(self) -> None: ...

    def end_list(self) -> None: ...

    def start_details(self, title: str) -> None: ...

    def end_details(self) -> None: ...
