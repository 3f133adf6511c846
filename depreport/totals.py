"""Scope-weighted running totals."""

from __future__ import annotations

from collections.abc import Callable

from depreport.models import (
    SCOPE_COMPILE,
    SCOPE_PROVIDED,
    SCOPE_RUNTIME,
    SCOPE_SYSTEM,
    SCOPE_TEST,
)

# Sub-total order used for indexing and for rendering.
TOTAL_SCOPES = (SCOPE_COMPILE, SCOPE_TEST, SCOPE_RUNTIME, SCOPE_PROVIDED, SCOPE_SYSTEM)
SCOPES_COUNT = len(TOTAL_SCOPES)
GRAND_TOTAL = -1


class ScopeAccumulator:
    """A grand total plus one sub-total per known scope.

    Values added with an unknown scope (or none) only count towards the
    grand total.
    """

    def __init__(self, number_format: Callable[[int], str] = str) -> None:
        self._format = number_format
        self._total = 0
        self._by_scope: dict[str, int] = dict.fromkeys(TOTAL_SCOPES, 0)

    def increment(self, scope: str | None) -> None:
        self.add(1, scope)

    def add(self, amount: int, scope: str | None) -> None:
        self._total += amount
        if scope in self._by_scope:
            self._by_scope[scope] += amount

    def total(self, index: int = GRAND_TOTAL) -> int:
        if 0 <= index < SCOPES_COUNT:
            return self._by_scope[TOTAL_SCOPES[index]]
        return self._total

    def scope_total(self, scope: str) -> int:
        return self._by_scope.get(scope, 0)

    def format(self, index: int = GRAND_TOTAL) -> str:
        value = self.total(index)
        if value <= 0:
            return ""
        if 0 <= index < SCOPES_COUNT:
            return f"{TOTAL_SCOPES[index]}: {self._format(value)}"
        return self._format(value)

    def __str__(self) -> str:
        parts = [self.format(i) for i in range(SCOPES_COUNT) if self.total(i) > 0]
        return f"{self._format(self._total)} ({', '.join(parts)})"
