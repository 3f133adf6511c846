"""Locale-aware number and file-size formatting."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_EVEN, Decimal

KB = 1024
MB = 1024 * 1024
GB = 1024 * 1024 * 1024


@dataclass(frozen=True)
class NumberSymbols:
    grouping: str
    decimal: str


_ENGLISH = NumberSymbols(grouping=",", decimal=".")

_SYMBOLS_BY_LANGUAGE: dict[str, NumberSymbols] = {
    "en": _ENGLISH,
    "ja": _ENGLISH,
    "zh": _ENGLISH,
    "ko": _ENGLISH,
    "de": NumberSymbols(grouping=".", decimal=","),
    "es": NumberSymbols(grouping=".", decimal=","),
    "it": NumberSymbols(grouping=".", decimal=","),
    "nl": NumberSymbols(grouping=".", decimal=","),
    "pt": NumberSymbols(grouping=".", decimal=","),
    "fr": NumberSymbols(grouping="\u202f", decimal=","),
    "ru": NumberSymbols(grouping="\u00a0", decimal=","),
    "pl": NumberSymbols(grouping="\u00a0", decimal=","),
    "sv": NumberSymbols(grouping="\u00a0", decimal=","),
}

# Region overrides where the language default does not apply.
_SYMBOLS_BY_LOCALE: dict[str, NumberSymbols] = {
    "de_ch": NumberSymbols(grouping="\u2019", decimal="."),
    "pt_br": NumberSymbols(grouping=".", decimal=","),
    "fr_ch": NumberSymbols(grouping="\u202f", decimal="."),
}


def symbols_for(locale: str | None) -> NumberSymbols:
    """Return grouping/decimal symbols for *locale* (``en``, ``de_DE``, ``fr-CA``...)."""
    if not locale:
        return _ENGLISH
    normalized = locale.replace("-", "_").lower()
    if normalized in _SYMBOLS_BY_LOCALE:
        return _SYMBOLS_BY_LOCALE[normalized]
    language = normalized.split("_", 1)[0]
    return _SYMBOLS_BY_LANGUAGE.get(language, _ENGLISH)


class NumberFormatter:
    """Grouped integer and fixed two-decimal formatting for one locale."""

    def __init__(self, locale: str | None = "en") -> None:
        self.locale = locale or "en"
        self.symbols = symbols_for(locale)

    def integer(self, value: int) -> str:
        """Format like ``#,##0``."""
        return self._group(f"{int(value):,}")

    def decimal(self, value: Decimal | float) -> str:
        """Format with exactly two fraction digits, half-even rounding."""
        quantized = Decimal(str(value)).quantize(Decimal("0.01"), rounding=ROUND_HALF_EVEN)
        return self._group(f"{quantized:,.2f}")

    def _group(self, text: str) -> str:
        if self.symbols == _ENGLISH:
            return text
        # swap via a placeholder so the two separators never collide
        return (
            text.replace(",", "\0")
            .replace(".", self.symbols.decimal)
            .replace("\0", self.symbols.grouping)
        )


class SizeFormatter:
    """Render a byte count in KB, MB or GB.

    Thresholds are strict: exactly 1 MB is still shown as ``1,024.00 KB``.
    Sub-kilobyte sizes are shown as fractional kilobytes.
    """

    def __init__(self, numbers: NumberFormatter | None = None) -> None:
        self.numbers = numbers or NumberFormatter()

    def __call__(self, size: int) -> str:
        return self.format(size)

    def format(self, size: int) -> str:
        if size > GB:
            return f"{self.numbers.decimal(Decimal(size) / GB)} GB"
        if size > MB:
            return f"{self.numbers.decimal(Decimal(size) / MB)} MB"
        return f"{self.numbers.decimal(Decimal(size) / KB)} KB"
