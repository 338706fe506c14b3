"""Error and warning types raised by the TB rate pipeline."""

from __future__ import annotations

from typing import Iterable, Tuple


class TBRatesError(Exception):
    """Base class for pipeline errors."""


class DataFormatError(TBRatesError, ValueError):
    """A required field is missing or cannot be parsed."""


class DuplicateKeyError(TBRatesError, ValueError):
    """Two cleaned rows share the same (country, year) key."""

    def __init__(self, keys: Iterable[Tuple[str, int]]):
        self.keys = tuple(keys)
        shown = ", ".join(f"{c!r}/{y}" for c, y in self.keys[:10])
        more = f" (+{len(self.keys) - 10} more)" if len(self.keys) > 10 else ""
        super().__init__(f"Duplicate (country, year) keys after cleaning: {shown}{more}")


class UnresolvedCountryWarning(UserWarning):
    """Countries that could not be matched to a map polygon."""
