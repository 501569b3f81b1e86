from __future__ import annotations

from typing import Iterable, List, Sequence


class PrettyPlotsError(Exception):
    """Base class for errors raised by prettyplots."""


class MissingColumnError(PrettyPlotsError, KeyError):
    """A requested field is not part of the table's columns."""

    def __init__(self, missing: Sequence[str], available: Iterable[str]) -> None:
        self.missing: List[str] = list(missing)
        self.available: List[str] = [str(c) for c in available]
        super().__init__(
            f"Table is missing required columns: {self.missing}. Available: {self.available}"
        )

    def __str__(self) -> str:
        # KeyError would otherwise repr() the message.
        return str(self.args[0])


class PaletteExhaustedError(PrettyPlotsError, ValueError):
    """More categories than the palette has colours."""


class LayoutError(PrettyPlotsError, RuntimeError):
    """Panel grid is full, or there is no current panel to draw on."""


class ExportError(PrettyPlotsError, RuntimeError):
    """Export target is closed or the output format is not supported."""
