from __future__ import annotations

from dataclasses import replace
from typing import List, Optional, Tuple

from prettyplots.core.config import Margins
from prettyplots.core.errors import LayoutError

from .scene import Annotation, FigureScene, Layer, Panel

FILL_ORDERS = ("row", "col")


class Canvas:
    """Graphics context for one figure.

    Holds the panel grid, the current margins and the pending-overlay flag.
    Panels fill the grid row by row (``order="row"``, R's ``mfrow``) or
    column by column (``order="col"``, R's ``mfcol``). Margins are global:
    a panel keeps the margins that were current when it was opened.
    """

    def __init__(
        self,
        rows: int = 1,
        cols: int = 1,
        *,
        order: str = "row",
        margins: Optional[Margins] = None,
        width: float = 7.0,
        height: float = 7.0,
    ) -> None:
        if width <= 0 or height <= 0:
            raise ValueError(f"Canvas size must be positive, got {width} x {height}")
        self.width = float(width)
        self.height = float(height)
        self._margins = margins if margins is not None else Margins()
        self._panels: List[Panel] = []
        self._overlay_pending = False
        self.set_layout(rows, cols, order=order)

    # --- layout state ---

    def set_layout(self, rows: int, cols: int, *, order: str = "row") -> "Canvas":
        """Resize the grid. Clears every placed panel."""

        if rows < 1 or cols < 1:
            raise LayoutError(f"Layout needs at least one row and column, got {rows} x {cols}")
        if order not in FILL_ORDERS:
            raise LayoutError(f"Unknown fill order '{order}'. Use one of {FILL_ORDERS}")
        self.rows = int(rows)
        self.cols = int(cols)
        self.order = order
        self._panels = []
        self._overlay_pending = False
        return self

    def reset(self) -> "Canvas":
        return self.set_layout(self.rows, self.cols, order=self.order)

    @property
    def margins(self) -> Margins:
        return self._margins

    def set_margins(self, margins: Margins | Tuple[float, float, float, float]) -> "Canvas":
        if not isinstance(margins, Margins):
            margins = Margins.of(*margins)
        self._margins = margins
        return self

    @property
    def capacity(self) -> int:
        return self.rows * self.cols

    @property
    def panel_count(self) -> int:
        return len(self._panels)

    @property
    def layer_count(self) -> int:
        return sum(p.layer_count for p in self._panels)

    @property
    def overlay_pending(self) -> bool:
        return self._overlay_pending

    @property
    def current(self) -> Panel:
        if not self._panels:
            raise LayoutError("No panel has been drawn yet")
        return self._panels[-1]

    def cell(self, index: int) -> Tuple[int, int]:
        """(row, col) of the index-th panel for the current fill order."""

        if self.order == "row":
            return index // self.cols, index % self.cols
        return index % self.rows, index // self.rows

    # --- drawing ---

    def new_panel(self, **fields) -> Panel:
        index = len(self._panels)
        if index >= self.capacity:
            raise LayoutError(
                f"Layout {self.rows} x {self.cols} is full ({self.capacity} panels); "
                "call set_layout() or reset() before drawing more"
            )
        row, col = self.cell(index)
        panel = Panel(index=index, row=row, col=col, margins=self._margins.as_tuple(), **fields)
        self._panels.append(panel)
        self._overlay_pending = False
        return panel

    def plot(self, layer: Layer, **fields) -> Panel:
        """Start a new panel with ``layer``, or overlay it after :meth:`request_overlay`.

        ``fields`` set up the new panel (labels, title, limits). An overlay keeps
        the current panel as it is, so passing fields then is a ``LayoutError``.
        """

        if self._overlay_pending:
            if fields:
                raise LayoutError(f"Cannot set {sorted(fields)} on an overlay; it draws on the current panel")
            self._overlay_pending = False
            return self._update(overlay_layers=self.current.overlay_layers + (layer,))
        return self.new_panel(layers=(layer,), **fields)

    def add(self, layer: Layer) -> Panel:
        """Append a layer to the current panel on its existing scale."""

        target = self.current
        if target.has_overlay:
            return self._update(overlay_layers=target.overlay_layers + (layer,))
        return self._update(layers=target.layers + (layer,))

    def request_overlay(self) -> "Canvas":
        """The next :meth:`plot` draws on the current panel with its own vertical scale."""

        if not self._panels:
            raise LayoutError("Nothing to overlay; draw a panel first")
        self._overlay_pending = True
        return self

    def annotate(self, annotation: Annotation) -> Panel:
        return self._update(annotations=self.current.annotations + (annotation,))

    def _update(self, **fields) -> Panel:
        panel = replace(self.current, **fields)
        self._panels[-1] = panel
        return panel

    # --- output ---

    def scene(self) -> FigureScene:
        return FigureScene(
            width=self.width,
            height=self.height,
            rows=self.rows,
            cols=self.cols,
            order=self.order,
            panels=tuple(self._panels),
        )
