"""
Scene description.

Plain frozen dataclasses saying *what* to draw: series, styling and annotations.
Nothing here touches matplotlib; :mod:`prettyplots.viz.render` turns a
:class:`FigureScene` into a figure.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional, Sequence, Tuple, Union

import numpy as np

DEFAULT_COLOR = "#000000"
DEFAULT_FILL = "#BEBEBE"  # R's "grey"

LEGEND_LOCATIONS = (
    "upper left",
    "upper right",
    "lower left",
    "lower right",
    "upper center",
    "lower center",
    "center left",
    "center right",
    "center",
)


def frozen_array(values: Sequence[float] | np.ndarray) -> np.ndarray:
    """Float copy of ``values`` that cannot be written to."""
    arr = np.array(values, dtype=float)
    arr.setflags(write=False)
    return arr


# --- Layers ---

@dataclass(frozen=True, eq=False)
class PointsLayer:
    x: np.ndarray
    y: np.ndarray
    # One colour per point, or a single colour for all.
    colors: Tuple[str, ...] = (DEFAULT_COLOR,)
    marker: str = "o"
    filled: bool = False
    size: float = 20.0
    label: Optional[str] = None


@dataclass(frozen=True, eq=False)
class LineLayer:
    x: np.ndarray
    y: np.ndarray
    color: str = DEFAULT_COLOR
    linestyle: str = "-"
    width: float = 1.0
    label: Optional[str] = None


@dataclass(frozen=True, eq=False)
class HistLayer:
    values: np.ndarray
    breaks: np.ndarray
    color: str = DEFAULT_FILL
    show_border: bool = True


@dataclass(frozen=True, eq=False)
class BarLayer:
    """Bar heights as a (series x groups) matrix.

    A single-series bar chart is a 1 x n matrix. With ``grouped`` the series
    sit side by side inside each group, otherwise they are stacked.
    """

    heights: np.ndarray
    group_names: Tuple[str, ...]
    series_colors: Tuple[str, ...] = (DEFAULT_FILL,)
    series_labels: Tuple[str, ...] = ()
    grouped: bool = True
    show_border: bool = True

    @property
    def n_series(self) -> int:
        return int(self.heights.shape[0])

    @property
    def n_groups(self) -> int:
        return int(self.heights.shape[1])


@dataclass(frozen=True, eq=False)
class BoxLayer:
    groups: Tuple[str, ...]
    values: Tuple[np.ndarray, ...]
    color: str = "#FFFFFF"


@dataclass(frozen=True, eq=False)
class BandLayer:
    """Filled region between two curves (confidence bands)."""

    x: np.ndarray
    lower: np.ndarray
    upper: np.ndarray
    color: str = "#BEBEBE80"


@dataclass(frozen=True)
class SwatchLayer:
    """Rows of colour swatches, one row per named palette."""

    rows: Tuple[Tuple[str, Tuple[str, ...]], ...]


@dataclass(frozen=True)
class TextLayer:
    """Text placed in axes-fraction coordinates."""

    text: str
    x: float = 0.5
    y: float = 0.5
    size: float = 12.0


Layer = Union[PointsLayer, LineLayer, HistLayer, BarLayer, BoxLayer, BandLayer, SwatchLayer, TextLayer]


# --- Annotations ---

@dataclass(frozen=True)
class AxisSpec:
    """Explicit axis on one side (1 bottom, 2 left, 3 top, 4 right)."""

    side: int
    ticks: Tuple[float, ...]
    color: str = DEFAULT_COLOR

    def __post_init__(self) -> None:
        if self.side not in (1, 2, 3, 4):
            raise ValueError(f"Axis side must be 1..4, got {self.side}")


@dataclass(frozen=True)
class AxisLabel:
    """Margin text next to an axis (R's ``mtext``)."""

    side: int
    text: str
    line: float = 2.5
    color: str = DEFAULT_COLOR


@dataclass(frozen=True)
class LegendEntry:
    label: str
    color: str
    marker: Optional[str] = None
    filled: bool = True
    linestyle: Optional[str] = None
    linewidth: float = 1.0
    # Draw as a filled box instead of a marker/line sample.
    fill: bool = False


@dataclass(frozen=True)
class LegendSpec:
    entries: Tuple[LegendEntry, ...]
    title: Optional[str] = None
    location: str = "upper left"
    inset: float = 0.05

    def __post_init__(self) -> None:
        if self.location not in LEGEND_LOCATIONS:
            raise ValueError(f"Unknown legend location '{self.location}'. Use one of {LEGEND_LOCATIONS}")
        if not 0.0 <= self.inset < 0.5:
            raise ValueError(f"Legend inset must be within [0, 0.5), got {self.inset}")

    @property
    def labels(self) -> Tuple[str, ...]:
        return tuple(e.label for e in self.entries)


Annotation = Union[AxisSpec, AxisLabel, LegendSpec]


# --- Panels and figure ---

@dataclass(frozen=True, eq=False)
class Panel:
    index: int
    row: int
    col: int
    # bottom, left, top, right in text lines, as set when the panel was opened
    margins: Tuple[float, float, float, float]

    layers: Tuple[Layer, ...] = ()
    # Layers drawn after an overlay request: same x axis, independent y scale.
    overlay_layers: Tuple[Layer, ...] = ()
    annotations: Tuple[Annotation, ...] = ()

    x_label: Optional[str] = None
    y_label: Optional[str] = None
    title: Optional[str] = None
    show_border: bool = True
    show_axes: bool = True
    rotate_labels: bool = False
    compact: bool = False

    xlim: Optional[Tuple[float, float]] = None
    ylim: Optional[Tuple[float, float]] = None
    # (positions, labels) for categorical x axes
    x_ticks: Optional[Tuple[Tuple[float, ...], Tuple[str, ...]]] = None

    @property
    def has_overlay(self) -> bool:
        return len(self.overlay_layers) > 0

    @property
    def legends(self) -> Tuple[LegendSpec, ...]:
        return tuple(a for a in self.annotations if isinstance(a, LegendSpec))

    @property
    def layer_count(self) -> int:
        return len(self.layers) + len(self.overlay_layers) + len(self.legends)


@dataclass(frozen=True, eq=False)
class FigureScene:
    width: float
    height: float
    rows: int = 1
    cols: int = 1
    order: str = "row"
    panels: Tuple[Panel, ...] = field(default_factory=tuple)

    @property
    def layer_count(self) -> int:
        return sum(p.layer_count for p in self.panels)
