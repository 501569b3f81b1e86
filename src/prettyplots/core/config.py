from __future__ import annotations

from enum import Enum
from pathlib import Path
from typing import List, Optional, Tuple

import numpy as np
import yaml
from matplotlib.colors import is_color_like
from pydantic import BaseModel, Field, model_validator

# One margin "line" in inches (R's default line height at cex = 1).
LINE_HEIGHT_IN = 0.2


class PointShape(str, Enum):
    open_circle = "open_circle"
    solid_circle = "solid_circle"
    triangle = "triangle"
    square = "square"
    cross = "cross"
    diamond = "diamond"

    @property
    def marker(self) -> str:
        return _MARKERS[self]

    @property
    def filled(self) -> bool:
        return self not in (PointShape.open_circle, PointShape.cross)


_MARKERS = {
    PointShape.open_circle: "o",
    PointShape.solid_circle: "o",
    PointShape.triangle: "^",
    PointShape.square: "s",
    PointShape.cross: "x",
    PointShape.diamond: "D",
}


class LineType(str, Enum):
    solid = "solid"
    dashed = "dashed"
    dotted = "dotted"
    dashdot = "dashdot"

    @property
    def linestyle(self) -> str:
        return {"solid": "-", "dashed": "--", "dotted": ":", "dashdot": "-."}[self.value]


class ExhaustionPolicy(str, Enum):
    """What to do when a palette has fewer colours than there are categories."""

    error = "error"
    recycle = "recycle"


class Margins(BaseModel):
    """Panel margins in text lines: bottom, left, top, right (R's ``par("mar")``)."""

    model_config = {"frozen": True}

    bottom: float = 5.0
    left: float = 4.1
    top: float = 1.5
    right: float = 4.1

    @model_validator(mode="after")
    def _validate(self) -> "Margins":
        for side, val in self.as_tuple_named():
            if val < 0:
                raise ValueError(f"Margin '{side}' must be >= 0, got {val}")
        return self

    @classmethod
    def of(cls, bottom: float, left: float, top: float, right: float) -> "Margins":
        return cls(bottom=bottom, left=left, top=top, right=right)

    def as_tuple(self) -> Tuple[float, float, float, float]:
        return (self.bottom, self.left, self.top, self.right)

    def as_tuple_named(self) -> List[Tuple[str, float]]:
        return [("bottom", self.bottom), ("left", self.left), ("top", self.top), ("right", self.right)]

    def inches(self) -> Tuple[float, float, float, float]:
        return tuple(v * LINE_HEIGHT_IN for v in self.as_tuple())  # type: ignore[return-value]


class BreaksConfig(BaseModel):
    """Evenly spaced bin boundaries, inclusive of both ends."""

    start: float = 4.0
    stop: float = 8.0
    step: float = 0.25

    @model_validator(mode="after")
    def _validate(self) -> "BreaksConfig":
        if self.stop <= self.start:
            raise ValueError(f"Breaks need stop > start (got {self.start}..{self.stop})")
        if self.step <= 0:
            raise ValueError("Breaks step must be > 0")
        return self

    def values(self) -> List[float]:
        n = int(np.floor((self.stop - self.start) / self.step + 1e-10))
        return [float(v) for v in self.start + self.step * np.arange(n + 1)]


class PlotOptions(BaseModel):
    """Styling options recognised by every plot recipe.

    Options a recipe has no use for are ignored (a histogram has no point shape).
    """

    # A single colour for the whole series. None means "colour by category"
    # when the recipe is given a category column, else the default colour.
    color: Optional[str] = None
    point_shape: PointShape = PointShape.open_circle
    point_size: float = 20.0

    x_label: Optional[str] = None
    y_label: Optional[str] = None
    title: Optional[str] = None

    # bty = "n" when False
    show_border: bool = True
    show_axes: bool = True

    breaks: Optional[List[float]] = None

    # barplot(beside = TRUE) when True, stacked when False
    grouped_bars: bool = True
    show_bar_border: bool = True
    names: Optional[List[str]] = None

    # las = 2
    rotate_labels: bool = False

    line_type: LineType = LineType.solid
    line_width: float = 1.0

    alpha: float = 1.0

    @model_validator(mode="after")
    def _validate(self) -> "PlotOptions":
        if not 0.0 <= self.alpha <= 1.0:
            raise ValueError(f"alpha must be within [0, 1], got {self.alpha}")
        if self.color is not None and not is_color_like(self.color):
            raise ValueError(f"Not a colour: {self.color!r}")
        if self.breaks is not None:
            if len(self.breaks) < 2:
                raise ValueError("breaks needs at least two boundaries")
            if any(b >= a for b, a in zip(self.breaks, self.breaks[1:])):
                raise ValueError("breaks must be strictly increasing")
        if self.line_width <= 0:
            raise ValueError("line_width must be > 0")
        return self

    def with_(self, **changes) -> "PlotOptions":
        return self.model_copy(update=changes)


class WorkshopConfig(BaseModel):
    """Top-level settings for the walkthrough."""

    palette: str = "Dark2"
    exhaustion_policy: ExhaustionPolicy = ExhaustionPolicy.error
    alpha: float = 0.5

    hist_breaks: BreaksConfig = Field(default_factory=BreaksConfig)

    beaver_day: int = 346
    beaver_path: Optional[str] = None

    madeup_years: Tuple[int, int] = (1991, 2020)
    seed: Optional[int] = None

    figure_width: float = 7.0
    figure_height: float = 7.0
    export_width: float = 9.0
    export_height: float = 5.0

    margins: Margins = Field(default_factory=Margins)
    bar_margins: Margins = Field(default_factory=lambda: Margins.of(7, 4.1, 1.5, 4.1))

    out_dir: str = "plots"
    image_format: str = "png"
    dpi: int = 200

    @model_validator(mode="after")
    def _validate(self) -> "WorkshopConfig":
        if not 0.0 <= self.alpha <= 1.0:
            raise ValueError(f"alpha must be within [0, 1], got {self.alpha}")
        lo, hi = self.madeup_years
        if hi < lo:
            raise ValueError(f"madeup_years must be (first, last) with last >= first, got {self.madeup_years}")
        for name in ("figure_width", "figure_height", "export_width", "export_height"):
            if getattr(self, name) <= 0:
                raise ValueError(f"{name} must be > 0")
        return self

    @classmethod
    def from_yaml(cls, path: str | Path) -> "WorkshopConfig":
        path = Path(path)
        with path.open("r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
        return cls.model_validate(data or {})

    def years(self) -> range:
        lo, hi = self.madeup_years
        return range(lo, hi + 1)
