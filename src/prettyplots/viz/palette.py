from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

import matplotlib
from matplotlib.colors import to_hex, to_rgba

from prettyplots.core.config import ExhaustionPolicy
from prettyplots.core.data import category_order
from prettyplots.core.errors import PaletteExhaustedError

from .scene import FigureScene, Panel, SwatchLayer

logger = logging.getLogger(__name__)

# ColorBrewer qualitative palettes shipped with matplotlib.
BREWER_QUALITATIVE = ("Accent", "Dark2", "Paired", "Pastel1", "Pastel2", "Set1", "Set2", "Set3")

# brewer.pal never hands out fewer than three colours.
MIN_BREWER_COLORS = 3


def adjust_alpha(color: str, alpha: float) -> str:
    """Scale a colour's opacity by ``alpha`` (R's ``adjustcolor(col, alpha.f)``).

    Returns ``#RRGGBBAA``.
    """

    if not 0.0 <= alpha <= 1.0:
        raise ValueError(f"alpha must be within [0, 1], got {alpha}")
    r, g, b, a = to_rgba(color)
    return to_hex((r, g, b, a * alpha), keep_alpha=True)


def palette_colors(name: str) -> List[str]:
    if name not in BREWER_QUALITATIVE:
        raise ValueError(f"Unknown palette '{name}'. Available: {list(BREWER_QUALITATIVE)}")
    cmap = matplotlib.colormaps[name]
    return [to_hex(c) for c in cmap.colors]


@dataclass(frozen=True)
class CategoryColors:
    """Ordered category -> colour assignment.

    Legends are built from this object, so their entries follow the same order as the series.
    """

    categories: Tuple[str, ...]
    colors: Tuple[str, ...]

    def __post_init__(self) -> None:
        if len(self.categories) != len(self.colors):
            raise ValueError("categories and colors must have the same length")

    def __len__(self) -> int:
        return len(self.categories)

    def as_dict(self) -> Dict[str, str]:
        return dict(zip(self.categories, self.colors))

    def color_of(self, category: object) -> str:
        lookup = self.as_dict()
        key = str(category)
        if key not in lookup:
            raise KeyError(f"Unknown category '{key}'. Known: {list(self.categories)}")
        return lookup[key]

    def colors_for(self, values: Iterable[object]) -> Tuple[str, ...]:
        """One colour per value (per-row colouring)."""

        lookup = self.as_dict()
        out: List[str] = []
        for v in values:
            key = str(v)
            if key not in lookup:
                raise KeyError(f"Unknown category '{key}'. Known: {list(self.categories)}")
            out.append(lookup[key])
        return tuple(out)

    def with_alpha(self, alpha: float) -> "CategoryColors":
        return CategoryColors(self.categories, tuple(adjust_alpha(c, alpha) for c in self.colors))


@dataclass(frozen=True)
class Palette:
    name: str
    colors: Tuple[str, ...]

    def __len__(self) -> int:
        return len(self.colors)

    def __getitem__(self, i: int) -> str:
        return self.colors[i]

    def with_alpha(self, alpha: float) -> "Palette":
        return Palette(self.name, tuple(adjust_alpha(c, alpha) for c in self.colors))

    def map_categories(
        self,
        categories: Iterable[object],
        policy: ExhaustionPolicy | str = ExhaustionPolicy.error,
    ) -> CategoryColors:
        """Assign colours to categories in first-seen order.

        With at least as many colours as categories every category gets its own
        colour. Otherwise ``error`` raises :class:`PaletteExhaustedError` and
        ``recycle`` wraps around the palette (colours repeat).
        """

        policy = ExhaustionPolicy(policy)
        ordered = category_order(categories)

        if not self.colors:
            raise PaletteExhaustedError(f"Palette '{self.name}' has no colours")

        if len(ordered) > len(self.colors):
            if policy == ExhaustionPolicy.error:
                raise PaletteExhaustedError(
                    f"Palette '{self.name}' has {len(self.colors)} colours but there are "
                    f"{len(ordered)} categories: {ordered}"
                )
            logger.warning(
                "Palette '%s' has %d colours for %d categories; colours will repeat",
                self.name,
                len(self.colors),
                len(ordered),
            )

        colors = tuple(self.colors[i % len(self.colors)] for i in range(len(ordered)))
        return CategoryColors(tuple(ordered), colors)


def brewer_palette(name: str = "Dark2", n: Optional[int] = None) -> Palette:
    """First ``n`` colours of a ColorBrewer qualitative palette (all of them when ``n`` is None)."""

    colors = palette_colors(name)
    if n is None:
        return Palette(name, tuple(colors))
    if n > len(colors):
        raise PaletteExhaustedError(
            f"Palette '{name}' has {len(colors)} colours; {n} requested"
        )
    if n < MIN_BREWER_COLORS:
        logger.warning("Minimal value for n is %d; returning %d colours from '%s'", MIN_BREWER_COLORS, MIN_BREWER_COLORS, name)
        n = MIN_BREWER_COLORS
    return Palette(name, tuple(colors[:n]))


def palette_overview(
    names: Optional[Sequence[str]] = None,
    *,
    width: float = 7.0,
    height: float = 5.0,
) -> FigureScene:
    """All qualitative palettes as rows of swatches (R's ``display.brewer.all()``)."""

    names = list(names) if names is not None else list(BREWER_QUALITATIVE)
    rows = tuple((name, tuple(palette_colors(name))) for name in names)
    panel = Panel(
        index=0,
        row=0,
        col=0,
        margins=(1.0, 5.0, 1.5, 1.0),
        layers=(SwatchLayer(rows=rows),),
        title="ColorBrewer qualitative palettes",
        show_border=False,
    )
    return FigureScene(width=width, height=height, panels=(panel,))


# R's default palette (palette("R4")): what col = as.factor(x) draws with.
DEFAULT_PALETTE = Palette(
    "R4",
    ("#000000", "#DF536B", "#61D04F", "#2297E6", "#28E2E5", "#CD0BBC", "#F5C710", "#9E9E9E"),
)


def grey_ramp(n: int, start: float = 0.3, end: float = 0.9) -> Tuple[str, ...]:
    """``n`` greys from dark to light (barplot's default fill for several series)."""

    if n <= 1:
        return (to_hex((end, end, end)),) if n == 1 else ()
    step = (end - start) / (n - 1)
    return tuple(to_hex((start + i * step,) * 3) for i in range(n))
