"""The workshop walkthrough: from default plots to a finished, exported figure.

Each section builds one figure. Sections run in the order they are defined:

1. basic plots: scatter, pairs, histogram, line, box, bar
2. beautifying: palettes, styled scatter, styled bars, styled histograms
3. custom plotting windows: two y axes, two panels with their own margins
4. visualizing a linear model
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Dict, Iterable, List, Optional

import pandas as pd

from prettyplots.core.config import LineType, PlotOptions, PointShape, WorkshopConfig
from prettyplots.core.data import grouped_means, load_beaver, load_iris, make_madeup
from prettyplots.model.linear import LinearModelResult, fit_linear_model
from prettyplots.viz import model_plots, recipes
from prettyplots.viz.canvas import Canvas
from prettyplots.viz.export import open_device
from prettyplots.viz.palette import CategoryColors, Palette, brewer_palette, palette_overview
from prettyplots.viz.render import save_scene
from prettyplots.viz.scene import FigureScene

logger = logging.getLogger(__name__)

TRAIT_NAMES = ["Sepal length", "Sepal width", "Petal length", "Petal width"]
MODEL_FORMULA = "sepal_length ~ sepal_width * species"

SectionFn = Callable[["WorkshopContext"], FigureScene]
SECTIONS: Dict[str, SectionFn] = {}


def section(name: str) -> Callable[[SectionFn], SectionFn]:
    def register(fn: SectionFn) -> SectionFn:
        if name in SECTIONS:
            raise ValueError(f"Duplicate section name '{name}'")
        SECTIONS[name] = fn
        return fn

    return register


@dataclass
class WorkshopContext:
    """Datasets, palette and settings shared by every section."""

    config: WorkshopConfig
    iris: pd.DataFrame
    madeup: pd.DataFrame
    palette: Palette
    beaver_data: Optional[pd.DataFrame] = None
    _model: Optional[LinearModelResult] = field(default=None, repr=False)

    @classmethod
    def build(cls, config: Optional[WorkshopConfig] = None, *, beaver: Optional[pd.DataFrame] = None) -> "WorkshopContext":
        config = config if config is not None else WorkshopConfig()
        iris = load_iris()
        n_species = iris["species"].nunique()
        return cls(
            config=config,
            iris=iris,
            madeup=make_madeup(config.years(), seed=config.seed),
            palette=brewer_palette(config.palette, n_species),
            beaver_data=beaver,
        )

    @property
    def iris_means(self) -> pd.DataFrame:
        return grouped_means(self.iris, "species")

    @property
    def beaver(self) -> pd.DataFrame:
        """First day of beaver 1's temperatures, loaded on first use."""
        if self.beaver_data is None:
            self.beaver_data = load_beaver(self.config.beaver_path, day=self.config.beaver_day)
        return self.beaver_data

    @property
    def model(self) -> LinearModelResult:
        if self._model is None:
            self._model = fit_linear_model(self.iris, MODEL_FORMULA)
        return self._model

    @property
    def species_colors(self) -> CategoryColors:
        return self.palette.map_categories(self.iris_means["species"], policy=self.config.exhaustion_policy)

    def canvas(self, rows: int = 1, cols: int = 1, *, width: Optional[float] = None) -> Canvas:
        return Canvas(
            rows,
            cols,
            margins=self.config.margins,
            width=width if width is not None else self.config.figure_width,
            height=self.config.figure_height,
        )


# --- the basic plots ---

@section("basic-scatter")
def basic_scatter(ctx: WorkshopContext) -> FigureScene:
    canvas = ctx.canvas()
    recipes.scatter(canvas, ctx.iris, "sepal_length", "petal_length")
    return canvas.scene()


@section("basic-pairs")
def basic_pairs(ctx: WorkshopContext) -> FigureScene:
    canvas = ctx.canvas()
    recipes.pairs(canvas, ctx.iris.drop(columns=["species"]))
    return canvas.scene()


@section("basic-hist")
def basic_hist(ctx: WorkshopContext) -> FigureScene:
    canvas = ctx.canvas()
    recipes.histogram(canvas, ctx.iris, "sepal_width")
    return canvas.scene()


@section("basic-line")
def basic_line(ctx: WorkshopContext) -> FigureScene:
    canvas = ctx.canvas()
    recipes.line(canvas, ctx.beaver, "temp", "time")
    return canvas.scene()


@section("basic-box")
def basic_box(ctx: WorkshopContext) -> FigureScene:
    canvas = ctx.canvas()
    recipes.box(canvas, ctx.iris, "sepal_length", "species")
    return canvas.scene()


@section("basic-bar")
def basic_bar(ctx: WorkshopContext) -> FigureScene:
    canvas = ctx.canvas()
    means = ctx.iris_means
    recipes.bar(canvas, means["petal_length"], names=list(means["species"]))
    return canvas.scene()


# --- beautifying plots ---

@section("palettes")
def palettes(ctx: WorkshopContext) -> FigureScene:
    return palette_overview(width=ctx.config.figure_width, height=ctx.config.figure_height)


STYLED_SCATTER = PlotOptions(
    point_shape=PointShape.solid_circle,
    x_label="Petal length (cm)",
    y_label="Sepal length (cm)",
    show_border=False,
)


def draw_styled_scatter(canvas: Canvas, ctx: WorkshopContext) -> None:
    colors = ctx.species_colors
    recipes.scatter(
        canvas, ctx.iris, "sepal_length", "petal_length", color_by="species", colors=colors, options=STYLED_SCATTER
    )
    recipes.legend(canvas, colors, kind="point", title="Species", location="upper left")


def draw_styled_bars(canvas: Canvas, ctx: WorkshopContext, *, rotate_labels: bool = False) -> None:
    colors = ctx.species_colors
    options = PlotOptions(
        show_bar_border=False,
        x_label=None if rotate_labels else "Trait",
        y_label="Mean size (cm)",
        names=TRAIT_NAMES,
        rotate_labels=rotate_labels,
    )
    recipes.grouped_bar(canvas, ctx.iris_means, "species", colors=colors, options=options)
    recipes.legend(canvas, colors, kind="fill", title="Species", location="upper right")


@section("scatter-styled")
def scatter_styled(ctx: WorkshopContext) -> FigureScene:
    canvas = ctx.canvas()
    draw_styled_scatter(canvas, ctx)
    return canvas.scene()


@section("bar-styled")
def bar_styled(ctx: WorkshopContext) -> FigureScene:
    canvas = ctx.canvas()
    draw_styled_bars(canvas, ctx)
    return canvas.scene()


@section("hist-by-species")
def hist_by_species(ctx: WorkshopContext) -> FigureScene:
    colors = ctx.species_colors
    canvas = ctx.canvas(1, len(colors), width=ctx.config.figure_width * 1.5)
    breaks = ctx.config.hist_breaks.values()
    for species, color in zip(colors.categories, colors.colors):
        recipes.histogram(
            canvas,
            ctx.iris[ctx.iris["species"] == species],
            "sepal_length",
            options=PlotOptions(breaks=breaks, color=color, title=species),
        )
    return canvas.scene()


@section("hist-styled")
def hist_styled(ctx: WorkshopContext) -> FigureScene:
    canvas = ctx.canvas()
    colors = ctx.species_colors.with_alpha(ctx.config.alpha)
    options = PlotOptions(
        breaks=ctx.config.hist_breaks.values(),
        show_bar_border=False,
        x_label="Sepal length (cm)",
    )
    recipes.overlaid_histograms(canvas, ctx.iris, "sepal_length", "species", colors, options=options)
    recipes.legend(canvas, colors, kind="fill", title="Species", location="upper right")
    return canvas.scene()


# --- custom plotting windows ---

@section("two-series")
def two_series(ctx: WorkshopContext) -> FigureScene:
    canvas = ctx.canvas(1, 2, width=ctx.config.figure_width * 1.5)
    recipes.line(
        canvas, ctx.madeup, "P", "time", options=PlotOptions(x_label="Year", y_label="Annual atmospheric P deposition (tons)")
    )
    recipes.line(
        canvas, ctx.madeup, "biomass", "time", options=PlotOptions(x_label="Year", y_label="Phytoplankton biomass (tons)")
    )
    return canvas.scene()


@section("dual-axis")
def dual_axis(ctx: WorkshopContext) -> FigureScene:
    canvas = ctx.canvas()
    recipes.dual_axis(
        canvas,
        ctx.madeup,
        "time",
        "P",
        "biomass",
        x_label="Year",
        left_label="Annual atmospheric P deposition (tons)",
        right_label="Phytoplankton biomass (tons)",
        left_options=PlotOptions(color="red", line_width=3.0),
        right_options=PlotOptions(color="blue", line_width=2.0, line_type=LineType.dotted),
        legend_labels=("P deposition", "Phytoplankton"),
    )
    return canvas.scene()


def draw_two_panel(canvas: Canvas, ctx: WorkshopContext) -> None:
    """Styled scatter beside styled bars; the bar panel gets extra room below for its labels."""

    canvas.set_layout(1, 2)
    canvas.set_margins(ctx.config.margins)
    draw_styled_scatter(canvas, ctx)
    canvas.set_margins(ctx.config.bar_margins)
    draw_styled_bars(canvas, ctx, rotate_labels=True)
    canvas.set_margins(ctx.config.margins)


@section("two-panel")
def two_panel(ctx: WorkshopContext) -> FigureScene:
    canvas = ctx.canvas(1, 2, width=ctx.config.export_width)
    draw_two_panel(canvas, ctx)
    return canvas.scene()


# --- visualizing models ---

@section("model-all")
def model_all(ctx: WorkshopContext) -> FigureScene:
    model = ctx.model
    canvas = ctx.canvas(1, len(model.predictors), width=ctx.config.figure_width * 1.5)
    model_plots.visreg(canvas, model)
    return canvas.scene()


@section("model-overlay")
def model_overlay(ctx: WorkshopContext) -> FigureScene:
    canvas = ctx.canvas()
    model_plots.visreg(
        canvas,
        ctx.model,
        "sepal_width",
        by="species",
        overlay=True,
        palette=ctx.palette,
        policy=ctx.config.exhaustion_policy,
    )
    return canvas.scene()


@section("model-diagnostics")
def model_diagnostics(ctx: WorkshopContext) -> FigureScene:
    canvas = ctx.canvas(1, 2, width=ctx.config.figure_width * 1.5)
    model_plots.parity(canvas, ctx.model)
    model_plots.residuals(canvas, ctx.model)
    return canvas.scene()


# --- running and exporting ---

def export_figure(ctx: WorkshopContext, path: str | Path) -> Path:
    """Write the two-panel figure to a vector file sized by ``export_width`` x ``export_height``."""

    with open_device(
        path,
        ctx.config.export_width,
        ctx.config.export_height,
        rows=1,
        cols=2,
        margins=ctx.config.margins,
    ) as device:
        draw_two_panel(device.canvas, ctx)
    return device.written


def build_section(ctx: WorkshopContext, name: str) -> FigureScene:
    if name not in SECTIONS:
        raise KeyError(f"Unknown section '{name}'. Available: {list(SECTIONS)}")
    return SECTIONS[name](ctx)


def run_all(
    ctx: WorkshopContext,
    out_dir: str | Path | None = None,
    *,
    fmt: Optional[str] = None,
    names: Optional[Iterable[str]] = None,
) -> List[Path]:
    """Save every section (or just ``names``) as ``<nn>_<name>.<fmt>`` under ``out_dir``."""

    out_dir = Path(out_dir if out_dir is not None else ctx.config.out_dir)
    fmt = fmt or ctx.config.image_format
    selected = list(names) if names is not None else list(SECTIONS)
    order = list(SECTIONS)

    paths: List[Path] = []
    for name in selected:
        scene = build_section(ctx, name)
        path = out_dir / f"{order.index(name) + 1:02d}_{name}.{fmt}"
        paths.append(save_scene(scene, path, dpi=ctx.config.dpi))
    logger.info("Saved %d figures to %s", len(paths), out_dir)
    return paths
