"""Plot recipes.

Each recipe checks the fields it needs, builds scene layers and draws them on a
:class:`~prettyplots.viz.canvas.Canvas`. Nothing is rendered here.
"""
from __future__ import annotations

from typing import Optional, Sequence, Tuple

import numpy as np
import pandas as pd

from prettyplots.core.config import ExhaustionPolicy, LineType, Margins, PlotOptions
from prettyplots.core.data import category_order, numeric_columns, require_columns

from .canvas import Canvas
from .palette import DEFAULT_PALETTE, CategoryColors, Palette, adjust_alpha, grey_ramp
from .scene import (
    DEFAULT_COLOR,
    AxisLabel,
    AxisSpec,
    BarLayer,
    BoxLayer,
    HistLayer,
    LegendEntry,
    LegendSpec,
    LineLayer,
    Panel,
    PointsLayer,
    TextLayer,
    frozen_array,
)
from .ticks import pretty_ticks

DEFAULT_OPTIONS = PlotOptions()

PAIRS_MARGINS = Margins.of(0.5, 0.5, 0.5, 0.5)


def _numeric(df: pd.DataFrame, column: str) -> np.ndarray:
    return frozen_array(pd.to_numeric(df[column], errors="coerce").to_numpy(dtype=float))


def _panel_fields(options: PlotOptions, *, x_label: Optional[str], y_label: Optional[str]) -> dict:
    return dict(
        x_label=options.x_label if options.x_label is not None else x_label,
        y_label=options.y_label if options.y_label is not None else y_label,
        title=options.title,
        show_border=options.show_border,
        show_axes=options.show_axes,
        rotate_labels=options.rotate_labels,
    )


def _with_alpha(color: str, options: PlotOptions) -> str:
    if options.alpha >= 1.0 or color == "none":
        return color
    return adjust_alpha(color, options.alpha)


def category_colors(
    df: pd.DataFrame,
    by: str,
    palette: Optional[Palette] = None,
    policy: ExhaustionPolicy | str = ExhaustionPolicy.error,
) -> CategoryColors:
    """Colour per distinct value of ``by`` (first-seen order)."""

    require_columns(df, [by])
    palette = palette if palette is not None else DEFAULT_PALETTE
    return palette.map_categories(df[by], policy=policy)


# --- single-variable recipes ---

def scatter(
    canvas: Canvas,
    df: pd.DataFrame,
    y: str,
    x: str,
    *,
    color_by: Optional[str] = None,
    colors: Optional[CategoryColors] = None,
    policy: ExhaustionPolicy | str = ExhaustionPolicy.error,
    options: PlotOptions = DEFAULT_OPTIONS,
) -> Panel:
    """``y ~ x`` scatter plot.

    Points take ``options.color``; with ``color_by`` each point is coloured by its
    category through ``colors`` (default palette when not given).
    """

    require_columns(df, [y, x, color_by])

    if color_by is not None:
        if colors is None:
            colors = category_colors(df, color_by, policy=policy)
        point_colors = tuple(_with_alpha(c, options) for c in colors.colors_for(df[color_by]))
    else:
        point_colors = (_with_alpha(options.color or DEFAULT_COLOR, options),)

    layer = PointsLayer(
        x=_numeric(df, x),
        y=_numeric(df, y),
        colors=point_colors,
        marker=options.point_shape.marker,
        filled=options.point_shape.filled,
        size=options.point_size,
    )
    return canvas.plot(layer, **_panel_fields(options, x_label=x, y_label=y))


def pairs(
    canvas: Canvas,
    df: pd.DataFrame,
    columns: Optional[Sequence[str]] = None,
    *,
    options: PlotOptions = DEFAULT_OPTIONS,
) -> Tuple[Panel, ...]:
    """Scatter plot matrix. Resets the canvas to an n x n grid, names on the diagonal."""

    cols = list(columns) if columns is not None else numeric_columns(df)
    require_columns(df, cols)
    if len(cols) < 2:
        raise ValueError(f"pairs() needs at least two numeric columns, got {cols}")

    saved = canvas.margins
    canvas.set_layout(len(cols), len(cols))
    canvas.set_margins(PAIRS_MARGINS)
    try:
        for i, row_col in enumerate(cols):
            for j, col_col in enumerate(cols):
                if i == j:
                    canvas.new_panel(layers=(TextLayer(text=row_col, size=10.0),), show_axes=False)
                    continue
                canvas.plot(
                    PointsLayer(
                        x=_numeric(df, col_col),
                        y=_numeric(df, row_col),
                        colors=(options.color or DEFAULT_COLOR,),
                        marker=options.point_shape.marker,
                        filled=options.point_shape.filled,
                        size=options.point_size / 3.0,
                    ),
                    compact=True,
                )
    finally:
        canvas.set_margins(saved)
    return canvas.scene().panels


def sturges_breaks(values: np.ndarray) -> np.ndarray:
    finite = values[np.isfinite(values)]
    if finite.size == 0:
        return np.array([0.0, 1.0])
    edges = np.histogram_bin_edges(finite, bins="sturges")
    # Round the outer edges to pretty values like R's hist() does.
    ticks = pretty_ticks(edges, n=len(edges) - 1)
    step = ticks[1] - ticks[0]
    if ticks[0] > finite.min():
        ticks = np.concatenate([[ticks[0] - step], ticks])
    if ticks[-1] < finite.max():
        ticks = np.concatenate([ticks, [ticks[-1] + step]])
    return ticks


def histogram(
    canvas: Canvas,
    data: pd.DataFrame | Sequence[float] | np.ndarray,
    column: Optional[str] = None,
    *,
    add: bool = False,
    options: PlotOptions = DEFAULT_OPTIONS,
) -> Panel:
    """Histogram of a column (or of raw values).

    Bins come from ``options.breaks`` or Sturges' rule. Values outside the breaks
    are an error, since they would silently go uncounted. ``add=True`` draws on the
    current panel instead of starting a new one.
    """

    if isinstance(data, pd.DataFrame):
        if column is None:
            raise ValueError("column is required when passing a DataFrame")
        require_columns(data, [column])
        values = _numeric(data, column)
    else:
        values = frozen_array(data)

    breaks = np.asarray(options.breaks, dtype=float) if options.breaks is not None else sturges_breaks(values)
    finite = values[np.isfinite(values)]
    if finite.size and (finite.min() < breaks[0] or finite.max() > breaks[-1]):
        raise ValueError(
            f"Breaks {breaks[0]:g}..{breaks[-1]:g} do not span the data range "
            f"{finite.min():g}..{finite.max():g}; some values would not be counted"
        )

    layer = HistLayer(
        values=values,
        breaks=frozen_array(breaks),
        color=_with_alpha(options.color or "none", options),
        show_border=options.show_bar_border,
    )
    if add:
        return canvas.add(layer)
    fields = _panel_fields(options, x_label=column or "x", y_label="Frequency")
    # hist() and barplot() draw no box
    fields["show_border"] = False
    return canvas.plot(layer, xlim=(float(breaks[0]), float(breaks[-1])), **fields)


def line(
    canvas: Canvas,
    df: pd.DataFrame,
    y: str,
    x: str,
    *,
    options: PlotOptions = DEFAULT_OPTIONS,
) -> Panel:
    """Line plot of ``y`` against ``x`` (time series)."""

    require_columns(df, [y, x])
    layer = LineLayer(
        x=_numeric(df, x),
        y=_numeric(df, y),
        color=options.color or DEFAULT_COLOR,
        linestyle=options.line_type.linestyle,
        width=options.line_width,
    )
    return canvas.plot(layer, **_panel_fields(options, x_label=x, y_label=y))


def box(
    canvas: Canvas,
    df: pd.DataFrame,
    y: str,
    by: str,
    *,
    options: PlotOptions = DEFAULT_OPTIONS,
) -> Panel:
    """Box plot of ``y`` per category of ``by``, categories in first-seen order."""

    require_columns(df, [y, by])
    groups = category_order(df[by])
    keys = df[by].astype(str)
    values = tuple(_numeric(df.loc[keys == g], y) for g in groups)
    layer = BoxLayer(groups=tuple(groups), values=values, color=options.color or "#FFFFFF")
    return canvas.plot(layer, **_panel_fields(options, x_label=by, y_label=y))


def bar(
    canvas: Canvas,
    heights: Sequence[float] | pd.Series | np.ndarray,
    names: Optional[Sequence[object]] = None,
    *,
    options: PlotOptions = DEFAULT_OPTIONS,
) -> Panel:
    """Single-series bar chart."""

    h = np.asarray(heights, dtype=float).reshape(1, -1)
    if options.names is not None:
        names = options.names
    if names is None:
        names = [""] * h.shape[1]
    if len(names) != h.shape[1]:
        raise ValueError(f"{len(names)} names for {h.shape[1]} bars")
    layer = BarLayer(
        heights=frozen_array(h),
        group_names=tuple(str(n) for n in names),
        series_colors=(options.color or "#BEBEBE",),
        grouped=True,
        show_border=options.show_bar_border,
    )
    return canvas.plot(layer, **dict(_panel_fields(options, x_label=None, y_label=None), show_border=False))


def grouped_bar(
    canvas: Canvas,
    means: pd.DataFrame,
    by: str,
    columns: Optional[Sequence[str]] = None,
    *,
    colors: Optional[CategoryColors] = None,
    options: PlotOptions = DEFAULT_OPTIONS,
) -> Panel:
    """Bars for every numeric column, one bar per category of ``by``.

    Groups along the x axis are the columns; within a group the bars are the
    categories, side by side (``options.grouped_bars``) or stacked. With
    ``colors`` the series follow ``colors.categories`` so a legend built from
    the same object lines up.
    """

    cols = list(columns) if columns is not None else numeric_columns(means, exclude=[by])
    require_columns(means, [by] + cols)

    indexed = means.assign(**{by: means[by].astype(str)}).set_index(by)
    if colors is not None:
        unknown = [c for c in colors.categories if c not in indexed.index]
        if unknown:
            raise KeyError(f"Categories {unknown} are not rows of the means table")
        order = list(colors.categories)
        series_colors = colors.colors
    else:
        order = category_order(indexed.index)
        series_colors = grey_ramp(len(order))

    heights = indexed.loc[order, cols].to_numpy(dtype=float)
    names = options.names if options.names is not None else cols
    if len(names) != len(cols):
        raise ValueError(f"{len(names)} names for {len(cols)} bar groups")

    layer = BarLayer(
        heights=frozen_array(heights),
        group_names=tuple(str(n) for n in names),
        series_colors=tuple(series_colors),
        series_labels=tuple(order),
        grouped=options.grouped_bars,
        show_border=options.show_bar_border,
    )
    return canvas.plot(layer, **dict(_panel_fields(options, x_label=None, y_label=None), show_border=False))


# --- layered recipes ---

def overlaid_histograms(
    canvas: Canvas,
    df: pd.DataFrame,
    column: str,
    by: str,
    colors: CategoryColors,
    *,
    options: PlotOptions = DEFAULT_OPTIONS,
) -> Panel:
    """One histogram per category of ``by`` stacked up on a single panel.

    Categories are drawn in ``colors.categories`` order using their colours as
    given (apply transparency with :meth:`CategoryColors.with_alpha`).
    """

    require_columns(df, [column, by])
    keys = df[by].astype(str)
    panel: Optional[Panel] = None
    for i, (category, color) in enumerate(zip(colors.categories, colors.colors)):
        subset = df.loc[keys == category]
        opts = options.with_(color=color)
        if i == 0:
            panel = histogram(canvas, subset, column, options=opts)
        else:
            panel = histogram(canvas, subset, column, add=True, options=opts)
    if panel is None:
        raise ValueError("No categories to draw")
    return panel


def legend(
    canvas: Canvas,
    colors: CategoryColors,
    *,
    kind: str = "point",
    title: Optional[str] = None,
    location: str = "upper left",
    inset: float = 0.05,
    marker: str = "o",
    filled: bool = True,
    line_type: LineType = LineType.solid,
    line_width: float = 1.0,
) -> LegendSpec:
    """Legend derived from a category -> colour mapping, in the mapping's order."""

    if kind not in ("point", "fill", "line"):
        raise ValueError(f"Unknown legend kind '{kind}'. Use point, fill or line")

    entries = []
    for label, color in zip(colors.categories, colors.colors):
        if kind == "point":
            entries.append(LegendEntry(label=label, color=color, marker=marker, filled=filled))
        elif kind == "fill":
            entries.append(LegendEntry(label=label, color=color, fill=True))
        else:
            entries.append(
                LegendEntry(label=label, color=color, linestyle=line_type.linestyle, linewidth=line_width)
            )
    spec = LegendSpec(entries=tuple(entries), title=title, location=location, inset=inset)
    canvas.annotate(spec)
    return spec


def line_legend(
    canvas: Canvas,
    labels: Sequence[str],
    colors: Sequence[str],
    line_types: Sequence[LineType],
    widths: Sequence[float],
    *,
    title: Optional[str] = None,
    location: str = "upper left",
    inset: float = 0.05,
) -> LegendSpec:
    """Legend of line samples; every argument lists one value per series."""

    n = len(labels)
    if not (len(colors) == len(line_types) == len(widths) == n):
        raise ValueError("labels, colors, line_types and widths must have one entry per series")
    entries = tuple(
        LegendEntry(label=lab, color=col, linestyle=LineType(lt).linestyle, linewidth=float(w))
        for lab, col, lt, w in zip(labels, colors, line_types, widths)
    )
    spec = LegendSpec(entries=entries, title=title, location=location, inset=inset)
    canvas.annotate(spec)
    return spec


# --- custom canvas composition ---

LEFT_SERIES = PlotOptions(color="red", line_width=3.0)
RIGHT_SERIES = PlotOptions(color="blue", line_width=2.0, line_type=LineType.dotted)


def dual_axis(
    canvas: Canvas,
    df: pd.DataFrame,
    x: str,
    left: str,
    right: str,
    *,
    left_label: Optional[str] = None,
    right_label: Optional[str] = None,
    x_label: Optional[str] = None,
    left_options: PlotOptions = LEFT_SERIES,
    right_options: PlotOptions = RIGHT_SERIES,
    legend_labels: Optional[Tuple[str, str]] = None,
) -> np.ndarray:
    """Two series sharing the x axis, each on its own vertical scale.

    The left series gets a coloured left label. The right series is overlaid
    without axes or border, then gets a right axis with pretty ticks over its
    own range, in its own colour. Returns those right-axis ticks.
    """

    require_columns(df, [x, left, right])
    left_color = left_options.color or DEFAULT_COLOR
    right_color = right_options.color or DEFAULT_COLOR

    canvas.plot(
        LineLayer(
            x=_numeric(df, x),
            y=_numeric(df, left),
            color=left_color,
            linestyle=left_options.line_type.linestyle,
            width=left_options.line_width,
        ),
        x_label=x_label if x_label is not None else x,
        y_label=None,
        show_border=left_options.show_border,
    )
    canvas.annotate(AxisLabel(side=2, text=left_label or left, line=2.5, color=left_color))

    canvas.request_overlay()
    right_values = _numeric(df, right)
    canvas.plot(
        LineLayer(
            x=_numeric(df, x),
            y=right_values,
            color=right_color,
            linestyle=right_options.line_type.linestyle,
            width=right_options.line_width,
        )
    )
    ticks = pretty_ticks(right_values)
    canvas.annotate(AxisSpec(side=4, ticks=tuple(float(t) for t in ticks), color=right_color))
    canvas.annotate(AxisLabel(side=4, text=right_label or right, line=2.5, color=right_color))

    if legend_labels is not None:
        line_legend(
            canvas,
            list(legend_labels),
            [left_color, right_color],
            [left_options.line_type, right_options.line_type],
            [left_options.line_width, right_options.line_width],
        )
    return ticks
