"""Scene rendering.

Turns a :class:`~prettyplots.viz.scene.FigureScene` into a matplotlib figure and
saves it. Rendering happens on the non-interactive Agg backend so it works in
headless environments; :func:`show_scene` is the only interactive entry point.
"""
from __future__ import annotations

import itertools
import logging
from pathlib import Path
from typing import Iterator, Optional, Tuple

import numpy as np

from prettyplots.core.config import Margins

from .scene import (
    AxisLabel,
    AxisSpec,
    BandLayer,
    BarLayer,
    BoxLayer,
    FigureScene,
    HistLayer,
    LegendSpec,
    LineLayer,
    Panel,
    PointsLayer,
    SwatchLayer,
    TextLayer,
)

logger = logging.getLogger(__name__)

# Smallest axes width/height (figure fraction) when margins eat the whole cell.
MIN_AXES_FRACTION = 0.02

# Anchor corner of each legend location, in axes fraction.
LEGEND_ANCHORS = {
    "upper left": (0.0, 1.0),
    "upper right": (1.0, 1.0),
    "lower left": (0.0, 0.0),
    "lower right": (1.0, 0.0),
    "upper center": (0.5, 1.0),
    "lower center": (0.5, 0.0),
    "center left": (0.0, 0.5),
    "center right": (1.0, 0.5),
    "center": (0.5, 0.5),
}


def _pyplot(interactive: bool = False):
    # Local import so importing prettyplots does not pick a backend.
    import matplotlib

    if not interactive:
        matplotlib.use("Agg")
    import matplotlib.pyplot as plt  # noqa: E402

    return plt


def bar_positions(n_series: int, n_groups: int, grouped: bool) -> Tuple[np.ndarray, np.ndarray]:
    """Bar centres as a (series x groups) array, plus the centre of each group.

    Side-by-side bars are one unit wide with a one-unit gap between groups;
    single or stacked bars are one unit wide with a 0.2 gap (barplot's spacing).
    """

    if grouped and n_series > 1:
        starts = np.arange(n_groups) * (n_series + 1) + 1.0
        x = starts[None, :] + np.arange(n_series)[:, None] + 0.5
        centers = starts + n_series / 2.0
        return x, centers
    centers = 0.2 + np.arange(n_groups) * 1.2 + 0.5
    return np.tile(centers, (max(n_series, 1), 1)), centers


def panel_rect(scene: FigureScene, panel: Panel) -> Tuple[float, float, float, float]:
    """[left, bottom, width, height] of a panel's axes in figure fraction."""

    cell_w = 1.0 / scene.cols
    cell_h = 1.0 / scene.rows
    left = panel.col * cell_w
    bottom = 1.0 - (panel.row + 1) * cell_h

    mb, ml, mt, mr = Margins.of(*panel.margins).inches()
    fl, fr = ml / scene.width, mr / scene.width
    fb, ft = mb / scene.height, mt / scene.height

    width = max(cell_w - fl - fr, MIN_AXES_FRACTION)
    height = max(cell_h - fb - ft, MIN_AXES_FRACTION)
    return (left + fl, bottom + fb, width, height)


def _tag(artists, gid: str) -> None:
    from matplotlib.artist import Artist

    if artists is None:
        return
    if isinstance(artists, Artist):
        artists.set_gid(gid)
        return
    if isinstance(artists, dict):
        for v in artists.values():
            _tag(v, gid)
        return
    for a in artists:
        _tag(a, gid)


def _draw_layer(ax, layer, gid: str) -> None:
    if isinstance(layer, PointsLayer):
        color = list(layer.colors) if len(layer.colors) > 1 else layer.colors[0]
        if layer.filled or layer.marker in ("x", "+"):
            art = ax.scatter(layer.x, layer.y, s=layer.size, marker=layer.marker, color=color, label=layer.label)
        else:
            art = ax.scatter(
                layer.x,
                layer.y,
                s=layer.size,
                marker=layer.marker,
                facecolors="none",
                edgecolors=color,
                label=layer.label,
            )
    elif isinstance(layer, LineLayer):
        art = ax.plot(
            layer.x,
            layer.y,
            color=layer.color,
            linestyle=layer.linestyle,
            linewidth=layer.width,
            label=layer.label,
        )
    elif isinstance(layer, HistLayer):
        values = layer.values[np.isfinite(layer.values)]
        _, _, art = ax.hist(
            values,
            bins=layer.breaks,
            color=layer.color,
            edgecolor="black" if layer.show_border else "none",
            linewidth=0.8,
        )
    elif isinstance(layer, BarLayer):
        x, centers = bar_positions(layer.n_series, layer.n_groups, layer.grouped)
        bottom = np.zeros(layer.n_groups)
        art = []
        for s in range(layer.n_series):
            heights = layer.heights[s]
            label = layer.series_labels[s] if s < len(layer.series_labels) else None
            bars = ax.bar(
                x[s],
                heights,
                width=1.0,
                bottom=None if layer.grouped else bottom,
                color=layer.series_colors[s % len(layer.series_colors)],
                edgecolor="black" if layer.show_border else "none",
                linewidth=0.8,
                label=label,
            )
            art.append(bars)
            if not layer.grouped:
                bottom = bottom + heights
        ax.set_xticks(centers, labels=list(layer.group_names))
        ax.tick_params(axis="x", length=0)
    elif isinstance(layer, BoxLayer):
        positions = list(range(1, len(layer.groups) + 1))
        data = [v[np.isfinite(v)] for v in layer.values]
        art = ax.boxplot(data, positions=positions, patch_artist=True, widths=0.6)
        for patch in art["boxes"]:
            patch.set_facecolor(layer.color)
        for median in art["medians"]:
            median.set_color("black")
            median.set_linewidth(2.0)
        ax.set_xticks(positions, labels=list(layer.groups))
    elif isinstance(layer, BandLayer):
        art = ax.fill_between(layer.x, layer.lower, layer.upper, color=layer.color, linewidth=0)
    elif isinstance(layer, SwatchLayer):
        from matplotlib.patches import Rectangle

        n = len(layer.rows)
        art = []
        width = max((len(colors) for _, colors in layer.rows), default=1)
        for i, (_, colors) in enumerate(layer.rows):
            for j, c in enumerate(colors):
                art.append(ax.add_patch(Rectangle((j, n - 1 - i), 0.9, 0.8, facecolor=c, edgecolor="none")))
        ax.set_xlim(-0.1, width)
        ax.set_ylim(-0.1, n)
        ax.set_xticks([])
        ax.set_yticks([n - 1 - i + 0.4 for i in range(n)], labels=[name for name, _ in layer.rows])
        ax.tick_params(axis="y", length=0)
    elif isinstance(layer, TextLayer):
        art = ax.text(layer.x, layer.y, layer.text, transform=ax.transAxes, ha="center", va="center", fontsize=layer.size)
    else:
        raise TypeError(f"Unknown layer type: {type(layer).__name__}")
    _tag(art, gid)


def _style_primary(ax, panel: Panel) -> None:
    if panel.xlim is not None:
        ax.set_xlim(*panel.xlim)
    if panel.ylim is not None:
        ax.set_ylim(*panel.ylim)
    if panel.x_ticks is not None:
        positions, labels = panel.x_ticks
        ax.set_xticks(list(positions), labels=list(labels))
    if panel.x_label is not None:
        ax.set_xlabel(panel.x_label)
    if panel.y_label is not None:
        ax.set_ylabel(panel.y_label)
    if panel.title:
        ax.set_title(panel.title)

    if any(isinstance(layer, (HistLayer, BarLayer)) for layer in panel.layers):
        # Bars start at zero; no padding below the baseline.
        ax.set_ylim(bottom=0)
    if any(isinstance(layer, BarLayer) for layer in panel.layers):
        ax.spines["bottom"].set_visible(False)

    if not panel.show_border:
        ax.spines["top"].set_visible(False)
        ax.spines["right"].set_visible(False)
    if not panel.show_axes:
        ax.set_xticks([])
        ax.set_yticks([])
    if panel.rotate_labels:
        ax.tick_params(axis="x", labelrotation=90)
    if panel.compact:
        ax.tick_params(labelsize=6, length=2)


def _style_secondary(ax2) -> None:
    # An overlay brings no axes or border of its own until an axis is added.
    ax2.set_yticks([])
    for spine in ax2.spines.values():
        spine.set_visible(False)


def _legend_handles(spec: LegendSpec):
    from matplotlib.lines import Line2D
    from matplotlib.patches import Patch

    handles = []
    for e in spec.entries:
        if e.fill:
            handles.append(Patch(facecolor=e.color, edgecolor="none", label=e.label))
        else:
            handles.append(
                Line2D(
                    [],
                    [],
                    color=e.color,
                    marker=e.marker or "None",
                    linestyle=e.linestyle or "None",
                    linewidth=e.linewidth,
                    markerfacecolor=e.color if e.filled else "none",
                    label=e.label,
                )
            )
    return handles


def legend_anchor(location: str, inset: float) -> Tuple[float, float]:
    if location not in LEGEND_ANCHORS:
        raise ValueError(f"Unknown legend location '{location}'. Use one of {sorted(LEGEND_ANCHORS)}")
    ax_, ay_ = LEGEND_ANCHORS[location]

    def _inset(v: float) -> float:
        if v == 0.0:
            return v + inset
        if v == 1.0:
            return v - inset
        return v

    return _inset(ax_), _inset(ay_)


def _visible_ticks(ticks, limits) -> list:
    lo, hi = sorted(limits)
    return [t for t in ticks if lo <= t <= hi]


def _draw_annotation(ax, ax2, annotation, gids: Iterator[str]):
    """Draw one annotation. Returns the secondary axes (created on demand for side 4)."""

    if isinstance(annotation, AxisSpec):
        if annotation.side == 4:
            if ax2 is None:
                ax2 = ax.twinx()
                ax2.set_ylim(ax.get_ylim())
            ax2.set_yticks(_visible_ticks(annotation.ticks, ax2.get_ylim()))
            ax2.tick_params(axis="y", colors=annotation.color)
            ax2.spines["right"].set_visible(True)
            ax2.spines["right"].set_color(annotation.color)
        elif annotation.side == 2:
            ax.set_yticks(_visible_ticks(annotation.ticks, ax.get_ylim()))
            ax.tick_params(axis="y", colors=annotation.color)
        else:
            ax.set_xticks(_visible_ticks(annotation.ticks, ax.get_xlim()))
            ax.tick_params(axis="x", colors=annotation.color)
            if annotation.side == 3:
                ax.tick_params(axis="x", top=True, labeltop=True, bottom=False, labelbottom=False)
    elif isinstance(annotation, AxisLabel):
        pad = max(annotation.line - 1.5, 0.0) * 8.0
        if annotation.side == 1:
            ax.set_xlabel(annotation.text, color=annotation.color, labelpad=pad)
        elif annotation.side == 2:
            ax.set_ylabel(annotation.text, color=annotation.color, labelpad=pad)
        elif annotation.side == 3:
            ax.set_title(annotation.text, color=annotation.color)
        else:
            if ax2 is None:
                ax2 = ax.twinx()
                _style_secondary(ax2)
            ax2.yaxis.set_label_position("right")
            ax2.set_ylabel(annotation.text, color=annotation.color, labelpad=pad)
    elif isinstance(annotation, LegendSpec):
        target = ax2 if ax2 is not None else ax
        leg = target.legend(
            handles=_legend_handles(annotation),
            title=annotation.title,
            loc=annotation.location,
            bbox_to_anchor=legend_anchor(annotation.location, annotation.inset),
            borderaxespad=0.0,
        )
        leg.set_gid(next(gids))
    else:
        raise TypeError(f"Unknown annotation type: {type(annotation).__name__}")
    return ax2


def _draw_panel(fig, scene: FigureScene, panel: Panel, gids: Iterator[str]):
    ax = fig.add_axes(panel_rect(scene, panel))
    for layer in panel.layers:
        _draw_layer(ax, layer, next(gids))
    _style_primary(ax, panel)

    ax2 = None
    if panel.has_overlay:
        ax2 = ax.twinx()
        for layer in panel.overlay_layers:
            _draw_layer(ax2, layer, next(gids))
        _style_secondary(ax2)

    for annotation in panel.annotations:
        ax2 = _draw_annotation(ax, ax2, annotation, gids)
    return ax


def render(scene: FigureScene, *, interactive: bool = False):
    """Build a matplotlib figure for ``scene``.

    Each layer and legend is tagged with the group id ``layer-<n>`` (n counts
    from 0 in drawing order), which shows up in SVG output. The figure is
    closed again if any panel fails to draw.
    """

    plt = _pyplot(interactive)
    fig = plt.figure(figsize=(scene.width, scene.height))
    gids = (f"layer-{i}" for i in itertools.count())
    try:
        for panel in scene.panels:
            _draw_panel(fig, scene, panel, gids)
    except Exception:
        plt.close(fig)
        raise
    return fig


def save_scene(
    scene: FigureScene,
    out_path: str | Path,
    *,
    dpi: int = 200,
    fmt: Optional[str] = None,
) -> Path:
    """Render ``scene`` and write it to ``out_path``. Returns the path."""

    plt = _pyplot()
    out_path = Path(out_path)
    out_path.parent.mkdir(parents=True, exist_ok=True)
    fig = render(scene)
    try:
        fig.savefig(out_path, dpi=dpi, format=fmt)
    finally:
        plt.close(fig)
    logger.info("Wrote %s", out_path)
    return out_path


def show_scene(scene: FigureScene) -> None:
    plt = _pyplot(interactive=True)
    render(scene, interactive=True)
    plt.show()
