import numpy as np
import pandas as pd
import pytest

from prettyplots.core.config import Margins, PlotOptions
from prettyplots.core.data import make_madeup
from prettyplots.core.errors import LayoutError, MissingColumnError
from prettyplots.viz.canvas import Canvas
from prettyplots.viz.recipes import bar, box, dual_axis, histogram, line, pairs, scatter
from prettyplots.viz.scene import AxisLabel, AxisSpec, LegendSpec, LineLayer, frozen_array
from prettyplots.viz.ticks import pretty_ticks


def _line(y):
    return LineLayer(x=frozen_array(np.arange(len(y))), y=frozen_array(y))


def test_layout_capacity_and_reset():
    canvas = Canvas(2, 2)
    for i in range(4):
        canvas.plot(_line([0, i]))
    assert canvas.panel_count == 4

    with pytest.raises(LayoutError):
        canvas.plot(_line([0, 1]))
    assert canvas.panel_count == 4

    canvas.reset()
    assert canvas.panel_count == 0
    canvas.plot(_line([0, 1]))
    assert canvas.current.index == 0


def test_set_layout_validation():
    with pytest.raises(LayoutError):
        Canvas(0, 2)
    with pytest.raises(LayoutError):
        Canvas(1, 1, order="diagonal")


def test_row_and_column_fill_order():
    rows = Canvas(2, 3)
    cols = Canvas(2, 3, order="col")
    for _ in range(3):
        rows.plot(_line([0, 1]))
        cols.plot(_line([0, 1]))
    assert [(p.row, p.col) for p in rows.scene().panels] == [(0, 0), (0, 1), (0, 2)]
    assert [(p.row, p.col) for p in cols.scene().panels] == [(0, 0), (1, 0), (0, 1)]


def test_margins_captured_per_panel():
    canvas = Canvas(1, 2)
    canvas.plot(_line([0, 1]))
    canvas.set_margins((7, 4.1, 1.5, 4.1))
    canvas.plot(_line([0, 1]))

    first, second = canvas.scene().panels
    assert first.margins == Margins().as_tuple()
    assert second.margins == (7, 4.1, 1.5, 4.1)
    assert canvas.margins.bottom == 7


def test_overlay_shares_panel():
    canvas = Canvas()
    canvas.plot(_line([0, 1]))
    canvas.request_overlay()
    assert canvas.overlay_pending

    panel = canvas.plot(_line([100, 500]))
    assert canvas.panel_count == 1
    assert not canvas.overlay_pending
    assert len(panel.layers) == 1
    assert len(panel.overlay_layers) == 1

    # add() after an overlay draws on the overlay's scale
    panel = canvas.add(_line([200, 300]))
    assert len(panel.overlay_layers) == 2
    assert panel.layer_count == 3


def test_overlay_rejects_panel_fields():
    canvas = Canvas()
    canvas.plot(_line([0, 1]), x_label="time")
    canvas.request_overlay()
    with pytest.raises(LayoutError):
        canvas.plot(_line([100, 500]), y_label="biomass")
    assert canvas.overlay_pending
    assert canvas.current.x_label == "time"
    assert canvas.current.overlay_layers == ()


def test_add_and_overlay_need_a_panel():
    canvas = Canvas()
    with pytest.raises(LayoutError):
        canvas.add(_line([0, 1]))
    with pytest.raises(LayoutError):
        canvas.request_overlay()
    with pytest.raises(LayoutError):
        canvas.current


def test_scatter_missing_column_draws_nothing(iris):
    canvas = Canvas()
    with pytest.raises(MissingColumnError):
        scatter(canvas, iris, "sepal_length", "petal_area")
    with pytest.raises(MissingColumnError):
        scatter(canvas, iris, "sepal_length", "petal_length", color_by="genus")
    assert canvas.panel_count == 0


def test_scatter_colours_each_point(iris):
    canvas = Canvas()
    panel = scatter(canvas, iris, "sepal_length", "petal_length", color_by="species")
    points = panel.layers[0]
    assert len(points.colors) == len(iris)
    assert len(set(points.colors)) == 3
    assert panel.x_label == "petal_length"


def test_histogram_breaks_must_span_data(iris):
    canvas = Canvas()
    with pytest.raises(ValueError):
        histogram(canvas, iris, "sepal_length", options=PlotOptions(breaks=[5.0, 6.0, 7.0]))

    breaks = list(np.arange(4.0, 8.01, 0.25))
    panel = histogram(canvas, iris, "sepal_length", options=PlotOptions(breaks=breaks))
    assert panel.layers[0].breaks[0] == 4.0
    assert panel.xlim == (4.0, 8.0)
    assert not panel.show_border


def test_histogram_default_breaks_cover_data(iris):
    panel = histogram(Canvas(), iris, "sepal_width")
    edges = panel.layers[0].breaks
    assert edges[0] <= iris["sepal_width"].min()
    assert edges[-1] >= iris["sepal_width"].max()


def test_overlaid_histograms_add_to_one_panel(iris):
    canvas = Canvas()
    histogram(canvas, iris[iris["species"] == "setosa"], "sepal_length", options=PlotOptions(breaks=[4, 6, 8]))
    histogram(canvas, iris[iris["species"] == "virginica"], "sepal_length", add=True, options=PlotOptions(breaks=[4, 6, 8]))
    assert canvas.panel_count == 1
    assert len(canvas.current.layers) == 2


def test_pairs_resets_layout(iris):
    canvas = Canvas(margins=Margins.of(5, 4.1, 1.5, 4.1))
    panels = pairs(canvas, iris)
    assert canvas.rows == canvas.cols == 4
    assert len(panels) == 16
    assert not panels[0].show_axes
    # margins are restored afterwards
    assert canvas.margins == Margins.of(5, 4.1, 1.5, 4.1)


def test_bar_box_line(iris, beaver):
    canvas = Canvas(1, 3)
    b = bar(canvas, [1.0, 2.0, 3.0], names=["a", "b", "c"])
    assert b.layers[0].group_names == ("a", "b", "c")
    with pytest.raises(ValueError):
        bar(canvas, [1.0, 2.0], names=["a"])

    bx = box(canvas, iris, "sepal_length", "species")
    assert bx.layers[0].groups == ("setosa", "versicolor", "virginica")

    ln = line(canvas, beaver, "temp", "time")
    assert len(ln.layers[0].x) == len(beaver)


def test_pretty_ticks_cover_range():
    ticks = pretty_ticks([431.7, 1187.2])
    assert ticks[0] <= 431.7
    assert ticks[-1] >= 1187.2
    step = np.diff(ticks)
    assert np.allclose(step, step[0])
    assert step[0] in (50, 100, 200, 250, 500)


def test_pretty_ticks_degenerate_range():
    ticks = pretty_ticks([3.0, 3.0])
    assert ticks[0] < 3.0 < ticks[-1]
    with pytest.raises(ValueError):
        pretty_ticks([np.nan])


def test_dual_axis_right_ticks_follow_right_series():
    df = make_madeup(seed=3)
    canvas = Canvas()
    ticks = dual_axis(canvas, df, "time", "P", "biomass", legend_labels=("P deposition", "Phytoplankton"))

    lo, hi = df["biomass"].min(), df["biomass"].max()
    assert ticks[0] <= lo and ticks[-1] >= hi
    assert np.array_equal(ticks, pretty_ticks(df["biomass"]))

    # Same right series against a very different left series: same right axis
    shifted = df.assign(P=df["P"] * 1000)
    other = dual_axis(Canvas(), shifted, "time", "P", "biomass")
    assert np.array_equal(ticks, other)

    panel = canvas.current
    assert canvas.panel_count == 1
    assert len(panel.layers) == 1 and len(panel.overlay_layers) == 1
    axes = [a for a in panel.annotations if isinstance(a, AxisSpec)]
    assert axes[0].side == 4 and axes[0].color == "blue"
    labels = {a.side: a.color for a in panel.annotations if isinstance(a, AxisLabel)}
    assert labels == {2: "red", 4: "blue"}
    legend = [a for a in panel.annotations if isinstance(a, LegendSpec)][0]
    assert legend.labels == ("P deposition", "Phytoplankton")


def test_dual_axis_missing_column():
    df = pd.DataFrame({"time": [1, 2], "P": [1.0, 2.0]})
    canvas = Canvas()
    with pytest.raises(MissingColumnError):
        dual_axis(canvas, df, "time", "P", "biomass")
    assert canvas.panel_count == 0
