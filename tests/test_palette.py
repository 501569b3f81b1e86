import logging

import pytest

from prettyplots.core.config import ExhaustionPolicy
from prettyplots.core.data import grouped_means
from prettyplots.core.errors import PaletteExhaustedError
from prettyplots.viz.canvas import Canvas
from prettyplots.viz.palette import (
    BREWER_QUALITATIVE,
    DEFAULT_PALETTE,
    Palette,
    adjust_alpha,
    brewer_palette,
    grey_ramp,
    palette_overview,
)
from prettyplots.viz.recipes import grouped_bar, legend, scatter


def test_brewer_palette_distinct_colours():
    pal = brewer_palette("Dark2", 3)
    assert len(pal) == 3
    assert len(set(pal.colors)) == 3
    assert pal[0] == "#1b9e77"


def test_brewer_palette_minimum_three(caplog):
    with caplog.at_level(logging.WARNING, logger="prettyplots"):
        pal = brewer_palette("Set1", 2)
    assert len(pal) == 3
    assert "Minimal value" in caplog.text


def test_brewer_palette_too_many():
    with pytest.raises(PaletteExhaustedError):
        brewer_palette("Dark2", 9)


def test_unknown_palette():
    with pytest.raises(ValueError):
        brewer_palette("Viridis")


def test_map_categories_first_seen_order(iris):
    colors = brewer_palette("Dark2", 3).map_categories(iris["species"])
    assert colors.categories == ("setosa", "versicolor", "virginica")
    assert len(set(colors.colors)) == 3
    assert colors.color_of("versicolor") == colors.colors[1]


def test_map_categories_error_policy():
    pal = Palette("tiny", ("#000000", "#ffffff"))
    with pytest.raises(PaletteExhaustedError):
        pal.map_categories(["a", "b", "c"])


def test_map_categories_recycle_policy(caplog):
    pal = Palette("tiny", ("#000000", "#ffffff"))
    with caplog.at_level(logging.WARNING, logger="prettyplots"):
        colors = pal.map_categories(["a", "b", "c"], policy=ExhaustionPolicy.recycle)
    assert colors.colors == ("#000000", "#ffffff", "#000000")
    assert "repeat" in caplog.text


def test_colors_for_unknown_category():
    colors = DEFAULT_PALETTE.map_categories(["a", "b"])
    assert colors.colors_for(["b", "a", "b"]) == (colors.colors[1], colors.colors[0], colors.colors[1])
    with pytest.raises(KeyError):
        colors.colors_for(["c"])


def test_adjust_alpha():
    assert adjust_alpha("red", 0.5) == "#ff000080"
    assert adjust_alpha("#1b9e77", 1.0) == "#1b9e77ff"
    assert adjust_alpha("#00000080", 0.5) == "#00000040"
    with pytest.raises(ValueError):
        adjust_alpha("red", 2.0)


def test_with_alpha_keeps_order():
    colors = brewer_palette("Dark2", 3).map_categories(["x", "y", "z"])
    faded = colors.with_alpha(0.5)
    assert faded.categories == colors.categories
    assert all(c.endswith("80") for c in faded.colors)


def test_legend_follows_series_order(iris):
    colors = brewer_palette("Dark2", 3).map_categories(iris["species"])
    canvas = Canvas(1, 2)

    scatter(canvas, iris, "sepal_length", "petal_length", color_by="species", colors=colors)
    spec = legend(canvas, colors, kind="point", title="Species")
    assert spec.labels == colors.categories

    panel = grouped_bar(canvas, grouped_means(iris, "species"), "species", colors=colors)
    bars = panel.layers[0]
    assert bars.series_labels == colors.categories
    assert bars.series_colors == colors.colors
    assert bars.heights.shape == (3, 4)


def test_grey_ramp():
    greys = grey_ramp(3)
    assert len(greys) == 3
    assert greys[0] < greys[-1]


def test_palette_overview_rows():
    scene = palette_overview()
    swatches = scene.panels[0].layers[0]
    assert [name for name, _ in swatches.rows] == list(BREWER_QUALITATIVE)
