import logging

import pytest

from prettyplots.core.errors import MissingColumnError
from prettyplots.model.linear import conditional_effect, fit_linear_model, parse_formula, typical_value
from prettyplots.viz.canvas import Canvas
from prettyplots.viz.model_plots import parity, residuals, visreg
from prettyplots.viz.palette import brewer_palette
from prettyplots.viz.scene import BandLayer, LegendSpec

FORMULA = "sepal_length ~ sepal_width * species"


@pytest.fixture(scope="module")
def result(iris):
    return fit_linear_model(iris, FORMULA)


def test_parse_formula():
    assert parse_formula(FORMULA) == ("sepal_length", ["sepal_width", "species"])
    assert parse_formula("y ~ C(group) + np.log(x)") == ("y", ["group", "x"])
    with pytest.raises(ValueError):
        parse_formula("sepal_length sepal_width")


def test_fit_linear_model_tables(result):
    assert result.response == "sepal_length"
    assert result.predictors == ("sepal_width", "species")
    assert list(result.coef_table.columns[:3]) == ["term", "coef", "std_err"]
    assert "p_value" in result.coef_table.columns
    terms = set(result.coef_table["term"])
    assert {"Intercept", "sepal_width", "species[T.versicolor]"} <= terms
    assert "sepal_width:species" in set(result.anova_table["term"])
    assert result.is_categorical("species")
    assert not result.is_categorical("sepal_width")
    assert result.in_interaction("sepal_width")


def test_fit_linear_model_missing_column(iris):
    with pytest.raises(MissingColumnError):
        fit_linear_model(iris, "sepal_length ~ colour")


def test_typical_value(iris):
    assert typical_value(iris["sepal_width"]) == pytest.approx(iris["sepal_width"].median())
    # all three species are tied: first seen wins
    assert typical_value(iris["species"]) == "setosa"


def test_conditional_effect_by_level(result):
    effect = conditional_effect(result, "sepal_width", by="species", n_points=25)
    assert len(effect.fit) == 3 * 25
    assert list(dict.fromkeys(effect.fit["species"])) == ["setosa", "versicolor", "virginica"]
    assert (effect.fit["lower"] <= effect.fit["fit"]).all()
    assert (effect.fit["fit"] <= effect.fit["upper"]).all()
    assert len(effect.residuals) == len(result.data)
    assert effect.conditions == {}


def test_conditional_effect_warns_about_interaction(result, caplog):
    with caplog.at_level(logging.INFO, logger="prettyplots"):
        effect = conditional_effect(result, "sepal_width")
    assert effect.conditions == {"species": "setosa"}
    assert "Conditions used in construction of plot" in caplog.text
    assert "interaction" in caplog.text


def test_conditional_effect_rejects_bad_arguments(result):
    with pytest.raises(ValueError):
        conditional_effect(result, "petal_width")
    with pytest.raises(ValueError):
        conditional_effect(result, "species", by="sepal_width")


def test_visreg_one_panel_per_predictor(result):
    canvas = Canvas(1, 2)
    panels = visreg(canvas, result)
    assert len(panels) == 2
    assert canvas.panel_count == 2

    numeric, categorical = canvas.scene().panels
    assert isinstance(numeric.layers[0], BandLayer)
    assert numeric.x_label == "sepal_width"
    # band, segment and points for each species
    assert len(categorical.layers) == 9
    assert categorical.x_ticks[1] == ("setosa", "versicolor", "virginica")


def test_visreg_overlay_by_species(result):
    canvas = Canvas()
    colors = brewer_palette("Dark2", 3)
    panels = visreg(canvas, result, "sepal_width", by="species", overlay=True, palette=colors)
    assert len(panels) == 1
    assert canvas.panel_count == 1

    panel = panels[0]
    legends = [a for a in panel.annotations if isinstance(a, LegendSpec)]
    assert legends[0].labels == ("setosa", "versicolor", "virginica")
    assert [e.color for e in legends[0].entries] == list(colors.colors)
    assert panel.layer_count == 3 * 3 + 1


def test_visreg_separate_panels_by_species(result):
    canvas = Canvas(1, 3)
    panels = visreg(canvas, result, "sepal_width", by="species")
    assert [p.title for p in panels] == ["species: setosa", "species: versicolor", "species: virginica"]


def test_diagnostic_panels(result):
    canvas = Canvas(1, 2)
    p = parity(canvas, result)
    r = residuals(canvas, result)
    assert p.xlim == p.ylim
    assert len(r.layers) == 2
    assert r.y_label.startswith("Residual")
