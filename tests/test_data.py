import logging
from pathlib import Path

import numpy as np
import pandas as pd
import pytest
from pydantic import ValidationError

from prettyplots.core.config import BreaksConfig, PlotOptions, WorkshopConfig
from prettyplots.core.data import filter_rows, grouped_means, load_beaver, make_madeup
from prettyplots.core.errors import MissingColumnError

ROOT = Path(__file__).resolve().parents[1]


def test_grouped_means_iris(iris):
    means = grouped_means(iris, "species")

    assert means.shape == (3, 5)
    assert means.drop(columns="species").shape == (3, 4)
    assert list(means.columns) == ["species", "sepal_length", "sepal_width", "petal_length", "petal_width"]
    assert list(means["species"]) == ["setosa", "versicolor", "virginica"]
    assert len(means) == iris["species"].nunique()

    setosa = iris[iris["species"] == "setosa"]
    row = means.iloc[0]
    for col in ["sepal_length", "sepal_width", "petal_length", "petal_width"]:
        assert row[col] == pytest.approx(setosa[col].mean())
    assert means.loc[means["species"] == "virginica", "petal_length"].item() == pytest.approx(5.552)


def test_grouped_means_keeps_first_seen_order(iris):
    shuffled = iris.iloc[::-1].reset_index(drop=True)
    means = grouped_means(shuffled, "species")
    assert list(means["species"]) == ["virginica", "versicolor", "setosa"]


def test_grouped_means_keeps_missing_category():
    df = pd.DataFrame({"g": ["a", None, "a", None], "v": [1.0, 2.0, 3.0, 4.0]})
    means = grouped_means(df, "g")
    assert len(means) == df["g"].nunique(dropna=False) == 2
    assert means.loc[means["g"] == "a", "v"].item() == pytest.approx(2.0)
    assert means.loc[means["g"].isna(), "v"].item() == pytest.approx(3.0)


def test_grouped_means_missing_column(iris):
    with pytest.raises(MissingColumnError) as exc:
        grouped_means(iris, "colour")
    assert exc.value.missing == ["colour"]
    assert "species" in exc.value.available
    assert "colour" in str(exc.value)
    # Still catchable the pandas way
    assert isinstance(exc.value, KeyError)


def test_filter_rows_no_match_is_empty(beaver, caplog):
    with caplog.at_level(logging.WARNING, logger="prettyplots"):
        out = filter_rows(beaver, "day", 999)
    assert out.empty
    assert list(out.columns) == list(beaver.columns)
    assert "No rows" in caplog.text


def test_load_beaver_from_file(beaver, tmp_path):
    other_day = beaver.assign(day=347)
    path = tmp_path / "beaver1.csv"
    # Rdatasets CSVs carry a rownames column
    pd.concat([beaver, other_day], ignore_index=True).to_csv(path, index_label="rownames")

    df = load_beaver(path, day=346)
    assert len(df) == len(beaver)
    assert list(df.columns) == ["day", "time", "temp", "activ"]
    assert set(df["day"]) == {346}


def test_load_beaver_missing_columns(tmp_path):
    path = tmp_path / "bad.csv"
    path.write_text("day,time\n346,840\n")
    with pytest.raises(MissingColumnError):
        load_beaver(path)


def test_make_madeup_seeded():
    a = make_madeup(range(1991, 2021), seed=7)
    b = make_madeup(range(1991, 2021), seed=7)
    assert list(a.columns) == ["time", "P", "biomass"]
    assert len(a) == 30
    assert a["time"].iloc[0] == 1991 and a["time"].iloc[-1] == 2020
    assert np.allclose(a["P"], b["P"])
    assert np.allclose(a["biomass"], b["biomass"])


def test_config_from_yaml():
    cfg = WorkshopConfig.from_yaml(ROOT / "examples" / "configs" / "workshop.yaml")
    assert cfg.palette == "Dark2"
    assert cfg.seed == 42
    assert cfg.bar_margins.bottom == 7.0
    assert list(cfg.years()) == list(range(1991, 2021))


def test_breaks_are_inclusive():
    values = BreaksConfig(start=4, stop=8, step=0.25).values()
    assert len(values) == 17
    assert values[0] == 4.0 and values[-1] == 8.0


def test_plot_options_validation():
    with pytest.raises(ValidationError):
        PlotOptions(alpha=1.5)
    with pytest.raises(ValidationError):
        PlotOptions(breaks=[4.0, 5.0, 5.0])
    with pytest.raises(ValidationError):
        PlotOptions(breaks=[4.0])
    with pytest.raises(ValidationError):
        PlotOptions(color="not-a-colour")
    assert PlotOptions(color="none").color == "none"
    assert PlotOptions(color="#1B9E77").color == "#1B9E77"
    opts = PlotOptions(color="red").with_(alpha=0.5)
    assert opts.color == "red" and opts.alpha == 0.5
