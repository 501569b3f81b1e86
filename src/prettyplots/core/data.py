from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Iterable, List, Optional, Sequence

import numpy as np
import pandas as pd

from .errors import MissingColumnError

logger = logging.getLogger(__name__)

IRIS_COLUMNS = ["sepal_length", "sepal_width", "petal_length", "petal_width"]
BEAVER_COLUMNS = ["day", "time", "temp", "activ"]


def load_dataset(path: str | Path) -> pd.DataFrame:
    path = Path(path)
    if path.suffix.lower() in {".csv"}:
        return pd.read_csv(path)
    if path.suffix.lower() in {".parquet"}:
        return pd.read_parquet(path)
    raise ValueError(f"Unsupported dataset format: {path.suffix}. Use .csv or .parquet")


def require_columns(df: pd.DataFrame, columns: Iterable[Optional[str]]) -> None:
    """Raise :class:`MissingColumnError` unless every named column exists.

    ``None`` entries are skipped so optional fields can be passed through unchanged.
    """

    missing: List[str] = []
    for col in columns:
        if col is not None and col not in df.columns and col not in missing:
            missing.append(col)
    if missing:
        raise MissingColumnError(missing, df.columns)


def category_order(values: Iterable[object]) -> List[str]:
    """Distinct values as strings, in first-seen order."""

    return list(dict.fromkeys(str(v) for v in values))


def numeric_columns(df: pd.DataFrame, exclude: Sequence[str] = ()) -> List[str]:
    return [
        c for c in df.columns
        if c not in exclude and pd.api.types.is_numeric_dtype(df[c]) and not pd.api.types.is_bool_dtype(df[c])
    ]


def load_iris() -> pd.DataFrame:
    """The 150-row iris table, from scikit-learn's bundled copy.

    Columns: sepal_length, sepal_width, petal_length, petal_width (cm) and species.
    """

    from sklearn.datasets import load_iris as _sk_load_iris

    bunch = _sk_load_iris(as_frame=True)
    df = bunch.frame.copy()
    df.columns = IRIS_COLUMNS + ["target"]
    names = np.asarray(bunch.target_names)
    df["species"] = names[df["target"].to_numpy()]
    df = df.drop(columns=["target"])
    logger.debug("Loaded iris: %d rows", len(df))
    return df


def load_beaver(path: str | Path | None = None, *, day: Optional[int] = None) -> pd.DataFrame:
    """Body temperature series of beaver 1 (R ``datasets::beaver1``).

    Reads ``path`` when given, otherwise fetches the table from Rdatasets via
    statsmodels (network access, cached by statsmodels). ``day`` keeps a single day.
    """

    if path is not None:
        df = load_dataset(path)
    else:
        from statsmodels.datasets import get_rdataset

        df = get_rdataset("beaver1", "datasets", cache=True).data

    df = df.drop(columns=[c for c in ("rownames", "Unnamed: 0") if c in df.columns])
    require_columns(df, BEAVER_COLUMNS)
    logger.debug("Loaded beaver1: %d rows", len(df))

    if day is not None:
        df = filter_rows(df, "day", day)
    return df.reset_index(drop=True)


def filter_rows(df: pd.DataFrame, column: str, value: Any) -> pd.DataFrame:
    """Rows where ``column`` equals ``value`` exactly.

    No match gives an empty frame with the same columns; callers decide what to do with it.
    """

    require_columns(df, [column])
    out = df.loc[df[column] == value].copy()
    if out.empty:
        logger.warning("No rows with %s == %r (of %d rows)", column, value, len(df))
    return out


def grouped_means(df: pd.DataFrame, by: str) -> pd.DataFrame:
    """Mean of every numeric column within each ``by`` group.

    One row per distinct value of ``by`` in first-seen order, with missing values
    as a group of their own. Columns are ``by`` followed by the numeric columns
    in source order.
    """

    require_columns(df, [by])
    cols = numeric_columns(df, exclude=[by])
    out = df.groupby(by, sort=False, observed=True, dropna=False)[cols].mean().reset_index()
    return out[[by] + cols]


def make_madeup(
    years: Iterable[int] = range(1991, 2021),
    *,
    seed: Optional[int] = None,
    rng: Optional[np.random.Generator] = None,
) -> pd.DataFrame:
    """Synthetic annual series: P deposition with a linear trend and biomass driven by P.

    ``P = k + N(10, 5)`` for the k-th year and ``biomass = 30 * P + N(100, 100)``.
    Unseeded calls are not reproducible.
    """

    years = list(years)
    if rng is None:
        rng = np.random.default_rng(seed)
    n = len(years)
    p = np.arange(1, n + 1, dtype=float) + rng.normal(10.0, 5.0, size=n)
    biomass = p * 30.0 + rng.normal(100.0, 100.0, size=n)
    return pd.DataFrame({"time": years, "P": p, "biomass": biomass})
