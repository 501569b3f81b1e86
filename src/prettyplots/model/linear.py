from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

import numpy as np
import pandas as pd
import statsmodels.api as sm
import statsmodels.formula.api as smf

from prettyplots.core.data import category_order, require_columns

logger = logging.getLogger(__name__)

# Variable names in a formula; skips function names such as C( or np.log(.
_VARIABLE = re.compile(r"(?<![\w.])([A-Za-z_][\w.]*)(?![\w.(])")


@dataclass(frozen=True)
class LinearModelResult:
    formula: str
    response: str
    predictors: Tuple[str, ...]
    data: pd.DataFrame
    coef_table: pd.DataFrame
    anova_table: pd.DataFrame
    model: Any  # statsmodels RegressionResultsWrapper

    def is_categorical(self, name: str) -> bool:
        s = self.data[name]
        return not pd.api.types.is_numeric_dtype(s) or pd.api.types.is_bool_dtype(s)

    def in_interaction(self, name: str) -> bool:
        """Whether ``name`` appears in an interaction term of the fitted model."""

        for term in self.model.model.exog_names:
            if ":" not in term:
                continue
            for part in term.split(":"):
                if part == name or part.startswith(f"{name}[") or f"({name})" in part or f"({name}," in part:
                    return True
        return False


@dataclass(frozen=True)
class ConditionalEffect:
    variable: str
    by: Optional[str]
    categorical: bool
    # variable, [by], fit, lower, upper
    fit: pd.DataFrame
    # variable, [by], partial_residual
    residuals: pd.DataFrame
    conditions: Dict[str, Any]


def parse_formula(formula: str) -> Tuple[str, List[str]]:
    """Response and predictor names of an ``y ~ a * b`` style formula."""

    if formula.count("~") != 1:
        raise ValueError(f"Formula must look like 'response ~ predictors', got {formula!r}")
    lhs, rhs = (s.strip() for s in formula.split("~"))
    if not lhs:
        raise ValueError(f"Formula has no response: {formula!r}")
    response = lhs
    predictors = [v for v in dict.fromkeys(_VARIABLE.findall(rhs)) if v != response]
    return response, predictors


def fit_linear_model(df: pd.DataFrame, formula: str) -> LinearModelResult:
    """Ordinary least squares fit of ``formula`` plus coefficient and ANOVA tables."""

    response, predictors = parse_formula(formula)
    require_columns(df, [response] + predictors)

    data = df[[response] + predictors].dropna(axis=0).reset_index(drop=True)
    model = smf.ols(formula, data=data).fit()

    coef = model.summary2().tables[1].copy()
    coef.index.name = "term"
    coef = coef.rename(
        columns={
            "Coef.": "coef",
            "Std.Err.": "std_err",
            "P>|t|": "p_value",
        }
    )

    anova = sm.stats.anova_lm(model, typ=2)
    anova.index.name = "term"

    return LinearModelResult(
        formula=formula,
        response=response,
        predictors=tuple(predictors),
        data=data,
        coef_table=coef.reset_index(),
        anova_table=anova.reset_index(),
        model=model,
    )


def typical_value(series: pd.Series) -> Any:
    """Median of a numeric column, most common level otherwise (first seen on ties)."""

    if pd.api.types.is_numeric_dtype(series) and not pd.api.types.is_bool_dtype(series):
        return float(series.median())
    counts = series.astype(str).value_counts()
    return max(category_order(series), key=lambda level: counts[level])


def conditional_effect(
    result: LinearModelResult,
    variable: str,
    *,
    by: Optional[str] = None,
    n_points: int = 101,
    alpha: float = 0.05,
) -> ConditionalEffect:
    """Fitted ``variable`` effect with a confidence band, other predictors held fixed.

    Other predictors sit at :func:`typical_value`. With ``by`` there is one curve
    per level of ``by``. Partial residuals are the fit at each observation's own
    ``variable`` (and ``by``) value plus its residual.
    """

    for name in (variable, by):
        if name is not None and name not in result.predictors:
            raise ValueError(f"'{name}' is not a predictor of {result.formula!r}")
    if by == variable:
        raise ValueError("by must differ from variable")
    if by is not None and not result.is_categorical(by):
        raise ValueError(f"by='{by}' must be a categorical predictor")

    data = result.data
    conditions = {
        p: typical_value(data[p]) for p in result.predictors if p not in (variable, by)
    }
    if conditions:
        logger.info(
            "Conditions used in construction of plot: %s",
            ", ".join(f"{k}: {v:g}" if isinstance(v, float) else f"{k}: {v}" for k, v in conditions.items()),
        )
    if by is None and result.in_interaction(variable):
        logger.warning(
            "'%s' is part of an interaction in %r; its main effect alone may be misleading. "
            "Consider plotting it with by=...",
            variable,
            result.formula,
        )

    categorical = result.is_categorical(variable)
    if categorical:
        grid: Any = category_order(data[variable])
    else:
        lo, hi = float(data[variable].min()), float(data[variable].max())
        grid = np.linspace(lo, hi, n_points)

    levels = category_order(data[by]) if by is not None else [None]
    frames = []
    for level in levels:
        new = pd.DataFrame({variable: grid})
        for k, v in conditions.items():
            new[k] = v
        if by is not None:
            new[by] = level
        pred = result.model.get_prediction(new).summary_frame(alpha=alpha)
        out = pd.DataFrame({variable: new[variable].to_numpy()})
        if by is not None:
            out[by] = level
        out["fit"] = pred["mean"].to_numpy()
        out["lower"] = pred["mean_ci_lower"].to_numpy()
        out["upper"] = pred["mean_ci_upper"].to_numpy()
        frames.append(out)
    fit = pd.concat(frames, ignore_index=True)

    obs = data.copy()
    for k, v in conditions.items():
        obs[k] = v
    partial = np.asarray(result.model.predict(obs), dtype=float) + np.asarray(result.model.resid, dtype=float)
    residuals = pd.DataFrame({variable: data[variable].to_numpy()})
    if by is not None:
        residuals[by] = data[by].astype(str).to_numpy()
    residuals["partial_residual"] = partial

    return ConditionalEffect(
        variable=variable,
        by=by,
        categorical=categorical,
        fit=fit,
        residuals=residuals,
        conditions=conditions,
    )
