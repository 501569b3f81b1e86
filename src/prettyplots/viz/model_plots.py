from __future__ import annotations

from typing import List, Optional, Tuple

import numpy as np

from prettyplots.core.config import ExhaustionPolicy
from prettyplots.model.linear import ConditionalEffect, LinearModelResult, conditional_effect

from .canvas import Canvas
from .palette import DEFAULT_PALETTE, Palette, adjust_alpha
from .recipes import legend
from .scene import BandLayer, LineLayer, Panel, PointsLayer, frozen_array

# visreg's look: blue fit line, light grey band, mid grey partial residuals
FIT_COLOR = "#008DFF"
BAND_COLOR = "#D9D9D9"
POINT_COLOR = "#7F7F7F"

# Half the width of a level's segment on a categorical axis.
LEVEL_HALF_WIDTH = 0.4


def _numeric_layers(effect: ConditionalEffect, fit, resid, color: str, band: str, points: str):
    v = effect.variable
    return [
        BandLayer(
            x=frozen_array(fit[v]),
            lower=frozen_array(fit["lower"]),
            upper=frozen_array(fit["upper"]),
            color=band,
        ),
        LineLayer(x=frozen_array(fit[v]), y=frozen_array(fit["fit"]), color=color, width=2.0),
        PointsLayer(
            x=frozen_array(resid[v]),
            y=frozen_array(resid["partial_residual"]),
            colors=(points,),
            filled=True,
            size=10.0,
        ),
    ]


def _categorical_layers(effect: ConditionalEffect, fit, resid, color: str, band: str, points: str):
    v = effect.variable
    layers = []
    for i, row in enumerate(fit.itertuples(index=False)):
        level = str(getattr(row, v))
        x = frozen_array([i - LEVEL_HALF_WIDTH, i + LEVEL_HALF_WIDTH])
        layers.append(BandLayer(x=x, lower=frozen_array([row.lower] * 2), upper=frozen_array([row.upper] * 2), color=band))
        layers.append(LineLayer(x=x, y=frozen_array([row.fit] * 2), color=color, width=2.0))
        ys = resid.loc[resid[v].astype(str) == level, "partial_residual"].to_numpy(dtype=float)
        if ys.size:
            # Spread the level's points across its segment instead of stacking them.
            xs = i + np.linspace(-0.75 * LEVEL_HALF_WIDTH, 0.75 * LEVEL_HALF_WIDTH, ys.size)
            layers.append(PointsLayer(x=frozen_array(xs), y=frozen_array(ys), colors=(points,), filled=True, size=10.0))
    return layers


def _draw_effect(
    canvas: Canvas,
    effect: ConditionalEffect,
    response: str,
    *,
    fit=None,
    resid=None,
    color: str = FIT_COLOR,
    band: str = BAND_COLOR,
    points: str = POINT_COLOR,
    title: Optional[str] = None,
    new_panel: bool = True,
) -> Panel:
    fit = effect.fit if fit is None else fit
    resid = effect.residuals if resid is None else resid
    if effect.categorical:
        layers = _categorical_layers(effect, fit, resid, color, band, points)
    else:
        layers = _numeric_layers(effect, fit, resid, color, band, points)

    first, rest = layers[0], layers[1:]
    if new_panel:
        fields = dict(x_label=effect.variable, y_label=response, title=title)
        if effect.categorical:
            levels = tuple(str(v) for v in fit[effect.variable])
            fields["x_ticks"] = (tuple(float(i) for i in range(len(levels))), levels)
        panel = canvas.plot(first, **fields)
    else:
        panel = canvas.add(first)
    for layer in rest:
        panel = canvas.add(layer)
    return panel


def visreg(
    canvas: Canvas,
    result: LinearModelResult,
    variable: Optional[str] = None,
    *,
    by: Optional[str] = None,
    overlay: bool = False,
    palette: Optional[Palette] = None,
    policy: ExhaustionPolicy | str = ExhaustionPolicy.error,
    band_alpha: float = 0.25,
) -> Tuple[Panel, ...]:
    """Conditional-effect plots of a fitted linear model.

    Parameters
    ----------
    variable:
        Predictor to plot. ``None`` draws one panel per predictor, so the canvas
        needs room for all of them.
    by:
        Categorical predictor to split the effect by.
    overlay:
        With ``by``, draw every level on one panel in its palette colour with a
        legend; otherwise each level gets its own panel.
    """

    if variable is None:
        if by is not None:
            raise ValueError("by needs a variable")
        return tuple(
            _draw_effect(canvas, conditional_effect(result, name), result.response)
            for name in result.predictors
        )

    effect = conditional_effect(result, variable, by=by)
    if by is None:
        return (_draw_effect(canvas, effect, result.response),)

    levels = list(dict.fromkeys(effect.fit[by]))
    panels: List[Panel] = []
    if not overlay:
        for level in levels:
            panels.append(
                _draw_effect(
                    canvas,
                    effect,
                    result.response,
                    fit=effect.fit[effect.fit[by] == level],
                    resid=effect.residuals[effect.residuals[by] == level],
                    title=f"{by}: {level}",
                )
            )
        return tuple(panels)

    palette = palette if palette is not None else DEFAULT_PALETTE
    colors = palette.map_categories(levels, policy=policy)
    for i, (level, color) in enumerate(zip(colors.categories, colors.colors)):
        _draw_effect(
            canvas,
            effect,
            result.response,
            fit=effect.fit[effect.fit[by] == level],
            resid=effect.residuals[effect.residuals[by] == level],
            color=color,
            band=adjust_alpha(color, band_alpha),
            points=color,
            new_panel=i == 0,
        )
    legend(canvas, colors, kind="line", title=by, line_width=2.0)
    return (canvas.current,)


def residuals(canvas: Canvas, result: LinearModelResult, *, title: Optional[str] = None) -> Panel:
    """Residual vs fitted panel with a zero reference line."""

    fitted = np.asarray(result.model.fittedvalues, dtype=float)
    resid = np.asarray(result.model.resid, dtype=float)
    if fitted.size == 0:
        raise ValueError("No fitted values to plot")

    canvas.plot(
        PointsLayer(x=frozen_array(fitted), y=frozen_array(resid), colors=(POINT_COLOR,), filled=True, size=12.0),
        x_label="Fitted",
        y_label="Residual (Observed - Fitted)",
        title=title or f"Residuals: {result.formula}",
    )
    return canvas.add(
        LineLayer(x=frozen_array([fitted.min(), fitted.max()]), y=frozen_array([0.0, 0.0]), linestyle="--")
    )


def parity(canvas: Canvas, result: LinearModelResult, *, title: Optional[str] = None) -> Panel:
    """Observed vs fitted panel with the 1:1 line."""

    observed = result.data[result.response].to_numpy(dtype=float)
    fitted = np.asarray(result.model.fittedvalues, dtype=float)
    if observed.size == 0:
        raise ValueError("No observations to plot")

    lo = float(min(observed.min(), fitted.min()))
    hi = float(max(observed.max(), fitted.max()))
    if lo != hi:
        pad = 0.05 * (hi - lo)
        lo -= pad
        hi += pad

    canvas.plot(
        PointsLayer(x=frozen_array(observed), y=frozen_array(fitted), colors=(POINT_COLOR,), filled=True, size=12.0),
        x_label="Observed",
        y_label="Fitted",
        title=title or f"Parity: {result.response}",
        xlim=(lo, hi),
        ylim=(lo, hi),
    )
    return canvas.add(LineLayer(x=frozen_array([lo, hi]), y=frozen_array([lo, hi]), linestyle="--"))
