from __future__ import annotations

from pathlib import Path
from typing import List, Optional

import pandas as pd
import typer
from rich.console import Console
from rich.table import Table

from prettyplots.core.config import WorkshopConfig
from prettyplots.core.data import grouped_means, load_iris
from prettyplots.core.logging_config import setup_logging
from prettyplots.model.linear import fit_linear_model
from prettyplots.viz import model_plots
from prettyplots.viz.canvas import Canvas
from prettyplots.viz.palette import BREWER_QUALITATIVE, palette_colors, palette_overview
from prettyplots.viz.render import save_scene
from prettyplots.workshop import MODEL_FORMULA, SECTIONS, WorkshopContext, export_figure, run_all

app = typer.Typer(add_completion=False, help="prettyplots workshop CLI")
console = Console()


def _load_cfg(config: Optional[str]) -> WorkshopConfig:
    return WorkshopConfig.from_yaml(config) if config else WorkshopConfig()


def _print_dataframe(df: pd.DataFrame, title: str, max_rows: int = 20) -> None:
    tbl = Table(title=title, show_lines=False)
    for c in df.columns:
        tbl.add_column(str(c))
    for _, row in df.head(max_rows).iterrows():
        tbl.add_row(*[f"{v:.4g}" if isinstance(v, float) else str(v) for v in row])
    console.print(tbl)
    if len(df) > max_rows:
        console.print(f"(showing first {max_rows} of {len(df)} rows)")


@app.callback()
def main(
    log_level: str = typer.Option("INFO", "--log-level", help="DEBUG, INFO, WARNING or ERROR"),
    log_file: Optional[str] = typer.Option(None, "--log-file", help="Also write logs to this file"),
):
    try:
        setup_logging(log_level, log_file=log_file)
    except ValueError as e:
        raise typer.BadParameter(str(e), param_hint="--log-level") from e


@app.command("run")
def run(
    config: Optional[str] = typer.Option(None, "--config", help="Path to workshop YAML config"),
    out_dir: Optional[str] = typer.Option(None, "--out-dir"),
    fmt: Optional[str] = typer.Option(None, "--format", help="Image format, e.g. png, svg or pdf"),
    seed: Optional[int] = typer.Option(None, "--seed", help="Seed for the synthetic series"),
    section: Optional[List[str]] = typer.Option(None, "--section", help="Only these sections (repeatable)"),
):
    """Save the workshop figures, in walkthrough order."""

    cfg = _load_cfg(config)
    if seed is not None:
        cfg = cfg.model_copy(update={"seed": seed})
    names = list(section) if section else None
    if names:
        unknown = [n for n in names if n not in SECTIONS]
        if unknown:
            raise typer.BadParameter(f"Unknown sections {unknown}. Available: {list(SECTIONS)}")

    ctx = WorkshopContext.build(cfg)
    for path in run_all(ctx, out_dir, fmt=fmt, names=names):
        console.print(f"Wrote: {path}")


@app.command("sections")
def sections():
    for i, name in enumerate(SECTIONS, start=1):
        console.print(f"{i:2d}. {name}")


@app.command("means")
def means(
    by: str = typer.Option("species", "--by"),
    output: Optional[str] = typer.Option(None, "--output", help="If set, write the table as CSV"),
):
    """Mean of every iris measurement per group."""

    df = grouped_means(load_iris(), by)
    _print_dataframe(df, title=f"Means by {by}")
    if output:
        Path(output).parent.mkdir(parents=True, exist_ok=True)
        df.to_csv(output, index=False)
        console.print(f"Wrote means to {output}")


@app.command("export")
def export(
    output: str = typer.Option("my_figure.svg", "--output", help=".svg, .pdf or .eps"),
    config: Optional[str] = typer.Option(None, "--config"),
    width: Optional[float] = typer.Option(None, "--width", help="Inches"),
    height: Optional[float] = typer.Option(None, "--height", help="Inches"),
):
    """Write the two-panel figure as a vector graphic."""

    cfg = _load_cfg(config)
    update = {k: v for k, v in (("export_width", width), ("export_height", height)) if v is not None}
    if update:
        cfg = WorkshopConfig.model_validate({**cfg.model_dump(), **update})
    ctx = WorkshopContext.build(cfg)
    path = export_figure(ctx, output)
    console.print(f"Wrote: {path}")


@app.command("palettes")
def palettes(
    out: Optional[str] = typer.Option(None, "--out", help="If set, save the swatch overview here"),
):
    """List the qualitative ColorBrewer palettes."""

    table = Table(title="Qualitative palettes")
    table.add_column("name")
    table.add_column("colours")
    table.add_column("hex")
    for name in BREWER_QUALITATIVE:
        colors = palette_colors(name)
        table.add_row(name, str(len(colors)), " ".join(colors))
    console.print(table)

    if out:
        path = save_scene(palette_overview(), out)
        console.print(f"Wrote: {path}")


@app.command("model")
def model(
    formula: str = typer.Option(MODEL_FORMULA, "--formula"),
    by: Optional[str] = typer.Option(None, "--by", help="Overlay one curve per level of this factor"),
    variable: Optional[str] = typer.Option(None, "--variable", help="Required with --by"),
    out_dir: str = typer.Option("plots", "--out-dir"),
    fmt: str = typer.Option("png", "--format"),
):
    """Fit a linear model on iris and save its conditional-effect plots."""

    if by is not None and variable is None:
        raise typer.BadParameter("--by needs --variable")

    res = fit_linear_model(load_iris(), formula)
    console.print(f"Formula: {res.formula}")
    _print_dataframe(res.coef_table, title="Coefficients")
    _print_dataframe(res.anova_table, title="ANOVA (type II)")

    out_dir_p = Path(out_dir)
    if variable is None:
        canvas = Canvas(1, len(res.predictors), width=5.0 * len(res.predictors), height=5.0)
        model_plots.visreg(canvas, res)
        name = "visreg_all"
    else:
        canvas = Canvas(1, 1, width=7.0, height=7.0)
        model_plots.visreg(canvas, res, variable, by=by, overlay=by is not None)
        name = f"visreg_{variable}" + (f"_by_{by}" if by else "")
    path = save_scene(canvas.scene(), out_dir_p / f"{name}.{fmt}")
    console.print(f"Wrote: {path}")

    canvas = Canvas(1, 2, width=10.0, height=5.0)
    model_plots.parity(canvas, res)
    model_plots.residuals(canvas, res)
    path = save_scene(canvas.scene(), out_dir_p / f"diagnostics.{fmt}")
    console.print(f"Wrote: {path}")
