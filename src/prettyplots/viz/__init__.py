"""Visualization utilities.

Drawing is split in two steps:

- recipes (scatter, histogram, bars, dual axis, conditional effects) describe
  panels and layers on a :class:`~prettyplots.viz.canvas.Canvas`
- the renderer turns the resulting scene into a matplotlib figure

Figures are saved to disk by default so they work in headless CI/CD environments.
"""
