"""Readable statistical plots, built up step by step.

The package turns a workshop walkthrough into small pieces:

- ``prettyplots.core``: config, sample datasets, grouped means, logging
- ``prettyplots.viz``: palettes, the canvas, plot recipes, rendering and export
- ``prettyplots.model``: linear models for conditional-effect plots
- ``prettyplots.workshop``: the ordered sequence of workshop figures
"""

__version__ = "0.1.0"
