"""
Per-group plotting utilities.

All plotting functions accept precomputed tables and fitted models and only
render them; no statistics are computed here.

Modules:
    style:
        :class:`PlotStyle`, an explicit rendering configuration applied
        through ``matplotlib.pyplot.rc_context``, plus file naming from group
        keys and figure saving.

    group_plots:
        One scatter-plus-fit figure per group, bulk export of those figures,
        and a per-group coefficient summary figure.
"""

from .group_plots import add_group_plots, plot_estimates, plot_group, save_group_plots
from .style import (
    DEFAULT_STYLE,
    PlotStyle,
    group_filename,
    group_filenames,
    save_figure,
    style_context,
)

__all__ = [
    "add_group_plots",
    "plot_estimates",
    "plot_group",
    "save_group_plots",
    "DEFAULT_STYLE",
    "PlotStyle",
    "group_filename",
    "group_filenames",
    "save_figure",
    "style_context",
]
