"""Render one figure per group and export the figures in bulk.

Each figure shows one group's observations with an optional fitted line, so a
nested table with a model column can be turned into a folder of named plots.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import List, Optional, Sequence

import matplotlib.pyplot as plt
import numpy as np
import pandas as pd
from matplotlib.figure import Figure
from scipy.stats import norm

from ..apply import ERRORS_RAISE, pmap_values, pwalk_values
from ..assemble import assign_column, project
from ..errors import ApplicationErrors, RowApplicationError, format_key
from ..grouped_table import GroupedTable
from ..schema import COLUMNS
from ..stats.regression import LinearModelFit
from .style import (
    DEFAULT_STYLE,
    KEY_SEPARATOR,
    PlotStyle,
    group_filenames,
    save_figure,
    style_context,
)

logger = logging.getLogger(__name__)


def plot_group(
    data: pd.DataFrame,
    x: str,
    y: str,
    *,
    title: str | None = None,
    fit: Optional[LinearModelFit] = None,
    style: PlotStyle = DEFAULT_STYLE,
) -> Figure:
    """Scatter ``y`` against ``x`` for one group, with an optional fitted line.

    Args:
        data (pandas.DataFrame): The group's sub-table.
        x (str): Column for the horizontal axis.
        y (str): Column for the vertical axis.
        title (str | None): Axes title, typically the group key.
        fit (LinearModelFit | None): Model whose predictions over the observed
            ``x`` range are drawn as a line. Only single-predictor models in
            ``x`` are drawn.
        style (PlotStyle): Rendering options.

    Returns:
        matplotlib.figure.Figure: The rendered figure (left open).

    Raises:
        KeyError: If ``x`` or ``y`` is missing from ``data``.
    """
    missing = [c for c in (x, y) if c not in data.columns]
    if missing:
        raise KeyError(f"Missing required columns for plotting: {missing}")

    with style_context(style):
        fig, ax = plt.subplots(figsize=style.figsize)
        xs = pd.to_numeric(data[x], errors="coerce").to_numpy(dtype=float)
        ys = pd.to_numeric(data[y], errors="coerce").to_numpy(dtype=float)
        ax.scatter(
            xs, ys, s=style.markersize**2, alpha=style.point_alpha, color=style.point_color
        )

        if fit is not None and fit.variables == (x,) and x not in fit.levels:
            finite = xs[np.isfinite(xs)]
            if finite.size:
                grid = np.linspace(finite.min(), finite.max(), 100)
                line = fit.predict(pd.DataFrame({x: grid}))
                ax.plot(grid, line, color=style.line_color, linewidth=style.linewidth)

        ax.set_xlabel(x)
        ax.set_ylabel(y)
        if title:
            ax.set_title(title)
        fig.tight_layout()
    return fig


def add_group_plots(
    table: GroupedTable,
    x: str,
    y: str,
    *,
    model_column: str | None = None,
    plot_column: str = COLUMNS.plot,
    style: PlotStyle = DEFAULT_STYLE,
    errors: str = ERRORS_RAISE,
) -> GroupedTable:
    """Render :func:`plot_group` for every row and store the figures.

    Args:
        table (GroupedTable): Nested table.
        x (str): Horizontal-axis column of the sub-tables.
        y (str): Vertical-axis column of the sub-tables.
        model_column (str | None): Column of fitted models to overlay.
        plot_column (str): Target column for the figures.
        style (PlotStyle): Rendering options.
        errors (str): ``"raise"`` or ``"collect"``.

    Returns:
        GroupedTable: Copy of ``table`` with ``plot_column`` added.

    Note:
        If any row fails, every figure rendered so far is closed before the
        error propagates.
    """
    titles = [format_key(key) for key in table.keys()]
    labelled = assign_column(table, "_title", titles)
    columns = [table.nested_column, "_title"]
    if model_column is not None:
        columns.append(model_column)

    rendered: List[Figure] = []

    def _render(data, title, fit=None):
        fig = plot_group(data, x, y, title=title, fit=fit, style=style)
        rendered.append(fig)
        return fig

    try:
        figures = pmap_values(labelled, columns, _render, errors=errors)
    except (RowApplicationError, ApplicationErrors):
        for fig in rendered:
            plt.close(fig)
        raise
    logger.info("Rendered %d group plots", len(figures))
    return assign_column(table, plot_column, figures)


def save_group_plots(
    table: GroupedTable,
    output_dir: str | os.PathLike,
    *,
    plot_column: str = COLUMNS.plot,
    suffix: str | None = COLUMNS.plot,
    ext: str = "png",
    sep: str = KEY_SEPARATOR,
    style: PlotStyle = DEFAULT_STYLE,
    errors: str = ERRORS_RAISE,
) -> List[str]:
    """Save every figure of ``plot_column`` under a name built from its key.

    File names follow ``<key1><sep><key2><sep><suffix>.<ext>``. The table is
    first reduced to a ``filename`` + figure pair table, which is then walked
    row by row. Figures are closed as they are saved; if a save fails, the
    remaining figures are closed too.

    Returns:
        list[str]: Written paths, in row order.

    Raises:
        ValueError: If two group keys map to the same file name.
    """
    out_dir = Path(output_dir)
    names = group_filenames(table.keys(), suffix, ext=ext, sep=sep)
    paths = [str(out_dir / name) for name in names]
    named = assign_column(table, COLUMNS.filename, paths)
    export = project(named, [COLUMNS.filename, plot_column])

    def _save(filename, fig):
        save_figure(fig, filename, style)

    try:
        pwalk_values(export, [COLUMNS.filename, plot_column], _save, errors=errors)
    except (RowApplicationError, ApplicationErrors):
        for fig in export[plot_column]:
            if isinstance(fig, Figure):
                plt.close(fig)
        raise
    logger.info("Saved %d group plots to %s", len(paths), out_dir)
    return paths


def plot_estimates(
    coefficients: pd.DataFrame,
    term: str,
    key_columns: Sequence[str],
    *,
    level: float = 0.95,
    style: PlotStyle = DEFAULT_STYLE,
    output_path: str | os.PathLike | None = None,
) -> Figure | str:
    """Plot one coefficient's estimate per group with confidence intervals.

    Args:
        coefficients (pandas.DataFrame): Unnested tidy table with the key
            columns plus ``term``, ``estimate`` and ``std_error``.
        term (str): Coefficient to show.
        key_columns (Sequence[str]): Columns labelling each group.
        level (float): Normal-approximation interval level.
        style (PlotStyle): Rendering options.
        output_path (str | os.PathLike | None): Save target; when given the
            figure is written, closed, and the path is returned.

    Returns:
        matplotlib.figure.Figure | str: Figure, or the written path.

    Raises:
        KeyError: If required columns are missing.
        ValueError: If ``term`` does not occur in ``coefficients``.
    """
    required = ["term", "estimate", "std_error", *key_columns]
    missing = [c for c in required if c not in coefficients.columns]
    if missing:
        raise KeyError(f"Missing required columns for plotting: {missing}")
    rows = coefficients[coefficients["term"] == term].reset_index(drop=True)
    if rows.empty:
        raise ValueError(f"Term {term!r} not found in coefficient table.")

    z = float(norm.ppf(0.5 + level / 2.0))
    labels = rows[list(key_columns)].astype(str).agg(" / ".join, axis=1).tolist()
    estimates = rows["estimate"].to_numpy(dtype=float)
    half = z * rows["std_error"].to_numpy(dtype=float)

    with style_context(style):
        fig, ax = plt.subplots(figsize=style.figsize)
        positions = np.arange(len(labels))
        ax.errorbar(
            positions,
            estimates,
            yerr=np.where(np.isfinite(half), half, 0.0),
            fmt="o",
            color=style.point_color,
            capsize=3,
            markersize=style.markersize,
        )
        ax.axhline(0.0, color="0.5", linewidth=0.8, linestyle="--")
        ax.set_xticks(positions)
        ax.set_xticklabels(labels, rotation=45, ha="right")
        ax.set_ylabel(f"{term} estimate")
        ax.set_title(f"{term}: estimate ± {int(round(level * 100))}% CI")
        fig.tight_layout()

    if output_path is None:
        return fig
    return str(save_figure(fig, output_path, style))
