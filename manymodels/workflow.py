"""
Fit one linear model per group and summarize the fits as tidy tables.

This module strings the engine together for the many-models workflow:
- partition a table by one or more categorical columns,
- fit ``linear_model`` to every group's sub-table,
- attach ``tidy`` / ``glance`` (and optionally ``augment``) tables per group,
- pull single coefficients out as typed float columns, and
- flatten the per-group summaries into long tables for export.

Model fitting is treated as a black box: whatever a fit raises is reported by
the applicator together with the key of the group that failed.
"""

from __future__ import annotations

import logging
from typing import List, Sequence

import numpy as np
import pandas as pd

from .apply import ERRORS_RAISE, map_values, mutate_with
from .assemble import assign_column
from .errors import ApplicationErrors, format_key
from .grouped_table import GroupedTable
from .grouping import Columns, nest, unnest
from .schema import COLUMNS
from .stats.regression import linear_model
from .stats.tidiers import augment, glance, tidy

logger = logging.getLogger(__name__)


def fit_models(
    table: GroupedTable,
    formula: str,
    *,
    model_column: str = COLUMNS.model,
    data_column: str | None = None,
    min_points: int = 2,
    errors: str = ERRORS_RAISE,
) -> GroupedTable:
    """Fit ``formula`` to every sub-table and store the fitted models.

    Args:
        table (GroupedTable): Nested table.
        formula (str): Model formula passed to :func:`linear_model`.
        model_column (str): Target column for the fitted models.
        data_column (str | None): Column of sub-tables; defaults to the
            nested column.
        min_points (int): Minimum complete rows per group.
        errors (str): ``"raise"`` or ``"collect"``.

    Returns:
        GroupedTable: Copy of ``table`` with ``model_column`` added.
    """
    data_column = data_column or table.nested_column
    logger.info("Fitting %r to %d groups", formula, len(table))
    return mutate_with(
        table,
        model_column,
        linear_model,
        [data_column],
        args=(formula,),
        kwargs={"min_points": min_points},
        errors=errors,
    )


def add_model_summaries(
    table: GroupedTable,
    *,
    model_column: str = COLUMNS.model,
    conf_int: bool = False,
    conf_level: float = 0.95,
    include_augment: bool = False,
) -> GroupedTable:
    """Attach ``tidy`` and ``glance`` tables (and optionally ``augment``)."""
    table = mutate_with(
        table,
        COLUMNS.tidy,
        tidy,
        [model_column],
        kwargs={"conf_int": conf_int, "conf_level": conf_level},
    )
    table = mutate_with(table, COLUMNS.glance, glance, [model_column])
    if include_augment:
        table = mutate_with(table, COLUMNS.augment, augment, [model_column])
    return table


def extract_estimate(
    table: GroupedTable,
    term: str,
    *,
    name: str | None = None,
    statistic: str = "estimate",
    tidy_column: str = COLUMNS.tidy,
) -> GroupedTable:
    """Add one float column holding ``statistic`` of ``term`` for every group.

    Raises:
        TypeMismatchError: If a group's tidy table lacks ``term`` (names the
            group).
    """

    def _pick(tidy_df: pd.DataFrame):
        return tidy_df.loc[tidy_df["term"] == term, statistic].to_numpy()

    values = map_values(table, tidy_column, _pick, output_type=float)
    return assign_column(table, name or f"{term}_{statistic}", values, dtype="float64")


def coefficient_table(
    table: GroupedTable, *, tidy_column: str = COLUMNS.tidy
) -> pd.DataFrame:
    """Flatten per-group tidy tables into one row per group and term."""
    return unnest(table, tidy_column)


def model_summary_table(
    table: GroupedTable, *, glance_column: str = COLUMNS.glance
) -> pd.DataFrame:
    """Flatten per-group glance tables into one row per group."""
    return unnest(table, glance_column)


def augmented_table(
    table: GroupedTable, *, augment_column: str = COLUMNS.augment
) -> pd.DataFrame:
    """Flatten per-group augment tables into one row per observation."""
    return unnest(table, augment_column)


def drop_failed(
    table: GroupedTable, failure: ApplicationErrors, column: str
) -> GroupedTable:
    """Keep the rows that succeeded in a collect-mode run.

    Args:
        table (GroupedTable): The table the collect-mode call ran over.
        failure (ApplicationErrors): The raised aggregate error.
        column (str): Column to hold ``failure.results``.

    Returns:
        GroupedTable: Rows without a failure, with ``column`` filled in.
    """
    failed = {f.row_index for f in failure.failures}
    for key in failure.failed_keys:
        logger.warning("Dropping group [%s] after failure", format_key(key))
    assigned = assign_column(table, column, failure.results)
    keep = np.array([i not in failed for i in range(len(table))], dtype=bool)
    return assigned.with_frame(assigned.frame[keep])


def fit_many_models(
    frame: pd.DataFrame,
    by: Columns,
    formula: str,
    *,
    sort: bool = False,
    min_points: int = 2,
    conf_int: bool = False,
    errors: str = ERRORS_RAISE,
) -> GroupedTable:
    """Partition ``frame`` by ``by``, fit one model per group, and summarize.

    Args:
        frame (pandas.DataFrame): Long table.
        by (str | Sequence[str]): Grouping column(s).
        formula (str): Model formula over the remaining columns.
        sort (bool): Order groups by key.
        min_points (int): Minimum complete rows per group.
        conf_int (bool): Add confidence bounds to the tidy tables.
        errors (str): ``"raise"`` aborts at the first failing group;
            ``"collect"`` fits every group, logs each failure, and drops the
            failed groups from the result.

    Returns:
        GroupedTable: Key columns plus ``data``, ``model``, ``tidy`` and
        ``glance`` columns.
    """
    table = nest(frame, by, sort=sort)
    try:
        table = fit_models(table, formula, min_points=min_points, errors=errors)
    except ApplicationErrors as failure:
        logger.warning(
            "%d of %d model fits failed", len(failure.failures), len(table)
        )
        table = drop_failed(table, failure, COLUMNS.model)
    return add_model_summaries(table, conf_int=conf_int)


def format_model_summary(
    summary_df: pd.DataFrame, key_columns: Sequence[str]
) -> List[str]:
    """Format one line per model from a flattened glance table."""
    if summary_df.empty:
        return ["  (no models)"]
    lines = []
    for _, row in summary_df.iterrows():
        label = ", ".join(f"{c}={row[c]}" for c in key_columns)
        r2 = row.get("r_squared")
        sigma = row.get("sigma")
        nobs = int(row["nobs"]) if pd.notna(row.get("nobs")) else 0
        if pd.notna(r2) and pd.notna(sigma):
            lines.append(f" - {label}: R2 = {r2:.3f}, sigma = {sigma:.3f} (n={nobs})")
        else:
            lines.append(f" - {label}: R2 not available (n={nobs})")
    return lines


def print_model_summary(summary_df: pd.DataFrame, key_columns: Sequence[str]) -> None:
    print("\nModel summary by group:")
    for line in format_model_summary(summary_df, key_columns):
        print(line)
