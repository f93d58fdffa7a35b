"""Write model summaries and per-group tables to reproducible CSV files.

This module is the output boundary between in-memory nested tables and the
tabular artifacts a run leaves behind.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Dict, List, Mapping

import pandas as pd

from .apply import ERRORS_RAISE, pwalk_values
from .assemble import assign_column, project
from .grouped_table import GroupedTable
from .plotting.style import KEY_SEPARATOR, group_filenames
from .schema import COLUMNS

logger = logging.getLogger(__name__)


def save_tables_to_csv(
    tables: Mapping[str, pd.DataFrame], output_dir: str | os.PathLike = "output"
) -> Dict[str, str]:
    """Save named summary tables as ``<name>.csv`` files.

    Args:
        tables (Mapping[str, pandas.DataFrame]): For example
            ``{"coefficients": coef_df, "model_summaries": glance_df}``.
        output_dir (str | os.PathLike): Directory for the CSV files.

    Returns:
        dict[str, str]: Table name to written path.

    Raises:
        TypeError: If a value is not a DataFrame.
    """
    out_dir = Path(output_dir)
    out_dir.mkdir(parents=True, exist_ok=True)

    paths = {}
    for name, df in tables.items():
        if not isinstance(df, pd.DataFrame):
            raise TypeError(f"Table '{name}' is {type(df).__name__}, not a DataFrame.")
        path = out_dir / f"{name}.csv"
        df.to_csv(path, index=False)
        logger.info("Saved %s (%d rows) to %s", name, len(df), path)
        paths[name] = str(path)
    return paths


def write_group_tables(
    table: GroupedTable,
    output_dir: str | os.PathLike,
    *,
    column: str | None = None,
    suffix: str | None = None,
    sep: str = KEY_SEPARATOR,
    errors: str = ERRORS_RAISE,
) -> List[str]:
    """Write one CSV per group, named from the group key.

    Args:
        table (GroupedTable): Table whose ``column`` holds one DataFrame per row.
        output_dir (str | os.PathLike): Target directory.
        column (str | None): Column to write; defaults to the nested column.
        suffix (str | None): Trailing file-name token, e.g. ``"augment"``.
        sep (str): Separator between key values in file names.
        errors (str): ``"raise"`` or ``"collect"``.

    Returns:
        list[str]: Written paths, in row order.

    Raises:
        ValueError: If two group keys map to the same file name.
    """
    column = column or table.nested_column
    out_dir = Path(output_dir)
    out_dir.mkdir(parents=True, exist_ok=True)

    names = group_filenames(table.keys(), suffix, ext="csv", sep=sep)
    paths = [str(out_dir / name) for name in names]
    named = assign_column(table, COLUMNS.filename, paths)
    export = project(named, [COLUMNS.filename, column])

    def _write(filename: str, df: pd.DataFrame) -> None:
        df.to_csv(filename, index=False)

    pwalk_values(export, [COLUMNS.filename, column], _write, errors=errors)
    logger.info("Wrote %d group tables to %s", len(paths), out_dir)
    return paths
