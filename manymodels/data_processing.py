"""
Handles file discovery, CSV loading, and filename metadata extraction.
"""

# Algorithm summary: list matching files in a directory, build a one-row-per-
# file table keyed by path, read every file through the row-wise applicator so
# a failing file is reported by its path, pull metadata out of file stems with
# a regular expression, and bind the loaded tables into one long table.

from __future__ import annotations

import logging
import os
import re
from pathlib import Path
from typing import Callable, Iterable, Sequence

import pandas as pd

from .apply import ERRORS_RAISE, map_values
from .assemble import assign_column
from .grouped_table import GroupedTable, object_series
from .grouping import unnest
from .schema import COLUMNS

logger = logging.getLogger(__name__)


def list_data_files(directory: str | os.PathLike, pattern: str = "*.csv") -> list[Path]:
    """List files matching ``pattern`` in ``directory``, sorted by name.

    Args:
        directory (str | os.PathLike): Folder to search (not recursive).
        pattern (str): Glob pattern. Defaults to ``"*.csv"``.

    Returns:
        list[pathlib.Path]: Matching file paths.

    Raises:
        FileNotFoundError: If ``directory`` does not exist.
    """
    source = Path(directory)
    if not source.is_dir():
        raise FileNotFoundError(f"Data directory does not exist: {source}")
    files = sorted(p for p in source.glob(pattern) if p.is_file())
    if not files:
        logger.warning("No files matching %s found in %s", pattern, source)
    else:
        logger.info("Found %d files matching %s in %s", len(files), pattern, source)
    return files


def load_table(filepath: str | os.PathLike, **read_kwargs) -> pd.DataFrame:
    """
    Load one delimited file.

    Args:
        filepath (str): Path to the CSV file.
        **read_kwargs: Passed to :func:`pandas.read_csv`.

    Returns:
        pd.DataFrame: Loaded DataFrame.
    """
    df = pd.read_csv(filepath, **read_kwargs)
    logger.debug("Loaded %s with shape %s", filepath, df.shape)
    return df


def load_many(
    paths: Iterable[str | os.PathLike],
    *,
    reader: Callable[..., pd.DataFrame] = load_table,
    errors: str = ERRORS_RAISE,
    path_column: str = COLUMNS.path,
    data_column: str = COLUMNS.data,
) -> GroupedTable:
    """Load many files into a grouped table with one row per file.

    Args:
        paths (Iterable[str | os.PathLike]): Files to read, in output order.
        reader (Callable): Per-file reader returning a DataFrame.
        errors (str): ``"raise"`` or ``"collect"``, as in
            :func:`manymodels.apply.map_values`.
        path_column (str): Key column holding the path strings.
        data_column (str): Nested column holding each loaded table.

    Returns:
        GroupedTable: Keyed by ``path_column``; ``data_column`` holds tables.

    Raises:
        RowApplicationError: If a file cannot be read (names its path).
        ValueError: If the same path is listed twice.
    """
    path_list = [str(p) for p in paths]
    files = pd.DataFrame({path_column: path_list})
    files[data_column] = object_series([None] * len(path_list), files.index)
    table = GroupedTable(files, [path_column], data_column)

    tables = map_values(table, path_column, reader, errors=errors)
    logger.info("Loaded %d files", len(tables))
    return assign_column(table, data_column, tables)


def extract_from_filename(
    table: GroupedTable,
    pattern: str,
    into: Sequence[str],
    *,
    column: str = COLUMNS.path,
    convert: bool = True,
) -> GroupedTable:
    """Extract metadata columns from file stems with a regular expression.

    Args:
        table (GroupedTable): Table whose ``column`` holds file paths.
        pattern (str): Regular expression with one capture group per name in
            ``into``, matched against the file stem (name without extension).
        into (Sequence[str]): Names of the new columns.
        column (str): Column holding the paths.
        convert (bool): Turn columns whose captures all look numeric into
            numbers. Pass ``False`` to keep identifiers such as ``"007"`` as
            text; converting drops their leading zeros.

    Returns:
        GroupedTable: New table with one extra column per capture group.

    Raises:
        ValueError: If the group count differs from ``len(into)`` or a stem
            does not match.
    """
    regex = re.compile(pattern)
    into = list(into)
    if regex.groups != len(into):
        raise ValueError(
            f"Pattern {pattern!r} has {regex.groups} groups but "
            f"{len(into)} column names were given: {into}"
        )

    stems = [Path(str(p)).stem for p in table.column(column)]
    extracted = {name: [] for name in into}
    for stem in stems:
        match = regex.search(stem)
        if match is None:
            raise ValueError(f"File name {stem!r} does not match pattern {pattern!r}.")
        for name, value in zip(into, match.groups()):
            extracted[name].append(value)

    for name in into:
        values = pd.Series(extracted[name], dtype=object)
        numeric = pd.to_numeric(values, errors="coerce")
        if convert and len(values) and numeric.notna().all():
            values = numeric
        table = assign_column(table, name, values.tolist(), dtype=values.dtype)
    return table


def bind_files(
    table: GroupedTable, *, keep: Sequence[str] = (), include_path: bool = True
) -> pd.DataFrame:
    """Stack the loaded tables into one long table.

    Args:
        table (GroupedTable): Output of :func:`load_many`, optionally with
            metadata columns from :func:`extract_from_filename`.
        keep (Sequence[str]): Metadata columns to repeat on every row.
        include_path (bool): Keep the path key column.

    Returns:
        pandas.DataFrame: All rows of all files, in file order.
    """
    bound = unnest(table, keep=keep)
    if not include_path:
        bound = bound.drop(columns=list(table.key_columns))
    return bound
