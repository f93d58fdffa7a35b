"""
Partition tables into nested groups and flatten them back.
"""

# Algorithm summary: group rows with pandas on the key columns (missing key
# values kept as their own group), store each group's remaining columns as a
# sub-table cell, and rebuild a flat table by re-inserting the key columns in
# front of every sub-table before concatenation.

from __future__ import annotations

import logging
from typing import List, Sequence, Union

import pandas as pd

from .errors import InvalidColumnError, TypeMismatchError
from .grouped_table import GroupedTable, object_series
from .schema import COLUMNS

logger = logging.getLogger(__name__)

Columns = Union[str, Sequence[str]]


def as_column_list(columns: Columns) -> List[str]:
    """Normalise a single column name or a sequence of names into a list."""
    if isinstance(columns, str):
        return [columns]
    return list(columns)


def nest(
    frame: pd.DataFrame,
    by: Columns,
    *,
    data_column: str = COLUMNS.data,
    sort: bool = False,
) -> GroupedTable:
    """Split a table into one row per distinct key with a nested sub-table.

    Args:
        frame (pandas.DataFrame): Source table.
        by (str | Sequence[str]): Grouping column(s), in key order.
        data_column (str): Name of the nested column. Defaults to ``"data"``.
        sort (bool): Order groups by key instead of first appearance.

    Returns:
        GroupedTable: Key columns plus ``data_column``; each cell holds the
        matching rows with the grouping columns removed and a fresh index.

    Raises:
        InvalidColumnError: If ``by`` is empty or names a missing column.

    Note:
        Rows with missing key values form their own group, so every source row
        lands in exactly one sub-table.
    """
    by = as_column_list(by)
    if not by:
        raise InvalidColumnError("At least one grouping column is required.")
    missing = [c for c in by if c not in frame.columns]
    if missing:
        raise InvalidColumnError(
            f"Grouping columns {missing} not found. "
            f"Available columns: {list(frame.columns)}",
            missing,
        )
    if data_column in by:
        raise ValueError(f"Nested column '{data_column}' clashes with a grouping column.")

    if len(frame) == 0:
        keys = frame[by].iloc[0:0].reset_index(drop=True)
        keys[data_column] = object_series([], keys.index)
        return GroupedTable(keys, by, data_column)

    key_rows = []
    sub_tables = []
    grouped = frame.groupby(by, sort=sort, dropna=False, observed=True)
    for key, sub in grouped:
        if not isinstance(key, tuple):
            key = (key,)
        key_rows.append(key)
        sub_tables.append(sub.drop(columns=by).reset_index(drop=True))

    keys = pd.DataFrame.from_records(key_rows, columns=by)
    keys = keys.astype(frame[by].dtypes.to_dict())
    keys[data_column] = object_series(sub_tables, keys.index)

    logger.debug("Nested %d rows into %d groups by %s", len(frame), len(keys), by)
    return GroupedTable(keys, by, data_column)


def unnest(
    table: GroupedTable,
    column: str | None = None,
    *,
    keep: Sequence[str] = (),
) -> pd.DataFrame:
    """Concatenate the per-row tables of ``column`` into one flat table.

    Args:
        table (GroupedTable): Table whose ``column`` holds one DataFrame per row.
        column (str | None): Column to flatten. Defaults to the nested column.
        keep (Sequence[str]): Extra scalar columns to carry next to the keys.

    Returns:
        pandas.DataFrame: Key columns, then ``keep`` columns, then the columns
        of the per-row tables, in row order.

    Raises:
        InvalidColumnError: If ``column`` or a ``keep`` column is missing.
        TypeMismatchError: If a cell of ``column`` is not a DataFrame.
        ValueError: If a per-row table already has a key or ``keep`` column.
    """
    column = column or table.nested_column
    if column is None:
        raise InvalidColumnError("Table has no nested column to unnest.")
    keep = [c for c in as_column_list(keep) if c not in table.key_columns]
    table.require_columns([column, *keep])

    lead = list(table.key_columns) + keep
    lead_values = {name: table.column(name) for name in lead}
    cells = table.column(column)

    pieces = []
    for i, value in enumerate(cells):
        if not isinstance(value, pd.DataFrame):
            raise TypeMismatchError(
                table.key(i), value, "pandas.DataFrame", row_index=i
            )
        clash = [name for name in lead if name in value.columns]
        if clash:
            raise ValueError(
                f"Cannot unnest '{column}': columns {clash} exist in both the "
                "row table and the outer table."
            )
        piece = value.copy()
        for pos, name in enumerate(lead):
            piece.insert(pos, name, lead_values[name][i])
        pieces.append(piece)

    if not pieces:
        return pd.DataFrame(columns=lead)
    return pd.concat(pieces, ignore_index=True)
