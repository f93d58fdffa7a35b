"""Attach collected per-row outputs to grouped tables and project them."""

from __future__ import annotations

import logging
from typing import Any, Sequence

import pandas as pd

from .errors import AssemblyError, InvalidColumnError
from .grouped_table import GroupedTable, object_series
from .grouping import Columns, as_column_list

logger = logging.getLogger(__name__)


def assign_column(
    table: GroupedTable,
    name: str,
    values: Sequence[Any],
    *,
    dtype: Any = None,
) -> GroupedTable:
    """Return a copy of ``table`` with ``values`` stored in column ``name``.

    Args:
        table (GroupedTable): Table the values were computed from.
        name (str): Target column. An existing column is replaced in place,
            keeping its position; a new one is appended.
        values (Sequence): One value per row, in row order.
        dtype: Optional pandas dtype for scalar columns. Without it each value
            is stored as one object cell.

    Returns:
        GroupedTable: New table; ``table`` itself is left untouched.

    Raises:
        AssemblyError: If ``len(values)`` differs from the row count.
        InvalidColumnError: If ``name`` is a key column.
    """
    values = list(values)
    if len(values) != len(table):
        raise AssemblyError(
            f"Cannot assign {len(values)} values to column '{name}' of a "
            f"table with {len(table)} rows."
        )
    if name in table.key_columns:
        raise InvalidColumnError(f"Refusing to overwrite key column '{name}'.", [name])

    frame = table.frame
    if dtype is None:
        frame[name] = object_series(values, frame.index)
    else:
        frame[name] = pd.Series(values, index=frame.index, dtype=dtype)
    logger.debug("Assigned column '%s' to %d rows", name, len(values))
    return table.with_frame(frame)


def drop_columns(table: GroupedTable, columns: Columns) -> GroupedTable:
    """Remove derived or nested columns, keeping the key columns.

    Raises:
        InvalidColumnError: If a column is missing or is a key column.
    """
    columns = as_column_list(columns)
    table.require_columns(columns)
    keys = [c for c in columns if c in table.key_columns]
    if keys:
        raise InvalidColumnError(f"Cannot drop key columns {keys}.", keys)

    nested = table.nested_column
    if nested in columns:
        nested = None
    return table.with_frame(table.frame.drop(columns=columns), nested_column=nested)


def project(table: GroupedTable, columns: Columns) -> pd.DataFrame:
    """Return a plain table holding only ``columns``, in the given order.

    Typical use is the ``filename`` + derived-object pair table that feeds a
    bulk export with :func:`manymodels.apply.pwalk_values`.
    """
    columns = as_column_list(columns)
    table.require_columns(columns)
    return table.frame[columns].reset_index(drop=True)
