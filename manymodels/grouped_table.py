"""Table of group keys plus one nested sub-table per group."""

from __future__ import annotations

from typing import Any, Dict, Iterator, List, Optional, Sequence

import numpy as np
import pandas as pd

from .errors import GroupKey, InvalidColumnError, format_key
from .schema import COLUMNS

_SAME = object()


def object_series(values: Sequence[Any], index: pd.Index) -> pd.Series:
    """Build an object Series holding each value as one cell.

    Filling a preallocated object array keeps pandas from unpacking list-like
    values (sub-tables, arrays) into several cells.
    """
    arr = np.empty(len(values), dtype=object)
    for i, value in enumerate(values):
        arr[i] = value
    return pd.Series(arr, index=index, dtype=object)


class GroupedTable:
    """One row per distinct group key with a nested sub-table column.

    Args:
        frame (pandas.DataFrame): Underlying table. Its index is reset.
        key_columns (Sequence[str]): Columns whose values identify a row.
            Their combined values must be unique.
        nested_column (str | None): Column holding each group's sub-table, or
            ``None`` once the nested data has been dropped.

    Raises:
        InvalidColumnError: If a key or nested column is missing.
        ValueError: If no key column is given or key values repeat.

    Note:
        Instances are treated as values. Every transformation returns a new
        table, and :attr:`frame` hands out a copy.
    """

    def __init__(
        self,
        frame: pd.DataFrame,
        key_columns: Sequence[str],
        nested_column: Optional[str] = COLUMNS.data,
    ):
        key_columns = tuple(key_columns)
        if not key_columns:
            raise ValueError("A grouped table needs at least one key column.")
        required = key_columns + ((nested_column,) if nested_column else ())
        missing = [c for c in required if c not in frame.columns]
        if missing:
            raise InvalidColumnError(
                f"Columns {missing} not found. Available columns: {list(frame.columns)}",
                missing,
            )
        if nested_column in key_columns:
            raise ValueError(f"Nested column '{nested_column}' cannot be a key column.")

        frame = frame.reset_index(drop=True)
        dupes = frame.duplicated(subset=list(key_columns), keep=False)
        if bool(dupes.any()):
            examples = frame.loc[dupes, list(key_columns)].drop_duplicates().head(3)
            raise ValueError(
                "Group keys must be unique; repeated keys: "
                f"{examples.to_dict(orient='records')}"
            )

        self._frame = frame
        self._key_columns = key_columns
        self._nested_column = nested_column

    @property
    def frame(self) -> pd.DataFrame:
        return self._frame.copy()

    @property
    def key_columns(self) -> tuple:
        return self._key_columns

    @property
    def nested_column(self) -> Optional[str]:
        return self._nested_column

    @property
    def columns(self) -> List[str]:
        return [str(c) for c in self._frame.columns]

    def __len__(self) -> int:
        return len(self._frame)

    def __repr__(self) -> str:
        return (
            f"GroupedTable(rows={len(self)}, keys={list(self._key_columns)}, "
            f"nested={self._nested_column!r}, columns={self.columns})"
        )

    def has_column(self, name: str) -> bool:
        return name in self._frame.columns

    def require_columns(self, names: Sequence[str]) -> None:
        """Raise :class:`InvalidColumnError` unless every column exists."""
        missing = [n for n in names if n not in self._frame.columns]
        if missing:
            raise InvalidColumnError(
                f"Columns {missing} not found. Available columns: {self.columns}",
                missing,
            )

    def key(self, row: int) -> GroupKey:
        return tuple(
            (name, self._frame[name].iloc[row : row + 1].tolist()[0])
            for name in self._key_columns
        )

    def keys(self) -> List[GroupKey]:
        values = [self._frame[name].tolist() for name in self._key_columns]
        return [tuple(zip(self._key_columns, combo)) for combo in zip(*values)]

    def key_label(self, row: int) -> str:
        return format_key(self.key(row))

    def column(self, name: str) -> List[Any]:
        self.require_columns([name])
        return self._frame[name].tolist()

    def sub_table(self, row: int) -> pd.DataFrame:
        if self._nested_column is None:
            raise InvalidColumnError("Table has no nested column.")
        return self._frame[self._nested_column].iloc[row]

    def sub_tables(self) -> List[pd.DataFrame]:
        if self._nested_column is None:
            raise InvalidColumnError("Table has no nested column.")
        return self.column(self._nested_column)

    def rows(self) -> Iterator[Dict[str, Any]]:
        columns = self.columns
        values = [self._frame[c].tolist() for c in columns]
        for combo in zip(*values):
            yield dict(zip(columns, combo))

    def with_frame(
        self, frame: pd.DataFrame, nested_column: Any = _SAME
    ) -> "GroupedTable":
        """Return a new table over ``frame`` with the same key columns."""
        nested = self._nested_column if nested_column is _SAME else nested_column
        return GroupedTable(frame, self._key_columns, nested)
