"""
Apply user functions row by row over grouped tables.

Functions in this module select one or more columns, call a function once per
row with those column values, and collect one output per row in row order:

    map_values:   one column   -> f(value)
    map2_values:  two columns  -> f(first, second)
    pmap_values:  N columns    -> f(*values) or f(**{column: value})
    walk_values / pwalk_values: same dispatch, outputs discarded.
    mutate_with:  pmap_values followed by assign_column.

Error policy:
    errors="raise" (default) stops at the first failing row and raises
    RowApplicationError carrying that row's group key; later rows never run.
    errors="collect" runs every row and then raises ApplicationErrors listing
    all failures, with the successful outputs attached for explicit recovery.
"""

from __future__ import annotations

import logging
import numbers
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Union

import numpy as np
import pandas as pd

from .assemble import assign_column
from .errors import (
    ApplicationErrors,
    GroupKey,
    InvalidColumnError,
    ManyModelsError,
    RowApplicationError,
    TypeMismatchError,
)
from .grouped_table import GroupedTable
from .grouping import Columns, as_column_list

logger = logging.getLogger(__name__)

ERRORS_RAISE = "raise"
ERRORS_COLLECT = "collect"
ERROR_POLICIES = (ERRORS_RAISE, ERRORS_COLLECT)

Table = Union[GroupedTable, pd.DataFrame]


def _unwrap_scalar(value: Any) -> Any:
    """Reduce size-1 arrays and numpy scalars to plain Python values."""
    if isinstance(value, (pd.Series, pd.Index, np.ndarray)) and value.size == 1:
        value = np.asarray(value).reshape(-1)[0]
    if isinstance(value, np.generic):
        value = value.item()
    return value


def _as_float(value: Any) -> float:
    value = _unwrap_scalar(value)
    if isinstance(value, bool) or not isinstance(value, numbers.Real):
        raise TypeError
    return float(value)


def _as_int(value: Any) -> int:
    value = _unwrap_scalar(value)
    if isinstance(value, bool) or not isinstance(value, numbers.Integral):
        raise TypeError
    return int(value)


def _as_str(value: Any) -> str:
    value = _unwrap_scalar(value)
    if not isinstance(value, str):
        raise TypeError
    return value


def _as_bool(value: Any) -> bool:
    value = _unwrap_scalar(value)
    if not isinstance(value, bool):
        raise TypeError
    return value


_COERCERS: Dict[type, Callable[[Any], Any]] = {
    float: _as_float,
    int: _as_int,
    str: _as_str,
    bool: _as_bool,
}

_DTYPES: Dict[type, Any] = {float: "float64", int: "int64", bool: "bool", str: None}


def _row_keys(table: Table) -> List[GroupKey]:
    if isinstance(table, GroupedTable):
        return table.keys()
    return [(("row", i),) for i in range(len(table))]


def _column_values(table: Table, columns: List[str]) -> List[List[Any]]:
    if isinstance(table, GroupedTable):
        table.require_columns(columns)
        return [table.column(c) for c in columns]
    missing = [c for c in columns if c not in table.columns]
    if missing:
        raise InvalidColumnError(
            f"Columns {missing} not found. Available columns: {list(table.columns)}",
            missing,
        )
    return [table[c].tolist() for c in columns]


def _apply_rows(
    table: Table,
    columns: Columns,
    func: Callable[..., Any],
    *,
    keywords: bool = False,
    output_type: Optional[type] = None,
    errors: str = ERRORS_RAISE,
    args: Sequence[Any] = (),
    kwargs: Optional[Mapping[str, Any]] = None,
) -> List[Any]:
    if errors not in ERROR_POLICIES:
        raise ValueError(f"errors must be one of {ERROR_POLICIES}, got {errors!r}.")
    if output_type is not None and output_type not in _COERCERS:
        raise ValueError(
            f"Unsupported output_type {output_type!r}; "
            f"expected one of {[t.__name__ for t in _COERCERS]}."
        )
    columns = as_column_list(columns)
    if not columns:
        raise InvalidColumnError("At least one argument column is required.")

    values = _column_values(table, columns)
    keys = _row_keys(table)
    coerce = _COERCERS.get(output_type) if output_type is not None else None
    kwargs = dict(kwargs or {})
    name = getattr(func, "__name__", repr(func))

    logger.debug("Applying %s to %d rows using columns %s", name, len(keys), columns)

    results: List[Any] = []
    failures: List[ManyModelsError] = []
    for i, key in enumerate(keys):
        row = [column[i] for column in values]
        try:
            if keywords:
                out = func(*args, **dict(zip(columns, row)), **kwargs)
            else:
                out = func(*row, *args, **kwargs)
        except Exception as exc:
            error = RowApplicationError(key, i, exc)
            logger.error("%s", error)
            if errors == ERRORS_RAISE:
                raise error from exc
            error.__cause__ = exc
            failures.append(error)
            results.append(None)
            continue

        if coerce is not None:
            try:
                out = coerce(out)
            except (TypeError, ValueError):
                mismatch = TypeMismatchError(
                    key, out, output_type.__name__, row_index=i
                )
                logger.error("%s", mismatch)
                if errors == ERRORS_RAISE:
                    raise mismatch from None
                failures.append(mismatch)
                results.append(None)
                continue
        results.append(out)

    if failures:
        raise ApplicationErrors(failures, results)
    return results


def map_values(
    table: Table,
    column: str,
    func: Callable[..., Any],
    *,
    output_type: Optional[type] = None,
    errors: str = ERRORS_RAISE,
    args: Sequence[Any] = (),
    kwargs: Optional[Mapping[str, Any]] = None,
) -> List[Any]:
    """Call ``func(value)`` for each value of ``column``.

    Args:
        table (GroupedTable | pandas.DataFrame): Rows to iterate.
        column (str): Argument column.
        func (Callable): Per-row function; ``args`` and ``kwargs`` are passed
            after the row value.
        output_type (type | None): ``float``, ``int``, ``str`` or ``bool`` to
            validate and coerce every result.
        errors (str): ``"raise"`` or ``"collect"``.

    Returns:
        list: One output per row, in row order.

    Raises:
        InvalidColumnError: If ``column`` is missing (before any call).
        RowApplicationError: If ``func`` fails and ``errors="raise"``.
        TypeMismatchError: If a result does not match ``output_type``.
        ApplicationErrors: If any row failed and ``errors="collect"``.
    """
    return _apply_rows(
        table,
        [column],
        func,
        output_type=output_type,
        errors=errors,
        args=args,
        kwargs=kwargs,
    )


def map2_values(
    table: Table,
    first: str,
    second: str,
    func: Callable[..., Any],
    *,
    output_type: Optional[type] = None,
    errors: str = ERRORS_RAISE,
    args: Sequence[Any] = (),
    kwargs: Optional[Mapping[str, Any]] = None,
) -> List[Any]:
    """Call ``func(first_value, second_value)`` for each row."""
    return _apply_rows(
        table,
        [first, second],
        func,
        output_type=output_type,
        errors=errors,
        args=args,
        kwargs=kwargs,
    )


def pmap_values(
    table: Table,
    columns: Columns,
    func: Callable[..., Any],
    *,
    keywords: bool = False,
    output_type: Optional[type] = None,
    errors: str = ERRORS_RAISE,
    args: Sequence[Any] = (),
    kwargs: Optional[Mapping[str, Any]] = None,
) -> List[Any]:
    """Call ``func`` with the values of several columns for each row.

    With ``keywords=True`` the values are passed as keyword arguments named
    after their columns, so column order no longer matters.
    """
    return _apply_rows(
        table,
        columns,
        func,
        keywords=keywords,
        output_type=output_type,
        errors=errors,
        args=args,
        kwargs=kwargs,
    )


def walk_values(
    table: Table,
    column: str,
    func: Callable[..., Any],
    *,
    errors: str = ERRORS_RAISE,
    args: Sequence[Any] = (),
    kwargs: Optional[Mapping[str, Any]] = None,
) -> None:
    """Call ``func(value)`` once per row for its side effects only."""
    _apply_rows(table, [column], func, errors=errors, args=args, kwargs=kwargs)


def pwalk_values(
    table: Table,
    columns: Columns,
    func: Callable[..., Any],
    *,
    keywords: bool = False,
    errors: str = ERRORS_RAISE,
    args: Sequence[Any] = (),
    kwargs: Optional[Mapping[str, Any]] = None,
) -> None:
    """Call ``func`` with several column values per row, discarding results.

    Every row runs exactly once, in row order, and the call returns only after
    all rows completed or the first failure was raised.
    """
    _apply_rows(
        table,
        columns,
        func,
        keywords=keywords,
        errors=errors,
        args=args,
        kwargs=kwargs,
    )


def mutate_with(
    table: GroupedTable,
    name: str,
    func: Callable[..., Any],
    columns: Columns,
    *,
    keywords: bool = False,
    output_type: Optional[type] = None,
    errors: str = ERRORS_RAISE,
    args: Sequence[Any] = (),
    kwargs: Optional[Mapping[str, Any]] = None,
) -> GroupedTable:
    """Map ``func`` over ``columns`` and store the outputs in column ``name``.

    Under ``errors="collect"`` a failure still raises
    :class:`ApplicationErrors`; pass its ``results`` to
    :func:`manymodels.assemble.assign_column` to keep the partial column.
    """
    results = _apply_rows(
        table,
        columns,
        func,
        keywords=keywords,
        output_type=output_type,
        errors=errors,
        args=args,
        kwargs=kwargs,
    )
    dtype = _DTYPES.get(output_type) if output_type is not None else None
    return assign_column(table, name, results, dtype=dtype)
