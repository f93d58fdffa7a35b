"""Exception types raised by the grouped-apply engine."""

from __future__ import annotations

from typing import Any, List, Optional, Sequence, Tuple

GroupKey = Tuple[Tuple[str, Any], ...]


def format_key(key: Optional[GroupKey]) -> str:
    """Render a group key as ``col=value, col=value`` for messages."""
    if not key:
        return "<no key>"
    return ", ".join(f"{name}={value!r}" for name, value in key)


class ManyModelsError(Exception):
    """Base class for all engine errors."""


class InvalidColumnError(ManyModelsError, KeyError):
    """A grouping or reference column is absent from the table."""

    def __init__(self, message: str, columns: Sequence[str] = ()):
        super().__init__(message)
        self.message = message
        self.columns = tuple(columns)

    def __str__(self) -> str:
        return self.message


class TypeMismatchError(ManyModelsError, TypeError):
    """A per-row result does not conform to the declared output type."""

    def __init__(
        self,
        key: Optional[GroupKey],
        value: Any,
        expected: str,
        row_index: Optional[int] = None,
    ):
        self.key = key
        self.row_index = row_index
        self.value = value
        self.expected = expected
        super().__init__(
            f"Row [{format_key(key)}] produced {type(value).__name__} "
            f"{value!r}; expected {expected}."
        )


class RowApplicationError(ManyModelsError):
    """A user function failed on one row of a grouped table.

    Attributes:
        key: Group key of the failing row.
        row_index: Position of the failing row.

    The original exception is chained as ``__cause__``.
    """

    def __init__(self, key: Optional[GroupKey], row_index: int, cause: BaseException):
        self.key = key
        self.row_index = row_index
        self.cause = cause
        super().__init__(
            f"Function failed on row {row_index} [{format_key(key)}]: "
            f"{type(cause).__name__}: {cause}"
        )


class ApplicationErrors(ManyModelsError):
    """Aggregate failure raised by ``errors="collect"`` after all rows ran.

    Attributes:
        failures: One error per failed row, in row order.
        results: Outputs for every row, ``None`` where the row failed.
    """

    def __init__(self, failures: List[ManyModelsError], results: List[Any]):
        self.failures = list(failures)
        self.results = list(results)
        keys = "; ".join(format_key(getattr(f, "key", None)) for f in self.failures)
        super().__init__(
            f"{len(self.failures)} of {len(self.results)} rows failed: {keys}"
        )

    @property
    def failed_keys(self) -> List[Optional[GroupKey]]:
        return [getattr(f, "key", None) for f in self.failures]


class AssemblyError(ManyModelsError, RuntimeError):
    """Row count of collected outputs does not match the table."""
