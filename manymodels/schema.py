"""Define standardized column names for nested and summary tables."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class ColumnNames:
    """Container for standardized column labels.

    These names are used by the bulk workflow, the loaders and the exporters so
    that nested tables produced by one step can be consumed by the next.

    Attributes:
        data: Nested column holding each group's sub-table.
        model: Column holding one fitted model object per group.
        tidy: Column holding a coefficient-level summary table per group.
        glance: Column holding a one-row model-level summary table per group.
        augment: Column holding the per-observation fitted values and
            residuals per group.
        plot: Column holding one rendered figure per group.
        path: Column holding the source path of a loaded file.
        filename: Column holding a target file name for bulk export.
    """

    data: str = "data"
    model: str = "model"
    tidy: str = "tidy"
    glance: str = "glance"
    augment: str = "augment"
    plot: str = "plot"
    path: str = "path"
    filename: str = "filename"


COLUMNS = ColumnNames()

# Column labels produced by the tidiers.
TIDY_COLUMNS = ("term", "estimate", "std_error", "statistic", "p_value")
CONF_INT_COLUMNS = ("conf_low", "conf_high")
GLANCE_COLUMNS = (
    "r_squared",
    "adj_r_squared",
    "sigma",
    "statistic",
    "p_value",
    "df",
    "log_lik",
    "aic",
    "bic",
    "deviance",
    "df_residual",
    "nobs",
)
AUGMENT_COLUMNS = (".fitted", ".resid", ".hat", ".std_resid")
