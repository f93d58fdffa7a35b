"""
A Python package for fitting many models over grouped tables.

Partitions a table by key columns into nested sub-tables, maps functions over
those sub-tables row by row, and assembles the results back into the table as
new columns.

Modules:
    - grouping: Nests a table by key columns and flattens it back.
    - apply: Row-wise map / walk over one or more columns with error policies.
    - assemble: Adds, drops and projects columns of nested tables.
    - workflow: Fits one linear model per group and builds tidy summaries.
    - data_processing: Loads many files into a table keyed by path.
    - output: Writes summary tables and per-group tables to CSV.
    - plotting: Renders and saves one figure per group.
"""

__version__ = "1.0.0"

from .apply import (
    map2_values,
    map_values,
    mutate_with,
    pmap_values,
    pwalk_values,
    walk_values,
)
from .assemble import assign_column, drop_columns, project
from .data_processing import (
    bind_files,
    extract_from_filename,
    list_data_files,
    load_many,
    load_table,
)
from .errors import (
    ApplicationErrors,
    AssemblyError,
    InvalidColumnError,
    ManyModelsError,
    RowApplicationError,
    TypeMismatchError,
)
from .grouped_table import GroupedTable
from .grouping import nest, unnest
from .output import save_tables_to_csv, write_group_tables
from .workflow import (
    add_model_summaries,
    augmented_table,
    coefficient_table,
    drop_failed,
    extract_estimate,
    fit_many_models,
    fit_models,
    model_summary_table,
)

__all__ = [
    # Grouping
    "GroupedTable",
    "nest",
    "unnest",
    # Applicator
    "map_values",
    "map2_values",
    "pmap_values",
    "walk_values",
    "pwalk_values",
    "mutate_with",
    # Assembly
    "assign_column",
    "drop_columns",
    "project",
    # Errors
    "ManyModelsError",
    "InvalidColumnError",
    "TypeMismatchError",
    "RowApplicationError",
    "ApplicationErrors",
    "AssemblyError",
    # Input / output
    "list_data_files",
    "load_table",
    "load_many",
    "extract_from_filename",
    "bind_files",
    "save_tables_to_csv",
    "write_group_tables",
    # Workflow
    "fit_models",
    "add_model_summaries",
    "extract_estimate",
    "coefficient_table",
    "model_summary_table",
    "augmented_table",
    "drop_failed",
    "fit_many_models",
]
