"""
Command-line entry point for bulk per-group model fitting.
"""

# Pipeline overview:
# 1) List input files and load each one into a one-row-per-file table.
# 2) Pull metadata (e.g. species, year) out of the file names.
# 3) Bind the files into one long table and partition it by the metadata.
# 4) Fit the formula per group and attach tidy / glance summaries.
# 5) Export coefficient and model-summary CSVs plus one figure per group.

from __future__ import annotations

import argparse
import logging
import sys
import time
from pathlib import Path
from typing import Dict, List

from .apply import ERRORS_COLLECT, ERRORS_RAISE
from .config import (
    DEFAULT_DATA_DIR,
    DEFAULT_OUTPUT_DIR,
    DEFAULT_PATTERN,
    PipelineConfig,
)
from .data_processing import (
    bind_files,
    extract_from_filename,
    list_data_files,
    load_many,
)
from .errors import ManyModelsError
from .output import save_tables_to_csv
from .plotting import add_group_plots, save_group_plots
from .schema import COLUMNS
from .stats.regression import parse_formula
from .workflow import (
    coefficient_table,
    fit_many_models,
    model_summary_table,
    print_model_summary,
)

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s - %(levelname)s - %(message)s"


def configure_logging(log_file: str | None = None, level: int = logging.INFO) -> None:
    """Send log records to stdout and, optionally, to ``log_file``."""
    handlers: List[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    if log_file:
        handlers.append(logging.FileHandler(log_file, mode="w"))
    logging.basicConfig(level=level, format=LOG_FORMAT, handlers=handlers)


def _plot_axes(config: PipelineConfig) -> tuple[str, str] | None:
    if config.x and config.y:
        return config.x, config.y
    formula = parse_formula(config.formula)
    if len(formula.variables) != 1:
        return None
    return config.x or formula.variables[0], config.y or formula.response


def run_pipeline(config: PipelineConfig) -> Dict[str, object]:
    """Run the fit-and-export pipeline described by ``config``.

    Returns:
        dict: ``table`` (the fitted GroupedTable), ``coefficients`` and
        ``summaries`` (flat DataFrames), ``csv_paths`` and ``plot_paths``.

    Raises:
        FileNotFoundError: If the data directory does not exist.
        ValueError: If a file name does not match the file-name pattern or
            two groups map to the same output file name.
        ManyModelsError: If loading, fitting or exporting fails.
    """
    errors = ERRORS_COLLECT if config.collect_errors else ERRORS_RAISE
    files = list_data_files(config.data_dir, config.pattern)
    if not files:
        return {}

    step_start = time.time()
    loaded = load_many(files)
    if config.filename_regex is not None:
        loaded = extract_from_filename(
            loaded,
            config.filename_regex,
            config.filename_fields,
            convert=not config.filename_as_text,
        )
    bound = bind_files(loaded, keep=config.filename_fields)
    logger.info(
        "Bound %d rows from %d files in %.2f seconds",
        len(bound),
        len(files),
        time.time() - step_start,
    )

    grouping = list(config.grouping) or [COLUMNS.path]
    if COLUMNS.path not in grouping:
        bound = bound.drop(columns=[COLUMNS.path])

    step_start = time.time()
    table = fit_many_models(bound, grouping, config.formula, errors=errors)
    logger.info(
        "Fitted %d models in %.2f seconds", len(table), time.time() - step_start
    )

    coefficients = coefficient_table(table)
    summaries = model_summary_table(table)
    print_model_summary(summaries, grouping)

    csv_paths = save_tables_to_csv(
        {"coefficients": coefficients, "model_summaries": summaries},
        config.output_dir,
    )

    plot_paths: List[str] = []
    if config.make_plots:
        axes = _plot_axes(config)
        if axes is None:
            logger.warning(
                "Skipping group plots: pass --x and --y for multi-term formulas."
            )
        else:
            x, y = axes
            plotted = add_group_plots(
                table,
                x,
                y,
                model_column=COLUMNS.model,
                style=config.style,
                errors=errors,
            )
            plot_paths = save_group_plots(
                plotted,
                Path(config.output_dir) / "plots",
                style=config.style,
                errors=errors,
            )

    return {
        "table": table,
        "coefficients": coefficients,
        "summaries": summaries,
        "csv_paths": csv_paths,
        "plot_paths": plot_paths,
    }


def _build_arg_parser() -> argparse.ArgumentParser:
    """Build command-line parser for module execution."""
    parser = argparse.ArgumentParser(
        description="Fit one linear model per group of a set of CSV files."
    )
    parser.add_argument("--formula", required=True, help="Model formula, e.g. 'y ~ x'.")
    parser.add_argument(
        "--data-dir",
        default=DEFAULT_DATA_DIR,
        help=f"Folder holding the input files (default: {DEFAULT_DATA_DIR}).",
    )
    parser.add_argument(
        "--pattern",
        default=DEFAULT_PATTERN,
        help=f"Glob selecting input files (default: {DEFAULT_PATTERN}).",
    )
    parser.add_argument(
        "--filename-regex",
        default=None,
        help="Regular expression with one capture group per --filename-fields name.",
    )
    parser.add_argument(
        "--filename-fields",
        nargs="+",
        default=None,
        help="Column names for the groups captured from each file name.",
    )
    parser.add_argument(
        "--filename-as-text",
        action="store_true",
        help="Keep file-name fields as text (e.g. keep leading zeros in '007').",
    )
    parser.add_argument(
        "--group-by",
        nargs="+",
        default=None,
        help="Grouping columns (default: the --filename-fields columns).",
    )
    parser.add_argument("--x", default=None, help="Horizontal-axis column for plots.")
    parser.add_argument("--y", default=None, help="Vertical-axis column for plots.")
    parser.add_argument(
        "--output-dir",
        default=DEFAULT_OUTPUT_DIR,
        help=f"Output directory (default: {DEFAULT_OUTPUT_DIR}).",
    )
    parser.add_argument(
        "--collect-errors",
        action="store_true",
        help="Fit every group and drop the ones that fail instead of stopping.",
    )
    parser.add_argument(
        "--no-plots", action="store_true", help="Skip the per-group figures."
    )
    parser.add_argument("--log-file", default=None, help="Optional log file path.")
    return parser


def main(argv: list[str] | None = None) -> int:
    """CLI entrypoint for the many-models pipeline."""
    parser = _build_arg_parser()
    args = parser.parse_args(argv)
    try:
        config = PipelineConfig.from_args(args)
    except ValueError as exc:
        parser.error(str(exc))

    configure_logging(config.log_file)
    start_time = time.time()
    logger.info("Initializing many-models pipeline")

    try:
        outputs = run_pipeline(config)
    except (ManyModelsError, FileNotFoundError, ValueError) as exc:
        logger.error("Pipeline failed: %s", exc)
        return 1

    if not outputs:
        logger.error("No input files found. Terminating execution.")
        return 1

    logger.info("Total execution time: %.2f seconds", time.time() - start_time)
    logger.info("Generated output files:")
    for path in outputs["csv_paths"].values():
        logger.info("  - Table: %s", path)
    for path in outputs["plot_paths"]:
        logger.info("  - Group plot: %s", path)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
