"""Run configuration for the command-line pipeline."""

from __future__ import annotations

import argparse
from dataclasses import dataclass, field
from typing import Tuple

from .plotting.style import DEFAULT_STYLE, PlotStyle

DEFAULT_DATA_DIR = "data"
DEFAULT_OUTPUT_DIR = "output"
DEFAULT_PATTERN = "*.csv"


@dataclass(frozen=True)
class PipelineConfig:
    """Settings for one bulk fit-and-export run.

    Attributes:
        data_dir: Folder scanned for input files.
        pattern: Glob selecting input files inside ``data_dir``.
        filename_regex: Regular expression applied to each file stem; its
            capture groups become ``filename_fields`` columns.
        filename_fields: Names of the extracted metadata columns.
        filename_as_text: Keep extracted values as strings instead of
            converting numeric-looking ones (preserves leading zeros).
        group_by: Grouping columns of the bound table. Defaults to
            ``filename_fields`` when empty.
        formula: Model formula fitted per group.
        x, y: Axis columns for the per-group plots.
        output_dir: Destination for CSVs and figures.
        collect_errors: Fit every group and drop failures instead of stopping.
        make_plots: Render and save one figure per group.
        log_file: Optional log file next to the stdout handler.
        style: Rendering options for the figures.
    """

    formula: str
    data_dir: str = DEFAULT_DATA_DIR
    pattern: str = DEFAULT_PATTERN
    filename_regex: str | None = None
    filename_fields: Tuple[str, ...] = ()
    filename_as_text: bool = False
    group_by: Tuple[str, ...] = ()
    x: str | None = None
    y: str | None = None
    output_dir: str = DEFAULT_OUTPUT_DIR
    collect_errors: bool = False
    make_plots: bool = True
    log_file: str | None = None
    style: PlotStyle = field(default=DEFAULT_STYLE)

    def __post_init__(self) -> None:
        if "~" not in self.formula:
            raise ValueError(f"Formula {self.formula!r} must contain '~'.")
        if self.filename_regex is not None and not self.filename_fields:
            raise ValueError("--filename-regex requires --filename-fields.")
        if self.filename_fields and self.filename_regex is None:
            raise ValueError("--filename-fields requires --filename-regex.")

    @property
    def grouping(self) -> Tuple[str, ...]:
        """Columns the bound table is partitioned by."""
        return self.group_by or self.filename_fields

    @classmethod
    def from_args(cls, args: argparse.Namespace) -> "PipelineConfig":
        """Build a config from parsed command-line arguments."""
        return cls(
            formula=args.formula,
            data_dir=args.data_dir,
            pattern=args.pattern,
            filename_regex=args.filename_regex,
            filename_fields=tuple(args.filename_fields or ()),
            filename_as_text=args.filename_as_text,
            group_by=tuple(args.group_by or ()),
            x=args.x,
            y=args.y,
            output_dir=args.output_dir,
            collect_errors=args.collect_errors,
            make_plots=not args.no_plots,
            log_file=args.log_file,
        )
