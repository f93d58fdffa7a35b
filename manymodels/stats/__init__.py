"""
Statistical collaborators for per-group model fitting.

This subpackage fits ordinary least-squares models from formulas and turns the
fitted objects into tidy tables. Nothing here knows about grouping; the
workflow module maps these functions over nested tables.

Modules:
    regression:
        Formula parsing, treatment-coded design matrices, and
        :func:`linear_model`, which returns a :class:`LinearModelFit`.

    tidiers:
        ``tidy`` (per coefficient), ``glance`` (per model) and ``augment``
        (per observation) table views of a fitted model.
"""

from .regression import LinearModelFit, linear_model, parse_formula
from .tidiers import augment, glance, tidy

__all__ = [
    "LinearModelFit",
    "linear_model",
    "parse_formula",
    "augment",
    "glance",
    "tidy",
]
