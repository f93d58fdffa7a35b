"""Convert fitted linear models into tidy pandas tables.

Three views are offered, each returning a plain :class:`pandas.DataFrame`:

    tidy:    one row per coefficient (estimate, standard error, t, p).
    glance:  one row per model (R^2, sigma, F test, information criteria).
    augment: one row per observation (model frame plus fitted values,
             residuals, leverage and standardized residuals).
"""

from __future__ import annotations

import math

import numpy as np
import pandas as pd

from ..schema import AUGMENT_COLUMNS, GLANCE_COLUMNS, TIDY_COLUMNS
from .regression import LinearModelFit


def _require_fit(fit: LinearModelFit) -> None:
    if not isinstance(fit, LinearModelFit):
        raise TypeError(
            f"Expected a LinearModelFit, got {type(fit).__name__}."
        )


def tidy(
    fit: LinearModelFit, conf_int: bool = False, conf_level: float = 0.95
) -> pd.DataFrame:
    """Summarize a model as one row per coefficient.

    Args:
        fit (LinearModelFit): Fitted model.
        conf_int (bool): Add ``conf_low`` / ``conf_high`` columns.
        conf_level (float): Confidence level for the interval columns.

    Returns:
        pandas.DataFrame: Columns ``term``, ``estimate``, ``std_error``,
        ``statistic`` (t value) and ``p_value``.
    """
    _require_fit(fit)
    out = pd.DataFrame(
        {
            "term": list(fit.terms),
            "estimate": np.asarray(fit.coefficients, dtype=float),
            "std_error": np.asarray(fit.std_errors, dtype=float),
            "statistic": np.asarray(fit.t_values, dtype=float),
            "p_value": np.asarray(fit.p_values, dtype=float),
        },
        columns=list(TIDY_COLUMNS),
    )
    if conf_int:
        bounds = fit.confint(conf_level)
        out["conf_low"] = bounds["conf_low"].to_numpy()
        out["conf_high"] = bounds["conf_high"].to_numpy()
    return out


def glance(fit: LinearModelFit) -> pd.DataFrame:
    """Summarize a model as a single row of goodness-of-fit statistics."""
    _require_fit(fit)
    row = {
        "r_squared": fit.r_squared,
        "adj_r_squared": fit.adj_r_squared,
        "sigma": fit.sigma,
        "statistic": fit.f_statistic,
        "p_value": fit.f_p_value,
        "df": fit.df_model,
        "log_lik": fit.log_likelihood,
        "aic": fit.aic,
        "bic": fit.bic,
        "deviance": fit.deviance,
        "df_residual": fit.df_residual,
        "nobs": fit.nobs,
    }
    return pd.DataFrame([row], columns=list(GLANCE_COLUMNS))


def augment(fit: LinearModelFit) -> pd.DataFrame:
    """Return the model frame with per-observation fit diagnostics.

    Standardized residuals are ``resid / (sigma * sqrt(1 - hat))``; they are
    NaN where the leverage is one or sigma is undefined.
    """
    _require_fit(fit)
    out = fit.model_frame.copy()
    hat = np.asarray(fit.hat, dtype=float)
    resid = np.asarray(fit.residuals, dtype=float)
    with np.errstate(divide="ignore", invalid="ignore"):
        scale = fit.sigma * np.sqrt(1.0 - hat) if math.isfinite(fit.sigma) else np.nan
        std_resid = np.where(hat < 1.0 - 1e-12, resid / scale, np.nan)
    for name, values in zip(
        AUGMENT_COLUMNS, (fit.fitted_values, resid, hat, std_resid)
    ):
        out[name] = np.asarray(values, dtype=float)
    return out
