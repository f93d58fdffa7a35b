"""Provide ordinary least-squares linear models fitted from simple formulas.

This module supports:
- parsing ``response ~ term + term`` formulas,
- building treatment-coded design matrices from pandas tables, and
- fitting models whose results are exposed through :class:`LinearModelFit`.
"""

from __future__ import annotations

import math
import re
import warnings
from dataclasses import dataclass, field
from typing import Dict, List, Tuple

import numpy as np
import pandas as pd
from scipy import stats as scipy_stats

INTERCEPT = "(Intercept)"
_MINUS_ONE = re.compile(r"-1(?![\w.])")


@dataclass(frozen=True)
class Formula:
    """Parsed model formula."""

    response: str
    variables: Tuple[str, ...]
    intercept: bool = True
    text: str = ""


def parse_formula(formula: str, columns: List[str] | None = None) -> Formula:
    """Parse a ``response ~ a + b`` formula.

    Args:
        formula (str): Formula text. ``.`` expands to every column except the
            response; ``- 1`` or ``+ 0`` removes the intercept; ``~ 1`` fits an
            intercept-only model.
        columns (list[str] | None): Available columns, needed to expand ``.``.

    Returns:
        Formula: Response, predictor variables, and intercept flag.

    Raises:
        ValueError: If the formula has no ``~`` or no response.
    """
    if formula.count("~") != 1:
        raise ValueError(f"Formula must contain exactly one '~': {formula!r}")
    lhs, rhs = (part.strip() for part in formula.split("~"))
    if not lhs:
        raise ValueError(f"Formula has no response variable: {formula!r}")

    rhs = re.sub(r"\s+", "", rhs)
    intercept = True
    if _MINUS_ONE.search(rhs):
        intercept = False
        rhs = _MINUS_ONE.sub("", rhs)

    variables: List[str] = []
    for term in filter(None, rhs.split("+")):
        if term == "0":
            intercept = False
            continue
        if term == "1":
            continue
        if term == ".":
            if columns is None:
                raise ValueError("Formula uses '.' but no columns were given.")
            variables.extend(c for c in columns if c != lhs and c not in variables)
        elif term not in variables:
            variables.append(term)

    return Formula(
        response=lhs, variables=tuple(variables), intercept=intercept, text=formula
    )


def _is_categorical(series: pd.Series) -> bool:
    return (
        pd.api.types.is_object_dtype(series)
        or pd.api.types.is_string_dtype(series)
        or isinstance(series.dtype, pd.CategoricalDtype)
        or pd.api.types.is_bool_dtype(series)
    )


def factor_levels(series: pd.Series) -> Tuple:
    """Observed levels of a categorical predictor, in coding order."""
    if isinstance(series.dtype, pd.CategoricalDtype):
        return tuple(lvl for lvl in series.cat.categories if (series == lvl).any())
    return tuple(sorted(series.unique().tolist(), key=str))


def design_matrix(
    frame: pd.DataFrame,
    variables: Tuple[str, ...],
    intercept: bool = True,
    levels: Dict[str, Tuple] | None = None,
) -> Tuple[np.ndarray, List[str]]:
    """Build a numeric design matrix with treatment coding for categoricals.

    Args:
        frame (pandas.DataFrame): Model frame without missing values.
        variables (tuple[str, ...]): Predictor columns.
        intercept (bool): Prepend a column of ones named ``(Intercept)``.
        levels (dict | None): Fixed levels per categorical column, used when
            coding new data against a fitted model.

    Returns:
        tuple[numpy.ndarray, list[str]]: Matrix of shape ``(n, p)`` and the
        coefficient name of each column. Categorical columns contribute one
        column per non-reference level, named ``<column><level>``.
    """
    levels = levels or {}
    blocks = []
    names: List[str] = []
    if intercept:
        blocks.append(np.ones((len(frame), 1)))
        names.append(INTERCEPT)

    for var in variables:
        series = frame[var]
        if var in levels or _is_categorical(series):
            var_levels = levels.get(var) or factor_levels(series)
            # The first level is the reference when an intercept absorbs it.
            coded = var_levels[1:] if intercept else var_levels
            for level in coded:
                blocks.append((series == level).to_numpy(dtype=float).reshape(-1, 1))
                names.append(f"{var}{level}")
        else:
            blocks.append(series.to_numpy(dtype=float).reshape(-1, 1))
            names.append(var)

    if not blocks:
        return np.empty((len(frame), 0)), names
    return np.hstack(blocks), names


@dataclass(frozen=True)
class LinearModelFit:
    """Container for a fitted linear model.

    Coefficient-level arrays share the order of :attr:`terms`; observation-level
    arrays share the row order of :attr:`model_frame`.
    """

    formula: str
    response: str
    variables: Tuple[str, ...]
    intercept: bool
    terms: Tuple[str, ...]
    coefficients: np.ndarray
    std_errors: np.ndarray
    t_values: np.ndarray
    p_values: np.ndarray
    fitted_values: np.ndarray
    residuals: np.ndarray
    hat: np.ndarray
    sigma: float
    r_squared: float
    adj_r_squared: float
    f_statistic: float
    f_p_value: float
    df_model: int
    df_residual: int
    nobs: int
    log_likelihood: float
    aic: float
    bic: float
    deviance: float
    model_frame: pd.DataFrame = field(repr=False)
    levels: Dict[str, Tuple] = field(default_factory=dict, repr=False)

    def coef(self) -> Dict[str, float]:
        return {t: float(c) for t, c in zip(self.terms, self.coefficients)}

    def confint(self, level: float = 0.95) -> pd.DataFrame:
        """Return ``conf_low`` / ``conf_high`` bounds per term."""
        if not 0.0 < level < 1.0:
            raise ValueError(f"Confidence level must be in (0, 1), got {level}.")
        if self.df_residual > 0:
            t_crit = float(scipy_stats.t.ppf(0.5 + level / 2.0, self.df_residual))
        else:
            t_crit = math.nan
        half = t_crit * self.std_errors
        return pd.DataFrame(
            {
                "term": list(self.terms),
                "conf_low": self.coefficients - half,
                "conf_high": self.coefficients + half,
            }
        )

    def predict(self, new_data: pd.DataFrame) -> np.ndarray:
        """Evaluate the fitted model on new rows."""
        missing = [v for v in self.variables if v not in new_data.columns]
        if missing:
            raise ValueError(f"New data is missing predictor columns: {missing}")
        frame = new_data[list(self.variables)]
        for var, known in self.levels.items():
            unknown = set(frame[var].dropna().unique().tolist()) - set(known)
            if unknown:
                raise ValueError(f"Unknown levels for '{var}': {sorted(unknown, key=str)}")
        X, _ = design_matrix(frame, self.variables, self.intercept, self.levels)
        return X @ self.coefficients


def linear_model(data: pd.DataFrame, formula: str, min_points: int = 2) -> LinearModelFit:
    """Fit an ordinary least-squares linear model to a table.

    Args:
        data (pandas.DataFrame): Table holding the response and predictors.
        formula (str): Model formula, for example ``"mass ~ flipper"``.
        min_points (int, optional): Minimum complete rows required. Defaults
            to ``2``; the fit also needs at least as many rows as coefficients.

    Returns:
        LinearModelFit: Estimates, standard errors, fit statistics and the
        model frame actually used.

    Raises:
        ValueError: If the formula references unknown columns, too few
            complete rows remain, or the design matrix is rank deficient.

    Note:
        Rows with a missing response or predictor are dropped before fitting.
        With zero residual degrees of freedom the fit is exact, standard errors
        are NaN, and a ``RuntimeWarning`` is emitted.

    References:
        Ordinary least squares via QR decomposition; t and F tests as in
        standard linear-model summaries.
    """
    spec = parse_formula(formula, [str(c) for c in data.columns])
    needed = [spec.response, *spec.variables]
    missing = [c for c in needed if c not in data.columns]
    if missing:
        raise ValueError(
            f"Formula {formula!r} references unknown columns {missing}. "
            f"Available columns: {list(data.columns)}"
        )

    frame = data[needed].dropna().reset_index(drop=True)
    levels = {
        var: factor_levels(frame[var])
        for var in spec.variables
        if _is_categorical(frame[var])
    }

    y = pd.to_numeric(frame[spec.response], errors="raise").to_numpy(dtype=float)
    X, names = design_matrix(frame, spec.variables, spec.intercept, levels)
    n, p = X.shape
    if p == 0:
        raise ValueError("Model has no coefficients to estimate.")
    if n < max(min_points, p):
        raise ValueError(
            f"Insufficient valid data for regression: {n} complete rows for "
            f"{p} coefficients (minimum {max(min_points, p)})."
        )
    rank = int(np.linalg.matrix_rank(X))
    if rank < p:
        raise ValueError(
            f"Design matrix is rank deficient (rank {rank} < {p} coefficients)."
        )

    Q, R = np.linalg.qr(X, mode="reduced")
    beta = np.linalg.solve(R, Q.T @ y)
    fitted = X @ beta
    resid = y - fitted
    hat = np.sum(Q**2, axis=1)

    sse = float(np.sum(resid**2))
    dof = n - p
    df_model = p - int(spec.intercept)
    if spec.intercept:
        sst = float(np.sum((y - y.mean()) ** 2))
    else:
        sst = float(np.sum(y**2))

    r2 = 1.0 - sse / sst if sst > 0 else math.nan
    if dof > 0 and np.isfinite(r2):
        adj_r2 = 1.0 - (1.0 - r2) * (n - int(spec.intercept)) / dof
    else:
        adj_r2 = math.nan

    if dof > 0:
        sigma = math.sqrt(sse / dof)
        r_inv = np.linalg.inv(R)
        se = sigma * np.sqrt(np.sum(r_inv**2, axis=1))
        with np.errstate(divide="ignore", invalid="ignore"):
            t_vals = beta / se
        p_vals = 2.0 * scipy_stats.t.sf(np.abs(t_vals), dof)
    else:
        warnings.warn(
            f"Model {formula!r} has zero residual degrees of freedom "
            f"({n} rows, {p} coefficients); standard errors are undefined.",
            RuntimeWarning,
            stacklevel=2,
        )
        sigma = math.nan
        se = np.full(p, math.nan)
        t_vals = np.full(p, math.nan)
        p_vals = np.full(p, math.nan)

    if dof > 0 and df_model > 0 and sse > 0:
        f_stat = ((sst - sse) / df_model) / (sse / dof)
        f_p = float(scipy_stats.f.sf(f_stat, df_model, dof))
    else:
        f_stat = math.nan
        f_p = math.nan

    if sse > 0:
        log_lik = -0.5 * n * (math.log(2.0 * math.pi) + 1.0 - math.log(n) + math.log(sse))
    else:
        log_lik = math.inf
    k = p + 1
    aic = -2.0 * log_lik + 2.0 * k
    bic = -2.0 * log_lik + math.log(n) * k

    return LinearModelFit(
        formula=formula,
        response=spec.response,
        variables=spec.variables,
        intercept=spec.intercept,
        terms=tuple(names),
        coefficients=beta,
        std_errors=np.asarray(se, dtype=float),
        t_values=np.asarray(t_vals, dtype=float),
        p_values=np.asarray(p_vals, dtype=float),
        fitted_values=fitted,
        residuals=resid,
        hat=hat,
        sigma=float(sigma),
        r_squared=float(r2),
        adj_r_squared=float(adj_r2),
        f_statistic=float(f_stat),
        f_p_value=f_p,
        df_model=int(df_model),
        df_residual=int(dof),
        nobs=int(n),
        log_likelihood=float(log_lik),
        aic=float(aic),
        bic=float(bic),
        deviance=sse,
        model_frame=frame,
        levels=levels,
    )
