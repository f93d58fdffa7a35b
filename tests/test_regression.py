import math

import numpy as np
import pandas as pd
import pytest
from scipy import stats as scipy_stats

from manymodels.schema import AUGMENT_COLUMNS, GLANCE_COLUMNS, TIDY_COLUMNS
from manymodels.stats import augment, glance, linear_model, parse_formula, tidy


def _noisy_line():
    x = np.arange(1.0, 11.0)
    noise = np.array([0.2, -0.1, 0.3, -0.4, 0.1, 0.0, -0.2, 0.35, -0.3, 0.15])
    return pd.DataFrame({"x": x, "y": 1.5 + 0.8 * x + noise})


def test_parse_formula_variants():
    assert parse_formula("y ~ a + b").variables == ("a", "b")
    assert parse_formula("y ~ x - 1").intercept is False
    assert parse_formula("y ~ 0 + x").intercept is False
    intercept_only = parse_formula("y ~ 1")
    assert intercept_only.variables == ()
    assert intercept_only.intercept is True
    assert parse_formula("y ~ .", ["y", "a", "b"]).variables == ("a", "b")

    with pytest.raises(ValueError, match="exactly one '~'"):
        parse_formula("y = x")


def test_exact_line_recovers_coefficients():
    df = pd.DataFrame({"x": [0.0, 1.0, 2.0, 3.0, 4.0]})
    df["y"] = 1.0 + 2.0 * df["x"]
    fit = linear_model(df, "y ~ x")

    assert fit.terms == ("(Intercept)", "x")
    np.testing.assert_allclose(fit.coefficients, [1.0, 2.0], atol=1e-10)
    np.testing.assert_allclose(fit.residuals, 0.0, atol=1e-10)
    assert fit.coef()["x"] == pytest.approx(2.0)


def test_matches_scipy_linregress():
    df = _noisy_line()
    fit = linear_model(df, "y ~ x")
    ref = scipy_stats.linregress(df["x"], df["y"])

    assert fit.coefficients[1] == pytest.approx(ref.slope)
    assert fit.coefficients[0] == pytest.approx(ref.intercept)
    assert fit.r_squared == pytest.approx(ref.rvalue**2)
    assert fit.std_errors[1] == pytest.approx(ref.stderr)
    assert fit.p_values[1] == pytest.approx(ref.pvalue)
    assert fit.df_residual == 8
    assert fit.nobs == 10


def test_categorical_predictor_uses_treatment_coding():
    df = pd.DataFrame(
        {
            "group": ["a", "a", "b", "b", "c", "c"],
            "y": [1.0, 1.2, 3.0, 3.2, 5.0, 5.2],
        }
    )
    fit = linear_model(df, "y ~ group")

    assert fit.terms == ("(Intercept)", "groupb", "groupc")
    np.testing.assert_allclose(fit.coefficients, [1.1, 2.0, 4.0], atol=1e-10)
    np.testing.assert_allclose(
        fit.predict(pd.DataFrame({"group": ["c", "a"]})), [5.1, 1.1], atol=1e-10
    )
    with pytest.raises(ValueError, match="Unknown levels"):
        fit.predict(pd.DataFrame({"group": ["d"]}))


def test_missing_rows_are_dropped():
    df = _noisy_line()
    df.loc[2, "y"] = np.nan
    fit = linear_model(df, "y ~ x")
    assert fit.nobs == 9
    assert len(fit.model_frame) == 9


def test_no_intercept_model():
    df = pd.DataFrame({"x": [1.0, 2.0, 3.0], "y": [2.0, 4.1, 5.9]})
    fit = linear_model(df, "y ~ x - 1")
    assert fit.terms == ("x",)
    assert fit.df_model == 1
    assert fit.coefficients[0] == pytest.approx(np.dot(df.x, df.y) / np.dot(df.x, df.x))


def test_unknown_column_raises():
    with pytest.raises(ValueError, match="unknown columns"):
        linear_model(_noisy_line(), "y ~ z")


def test_insufficient_data_raises():
    df = pd.DataFrame({"x": [1.0], "y": [2.0]})
    with pytest.raises(ValueError, match="Insufficient valid data"):
        linear_model(df, "y ~ x")


def test_rank_deficient_design_raises():
    df = pd.DataFrame({"x": [1.0, 1.0, 1.0], "y": [1.0, 2.0, 3.0]})
    with pytest.raises(ValueError, match="rank deficient"):
        linear_model(df, "y ~ x")


def test_zero_residual_dof_warns_and_gives_nan_errors():
    df = pd.DataFrame({"x": [1.0, 2.0], "y": [3.0, 5.0]})
    with pytest.warns(RuntimeWarning, match="zero residual degrees of freedom"):
        fit = linear_model(df, "y ~ x")
    assert fit.df_residual == 0
    assert np.isnan(fit.std_errors).all()
    assert math.isnan(fit.sigma)


def test_tidy_glance_augment_columns():
    fit = linear_model(_noisy_line(), "y ~ x")

    coefs = tidy(fit)
    assert tuple(coefs.columns) == TIDY_COLUMNS
    assert coefs["term"].tolist() == ["(Intercept)", "x"]

    with_ci = tidy(fit, conf_int=True, conf_level=0.9)
    assert (with_ci["conf_low"] < with_ci["estimate"]).all()
    assert (with_ci["estimate"] < with_ci["conf_high"]).all()

    summary = glance(fit)
    assert tuple(summary.columns) == GLANCE_COLUMNS
    assert len(summary) == 1
    assert summary.loc[0, "nobs"] == 10
    assert summary.loc[0, "r_squared"] == pytest.approx(fit.r_squared)

    rows = augment(fit)
    assert list(rows.columns) == ["y", "x", *AUGMENT_COLUMNS]
    np.testing.assert_allclose(rows[".fitted"] + rows[".resid"], rows["y"])
    assert rows[".hat"].sum() == pytest.approx(2.0)


def test_tidiers_reject_other_objects():
    with pytest.raises(TypeError, match="LinearModelFit"):
        tidy({"coef": 1.0})
