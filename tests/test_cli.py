import os

import pandas as pd
import pytest

from manymodels.cli import main, run_pipeline
from manymodels.config import PipelineConfig


def _write_inputs(data_dir, penguins):
    data_dir.mkdir()
    for (species, year), sub in penguins.groupby(["species", "year"]):
        sub[["length", "mass"]].to_csv(data_dir / f"{species}_{year}.csv", index=False)


def test_main_writes_tables_and_plots(penguins, tmp_path):
    data_dir = tmp_path / "data"
    out_dir = tmp_path / "out"
    _write_inputs(data_dir, penguins)

    code = main(
        [
            "--data-dir",
            str(data_dir),
            "--filename-regex",
            r"^([A-Z])_(\d{4})$",
            "--filename-fields",
            "species",
            "year",
            "--formula",
            "mass ~ length",
            "--output-dir",
            str(out_dir),
        ]
    )

    assert code == 0
    coefs = pd.read_csv(out_dir / "coefficients.csv")
    assert len(coefs) == 8
    assert list(coefs.columns[:3]) == ["species", "year", "term"]
    assert len(pd.read_csv(out_dir / "model_summaries.csv")) == 4
    assert os.path.exists(out_dir / "plots" / "A_2007_plot.png")


def test_main_returns_one_without_input_files(tmp_path):
    (tmp_path / "empty").mkdir()
    code = main(["--data-dir", str(tmp_path / "empty"), "--formula", "y ~ x"])
    assert code == 1


def test_main_returns_one_when_a_fit_fails(tmp_path):
    data_dir = tmp_path / "data"
    data_dir.mkdir()
    pd.DataFrame({"x": [1.0], "y": [2.0]}).to_csv(data_dir / "tiny.csv", index=False)

    code = main(
        ["--data-dir", str(data_dir), "--formula", "y ~ x", "--no-plots"]
    )
    assert code == 1


def test_run_pipeline_groups_by_path_without_metadata(penguins, tmp_path):
    data_dir = tmp_path / "data"
    _write_inputs(data_dir, penguins)
    config = PipelineConfig(
        formula="mass ~ length",
        data_dir=str(data_dir),
        output_dir=str(tmp_path / "out"),
        make_plots=False,
    )

    outputs = run_pipeline(config)
    assert outputs["table"].key_columns == ("path",)
    assert len(outputs["table"]) == 4
    assert outputs["plot_paths"] == []


def test_config_requires_regex_and_fields_together():
    with pytest.raises(ValueError, match="requires --filename-fields"):
        PipelineConfig(formula="y ~ x", filename_regex=r"(\w+)")
    with pytest.raises(ValueError, match="must contain"):
        PipelineConfig(formula="y")


def test_main_returns_one_when_a_file_name_does_not_match(penguins, tmp_path):
    data_dir = tmp_path / "data"
    _write_inputs(data_dir, penguins)
    pd.DataFrame({"length": [1.0], "mass": [2.0]}).to_csv(
        data_dir / "weird.csv", index=False
    )

    code = main(
        [
            "--data-dir",
            str(data_dir),
            "--filename-regex",
            r"^([A-Z])_(\d{4})$",
            "--filename-fields",
            "species",
            "year",
            "--formula",
            "mass ~ length",
            "--no-plots",
        ]
    )
    assert code == 1
