import pandas as pd
import pytest

from manymodels.grouping import nest
from manymodels.output import save_tables_to_csv, write_group_tables


def test_save_tables_to_csv(tmp_path):
    tables = {
        "coefficients": pd.DataFrame({"term": ["x"], "estimate": [1.5]}),
        "model_summaries": pd.DataFrame({"r_squared": [0.9]}),
    }
    paths = save_tables_to_csv(tables, tmp_path / "out")

    assert sorted(paths) == ["coefficients", "model_summaries"]
    reloaded = pd.read_csv(paths["coefficients"])
    pd.testing.assert_frame_equal(reloaded, tables["coefficients"])


def test_save_tables_to_csv_rejects_non_tables(tmp_path):
    with pytest.raises(TypeError, match="not a DataFrame"):
        save_tables_to_csv({"bad": [1, 2]}, tmp_path)


def test_write_group_tables_one_file_per_group(species_years, tmp_path):
    table = nest(species_years, ["species", "year"])
    paths = write_group_tables(table, tmp_path, suffix="data")

    assert [p.split("/")[-1] for p in paths] == [
        "A_2007_data.csv",
        "A_2008_data.csv",
        "B_2007_data.csv",
        "B_2008_data.csv",
    ]
    assert pd.read_csv(paths[2])["value"].tolist() == [3.0]


def test_write_group_tables_rejects_colliding_file_names(tmp_path):
    df = pd.DataFrame({"site": ["a b", "a_b", "a/b"], "value": [1.0, 2.0, 3.0]})
    table = nest(df, "site")

    with pytest.raises(ValueError, match="same file name") as excinfo:
        write_group_tables(table, tmp_path)
    assert "site='a b'" in str(excinfo.value)
    assert "site='a/b'" in str(excinfo.value)
    assert list(tmp_path.iterdir()) == []
