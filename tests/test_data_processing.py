import logging

import pandas as pd
import pytest

from manymodels.data_processing import (
    bind_files,
    extract_from_filename,
    list_data_files,
    load_many,
)
from manymodels.errors import RowApplicationError


def _write_species_files(tmp_path):
    for species, year, values in [
        ("adelie", 2007, [1.0, 2.0]),
        ("adelie", 2008, [3.0]),
        ("gentoo", 2007, [4.0, 5.0, 6.0]),
    ]:
        pd.DataFrame({"value": values}).to_csv(
            tmp_path / f"{species}_{year}.csv", index=False
        )


def test_list_data_files_is_sorted(tmp_path):
    _write_species_files(tmp_path)
    (tmp_path / "notes.txt").write_text("skip me")

    files = list_data_files(tmp_path)
    assert [p.name for p in files] == [
        "adelie_2007.csv",
        "adelie_2008.csv",
        "gentoo_2007.csv",
    ]


def test_list_data_files_missing_directory(tmp_path):
    with pytest.raises(FileNotFoundError, match="does not exist"):
        list_data_files(tmp_path / "absent")


def test_list_data_files_warns_when_empty(tmp_path, caplog):
    caplog.set_level(logging.WARNING)
    assert list_data_files(tmp_path) == []
    assert any("No files matching" in rec.message for rec in caplog.records)


def test_load_extract_and_bind(tmp_path):
    _write_species_files(tmp_path)
    table = load_many(list_data_files(tmp_path))

    assert len(table) == 3
    assert [len(sub) for sub in table.sub_tables()] == [2, 1, 3]

    table = extract_from_filename(table, r"^(\w+?)_(\d{4})$", ["species", "year"])
    assert table.column("species") == ["adelie", "adelie", "gentoo"]
    assert table.column("year") == [2007, 2008, 2007]

    bound = bind_files(table, keep=["species", "year"], include_path=False)
    assert list(bound.columns) == ["species", "year", "value"]
    assert bound["value"].tolist() == [1.0, 2.0, 3.0, 4.0, 5.0, 6.0]
    assert bound["species"].tolist() == ["adelie"] * 3 + ["gentoo"] * 3


def test_extract_from_filename_group_count_mismatch(tmp_path):
    _write_species_files(tmp_path)
    table = load_many(list_data_files(tmp_path))
    with pytest.raises(ValueError, match="has 1 groups"):
        extract_from_filename(table, r"^(\w+)_\d+$", ["species", "year"])


def test_extract_from_filename_no_match(tmp_path):
    _write_species_files(tmp_path)
    table = load_many(list_data_files(tmp_path))
    with pytest.raises(ValueError, match="does not match"):
        extract_from_filename(table, r"^(\d+)-(\d+)$", ["a", "b"])


def test_failed_read_names_the_file(tmp_path):
    _write_species_files(tmp_path)
    paths = list_data_files(tmp_path) + [tmp_path / "missing_2009.csv"]

    with pytest.raises(RowApplicationError, match="missing_2009") as excinfo:
        load_many(paths)
    assert excinfo.value.row_index == 3
    assert isinstance(excinfo.value.__cause__, FileNotFoundError)


def test_extract_from_filename_can_keep_text(tmp_path):
    for site in ["007", "012"]:
        pd.DataFrame({"value": [1.0]}).to_csv(tmp_path / f"site_{site}.csv", index=False)
    table = load_many(list_data_files(tmp_path))

    numeric = extract_from_filename(table, r"^site_(\d+)$", ["site"])
    assert numeric.column("site") == [7, 12]

    text = extract_from_filename(table, r"^site_(\d+)$", ["site"], convert=False)
    assert text.column("site") == ["007", "012"]
