import pandas as pd
import pytest

from manymodels.apply import map_values
from manymodels.assemble import assign_column, drop_columns, project
from manymodels.errors import AssemblyError, InvalidColumnError
from manymodels.grouping import nest


def test_assign_column_appends_and_leaves_input_untouched(species_years):
    table = nest(species_years, ["species", "year"])
    out = assign_column(table, "n", [1, 1, 1, 1])

    assert out.columns == ["species", "year", "data", "n"]
    assert table.columns == ["species", "year", "data"]


def test_reassembly_is_idempotent(species_years):
    table = nest(species_years, ["species", "year"])
    sizes = map_values(table, "data", len)

    once = assign_column(table, "n", sizes)
    twice = assign_column(once, "n", sizes)
    pd.testing.assert_frame_equal(once.frame, twice.frame)


def test_assign_column_overwrites_in_place(species_years):
    table = nest(species_years, "species")
    table = assign_column(table, "label", ["x", "y"])
    table = assign_column(table, "extra", [0, 0])
    table = assign_column(table, "label", ["p", "q"])

    assert table.columns == ["species", "data", "label", "extra"]
    assert table.column("label") == ["p", "q"]


def test_assign_column_keeps_list_values_whole(species_years):
    table = nest(species_years, "species")
    table = assign_column(table, "pair", [[1, 2], [3, 4]])
    assert table.column("pair") == [[1, 2], [3, 4]]


def test_assign_column_length_mismatch(species_years):
    table = nest(species_years, "species")
    with pytest.raises(AssemblyError, match="3 values"):
        assign_column(table, "n", [1, 2, 3])


def test_assign_column_refuses_key_column(species_years):
    table = nest(species_years, "species")
    with pytest.raises(InvalidColumnError, match="key column"):
        assign_column(table, "species", ["a", "b"])


def test_drop_columns(species_years):
    table = assign_column(nest(species_years, "species"), "n", [2, 2])

    dropped = drop_columns(table, "data")
    assert dropped.columns == ["species", "n"]
    assert dropped.nested_column is None

    with pytest.raises(InvalidColumnError, match="Cannot drop key"):
        drop_columns(table, "species")


def test_project_returns_requested_columns_in_order(species_years):
    table = assign_column(nest(species_years, "species"), "filename", ["a", "b"])
    pairs = project(table, ["filename", "data"])

    assert isinstance(pairs, pd.DataFrame)
    assert list(pairs.columns) == ["filename", "data"]
    assert pairs["filename"].tolist() == ["a", "b"]
