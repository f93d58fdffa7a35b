import pandas as pd
import pytest

from manymodels.errors import InvalidColumnError, TypeMismatchError
from manymodels.grouped_table import GroupedTable, object_series
from manymodels.grouping import nest, unnest


def test_nest_species_year_gives_one_row_per_group(species_years):
    table = nest(species_years, ["species", "year"])

    assert len(table) == 4
    assert table.key_columns == ("species", "year")
    assert table.keys() == [
        (("species", "A"), ("year", 2007)),
        (("species", "A"), ("year", 2008)),
        (("species", "B"), ("year", 2007)),
        (("species", "B"), ("year", 2008)),
    ]
    for sub in table.sub_tables():
        assert list(sub.columns) == ["value"]
        assert len(sub) == 1
        assert list(sub.index) == [0]


def test_nest_keeps_key_dtypes(species_years):
    frame = nest(species_years, ["species", "year"]).frame
    assert frame["year"].dtype == species_years["year"].dtype
    assert frame["species"].dtype == species_years["species"].dtype


def test_unnest_restores_row_multiset(penguins):
    table = nest(penguins, ["species", "year"])
    flat = unnest(table)

    assert list(flat.columns) == ["species", "year", "length", "mass"]
    expected = penguins.sort_values(list(penguins.columns)).reset_index(drop=True)
    actual = flat.sort_values(list(penguins.columns)).reset_index(drop=True)
    pd.testing.assert_frame_equal(actual, expected)


def test_nest_orders_groups_by_first_appearance_unless_sorted():
    df = pd.DataFrame({"g": ["b", "a", "b", "c"], "v": [1, 2, 3, 4]})

    assert nest(df, "g").column("g") == ["b", "a", "c"]
    assert nest(df, "g", sort=True).column("g") == ["a", "b", "c"]


def test_nest_preserves_row_order_within_groups():
    df = pd.DataFrame({"g": ["x", "y", "x", "x"], "v": [3, 1, 2, 5]})
    table = nest(df, "g")
    assert table.sub_table(0)["v"].tolist() == [3, 2, 5]


def test_nest_missing_keys_form_their_own_group():
    df = pd.DataFrame({"g": ["a", None, "a", None], "v": [1, 2, 3, 4]})
    table = nest(df, "g")

    assert len(table) == 2
    assert sum(len(sub) for sub in table.sub_tables()) == 4


def test_nest_empty_table_has_zero_rows():
    df = pd.DataFrame(
        {"g": pd.Series([], dtype=object), "v": pd.Series([], dtype=float)}
    )
    table = nest(df, "g")

    assert len(table) == 0
    assert table.columns == ["g", "data"]
    assert len(unnest(table)) == 0


def test_nest_unknown_column_raises_before_grouping(species_years):
    with pytest.raises(InvalidColumnError, match="island") as excinfo:
        nest(species_years, ["species", "island"])
    assert excinfo.value.columns == ("island",)
    assert isinstance(excinfo.value, KeyError)


def test_nest_requires_a_grouping_column(species_years):
    with pytest.raises(InvalidColumnError):
        nest(species_years, [])


def test_grouped_table_rejects_duplicate_keys():
    df = pd.DataFrame({"g": ["a", "a"], "data": [None, None]})
    with pytest.raises(ValueError, match="Group keys must be unique"):
        GroupedTable(df, ["g"])


def test_grouped_table_frame_is_a_copy(species_years):
    table = nest(species_years, "species")
    frame = table.frame
    frame["species"] = ["Z", "Z"]
    assert table.column("species") == ["A", "B"]


def test_unnest_rejects_non_table_cells():
    df = pd.DataFrame({"g": ["a", "b"]})
    df["data"] = object_series([pd.DataFrame({"v": [1]}), 5], df.index)
    table = GroupedTable(df, ["g"])

    with pytest.raises(TypeMismatchError, match="g='b'"):
        unnest(table)


def test_unnest_rejects_column_clash():
    df = pd.DataFrame({"g": ["a"]})
    df["data"] = object_series([pd.DataFrame({"g": [1]})], df.index)
    with pytest.raises(ValueError, match="exist in both"):
        unnest(GroupedTable(df, ["g"]))
