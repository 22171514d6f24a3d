import pandas as pd
import pytest

from censuscartogram.census import (
    normalize_region_name,
    normalize_region_names,
    year_from_label,
    read_census_table,
    prepare_population,
)
from censuscartogram.errors import CensusDataError

from conftest import POPULATION


def prepare(table, columns, **kwargs):
    options = dict(
        years=list(POPULATION),
        statistic="Population at Each Census",
        sex="Both sexes",
        exclude_regions=["State"],
        aliases={"Leix": "Laois"},
        unit_scale=1000,
    )
    options.update(kwargs)
    return prepare_population(table, columns, **options)


class TestNames:

    @pytest.mark.parametrize("raw, expected", [
        ("Carlow", "Carlow"),
        ("  co.   carlow ", "Carlow"),
        ("County Kerry", "Kerry"),
        ("CO. DÚN LAOGHAIRE-RATHDOWN", "Dun Laoghaire-Rathdown"),
        ("Queen's", "Queen's"),
        ("Cork County", "Cork County"),
    ])
    def test_normalize(self, raw, expected):
        assert normalize_region_name(raw) == expected

    def test_aliases_are_normalized_too(self):
        assert normalize_region_name("Co. Leix", {"leix": "laois"}) == "Laois"
        assert normalize_region_name("King's", {"King's": "Offaly"}) == "Offaly"

    def test_vectorized(self):
        assert normalize_region_names(["co. leix", "Kerry"], {"Leix": "Laois"}) == ["Laois", "Kerry"]


class TestYearLabels:

    @pytest.mark.parametrize("label, year", [
        ("1841", 1841),
        (1926, 1926),
        ("1979 (April)", 1979),
    ])
    def test_year_from_label(self, label, year):
        assert year_from_label(label) == year

    def test_label_without_year(self):
        with pytest.raises(CensusDataError):
            year_from_label("latest")


class TestPreparePopulation:

    def test_one_row_per_county_and_year(self, census_table, census_columns):
        df = prepare(census_table, census_columns)
        assert len(df) == 4 * 3
        assert not df.duplicated(["county", "year"]).any()
        assert sorted(df["county"].unique()) == ["Carlow", "Dublin", "Kerry", "Laois"]
        assert list(df.columns) == ["county", "year", "year_label", "population_count", "population"]

    def test_unit_scaling(self, census_table, census_columns):
        df = prepare(census_table, census_columns, unit_scale=1000)
        assert (df["population"] == df["population_count"] / 1000).all()
        dublin_1841 = df[(df["county"] == "Dublin") & (df["year"] == 1841)]
        assert dublin_1841["population"].iloc[0] == pytest.approx(372.0)

    def test_sorted_by_year_then_county(self, census_table, census_columns):
        df = prepare(census_table, census_columns)
        assert df[["year", "county"]].values.tolist() == sorted(df[["year", "county"]].values.tolist())

    def test_filters_statistic_and_sex(self, census_table, census_columns):
        df = prepare(census_table, census_columns)
        carlow = df[(df["county"] == "Carlow") & (df["year"] == 1861)]
        assert carlow["population_count"].iloc[0] == 57000

    def test_only_configured_years(self, census_table, census_columns):
        df = prepare(census_table, census_columns, years=["1851"])
        assert df["year"].unique().tolist() == [1851]

    def test_aggregate_excluded(self, census_table, census_columns):
        df = prepare(census_table, census_columns)
        assert "State" not in set(df["county"])

    def test_without_aliases_spellings_stay_apart(self, census_table, census_columns):
        df = prepare(census_table, census_columns, aliases=None)
        assert "Leix" in set(df["county"])
        assert len(df[df["county"] == "Laois"]) == 2

    def test_unknown_year_label(self, census_table, census_columns):
        with pytest.raises(CensusDataError, match="1871"):
            prepare(census_table, census_columns, years=["1841", "1871"])

    def test_missing_column(self, census_table, census_columns):
        with pytest.raises(CensusDataError):
            prepare(census_table.drop(columns=["VALUE"]), census_columns)

    def test_nothing_selected(self, census_table, census_columns):
        with pytest.raises(CensusDataError):
            prepare(census_table, census_columns, sex="Female")

    def test_duplicate_rows(self, census_table, census_columns):
        table = pd.concat([census_table, census_table.iloc[[0]]], ignore_index=True)
        with pytest.raises(CensusDataError, match="More than one row"):
            prepare(table, census_columns)

    def test_non_numeric_value(self, census_table, census_columns):
        table = census_table.astype({"VALUE": object})
        table.loc[0, "VALUE"] = ".."
        with pytest.raises(CensusDataError):
            prepare(table, census_columns)

    def test_negative_value(self, census_table, census_columns):
        table = census_table.copy()
        table.loc[0, "VALUE"] = -1
        with pytest.raises(CensusDataError):
            prepare(table, census_columns)

    def test_bad_unit_scale(self, census_table, census_columns):
        with pytest.raises(CensusDataError):
            prepare(census_table, census_columns, unit_scale=0)


class TestReadTable:

    def test_csv(self, tmp_path, census_table):
        path = tmp_path / "census.csv"
        census_table.to_csv(path, index=False)
        table = read_census_table(path)
        assert list(table.columns) == list(census_table.columns)
        assert len(table) == len(census_table)

    def test_missing(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            read_census_table(tmp_path / "missing.csv")
