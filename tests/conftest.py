"""
Shared fixtures: a 2x2 grid of square counties in Irish Transverse
Mercator and a small census table in the layout of the CSO table.
"""

import matplotlib
matplotlib.use("Agg")

import geopandas as gpd
import pandas as pd
import pytest
import yaml
from shapely.geometry import box

CELL = 10000.
ORIGIN = (500000., 600000.)

COUNTIES = ["Carlow", "Dublin", "Kerry", "Laois"]

POPULATION = {
    "1841": {"Carlow": 86000, "Dublin": 372000, "Kerry": 293000, "Laois": 153000},
    "1851": {"Carlow": 68000, "Dublin": 405000, "Kerry": 238000, "Laois": 111000},
    "1861": {"Carlow": 57000, "Dublin": 410000, "Kerry": 201000, "Laois": 90000},
}

# spelling found in the earliest census
CENSUS_NAMES = {"1841": {"Laois": "Co. Leix"}}


def grid_geo_df(names=COUNTIES, name_column="ENGLISH", crs="EPSG:2157"):
    x0, y0 = ORIGIN
    cells = [(0, 0), (1, 0), (0, 1), (1, 1)]
    geometry = [
        box(x0 + i * CELL, y0 + j * CELL, x0 + (i + 1) * CELL, y0 + (j + 1) * CELL)
        for i, j in cells[:len(names)]
    ]
    return gpd.GeoDataFrame({name_column: list(names)}, geometry=geometry, crs=crs)


def census_rows(population=POPULATION):
    rows = []
    for year, values in population.items():
        for county, value in values.items():
            name = CENSUS_NAMES.get(year, {}).get(county, county)
            rows.append(("Population at Each Census", "Both sexes", name, int(year), value))
            rows.append(("Population at Each Census", "Male", name, int(year), value // 2))
            rows.append(("Annual Births", "Both sexes", name, int(year), value // 30))
        rows.append(("Population at Each Census", "Both sexes", "State", int(year), sum(values.values())))
    return pd.DataFrame(
        rows,
        columns=["Statistic Label", "Sex", "County", "Census Year", "VALUE"],
    )


@pytest.fixture
def counties_gdf():
    """Four square counties of 10 km side."""
    return grid_geo_df()


@pytest.fixture
def census_table():
    """Census table with aggregate, per-sex and unrelated statistic rows."""
    return census_rows()


@pytest.fixture
def census_columns():
    return {
        "statistic": "Statistic Label",
        "sex": "Sex",
        "region": "County",
        "year": "Census Year",
        "value": "VALUE",
    }


@pytest.fixture
def joined(counties_gdf, census_table, census_columns):
    """Joined population records of the grid counties."""
    from censuscartogram.boundaries import prepare_boundaries
    from censuscartogram.census import prepare_population
    from censuscartogram.join import join_population

    boundaries = prepare_boundaries(counties_gdf, "ENGLISH")
    population = prepare_population(
        census_table,
        census_columns,
        years=list(POPULATION),
        statistic="Population at Each Census",
        sex="Both sexes",
        exclude_regions=["State"],
        aliases={"Leix": "Laois"},
        unit_scale=1000,
    )
    return join_population(boundaries, population)


@pytest.fixture
def run_config_path(tmp_path, counties_gdf, census_table):
    """A user config file next to a census CSV and a GeoPackage."""
    census_table.to_csv(tmp_path / "census.csv", index=False)
    counties_gdf.to_file(tmp_path / "counties.gpkg", driver="GPKG")

    config = {
        "census": {"path": "census.csv", "years": list(POPULATION)},
        "boundaries": {
            "path": "counties.gpkg",
            "simplify_threshold": None,
            "min_part_area": None,
        },
        "output": {
            "directory": "out",
            "tween_frames": 2,
            "hold_frames": 1,
            "style": {"figsize": [3.0, 3.0], "dpi": 40},
        },
    }
    path = tmp_path / "run.yaml"
    with open(path, "w", encoding="utf-8") as f:
        yaml.safe_dump(config, f)
    return path
