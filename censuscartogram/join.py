"""
Joining population records to county geometries.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

import geopandas as gpd
import pandas as pd

from censuscartogram.errors import JoinError

logger = logging.getLogger(__name__)


@dataclass
class JoinReport:
    """
    Outcome of matching census counties against boundary counties.

    Attributes
    ----------
    counties : list of str
        Counties present in both sources.
    years : list of int
        Census years in the population records.
    missing_pairs : list of tuple
        (county, year) combinations with a geometry but no population.
    unmatched_counties : list of str
        Census counties without a geometry.
    """
    counties: list[str] = field(default_factory=list)
    years: list[int] = field(default_factory=list)
    missing_pairs: list[tuple[str, int]] = field(default_factory=list)
    unmatched_counties: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.missing_pairs and not self.unmatched_counties

    def describe(self) -> str:
        lines = [f"{len(self.counties)} counties matched across {len(self.years)} census years"]
        if self.missing_pairs:
            lines.append(f"{len(self.missing_pairs)} (county, year) pair(s) without population: "
                         + ", ".join(f"{c} {y}" for c, y in self.missing_pairs[:10]))
        if self.unmatched_counties:
            lines.append("census counties without boundary: "
                         + ", ".join(self.unmatched_counties))
        return "\n".join(lines)


def check_join(boundaries: gpd.GeoDataFrame, population: pd.DataFrame) -> JoinReport:
    """
    Compare the county keys of both sources without joining them.
    """
    geo_counties = set(boundaries["county"])
    pop_counties = set(population["county"])
    years = sorted(population["year"].unique().tolist())

    present = set(zip(population["county"], population["year"]))
    missing_pairs = [
        (county, year)
        for county in sorted(geo_counties)
        for year in years
        if (county, year) not in present
    ]

    return JoinReport(
        counties=sorted(geo_counties & pop_counties),
        years=[int(y) for y in years],
        missing_pairs=missing_pairs,
        unmatched_counties=sorted(pop_counties - geo_counties),
    )


def join_population(boundaries: gpd.GeoDataFrame, population: pd.DataFrame) -> gpd.GeoDataFrame:
    """
    Join population records to county geometries on the county name.

    Every boundary county must have a population value for every census
    year, and every census county must have a boundary. Nothing is dropped
    silently.

    Parameters
    ----------
    boundaries : geopandas.GeoDataFrame
        One row per county with columns ``county`` and ``geometry``.
    population : pandas.DataFrame
        Population records as returned by prepare_population.

    Returns
    -------
    geopandas.GeoDataFrame
        One row per (county, year), sorted by year and county, in the
        boundaries' CRS.

    Raises
    ------
    JoinError
        If the keys of both sources do not match exactly.
    """
    if boundaries["county"].duplicated().any():
        raise JoinError("Boundary data has more than one row per county")

    report = check_join(boundaries, population)
    if not report.ok:
        logger.error("County join failed:\n%s", report.describe())
        raise JoinError(
            report.describe(),
            missing_pairs=report.missing_pairs,
            unmatched_counties=report.unmatched_counties,
        )

    joined = boundaries[["county", "geometry"]].merge(population, on="county", how="inner")
    joined = gpd.GeoDataFrame(joined, geometry="geometry", crs=boundaries.crs)
    joined = joined.sort_values(["year", "county"]).reset_index(drop=True)
    logger.info("Joined %d records (%s)", len(joined), report.describe())
    return joined
