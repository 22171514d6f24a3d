"""
County boundary loading.

Reads a vector boundary file, keys it by the normalized English county
name, reduces it to one (multi)polygon per county and projects it to a
planar CRS in which areas can be compared.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable, Mapping

import geopandas as gpd
import numpy as np

from censuscartogram.census import normalize_region_names
from censuscartogram.errors import BoundaryDataError
from censuscartogram.tools import coarse_grain_geometry, drop_small_parts, fix_invalid_geometry

logger = logging.getLogger(__name__)


def prepare_boundaries(
    geo_df: gpd.GeoDataFrame,
    name_column: str,
    exclude_regions: Iterable[str] = (),
    aliases: Mapping[str, str] | None = None,
    target_crs: str = "EPSG:2157",
    simplify_threshold: float | None = None,
    min_part_area: float | None = None,
) -> gpd.GeoDataFrame:
    """
    Reduce a boundary GeoDataFrame to one planar geometry per county.

    Parameters
    ----------
    geo_df : geopandas.GeoDataFrame
        Boundaries as read from file. Must carry a CRS.
    name_column : str
        Column holding the English county name.
    exclude_regions : iterable of str
        Regions to drop, compared after normalization and before aliases.
    aliases : dict, optional
        Name aliases; rows that end up with the same name are dissolved.
    target_crs : str, optional
        Planar CRS to project to (default: Irish Transverse Mercator).
    simplify_threshold : float, optional
        Visvalingam-Whyatt threshold in squared target-CRS units. No
        simplification if None.
    min_part_area : float, optional
        Polygon parts (islands) smaller than this are dropped, measured in
        squared target-CRS units.

    Returns
    -------
    geopandas.GeoDataFrame
        Columns ``county`` and ``geometry``, sorted by county.

    Raises
    ------
    BoundaryDataError
        If the name column or CRS is missing, geometries are not polygonal
        or no county is left.
    """
    if name_column not in geo_df.columns:
        raise BoundaryDataError(
            f"Boundary data has no column {name_column!r}; "
            f"available: {list(geo_df.columns)}"
        )
    if geo_df.crs is None:
        raise BoundaryDataError("Boundary data has no coordinate reference system")

    gdf = gpd.GeoDataFrame(
        {name_column: geo_df[name_column].to_numpy(), "geometry": geo_df.geometry.to_numpy()},
        geometry="geometry",
        crs=geo_df.crs,
    )
    gdf = gdf[gdf.geometry.notna() & ~gdf.geometry.is_empty]
    not_polygonal = ~gdf.geom_type.isin(["Polygon", "MultiPolygon"])
    if not_polygonal.any():
        raise BoundaryDataError(
            f"Boundary data contains non-polygonal geometries: "
            f"{sorted(set(gdf.geom_type[not_polygonal]))}"
        )

    raw_names = gdf[name_column].astype(str).to_list()
    excluded = set(normalize_region_names(exclude_regions))
    keep = np.array([n not in excluded for n in normalize_region_names(raw_names)], dtype=bool)
    gdf = gdf[keep].copy()
    gdf["county"] = normalize_region_names(gdf[name_column].astype(str), aliases)
    gdf = gdf[["county", "geometry"]]

    if gdf.empty:
        raise BoundaryDataError("No county boundaries left after exclusions")

    # reproject before any area based step
    gdf = gdf.to_crs(target_crs)
    if gdf.crs.is_geographic:
        raise BoundaryDataError(f"Target CRS {target_crs} is not planar")

    gdf["geometry"] = gdf.geometry.apply(fix_invalid_geometry)
    if gdf["county"].duplicated().any():
        logger.info("Dissolving %d boundary rows into counties", len(gdf))
        gdf = gdf.dissolve(by="county", as_index=False)

    if min_part_area:
        gdf["geometry"] = gdf.geometry.apply(lambda g: drop_small_parts(g, min_part_area))
    if simplify_threshold:
        n_before = int(gdf.geometry.count_coordinates().sum())
        gdf["geometry"] = gdf.geometry.apply(lambda g: coarse_grain_geometry(g, simplify_threshold))
        logger.info(
            "Simplified boundaries from %d to %d vertices",
            n_before, int(gdf.geometry.count_coordinates().sum()),
        )

    gdf = gdf.sort_values("county").reset_index(drop=True)
    logger.info("Prepared boundaries for %d counties in %s", len(gdf), target_crs)
    return gdf


def load_boundaries(config) -> gpd.GeoDataFrame:
    """
    Read and prepare the boundary file described by a CartogramConfig.
    """
    boundaries = config.boundaries
    path = Path(config.boundaries_path)
    if not path.exists():
        raise FileNotFoundError(f"Boundary file not found: {path}")
    geo_df = gpd.read_file(path)
    logger.info("Read %d boundary rows from %s", len(geo_df), path)
    return prepare_boundaries(
        geo_df,
        name_column=boundaries["name_column"],
        exclude_regions=boundaries.get("exclude_regions") or (),
        aliases=config.aliases("boundaries"),
        target_crs=boundaries.get("target_crs", "EPSG:2157"),
        simplify_threshold=boundaries.get("simplify_threshold"),
        min_part_area=boundaries.get("min_part_area"),
    )
