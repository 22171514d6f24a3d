"""
GeoPandas integration for cartogram generation.

This module provides the GeoDataFrameContinuousCartogram class for
creating continuous cartograms directly from GeoPandas GeoDataFrames, with
support for eased morphing between the true geography and the cartogram.
"""

from __future__ import annotations

import geopandas as gpd
from easing_functions import QuadEaseInOut, CubicEaseInOut

from censuscartogram.continuous_cartogram import ContinuousCartogram
from censuscartogram.tools import interpolate_geometry

EASING_FUNCTIONS = {
    'QuadEaseInOut': QuadEaseInOut,
    'CubicEaseInOut': CubicEaseInOut,
}


def ease(t: float, name: str | None = 'QuadEaseInOut') -> float:
    """
    Apply a named easing function to t in [0, 1].

    None or 'linear' returns t unchanged.
    """
    if not 0 <= t <= 1:
        raise ValueError(f"t must be in [0, 1], got {t}")
    if name is None or name == 'linear':
        return t
    try:
        easing = EASING_FUNCTIONS[name]
    except KeyError:
        raise ValueError(
            f"Unknown easing {name!r}, choose from {sorted(EASING_FUNCTIONS)} or 'linear'"
        ) from None
    # clip float noise at the ends
    return min(max(float(easing()(t)), 0.), 1.)


class GeoDataFrameContinuousCartogram(ContinuousCartogram):
    """
    Create continuous cartograms from GeoPandas GeoDataFrames.

    Extends ContinuousCartogram to work directly with GeoDataFrames. Each
    row is one region (Polygon or MultiPolygon); all other columns are
    carried through the transformation.

    Parameters
    ----------
    geo_df : geopandas.GeoDataFrame
        Regions in a planar CRS.
    value_column : str
        Column with the value the areas should become proportional to.
    prepare : str, optional
        Value preparation, see ContinuousCartogram (default: 'adjust').
    threshold : float, optional
        Floor for prepare='adjust' (default: 0.05).

    Attributes
    ----------
    gdf : geopandas.GeoDataFrame
        Copy of input GeoDataFrame.

    Examples
    --------
    >>> gdf = gpd.read_file("counties.geojson").to_crs("EPSG:2157")
    >>> carto = GeoDataFrameContinuousCartogram(gdf, 'population')
    >>> carto.compute(iterations=15)
    >>> new_gdf = carto.get_cartogram_geo_df()
    """

    def __init__(
        self,
        geo_df: gpd.GeoDataFrame,
        value_column: str,
        prepare: str = 'adjust',
        threshold: float = 0.05,
    ) -> None:
        if geo_df.crs is not None and geo_df.crs.is_geographic:
            raise ValueError(
                "Cartograms need a planar CRS, reproject the GeoDataFrame first"
            )
        self.gdf = geo_df.copy()
        self.value_column = value_column

        ContinuousCartogram.__init__(self,
                                     geo_df.geometry.to_list(),
                                     geo_df[value_column].to_numpy(dtype=float),
                                     prepare,
                                     threshold,
                                    )

    def get_original_geo_df(self) -> gpd.GeoDataFrame:
        """Copy of the input GeoDataFrame."""
        return self.gdf.copy()

    def get_cartogram_geo_df(self) -> gpd.GeoDataFrame:
        """
        Get the computed cartogram as a GeoDataFrame.

        Returns
        -------
        geopandas.GeoDataFrame
            Copy of the input with transformed geometry.
        """
        if self.new_regions is None:
            raise RuntimeError("Call compute() first")
        return self._get_geo_df(self.new_regions)

    def get_interpolated_geo_df(self, t: float, ease_name: str | None = 'QuadEaseInOut') -> gpd.GeoDataFrame:
        """
        Get a GeoDataFrame between the original geography and the cartogram.

        Parameters
        ----------
        t : float
            Interpolation parameter in [0, 1]. t=0 gives original,
            t=1 gives cartogram.
        ease_name : str, optional
            Easing function: 'QuadEaseInOut', 'CubicEaseInOut' or
            'linear' (default: 'QuadEaseInOut').
        """
        if self.new_regions is None:
            raise RuntimeError("Call compute() first")
        t = ease(t, ease_name)

        if t == 0:
            return self.get_original_geo_df()
        elif t == 1:
            return self.get_cartogram_geo_df()

        regions = [
            interpolate_geometry(old, new, t)
            for old, new in zip(self.regions, self.new_regions)
        ]
        return self._get_geo_df(regions)

    def _get_geo_df(self, regions: list) -> gpd.GeoDataFrame:
        gdf = self.gdf.copy()
        gdf[gdf.geometry.name] = gpd.GeoSeries(list(regions), index=gdf.index, crs=gdf.crs)
        return gdf
