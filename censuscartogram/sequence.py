"""
Per-year cartogram sequences.

The CartogramSequence runs one continuous cartogram per census year on the
joined population records and assembles the results into one
chronologically ordered GeoDataFrame, from which animation frames
(holds on every year and interpolated transitions between them) are built.
"""

from __future__ import annotations

import logging
from typing import NamedTuple

import geopandas as gpd
import pandas as pd
import progressbar

from censuscartogram.errors import FrameNotFoundError
from censuscartogram.geopandas_cartogram import GeoDataFrameContinuousCartogram, ease
from censuscartogram.tools import interpolate_geometry

logger = logging.getLogger(__name__)


class AnimationFrame(NamedTuple):
    """One image of an animation."""
    year: int
    year_label: str
    gdf: gpd.GeoDataFrame
    kind: str  # 'geography', 'hold' or 'tween'


class CartogramSequence:
    """
    One continuous cartogram per census year.

    Parameters
    ----------
    joined : geopandas.GeoDataFrame
        Joined population records, one row per (county, year), in a planar
        CRS.
    value_column : str, optional
        Column the areas are made proportional to (default: 'population').
    year_column : str, optional
        Integer year column (default: 'year').
    region_column : str, optional
        County key column (default: 'county').
    iterations : int, optional
        Maximum Dougenik iterations per year (default: 15).
    max_size_error : float, optional
        Early-stopping tolerance (default: 1.0001).
    prepare : str, optional
        Value preparation passed to the cartogram (default: 'adjust').
    threshold : float, optional
        Floor for prepare='adjust' (default: 0.05).

    Attributes
    ----------
    frames : geopandas.GeoDataFrame
        All cartograms, concatenated in chronological order (after
        compute()).
    convergence : dict
        Final mean size error per year.

    Examples
    --------
    >>> seq = CartogramSequence(joined)
    >>> frames = seq.compute(verbose=True)
    >>> frames.groupby('year').size()
    """

    def __init__(
        self,
        joined: gpd.GeoDataFrame,
        value_column: str = 'population',
        year_column: str = 'year',
        region_column: str = 'county',
        iterations: int = 15,
        max_size_error: float = 1.0001,
        prepare: str = 'adjust',
        threshold: float = 0.05,
    ) -> None:
        for column in (value_column, year_column, region_column):
            if column not in joined.columns:
                raise ValueError(f"Joined data has no column {column!r}")
        if joined.empty:
            raise ValueError("Joined data is empty")

        self.joined = joined
        self.value_column = value_column
        self.year_column = year_column
        self.region_column = region_column
        self.iterations = int(iterations)
        self.max_size_error = float(max_size_error)
        self.prepare = prepare
        self.threshold = threshold

        self.frames = None
        self.convergence = {}

    @property
    def years(self) -> list[int]:
        """Distinct census years, ascending."""
        return sorted(int(y) for y in self.joined[self.year_column].unique())

    def _year_data(self, year: int) -> gpd.GeoDataFrame:
        year_df = self.joined[self.joined[self.year_column] == year]
        return year_df.sort_values(self.region_column).reset_index(drop=True)

    def compute(self, verbose: bool = False) -> gpd.GeoDataFrame:
        """
        Compute the cartogram of every year.

        Years are processed one after the other in ascending order; each
        starts from the undistorted geometry.

        Parameters
        ----------
        verbose : bool, optional
            Show progress bar (default: False).

        Returns
        -------
        geopandas.GeoDataFrame
            Concatenated frames with a ``mean_size_error`` column, sorted by
            year and county, exactly one frame per distinct year.
        """
        years = self.years
        frames = []
        self.convergence = {}

        if verbose:
            bar = progressbar.ProgressBar(
                max_value = len(years),
                widgets = [
                    progressbar.SimpleProgress(), " ",
                    progressbar.ETA(), " computing cartograms per year ...",
                ]
            )

        for iyear, year in enumerate(years):
            carto = GeoDataFrameContinuousCartogram(
                self._year_data(year),
                self.value_column,
                prepare=self.prepare,
                threshold=self.threshold,
            )
            carto.compute(iterations=self.iterations, max_size_error=self.max_size_error)

            frame = carto.get_cartogram_geo_df()
            frame[self.year_column] = year
            frame['mean_size_error'] = carto.mean_size_error
            frames.append(frame)

            self.convergence[year] = carto.mean_size_error
            logger.info(
                "Cartogram %d: mean size error %.4f -> %.4f",
                year, carto.mean_size_errors[0], carto.mean_size_error,
            )
            if verbose:
                bar.update(iyear + 1)

        if verbose:
            bar.finish()

        self.frames = gpd.GeoDataFrame(
            pd.concat(frames, ignore_index=True),
            geometry=frames[0].geometry.name,
            crs=self.joined.crs,
        )
        return self.frames

    def _require_frames(self) -> gpd.GeoDataFrame:
        if self.frames is None:
            raise RuntimeError("Call compute() first")
        return self.frames

    def frame(self, year: int) -> gpd.GeoDataFrame:
        """Cartogram of a single year, sorted by county."""
        frames = self._require_frames()
        if year not in self.convergence:
            raise FrameNotFoundError(f"No cartogram for year {year}")
        frame = frames[frames[self.year_column] == year]
        return frame.sort_values(self.region_column).reset_index(drop=True)

    def geography(self, year: int | None = None) -> gpd.GeoDataFrame:
        """
        Undistorted geometry carrying the values of year (default: the
        first year).
        """
        if year is None:
            year = self.years[0]
        return self._year_data(year)

    def _blend(self, gdf0: gpd.GeoDataFrame, gdf1: gpd.GeoDataFrame, t: float) -> gpd.GeoDataFrame:
        if list(gdf0[self.region_column]) != list(gdf1[self.region_column]):
            raise ValueError("Frames do not contain the same counties")
        if t == 0:
            return gdf0.copy()
        if t == 1:
            return gdf1.copy()

        gdf = gdf1.copy()
        geometry = [
            interpolate_geometry(g0, g1, t)
            for g0, g1 in zip(gdf0.geometry, gdf1.geometry)
        ]
        gdf[gdf.geometry.name] = gpd.GeoSeries(geometry, index=gdf.index, crs=gdf.crs)
        gdf[self.value_column] = (
            (1 - t) * gdf0[self.value_column].to_numpy(dtype=float)
            + t * gdf1[self.value_column].to_numpy(dtype=float)
        )
        return gdf

    def interpolate(
        self,
        year0: int,
        year1: int,
        t: float,
        ease_name: str | None = 'QuadEaseInOut',
    ) -> gpd.GeoDataFrame:
        """
        Frame between the cartograms of two years.

        Geometry and values are blended; t=0 gives year0, t=1 gives year1.

        Parameters
        ----------
        year0, year1 : int
            Census years.
        t : float
            Interpolation parameter in [0, 1].
        ease_name : str, optional
            Easing applied to t (default: 'QuadEaseInOut').
        """
        return self._blend(self.frame(year0), self.frame(year1), ease(t, ease_name))

    def timeline(
        self,
        tween_frames: int = 10,
        hold_frames: int = 5,
        ease_name: str | None = 'QuadEaseInOut',
        include_geography: bool = False,
    ) -> list[AnimationFrame]:
        """
        Build the frames of an animation through all years.

        Every year is shown for ``max(1, hold_frames)`` frames, followed by
        ``tween_frames`` interpolated frames towards the next year.
        Interpolated frames are labelled with the year they are closest to.

        Parameters
        ----------
        tween_frames : int, optional
            Frames between two consecutive years (default: 10).
        hold_frames : int, optional
            Frames each year is shown for (default: 5).
        ease_name : str, optional
            Easing of the transitions (default: 'QuadEaseInOut').
        include_geography : bool, optional
            Start with the undistorted map morphing into the first
            cartogram (default: False).

        Returns
        -------
        list of AnimationFrame
        """
        years = self.years
        labels = self._year_labels()
        hold = max(1, int(hold_frames))
        steps = [(k + 1) / (tween_frames + 1) for k in range(int(tween_frames))]
        timeline = []

        def tween(gdf0, gdf1, year0, year1):
            for s in steps:
                t = ease(s, ease_name)
                year = year0 if s < 0.5 else year1
                timeline.append(AnimationFrame(year, labels[year], self._blend(gdf0, gdf1, t), 'tween'))

        if include_geography:
            geography = self.geography(years[0])
            for _ in range(hold):
                timeline.append(AnimationFrame(years[0], labels[years[0]], geography, 'geography'))
            tween(geography, self.frame(years[0]), years[0], years[0])

        for iyear, year in enumerate(years):
            frame = self.frame(year)
            for _ in range(hold):
                timeline.append(AnimationFrame(year, labels[year], frame, 'hold'))
            if iyear + 1 < len(years):
                tween(frame, self.frame(years[iyear + 1]), year, years[iyear + 1])

        logger.debug("Animation timeline has %d frames", len(timeline))
        return timeline

    def _year_labels(self) -> dict[int, str]:
        if 'year_label' in self.joined.columns:
            pairs = self.joined[[self.year_column, 'year_label']].drop_duplicates()
            return {int(y): str(l) for y, l in pairs.itertuples(index=False)}
        return {y: str(y) for y in self.years}
