"""
Continuous area cartograms using the Dougenik-Chrisman-Niemeyer algorithm.

This module provides the ContinuousCartogram class for distorting a set of
regions so that their areas become proportional to a value attached to each
region (e.g., population), while keeping neighbouring regions attached.

Reference: Dougenik, J. A., Chrisman, N. R. and Niemeyer, D. R. (1985).
An algorithm to construct continuous area cartograms. The Professional
Geographer, 37(1), 75-81.
"""

from __future__ import annotations

import logging
from typing import Any, Sequence

import numpy as np
from numpy.typing import ArrayLike, NDArray
import shapely
from shapely.geometry.base import BaseGeometry
from shapely.ops import unary_union
import matplotlib as mpl
import matplotlib.pyplot as pl
from matplotlib.figure import Figure
from matplotlib.axes import Axes
import progressbar

from censuscartogram.tools import polygon_parts, polygon_patch

logger = logging.getLogger(__name__)


class ContinuousCartogram:
    """
    Create continuous area cartograms from polygon regions.

    In every iteration each region acts on every vertex of the map with a
    force that pushes vertices away from its centroid if the region is too
    small and pulls them in if it is too large. The displacement depends on
    the vertex position only, so vertices shared by two neighbouring
    regions move identically and the map stays topologically intact.

    Parameters
    ----------
    regions : list of shapely.geometry.Polygon or MultiPolygon
        Regions in a planar coordinate system.
    values : array-like of float
        Value for each region (e.g., population).
    prepare : str, optional
        'adjust' raises values below ``threshold * mean(values)`` to that
        floor so that no region collapses; 'none' uses the values as they
        are, which then must be positive (default: 'adjust').
    threshold : float, optional
        Floor used by prepare='adjust' as fraction of the mean (default: 0.05).

    Attributes
    ----------
    regions : list of BaseGeometry
        Input regions.
    values : numpy.ndarray
        Values used for the computation (after preparation).
    new_regions : list of BaseGeometry
        Transformed regions (after calling compute()).
    mean_size_errors : list of float
        Mean size error before each iteration, followed by the error of
        the final result.

    Examples
    --------
    >>> from shapely.geometry import box
    >>> regions = [box(0, 0, 1, 1), box(1, 0, 2, 1)]
    >>> carto = ContinuousCartogram(regions, [1., 3.])
    >>> new_regions = carto.compute(iterations=20)
    >>> carto.area_ratios()  # close to [1, 1]
    """

    def __init__(
        self,
        regions: Sequence[BaseGeometry],
        values: ArrayLike,
        prepare: str = 'adjust',
        threshold: float = 0.05,
    ) -> None:
        self.regions = list(regions)
        values = np.array(values, dtype=float)

        if len(self.regions) == 0:
            raise ValueError("At least one region is required")
        if values.shape != (len(self.regions),):
            raise ValueError(
                f"Expected {len(self.regions)} values, got array of shape {values.shape}"
            )
        if not np.all(np.isfinite(values)) or np.any(values < 0):
            raise ValueError("Values must be finite and non-negative")
        for region in self.regions:
            polygon_parts(region)

        areas = shapely.area(np.array(self.regions, dtype=object))
        if np.any(areas <= 0):
            raise ValueError("All regions need a positive area")

        if prepare == 'adjust':
            floor = threshold * values.mean()
            values = np.maximum(values, floor)
        elif prepare != 'none':
            raise ValueError(f"prepare must be 'adjust' or 'none', got {prepare!r}")

        if np.any(values <= 0):
            raise ValueError("Values must be positive, use prepare='adjust' for zeros")

        self.values = values
        self.new_regions = None
        self.mean_size_errors = []
        self._passes = []

    @staticmethod
    def _region_properties(regions: NDArray[Any]) -> tuple[NDArray, NDArray]:
        areas = shapely.area(regions)
        centroids = shapely.get_coordinates(shapely.centroid(regions))
        return areas, centroids

    def _size_errors(self, areas: NDArray[np.floating]) -> NDArray[np.floating]:
        desired = areas.sum() * self.values / self.values.sum()
        return np.maximum(areas, desired) / np.minimum(areas, desired)

    @staticmethod
    def _displace(
        coords: NDArray[np.floating],
        centroids: NDArray[np.floating],
        radius: NDArray[np.floating],
        mass: NDArray[np.floating],
        force_reduction: float,
    ) -> NDArray[np.floating]:
        """Move every coordinate according to the forces of all regions."""
        delta = coords[:, np.newaxis, :] - centroids[np.newaxis, :, :]
        dist = np.hypot(delta[..., 0], delta[..., 1])

        with np.errstate(divide='ignore', invalid='ignore'):
            ratio = dist / radius
            force = np.where(
                dist > radius,
                mass * radius / dist,
                mass * ratio**2 * (4. - 3. * ratio),
            )
            direction = delta / dist[..., np.newaxis]

        # a vertex sitting on a centroid is not pushed by that region
        at_centroid = dist == 0
        force[at_centroid] = 0.
        direction[at_centroid] = 0.

        shift = np.einsum('nm,nmk->nk', force, direction)
        return coords + force_reduction * shift

    def compute(
        self,
        iterations: int = 15,
        max_size_error: float = 1.0001,
        verbose: bool = False,
    ) -> list[BaseGeometry]:
        """
        Compute the cartogram.

        Parameters
        ----------
        iterations : int, optional
            Maximum number of iterations (default: 15).
        max_size_error : float, optional
            Stop early once the mean ratio between actual and desired
            area drops to this value (default: 1.0001).
        verbose : bool, optional
            Show progress bar (default: False).

        Returns
        -------
        list of shapely geometries
            Transformed regions.
        """
        if iterations < 1:
            raise ValueError("iterations must be at least 1")

        regions = np.array(self.regions, dtype=object)
        self.mean_size_errors = []
        self._passes = []

        if verbose:
            bar = progressbar.ProgressBar(
                max_value = iterations,
                widgets = [
                    progressbar.SimpleProgress(), " ",
                    progressbar.ETA(), " computing continuous cartogram ...",
                ]
            )

        for it in range(iterations):
            areas, centroids = self._region_properties(regions)
            size_error = self._size_errors(areas)
            mean_size_error = float(size_error.mean())
            self.mean_size_errors.append(mean_size_error)

            if mean_size_error <= max_size_error:
                logger.debug("Converged after %d iterations", it)
                break

            desired = areas.sum() * self.values / self.values.sum()
            radius = np.sqrt(areas / np.pi)
            mass = np.sqrt(desired / np.pi) - radius
            force_reduction = 1. / (1. + mean_size_error)

            params = (centroids, radius, mass, force_reduction)
            self._passes.append(params)
            regions = shapely.transform(
                regions,
                lambda coords, p=params: self._displace(coords, *p),
            )

            if verbose:
                bar.update(it + 1)
        else:
            areas, _ = self._region_properties(regions)
            self.mean_size_errors.append(float(self._size_errors(areas).mean()))

        if verbose:
            bar.finish()

        logger.debug(
            "Mean size error went from %.4f to %.4f in %d iterations",
            self.mean_size_errors[0], self.mean_size_errors[-1], len(self._passes),
        )
        warn_invalid_regions(regions)
        self.new_regions = list(regions)
        return self.new_regions

    @property
    def mean_size_error(self) -> float:
        """Mean size error of the computed cartogram."""
        if self.new_regions is None:
            raise RuntimeError("Call compute() first")
        return self.mean_size_errors[-1]

    def transform_coords(self, x: ArrayLike, y: ArrayLike) -> tuple[NDArray, NDArray]:
        """
        Map arbitrary points through the computed cartogram.

        Parameters
        ----------
        x, y : array-like
            Point coordinates in the original coordinate system.

        Returns
        -------
        new_x, new_y : numpy.ndarray
        """
        if self.new_regions is None:
            raise RuntimeError("Call compute() first")
        coords = np.column_stack([np.asarray(x, dtype=float), np.asarray(y, dtype=float)])
        for params in self._passes:
            coords = self._displace(coords, *params)
        return coords[:, 0], coords[:, 1]

    def area_ratios(self) -> NDArray[np.floating]:
        """
        Ratio of each region's share of the total area to its share of the
        total value. Exact proportionality gives 1 for every region.
        """
        if self.new_regions is None:
            raise RuntimeError("Call compute() first")
        areas = shapely.area(np.array(self.new_regions, dtype=object))
        return (areas / areas.sum()) / (self.values / self.values.sum())

    def plot(
        self,
        ax: Axes | None = None,
        show_new_regions: bool = True,
        region_colors: Any = None,
        cmap: str = 'YlOrRd',
        bg_color: Any = 'w',
        edge_colors: Any = 'k',
        outline_whole_shape: bool = False,
        whole_shape_color: Any = (0.05, 0., 0.),
        linewidth: float = 0.5,
    ) -> tuple[Figure, Axes] | Axes:
        """
        Plot the original regions or the cartogram.

        Parameters
        ----------
        ax : matplotlib.axes.Axes, optional
            Axes to plot on. If None, creates new figure.
        show_new_regions : bool, optional
            If True, show transformed regions; if False, the original
            ones (default: True).
        region_colors : color-like or list, optional
            Face colors, one color for all regions or one per region.
            By default regions are colored by value using cmap.
        cmap : str, optional
            Colormap for coloring by value (default: 'YlOrRd').
        bg_color : color-like, optional
            Axes background color (default: 'w').
        edge_colors : color-like, optional
            Region edge color (default: 'k').
        outline_whole_shape : bool, optional
            Draw outline around all regions (default: False).
        whole_shape_color : color-like, optional
            Color for the outline.
        linewidth : float, optional
            Edge line width (default: 0.5).

        Returns
        -------
        fig, ax : matplotlib Figure and Axes
            Only if ax was None; otherwise returns just ax.
        """
        generate_figure = ax is None

        if generate_figure:
            fig, ax = pl.subplots(1,1)

        if show_new_regions:
            if self.new_regions is None:
                raise RuntimeError("Call compute() first")
            regions = self.new_regions
        else:
            regions = self.regions

        if region_colors is None:
            norm = mpl.colors.Normalize(vmin=self.values.min(), vmax=self.values.max())
            colormap = mpl.colormaps[cmap]
            color = lambda i: colormap(norm(self.values[i]))
        elif mpl.colors.is_color_like(region_colors):
            color = lambda i: region_colors
        else:
            color = lambda i: region_colors[i]

        ax.set_facecolor(bg_color)
        ax.set_aspect('equal')

        for i, region in enumerate(regions):
            patch = polygon_patch(region,
                                  facecolor = color(i),
                                  edgecolor = edge_colors,
                                  lw = linewidth,
                                 )
            ax.add_patch(patch)

        if outline_whole_shape:
            patch = polygon_patch(unary_union(regions),
                                  facecolor = 'None',
                                  edgecolor = whole_shape_color,
                                  lw = 2 * linewidth,
                                 )
            ax.add_patch(patch)

        xmin, ymin, xmax, ymax = shapely.total_bounds(np.array(regions, dtype=object))
        ax.set_xlim(xmin, xmax)
        ax.set_ylim(ymin, ymax)

        if generate_figure:
            return fig, ax
        else:
            return ax


def warn_invalid_regions(regions: Sequence[BaseGeometry]) -> int:
    """
    Log a warning if any region folded over into an invalid polygon.

    Returns the number of invalid regions.
    """
    invalid = int((~shapely.is_valid(np.array(regions, dtype=object))).sum())
    if invalid:
        logger.warning(
            "%d of %d regions folded over during the cartogram iterations, "
            "their areas are unreliable; try fewer iterations",
            invalid, len(regions),
        )
    return invalid
