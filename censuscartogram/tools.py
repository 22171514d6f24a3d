"""
Utility functions for cartogram geometry handling.

This module provides helper functions for:
- Converting shapely geometries to matplotlib patches
- Splitting, simplifying and repairing county polygons
- Matching vertex counts and interpolating between two geometries
"""

from __future__ import annotations

from typing import Any, Generator, Sequence, Union
import numpy as np
from numpy.typing import NDArray
import matplotlib.pyplot as pl
from matplotlib.figure import Figure
from matplotlib.axes import Axes
from matplotlib.path import Path
from matplotlib.patches import PathPatch
import shapely
from shapely.geometry import Polygon, LineString, MultiPolygon, GeometryCollection
from shapely.geometry.base import BaseGeometry
from shapely.validation import make_valid
import visvalingamwyatt as vw


def polygon_patch(
    polygon: Union[Polygon, MultiPolygon],
    **kwargs: Any
) -> PathPatch:
    """
    Create a matplotlib PathPatch from a shapely Polygon or MultiPolygon.

    Parameters
    ----------
    polygon : shapely.geometry.Polygon or shapely.geometry.MultiPolygon
        The polygon geometry to convert to a matplotlib patch.
    **kwargs : dict
        Additional keyword arguments passed to matplotlib.patches.PathPatch
        (e.g., facecolor, edgecolor, alpha, linewidth).

    Returns
    -------
    matplotlib.patches.PathPatch
        A patch that can be added to a matplotlib axes via ax.add_patch().

    Raises
    ------
    TypeError
        If polygon is not a Polygon or MultiPolygon.
    """
    def ring_to_codes(n):
        codes = [Path.LINETO] * n
        codes[0] = Path.MOVETO
        codes[-1] = Path.CLOSEPOLY
        return codes

    vertices = []
    codes = []
    for poly in polygon_parts(polygon):
        for ring in [poly.exterior, *poly.interiors]:
            coords = list(ring.coords)
            vertices.extend(coords)
            codes.extend(ring_to_codes(len(coords)))

    return PathPatch(Path(vertices, codes), **kwargs)


def polygon_parts(geom: BaseGeometry) -> list[Polygon]:
    """
    Return the list of Polygon parts of a polygonal geometry.

    Polygons are returned as a one-element list, MultiPolygons and
    GeometryCollections are flattened, non-polygonal members are skipped.

    Raises
    ------
    TypeError
        If geom is neither polygonal nor a collection.
    """
    if isinstance(geom, Polygon):
        return [geom]
    elif isinstance(geom, (MultiPolygon, GeometryCollection)):
        parts = []
        for g in geom.geoms:
            if isinstance(g, (Polygon, MultiPolygon, GeometryCollection)):
                parts.extend(polygon_parts(g))
        return parts
    raise TypeError(f"Expected Polygon or MultiPolygon, got {type(geom)}")


def _from_parts(parts: list[Polygon]) -> Union[Polygon, MultiPolygon]:
    if len(parts) == 1:
        return parts[0]
    return MultiPolygon(parts)


def pair_iterate(l: Sequence[Any]) -> Generator[tuple[Any, Any], None, None]:
    """
    Iterate over consecutive pairs of elements in a sequence.

    Examples
    --------
    >>> list(pair_iterate([1, 2, 3, 4]))
    [(1, 2), (2, 3), (3, 4)]
    """
    for i in range(1, len(l)):
        yield l[i-1], l[i]


def get_cumulative_relative_exterior_length(geom: Polygon) -> NDArray[np.floating]:
    """
    Cumulative length along the polygon exterior, normalized to [0, 1].
    """
    xy = np.asarray(geom.exterior.coords)
    length = np.zeros(len(xy))
    length[1:] = np.linalg.norm(np.diff(xy, axis=0), axis=1)
    length = np.cumsum(length)
    return length / length[-1]


def match_vertex_count(geom0: Polygon, geom1: Polygon) -> tuple[Polygon, Polygon]:
    """
    Match exterior vertex counts between two polygons.

    Vertices are added to the polygon with fewer points at positions that
    correspond to the same relative perimeter positions as in the longer
    polygon. Holes are not carried over.

    Returns
    -------
    tuple of shapely.geometry.Polygon
        (geom0, geom1) with matched vertex counts.
    """
    n0 = len(geom0.exterior.coords)
    n1 = len(geom1.exterior.coords)

    if n0 == n1:
        return geom0, geom1
    elif n0 > n1:
        short_geom, long_geom = geom1, geom0
    else:
        short_geom, long_geom = geom0, geom1

    short_length = get_cumulative_relative_exterior_length(short_geom)
    long_length = get_cumulative_relative_exterior_length(long_geom)
    matchings = [int(np.argmin(np.abs(s - long_length))) for s in short_length]
    # every short vertex must consume at least one long vertex
    for i in range(1, len(matchings)):
        matchings[i] = max(matchings[i], matchings[i-1] + 1)
    matchings[-1] = len(long_length) - 1
    for i in range(len(matchings) - 2, -1, -1):
        matchings[i] = min(matchings[i], matchings[i+1] - 1)

    coords = []
    for i, (seg_start, seg_end) in enumerate(pair_iterate(short_geom.exterior.coords)):
        dpoints = matchings[i+1] - matchings[i]
        segment = LineString([seg_start, seg_end])
        for val in np.linspace(0, 1, dpoints + 1)[:-1]:
            coords.append(segment.interpolate(val, normalized=True).coords[0])
    coords.append(coords[0])

    new_geom = Polygon(coords)

    if n0 > n1:
        return long_geom, new_geom
    else:
        return new_geom, long_geom


def interpolate_geometry(geom0: BaseGeometry, geom1: BaseGeometry, t: float) -> BaseGeometry:
    """
    Linear interpolation between two polygonal geometries.

    If both geometries have the same coordinate structure (which is the case
    for two cartograms of the same base geometry) every vertex is blended
    directly. Otherwise parts are paired in order and their exteriors are
    brought to equal length with match_vertex_count first.

    Parameters
    ----------
    geom0, geom1 : shapely geometry
        Start (t=0) and end (t=1) geometry.
    t : float
        Interpolation parameter in [0, 1].
    """
    if not 0 <= t <= 1:
        raise ValueError(f"t must be in [0, 1], got {t}")
    if t == 0:
        return geom0
    elif t == 1:
        return geom1

    coords1 = shapely.get_coordinates(geom1)
    same_structure = (
        geom0.geom_type == geom1.geom_type
        and shapely.get_num_coordinates(geom0) == len(coords1)
        and shapely.get_num_geometries(geom0) == shapely.get_num_geometries(geom1)
    )
    if same_structure:
        return shapely.transform(geom0, lambda coords: (1-t) * coords + t * coords1)

    parts0 = polygon_parts(geom0)
    parts1 = polygon_parts(geom1)
    if len(parts0) != len(parts1):
        # no vertex correspondence, switch halfway
        return geom0 if t < 0.5 else geom1

    new_parts = []
    for p0, p1 in zip(parts0, parts1):
        p0, p1 = match_vertex_count(p0, p1)
        xy0 = np.asarray(p0.exterior.coords)
        xy1 = np.asarray(p1.exterior.coords)
        new_parts.append(Polygon((1-t) * xy0 + t * xy1))
    return _from_parts(new_parts)


def fix_invalid_geometry(geom: BaseGeometry) -> Union[Polygon, MultiPolygon]:
    """
    Fix invalid geometry while keeping it polygonal.

    Uses shapely's make_valid and discards any non-polygonal debris
    (lines, points) it produces.
    """
    if geom.is_valid:
        return geom
    parts = [p for p in polygon_parts(make_valid(geom)) if p.area > 0]
    return _from_parts(parts)


def drop_small_parts(geom: BaseGeometry, min_area: float) -> Union[Polygon, MultiPolygon]:
    """
    Remove polygon parts (islands) smaller than min_area.

    The largest part is always kept so that the result is never empty.
    """
    parts = polygon_parts(geom)
    kept = [p for p in parts if p.area >= min_area]
    if not kept:
        kept = [max(parts, key=lambda p: p.area)]
    return _from_parts(kept)


def _simplify_ring(coords: Sequence[tuple[float, float]], th: float) -> list:
    new_coords = vw.Simplifier(list(coords)).simplify(threshold=th)
    # a ring needs at least three distinct points plus closure
    if len(new_coords) < 4:
        return list(coords)
    return [tuple(c) for c in new_coords]


def coarse_grain_geometry(geom: BaseGeometry, th: float) -> Union[Polygon, MultiPolygon]:
    """
    Simplify a (multi)polygon with the Visvalingam-Whyatt algorithm.

    Exterior and interior rings are simplified separately; rings that would
    collapse are kept as they are. The result is repaired if the
    simplification produced an invalid polygon.

    Parameters
    ----------
    geom : shapely.geometry.Polygon or MultiPolygon
        Input geometry.
    th : float
        Simplification threshold (effective area, in squared CRS units).
    """
    new_parts = []
    for poly in polygon_parts(geom):
        exterior = _simplify_ring(poly.exterior.coords, th)
        interiors = [_simplify_ring(ring.coords, th) for ring in poly.interiors]
        new_parts.append(Polygon(exterior, interiors))
    return fix_invalid_geometry(_from_parts(new_parts))


def savefig_marginless(fn: str, fig: Figure, ax: Axes, **kwargs: Any) -> None:
    """
    Save a figure with no margins or whitespace.

    Removes all axes, labels, and padding for clean map exports.
    """
    ax.set_axis_off()
    fig.subplots_adjust(top=1, bottom=0, right=1, left=0, hspace=0, wspace=0)
    ax.margins(0, 0)
    ax.xaxis.set_major_locator(pl.NullLocator())
    ax.yaxis.set_major_locator(pl.NullLocator())
    fig.savefig(fn, bbox_inches='tight', pad_inches=0, **kwargs)
