"""
censuscartogram - Continuous cartograms of Irish census populations.

This package loads county populations of the Irish censuses 1841 to 2016,
joins them to county boundaries and distorts the map of every census year
with the Dougenik continuous cartogram algorithm, so that county area is
proportional to population. Frames are rendered as static images and as
animated GIFs.
"""

from .config import CartogramConfig
from .errors import (
    CensusCartogramError,
    ConfigurationError,
    CensusDataError,
    BoundaryDataError,
    JoinError,
    FrameNotFoundError,
)
from .census import normalize_region_name, prepare_population, load_population
from .boundaries import prepare_boundaries, load_boundaries
from .join import JoinReport, check_join, join_population
from .continuous_cartogram import ContinuousCartogram
from .geopandas_cartogram import GeoDataFrameContinuousCartogram
from .sequence import CartogramSequence, AnimationFrame
from .rendering import CartogramRenderer, FrameStyle
from .tools import (
    polygon_patch,
    match_vertex_count,
    interpolate_geometry,
    coarse_grain_geometry,
)

__version__ = "0.1.0"

__all__ = [
    # Configuration and errors
    "CartogramConfig",
    "CensusCartogramError",
    "ConfigurationError",
    "CensusDataError",
    "BoundaryDataError",
    "JoinError",
    "FrameNotFoundError",
    # Data loading
    "normalize_region_name",
    "prepare_population",
    "load_population",
    "prepare_boundaries",
    "load_boundaries",
    "JoinReport",
    "check_join",
    "join_population",
    # Cartogram classes
    "ContinuousCartogram",
    "GeoDataFrameContinuousCartogram",
    "CartogramSequence",
    "AnimationFrame",
    # Rendering
    "CartogramRenderer",
    "FrameStyle",
    # Utility functions
    "polygon_patch",
    "match_vertex_count",
    "interpolate_geometry",
    "coarse_grain_geometry",
]
