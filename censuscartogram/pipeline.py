"""
End-to-end census cartogram run.

Load census -> load boundaries -> join -> one cartogram per year ->
static images -> animations, strictly in this order. Any failure aborts the
run.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path

import geopandas as gpd

from censuscartogram.boundaries import load_boundaries
from censuscartogram.census import load_population
from censuscartogram.config import CartogramConfig
from censuscartogram.join import JoinReport, check_join, join_population
from censuscartogram.rendering import CartogramRenderer, FrameStyle
from censuscartogram.sequence import CartogramSequence

logger = logging.getLogger(__name__)


@dataclass
class PipelineResult:
    """
    Products of a run.

    Attributes
    ----------
    joined : geopandas.GeoDataFrame
        Population records joined to the undistorted geometry.
    frames : geopandas.GeoDataFrame
        Cartograms of all years in chronological order.
    convergence : dict
        Final mean size error per year.
    static_paths : list of pathlib.Path
        Written per-year images.
    animation_paths : list of pathlib.Path
        Written GIFs.
    """
    joined: gpd.GeoDataFrame
    frames: gpd.GeoDataFrame
    convergence: dict[int, float] = field(default_factory=dict)
    static_paths: list[Path] = field(default_factory=list)
    animation_paths: list[Path] = field(default_factory=list)


def validate(config: CartogramConfig) -> JoinReport:
    """
    Load both inputs and compare their county keys without computing
    anything.
    """
    population = load_population(config)
    boundaries = load_boundaries(config)
    report = check_join(boundaries, population)
    if report.ok:
        logger.info("Inputs match: %s", report.describe())
    else:
        logger.warning("Inputs do not match:\n%s", report.describe())
    return report


def run(
    config: CartogramConfig,
    verbose: bool = False,
    render: bool = True,
    animations: bool = True,
) -> PipelineResult:
    """
    Run the complete workflow described by config.

    Parameters
    ----------
    config : CartogramConfig
        Run settings.
    verbose : bool, optional
        Show progress bars (default: False).
    render : bool, optional
        Write images; if False only the frames are computed (default: True).
    animations : bool, optional
        Write the configured GIFs (default: True).

    Returns
    -------
    PipelineResult
    """
    population = load_population(config)
    boundaries = load_boundaries(config)
    joined = join_population(boundaries, population)

    cartogram = config.cartogram
    sequence = CartogramSequence(
        joined,
        iterations=int(cartogram.get("iterations", 15)),
        max_size_error=float(cartogram.get("max_size_error", 1.0001)),
        prepare=cartogram.get("prepare", "adjust"),
        threshold=float(cartogram.get("threshold", 0.05)),
    )
    frames = sequence.compute(verbose=verbose)
    result = PipelineResult(joined=joined, frames=frames, convergence=dict(sequence.convergence))

    if not render:
        return result

    output = config.output
    output_dir = config.output_dir
    output_dir.mkdir(parents=True, exist_ok=True)

    include_geography = bool(output.get("include_geography", False))
    renderer = CartogramRenderer(
        frames,
        style=FrameStyle.from_dict(output.get("style")),
        extra_extent=[sequence.geography()] if include_geography else [],
        year_column=sequence.year_column,
    )

    static_years = config.static_years
    if static_years is None:
        static_years = sequence.years
    template = output.get("static_filename", "cartogram_{year}.png")
    for year in static_years:
        path = output_dir / template.format(year=year)
        result.static_paths.append(renderer.save_static(year, path))

    if animations and config.animations:
        timeline = sequence.timeline(
            tween_frames=int(output.get("tween_frames", 10)),
            hold_frames=int(output.get("hold_frames", 5)),
            ease_name=output.get("ease", "QuadEaseInOut"),
            include_geography=include_geography,
        )
        outputs = [
            (output_dir / animation["filename"], float(animation["fps"]))
            for animation in config.animations
        ]
        result.animation_paths.extend(renderer.render_animations(outputs, timeline, verbose=verbose))

    logger.info(
        "Wrote %d images and %d animations to %s",
        len(result.static_paths), len(result.animation_paths), output_dir,
    )
    return result
