"""
Static and animated rendering of cartogram frames.

All frames of a run share one colour normalisation and one map extent, so
that images of different years can be compared and the animation does not
jump between frames.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Mapping, Sequence

import numpy as np
import geopandas as gpd
import matplotlib as mpl
import matplotlib.pyplot as pl
from matplotlib.figure import Figure
from matplotlib.axes import Axes
import imageio.v2 as imageio
import progressbar

from censuscartogram.errors import FrameNotFoundError
from censuscartogram.tools import polygon_patch, savefig_marginless

logger = logging.getLogger(__name__)


@dataclass
class FrameStyle:
    """Look of a rendered frame."""
    cmap: str = 'YlOrRd'
    figsize: tuple[float, float] = (6.0, 7.5)
    dpi: int = 100
    edgecolor: Any = '#444444'
    linewidth: float = 0.4
    bg_color: Any = 'white'
    title: str = '{year_label}'
    legend_label: str = ''
    margin_ratio: float = 0.05

    @classmethod
    def from_dict(cls, style: Mapping[str, Any] | None) -> "FrameStyle":
        """Build a style from a mapping, ignoring unknown keys."""
        style = dict(style or {})
        known = {f.name for f in fields(cls)}
        unknown = set(style) - known
        if unknown:
            logger.warning("Ignoring unknown style keys %s", sorted(unknown))
        kwargs = {k: v for k, v in style.items() if k in known}
        if 'figsize' in kwargs:
            kwargs['figsize'] = tuple(float(x) for x in kwargs['figsize'])
        return cls(**kwargs)

    def format_title(self, year: int, year_label: str | None = None) -> str:
        return self.title.format(year=year, year_label=year_label if year_label is not None else year)


class CartogramRenderer:
    """
    Draw cartogram frames with a shared colour scale and extent.

    Parameters
    ----------
    frames : geopandas.GeoDataFrame
        Cartogram frames of all years, with year and value columns.
    value_column : str, optional
        Column mapped to colour (default: 'population').
    style : FrameStyle, optional
        Frame look (default: FrameStyle()).
    extra_extent : sequence of GeoDataFrame, optional
        Further frames (e.g., the undistorted geography) the fixed map
        extent has to contain.
    year_column : str, optional
        Integer year column of frames (default: 'year').
    label_column : str, optional
        Year label column used in titles, if present (default: 'year_label').

    Examples
    --------
    >>> renderer = CartogramRenderer(seq.frames, style=FrameStyle(cmap='viridis'))
    >>> renderer.save_static(1841, 'cartogram_1841.png')
    >>> renderer.render_animations([('census.gif', 10), ('census_slow.gif', 4)], seq.timeline())
    """

    def __init__(
        self,
        frames: gpd.GeoDataFrame,
        value_column: str = 'population',
        style: FrameStyle | None = None,
        extra_extent: Sequence[gpd.GeoDataFrame] = (),
        year_column: str = 'year',
        label_column: str = 'year_label',
    ) -> None:
        if frames.empty:
            raise ValueError("No frames to render")
        if year_column not in frames.columns:
            raise ValueError(f"Frames have no column {year_column!r}")
        self.year_column = year_column
        self.label_column = label_column
        self.frames = frames
        self.value_column = value_column
        self.style = style if style is not None else FrameStyle()

        values = frames[value_column].to_numpy(dtype=float)
        vmin, vmax = float(values.min()), float(values.max())
        if vmin == vmax:
            vmax = vmin + 1.
        self.norm = mpl.colors.Normalize(vmin=vmin, vmax=vmax)
        self.colormap = mpl.colormaps[self.style.cmap]

        bounds = np.array([frames.total_bounds] + [gdf.total_bounds for gdf in extra_extent])
        xmin, ymin = bounds[:, 0].min(), bounds[:, 1].min()
        xmax, ymax = bounds[:, 2].max(), bounds[:, 3].max()
        margin = self.style.margin_ratio * max(xmax - xmin, ymax - ymin)
        self.extent = (xmin - margin, xmax + margin, ymin - margin, ymax + margin)

    def plot_frame(
        self,
        gdf: gpd.GeoDataFrame,
        title: str | None = None,
        ax: Axes | None = None,
        colorbar: bool = True,
    ) -> tuple[Figure, Axes] | Axes:
        """
        Draw one frame.

        Parameters
        ----------
        gdf : geopandas.GeoDataFrame
            Regions and values to draw.
        title : str, optional
            Axes title.
        ax : matplotlib.axes.Axes, optional
            Axes to plot on. If None, creates new figure.
        colorbar : bool, optional
            Add a colour bar for the value column (default: True).

        Returns
        -------
        fig, ax : matplotlib Figure and Axes
            Only if ax was None; otherwise returns just ax.
        """
        style = self.style
        generate_figure = ax is None

        if generate_figure:
            fig, ax = pl.subplots(1, 1, figsize=style.figsize, dpi=style.dpi)
            fig.patch.set_facecolor(style.bg_color)

        ax.set_facecolor(style.bg_color)
        ax.set_aspect('equal')

        for region, value in zip(gdf.geometry, gdf[self.value_column]):
            patch = polygon_patch(region,
                                  facecolor = self.colormap(self.norm(value)),
                                  edgecolor = style.edgecolor,
                                  lw = style.linewidth,
                                 )
            ax.add_patch(patch)

        xmin, xmax, ymin, ymax = self.extent
        ax.set_xlim(xmin, xmax)
        ax.set_ylim(ymin, ymax)
        ax.set_axis_off()

        if title:
            ax.set_title(title)

        if colorbar:
            mappable = mpl.cm.ScalarMappable(norm=self.norm, cmap=self.colormap)
            cbar = ax.figure.colorbar(mappable, ax=ax, shrink=0.6)
            if style.legend_label:
                cbar.set_label(style.legend_label)

        if generate_figure:
            return fig, ax
        else:
            return ax

    def _year_frame(self, year: int) -> gpd.GeoDataFrame:
        frame = self.frames[self.frames[self.year_column] == year]
        if frame.empty:
            raise FrameNotFoundError(f"No frame for year {year}")
        return frame

    def save_static(self, year: int, path: str | Path, marginless: bool = False) -> Path:
        """
        Save the cartogram of one year as a raster image.

        Parameters
        ----------
        year : int
            Census year.
        path : str or pathlib.Path
            Output file; the format follows the suffix.
        marginless : bool, optional
            Save the bare map without title, colour bar or margins
            (default: False).

        Raises
        ------
        FrameNotFoundError
            If there is no frame for year.
        """
        frame = self._year_frame(year)
        if self.label_column in frame.columns:
            label = frame[self.label_column].iloc[0]
        else:
            label = None
        path = Path(path)

        if marginless:
            fig, ax = self.plot_frame(frame, colorbar=False)
            savefig_marginless(path, fig, ax, dpi=self.style.dpi)
        else:
            fig, ax = self.plot_frame(frame, title=self.style.format_title(year, label))
            fig.savefig(path, dpi=self.style.dpi, facecolor=self.style.bg_color)
        pl.close(fig)

        logger.info("Saved %s", path)
        return path

    def render_image(self, gdf: gpd.GeoDataFrame, title: str | None = None) -> np.ndarray:
        """Render a frame to an RGB array of fixed size."""
        fig, _ = self.plot_frame(gdf, title=title)
        fig.canvas.draw()
        image = np.asarray(fig.canvas.buffer_rgba())[..., :3].copy()
        pl.close(fig)
        return image

    def render_timeline(self, timeline: Sequence[Any], verbose: bool = False) -> list[np.ndarray]:
        """
        Render the images of an animation timeline.

        Frames showing the same GeoDataFrame under the same label (the held
        frames of a year) are drawn once and share one array.

        Parameters
        ----------
        timeline : sequence of AnimationFrame
            Frames in display order, e.g. from CartogramSequence.timeline().
        verbose : bool, optional
            Show progress bar (default: False).
        """
        if len(timeline) == 0:
            raise ValueError("Animation timeline is empty")

        images = []
        cache = {}

        if verbose:
            bar = progressbar.ProgressBar(
                max_value = len(timeline),
                widgets = [
                    progressbar.SimpleProgress(), " ",
                    progressbar.ETA(), " rendering animation frames ...",
                ]
            )

        for i, frame in enumerate(timeline):
            key = (id(frame.gdf), frame.year_label)
            if key not in cache:
                title = self.style.format_title(frame.year, frame.year_label)
                cache[key] = self.render_image(frame.gdf, title)
            images.append(cache[key])
            if verbose:
                bar.update(i + 1)

        if verbose:
            bar.finish()

        logger.debug("Rendered %d distinct images for %d frames", len(cache), len(images))
        return images

    @staticmethod
    def write_gif(path: str | Path, images: Sequence[np.ndarray], fps: float) -> Path:
        """Write images as a looping GIF, each shown for 1000/fps ms."""
        if fps <= 0:
            raise ValueError("fps must be positive")
        path = Path(path)
        imageio.mimsave(path, images, duration=1000. / fps, loop=0)
        logger.info("Saved %s (%d frames at %g fps)", path, len(images), fps)
        return path

    def render_animations(
        self,
        outputs: Sequence[tuple[str | Path, float]],
        timeline: Sequence[Any],
        verbose: bool = False,
    ) -> list[Path]:
        """
        Write several GIFs of one timeline that differ only in frame rate.

        The timeline is rendered once and every GIF is written from the
        same images.

        Parameters
        ----------
        outputs : sequence of (path, fps)
            Output files and their frame rates.
        timeline : sequence of AnimationFrame
            Frames in display order.
        verbose : bool, optional
            Show progress bar (default: False).
        """
        for _, fps in outputs:
            if fps <= 0:
                raise ValueError("fps must be positive")
        images = self.render_timeline(timeline, verbose=verbose)
        return [self.write_gif(path, images, fps) for path, fps in outputs]

    def render_animation(
        self,
        path: str | Path,
        timeline: Sequence[Any],
        fps: float,
        verbose: bool = False,
    ) -> Path:
        """
        Write an animated GIF.

        Parameters
        ----------
        path : str or pathlib.Path
            Output file.
        timeline : sequence of AnimationFrame
            Frames in display order, e.g. from CartogramSequence.timeline().
        fps : float
            Frames per second; each frame is shown for 1000/fps ms.
        verbose : bool, optional
            Show progress bar (default: False).
        """
        return self.render_animations([(path, fps)], timeline, verbose=verbose)[0]
