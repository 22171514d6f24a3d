#!/usr/bin/env python
"""
Morph Example - Eased transition from geography to cartogram

A 3x3 grid of square counties in Irish Transverse Mercator with a populous
center, rendered as a short looping GIF.
"""

import numpy as np
import geopandas as gpd
from shapely.geometry import box
from censuscartogram import GeoDataFrameContinuousCartogram, CartogramRenderer, FrameStyle, AnimationFrame

cell = 10000.
gdf = gpd.GeoDataFrame(
    {
        'county': [f'County {i}' for i in range(9)],
        'population': [20., 35., 20., 40., 400., 60., 20., 45., 25.],
    },
    geometry=[box(i * cell, j * cell, (i + 1) * cell, (j + 1) * cell) for j in range(3) for i in range(3)],
    crs='EPSG:2157',
)

carto = GeoDataFrameContinuousCartogram(gdf, 'population')
carto.compute(iterations=20, verbose=True)

steps = np.linspace(0, 1, 25)
timeline = [
    AnimationFrame(0, '', carto.get_interpolated_geo_df(t, 'CubicEaseInOut'), 'tween')
    for t in steps
]
timeline += timeline[::-1]

renderer = CartogramRenderer(
    carto.get_cartogram_geo_df(),
    style=FrameStyle(figsize=(4., 4.), title='', legend_label='population'),
    extra_extent=[gdf],
)
renderer.render_animation('example_morph.gif', timeline, fps=20, verbose=True)
print("Saved: example_morph.gif")
