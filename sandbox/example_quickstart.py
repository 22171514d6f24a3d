#!/usr/bin/env python
"""
Quick Start Example - Basic ContinuousCartogram

Three adjacent rectangular regions whose areas become proportional to
their population.
"""

import matplotlib.pyplot as plt
from shapely.geometry import Polygon
from censuscartogram import ContinuousCartogram

# Define three adjacent rectangular regions
A = Polygon([(0, 0), (1, 0), (1, 1), (0, 1)])
B = Polygon([(1, 0), (2, 0), (2, 1), (1, 1)])
C = Polygon([(2, 0), (3, 0), (3, 1), (2, 1)])

regions = [A, B, C]
population = [2., 20., 60.]

# Create and compute cartogram
carto = ContinuousCartogram(regions, population)
carto.compute(iterations=30, verbose=True)
print("mean size error per iteration:", [round(e, 3) for e in carto.mean_size_errors])
print("area share / population share:", carto.area_ratios().round(3))

# Plot original and result
fig, axes = plt.subplots(1, 2, figsize=(10, 4))
carto.plot(ax=axes[0], show_new_regions=False)
carto.plot(ax=axes[1], show_new_regions=True, outline_whole_shape=True)
axes[0].set_title('Original Geography', fontsize=12)
axes[1].set_title('Cartogram: Areas Proportional to Population', fontsize=12)
fig.tight_layout()

# Save figure
output_path = 'example_quickstart.png'
fig.savefig(output_path, dpi=150, bbox_inches='tight', facecolor='white')
print(f"Saved: {output_path}")

plt.show()
