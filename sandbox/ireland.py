#!/usr/bin/env python
"""
Ireland - County population cartograms of all censuses 1841-2016

Expects the CSO table CNA13 as data/CNA13.csv and the county boundaries as
data/counties.shp next to this script (see censuscartogram/data/ireland.yaml
for all settings). Equivalent to ``censuscartogram run``.
"""

import logging
from pathlib import Path

import matplotlib
matplotlib.use('Agg')

from censuscartogram import CartogramConfig
from censuscartogram import pipeline

logging.basicConfig(level=logging.INFO)

config = CartogramConfig.from_dict({}, base_dir=Path(__file__).parent)

report = pipeline.validate(config)
print(report.describe())

result = pipeline.run(config, verbose=True)

for year, error in sorted(result.convergence.items()):
    print(f"{year}: mean size error {error:.4f}")
for path in result.static_paths + result.animation_paths:
    print(f"Saved: {path}")
