"""tbrates package initializer.

This package contains the rate engine behind the TB burden dashboard.
Modules cover cleaning the WHO country-year estimates, per-100k rate
calculation, selection filtering, aggregation, joining country rates onto
map polygons, caching and plotting helpers.  See individual module
docstrings for details.
"""
