"""
Black Marble nighttime lights.

Fetches NASA Black Marble (VNP46) nighttime lights tiles and builds
georeferenced rasters for a region of interest.
"""

from .data_prep.blackmarble_helper import (
    BearerToken,
    BlackMarbleRasterBuilder,
    GeoRaster,
    Product,
    RasterStack,
    bm_raster,
)

__all__ = [
    "BearerToken",
    "BlackMarbleRasterBuilder",
    "GeoRaster",
    "Product",
    "RasterStack",
    "bm_raster",
]
