"""
Black Marble nighttime lights package.

This package contains modules for downloading NASA Black Marble (VNP46)
tiles and converting them into mosaicked rasters for a region of interest.
"""

from .blackmarble_raster import BlackMarbleRasterBuilder, bm_raster
from .credentials import BearerToken
from .mosaic import GeoRaster, RasterStack
from .products import Product
from .remote_fetcher import CachingFetcher, RemoteFetcher

__all__ = [
    "BlackMarbleRasterBuilder",
    "bm_raster",
    "BearerToken",
    "GeoRaster",
    "RasterStack",
    "Product",
    "CachingFetcher",
    "RemoteFetcher",
]
