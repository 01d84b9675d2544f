"""
In-memory rasters and the mosaic/crop steps for Black Marble tiles.
"""

from contextlib import ExitStack, contextmanager
from dataclasses import dataclass, field
from typing import Iterator, List, Optional, Sequence, Tuple

import numpy as np
import rasterio
from rasterio.io import MemoryFile
from rasterio.mask import mask
from rasterio.merge import merge
from rasterio.transform import array_bounds, from_origin
from rasterio.warp import reproject, Resampling

from blackmarble_ntl.utils.logging_utils import get_logger
from .exceptions import GridAlignmentError

logger = get_logger(__name__)

DEFAULT_CRS = "EPSG:4326"
# Relative pixel-size difference tolerated when mosaicking
RESOLUTION_TOLERANCE = 1e-6


@dataclass
class GeoRaster:
    """Single-band raster with NaN as no-data."""

    data: np.ndarray
    transform: rasterio.Affine
    crs: str = DEFAULT_CRS
    name: Optional[str] = None
    nodata: float = field(default=np.nan, repr=False)

    def __post_init__(self):
        self.data = np.asarray(self.data, dtype=np.float32)
        if self.data.ndim != 2:
            raise ValueError(f"GeoRaster data must be 2D, got shape {self.data.shape}")

    @property
    def height(self) -> int:
        return self.data.shape[0]

    @property
    def width(self) -> int:
        return self.data.shape[1]

    @property
    def res(self) -> Tuple[float, float]:
        return abs(self.transform.a), abs(self.transform.e)

    @property
    def bounds(self) -> Tuple[float, float, float, float]:
        """(west, south, east, north)"""
        return array_bounds(self.height, self.width, self.transform)

    @property
    def profile(self) -> dict:
        return {
            "driver": "GTiff",
            "height": self.height,
            "width": self.width,
            "count": 1,
            "dtype": "float32",
            "crs": self.crs,
            "transform": self.transform,
            "nodata": self.nodata,
        }

    @contextmanager
    def open(self) -> Iterator[rasterio.io.DatasetReader]:
        """Open the raster as an in-memory rasterio dataset."""
        with MemoryFile() as memfile:
            with memfile.open(**self.profile) as dst:
                dst.write(self.data, 1)
            with memfile.open() as dataset:
                yield dataset


@dataclass
class RasterStack:
    """Multi-band raster, one band per requested date."""

    data: np.ndarray
    transform: rasterio.Affine
    band_names: List[str]
    crs: str = DEFAULT_CRS

    @property
    def count(self) -> int:
        return self.data.shape[0]

    @property
    def bounds(self) -> Tuple[float, float, float, float]:
        return array_bounds(self.data.shape[1], self.data.shape[2], self.transform)

    def band(self, name: str) -> GeoRaster:
        """Return one band as a GeoRaster."""
        index = self.band_names.index(name)
        return GeoRaster(self.data[index], self.transform, crs=self.crs, name=name)


def _check_alignment(rasters: Sequence[GeoRaster]) -> None:
    ref_x, ref_y = rasters[0].res
    for raster in rasters[1:]:
        res_x, res_y = raster.res
        if not (
            np.isclose(res_x, ref_x, rtol=RESOLUTION_TOLERANCE)
            and np.isclose(res_y, ref_y, rtol=RESOLUTION_TOLERANCE)
        ):
            raise GridAlignmentError(
                f"Cannot mosaic rasters with pixel sizes {rasters[0].res} and {raster.res}"
            )
        if raster.crs != rasters[0].crs:
            raise GridAlignmentError(f"Cannot mosaic rasters in {rasters[0].crs} and {raster.crs}")


def mosaic_rasters(rasters: Sequence[GeoRaster]) -> GeoRaster:
    """
    Combine tiles into one raster, keeping the maximum where they overlap.

    No-data cells are left out of the maximum, so a valid value always wins
    over no-data. A single raster is returned unchanged.

    Args:
        rasters: Decoded tiles sharing a pixel size

    Returns:
        Mosaicked raster
    """
    if not rasters:
        raise ValueError("No rasters to mosaic")
    if len(rasters) == 1:
        return rasters[0]

    _check_alignment(rasters)
    logger.info(f"Mosaicking {len(rasters)} tiles")

    with ExitStack() as stack:
        datasets = [stack.enter_context(r.open()) for r in rasters]
        mosaic, transform = merge(datasets, nodata=np.nan, method="max")

    return GeoRaster(mosaic[0], transform, crs=rasters[0].crs, name=rasters[0].name)


def crop_to_region(raster: GeoRaster, region) -> GeoRaster:
    """
    Crop a raster to a region, masking cells outside the polygon.

    Args:
        raster: Raster to crop
        region: Shapely geometry or GeoDataFrame in the raster's CRS

    Returns:
        Cropped raster
    """
    if hasattr(region, "geometry"):
        shapes = [geom.__geo_interface__ for geom in region.geometry]
    else:
        shapes = [region.__geo_interface__]

    with raster.open() as src:
        out_image, out_transform = mask(src, shapes, crop=True, nodata=np.nan, filled=True)

    return GeoRaster(out_image[0], out_transform, crs=raster.crs, name=raster.name)


def _align_to(raster: GeoRaster, reference: GeoRaster) -> GeoRaster:
    destination = np.full(reference.data.shape, np.nan, dtype=np.float32)
    reproject(
        source=raster.data,
        destination=destination,
        src_transform=raster.transform,
        src_crs=raster.crs,
        src_nodata=np.nan,
        dst_transform=reference.transform,
        dst_crs=reference.crs,
        dst_nodata=np.nan,
        resampling=Resampling.nearest,
    )
    return GeoRaster(destination, reference.transform, crs=reference.crs, name=raster.name)


def _union_grid(rasters: Sequence[GeoRaster]) -> GeoRaster:
    """Empty raster covering every input, at the first raster's pixel size."""
    res_x, res_y = rasters[0].res
    all_bounds = np.array([r.bounds for r in rasters])
    west, south = all_bounds[:, 0].min(), all_bounds[:, 1].min()
    east, north = all_bounds[:, 2].max(), all_bounds[:, 3].max()
    width = max(1, int(np.ceil(round((east - west) / res_x, 6))))
    height = max(1, int(np.ceil(round((north - south) / res_y, 6))))
    return GeoRaster(
        np.full((height, width), np.nan, dtype=np.float32),
        from_origin(west, north, res_x, res_y),
        crs=rasters[0].crs,
    )


def _same_grid(raster: GeoRaster, reference: GeoRaster) -> bool:
    return raster.data.shape == reference.data.shape and np.allclose(
        tuple(raster.transform)[:6], tuple(reference.transform)[:6]
    )


def stack_rasters(rasters: Sequence[GeoRaster]) -> RasterStack:
    """
    Stack per-date rasters into bands.

    The stack covers the union of the band extents at the first band's pixel
    size. Bands on a different grid are resampled onto it with nearest
    neighbour; cells a band does not cover are NaN.
    """
    if not rasters:
        raise ValueError("No rasters to stack")
    reference = _union_grid(rasters)
    bands = []
    for raster in rasters:
        if not _same_grid(raster, reference):
            logger.info(f"Resampling band {raster.name} onto the stack grid")
            raster = _align_to(raster, reference)
        bands.append(raster.data)

    return RasterStack(
        data=np.stack(bands),
        transform=reference.transform,
        band_names=[r.name for r in rasters],
        crs=reference.crs,
    )
