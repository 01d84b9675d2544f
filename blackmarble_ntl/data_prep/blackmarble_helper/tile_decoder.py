"""
Convert Black Marble HDF5 tiles into georeferenced rasters.

Daily files (VNP46A1/VNP46A2) carry their data under the VNP_Grid_DNB group
and are georeferenced from the tile grid. Monthly and annual files
(VNP46A3/VNP46A4) use the VIIRS_Grid_DNB_2d group, which also holds the
lat/lon arrays used for their bounds.
"""

from pathlib import Path
from typing import Optional, Tuple, Union

import h5py
import numpy as np
from rasterio.transform import from_bounds

from blackmarble_ntl.utils.logging_utils import get_logger
from .exceptions import TileDecodeError, VariableNotFoundError
from .mosaic import DEFAULT_CRS, GeoRaster
from .products import Product, ProductGeneration
from .tile_grid import TileGrid, extract_tile_id

logger = get_logger(__name__)

# Saturated / invalid radiance marker, independent of the declared fill value
SATURATION_VALUE = 65535


def product_generation(file_path: Union[str, Path]) -> ProductGeneration:
    """Resolve the HDF5 layout of a tile file from its name."""
    name = Path(file_path).name
    try:
        return Product.from_value(name[0:7]).generation
    except ValueError:
        raise TileDecodeError(f"Cannot determine Black Marble product of {name}")


def _fill_value(dataset: h5py.Dataset) -> Optional[float]:
    value = dataset.attrs.get("_FillValue")
    if value is None:
        return None
    value = np.asarray(value).ravel()
    return float(value[0]) if value.size else None


class TileDecoder:
    """Decodes Black Marble tile files into GeoRaster objects."""

    def __init__(self, tile_grid: TileGrid):
        """
        Args:
            tile_grid: Tile grid used to georeference daily tiles
        """
        self.tile_grid = tile_grid

    def _read_variable(self, h5_file: h5py.File, group_path: str, variable: str, name: str):
        group = h5_file.get(group_path)
        if group is None or variable not in group:
            available = sorted(group.keys()) if group is not None else []
            raise VariableNotFoundError(
                f"Variable '{variable}' not found in {name} (available: {available})"
            )
        dataset = group[variable]
        return dataset[...], _fill_value(dataset)

    def _new_generation_bounds(self, file_path: Path) -> Tuple[int, int, int, int]:
        tile_id = extract_tile_id(file_path.name)
        if tile_id is None:
            raise TileDecodeError(f"Could not determine tile ID for {file_path.name}")
        return self.tile_grid.tile_bounds(tile_id)

    @staticmethod
    def _old_generation_bounds(h5_file: h5py.File, group_path: str, name: str):
        group = h5_file[group_path]
        if "lat" not in group or "lon" not in group:
            raise TileDecodeError(f"lat/lon arrays not found in {name}")
        lat = np.asarray(group["lat"][...], dtype=np.float64)
        lon = np.asarray(group["lon"][...], dtype=np.float64)
        bounds = (
            int(round(lon.min())),
            int(round(lat.min())),
            int(round(lon.max())),
            int(round(lat.max())),
        )
        # Row 0 must be the northernmost row
        lat_ascending = lat.ndim == 1 and lat.size > 1 and lat[0] < lat[-1]
        return bounds, lat_ascending

    def decode(self, file_path: Union[str, Path], variable: str) -> GeoRaster:
        """
        Convert one tile file to a raster.

        Args:
            file_path: Local path of the HDF5 tile
            variable: Name of the data field to read

        Returns:
            GeoRaster in EPSG:4326 with fill and saturation values set to NaN

        Raises:
            VariableNotFoundError: If the variable is not in the file
            TileDecodeError: If the file cannot be read
        """
        file_path = Path(file_path)
        generation = product_generation(file_path)
        group_path = generation.group_path

        try:
            with h5py.File(file_path, "r") as h5_file:
                data, fill_value = self._read_variable(h5_file, group_path, variable, file_path.name)
                if generation is ProductGeneration.NEW:
                    bounds = self._new_generation_bounds(file_path)
                    flip_rows = False
                else:
                    bounds, flip_rows = self._old_generation_bounds(
                        h5_file, group_path, file_path.name
                    )
        except OSError as e:
            raise TileDecodeError(f"Could not open {file_path}: {e}") from e

        if data.ndim != 2:
            raise TileDecodeError(f"Expected a 2D field, got shape {data.shape} in {file_path.name}")

        # h5py reads rows north to south and columns west to east
        if flip_rows:
            data = data[::-1, :]
        raster_data = data.astype(np.float32)

        if fill_value is not None:
            raster_data[data == fill_value] = np.nan

        height, width = raster_data.shape
        west, south, east, north = bounds
        transform = from_bounds(west, south, east, north, width, height)

        raster_data[raster_data == SATURATION_VALUE] = np.nan

        logger.info(
            f"Decoded {file_path.name}: {variable} {height}x{width} bounds={bounds}"
        )
        return GeoRaster(raster_data, transform, crs=DEFAULT_CRS)
