"""
Black Marble tile grid.

The VNP46 products are distributed as 10x10 degree tiles identified by
horizontal/vertical indices (e.g. 'h20v08'). This module loads the tile
polygons and finds the tiles covering a region of interest.
"""

import io
import re
from typing import Iterable, Optional, Set, Tuple

import geopandas as gpd

from blackmarble_ntl.utils.logging_utils import get_logger
from .exceptions import TileNotFoundError

logger = get_logger(__name__)

TILE_ID_PATTERN = re.compile(r"h\d{2}v\d{2}")
TILE_ID_COLUMN = "TileID"


def extract_tile_id(filename: str) -> Optional[str]:
    """Return the tile ID embedded in a filename, or None."""
    match = TILE_ID_PATTERN.search(str(filename))
    return match.group() if match else None


def tile_id_pattern(tile_ids: Iterable[str]) -> Optional[str]:
    """Regex alternation matching any of the tile IDs, or None for no tiles."""
    tile_ids = sorted(set(tile_ids))
    if not tile_ids:
        return None
    return "|".join(re.escape(t) for t in tile_ids)


class TileGrid:
    """Polygon set of the Black Marble tile grid."""

    def __init__(self, grid_gdf: gpd.GeoDataFrame):
        """
        Args:
            grid_gdf: GeoDataFrame with a 'TileID' column and tile polygons
        """
        if TILE_ID_COLUMN not in grid_gdf.columns:
            raise ValueError(f"Tile grid has no '{TILE_ID_COLUMN}' column")
        if grid_gdf.crs is None:
            grid_gdf = grid_gdf.set_crs("EPSG:4326")
        elif grid_gdf.crs.to_epsg() != 4326:
            grid_gdf = grid_gdf.to_crs("EPSG:4326")
        self.grid_gdf = grid_gdf.reset_index(drop=True)

    @classmethod
    def load(cls, fetcher, url: str) -> "TileGrid":
        """
        Load the tile grid GeoJSON through a fetcher.

        Args:
            fetcher: Object exposing fetch(key) -> bytes
            url: Location of the tile grid GeoJSON

        Returns:
            TileGrid instance
        """
        logger.info(f"Loading Black Marble tile grid from {url}")
        content = fetcher.fetch(url)
        grid_gdf = gpd.read_file(io.BytesIO(content))
        logger.info(f"Loaded {len(grid_gdf)} tiles")
        return cls(grid_gdf)

    @property
    def tile_ids(self) -> Set[str]:
        return set(self.grid_gdf[TILE_ID_COLUMN])

    def _intersectable_tiles(self) -> gpd.GeoDataFrame:
        # Edge tiles along h00/v00 break intersection tests
        ids = self.grid_gdf[TILE_ID_COLUMN].astype(str)
        keep = ~(ids.str.contains("h00") | ids.str.contains("v00"))
        return self.grid_gdf[keep]

    def intersecting_tile_ids(self, region) -> Set[str]:
        """
        Find the tiles whose polygon intersects a region.

        Args:
            region: Shapely geometry or GeoDataFrame/GeoSeries in EPSG:4326

        Returns:
            Set of tile IDs; empty if the region misses every tile
        """
        if isinstance(region, (gpd.GeoDataFrame, gpd.GeoSeries)):
            if region.crs is not None and region.crs.to_epsg() != 4326:
                region = region.to_crs("EPSG:4326")
            geometry = region.union_all() if hasattr(region, "union_all") else region.unary_union
        else:
            geometry = region

        tiles = self._intersectable_tiles()
        hits = tiles[tiles.geometry.intersects(geometry)]
        tile_ids = set(hits[TILE_ID_COLUMN])
        logger.info(f"Region intersects {len(tile_ids)} tile(s): {sorted(tile_ids)}")
        return tile_ids

    def tile_bounds(self, tile_id: str) -> Tuple[int, int, int, int]:
        """
        Bounding box of a tile rounded to whole degrees.

        Returns:
            (west, south, east, north)
        """
        rows = self.grid_gdf[self.grid_gdf[TILE_ID_COLUMN] == tile_id]
        if rows.empty:
            raise TileNotFoundError(f"Tile ID {tile_id} not found in tile grid")
        west, south, east, north = rows.total_bounds
        return (
            int(round(west)),
            int(round(south)),
            int(round(east)),
            int(round(north)),
        )
