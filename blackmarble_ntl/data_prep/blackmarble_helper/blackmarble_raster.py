"""
Black Marble nighttime lights rasters for a region of interest.

This module ties the Black Marble helpers together: for each requested date
it resolves the catalog listings, selects the tiles intersecting the region,
downloads and decodes them, mosaics the tiles and crops the result to the
region.
"""

from typing import Iterable, List, Optional, Sequence, Set, Union

import geopandas as gpd
import pandas as pd
import requests

from blackmarble_ntl.utils.config_utils import DEFAULT_CONFIG_PATH, get_config_value, load_config
from blackmarble_ntl.utils.logging_utils import get_logger, setup_logging
from .catalog import CatalogReader, filter_by_tiles
from .credentials import BearerToken
from .exceptions import RegionValidationError
from .mosaic import GeoRaster, RasterStack, crop_to_region, mosaic_rasters, stack_rasters
from .products import DateLike, Product, date_label, resolve_day_codes
from .remote_fetcher import RemoteFetcher
from .tile_decoder import TileDecoder
from .tile_downloader import TileDownloader
from .tile_grid import TileGrid

# Module loggers under this name share the handlers configured by the builder
PACKAGE_LOGGER = "blackmarble_ntl"


def validate_region(roi) -> gpd.GeoDataFrame:
    """
    Check the region of interest and bring it to EPSG:4326.

    Args:
        roi: GeoDataFrame with exactly one polygon row

    Returns:
        The region as a one-row GeoDataFrame in EPSG:4326

    Raises:
        RegionValidationError: If the region is not a one-row polygon GeoDataFrame
    """
    if not isinstance(roi, gpd.GeoDataFrame):
        raise RegionValidationError(
            f"roi must be a GeoDataFrame, got {type(roi).__name__}"
        )
    if len(roi) != 1:
        raise RegionValidationError(
            f"roi is {len(roi)} rows; must be 1 row. Dissolve polygon into 1 row."
        )
    geometry = roi.geometry.iloc[0]
    if geometry is None or geometry.is_empty:
        raise RegionValidationError("roi geometry is empty")
    if geometry.geom_type not in ("Polygon", "MultiPolygon"):
        raise RegionValidationError(
            f"roi geometry must be a Polygon or MultiPolygon, got {geometry.geom_type}"
        )
    if roi.crs is None:
        return roi.set_crs("EPSG:4326")
    if roi.crs.to_epsg() != 4326:
        return roi.to_crs("EPSG:4326")
    return roi


class BlackMarbleRasterBuilder:
    """
    Builds nighttime lights rasters from NASA Black Marble tiles.

    The tile grid and catalogs are read through a fetcher exposing
    fetch(key) -> bytes; tile files are downloaded with the bearer token.
    """

    def __init__(
        self,
        bearer: Union[BearerToken, str],
        config_path: str = DEFAULT_CONFIG_PATH,
        fetcher=None,
        session: Optional[requests.Session] = None,
    ):
        """
        Initialize the builder with configuration.

        Args:
            bearer: NASA Earthdata bearer token
            config_path: Path to the configuration YAML file
            fetcher: Optional fetcher for the tile grid and catalogs
            session: Optional requests session used for tile downloads
        """
        self.config = load_config(config_path)
        setup_logging(
            PACKAGE_LOGGER,
            log_dir=get_config_value(self.config, "logging.log_directory"),
            level=get_config_value(self.config, "logging.level", "INFO"),
        )
        self.logger = get_logger(__name__)
        self.bearer = BearerToken.from_value(bearer)

        self.base_url = get_config_value(
            self.config,
            "archive.base_url",
            "https://ladsweb.modaps.eosdis.nasa.gov/archive/allData/5000",
        )
        self.tile_grid_url = get_config_value(self.config, "archive.tile_grid_url")
        self.fetcher = fetcher or RemoteFetcher(
            timeout=get_config_value(self.config, "fetch.timeout_seconds", 60),
            max_retries=get_config_value(self.config, "fetch.max_retries", 3),
            retry_delay=get_config_value(self.config, "fetch.retry_delay_seconds", 1.0),
        )
        self.catalog = CatalogReader(
            self.fetcher,
            self.base_url,
            request_delay=get_config_value(self.config, "catalog.request_delay_seconds", 0.1),
        )
        self.downloader = TileDownloader(
            self.bearer,
            self.base_url,
            scratch_dir=get_config_value(self.config, "download.scratch_directory"),
            max_workers=get_config_value(self.config, "download.max_workers", 4),
            timeout=get_config_value(self.config, "download.timeout_seconds", 300),
            chunk_size=get_config_value(self.config, "download.chunk_size", 1024 * 1024),
            session=session,
        )

    def load_tile_grid(self) -> TileGrid:
        """Load the Black Marble tile grid."""
        return TileGrid.load(self.fetcher, self.tile_grid_url)

    def build_catalog(
        self,
        product_id: Union[Product, str],
        years: Optional[Iterable[int]] = None,
        months: Optional[Iterable[int]] = None,
        days: Optional[Iterable[int]] = None,
    ) -> pd.DataFrame:
        """List the archive files of a product, starting from the configured first year."""
        return self.catalog.build_catalog(
            product_id,
            years=years,
            months=months,
            days=days,
            first_year=get_config_value(self.config, "catalog.first_year", 2012),
        )

    def candidate_files(
        self, product: Product, date: DateLike, tile_ids: Set[str]
    ) -> List[str]:
        """
        List the archive files of the given tiles for a date.

        Args:
            product: Black Marble product
            date: Requested date
            tile_ids: Tiles to keep

        Returns:
            Archive filenames
        """
        listing = self.catalog.read_alternatives(product, resolve_day_codes(product, date))
        listing = filter_by_tiles(listing, tile_ids)
        return list(listing["name"])

    def build_date(
        self,
        product: Union[Product, str],
        date: DateLike,
        variable: Optional[str] = None,
        roi: Optional[gpd.GeoDataFrame] = None,
        tile_ids: Optional[Iterable[str]] = None,
        tile_grid: Optional[TileGrid] = None,
        mosaic: bool = True,
        mask: bool = True,
    ) -> Union[GeoRaster, List[GeoRaster], None]:
        """
        Build the raster for one date.

        Args:
            product: Black Marble product
            date: Requested date
            variable: Data field to read; defaults to the product's default
            roi: Region of interest (validated GeoDataFrame)
            tile_ids: Explicit tiles to use instead of intersecting roi
            tile_grid: Tile grid, loaded if not given
            mosaic: Mosaic the tiles; otherwise return the decoded tiles
            mask: Crop the mosaic to roi

        Returns:
            The raster, a list of tile rasters when mosaic is False, or None
            when no tile file matches
        """
        product = Product.from_value(product)
        variable = variable or product.default_variable
        if (roi is None) == (tile_ids is None):
            raise ValueError("Exactly one of roi or tile_ids must be specified")

        tile_grid = tile_grid or self.load_tile_grid()
        if roi is not None:
            roi = validate_region(roi)
            tile_ids = tile_grid.intersecting_tile_ids(roi)
        tile_ids = {tile_ids} if isinstance(tile_ids, str) else set(tile_ids)

        file_names = self.candidate_files(product, date, tile_ids)
        if not file_names:
            self.logger.info(f"No {product.value} files for {date} and tiles {sorted(tile_ids)}")
            return None

        decoder = TileDecoder(tile_grid)
        self.downloader.clear_scratch(product.value)
        try:
            paths = self.downloader.download_all(file_names)
            rasters = [decoder.decode(path, variable) for path in paths]
        finally:
            self.downloader.clear_scratch(product.value)

        name = date_label(product, date)
        for raster in rasters:
            raster.name = name
        if not mosaic:
            return rasters

        raster = mosaic_rasters(rasters)
        if mask and roi is not None:
            raster = crop_to_region(raster, roi)
        return raster

    def build(
        self,
        roi: gpd.GeoDataFrame,
        product_id: Union[Product, str],
        date: Union[DateLike, Sequence[DateLike]],
        variable: Optional[str] = None,
    ) -> Union[GeoRaster, RasterStack, None]:
        """
        Build rasters for one or more dates.

        Dates that fail or have no data are logged and left out.

        Args:
            roi: Region of interest; one-row polygon GeoDataFrame in EPSG:4326
            product_id: 'VNP46A1', 'VNP46A2', 'VNP46A3' or 'VNP46A4'
            date: One date or a list of dates
            variable: Data field to read; defaults to the product's default

        Returns:
            GeoRaster for one resolved date, RasterStack for several, None
            if no date resolved
        """
        roi = validate_region(roi)
        product = Product.from_value(product_id)
        dates = list(date) if isinstance(date, (list, tuple)) else [date]
        self.bearer.ensure_valid()

        variable = variable or product.default_variable
        self.logger.info(
            f"Building {product.value} rasters of {variable} for {len(dates)} date(s)"
        )
        tile_grid = self.load_tile_grid()

        rasters = []
        for value in dates:
            try:
                raster = self.build_date(
                    product, value, variable=variable, roi=roi, tile_grid=tile_grid
                )
            except Exception as e:
                # One failing date never aborts the others
                self.logger.warning(f"Skipping {product.value} date {value}: {e}", exc_info=True)
                continue
            if raster is None:
                continue
            rasters.append(raster)

        if not rasters:
            self.logger.warning(f"No {product.value} rasters produced")
            return None
        if len(rasters) == 1:
            return rasters[0]
        return stack_rasters(rasters)


def bm_raster(
    roi: gpd.GeoDataFrame,
    product_id: Union[Product, str],
    date: Union[DateLike, Sequence[DateLike]],
    bearer: Union[BearerToken, str],
    variable: Optional[str] = None,
    config_path: str = DEFAULT_CONFIG_PATH,
    fetcher=None,
    session: Optional[requests.Session] = None,
) -> Union[GeoRaster, RasterStack, None]:
    """
    Make a raster of nighttime lights from NASA Black Marble data.

    Args:
        roi: Region of interest; one-row polygon GeoDataFrame in EPSG:4326
        product_id: 'VNP46A1' or 'VNP46A2' (daily), 'VNP46A3' (monthly) or
            'VNP46A4' (annual)
        date: For daily data a date ('2021-10-03'); for monthly data a
            year-month or date ('2021-10', day ignored); for annual data a year
            or date ('2021', month and day ignored). A list of dates produces
            a stack.
        bearer: NASA Earthdata bearer token
        variable: Variable used to create the raster. Defaults to
            DNB_At_Sensor_Radiance_500m (VNP46A1),
            Gap_Filled_DNB_BRDF-Corrected_NTL (VNP46A2) and
            NearNadir_Composite_Snow_Free (VNP46A3, VNP46A4).
        config_path: Path to the configuration YAML file
        fetcher: Optional fetcher for the tile grid and catalogs
        session: Optional requests session used for tile downloads

    Returns:
        GeoRaster for one date, RasterStack for several, None if no date
        produced data
    """
    builder = BlackMarbleRasterBuilder(
        bearer, config_path=config_path, fetcher=fetcher, session=session
    )
    return builder.build(roi, product_id, date, variable=variable)
