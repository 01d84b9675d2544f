"""
LAADS archive catalog listings for Black Marble products.

The archive publishes one CSV per (product, year, day-of-year) listing the
files available for that day. Missing or unreachable listings are treated as
empty so that one bad day never aborts a multi-date request.
"""

import io
import time
from typing import Iterable, Optional, Set, Tuple, Union

import pandas as pd

from blackmarble_ntl.utils.logging_utils import get_logger
from .exceptions import FetchError
from .products import Product, catalog_parameters, pad3
from .tile_grid import tile_id_pattern

logger = get_logger(__name__)

CATALOG_COLUMNS = ["name", "year", "day"]


def empty_listing() -> pd.DataFrame:
    return pd.DataFrame(columns=CATALOG_COLUMNS)


class CatalogReader:
    """Reads per-day file listings from the LAADS archive."""

    def __init__(self, fetcher, base_url: str, request_delay: float = 0.1):
        """
        Args:
            fetcher: Object exposing fetch(key) -> bytes
            base_url: Archive root, e.g. .../archive/allData/5000
            request_delay: Pause after each listing request in seconds
        """
        self.fetcher = fetcher
        self.base_url = base_url.rstrip("/")
        self.request_delay = request_delay

    def listing_url(self, product: Union[Product, str], year: int, day: str) -> str:
        product = Product.from_value(product)
        return f"{self.base_url}/{product.value}/{year}/{pad3(day)}.csv"

    def _fetch_listing(self, product: Product, year: int, day: str) -> pd.DataFrame:
        url = self.listing_url(product, year, day)
        logger.info(f"Reading: {product.value}/{year}/{day}")
        try:
            content = self.fetcher.fetch(url)
            listing = pd.read_csv(io.BytesIO(content))
            if "name" not in listing.columns:
                raise ValueError(f"listing has no 'name' column ({list(listing.columns)})")
        finally:
            time.sleep(self.request_delay)
        listing["year"] = int(year)
        listing["day"] = day
        return listing

    def read_listing(self, product: Union[Product, str], year: int, day: str) -> pd.DataFrame:
        """
        Read the file listing for one day.

        Args:
            product: Black Marble product
            year: Year of the listing
            day: Day-of-year code

        Returns:
            DataFrame with 'name', 'year' and 'day' columns; empty on failure
        """
        product = Product.from_value(product)
        day = pad3(day)
        try:
            return self._fetch_listing(product, year, day)
        except (FetchError, ValueError) as e:
            # pandas parser errors derive from ValueError
            logger.warning(f"Error with {product.value} year: {year}; day: {day} ({e})")
            return empty_listing()

    def read_alternatives(
        self, product: Union[Product, str], keys: Iterable[Tuple[int, str]]
    ) -> pd.DataFrame:
        """
        Read listings that stand in for one another, such as the leap and
        non-leap start days of a month.

        Keys that fail are only warned about when no key could be read.

        Args:
            product: Black Marble product
            keys: (year, day code) keys for the same date

        Returns:
            Concatenated listing; empty if no key could be read
        """
        product = Product.from_value(product)
        frames, errors = [], []
        for year, day in keys:
            day = pad3(day)
            try:
                frames.append(self._fetch_listing(product, year, day))
            except (FetchError, ValueError) as e:
                errors.append((year, day, e))

        for year, day, e in errors:
            message = f"Error with {product.value} year: {year}; day: {day} ({e})"
            if frames:
                logger.info(f"{message}; another day code for the same date was read")
            else:
                logger.warning(message)

        frames = [f for f in frames if not f.empty]
        if not frames:
            return empty_listing()
        return pd.concat(frames, ignore_index=True)

    def read_listings(
        self, product: Union[Product, str], keys: Iterable[Tuple[int, str]]
    ) -> pd.DataFrame:
        """Concatenate the listings for several (year, day code) keys."""
        frames = [self.read_listing(product, year, day) for year, day in keys]
        frames = [f for f in frames if not f.empty]
        if not frames:
            return empty_listing()
        return pd.concat(frames, ignore_index=True)

    def build_catalog(
        self,
        product: Union[Product, str],
        years: Optional[Iterable[int]] = None,
        months: Optional[Iterable[int]] = None,
        days: Optional[Iterable[int]] = None,
        first_year: int = 2012,
    ) -> pd.DataFrame:
        """
        Read the listings for every day matching the filters.

        Args:
            product: Black Marble product
            years: Restrict to these years
            months: Restrict to these months
            days: Restrict to these days of year
            first_year: First year of the archive

        Returns:
            Concatenated listing DataFrame
        """
        params = catalog_parameters(
            product, years=years, months=months, days=days, first_year=first_year
        )
        logger.info(f"Reading {len(params)} catalog listing(s) for {Product.from_value(product).value}")
        return self.read_listings(product, zip(params["year"], params["day"]))


def filter_by_tiles(listing: pd.DataFrame, tile_ids: Set[str]) -> pd.DataFrame:
    """
    Keep listing rows whose filename contains one of the tile IDs.

    Args:
        listing: Catalog listing with a 'name' column
        tile_ids: Tile IDs to keep

    Returns:
        Filtered listing; empty if no tile IDs are given
    """
    pattern = tile_id_pattern(tile_ids)
    if pattern is None or listing.empty:
        return listing.iloc[0:0]
    keep = listing["name"].astype(str).str.contains(pattern, regex=True)
    return listing[keep].reset_index(drop=True)
