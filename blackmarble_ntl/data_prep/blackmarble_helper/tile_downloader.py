"""
Download Black Marble tile files from the LAADS archive.

Files are mirrored into a scratch tree laid out as product/year/day, the same
layout the archive uses, so concurrent downloads never share a path.
"""

from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Dict, List, NamedTuple, Optional, Union

import requests

from blackmarble_ntl.utils.logging_utils import get_logger
from blackmarble_ntl.utils.path_utils import ensure_directory, get_scratch_path, remove_directory
from .credentials import BearerToken
from .exceptions import TileDownloadError

logger = get_logger(__name__)


class TileFileInfo(NamedTuple):
    product_id: str
    year: str
    day: str


def parse_filename(file_name: str) -> TileFileInfo:
    """
    Split a Black Marble filename into product, year and day-of-year.

    Relies on the provider's fixed layout, e.g.
    'VNP46A2.A2021032.h20v08.001.2021043123456.h5'.
    """
    name = Path(file_name).name
    product_id, year, day = name[0:7], name[9:13], name[13:16]
    if len(name) < 16 or not (year.isdigit() and day.isdigit()):
        raise ValueError(f"Unexpected Black Marble filename: {file_name}")
    return TileFileInfo(product_id, year, day)


class TileDownloader:
    """Downloads tile files with a bearer token into a scratch directory."""

    def __init__(
        self,
        bearer: Union[BearerToken, str],
        base_url: str,
        scratch_dir: Optional[Union[str, Path]] = None,
        max_workers: int = 4,
        timeout: float = 300,
        chunk_size: int = 1024 * 1024,
        session: Optional[requests.Session] = None,
    ):
        """
        Args:
            bearer: NASA Earthdata bearer token
            base_url: Archive root, e.g. .../archive/allData/5000
            scratch_dir: Root of the scratch tree
            max_workers: Maximum concurrent downloads
            timeout: Request timeout in seconds
            chunk_size: Streaming chunk size in bytes
            session: Optional requests session to reuse
        """
        self.bearer = BearerToken.from_value(bearer)
        self.base_url = base_url.rstrip("/")
        self.scratch_dir = get_scratch_path(scratch_dir)
        self.max_workers = max(1, int(max_workers))
        self.timeout = timeout
        self.chunk_size = chunk_size
        self.session = session or requests.Session()

    def remote_url(self, file_name: str) -> str:
        info = parse_filename(file_name)
        return f"{self.base_url}/{info.product_id}/{info.year}/{info.day}/{file_name}"

    def local_path(self, file_name: str) -> Path:
        info = parse_filename(file_name)
        return self.scratch_dir / info.product_id / info.year / info.day / file_name

    def clear_scratch(self, product_id: str) -> None:
        """Remove all scratch files for a product."""
        remove_directory(self.scratch_dir / product_id)

    def download(self, file_name: str) -> Path:
        """
        Download one tile file.

        Args:
            file_name: Archive filename of the tile

        Returns:
            Local path of the downloaded file

        Raises:
            TileDownloadError: If the transfer fails
        """
        self.bearer.ensure_valid()
        url = self.remote_url(file_name)
        out_path = self.local_path(file_name)
        ensure_directory(out_path.parent)

        logger.info(f"Downloading {url} ...")
        try:
            with self.session.get(
                url,
                headers=self.bearer.authorization_header(),
                stream=True,
                timeout=self.timeout,
            ) as resp:
                resp.raise_for_status()
                with open(out_path, "wb") as f:
                    for chunk in resp.iter_content(chunk_size=self.chunk_size):
                        if chunk:
                            f.write(chunk)
        except (requests.exceptions.RequestException, OSError) as e:
            out_path.unlink(missing_ok=True)
            raise TileDownloadError(f"Failed to download {file_name}: {e}") from e

        logger.info(f"Saved to {out_path}")
        return out_path

    def download_all(self, file_names: List[str]) -> List[Path]:
        """
        Download several tile files concurrently.

        Every transfer runs to completion; failures are reported together.

        Args:
            file_names: Archive filenames

        Returns:
            Local paths in the same order as file_names

        Raises:
            TileDownloadError: If any transfer failed
        """
        if not file_names:
            return []
        self.bearer.ensure_valid()

        results: Dict[str, Path] = {}
        failed: Dict[str, Exception] = {}
        with ThreadPoolExecutor(max_workers=min(self.max_workers, len(file_names))) as pool:
            futures = {name: pool.submit(self.download, name) for name in file_names}
            for name, future in futures.items():
                try:
                    results[name] = future.result()
                except TileDownloadError as e:
                    logger.error(str(e))
                    failed[name] = e

        if failed:
            raise TileDownloadError(
                f"{len(failed)} of {len(file_names)} tile download(s) failed: {sorted(failed)}",
                failed=failed,
            )
        return [results[name] for name in file_names]
