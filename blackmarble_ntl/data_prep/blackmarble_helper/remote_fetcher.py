"""
Remote resource fetching for the Black Marble tile grid and catalogs.

Readers depend on anything exposing ``fetch(key) -> bytes`` so tests can
substitute fixtures and callers can add memoization.
"""

import threading
import time
from typing import Dict, Optional

import requests

from blackmarble_ntl.utils.logging_utils import get_logger
from .exceptions import FetchError

logger = get_logger(__name__)


class RemoteFetcher:
    """Fetch remote resources over HTTP with retries."""

    def __init__(
        self,
        timeout: float = 60,
        max_retries: int = 3,
        retry_delay: float = 1.0,
        session: Optional[requests.Session] = None,
    ):
        """
        Initialize the fetcher.

        Args:
            timeout: Request timeout in seconds
            max_retries: Maximum number of attempts per resource
            retry_delay: Base delay between retries in seconds
            session: Optional requests session to reuse
        """
        self.timeout = timeout
        self.max_retries = max(1, int(max_retries))
        self.retry_delay = retry_delay
        self.session = session or requests.Session()

    def fetch(self, key: str) -> bytes:
        """
        Fetch the resource at a URL.

        Args:
            key: URL of the resource

        Returns:
            Response body

        Raises:
            FetchError: If every attempt failed
        """
        last_error = None
        for attempt in range(self.max_retries):
            try:
                logger.debug(f"Fetching {key} (attempt {attempt + 1})")
                response = self.session.get(key, timeout=self.timeout)
                response.raise_for_status()
                return response.content
            except requests.exceptions.HTTPError as e:
                last_error = e
                status = e.response.status_code if e.response is not None else None
                # Missing resources will not appear on retry
                if status is not None and 400 <= status < 500 and status != 429:
                    break
                logger.warning(f"Fetch attempt {attempt + 1} for {key} failed: {e}")
            except requests.exceptions.RequestException as e:
                last_error = e
                logger.warning(f"Fetch attempt {attempt + 1} for {key} failed: {e}")

            if attempt < self.max_retries - 1:
                time.sleep(self.retry_delay * (2**attempt))  # Exponential backoff

        raise FetchError(f"Could not fetch {key}: {last_error}")


class CachingFetcher:
    """Memoize another fetcher's results for the lifetime of this object."""

    def __init__(self, fetcher):
        self.fetcher = fetcher
        self._cache: Dict[str, bytes] = {}
        self._lock = threading.Lock()

    def fetch(self, key: str) -> bytes:
        with self._lock:
            if key in self._cache:
                return self._cache[key]
        content = self.fetcher.fetch(key)
        with self._lock:
            self._cache[key] = content
        return content

    def clear(self) -> None:
        with self._lock:
            self._cache.clear()
