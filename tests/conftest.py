"""
Shared fixtures for the Black Marble tests.

Nothing here touches the network: the tile grid, catalog listings and tile
files are all synthetic.
"""

import io
from pathlib import Path

import geopandas as gpd
import h5py
import numpy as np
import pytest
import requests
import yaml
from shapely.geometry import box

from blackmarble_ntl.data_prep.blackmarble_helper.exceptions import FetchError
from blackmarble_ntl.data_prep.blackmarble_helper.products import (
    NEW_GENERATION_GROUP,
    OLD_GENERATION_GROUP,
)
from blackmarble_ntl.data_prep.blackmarble_helper.tile_grid import TileGrid

BASE_URL = "https://archive.test/allData/5000"
TILE_GRID_URL = "https://grid.test/blackmarbletiles.geojson"


def make_tile_grid_gdf():
    """Global 10x10 degree grid with IDs hHHvVV, h from the west, v from the north."""
    tile_ids, geometries = [], []
    for h in range(36):
        for v in range(18):
            west = -180 + 10 * h
            north = 90 - 10 * v
            tile_ids.append(f"h{h:02d}v{v:02d}")
            geometries.append(box(west, north - 10, west + 10, north))
    return gpd.GeoDataFrame({"TileID": tile_ids}, geometry=geometries, crs="EPSG:4326")


def write_daily_tile(path, variable, data, fill_value=65534):
    """Write a VNP46A1/VNP46A2 style HDF5 file."""
    with h5py.File(path, "w") as f:
        group = f.create_group(NEW_GENERATION_GROUP)
        dataset = group.create_dataset(variable, data=data)
        dataset.attrs["_FillValue"] = np.array([fill_value], dtype=data.dtype)
        group.create_dataset("QF_Cloud_Mask", data=np.zeros_like(data))
    return Path(path)


def write_composite_tile(path, variable, data, lat, lon, fill_value=65534):
    """Write a VNP46A3/VNP46A4 style HDF5 file with lat/lon arrays."""
    with h5py.File(path, "w") as f:
        group = f.create_group(OLD_GENERATION_GROUP)
        dataset = group.create_dataset(variable, data=data)
        dataset.attrs["_FillValue"] = np.array([fill_value], dtype=data.dtype)
        group.create_dataset("lat", data=lat)
        group.create_dataset("lon", data=lon)
    return Path(path)


def h5_bytes(tmp_path, writer, name, *args, **kwargs):
    path = writer(tmp_path / f"source_{name}", *args, **kwargs)
    return path.read_bytes()


def listing_csv(names):
    lines = ["name,last_modified,size"]
    lines += [f"{name},2021-03-01 00:00,1000" for name in names]
    return ("\n".join(lines) + "\n").encode("utf-8")


class FakeFetcher:
    """fetch(key) -> bytes backed by a dict; unknown keys fail like a 404."""

    def __init__(self, resources=None):
        self.resources = dict(resources or {})
        self.calls = []

    def fetch(self, key):
        self.calls.append(key)
        if key not in self.resources:
            raise FetchError(f"Could not fetch {key}: 404 Not Found")
        return self.resources[key]


class FakeResponse:
    def __init__(self, url, content=None, status_code=200):
        self.url = url
        self.content = content or b""
        self.status_code = status_code

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.exceptions.HTTPError(
                f"{self.status_code} Error for url: {self.url}", response=self
            )

    def iter_content(self, chunk_size=1):
        stream = io.BytesIO(self.content)
        while True:
            chunk = stream.read(chunk_size)
            if not chunk:
                break
            yield chunk

    def __enter__(self):
        return self

    def __exit__(self, *args):
        return False


class FakeSession:
    """Stands in for requests.Session; serves files from a dict."""

    def __init__(self, files=None):
        self.files = dict(files or {})
        self.requests = []

    def get(self, url, headers=None, stream=False, timeout=None):
        self.requests.append({"url": url, "headers": dict(headers or {}), "timeout": timeout})
        if url not in self.files:
            return FakeResponse(url, status_code=404)
        return FakeResponse(url, self.files[url])


@pytest.fixture
def tile_grid_gdf():
    return make_tile_grid_gdf()


@pytest.fixture
def tile_grid(tile_grid_gdf):
    return TileGrid(tile_grid_gdf)


@pytest.fixture
def config_path(tmp_path):
    config = {
        "archive": {"base_url": BASE_URL, "tile_grid_url": TILE_GRID_URL},
        "catalog": {"request_delay_seconds": 0, "first_year": 2012},
        "fetch": {"timeout_seconds": 5, "max_retries": 1, "retry_delay_seconds": 0},
        "download": {
            "max_workers": 2,
            "timeout_seconds": 5,
            "chunk_size": 1024,
            "scratch_directory": str(tmp_path / "scratch"),
        },
        "logging": {"level": "INFO", "log_directory": None},
    }
    path = tmp_path / "blackmarble_test_config.yaml"
    with open(path, "w", encoding="utf-8") as f:
        yaml.safe_dump(config, f)
    return str(path)
