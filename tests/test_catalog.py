"""
Tests for reading LAADS catalog listings.
"""

import logging

import pandas as pd

from blackmarble_ntl.data_prep.blackmarble_helper.catalog import (
    CATALOG_COLUMNS,
    CatalogReader,
    filter_by_tiles,
)
from conftest import BASE_URL, FakeFetcher, listing_csv

NAMES = [
    "VNP46A2.A2021032.h20v08.001.2021043000000.h5",
    "VNP46A2.A2021032.h21v08.001.2021043000000.h5",
    "VNP46A2.A2021032.h05v04.001.2021043000000.h5",
]


def test_listing_url():
    reader = CatalogReader(FakeFetcher(), BASE_URL + "/", request_delay=0)
    assert reader.listing_url("VNP46A2", 2021, 32) == f"{BASE_URL}/VNP46A2/2021/032.csv"


def test_read_listing_tags_year_and_day():
    url = f"{BASE_URL}/VNP46A2/2021/032.csv"
    reader = CatalogReader(FakeFetcher({url: listing_csv(NAMES)}), BASE_URL, request_delay=0)

    listing = reader.read_listing("VNP46A2", 2021, "032")

    assert list(listing["name"]) == NAMES
    assert set(listing["year"]) == {2021}
    assert set(listing["day"]) == {"032"}


def test_read_listing_failure_is_a_warning(caplog):
    reader = CatalogReader(FakeFetcher(), BASE_URL, request_delay=0)

    with caplog.at_level(logging.WARNING):
        listing = reader.read_listing("VNP46A2", 2021, "033")

    assert listing.empty
    assert list(listing.columns) == CATALOG_COLUMNS
    assert "year: 2021; day: 033" in caplog.text


def test_read_listing_with_unexpected_content(caplog):
    url = f"{BASE_URL}/VNP46A2/2021/032.csv"
    reader = CatalogReader(FakeFetcher({url: b"foo,bar\n1,2\n"}), BASE_URL, request_delay=0)

    with caplog.at_level(logging.WARNING):
        listing = reader.read_listing("VNP46A2", 2021, "032")

    assert listing.empty
    assert "day: 032" in caplog.text


def test_read_listing_waits_after_each_request(monkeypatch):
    sleeps = []
    monkeypatch.setattr(
        "blackmarble_ntl.data_prep.blackmarble_helper.catalog.time.sleep", sleeps.append
    )
    reader = CatalogReader(FakeFetcher(), BASE_URL, request_delay=0.1)

    reader.read_listing("VNP46A2", 2021, "001")
    reader.read_listing("VNP46A2", 2021, "002")

    assert sleeps == [0.1, 0.1]


def test_read_listings_skips_failed_days():
    url = f"{BASE_URL}/VNP46A3/2021/060.csv"
    names = ["VNP46A3.A2021060.h20v08.001.2021100000000.h5"]
    fetcher = FakeFetcher({url: listing_csv(names)})
    reader = CatalogReader(fetcher, BASE_URL, request_delay=0)

    listing = reader.read_listings("VNP46A3", [(2021, "060"), (2021, "061")])

    assert list(listing["name"]) == names
    assert len(fetcher.calls) == 2


def test_build_catalog_reads_matching_days():
    resources = {
        f"{BASE_URL}/VNP46A3/2020/061.csv": listing_csv(
            ["VNP46A3.A2020061.h20v08.001.2020100000000.h5"]
        ),
    }
    fetcher = FakeFetcher(resources)
    reader = CatalogReader(fetcher, BASE_URL, request_delay=0)

    catalog = reader.build_catalog("VNP46A3", years=[2020], months=[3])

    assert sorted(fetcher.calls) == [
        f"{BASE_URL}/VNP46A3/2020/060.csv",
        f"{BASE_URL}/VNP46A3/2020/061.csv",
    ]
    assert list(catalog["day"]) == ["061"]


def test_filter_by_tiles():
    listing = pd.DataFrame({"name": NAMES, "year": 2021, "day": "032"})

    filtered = filter_by_tiles(listing, {"h20v08", "h21v08"})

    assert list(filtered["name"]) == NAMES[:2]


def test_filter_by_empty_tile_set():
    listing = pd.DataFrame({"name": NAMES, "year": 2021, "day": "032"})
    assert filter_by_tiles(listing, set()).empty


def test_alternative_day_codes_only_warn_when_none_resolved(caplog):
    names = ["VNP46A3.A2021060.h20v08.001.2021100000000.h5"]
    fetcher = FakeFetcher({f"{BASE_URL}/VNP46A3/2021/060.csv": listing_csv(names)})
    reader = CatalogReader(fetcher, BASE_URL, request_delay=0)

    with caplog.at_level(logging.INFO):
        listing = reader.read_alternatives("VNP46A3", [(2021, "060"), (2021, "061")])

    assert list(listing["name"]) == names
    assert not [r for r in caplog.records if r.levelno >= logging.WARNING]
    assert "day: 061" in caplog.text


def test_alternative_day_codes_all_missing(caplog):
    reader = CatalogReader(FakeFetcher(), BASE_URL, request_delay=0)

    with caplog.at_level(logging.WARNING):
        listing = reader.read_alternatives("VNP46A3", [(2021, "274"), (2021, "275")])

    assert listing.empty
    warnings = [r.getMessage() for r in caplog.records if r.levelno == logging.WARNING]
    assert len(warnings) == 2
    assert "day: 274" in warnings[0]
    assert "day: 275" in warnings[1]
