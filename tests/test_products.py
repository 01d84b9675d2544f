"""
Tests for Black Marble product definitions and date resolution.
"""

from datetime import date, datetime

import pytest

from blackmarble_ntl.data_prep.blackmarble_helper.products import (
    MONTH_START_DAY_CODES,
    Product,
    ProductGeneration,
    catalog_parameters,
    date_label,
    month_day_codes,
    month_start_day_to_month,
    normalize_date,
    pad2,
    pad3,
    resolve_day_codes,
)


def test_product_from_value():
    assert Product.from_value("VNP46A3") is Product.VNP46A3
    assert Product.from_value("vnp46a2") is Product.VNP46A2
    assert Product.from_value(Product.VNP46A4) is Product.VNP46A4
    with pytest.raises(ValueError):
        Product.from_value("VNP46A9")


def test_product_properties():
    assert Product.VNP46A1.granularity == "daily"
    assert Product.VNP46A2.granularity == "daily"
    assert Product.VNP46A3.granularity == "monthly"
    assert Product.VNP46A4.granularity == "annual"

    assert Product.VNP46A2.generation is ProductGeneration.NEW
    assert Product.VNP46A4.generation is ProductGeneration.OLD

    assert Product.VNP46A1.default_variable == "DNB_At_Sensor_Radiance_500m"
    assert Product.VNP46A2.default_variable == "Gap_Filled_DNB_BRDF-Corrected_NTL"
    assert Product.VNP46A3.default_variable == "NearNadir_Composite_Snow_Free"
    assert Product.VNP46A4.default_variable == "NearNadir_Composite_Snow_Free"


def test_padding():
    for i in range(10):
        assert pad2(i) == f"0{i}"
        assert pad3(i) == f"00{i}"
    for i in range(10, 100):
        assert pad2(i) == str(i)
        assert pad3(i) == f"0{i}"
    assert pad3(366) == "366"


def test_padding_is_idempotent():
    assert pad2("07") == "07"
    assert pad3("032") == "032"
    assert pad3(pad3(5)) == "005"


def test_padding_rejects_bad_input():
    with pytest.raises(ValueError):
        pad2(123)
    with pytest.raises(ValueError):
        pad3("abc")
    with pytest.raises(ValueError):
        pad3(-1)


def test_month_table_codes_map_to_their_month():
    assert len(MONTH_START_DAY_CODES) == 12
    assert sum(len(codes) for codes in MONTH_START_DAY_CODES.values()) == 24
    for month, codes in MONTH_START_DAY_CODES.items():
        for code in codes:
            mapped = month_start_day_to_month(code)
            assert 1 <= mapped <= 12
            assert mapped == month


def test_month_table_matches_calendar():
    for month, (non_leap, leap) in MONTH_START_DAY_CODES.items():
        assert date(2021, month, 1).timetuple().tm_yday == int(non_leap)
        assert date(2020, month, 1).timetuple().tm_yday == int(leap)


def test_month_start_day_to_month_unknown_code():
    assert month_start_day_to_month("002") is None
    assert month_start_day_to_month(61) == 3
    assert month_start_day_to_month("not a day") is None


def test_month_day_codes():
    assert month_day_codes(1) == ["001"]
    assert month_day_codes(3) == ["060", "061"]
    with pytest.raises(ValueError):
        month_day_codes(13)


def test_normalize_date_daily():
    assert normalize_date("VNP46A2", "2021-10-03") == date(2021, 10, 3)
    assert normalize_date("VNP46A1", datetime(2021, 10, 3, 12)) == date(2021, 10, 3)
    with pytest.raises(ValueError):
        normalize_date("VNP46A2", "2021-10")
    with pytest.raises(ValueError):
        normalize_date("VNP46A2", "2021-02-30")


def test_normalize_date_monthly():
    assert normalize_date("VNP46A3", "2021-03") == date(2021, 3, 1)
    assert normalize_date("VNP46A3", "2021-03-17") == date(2021, 3, 1)
    with pytest.raises(ValueError):
        normalize_date("VNP46A3", "2021")


def test_normalize_date_annual():
    assert normalize_date("VNP46A4", "2021") == date(2021, 1, 1)
    assert normalize_date("VNP46A4", 2021) == date(2021, 1, 1)
    assert normalize_date("VNP46A4", "2021-10-01") == date(2021, 1, 1)
    with pytest.raises(ValueError):
        normalize_date("VNP46A4", "twenty")


def test_resolve_day_codes():
    assert resolve_day_codes("VNP46A2", "2021-02-01") == [(2021, "032")]
    assert resolve_day_codes("VNP46A1", "2020-12-31") == [(2020, "366")]
    assert resolve_day_codes("VNP46A3", "2021-03") == [(2021, "060"), (2021, "061")]
    assert resolve_day_codes("VNP46A3", "2021-01-20") == [(2021, "001")]
    assert resolve_day_codes("VNP46A4", 2019) == [(2019, "001")]


def test_date_label():
    assert date_label("VNP46A2", "2021-10-03") == "t2021_10_03"
    assert date_label("VNP46A3", "2021-10") == "t2021_10"
    assert date_label("VNP46A3", "2021-10-15") == "t2021_10"
    assert date_label("VNP46A4", "2021-10-15") == "t2021"


def test_catalog_parameters_annual():
    params = catalog_parameters("VNP46A4", years=[2015, 2016], last_year=2020)
    assert list(params["year"]) == [2015, 2016]
    assert list(params["day"]) == ["001", "001"]


def test_catalog_parameters_monthly():
    params = catalog_parameters("VNP46A3", years=[2020], months=[3], last_year=2021)
    assert sorted(params["day"]) == ["060", "061"]
    assert set(params["month"]) == {3}

    all_months = catalog_parameters("VNP46A3", years=[2021], last_year=2021)
    assert len(all_months) == 22


def test_catalog_parameters_daily():
    params = catalog_parameters("VNP46A2", years=[2021], days=[32], last_year=2021)
    assert params.to_dict("records") == [{"year": 2021, "day": "032", "month": 2}]

    leap = catalog_parameters("VNP46A2", years=[2020], last_year=2021)
    non_leap = catalog_parameters("VNP46A2", years=[2021], last_year=2021)
    assert len(leap) == 366
    assert len(non_leap) == 365
