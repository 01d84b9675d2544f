"""
Black Marble product definitions and date resolution.

This module describes the VNP46 product suite and maps calendar dates to the
(year, day-of-year code) keys used by the LAADS archive to organise files.
"""

import calendar
import re
from datetime import date, datetime, timedelta
from enum import Enum
from typing import Dict, Iterable, List, Optional, Tuple, Union

import pandas as pd

DateLike = Union[str, int, date, datetime]

NEW_GENERATION_GROUP = "HDFEOS/GRIDS/VNP_Grid_DNB/Data Fields"
OLD_GENERATION_GROUP = "HDFEOS/GRIDS/VIIRS_Grid_DNB_2d/Data Fields"

# (non-leap, leap) start day-of-year code for each month
MONTH_START_DAY_CODES: Dict[int, Tuple[str, str]] = {
    1: ("001", "001"),
    2: ("032", "032"),
    3: ("060", "061"),
    4: ("091", "092"),
    5: ("121", "122"),
    6: ("152", "153"),
    7: ("182", "183"),
    8: ("213", "214"),
    9: ("244", "245"),
    10: ("274", "275"),
    11: ("305", "306"),
    12: ("335", "336"),
}

_CODE_TO_MONTH: Dict[str, int] = {
    code: month for month, codes in MONTH_START_DAY_CODES.items() for code in codes
}

_DATE_PATTERNS = {
    "year": re.compile(r"^(\d{4})$"),
    "month": re.compile(r"^(\d{4})-(\d{1,2})$"),
    "day": re.compile(r"^(\d{4})-(\d{1,2})-(\d{1,2})$"),
}


class ProductGeneration(Enum):
    """HDF5 layout family of a Black Marble file."""

    # Tile bounds come from the tile grid
    NEW = NEW_GENERATION_GROUP
    # Tile bounds come from the embedded lat/lon arrays
    OLD = OLD_GENERATION_GROUP

    @property
    def group_path(self) -> str:
        return self.value


class Product(Enum):
    """
    NASA Black Marble VNP46 product suite.

    Products:
        - VNP46A1: Daily at-sensor top-of-atmosphere nighttime radiance.
        - VNP46A2: Daily moonlight-adjusted, gap-filled nighttime lights.
        - VNP46A3: Monthly composites.
        - VNP46A4: Annual composites.
    """

    VNP46A1 = "VNP46A1"
    VNP46A2 = "VNP46A2"
    VNP46A3 = "VNP46A3"
    VNP46A4 = "VNP46A4"

    @classmethod
    def from_value(cls, value: Union["Product", str]) -> "Product":
        """Return the product for a member or a product id string."""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().upper())
        except ValueError:
            valid = ", ".join(p.value for p in cls)
            raise ValueError(f"Unknown product_id {value!r}; choose one of {valid}")

    @property
    def granularity(self) -> str:
        if self in (Product.VNP46A1, Product.VNP46A2):
            return "daily"
        if self is Product.VNP46A3:
            return "monthly"
        return "annual"

    @property
    def generation(self) -> ProductGeneration:
        if self.granularity == "daily":
            return ProductGeneration.NEW
        return ProductGeneration.OLD

    @property
    def default_variable(self) -> str:
        if self is Product.VNP46A1:
            return "DNB_At_Sensor_Radiance_500m"
        if self is Product.VNP46A2:
            return "Gap_Filled_DNB_BRDF-Corrected_NTL"
        return "NearNadir_Composite_Snow_Free"


def _pad(value: Union[int, str], width: int) -> str:
    text = str(value).strip()
    if not text.isdigit():
        raise ValueError(f"Cannot zero-pad non-numeric value {value!r}")
    if len(text) > width:
        raise ValueError(f"Value {value!r} is wider than {width} characters")
    return text.zfill(width)


def pad2(value: Union[int, str]) -> str:
    """Zero-pad a value to two characters (e.g. 3 -> '03')."""
    return _pad(value, 2)


def pad3(value: Union[int, str]) -> str:
    """Zero-pad a value to three characters (e.g. 32 -> '032')."""
    return _pad(value, 3)


def month_start_day_to_month(day_code: Union[int, str]) -> Optional[int]:
    """
    Map a monthly product day-of-year code to its calendar month.

    Args:
        day_code: Start day-of-year of a monthly composite (e.g. '060')

    Returns:
        Month number (1-12), or None if the code is not a month start
    """
    try:
        return _CODE_TO_MONTH.get(pad3(day_code))
    except ValueError:
        return None


def month_day_codes(month: int) -> List[str]:
    """Distinct day-of-year codes a month may start on (non-leap and leap)."""
    if month not in MONTH_START_DAY_CODES:
        raise ValueError(f"Invalid month: {month}")
    return sorted(set(MONTH_START_DAY_CODES[month]))


def normalize_date(product: Union[Product, str], value: DateLike) -> date:
    """
    Normalize a user supplied date for a product.

    Monthly products accept 'YYYY-MM' or a full date (day ignored). Annual
    products accept 'YYYY', an integer year or a full date (month and day
    ignored). Daily products require a full date.

    Args:
        product: Black Marble product
        value: Date string, integer year, or date object

    Returns:
        The normalized calendar date
    """
    product = Product.from_value(product)

    if isinstance(value, datetime):
        parsed = value.date()
    elif isinstance(value, date):
        parsed = value
    else:
        text = str(value).strip()
        parsed = None
        try:
            if _DATE_PATTERNS["day"].match(text):
                parsed = datetime.strptime(text, "%Y-%m-%d").date()
            elif _DATE_PATTERNS["month"].match(text) and product.granularity != "daily":
                parsed = datetime.strptime(text + "-01", "%Y-%m-%d").date()
            elif _DATE_PATTERNS["year"].match(text) and product.granularity == "annual":
                parsed = date(int(text), 1, 1)
        except ValueError as e:
            raise ValueError(f"Invalid date {value!r} for {product.value}: {e}")
        if parsed is None:
            raise ValueError(
                f"Invalid date {value!r} for {product.value} ({product.granularity} data)"
            )

    if product.granularity == "monthly":
        return parsed.replace(day=1)
    if product.granularity == "annual":
        return parsed.replace(month=1, day=1)
    return parsed


def resolve_day_codes(product: Union[Product, str], value: DateLike) -> List[Tuple[int, str]]:
    """
    Resolve the catalog keys for a date.

    Monthly dates resolve to every start code registered for the month, since
    the same month starts on a different day-of-year in leap years.

    Args:
        product: Black Marble product
        value: Requested date

    Returns:
        List of (year, day-of-year code) tuples
    """
    product = Product.from_value(product)
    day = normalize_date(product, value)

    if product.granularity == "daily":
        return [(day.year, pad3(day.timetuple().tm_yday))]
    if product.granularity == "monthly":
        return [(day.year, code) for code in month_day_codes(day.month)]
    return [(day.year, "001")]


def date_label(product: Union[Product, str], value: DateLike) -> str:
    """Band name for a date, e.g. 't2021_10_03', 't2021_10' or 't2021'."""
    product = Product.from_value(product)
    day = normalize_date(product, value)
    if product.granularity == "daily":
        return f"t{day.year}_{pad2(day.month)}_{pad2(day.day)}"
    if product.granularity == "monthly":
        return f"t{day.year}_{pad2(day.month)}"
    return f"t{day.year}"


def catalog_parameters(
    product: Union[Product, str],
    years: Optional[Iterable[int]] = None,
    months: Optional[Iterable[int]] = None,
    days: Optional[Iterable[int]] = None,
    first_year: int = 2012,
    last_year: Optional[int] = None,
) -> pd.DataFrame:
    """
    Build the (year, day code) grid of catalog listings for a product.

    Args:
        product: Black Marble product
        years: Restrict to these years
        months: Restrict to these months (daily and monthly products)
        days: Restrict to these days of year (daily and monthly products)
        first_year: First year of the archive
        last_year: Last year to include; defaults to the current year

    Returns:
        DataFrame with 'year' and 'day' columns, plus 'month' for daily and
        monthly products
    """
    product = Product.from_value(product)
    if last_year is None:
        last_year = date.today().year

    rows = []
    for year in range(first_year, last_year + 1):
        if product.granularity == "daily":
            n_days = 366 if calendar.isleap(year) else 365
            rows.extend((year, pad3(d)) for d in range(1, n_days + 1))
        elif product.granularity == "monthly":
            rows.extend((year, code) for code in sorted(_CODE_TO_MONTH))
        else:
            rows.append((year, "001"))
    param_df = pd.DataFrame(rows, columns=["year", "day"])

    if product.granularity == "annual":
        months = None
        days = None
    elif product.granularity == "daily":
        # Month of a day of year depends on the year
        param_df["month"] = [
            (date(year, 1, 1) + timedelta(days=int(code) - 1)).month
            for year, code in zip(param_df["year"], param_df["day"])
        ]
    else:
        days = None
        param_df["month"] = param_df["day"].map(_CODE_TO_MONTH)

    if years is not None:
        param_df = param_df[param_df["year"].isin([int(y) for y in years])]
    if months is not None:
        param_df = param_df[param_df["month"].isin([int(m) for m in months])]
    if days is not None:
        param_df = param_df[param_df["day"].astype(int).isin([int(d) for d in days])]

    return param_df.reset_index(drop=True)
