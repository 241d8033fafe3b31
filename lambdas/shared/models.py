"""Pydantic V2 models for the report pipeline.

``PropertyRecord`` is the contract with the caller: a flat, loosely typed
mapping of parcel metrics turned into an explicit schema of optional fields.
``NormalizedView`` is what the formatter hands to the prompt builder.
"""

from __future__ import annotations

import logging
import re
from typing import Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from lambdas.shared.formatting import GrowthDirection

logger = logging.getLogger(__name__)

RawValue = Union[float, str, None]

RADII_MILES = (5, 10)

TEXT_FIELDS = (
    "stock_number",
    "parcel_id",
    "address",
    "county",
    "state",
    "zoning",
    "flood_zone",
)

_CAMEL_BOUNDARY_RE = re.compile(r"(?<=[a-z])(?=[A-Z])")
_KEY_SEPARATOR_RE = re.compile(r"[^0-9A-Za-z]+")


def normalize_key(key: str) -> str:
    """``"Land Area (AC)"`` -> ``"land_area_ac"``, ``"StockNumber"`` -> ``"stock_number"``."""
    key = _CAMEL_BOUNDARY_RE.sub("_", key.strip())
    return _KEY_SEPARATOR_RE.sub("_", key).strip("_").lower()


def _fits_float(value: int) -> bool:
    try:
        float(value)
    except OverflowError:
        return False
    return True


class PropertyRecord(BaseModel):
    """A parcel's raw metrics.  Every field is optional and unparsed."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    # Identity and location
    stock_number: str | None = None
    parcel_id: str | None = None
    address: str | None = None
    county: str | None = None
    state: str | None = None
    zoning: str | None = None
    flood_zone: str | None = None

    # Price
    for_sale_price: RawValue = None
    land_area_ac: RawValue = None

    # Scores and their percentiles
    composite_score: RawValue = None
    demand_for_attainable_rent: RawValue = None
    housing_gap: RawValue = None
    home_affordability_gap: RawValue = None
    weighted_demand_and_convenience: RawValue = None
    composite_score_percentile: RawValue = None
    demand_for_attainable_rent_percentile: RawValue = None
    housing_gap_percentile: RawValue = None
    home_affordability_gap_percentile: RawValue = None
    weighted_demand_and_convenience_percentile: RawValue = None

    # County-level market figures
    population: RawValue = None
    median_income: RawValue = None
    median_home_value: RawValue = None
    population_growth: RawValue = None

    # Amenity distances (miles)
    walmart_distance_mi: RawValue = None
    grocery_distance_mi: RawValue = None
    hospital_distance_mi: RawValue = None
    school_distance_mi: RawValue = None
    highway_distance_mi: RawValue = None

    # 5-mile radius
    population_5mi: RawValue = None
    households_5mi: RawValue = None
    median_household_income_5mi: RawValue = None
    median_home_value_5mi: RawValue = None
    median_gross_rent_5mi: RawValue = None
    pop_growth_current_5mi: RawValue = None
    pop_growth_future_5mi: RawValue = None
    housing_units_5mi: RawValue = None
    occupied_units_5mi: RawValue = None
    owner_occupied_5mi: RawValue = None
    renter_occupied_5mi: RawValue = None
    income_under_10k_5mi: RawValue = None
    income_10k_15k_5mi: RawValue = None
    income_15k_25k_5mi: RawValue = None
    income_25k_35k_5mi: RawValue = None
    income_35k_50k_5mi: RawValue = None
    income_50k_75k_5mi: RawValue = None
    income_75k_100k_5mi: RawValue = None
    income_100k_150k_5mi: RawValue = None
    income_150k_200k_5mi: RawValue = None
    income_200k_plus_5mi: RawValue = None

    # 10-mile radius
    population_10mi: RawValue = None
    households_10mi: RawValue = None
    median_household_income_10mi: RawValue = None
    median_home_value_10mi: RawValue = None
    median_gross_rent_10mi: RawValue = None
    pop_growth_current_10mi: RawValue = None
    pop_growth_future_10mi: RawValue = None
    housing_units_10mi: RawValue = None
    occupied_units_10mi: RawValue = None
    owner_occupied_10mi: RawValue = None
    renter_occupied_10mi: RawValue = None
    income_under_10k_10mi: RawValue = None
    income_10k_15k_10mi: RawValue = None
    income_15k_25k_10mi: RawValue = None
    income_25k_35k_10mi: RawValue = None
    income_35k_50k_10mi: RawValue = None
    income_50k_75k_10mi: RawValue = None
    income_75k_100k_10mi: RawValue = None
    income_100k_150k_10mi: RawValue = None
    income_150k_200k_10mi: RawValue = None
    income_200k_plus_10mi: RawValue = None

    @model_validator(mode="before")
    @classmethod
    def normalize_keys(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        cleaned: dict[str, Any] = {}
        for key, value in data.items():
            name = normalize_key(str(key))
            if isinstance(value, bool) or not isinstance(value, (int, float, str)):
                if value is not None:
                    logger.debug("Dropping non-scalar value for %s", name)
                value = None
            elif isinstance(value, int) and not _fits_float(value):
                logger.debug("Dropping out-of-range integer for %s", name)
                value = None
            if cleaned.get(name) is None:
                cleaned[name] = value
        return cleaned

    @field_validator(*TEXT_FIELDS, mode="before")
    @classmethod
    def numbers_as_text(cls, value: Any) -> Any:
        if isinstance(value, float) and value.is_integer():
            return str(int(value))
        if isinstance(value, (int, float)):
            return str(value)
        return value

    def radius_value(self, name: str, radius: int) -> RawValue:
        """Look up a per-radius field, e.g. ``radius_value("households", 5)``."""
        return getattr(self, f"{name}_{radius}mi", None)


# ---------------------------------------------------------------------------
# Normalized view
# ---------------------------------------------------------------------------

class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True)


class GrowthTrend(_Frozen):
    """Population growth in the current window vs. the projected one."""

    current: str
    future: str
    direction: GrowthDirection


class IncomeShare(_Frozen):
    label: str
    share: str


class AmenityDistance(_Frozen):
    label: str
    distance: str


class PercentileRank(_Frozen):
    label: str
    rank: str


class RadiusProfile(_Frozen):
    """Demographics within one radius of the parcel."""

    radius_miles: int
    population: str
    households: str
    median_household_income: str
    median_home_value: str
    median_gross_rent: str
    population_growth: GrowthTrend | None = None
    income_distribution: tuple[IncomeShare, ...] = ()
    occupancy_rate: str
    vacancy_rate: str
    owner_occupied_share: str
    renter_occupied_share: str


class NormalizedView(_Frozen):
    """Display-ready view of a property.  Every value is a string or a label."""

    stock_number: str
    parcel_id: str
    address: str
    location: str
    zoning: str

    price: str
    acreage: str
    price_per_acre: str

    flood_zone: str
    flood_risk: str

    composite_score: str
    demand_for_attainable_rent: str
    housing_gap: str
    home_affordability_gap: str
    weighted_demand_and_convenience: str

    population: str
    median_income: str
    median_home_value: str
    population_growth: str

    amenities: tuple[AmenityDistance, ...] = ()
    percentile_rankings: tuple[PercentileRank, ...] = ()
    radii: tuple[RadiusProfile, ...] = ()


# ---------------------------------------------------------------------------
# Request / prompt / result
# ---------------------------------------------------------------------------

class ReportRequest(BaseModel):
    """Body of a POST to the report endpoint."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    property_data: dict[str, Any] | None = Field(default=None, alias="propertyData")
    user_narrative: str | None = Field(default=None, alias="userNarrative")


class ReportPrompt(_Frozen):
    system: str
    user: str


class UsageStats(_Frozen):
    input_tokens: int = 0
    output_tokens: int = 0
    total_tokens: int = 0


class ReportSuccess(_Frozen):
    status: Literal["success"] = "success"
    report: str
    usage: UsageStats | None = None


class ReportFailure(_Frozen):
    status: Literal["failure"] = "failure"
    kind: Literal["configuration", "downstream"]
    message: str


ReportResult = Union[ReportSuccess, ReportFailure]
