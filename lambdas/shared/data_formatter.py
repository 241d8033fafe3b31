"""Turn a raw ``PropertyRecord`` into a display-ready ``NormalizedView``.

``normalize`` never raises: any field that cannot be computed shows up as
``"N/A"`` in the view, and growth trends that cannot be classified are left
out entirely.
"""

from __future__ import annotations

import logging
import math
import re
from typing import Mapping, NamedTuple

from lambdas.shared.formatting import (
    NOT_AVAILABLE,
    calculate_percentage,
    classify_growth,
    format_currency,
    format_distance,
    format_number,
    format_percent,
    format_percentile,
    format_text,
    price_per_acre,
    to_number,
)
from lambdas.shared.models import (
    RADII_MILES,
    AmenityDistance,
    GrowthTrend,
    IncomeShare,
    NormalizedView,
    PercentileRank,
    PropertyRecord,
    RadiusProfile,
)

logger = logging.getLogger(__name__)


class IncomeBin(NamedTuple):
    """Household income bin as reported by the census tables."""

    lower: float
    upper: float | None
    field: str

    def overlap(self, lower: float, upper: float | None) -> float:
        """Fraction of this bin's households that fall in ``[lower, upper)``.

        Households are assumed to be spread uniformly across a bin.  The
        open-ended top bin has no width to apportion over, so it belongs
        wholly to an open-ended query and to nothing else.
        """
        if self.upper is None:
            return 1.0 if upper is None else 0.0
        query_upper = math.inf if upper is None else upper
        covered = min(self.upper, query_upper) - max(self.lower, lower)
        if covered <= 0:
            return 0.0
        return covered / (self.upper - self.lower)


class IncomeBand(NamedTuple):
    label: str
    lower: float
    upper: float | None


INCOME_BINS = (
    IncomeBin(0, 10_000, "income_under_10k"),
    IncomeBin(10_000, 15_000, "income_10k_15k"),
    IncomeBin(15_000, 25_000, "income_15k_25k"),
    IncomeBin(25_000, 35_000, "income_25k_35k"),
    IncomeBin(35_000, 50_000, "income_35k_50k"),
    IncomeBin(50_000, 75_000, "income_50k_75k"),
    IncomeBin(75_000, 100_000, "income_75k_100k"),
    IncomeBin(100_000, 150_000, "income_100k_150k"),
    IncomeBin(150_000, 200_000, "income_150k_200k"),
    IncomeBin(200_000, None, "income_200k_plus"),
)

INCOME_BANDS = (
    IncomeBand("Under $30,000", 0, 30_000),
    IncomeBand("$30,000 to $60,000", 30_000, 60_000),
    IncomeBand("$60,000 to $100,000", 60_000, 100_000),
    IncomeBand("$100,000 to $150,000", 100_000, 150_000),
    IncomeBand("$150,000 and above", 150_000, None),
)

AMENITIES = (
    ("Walmart", "walmart_distance_mi"),
    ("Grocery store", "grocery_distance_mi"),
    ("Hospital", "hospital_distance_mi"),
    ("School", "school_distance_mi"),
    ("Highway access", "highway_distance_mi"),
)

PERCENTILE_SCORES = (
    ("Composite Score", "composite_score_percentile"),
    ("Demand for Attainable Rent", "demand_for_attainable_rent_percentile"),
    ("Housing Gap", "housing_gap_percentile"),
    ("Home Affordability Gap", "home_affordability_gap_percentile"),
    ("Weighted Demand and Convenience", "weighted_demand_and_convenience_percentile"),
)

_ZONE_NOISE_RE = re.compile(r"[^0-9A-Z]")


# ---------------------------------------------------------------------------
# Income distribution
# ---------------------------------------------------------------------------

def income_bracket_share(
    counts: Mapping[str, object],
    total_households,
    lower: float,
    upper: float | None,
) -> float | None:
    """Percent of households earning within ``[lower, upper)``.

    ``counts`` maps ``IncomeBin.field`` names to household counts; missing or
    unparseable counts are treated as zero.  Returns ``None`` when the total
    is missing or not positive.  The result is clamped to ``[0, 100]``.
    """
    total = to_number(total_households)
    if total is None or total <= 0:
        return None

    households = 0.0
    for income_bin in INCOME_BINS:
        fraction = income_bin.overlap(lower, upper)
        if not fraction:
            continue
        count = to_number(counts.get(income_bin.field))
        if count:
            households += count * fraction

    share = households / total * 100
    return min(100.0, max(0.0, share))


def format_income_share(counts, total_households, lower, upper) -> str:
    share = income_bracket_share(counts, total_households, lower, upper)
    if share is None:
        return NOT_AVAILABLE
    return format_percent(share, 1)


def income_distribution(record: PropertyRecord, radius: int) -> tuple[IncomeShare, ...]:
    counts = {b.field: record.radius_value(b.field, radius) for b in INCOME_BINS}
    total = record.radius_value("households", radius)
    return tuple(
        IncomeShare(
            label=band.label,
            share=format_income_share(counts, total, band.lower, band.upper),
        )
        for band in INCOME_BANDS
    )


# ---------------------------------------------------------------------------
# Classifications
# ---------------------------------------------------------------------------

def growth_trend(current, future) -> GrowthTrend | None:
    direction = classify_growth(current, future)
    if direction is None:
        return None
    return GrowthTrend(
        current=format_percent(current),
        future=format_percent(future),
        direction=direction,
    )


def classify_flood_zone(code) -> str:
    """Map a FEMA flood zone designation to a risk label."""
    if code is None:
        return NOT_AVAILABLE
    zone = _ZONE_NOISE_RE.sub("", str(code).upper())
    if zone.startswith("ZONE"):
        zone = zone[4:]
    if not zone:
        return NOT_AVAILABLE
    if zone.startswith("V"):
        return "High risk (coastal Special Flood Hazard Area)"
    if zone.startswith("A"):
        return "High risk (Special Flood Hazard Area)"
    if zone in {"B", "X500", "XSHADED", "SHADEDX"}:
        return "Moderate risk"
    if zone in {"C", "X", "XUNSHADED", "UNSHADEDX"}:
        return "Minimal risk"
    if zone == "D":
        return "Undetermined risk"
    return "Unclassified zone"


def format_location(county, state) -> str:
    county_text = format_text(county)
    if county_text != NOT_AVAILABLE and not county_text.lower().endswith("county"):
        county_text = f"{county_text} County"
    return f"{county_text}, {format_text(state)}"


# ---------------------------------------------------------------------------
# Radius profiles
# ---------------------------------------------------------------------------

def radius_profile(record: PropertyRecord, radius: int) -> RadiusProfile:
    value = record.radius_value
    housing_units = value("housing_units", radius)
    occupied = value("occupied_units", radius)

    vacant = None
    units_count = to_number(housing_units)
    occupied_count = to_number(occupied)
    if units_count is not None and occupied_count is not None:
        vacant = units_count - occupied_count

    return RadiusProfile(
        radius_miles=radius,
        population=format_number(value("population", radius)),
        households=format_number(value("households", radius)),
        median_household_income=format_currency(value("median_household_income", radius)),
        median_home_value=format_currency(value("median_home_value", radius)),
        median_gross_rent=format_currency(value("median_gross_rent", radius)),
        population_growth=growth_trend(
            value("pop_growth_current", radius),
            value("pop_growth_future", radius),
        ),
        income_distribution=income_distribution(record, radius),
        occupancy_rate=calculate_percentage(occupied, housing_units),
        vacancy_rate=calculate_percentage(vacant, housing_units),
        owner_occupied_share=calculate_percentage(value("owner_occupied", radius), occupied),
        renter_occupied_share=calculate_percentage(value("renter_occupied", radius), occupied),
    )


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

def normalize(record: PropertyRecord) -> NormalizedView:
    """Build the display view for one property."""
    view = NormalizedView(
        stock_number=format_text(record.stock_number),
        parcel_id=format_text(record.parcel_id),
        address=format_text(record.address),
        location=format_location(record.county, record.state),
        zoning=format_text(record.zoning),
        price=format_currency(record.for_sale_price),
        acreage=format_number(record.land_area_ac, 2),
        price_per_acre=price_per_acre(record.for_sale_price, record.land_area_ac),
        flood_zone=format_text(record.flood_zone),
        flood_risk=classify_flood_zone(record.flood_zone),
        composite_score=format_number(record.composite_score, 1),
        demand_for_attainable_rent=format_number(record.demand_for_attainable_rent, 1),
        housing_gap=format_number(record.housing_gap, 1),
        home_affordability_gap=format_number(record.home_affordability_gap, 1),
        weighted_demand_and_convenience=format_number(record.weighted_demand_and_convenience, 1),
        population=format_number(record.population),
        median_income=format_currency(record.median_income),
        median_home_value=format_currency(record.median_home_value),
        population_growth=format_percent(record.population_growth),
        amenities=tuple(
            AmenityDistance(label=label, distance=format_distance(getattr(record, field)))
            for label, field in AMENITIES
        ),
        percentile_rankings=tuple(
            PercentileRank(label=label, rank=format_percentile(getattr(record, field)))
            for label, field in PERCENTILE_SCORES
        ),
        radii=tuple(radius_profile(record, radius) for radius in RADII_MILES),
    )
    logger.debug(
        "Normalized stock #%s (%s, %s acres)",
        view.stock_number, view.location, view.acreage,
    )
    return view
