"""Prompt text for the land investment report."""

from __future__ import annotations

import logging
import textwrap

from lambdas.shared.formatting import NOT_AVAILABLE, ordinal
from lambdas.shared.models import GrowthTrend, NormalizedView, RadiusProfile, ReportPrompt

logger = logging.getLogger(__name__)

MAX_NARRATIVE_CHARS = 4000

SYSTEM_PROMPT = (
    "You are an expert land investment analyst. Create a professional "
    "investment analysis report about a property based on its data metrics. "
    "Format your response in HTML for display on a website. Include sections "
    "for Overview, Investment Potential, Market Analysis, Risk Factors, and "
    "Recommendations. Use detailed analysis and professional language, and "
    "call out any metric reported as N/A as unavailable rather than guessing "
    "at it. Make sure the HTML is valid and includes appropriate Bootstrap 5 "
    "styling classes for a professional appearance."
)


def _growth_line(trend: GrowthTrend | None) -> list[str]:
    if trend is None:
        return []
    return [
        f"- Population Growth: {trend.current} (current) vs. "
        f"{trend.future} (projected), {trend.direction}"
    ]


def _radius_section(profile: RadiusProfile) -> str:
    lines = [
        f"## Demographics ({profile.radius_miles}-mile radius)",
        f"- Population: {profile.population}",
        f"- Households: {profile.households}",
        f"- Median Household Income: {profile.median_household_income}",
        f"- Median Home Value: {profile.median_home_value}",
        f"- Median Gross Rent: {profile.median_gross_rent}",
        *_growth_line(profile.population_growth),
        "",
        f"### Household Income Distribution ({profile.radius_miles}-mile radius)",
        *(f"- {share.label}: {share.share}" for share in profile.income_distribution),
        "",
        f"### Housing Occupancy ({profile.radius_miles}-mile radius)",
        f"- Occupancy Rate: {profile.occupancy_rate}",
        f"- Vacancy Rate: {profile.vacancy_rate}",
        f"- Owner-Occupied: {profile.owner_occupied_share}",
        f"- Renter-Occupied: {profile.renter_occupied_share}",
    ]
    return "\n".join(lines)


def _rank_text(rank: str) -> str:
    if rank == NOT_AVAILABLE:
        return rank
    return f"{ordinal(rank)} percentile"


def clean_narrative(narrative: str | None) -> str | None:
    if narrative is None:
        return None
    text = narrative.strip()
    if not text:
        return None
    if len(text) > MAX_NARRATIVE_CHARS:
        logger.warning(
            "Truncating analyst narrative from %d to %d characters",
            len(text), MAX_NARRATIVE_CHARS,
        )
        text = text[:MAX_NARRATIVE_CHARS]
    return text


def build_prompt(view: NormalizedView, narrative: str | None = None) -> ReportPrompt:
    """Serialize the view (and optional analyst notes) into the user prompt."""
    header = textwrap.dedent(f"""\
    Generate an investment analysis report for this property.

    ## Property Identification
    - Property Stock #: {view.stock_number}
    - Parcel ID: {view.parcel_id}
    - Zoning: {view.zoning}

    ## Location
    - Address: {view.address}
    - Location: {view.location}

    ## Price & Valuation
    - Price: {view.price}
    - Acres: {view.acreage}
    - Price Per Acre: {view.price_per_acre}

    ## Flood & Environmental Risk
    - Flood Zone: {view.flood_zone}
    - Flood Risk: {view.flood_risk}

    ## Investment Scores
    - Composite Score: {view.composite_score}/100
    - Demand for Attainable Rent: {view.demand_for_attainable_rent}
    - Housing Gap: {view.housing_gap}
    - Home Affordability Gap: {view.home_affordability_gap}
    - Weighted Demand and Convenience: {view.weighted_demand_and_convenience}

    ## Market Overview
    - Population: {view.population}
    - Median Income: {view.median_income}
    - Median Home Value: {view.median_home_value}
    - Population Growth: {view.population_growth}""")

    sections = [header]
    sections.extend(_radius_section(profile) for profile in view.radii)
    sections.append("\n".join([
        "## Amenity Distances",
        *(f"- {a.label}: {a.distance}" for a in view.amenities),
    ]))
    sections.append("\n".join([
        "## Percentile Rankings",
        *(f"- {p.label}: {_rank_text(p.rank)}" for p in view.percentile_rankings),
    ]))

    notes = clean_narrative(narrative)
    if notes:
        sections.append(f"## Analyst Notes\n{notes}")

    return ReportPrompt(system=SYSTEM_PROMPT, user="\n\n".join(sections))
