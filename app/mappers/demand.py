from datetime import date

from app.mappers.events import parse_events, parse_peak_months
from app.schemas.pricing import CityEvent, DemandContext, DemandModel, EventImpact
from app.schemas.supabase import CityDemand

PEAK_MONTH_UPLIFT = 0.20
EVENT_UPLIFT = 0.30

PEAK_MONTH_SCORE = 0.30
IMPACT_SCORES = {
    EventImpact.low: 0.10,
    EventImpact.medium: 0.20,
    EventImpact.high: 0.30,
    EventImpact.very_high: 0.40,
}
MAX_DEMAND_SCORE = 1.0
SCORE_TO_MULTIPLIER = 0.5


def _contains(event: CityEvent, day: date) -> bool:
    return event.start <= day <= event.end


def _overlaps(event: CityEvent, check_in: date, check_out: date) -> bool:
    return (
        _contains(event, check_in)
        or _contains(event, check_out)
        or (check_in <= event.start and check_out >= event.end)
    )


def binary_demand(
    demand: CityDemand | None, check_in: date
) -> DemandContext:
    """+20% in a peak month, +30% when check-in falls inside an event."""
    peak_months_raw = demand.peak_months if demand else None
    is_peak = check_in.month in parse_peak_months(peak_months_raw)

    active: CityEvent | None = None
    for event in parse_events(demand.events if demand else None):
        if _contains(event, check_in):
            active = event
            break

    multiplier = 1.0
    if is_peak:
        multiplier += PEAK_MONTH_UPLIFT
    if active:
        multiplier += EVENT_UPLIFT

    return DemandContext(
        is_peak_month=is_peak,
        peak_months=peak_months_raw,
        event_active=active is not None,
        event_name=active.name if active else None,
        events=[active] if active else [],
        multiplier=round(multiplier, 2),
    )


def weighted_demand(
    demand: CityDemand | None, check_in: date, check_out: date
) -> DemandContext:
    """Score peak month and every overlapping event by impact, capped at 1.0."""
    peak_months_raw = demand.peak_months if demand else None
    is_peak = check_in.month in parse_peak_months(peak_months_raw)

    overlapping = [
        e
        for e in parse_events(demand.events if demand else None)
        if _overlaps(e, check_in, check_out)
    ]

    score = PEAK_MONTH_SCORE if is_peak else 0.0
    for event in overlapping:
        score += IMPACT_SCORES[event.impact]
    score = round(min(score, MAX_DEMAND_SCORE), 2)

    return DemandContext(
        is_peak_month=is_peak,
        peak_months=peak_months_raw,
        event_active=bool(overlapping),
        event_name=overlapping[0].name if overlapping else None,
        events=overlapping,
        demand_score=score,
        multiplier=round(1 + score * SCORE_TO_MULTIPLIER, 4),
    )


def compute_demand(
    demand: CityDemand | None,
    check_in: date,
    check_out: date,
    model: DemandModel = DemandModel.binary,
) -> DemandContext:
    if model == DemandModel.weighted:
        return weighted_demand(demand, check_in, check_out)
    return binary_demand(demand, check_in)


def demand_label(score: float) -> str:
    if score >= 0.7:
        return "Very High Demand"
    if score >= 0.5:
        return "High Demand"
    if score >= 0.3:
        return "Moderate Demand"
    return "Low Demand"
