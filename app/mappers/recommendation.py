from datetime import date

from app.mappers.pricing import fairness_label, round_price
from app.schemas.pricing import AdjustedPrices, DemandContext, PriceRange, PriceRecommendation
from app.schemas.supabase import Hotel

FALLBACK_CONFIDENCE = 0.6


def build_fallback_recommendation(
    adjusted: AdjustedPrices,
    city_avg: float,
    demand: DemandContext,
) -> PriceRecommendation:
    """Deterministic recommendation used when the AI answer can't be used."""
    midpoint = (adjusted.min + adjusted.max) / 2

    parts = ["Price recommendation based on demand analysis. "]
    if demand.is_peak_month:
        parts.append("Peak season pricing applies. ")
    if demand.event_active:
        parts.append(f"{demand.event_name} is happening during your dates. ")
    parts.append("This is a calculated estimate.")

    return PriceRecommendation(
        recommended_min_price=round_price(adjusted.min),
        recommended_max_price=round_price(adjusted.max),
        fairness_label=fairness_label(midpoint, city_avg),
        confidence_score=FALLBACK_CONFIDENCE,
        explanation="".join(parts),
    )


def build_insight_payload(
    hotel: Hotel,
    base: PriceRange,
    adjusted: AdjustedPrices,
    demand: DemandContext,
    check_in: date,
    check_out: date,
    nights: int,
    guests: int,
    budget_min: float | None = None,
    budget_max: float | None = None,
) -> dict:
    """Structured input for the price insight prompt."""
    return {
        "hotel": {
            "hotel_name": hotel.hotel_name,
            "city": hotel.city,
            "rating": hotel.rating or 0,
            "reviews": hotel.number_of_reviews or 0,
        },
        "base_city_prices": {
            "min_price": base.min,
            "avg_price": base.avg,
            "max_price": base.max,
        },
        "hotel_base_price": {"price_per_night": hotel.price_per_night},
        "stay_details": {
            "check_in": check_in.isoformat(),
            "check_out": check_out.isoformat(),
            "nights": nights,
            "guests": guests,
        },
        "demand_context": {
            "is_peak_month": demand.is_peak_month,
            "peak_months": demand.peak_months or "",
            "event_active": demand.event_active,
            "event_name": demand.event_name,
        },
        "user_budget": {"min": budget_min, "max": budget_max},
        "calculated_range": {"min": adjusted.min, "max": adjusted.max},
    }
