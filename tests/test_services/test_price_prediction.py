"""Tests for PricePredictionService."""

from datetime import date, datetime, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest

from app.exceptions.custom import (
    ConfigurationError,
    GeminiError,
    RateLimitError,
    SupabaseError,
)
from app.schemas.pricing import DemandModel, PricePredictionRequest, PriceRecommendation
from app.schemas.supabase import CityDemand, CityPriceStats, Hotel
from app.services.price_prediction import PricePredictionService

AI_RECOMMENDATION = PriceRecommendation(
    recommended_min_price=4500,
    recommended_max_price=6000,
    fairness_label="fair",
    confidence_score=0.85,
    explanation="Close to the city average; no peak season or events.",
)


class FakeStore:
    """In-memory stand-in for SupabaseService."""

    def __init__(self, hotel=None, stats=None, demand=None):
        self.hotel = hotel or Hotel(
            id=7, hotel_name="Hotel Test", city="Jaipur", rating=4.2,
            number_of_reviews=150, price_per_night=5000,
        )
        self.stats = stats
        self.demand = demand
        self.predictions = []
        self.authorizations = []
        self.fail_insert = False

    def with_authorization(self, authorization):
        self.authorizations.append(authorization)
        return self

    async def get_hotel(self, hotel_id):
        if hotel_id != self.hotel.id:
            raise SupabaseError(f"Hotel {hotel_id} not found", status_code=404)
        return self.hotel

    async def get_city_price_stats(self, city):
        return self.stats

    async def get_city_demand(self, city):
        return self.demand

    async def get_latest_prediction(self, hotel_id, city, check_in, check_out, since):
        matches = [
            r for r in self.predictions
            if (r.hotel_id, r.city, r.check_in, r.check_out)
            == (hotel_id, city, check_in, check_out)
            and r.created_at >= since
        ]
        return max(matches, key=lambda r: r.created_at) if matches else None

    async def insert_prediction(self, record):
        if self.fail_insert:
            raise SupabaseError("insert failed", status_code=500)
        self.predictions.append(
            record.model_copy(update={"created_at": datetime.now(timezone.utc)})
        )


def _gemini(return_value=AI_RECOMMENDATION, side_effect=None):
    gemini = MagicMock()
    gemini.get_price_insight = AsyncMock(return_value=return_value, side_effect=side_effect)
    return gemini


def _request(**overrides):
    data = {
        "hotel_id": 7,
        "city": "Jaipur",
        "check_in": date(2025, 6, 10),
        "check_out": date(2025, 6, 13),
        "guests": 2,
    }
    data.update(overrides)
    return PricePredictionRequest(**data)


STATS = CityPriceStats(city="Jaipur", min_price=4000, avg_price=5000, max_price=7500)
DEMAND = CityDemand(
    city="Jaipur", peak_months="10,11", events="Diwali (2025-10-20–2025-10-24)"
)


async def test_fresh_prediction_uses_ai_and_persists():
    store = FakeStore(stats=STATS, demand=DEMAND)
    gemini = _gemini()
    service = PricePredictionService(store, gemini)

    result = await service.predict(_request(), authorization="Bearer user-jwt")

    assert result.cached is False
    assert result.base_city_prices.model_dump() == {"min": 4000, "avg": 5000, "max": 7500}
    assert result.adjusted_prices.model_dump() == {
        "min": 4000, "avg": 5000, "max": 7500, "multiplier": 1.0,
    }
    assert result.ai_recommendation == AI_RECOMMENDATION
    assert result.demand_context.is_peak_month is False
    assert result.demand_context.event_active is False
    assert result.demand_context.demand_multiplier == 1.0
    assert len(store.predictions) == 1
    assert store.predictions[0].nights == 3
    assert store.authorizations == ["Bearer user-jwt"]

    payload = gemini.get_price_insight.await_args.args[0]
    assert payload["stay_details"]["nights"] == 3
    assert payload["calculated_range"] == {"min": 4000, "max": 7500}


async def test_peak_and_event_adjust_range():
    store = FakeStore(stats=STATS, demand=DEMAND)
    service = PricePredictionService(store, _gemini())

    result = await service.predict(
        _request(check_in=date(2025, 10, 20), check_out=date(2025, 10, 22))
    )

    assert result.adjusted_prices.multiplier == 1.5
    assert (result.adjusted_prices.min, result.adjusted_prices.max) == (6000, 11250)
    assert result.demand_context.event_name == "Diwali"
    assert result.demand_context.demand_score is None


async def test_weighted_model_reports_score_and_label():
    store = FakeStore(stats=STATS, demand=DEMAND)
    service = PricePredictionService(store, _gemini(), demand_model=DemandModel.weighted)

    result = await service.predict(
        _request(check_in=date(2025, 10, 20), check_out=date(2025, 10, 22))
    )

    assert result.demand_context.demand_score == 0.7
    assert result.demand_context.demand_label == "Very High Demand"
    assert result.adjusted_prices.multiplier == 1.35
    assert result.adjusted_prices.min == 5400


async def test_second_request_is_served_from_cache():
    store = FakeStore(stats=STATS, demand=DEMAND)
    gemini = _gemini()
    service = PricePredictionService(store, gemini)
    request = _request(check_in=date(2025, 10, 20), check_out=date(2025, 10, 22))

    first = await service.predict(request)
    second = await service.predict(request)

    assert first.cached is False
    assert second.cached is True
    assert second.ai_recommendation == first.ai_recommendation
    assert second.demand_context == first.demand_context
    assert second.adjusted_prices.min == first.adjusted_prices.min
    assert second.adjusted_prices.max == first.adjusted_prices.max
    assert second.base_city_prices.min == 4000
    assert second.base_city_prices.max == 7500
    assert gemini.get_price_insight.await_count == 1
    assert len(store.predictions) == 1


async def test_missing_stats_and_demand_use_hotel_price():
    store = FakeStore()
    service = PricePredictionService(store, _gemini())

    result = await service.predict(_request())

    assert result.base_city_prices.model_dump() == {"min": 4000, "avg": 5000, "max": 7500}
    assert result.demand_context.demand_multiplier == 1.0


async def test_unusable_ai_answer_falls_back():
    store = FakeStore(stats=STATS)
    service = PricePredictionService(store, _gemini(return_value=None))

    result = await service.predict(_request())

    rec = result.ai_recommendation
    assert (rec.recommended_min_price, rec.recommended_max_price) == (4000, 7500)
    assert rec.fairness_label == "fair"
    assert rec.confidence_score == 0.6
    assert len(store.predictions) == 1


async def test_gemini_error_falls_back_by_default():
    service = PricePredictionService(
        FakeStore(stats=STATS), _gemini(side_effect=GeminiError("boom", status_code=500))
    )

    result = await service.predict(_request())

    assert result.ai_recommendation.confidence_score == 0.6


async def test_gemini_error_propagates_when_fallback_disabled():
    service = PricePredictionService(
        FakeStore(stats=STATS),
        _gemini(side_effect=GeminiError("boom", status_code=500)),
        fallback_on_ai_error=False,
    )

    with pytest.raises(GeminiError):
        await service.predict(_request())


async def test_rate_limit_propagates():
    store = FakeStore(stats=STATS)
    service = PricePredictionService(store, _gemini(side_effect=RateLimitError("Gemini")))

    with pytest.raises(RateLimitError):
        await service.predict(_request())
    assert store.predictions == []


async def test_rate_limit_fallback_when_enabled():
    service = PricePredictionService(
        FakeStore(stats=STATS),
        _gemini(side_effect=RateLimitError("Gemini")),
        fallback_on_rate_limit=True,
    )

    result = await service.predict(_request())

    assert result.ai_recommendation.confidence_score == 0.6


async def test_missing_hotel_is_fatal():
    service = PricePredictionService(FakeStore(stats=STATS), _gemini())

    with pytest.raises(SupabaseError) as exc_info:
        await service.predict(_request(hotel_id=99))

    assert exc_info.value.status_code == 404


async def test_missing_gemini_key_fails_before_any_call():
    store = MagicMock()
    service = PricePredictionService(store, None)

    with pytest.raises(ConfigurationError):
        await service.predict(_request())

    store.with_authorization.assert_not_called()


async def test_persistence_failure_still_returns_recommendation():
    store = FakeStore(stats=STATS)
    store.fail_insert = True
    service = PricePredictionService(store, _gemini())

    result = await service.predict(_request())

    assert result.cached is False
    assert result.ai_recommendation == AI_RECOMMENDATION
