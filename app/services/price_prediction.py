import logging
from datetime import timedelta

from app.exceptions.custom import ConfigurationError, GeminiError, RateLimitError, SupabaseError
from app.mappers.demand import compute_demand, demand_label
from app.mappers.pricing import adjust_range, base_city_range, count_nights, round_price
from app.mappers.recommendation import build_fallback_recommendation, build_insight_payload
from app.schemas.pricing import (
    AdjustedPrices,
    DemandContext,
    DemandContextResponse,
    DemandModel,
    PricePredictionRequest,
    PricePredictionResponse,
    PriceRange,
    PriceRecommendation,
)
from app.schemas.supabase import PricePredictionRecord
from app.services.gemini import GeminiService
from app.services.prediction_cache import DEFAULT_WINDOW, PredictionCache, PredictionKey
from app.services.supabase import SupabaseService

logger = logging.getLogger(__name__)


class PricePredictionService:
    def __init__(
        self,
        supabase: SupabaseService,
        gemini: GeminiService | None,
        demand_model: DemandModel = DemandModel.binary,
        cache_window: timedelta = DEFAULT_WINDOW,
        fallback_on_ai_error: bool = True,
        fallback_on_rate_limit: bool = False,
    ):
        self._supabase = supabase
        self._gemini = gemini
        self._demand_model = demand_model
        self._cache_window = cache_window
        self._fallback_on_ai_error = fallback_on_ai_error
        self._fallback_on_rate_limit = fallback_on_rate_limit

    async def predict(
        self,
        request: PricePredictionRequest,
        authorization: str | None = None,
    ) -> PricePredictionResponse:
        """Recommend a nightly price range for a stay.

        Reuses a stored prediction from the cache window when there is one;
        otherwise scores demand, adjusts the city range, asks Gemini and
        stores the result.
        """
        if self._gemini is None:
            raise ConfigurationError("Gemini API key not configured")

        store = self._supabase.with_authorization(authorization)
        cache = PredictionCache(store, self._cache_window)
        key = PredictionKey(
            request.hotel_id, request.city, request.check_in, request.check_out
        )

        cached = await cache.lookup(key)
        if cached is not None:
            return _response_from_record(cached)

        logger.info("No cached prediction for hotel %s, computing fresh", request.hotel_id)

        hotel = await store.get_hotel(request.hotel_id)
        stats = await store.get_city_price_stats(request.city)
        city_demand = await store.get_city_demand(request.city)

        demand = compute_demand(
            city_demand, request.check_in, request.check_out, self._demand_model
        )
        nights = count_nights(request.check_in, request.check_out)
        base = base_city_range(stats, hotel)
        adjusted = adjust_range(base, demand.multiplier)

        payload = build_insight_payload(
            hotel,
            base,
            adjusted,
            demand,
            request.check_in,
            request.check_out,
            nights,
            request.guests,
            budget_min=request.budget_min,
            budget_max=request.budget_max,
        )
        recommendation = await self._recommend(payload, adjusted, base.avg, demand)

        try:
            await cache.store(key, nights, adjusted, recommendation, demand)
        except SupabaseError:
            logger.exception("Failed to store prediction for hotel %s", request.hotel_id)

        return PricePredictionResponse(
            cached=False,
            base_city_prices=base,
            adjusted_prices=adjusted,
            ai_recommendation=recommendation,
            demand_context=_demand_response(demand),
        )

    async def _recommend(
        self,
        payload: dict,
        adjusted: AdjustedPrices,
        city_avg: float,
        demand: DemandContext,
    ) -> PriceRecommendation:
        try:
            recommendation = await self._gemini.get_price_insight(payload)
        except RateLimitError:
            if not self._fallback_on_rate_limit:
                raise
            logger.warning("Gemini rate limited, using calculated recommendation")
            recommendation = None
        except GeminiError as exc:
            if not self._fallback_on_ai_error:
                raise
            logger.warning("Gemini failed (%s), using calculated recommendation", exc.message)
            recommendation = None

        if recommendation is None:
            return build_fallback_recommendation(adjusted, city_avg, demand)
        return recommendation


def _demand_response(demand: DemandContext) -> DemandContextResponse:
    return DemandContextResponse(
        is_peak_month=demand.is_peak_month,
        event_active=demand.event_active,
        event_name=demand.event_name,
        demand_multiplier=demand.multiplier,
        demand_score=demand.demand_score,
        demand_label=(
            demand_label(demand.demand_score) if demand.demand_score is not None else None
        ),
    )


def _response_from_record(record: PricePredictionRecord) -> PricePredictionResponse:
    """Rebuild the API response from a stored prediction.

    Only the adjusted min/max are stored, so the base range is recovered by
    dividing out the multiplier and both averages come from the midpoint.
    """
    stored = record.gemini_response or {}
    multiplier = stored.get("demand_multiplier") or 1.0
    adjusted_min = record.calculated_min or 0
    adjusted_max = record.calculated_max or 0
    midpoint = (adjusted_min + adjusted_max) / 2

    score = stored.get("demand_score")
    demand = DemandContext(
        is_peak_month=bool(stored.get("is_peak_month")),
        event_active=bool(stored.get("event_active")),
        event_name=stored.get("event_name"),
        demand_score=score,
        multiplier=multiplier,
    )

    return PricePredictionResponse(
        cached=True,
        base_city_prices=PriceRange(
            min=round_price(adjusted_min / multiplier),
            avg=round_price(midpoint / multiplier),
            max=round_price(adjusted_max / multiplier),
        ),
        adjusted_prices=AdjustedPrices(
            min=round_price(adjusted_min),
            avg=round_price(midpoint),
            max=round_price(adjusted_max),
            multiplier=multiplier,
        ),
        ai_recommendation=PriceRecommendation.model_validate(stored),
        demand_context=_demand_response(demand),
    )
