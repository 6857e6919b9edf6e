import logging
from datetime import date, datetime, timedelta, timezone
from typing import NamedTuple

from pydantic import ValidationError

from app.exceptions.custom import SupabaseError
from app.schemas.pricing import AdjustedPrices, DemandContext, PriceRecommendation
from app.schemas.supabase import PricePredictionRecord
from app.services.supabase import SupabaseService

logger = logging.getLogger(__name__)

DEFAULT_WINDOW = timedelta(hours=24)


class PredictionKey(NamedTuple):
    hotel_id: int
    city: str
    check_in: date
    check_out: date


class PredictionCache:
    """Time-windowed reuse of stored predictions.

    Records are never updated or deleted; a record simply stops being
    returned once it is older than the window.
    """

    def __init__(self, store: SupabaseService, window: timedelta = DEFAULT_WINDOW):
        self._store = store
        self._window = window

    async def lookup(
        self, key: PredictionKey, now: datetime | None = None
    ) -> PricePredictionRecord | None:
        now = now or datetime.now(timezone.utc)
        since = now - self._window

        try:
            record = await self._store.get_latest_prediction(
                key.hotel_id, key.city, key.check_in, key.check_out, since
            )
        except SupabaseError as exc:
            logger.warning("Cache read failed for %s, treating as miss: %s", key, exc.message)
            return None
        if record is None:
            logger.info("Cache miss for %s", key)
            return None

        created_at = record.created_at
        if created_at is not None:
            if created_at.tzinfo is None:
                created_at = created_at.replace(tzinfo=timezone.utc)
            if created_at < since:
                logger.info("Ignoring stale prediction %s from %s", record.id, created_at)
                return None

        try:
            PriceRecommendation.model_validate(record.gemini_response or {})
        except ValidationError:
            logger.warning("Ignoring cached prediction %s with invalid recommendation", record.id)
            return None

        logger.info("Using cached prediction from %s", record.created_at)
        return record

    async def store(
        self,
        key: PredictionKey,
        nights: int,
        adjusted: AdjustedPrices,
        recommendation: PriceRecommendation,
        demand: DemandContext,
    ) -> PricePredictionRecord:
        record = PricePredictionRecord(
            hotel_id=key.hotel_id,
            city=key.city,
            check_in=key.check_in,
            check_out=key.check_out,
            nights=nights,
            calculated_min=adjusted.min,
            calculated_max=adjusted.max,
            gemini_response={
                **recommendation.model_dump(),
                "is_peak_month": demand.is_peak_month,
                "event_active": demand.event_active,
                "event_name": demand.event_name,
                "demand_multiplier": demand.multiplier,
                "demand_score": demand.demand_score,
            },
        )
        await self._store.insert_prediction(record)
        return record
