import logging
from datetime import date, datetime

import httpx
from pydantic import BaseModel, ValidationError

from app.exceptions.custom import SupabaseError
from app.schemas.supabase import CityDemand, CityPriceStats, Hotel, PricePredictionRecord

logger = logging.getLogger(__name__)

HOTELS_TABLE = "hotels_india"
CITY_STATS_TABLE = "city_price_stats"
CITY_DEMAND_TABLE = "city_demand"
PREDICTIONS_TABLE = "price_predictions"


class SupabaseService:
    """Thin PostgREST client for the tables the pricing pipeline touches.

    Every failure (transport, HTTP status, malformed row) surfaces as
    SupabaseError so callers only have one exception to handle.
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        base_url: str,
        anon_key: str,
        authorization: str | None = None,
    ):
        self._client = client
        self._base_url = base_url.rstrip("/")
        self._anon_key = anon_key
        self._headers = {
            "apikey": anon_key,
            "Authorization": authorization or f"Bearer {anon_key}",
            "Content-Type": "application/json",
        }

    def with_authorization(self, authorization: str | None) -> "SupabaseService":
        """Same client, acting with the caller's credential (row-level security)."""
        if not authorization:
            return self
        return SupabaseService(
            self._client, self._base_url, self._anon_key, authorization=authorization
        )

    def _table_url(self, table: str) -> str:
        return f"{self._base_url}/rest/v1/{table}"

    async def _send(
        self, method: str, table: str, headers: dict[str, str] | None = None, **kwargs
    ) -> httpx.Response:
        try:
            resp = await self._client.request(
                method,
                self._table_url(table),
                headers={**self._headers, **(headers or {})},
                **kwargs,
            )
        except httpx.HTTPError as exc:
            raise SupabaseError(f"Request to {table} failed: {exc}") from exc

        # 429 here is an ordinary upstream failure, not an AI rate limit
        if resp.status_code >= 400:
            raise SupabaseError(resp.text, status_code=resp.status_code)
        return resp

    @staticmethod
    def _parse_row(model: type[BaseModel], table: str, row: dict):
        try:
            return model(**row)
        except ValidationError as exc:
            raise SupabaseError(f"Malformed {table} row: {exc}") from exc

    async def _select(self, table: str, params: dict[str, str]) -> list[dict]:
        resp = await self._send("GET", table, params={"select": "*", **params})
        try:
            return resp.json()
        except ValueError as exc:
            raise SupabaseError(f"Invalid JSON from {table}") from exc

    async def _select_one(self, table: str, params: dict[str, str]) -> dict | None:
        rows = await self._select(table, {**params, "limit": "1"})
        return rows[0] if rows else None

    async def get_hotel(self, hotel_id: int) -> Hotel:
        row = await self._select_one(HOTELS_TABLE, {"id": f"eq.{hotel_id}"})
        if row is None:
            raise SupabaseError(f"Hotel {hotel_id} not found", status_code=404)
        logger.info("Fetched hotel %s", hotel_id)
        return self._parse_row(Hotel, HOTELS_TABLE, row)

    async def get_city_price_stats(self, city: str) -> CityPriceStats | None:
        row = await self._select_one(CITY_STATS_TABLE, {"city": f"eq.{city}"})
        if row is None:
            logger.info("No price stats for city %s", city)
            return None
        return self._parse_row(CityPriceStats, CITY_STATS_TABLE, row)

    async def get_city_demand(self, city: str) -> CityDemand | None:
        row = await self._select_one(CITY_DEMAND_TABLE, {"city": f"eq.{city}"})
        if row is None:
            logger.info("No demand data for city %s", city)
            return None
        return self._parse_row(CityDemand, CITY_DEMAND_TABLE, row)

    async def get_latest_prediction(
        self,
        hotel_id: int,
        city: str,
        check_in: date,
        check_out: date,
        since: datetime,
    ) -> PricePredictionRecord | None:
        rows = await self._select(
            PREDICTIONS_TABLE,
            {
                "hotel_id": f"eq.{hotel_id}",
                "city": f"eq.{city}",
                "check_in": f"eq.{check_in.isoformat()}",
                "check_out": f"eq.{check_out.isoformat()}",
                "created_at": f"gte.{since.isoformat()}",
                "order": "created_at.desc",
                "limit": "1",
            },
        )
        if not rows:
            return None
        return self._parse_row(PricePredictionRecord, PREDICTIONS_TABLE, rows[0])

    async def insert_prediction(self, record: PricePredictionRecord) -> None:
        await self._send(
            "POST",
            PREDICTIONS_TABLE,
            json=record.model_dump(mode="json", exclude_none=True),
            headers={"Prefer": "return=minimal"},
        )
        logger.info(
            "Stored prediction for hotel %s (%s to %s)",
            record.hotel_id, record.check_in, record.check_out,
        )
