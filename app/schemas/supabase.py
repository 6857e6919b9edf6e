from datetime import date, datetime

from pydantic import BaseModel


class Hotel(BaseModel):
    id: int
    hotel_name: str
    city: str
    state: str | None = None
    rating: float | None = None  # 0-5
    number_of_reviews: int | None = None
    price_per_night: float


class CityPriceStats(BaseModel):
    city: str
    min_price: float | None = None
    avg_price: float | None = None
    max_price: float | None = None
    hotel_count: int | None = None


class CityDemand(BaseModel):
    city: str
    peak_months: str | None = None  # "10,11,12"
    events: str | None = None  # "Diwali (2025-10-20–2025-10-24); ..."


class PricePredictionRecord(BaseModel):
    id: int | None = None
    hotel_id: int
    city: str
    check_in: date
    check_out: date
    nights: int
    calculated_min: float | None = None
    calculated_max: float | None = None
    gemini_response: dict | None = None  # recommendation + demand context
    created_at: datetime | None = None
