from __future__ import annotations

from datetime import date
from enum import StrEnum
from typing import Literal

from pydantic import BaseModel, Field, StrictFloat, field_validator, model_validator


class EventImpact(StrEnum):
    low = "low"
    medium = "medium"
    high = "high"
    very_high = "very_high"


class DemandModel(StrEnum):
    binary = "binary"
    weighted = "weighted"


class CityEvent(BaseModel):
    name: str
    start: date
    end: date
    impact: EventImpact = EventImpact.low


class DemandContext(BaseModel):
    is_peak_month: bool
    peak_months: str | None = None
    event_active: bool = False
    event_name: str | None = None
    events: list[CityEvent] = []
    demand_score: float | None = None  # weighted model only
    multiplier: float = 1.0


class PriceRange(BaseModel):
    min: float
    avg: float
    max: float


class AdjustedPrices(BaseModel):
    min: int
    avg: int
    max: int
    multiplier: float


class PriceRecommendation(BaseModel):
    recommended_min_price: StrictFloat
    recommended_max_price: StrictFloat
    fairness_label: Literal["cheap", "fair", "expensive"]
    confidence_score: StrictFloat = Field(ge=0.0, le=1.0)
    explanation: str = Field(min_length=1)

    @field_validator("explanation")
    @classmethod
    def _explanation_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("explanation must not be blank")
        return value

    @model_validator(mode="after")
    def _range_ordered(self) -> PriceRecommendation:
        if self.recommended_min_price > self.recommended_max_price:
            raise ValueError("recommended_min_price exceeds recommended_max_price")
        return self


class PricePredictionRequest(BaseModel):
    hotel_id: int
    city: str = Field(min_length=1)
    check_in: date
    check_out: date
    guests: int = Field(default=1, ge=1)
    budget_min: float | None = Field(default=None, ge=0)
    budget_max: float | None = Field(default=None, ge=0)

    @model_validator(mode="after")
    def _valid_stay(self) -> PricePredictionRequest:
        if self.check_out <= self.check_in:
            raise ValueError("check_out must be after check_in")
        if (
            self.budget_min is not None
            and self.budget_max is not None
            and self.budget_min > self.budget_max
        ):
            raise ValueError("budget_min must not exceed budget_max")
        return self


class DemandContextResponse(BaseModel):
    is_peak_month: bool
    event_active: bool
    event_name: str | None = None
    demand_multiplier: float
    demand_score: float | None = None
    demand_label: str | None = None


class PricePredictionResponse(BaseModel):
    cached: bool
    base_city_prices: PriceRange
    adjusted_prices: AdjustedPrices
    ai_recommendation: PriceRecommendation
    demand_context: DemandContextResponse
