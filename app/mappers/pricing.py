import math
from datetime import date

from app.schemas.pricing import AdjustedPrices, PriceRange
from app.schemas.supabase import CityPriceStats, Hotel

# Fallback city range derived from a single hotel's nightly price
HOTEL_MIN_FACTOR = 0.8
HOTEL_AVG_FACTOR = 1.0
HOTEL_MAX_FACTOR = 1.5

CHEAP_BELOW = 0.8
EXPENSIVE_ABOVE = 1.3


def round_price(value: float) -> int:
    """Round to the nearest whole currency unit, halves up."""
    return math.floor(value + 0.5)


def count_nights(check_in: date, check_out: date) -> int:
    return (check_out - check_in).days


def base_city_range(stats: CityPriceStats | None, hotel: Hotel) -> PriceRange:
    """City min/avg/max, filling gaps from the hotel's own nightly price."""
    price = hotel.price_per_night
    return PriceRange(
        min=(stats and stats.min_price) or price * HOTEL_MIN_FACTOR,
        avg=(stats and stats.avg_price) or price * HOTEL_AVG_FACTOR,
        max=(stats and stats.max_price) or price * HOTEL_MAX_FACTOR,
    )


def adjust_range(base: PriceRange, multiplier: float) -> AdjustedPrices:
    return AdjustedPrices(
        min=round_price(base.min * multiplier),
        avg=round_price(base.avg * multiplier),
        max=round_price(base.max * multiplier),
        multiplier=multiplier,
    )


def fairness_label(price: float, city_avg: float) -> str:
    """Label a nightly price against the city average.

    Prices exactly on 0.8x or 1.3x the average are still "fair".
    """
    if price < city_avg * CHEAP_BELOW:
        return "cheap"
    if price > city_avg * EXPENSIVE_ABOVE:
        return "expensive"
    return "fair"
