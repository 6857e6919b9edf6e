import logging
import sys
from contextlib import asynccontextmanager
from datetime import timedelta

import httpx
from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError

from app.config import Settings
from app.exceptions.custom import (
    ConfigurationError,
    GeminiError,
    RateLimitError,
    SupabaseError,
)
from app.exceptions.handlers import (
    configuration_error_handler,
    gemini_error_handler,
    rate_limit_error_handler,
    supabase_error_handler,
    unhandled_error_handler,
    validation_error_handler,
)
from app.routers.prices import router as prices_router
from app.schemas.pricing import DemandModel
from app.services.gemini import GeminiService
from app.services.price_prediction import PricePredictionService
from app.services.supabase import SupabaseService


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = Settings()

    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stdout,
    )
    logging.getLogger("httpx").setLevel(logging.WARNING)

    async with httpx.AsyncClient(timeout=30.0) as client:
        supabase = SupabaseService(
            client, settings.supabase_url, settings.supabase_anon_key
        )

        # Without a key every prediction fails with a configuration error
        gemini: GeminiService | None = None
        if settings.gemini_api_key:
            gemini = GeminiService(
                client,
                settings.gemini_api_key,
                model=settings.gemini_model,
                timeout=settings.gemini_timeout_seconds,
            )

        app.state.price_prediction_service = PricePredictionService(
            supabase,
            gemini,
            demand_model=DemandModel(settings.demand_model),
            cache_window=timedelta(hours=settings.cache_duration_hours),
            fallback_on_ai_error=settings.fallback_on_ai_error,
            fallback_on_rate_limit=settings.fallback_on_rate_limit,
        )

        yield


app = FastAPI(title="Hotel Price Insight", lifespan=lifespan)

app.add_exception_handler(SupabaseError, supabase_error_handler)
app.add_exception_handler(GeminiError, gemini_error_handler)
app.add_exception_handler(ConfigurationError, configuration_error_handler)
app.add_exception_handler(RateLimitError, rate_limit_error_handler)
app.add_exception_handler(RequestValidationError, validation_error_handler)
# Starlette re-raises after this handler responds
app.add_exception_handler(Exception, unhandled_error_handler)

app.include_router(prices_router)
