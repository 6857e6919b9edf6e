import logging
from typing import Annotated

from fastapi import APIRouter, Header

from app.dependencies import PricePredictionDep
from app.exceptions.custom import ConfigurationError
from app.schemas.pricing import PricePredictionRequest, PricePredictionResponse

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/predict-price", response_model=PricePredictionResponse)
async def predict_price(
    request: PricePredictionRequest,
    service: PricePredictionDep,
    authorization: Annotated[str | None, Header()] = None,
) -> PricePredictionResponse:
    if service is None:
        raise ConfigurationError("Price prediction service not configured")

    logger.info(
        "Price prediction for hotel %s in %s (%s to %s)",
        request.hotel_id, request.city, request.check_in, request.check_out,
    )
    return await service.predict(request, authorization=authorization)


@router.get("/health")
async def health() -> dict[str, str]:
    return {"status": "ok"}
