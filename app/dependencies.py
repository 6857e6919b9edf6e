from typing import Annotated

from fastapi import Depends, Request

from app.services.price_prediction import PricePredictionService


def get_price_prediction_service(request: Request) -> PricePredictionService | None:
    return getattr(request.app.state, "price_prediction_service", None)


PricePredictionDep = Annotated[
    PricePredictionService | None, Depends(get_price_prediction_service)
]
