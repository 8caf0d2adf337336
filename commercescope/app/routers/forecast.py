"""Forecast endpoints: per-product and batch demand forecasts."""

from fastapi import APIRouter, Depends

from commercescope.analysis.forecasting import DemandForecaster
from commercescope.app.config import settings
from commercescope.app.dependencies import get_forecaster
from commercescope.app.schemas import BatchForecastRequest, ForecastOut, ForecastRequest

router = APIRouter(prefix="/forecast", tags=["Forecast"])


@router.post("/product", response_model=ForecastOut)
def forecast_product(
    request: ForecastRequest,
    forecaster: DemandForecaster = Depends(get_forecaster),
):
    product = request.to_record()
    result = forecaster.forecast_product(
        product.product_id, product.product_name, product.history, request.periods,
    )
    return result.to_dict()


@router.post("/batch", response_model=list[ForecastOut])
def forecast_batch(
    request: BatchForecastRequest,
    forecaster: DemandForecaster = Depends(get_forecaster),
):
    results = forecaster.forecast_products(
        [p.to_record() for p in request.products],
        periods=request.periods,
        max_workers=settings.batch_workers,
    )
    return [r.to_dict() for r in results]
