"""Churn endpoints: single score, batch scores, at-risk filter."""

from fastapi import APIRouter, Depends

from commercescope.analysis.churn_model import ChurnScorer
from commercescope.app.config import settings
from commercescope.app.dependencies import get_churn_scorer
from commercescope.app.schemas import (
    ChurnBatchRequest, ChurnPredictionOut, CustomerFeaturesIn,
)

router = APIRouter(prefix="/churn", tags=["Churn"])


@router.post("/predict", response_model=ChurnPredictionOut)
def predict_churn(
    customer: CustomerFeaturesIn,
    scorer: ChurnScorer = Depends(get_churn_scorer),
):
    return scorer.predict_churn(customer.to_record()).to_dict()


@router.post("/batch", response_model=list[ChurnPredictionOut])
def predict_batch(
    request: ChurnBatchRequest,
    scorer: ChurnScorer = Depends(get_churn_scorer),
):
    predictions = scorer.predict_batch(
        [c.to_record() for c in request.customers], max_workers=settings.batch_workers,
    )
    return [p.to_dict() for p in predictions]


@router.post("/at-risk", response_model=list[ChurnPredictionOut])
def identify_at_risk(
    request: ChurnBatchRequest,
    scorer: ChurnScorer = Depends(get_churn_scorer),
):
    predictions = scorer.identify_at_risk(
        [c.to_record() for c in request.customers], max_workers=settings.batch_workers,
    )
    return [p.to_dict() for p in predictions]
