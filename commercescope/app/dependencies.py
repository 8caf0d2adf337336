"""Shared analytics components for FastAPI routes.

The components hold only frozen tuning, so one instance serves every
request and thread.
"""

from commercescope.analysis.churn_model import ChurnScorer
from commercescope.analysis.forecasting import DemandForecaster
from commercescope.analysis.recommendations import RecommendationEngine
from commercescope.etl.config import EngineConfig

engine_config = EngineConfig()

forecaster = DemandForecaster(engine_config.forecast)
churn_scorer = ChurnScorer(engine_config.churn)
recommender = RecommendationEngine(engine_config.recommender)


def get_forecaster() -> DemandForecaster:
    """Dependency for forecast routes."""
    return forecaster


def get_churn_scorer() -> ChurnScorer:
    """Dependency for churn routes."""
    return churn_scorer


def get_recommender() -> RecommendationEngine:
    """Dependency for recommendation routes."""
    return recommender
