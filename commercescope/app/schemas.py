"""Pydantic request/response models. These define the exact JSON shape
the host application sends and receives. Requests convert to engine
records with to_record(); responses validate from record.to_dict()."""

from datetime import date, datetime
from typing import Literal

from pydantic import BaseModel, Field

from commercescope.analysis.records import (
    CustomerFeatureVector, InteractionRecord, ProductFeature, ProductHistory,
    TimeSeriesPoint,
)
from commercescope.app.config import settings


# ── Forecasting ───────────────────────────────────────────────

class TimeSeriesPointIn(BaseModel):
    date: date
    quantity: float = Field(ge=0)


class ProductHistoryIn(BaseModel):
    product_id: str
    product_name: str
    history: list[TimeSeriesPointIn] = []

    def to_record(self) -> ProductHistory:
        return ProductHistory(
            product_id=self.product_id,
            product_name=self.product_name,
            history=tuple(TimeSeriesPoint(date=p.date, quantity=p.quantity) for p in self.history),
        )


class ForecastRequest(ProductHistoryIn):
    periods: int = Field(7, ge=1, le=settings.max_forecast_periods)


class BatchForecastRequest(BaseModel):
    products: list[ProductHistoryIn]
    periods: int = Field(7, ge=1, le=settings.max_forecast_periods)


class SeasonalityOut(BaseModel):
    detected: bool
    pattern: Literal["weekly", "monthly"] | None = None


class ForecastOut(BaseModel):
    product_id: str
    product_name: str
    current_average: int
    forecasted_demand: int
    confidence: float
    trend: Literal["increasing", "decreasing", "stable"]
    period: Literal["next_week", "next_month"]
    seasonality: SeasonalityOut
    forecast: list[int]


# ── Churn ─────────────────────────────────────────────────────

class CustomerFeaturesIn(BaseModel):
    customer_id: str
    name: str
    total_orders: int = Field(0, ge=0)
    total_spent: float = Field(0.0, ge=0)
    avg_order_value: float = Field(0.0, ge=0)
    days_since_last_order: float = Field(0, ge=0)
    days_since_first_order: float = Field(0, ge=0)
    order_frequency: float = Field(0.0, ge=0)
    returns_count: int = Field(0, ge=0)
    complaints_count: int = Field(0, ge=0)
    loyalty_points: float | None = Field(None, ge=0)
    email_engagement: float | None = Field(None, ge=0, le=1)
    last_month_orders: int = Field(0, ge=0)
    previous_month_orders: int = Field(0, ge=0)

    def to_record(self) -> CustomerFeatureVector:
        return CustomerFeatureVector(**self.model_dump())


class ChurnBatchRequest(BaseModel):
    customers: list[CustomerFeaturesIn]


class ChurnFactorOut(BaseModel):
    description: str
    impact: Literal["positive", "negative"]
    weight: float


class ChurnPredictionOut(BaseModel):
    customer_id: str
    customer_name: str
    churn_probability: int
    churn_score: float
    risk_level: Literal["LOW", "MEDIUM", "HIGH", "CRITICAL"]
    factors: list[ChurnFactorOut]
    recommendations: list[str]
    retention_actions: list[str]


# ── Recommendations ───────────────────────────────────────────

class ProductIn(BaseModel):
    product_id: str
    product_name: str
    price: float = Field(0.0, ge=0)
    category_id: str | None = None
    views: int | None = Field(None, ge=0)
    purchases: int | None = Field(None, ge=0)
    rating: float | None = Field(None, ge=0, le=5)

    def to_record(self) -> ProductFeature:
        return ProductFeature(**self.model_dump())


class InteractionIn(BaseModel):
    product_id: str
    type: Literal["view", "purchase", "cart", "wishlist"]
    timestamp: datetime
    rating: float | None = Field(None, ge=0, le=5)

    def to_record(self) -> InteractionRecord:
        return InteractionRecord(**self.model_dump())


class UserRecommendationRequest(BaseModel):
    user_id: str
    user_interactions: list[InteractionIn] = []
    products: list[ProductIn]
    interactions_by_user: dict[str, list[InteractionIn]] = {}
    limit: int = Field(10, ge=1, le=settings.max_recommendations)


class SimilarProductsRequest(BaseModel):
    product_id: str
    products: list[ProductIn]
    limit: int = Field(5, ge=1, le=settings.max_recommendations)


class PopularProductsRequest(BaseModel):
    products: list[ProductIn]
    exclude_ids: list[str] = []
    limit: int = Field(10, ge=1, le=settings.max_recommendations)


class BoughtTogetherRequest(BaseModel):
    product_id: str
    order_items: dict[str, list[str]]
    products: list[ProductIn] = []
    limit: int = Field(4, ge=1, le=settings.max_recommendations)


class RecommendationOut(BaseModel):
    product_id: str
    product_name: str
    score: float
    confidence: float
    reason: str
    method: Literal["collaborative", "content-based", "hybrid", "popular", "similar"]
