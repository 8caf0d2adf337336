"""Input and result records shared by the analytics components.

Records are frozen dataclasses created fresh per call. Optional fields
default to None; each component documents how it degrades when one is
missing. to_dict() gives the JSON shape the host application persists.
"""

import math
from dataclasses import asdict, dataclass, field
from datetime import date, datetime
from typing import Literal

Trend = Literal["increasing", "decreasing", "stable"]
SeasonalPattern = Literal["weekly", "monthly"]
ForecastPeriod = Literal["next_week", "next_month"]
RiskLevel = Literal["LOW", "MEDIUM", "HIGH", "CRITICAL"]
Impact = Literal["positive", "negative"]
InteractionType = Literal["view", "purchase", "cart", "wishlist"]
RecommendationMethod = Literal["collaborative", "content-based", "hybrid", "popular", "similar"]

RISK_LEVELS: tuple[str, ...] = ("LOW", "MEDIUM", "HIGH", "CRITICAL")
INTERACTION_TYPES: tuple[str, ...] = ("view", "purchase", "cart", "wishlist")


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves away from zero.

    Python's round() is banker's rounding (round(12.5) == 12); scores and
    forecasts here round halves up the way the dashboards display them.
    """
    if value >= 0:
        return int(math.floor(value + 0.5))
    return -int(math.floor(-value + 0.5))


def _jsonable(value):
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    if isinstance(value, dict):
        return {k: _jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_jsonable(v) for v in value]
    return value


class _Record:
    def to_dict(self) -> dict:
        return _jsonable(asdict(self))


# ── Forecasting ───────────────────────────────────────────────

@dataclass(frozen=True)
class TimeSeriesPoint(_Record):
    date: date
    quantity: float


@dataclass(frozen=True)
class ProductHistory(_Record):
    """One product's daily history, the unit of batch forecasting."""
    product_id: str
    product_name: str
    history: tuple[TimeSeriesPoint, ...] = ()


@dataclass(frozen=True)
class Seasonality(_Record):
    detected: bool = False
    pattern: SeasonalPattern | None = None


@dataclass(frozen=True)
class ForecastResult(_Record):
    product_id: str
    product_name: str
    current_average: int
    forecasted_demand: int
    confidence: float
    trend: Trend
    period: ForecastPeriod
    seasonality: Seasonality = field(default_factory=Seasonality)
    forecast: tuple[int, ...] = ()


@dataclass(frozen=True)
class BacktestResult(_Record):
    model_name: str
    holdout: int
    mape: float | None
    rmse: float | None
    actual: tuple[float, ...] = ()
    predicted: tuple[int, ...] = ()


# ── Churn ─────────────────────────────────────────────────────

@dataclass(frozen=True)
class CustomerFeatureVector(_Record):
    """Flat per-customer features, computed by the host application.

    loyalty_points and email_engagement are optional; a missing value
    counts as 0 in the engagement sub-score.
    """
    customer_id: str
    name: str
    total_orders: int = 0
    total_spent: float = 0.0
    avg_order_value: float = 0.0
    days_since_last_order: float = 0
    days_since_first_order: float = 0
    order_frequency: float = 0.0
    returns_count: int = 0
    complaints_count: int = 0
    loyalty_points: float | None = None
    email_engagement: float | None = None
    last_month_orders: int = 0
    previous_month_orders: int = 0


@dataclass(frozen=True)
class ChurnFactor(_Record):
    description: str
    impact: Impact
    weight: float


@dataclass(frozen=True)
class ChurnPrediction(_Record):
    customer_id: str
    customer_name: str
    churn_probability: int
    churn_score: float
    risk_level: RiskLevel
    factors: tuple[ChurnFactor, ...] = ()
    recommendations: tuple[str, ...] = ()
    retention_actions: tuple[str, ...] = ()


# ── Recommendations ───────────────────────────────────────────

@dataclass(frozen=True)
class ProductFeature(_Record):
    product_id: str
    product_name: str
    price: float = 0.0
    category_id: str | None = None
    views: int | None = None
    purchases: int | None = None
    rating: float | None = None


@dataclass(frozen=True)
class InteractionRecord(_Record):
    product_id: str
    type: InteractionType
    timestamp: datetime
    rating: float | None = None


@dataclass(frozen=True)
class Recommendation(_Record):
    product_id: str
    product_name: str
    score: float
    confidence: float
    reason: str
    method: RecommendationMethod
