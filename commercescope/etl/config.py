"""Central configuration for CommerceScope.

Every constant, threshold, and path used across the engine lives here.
No other module hardcodes these values; they import from this config.
"""

from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from dotenv import load_dotenv
import os

load_dotenv()

# ── Project paths ──────────────────────────────────────────────

PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent
DATA_DIR = Path(os.getenv("COMMERCESCOPE_DATA_DIR", PROJECT_ROOT / "data"))
REPORTS_DIR = Path(os.getenv("COMMERCESCOPE_REPORTS_DIR", PROJECT_ROOT / "reports"))

# ── Input files (CSV exports from the host application) ───────

ORDER_HISTORY_FILENAME = "order_history.csv"
CUSTOMERS_FILENAME = "customers.csv"
PRODUCTS_FILENAME = "products.csv"
INTERACTIONS_FILENAME = "interactions.csv"
ORDER_ITEMS_FILENAME = "order_items.csv"

# Required columns per dataset (exact header match)
REQUIRED_COLUMNS = {
    "order_history": ["product_id", "product_name", "date", "quantity"],
    "customers": [
        "customer_id", "name", "total_orders", "total_spent", "avg_order_value",
        "days_since_last_order", "days_since_first_order", "order_frequency",
        "returns_count", "complaints_count", "last_month_orders",
        "previous_month_orders",
    ],
    "products": ["product_id", "product_name", "price"],
    "interactions": ["user_id", "product_id", "type", "timestamp"],
    "order_items": ["order_id", "product_id"],
}

# ── Forecasting constants ──────────────────────────────────────

SEASON_LENGTH = 7                 # Weekly seasonality on daily data
LEVEL_SMOOTHING = 0.2             # alpha
TREND_SMOOTHING = 0.1             # beta
SEASONAL_SMOOTHING = 0.3          # gamma
MIN_HISTORY_FOR_SMOOTHING = 14    # Two full seasons
MOVING_AVERAGE_WINDOW = 7
DEFAULT_FORECAST_PERIODS = 7
TREND_SLOPE_THRESHOLD = 0.05
SEASONALITY_THRESHOLD = 0.6
MONTHLY_LAG = 30
MIN_HISTORY_FOR_MONTHLY = 60

# History length → confidence, checked in order (length < bound)
CONFIDENCE_BY_LENGTH = ((7, 0.4), (14, 0.6), (30, 0.75))
CONFIDENCE_FLOOR = 0.5
CONFIDENCE_CEILING = 0.95

# ── Churn scoring constants ────────────────────────────────────

CHURN_FACTOR_WEIGHTS = {
    "recency": 0.30,
    "frequency": 0.25,
    "monetary": 0.20,
    "engagement": 0.10,
    "trend": 0.10,
    "satisfaction": 0.05,
}

# Upper bound (inclusive) on days since last order → sub-score
RECENCY_BUCKETS = ((7, 0.0), (30, 0.2), (60, 0.5), (90, 0.7), (180, 0.9))
# Lower bound (inclusive) on orders per month → sub-score
FREQUENCY_BUCKETS = ((4, 0.0), (2, 0.2), (1, 0.4), (0.5, 0.6))
# Lower bound (inclusive) on total spent → sub-score
MONETARY_BUCKETS = ((10000, 0.0), (5000, 0.2), (1000, 0.4), (500, 0.6))
LOW_ORDER_VALUE = 50
# Lower bound (exclusive) on loyalty points → sub-score
LOYALTY_BUCKETS = ((1000, 0.0), (500, 0.3))
LOYALTY_DEFAULT_SCORE = 0.7

RISK_LEVEL_THRESHOLDS = {
    "CRITICAL": 75,
    "HIGH": 50,
    "MEDIUM": 25,
}

INACTIVITY_DAYS = 30              # Win-back campaign trigger
VIP_ORDER_VALUE = 100
VIP_CHURN_PROBABILITY = 50
RETURNS_FEEDBACK_THRESHOLD = 2
LOW_EMAIL_ENGAGEMENT = 0.3

# ── Recommendation constants ───────────────────────────────────

NEIGHBOURS_PER_PRODUCT = 10
COLLABORATIVE_BOOST = 1.2
COLLABORATIVE_SHARE = 0.6         # Fraction of the limit drawn from collaborative
COLLABORATIVE_CONFIDENCE_CAP = 0.95
RECENT_INTERACTIONS = 3
CONTENT_PER_INTERACTION = 3
CONTENT_SIMILARITY_CUTOFF = 0.3
CONTENT_CONFIDENCE = 0.7
PRICE_TOLERANCE = 0.3             # Prices within 30% of their mean count as close
RATING_SCALE = 5.0
POPULARITY_PURCHASE_WEIGHT = 0.7
POPULARITY_VIEW_WEIGHT = 0.3
POPULAR_CONFIDENCE = 0.6
BOUGHT_TOGETHER_CONFIDENCE = 0.85
DEFAULT_RECOMMENDATION_LIMIT = 10
DEFAULT_SIMILAR_LIMIT = 5
DEFAULT_BOUGHT_TOGETHER_LIMIT = 4

# ── Batch execution ────────────────────────────────────────────

DEFAULT_BATCH_WORKERS = 1         # Sequential unless the caller asks for a pool


@dataclass(frozen=True)
class ForecastConfig:
    """Tuning for the Holt-Winters forecaster.

    Frozen so one instance can be shared by every thread in a batch.
    Tests pass modified instances instead of patching module constants.
    """
    season_length: int = SEASON_LENGTH
    alpha: float = LEVEL_SMOOTHING
    beta: float = TREND_SMOOTHING
    gamma: float = SEASONAL_SMOOTHING
    min_history_for_smoothing: int = MIN_HISTORY_FOR_SMOOTHING
    moving_average_window: int = MOVING_AVERAGE_WINDOW
    trend_slope_threshold: float = TREND_SLOPE_THRESHOLD
    seasonality_threshold: float = SEASONALITY_THRESHOLD
    monthly_lag: int = MONTHLY_LAG
    min_history_for_monthly: int = MIN_HISTORY_FOR_MONTHLY
    confidence_by_length: tuple = CONFIDENCE_BY_LENGTH
    confidence_floor: float = CONFIDENCE_FLOOR
    confidence_ceiling: float = CONFIDENCE_CEILING


@dataclass(frozen=True)
class ChurnConfig:
    """Weights, buckets, and rule thresholds for the churn scorer."""
    factor_weights: Mapping[str, float] = field(
        default_factory=lambda: MappingProxyType(dict(CHURN_FACTOR_WEIGHTS))
    )
    recency_buckets: tuple = RECENCY_BUCKETS
    frequency_buckets: tuple = FREQUENCY_BUCKETS
    monetary_buckets: tuple = MONETARY_BUCKETS
    low_order_value: float = LOW_ORDER_VALUE
    loyalty_buckets: tuple = LOYALTY_BUCKETS
    loyalty_default_score: float = LOYALTY_DEFAULT_SCORE
    risk_thresholds: Mapping[str, float] = field(
        default_factory=lambda: MappingProxyType(dict(RISK_LEVEL_THRESHOLDS))
    )
    inactivity_days: int = INACTIVITY_DAYS
    vip_order_value: float = VIP_ORDER_VALUE
    vip_churn_probability: float = VIP_CHURN_PROBABILITY
    returns_feedback_threshold: int = RETURNS_FEEDBACK_THRESHOLD
    low_email_engagement: float = LOW_EMAIL_ENGAGEMENT


@dataclass(frozen=True)
class RecommenderConfig:
    """Similarity cutoffs, boosts, and fixed confidences for recommendations."""
    neighbours_per_product: int = NEIGHBOURS_PER_PRODUCT
    collaborative_boost: float = COLLABORATIVE_BOOST
    collaborative_share: float = COLLABORATIVE_SHARE
    collaborative_confidence_cap: float = COLLABORATIVE_CONFIDENCE_CAP
    recent_interactions: int = RECENT_INTERACTIONS
    content_per_interaction: int = CONTENT_PER_INTERACTION
    content_similarity_cutoff: float = CONTENT_SIMILARITY_CUTOFF
    content_confidence: float = CONTENT_CONFIDENCE
    price_tolerance: float = PRICE_TOLERANCE
    rating_scale: float = RATING_SCALE
    popularity_purchase_weight: float = POPULARITY_PURCHASE_WEIGHT
    popularity_view_weight: float = POPULARITY_VIEW_WEIGHT
    popular_confidence: float = POPULAR_CONFIDENCE
    bought_together_confidence: float = BOUGHT_TOGETHER_CONFIDENCE


@dataclass(frozen=True)
class EngineConfig:
    """Bundled tuning for all three analytic components."""
    forecast: ForecastConfig = field(default_factory=ForecastConfig)
    churn: ChurnConfig = field(default_factory=ChurnConfig)
    recommender: RecommenderConfig = field(default_factory=RecommenderConfig)


@dataclass
class ETLConfig:
    """Bundled config object passed to the Extractor.

    Exists so we can override values in tests without touching module-level constants.
    Production code uses the defaults; tests can pass modified instances.
    """
    data_dir: Path = DATA_DIR
    reports_dir: Path = REPORTS_DIR
    order_history_file: str = ORDER_HISTORY_FILENAME
    customers_file: str = CUSTOMERS_FILENAME
    products_file: str = PRODUCTS_FILENAME
    interactions_file: str = INTERACTIONS_FILENAME
    order_items_file: str = ORDER_ITEMS_FILENAME
