"""
Pytest fixtures shared by the CommerceScope tests.
"""
from datetime import date, datetime, timedelta

import pytest

from commercescope.analysis.churn_model import ChurnScorer
from commercescope.analysis.forecasting import DemandForecaster, HoltWintersForecaster
from commercescope.analysis.recommendations import RecommendationEngine
from commercescope.analysis.records import (
    CustomerFeatureVector, InteractionRecord, ProductFeature, TimeSeriesPoint,
)

START_DATE = date(2026, 1, 1)
WEEKLY_PATTERN = [10, 20, 30, 20, 10, 5, 5]


def make_history(quantities, start: date = START_DATE) -> list[TimeSeriesPoint]:
    """One point per consecutive day starting at `start`."""
    return [
        TimeSeriesPoint(date=start + timedelta(days=i), quantity=float(q))
        for i, q in enumerate(quantities)
    ]


def make_customer(**overrides) -> CustomerFeatureVector:
    """
    A steady mid-value customer; override any field.

    Defaults score LOW overall (about 22%).
    """
    fields = dict(
        customer_id="c-1",
        name="Test Customer",
        total_orders=12,
        total_spent=1500.0,
        avg_order_value=125.0,
        days_since_last_order=5,
        days_since_first_order=365,
        order_frequency=2.0,
        returns_count=0,
        complaints_count=0,
        loyalty_points=None,
        email_engagement=0.6,
        last_month_orders=2,
        previous_month_orders=2,
    )
    fields.update(overrides)
    return CustomerFeatureVector(**fields)


def make_interaction(product_id: str, minutes: int = 0, type: str = "view") -> InteractionRecord:
    return InteractionRecord(
        product_id=product_id,
        type=type,
        timestamp=datetime(2026, 3, 1, 12, 0) + timedelta(minutes=minutes),
    )


def make_product(product_id: str, **overrides) -> ProductFeature:
    fields = dict(product_id=product_id, product_name=f"Product {product_id}", price=10.0)
    fields.update(overrides)
    return ProductFeature(**fields)


@pytest.fixture
def holt_winters():
    return HoltWintersForecaster()


@pytest.fixture
def forecaster():
    return DemandForecaster()


@pytest.fixture
def scorer():
    return ChurnScorer()


@pytest.fixture
def engine():
    return RecommendationEngine()


@pytest.fixture
def at_risk_customer():
    """120 days silent, two orders, one return and one complaint."""
    return make_customer(
        customer_id="c-risk",
        name="Lapsed Customer",
        total_orders=2,
        total_spent=100.0,
        avg_order_value=50.0,
        days_since_last_order=120,
        days_since_first_order=300,
        order_frequency=0.17,
        returns_count=1,
        complaints_count=1,
        email_engagement=0.1,
        last_month_orders=0,
        previous_month_orders=1,
    )


@pytest.fixture
def loyal_customer():
    return make_customer(
        customer_id="c-loyal",
        name="Loyal Customer",
        total_orders=40,
        total_spent=12000.0,
        avg_order_value=300.0,
        days_since_last_order=3,
        order_frequency=5.0,
        loyalty_points=2000,
        email_engagement=0.9,
        last_month_orders=5,
        previous_month_orders=3,
    )


@pytest.fixture
def shared_users():
    """
    Four users touched A and B (u4 only A); C shares just u1 with A.

    Jaccard(A, B) = 3/4 = 0.75 and Jaccard(A, C) = 1/5 = 0.2.
    """
    return {
        "u1": [make_interaction("A"), make_interaction("B", 1), make_interaction("C", 2)],
        "u2": [make_interaction("A"), make_interaction("B", 1)],
        "u3": [make_interaction("A", type="purchase"), make_interaction("B", 1)],
        "u4": [make_interaction("A")],
        "u5": [make_interaction("C")],
    }


@pytest.fixture
def catalogue():
    return [
        make_product("A", price=10.0),
        make_product("B", price=10.0),
        make_product("C", price=100.0),
    ]
