"""Churn Prediction: weighted risk scoring with explainable factors.

Six behavioral sub-scores, each normalized to [0, 1] by bucket rules,
are combined with fixed weights into a 0-100 churn probability. The
factor list explains the score; the rule tables turn it into
recommendations and retention actions for the account team.

The buckets are business rules, not trained coefficients. The same
customer always gets the same score.

Usage:
    python -m commercescope.analysis.churn_model
"""

import logging
from collections.abc import Sequence
from pathlib import Path

import pandas as pd
import matplotlib
matplotlib.use("Agg")
import matplotlib.pyplot as plt

from commercescope.analysis.batch import run_batch
from commercescope.analysis.records import (
    RISK_LEVELS, ChurnFactor, ChurnPrediction, CustomerFeatureVector, round_half_up,
)
from commercescope.etl.config import ChurnConfig, ETLConfig

logger = logging.getLogger(__name__)


# ── Retention playbook ────────────────────────────────────────

RETENTION_ACTIONS = {
    "CRITICAL": (
        "URGENT: Call customer within 24 hours",
        "Offer 25% discount on next purchase",
        "Provide free shipping for 3 months",
        "Schedule feedback session",
    ),
    "HIGH": (
        "Send personalized email within 48 hours",
        "Offer 15% loyalty discount",
        "Share exclusive early access to new products",
    ),
    "MEDIUM": (
        "Include in next email campaign",
        "Send product recommendations",
        "Offer to join loyalty program",
    ),
    "LOW": (
        "Continue standard engagement",
        "Send monthly newsletter",
    ),
}

DEFAULT_RECOMMENDATIONS = (
    "Maintain current engagement strategy",
    "Monitor for any changes in behavior",
)


def determine_risk_level(churn_probability: float, config: ChurnConfig | None = None) -> str:
    """Map a 0-100 probability to a risk level. Thresholds are inclusive lower bounds."""
    thresholds = (config or ChurnConfig()).risk_thresholds
    for level in ("CRITICAL", "HIGH", "MEDIUM"):
        if churn_probability >= thresholds[level]:
            return level
    return "LOW"


class ChurnScorer:
    """Scores churn risk for one customer at a time."""

    FACTORS = ["recency", "frequency", "monetary", "engagement", "trend", "satisfaction"]

    def __init__(self, config: ChurnConfig | None = None):
        self._config = config or ChurnConfig()

    def predict_churn(self, features: CustomerFeatureVector) -> ChurnPrediction:
        """Score one customer.

        Args:
            features: Flat feature record built by the host application.

        Returns:
            ChurnPrediction with probability, risk level, factors sorted by
            weight, and rule-based recommendations.
        """
        weights = self._config.factor_weights
        sub_scores = self.sub_scores(features)

        churn_score = sum(sub_scores[name] * weights[name] for name in self.FACTORS)
        churn_probability = min(100, max(0, round_half_up(churn_score * 100)))
        risk_level = determine_risk_level(churn_probability, self._config)

        descriptions = self._describe(features)
        factors = [
            ChurnFactor(
                description=descriptions[name],
                impact="negative" if sub_scores[name] > 0.5 else "positive",
                weight=sub_scores[name] * weights[name],
            )
            for name in self.FACTORS
        ]
        # sorted() is stable: equal weights keep declaration order
        factors = sorted(factors, key=lambda f: abs(f.weight), reverse=True)

        return ChurnPrediction(
            customer_id=features.customer_id,
            customer_name=features.name,
            churn_probability=churn_probability,
            churn_score=churn_score,
            risk_level=risk_level,
            factors=tuple(factors),
            recommendations=tuple(self._recommendations(features, churn_probability)),
            retention_actions=RETENTION_ACTIONS[risk_level],
        )

    def sub_scores(self, features: CustomerFeatureVector) -> dict[str, float]:
        """All six normalized sub-scores, 0 = safe, 1 = likely to churn."""
        return {
            "recency": self._recency_score(features.days_since_last_order),
            "frequency": self._frequency_score(features.order_frequency, features.total_orders),
            "monetary": self._monetary_score(features.total_spent, features.avg_order_value),
            "engagement": self._engagement_score(
                features.email_engagement or 0.0, features.loyalty_points or 0.0,
            ),
            "trend": self._trend_score(features.last_month_orders, features.previous_month_orders),
            "satisfaction": self._satisfaction_score(
                features.returns_count, features.complaints_count, features.total_orders,
            ),
        }

    def predict_batch(
        self, customers: Sequence[CustomerFeatureVector], max_workers: int | None = None,
    ) -> list[ChurnPrediction]:
        """Score every customer independently. Output order mirrors input."""
        logger.info("Scoring churn for %d customers", len(customers))
        return run_batch(self.predict_churn, customers, max_workers=max_workers)

    def identify_at_risk(
        self, customers: Sequence[CustomerFeatureVector], max_workers: int | None = None,
    ) -> list[ChurnPrediction]:
        """HIGH and CRITICAL customers only, in input order."""
        predictions = self.predict_batch(customers, max_workers=max_workers)
        at_risk = [p for p in predictions if p.risk_level in ("HIGH", "CRITICAL")]
        logger.info("%d of %d customers at risk", len(at_risk), len(predictions))
        return at_risk

    @staticmethod
    def summarize(predictions: Sequence[ChurnPrediction]) -> pd.DataFrame:
        """Customer count and mean probability per risk level.

        Returns:
            DataFrame with columns: risk_level, customer_count, avg_probability.
            All four levels are present, in ascending order of risk.
        """
        df = pd.DataFrame(
            [{"risk_level": p.risk_level, "churn_probability": p.churn_probability}
             for p in predictions],
            columns=["risk_level", "churn_probability"],
        )
        df["churn_probability"] = df["churn_probability"].astype(float)
        summary = df.groupby("risk_level").agg(
            customer_count=("churn_probability", "count"),
            avg_probability=("churn_probability", "mean"),
        ).reindex(list(RISK_LEVELS))
        summary["customer_count"] = summary["customer_count"].fillna(0).astype(int)
        summary["avg_probability"] = summary["avg_probability"].fillna(0.0).round(2)
        return summary.rename_axis("risk_level").reset_index()

    # ── Sub-scores ────────────────────────────────────────────

    def _recency_score(self, days_since_last_order: float) -> float:
        for upper, score in self._config.recency_buckets:
            if days_since_last_order <= upper:
                return score
        return 1.0

    def _frequency_score(self, orders_per_month: float, total_orders: int) -> float:
        for lower, score in self._config.frequency_buckets:
            if orders_per_month >= lower:
                return score
        # One order ever is worse than a slow repeat buyer
        return 1.0 if total_orders <= 1 else 0.8

    def _monetary_score(self, total_spent: float, avg_order_value: float) -> float:
        for lower, score in self._config.monetary_buckets:
            if total_spent >= lower:
                return score
        return 1.0 if avg_order_value < self._config.low_order_value else 0.8

    def _engagement_score(self, email_engagement: float, loyalty_points: float) -> float:
        email_score = 1 - email_engagement
        loyalty_score = self._config.loyalty_default_score
        for lower, score in self._config.loyalty_buckets:
            if loyalty_points > lower:
                loyalty_score = score
                break
        return (email_score + loyalty_score) / 2

    @staticmethod
    def _trend_score(last_month: int, previous_month: int) -> float:
        if last_month > previous_month:
            return 0.0
        if last_month == previous_month and last_month > 0:
            return 0.3
        if previous_month == 0:
            return 0.5
        decrease = (previous_month - last_month) / previous_month
        return min(1.0, 0.5 + decrease)

    @staticmethod
    def _satisfaction_score(returns: int, complaints: int, total_orders: int) -> float:
        if total_orders == 0:
            return 0.5
        return min(1.0, (returns / total_orders + complaints / total_orders) * 2)

    # ── Explanations ──────────────────────────────────────────

    @staticmethod
    def _describe(f: CustomerFeatureVector) -> dict[str, str]:
        """Human-readable description of each factor for this customer."""
        if f.email_engagement is not None:
            engagement = f"Email engagement: {f.email_engagement * 100:.0f}%"
        else:
            engagement = "No email engagement data"
        if f.loyalty_points is not None:
            engagement += f", {f.loyalty_points:.0f} loyalty points"

        return {
            "recency": f"Last order {f.days_since_last_order:g} days ago",
            "frequency": f"{f.order_frequency:.1f} orders/month ({f.total_orders} total)",
            "monetary": f"Total spent: ${f.total_spent:.2f} (avg: ${f.avg_order_value:.2f})",
            "engagement": engagement,
            "trend": f"Order trend: {f.previous_month_orders} → {f.last_month_orders}",
            "satisfaction": f"{f.returns_count} returns, {f.complaints_count} complaints",
        }

    def _recommendations(self, f: CustomerFeatureVector, churn_probability: int) -> list[str]:
        cfg = self._config
        recommendations = []

        if f.days_since_last_order > cfg.inactivity_days:
            recommendations += ["Send win-back email campaign", "Offer personalized discount code"]

        if f.order_frequency < 1:
            recommendations += [
                "Enroll in subscription program",
                "Send product recommendations based on past purchases",
            ]

        if f.avg_order_value > cfg.vip_order_value and churn_probability > cfg.vip_churn_probability:
            recommendations += ["Offer VIP loyalty program", "Assign dedicated account manager"]

        if f.returns_count > cfg.returns_feedback_threshold:
            recommendations += ["Reach out for feedback call", "Review product quality concerns"]

        # Missing and zero engagement both skip this rule
        if f.email_engagement and f.email_engagement < cfg.low_email_engagement:
            recommendations += ["Update email content strategy", "Send SMS instead of email"]

        return recommendations or list(DEFAULT_RECOMMENDATIONS)

    # ── Visualization ─────────────────────────────────────────

    def plot_risk_distribution(
        self, predictions: Sequence[ChurnPrediction], output_dir: Path,
    ) -> None:
        """Histogram of churn probabilities with risk thresholds marked."""
        fig, ax = plt.subplots(figsize=(10, 6))
        ax.hist([p.churn_probability for p in predictions],
                bins=20, range=(0, 100), color="#3498db", alpha=0.8)

        for level, threshold in self._config.risk_thresholds.items():
            ax.axvline(threshold, color="#e74c3c", linestyle="--", alpha=0.6)
            ax.text(threshold + 1, ax.get_ylim()[1] * 0.95, level, fontsize=9)

        ax.set_xlabel("Churn probability (%)")
        ax.set_ylabel("Customers")
        ax.set_title("Churn Risk Distribution")

        plt.tight_layout()
        fig.savefig(output_dir / "risk_distribution.png")
        plt.close(fig)


# ── CLI Entry Point ───────────────────────────────────────────

def main():
    from commercescope.etl.extract import Extractor

    print("=" * 60)
    print("CommerceScope Churn Prediction")
    print("=" * 60)

    config = ETLConfig()
    output_dir = config.reports_dir / "churn"
    output_dir.mkdir(parents=True, exist_ok=True)

    # Step 1: Load features
    print("\n[1/3] Loading customer features...")
    customers = Extractor(config).extract_customers()

    # Step 2: Score
    print("\n[2/3] Scoring churn risk...")
    scorer = ChurnScorer()
    predictions = scorer.predict_batch(customers)
    summary = scorer.summarize(predictions)
    print("\nRisk Level Summary:")
    print(summary.to_string(index=False))

    at_risk = [p for p in predictions if p.risk_level in ("HIGH", "CRITICAL")]
    print(f"\nAt-risk customers: {len(at_risk)}")
    for p in sorted(at_risk, key=lambda p: p.churn_probability, reverse=True)[:10]:
        print(f"  {p.customer_id} {p.customer_name}: {p.churn_probability}% ({p.risk_level})")
        print(f"    → {p.retention_actions[0]}")

    # Step 3: Visualize
    print("\n[3/3] Generating visualizations...")
    scorer.plot_risk_distribution(predictions, output_dir)

    pd.DataFrame([
        {
            "customer_id": p.customer_id,
            "customer_name": p.customer_name,
            "churn_probability": p.churn_probability,
            "risk_level": p.risk_level,
            "top_factor": p.factors[0].description if p.factors else None,
        }
        for p in predictions
    ]).to_csv(output_dir / "churn_predictions.csv", index=False)
    summary.to_csv(output_dir / "risk_summary.csv", index=False)

    print(f"\n✅ Churn prediction complete. Reports saved to {output_dir}/")


if __name__ == "__main__":
    main()
