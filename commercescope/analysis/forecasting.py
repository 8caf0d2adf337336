"""Demand Forecasting: daily per-product quantity forecasts.

Triple exponential smoothing (Holt-Winters) with weekly seasonality once
a product has two full weeks of history; a moving average before that.
Every forecast comes with a confidence, a trend label, and a seasonality
flag so the dashboard can say how far to trust it.

Key principle: nothing here fails on thin data. Short or empty histories
degrade to flat forecasts with low confidence.

Usage:
    python -m commercescope.analysis.forecasting
"""

import logging
from collections.abc import Sequence
from datetime import timedelta
from pathlib import Path

import pandas as pd
import numpy as np
import matplotlib
matplotlib.use("Agg")
import matplotlib.pyplot as plt

from sklearn.metrics import mean_absolute_percentage_error, mean_squared_error

from commercescope.analysis.batch import run_batch
from commercescope.analysis.records import (
    BacktestResult, ForecastResult, ProductHistory, Seasonality,
    TimeSeriesPoint, round_half_up,
)
from commercescope.etl.config import (
    DEFAULT_FORECAST_PERIODS, ETLConfig, ForecastConfig,
)

logger = logging.getLogger(__name__)


class HoltWintersForecaster:
    """Level + trend + multiplicative seasonal smoothing over a quantity series."""

    def __init__(self, config: ForecastConfig | None = None):
        self._config = config or ForecastConfig()

    def forecast(self, data: Sequence[float], periods: int = DEFAULT_FORECAST_PERIODS) -> list[int]:
        """Project the next `periods` values.

        Args:
            data: Historical quantities, oldest first.
            periods: Horizon length. Zero or negative gives an empty forecast.

        Returns:
            List of `periods` non-negative integers.
        """
        periods = max(int(periods), 0)
        data = [float(x) for x in data]

        if len(data) < self._config.min_history_for_smoothing:
            return self._moving_average(data, periods)

        level, trend, seasonal = self._initialize(data)
        level, trend, seasonal = self._smooth(data, level, trend, seasonal)

        season_length = self._config.season_length
        n = len(data)
        forecast = []
        for step in range(1, periods + 1):
            index = (n + step - 1) % season_length
            value = (level + step * trend) * seasonal[index]
            forecast.append(max(0, round_half_up(value)))

        return forecast

    def _initialize(self, data: list[float]) -> tuple[float, float, list[float]]:
        """Initial level, trend, and seasonal indices from the full seasons."""
        season_length = self._config.season_length
        seasons = len(data) // season_length
        season_means = [
            float(np.mean(data[i * season_length:(i + 1) * season_length]))
            for i in range(seasons)
        ]

        initial_level = season_means[0]

        # Mean per-step change between consecutive seasons
        steps = [
            (season_means[i + 1] - season_means[i]) / season_length
            for i in range(seasons - 1)
        ]
        initial_trend = float(np.mean(steps)) if steps else 0.0

        seasonal = []
        for position in range(season_length):
            if initial_level == 0:
                seasonal.append(1.0)
                continue
            ratios = [data[j * season_length + position] / initial_level for j in range(seasons)]
            seasonal.append(float(np.mean(ratios)))

        return initial_level, initial_trend, seasonal

    def _smooth(
        self, data: list[float], level: float, trend: float, seasonal: list[float],
    ) -> tuple[float, float, list[float]]:
        """Run the smoothing recursions over every observed point.

        A zero seasonal index is treated as neutral (1.0) when deseasonalizing,
        and a zero level contributes a zero seasonal ratio.
        """
        alpha, beta, gamma = self._config.alpha, self._config.beta, self._config.gamma
        season_length = self._config.season_length
        seasonal = list(seasonal)

        for i, value in enumerate(data):
            position = i % season_length
            index = seasonal[position] or 1.0

            new_level = alpha * (value / index) + (1 - alpha) * (level + trend)
            new_trend = beta * (new_level - level) + (1 - beta) * trend
            ratio = value / new_level if new_level != 0 else 0.0
            seasonal[position] = gamma * ratio + (1 - gamma) * seasonal[position]

            level, trend = new_level, new_trend

        return level, trend, seasonal

    def _moving_average(self, data: list[float], periods: int) -> list[int]:
        """Fallback: mean of the most recent window, repeated."""
        if not data:
            return [0] * periods
        window = min(self._config.moving_average_window, len(data))
        average = float(np.mean(data[-window:]))
        return [max(0, round_half_up(average))] * periods

    def calculate_confidence(self, data: Sequence[float]) -> float:
        """Confidence from history length, then from series noisiness.

        Short series get fixed values; longer series score 1 - CV,
        clamped to the configured floor and ceiling.
        """
        n = len(data)
        for bound, confidence in self._config.confidence_by_length:
            if n < bound:
                return confidence

        values = np.asarray(data, dtype=float)
        mean = values.mean()
        cv = values.std() / mean if mean > 0 else 1.0
        return float(max(self._config.confidence_floor,
                         min(self._config.confidence_ceiling, 1 - cv)))

    def detect_trend(self, data: Sequence[float]) -> str:
        """OLS slope of value against index, bucketed into a label."""
        if len(data) < 3:
            return "stable"

        y = np.asarray(data, dtype=float)
        x = np.arange(len(y), dtype=float)
        slope = float(np.polyfit(x, y, 1)[0])

        threshold = self._config.trend_slope_threshold
        if slope > threshold:
            return "increasing"
        if slope < -threshold:
            return "decreasing"
        return "stable"

    def detect_seasonality(self, data: Sequence[float]) -> Seasonality:
        """Weekly check at lag 7, monthly check at lag 30 on long series."""
        n = len(data)
        if n < 2 * self._config.season_length:
            return Seasonality(detected=False)

        threshold = self._config.seasonality_threshold
        if self.autocorrelation(data, self._config.season_length) > threshold:
            return Seasonality(detected=True, pattern="weekly")

        if (n >= self._config.min_history_for_monthly
                and self.autocorrelation(data, self._config.monthly_lag) > threshold):
            return Seasonality(detected=True, pattern="monthly")

        return Seasonality(detected=False)

    @staticmethod
    def autocorrelation(data: Sequence[float], lag: int) -> float:
        """Sample autocorrelation at `lag`; 0 for constant or too-short series."""
        values = np.asarray(data, dtype=float)
        if lag >= len(values):
            return 0.0

        centered = values - values.mean()
        denominator = float(np.sum(centered ** 2))
        if denominator <= 0:
            return 0.0
        numerator = float(np.sum(centered[:len(values) - lag] * centered[lag:]))
        return numerator / denominator


class DemandForecaster:
    """Per-product demand forecasts built on HoltWintersForecaster."""

    def __init__(self, config: ForecastConfig | None = None):
        self._config = config or ForecastConfig()
        self._forecaster = HoltWintersForecaster(self._config)

    @property
    def forecaster(self) -> HoltWintersForecaster:
        return self._forecaster

    def forecast_product(
        self,
        product_id: str,
        product_name: str,
        history: Sequence[TimeSeriesPoint],
        periods: int = DEFAULT_FORECAST_PERIODS,
    ) -> ForecastResult:
        """Forecast one product's demand.

        Args:
            product_id: Caller's product identifier.
            product_name: Display name, echoed back.
            history: One point per day; sorted by date here.
            periods: Days ahead to forecast.

        Returns:
            ForecastResult with the horizon, its mean, and pattern diagnostics.
        """
        quantities = [p.quantity for p in sorted(history, key=lambda p: p.date)]

        if len(quantities) < self._config.min_history_for_smoothing:
            logger.debug("Product %s: %d points, using moving average",
                         product_id, len(quantities))

        forecast = self._forecaster.forecast(quantities, periods)
        recent = quantities[-self._config.moving_average_window:]

        return ForecastResult(
            product_id=product_id,
            product_name=product_name,
            current_average=round_half_up(float(np.mean(recent))) if recent else 0,
            forecasted_demand=round_half_up(float(np.mean(forecast))) if forecast else 0,
            confidence=self._forecaster.calculate_confidence(quantities),
            trend=self._forecaster.detect_trend(quantities),
            period="next_week" if periods <= 7 else "next_month",
            seasonality=self._forecaster.detect_seasonality(quantities),
            forecast=tuple(forecast),
        )

    def forecast_products(
        self,
        products: Sequence[ProductHistory],
        periods: int = DEFAULT_FORECAST_PERIODS,
        max_workers: int | None = None,
    ) -> list[ForecastResult]:
        """Forecast every product independently. Output order mirrors input."""
        logger.info("Forecasting %d products, %d periods ahead", len(products), periods)
        return run_batch(
            lambda p: self.forecast_product(p.product_id, p.product_name, p.history, periods),
            products,
            max_workers=max_workers,
        )

    def backtest(self, history: Sequence[TimeSeriesPoint], holdout: int = 7) -> BacktestResult:
        """Hold out the last `holdout` days, forecast them, and score the fit.

        Train on the past, test on the future. Never shuffled.

        Returns:
            BacktestResult with MAPE (%) and RMSE. MAPE is None when an actual
            value is zero; both are None when there is nothing to train on.
        """
        quantities = [p.quantity for p in sorted(history, key=lambda p: p.date)]

        if holdout <= 0 or len(quantities) <= holdout:
            return BacktestResult(
                model_name="insufficient_history", holdout=holdout,
                mape=None, rmse=None, actual=tuple(quantities),
            )

        train, actual = quantities[:-holdout], quantities[-holdout:]
        predicted = self._forecaster.forecast(train, holdout)
        model_name = (
            "holt_winters" if len(train) >= self._config.min_history_for_smoothing
            else "moving_average"
        )

        rmse = round(float(np.sqrt(mean_squared_error(actual, predicted))), 2)
        mape = None
        if all(a != 0 for a in actual):
            mape = round(float(mean_absolute_percentage_error(actual, predicted)) * 100, 2)

        return BacktestResult(
            model_name=model_name, holdout=holdout, mape=mape, rmse=rmse,
            actual=tuple(actual), predicted=tuple(predicted),
        )

    @staticmethod
    def to_frame(results: Sequence[ForecastResult]) -> pd.DataFrame:
        """Flatten results into one row per product for reports."""
        rows = [
            {
                "product_id": r.product_id,
                "product_name": r.product_name,
                "current_average": r.current_average,
                "forecasted_demand": r.forecasted_demand,
                "confidence": round(r.confidence, 4),
                "trend": r.trend,
                "period": r.period,
                "seasonality": r.seasonality.pattern if r.seasonality.detected else None,
            }
            for r in results
        ]
        frame = pd.DataFrame(rows, columns=[
            "product_id", "product_name", "current_average", "forecasted_demand",
            "confidence", "trend", "period", "seasonality",
        ])
        # Undetected seasonality stays None, not NaN
        frame["seasonality"] = pd.Series(
            [row["seasonality"] for row in rows], index=frame.index, dtype=object,
        )
        return frame

    # ── Visualization ─────────────────────────────────────────

    def plot_forecasts(
        self,
        products: Sequence[ProductHistory],
        results: Sequence[ForecastResult],
        output_dir: Path,
        top_n: int = 6,
    ) -> None:
        """Historical quantities + forecast horizon for the busiest products."""
        pairs = sorted(
            zip(products, results), key=lambda pr: pr[1].forecasted_demand, reverse=True,
        )[:top_n]
        if not pairs:
            return

        fig, axes = plt.subplots(len(pairs), 1, figsize=(14, 3.5 * len(pairs)))
        if len(pairs) == 1:
            axes = [axes]

        for ax, (product, result) in zip(axes, pairs):
            history = sorted(product.history, key=lambda p: p.date)
            dates = [p.date for p in history]
            ax.plot(dates, [p.quantity for p in history],
                    color="#2c3e50", linewidth=2, label="Historical", marker="o", markersize=3)

            if dates and result.forecast:
                horizon = [dates[-1] + timedelta(days=h) for h in range(1, len(result.forecast) + 1)]
                ax.plot(horizon, result.forecast,
                        color="#e74c3c", linewidth=2, label="Forecast", marker="s", markersize=4)

            ax.set_title(f"{result.product_name}: trend {result.trend}, "
                         f"confidence: {result.confidence:.2f}")
            ax.set_ylabel("Units")
            ax.legend(loc="upper left")

        plt.xlabel("Date")
        plt.tight_layout()
        fig.savefig(output_dir / "forecast.png")
        plt.close(fig)


# ── CLI Entry Point ───────────────────────────────────────────

def main():
    from commercescope.etl.extract import Extractor

    print("=" * 60)
    print("CommerceScope Demand Forecasting")
    print("=" * 60)

    config = ETLConfig()
    output_dir = config.reports_dir / "forecast"
    output_dir.mkdir(parents=True, exist_ok=True)

    # Step 1: Load history
    print("\n[1/4] Loading order history...")
    products = Extractor(config).extract_order_history()

    # Step 2: Forecast
    print(f"\n[2/4] Forecasting {DEFAULT_FORECAST_PERIODS} days ahead...")
    forecaster = DemandForecaster()
    results = forecaster.forecast_products(products)
    summary = forecaster.to_frame(results)
    print(summary.to_string(index=False))

    # Step 3: Backtest
    print("\n[3/4] Backtesting on the last 7 days...")
    backtests = pd.DataFrame([
        {"product_id": p.product_id, **forecaster.backtest(p.history).to_dict()}
        for p in products
    ])
    print(backtests[["product_id", "model_name", "mape", "rmse"]].to_string(index=False))

    # Step 4: Visualize
    print("\n[4/4] Generating visualizations...")
    forecaster.plot_forecasts(products, results, output_dir)

    summary.to_csv(output_dir / "forecast.csv", index=False)
    backtests.to_csv(output_dir / "backtest.csv", index=False)

    print(f"\n✅ Forecasting complete. Reports saved to {output_dir}/")


if __name__ == "__main__":
    main()
