"""Extractor: reads CSV exports from the host application into records.

Single responsibility: turn CSV rows into validated records. The
analytics engine never touches files; only the report CLIs go
through here.
"""

import pandas as pd

from commercescope.analysis.records import (
    CustomerFeatureVector, InteractionRecord, ProductFeature, ProductHistory,
    TimeSeriesPoint,
)
from commercescope.etl.config import ETLConfig, REQUIRED_COLUMNS


def _optional(value, cast):
    """NaN/None → None, anything else cast."""
    return None if pd.isna(value) else cast(value)


class Extractor:
    """Reads flat CSV files and returns engine records."""

    def __init__(self, config: ETLConfig):
        self._config = config

    def extract_order_history(self) -> list[ProductHistory]:
        """Daily quantities per product, one ProductHistory per product.

        Days missing from the export are filled with zero so every series
        has one point per calendar day.
        """
        df = self._read(self._config.order_history_file, "order_history")
        df["date"] = pd.to_datetime(df["date"]).dt.normalize()
        df["product_id"] = df["product_id"].astype(str)
        df["product_name"] = df["product_name"].fillna("Unknown")

        products = []
        for (product_id, product_name), group in df.groupby(
            ["product_id", "product_name"], sort=False, dropna=False
        ):
            daily = group.groupby("date")["quantity"].sum()
            daily = daily.reindex(
                pd.date_range(daily.index.min(), daily.index.max(), freq="D"), fill_value=0
            )
            history = tuple(
                TimeSeriesPoint(date=ts.date(), quantity=float(qty))
                for ts, qty in daily.items()
            )
            products.append(ProductHistory(
                product_id=product_id, product_name=str(product_name), history=history,
            ))

        print(f"  → {len(products):,} products, {len(df):,} history rows")
        return products

    def extract_customers(self) -> list[CustomerFeatureVector]:
        df = self._read(self._config.customers_file, "customers")
        customers = [
            CustomerFeatureVector(
                customer_id=str(row["customer_id"]),
                name=str(row["name"]),
                total_orders=int(row["total_orders"]),
                total_spent=float(row["total_spent"]),
                avg_order_value=float(row["avg_order_value"]),
                days_since_last_order=float(row["days_since_last_order"]),
                days_since_first_order=float(row["days_since_first_order"]),
                order_frequency=float(row["order_frequency"]),
                returns_count=int(row["returns_count"]),
                complaints_count=int(row["complaints_count"]),
                loyalty_points=_optional(row.get("loyalty_points"), float),
                email_engagement=_optional(row.get("email_engagement"), float),
                last_month_orders=int(row["last_month_orders"]),
                previous_month_orders=int(row["previous_month_orders"]),
            )
            for _, row in df.iterrows()
        ]
        print(f"  → {len(customers):,} customers")
        return customers

    def extract_products(self) -> list[ProductFeature]:
        df = self._read(self._config.products_file, "products")
        products = [
            ProductFeature(
                product_id=str(row["product_id"]),
                product_name=str(row["product_name"]),
                price=float(row["price"]),
                category_id=_optional(row.get("category_id"), str),
                views=_optional(row.get("views"), int),
                purchases=_optional(row.get("purchases"), int),
                rating=_optional(row.get("rating"), float),
            )
            for _, row in df.iterrows()
        ]
        print(f"  → {len(products):,} products")
        return products

    def extract_interactions(self) -> dict[str, list[InteractionRecord]]:
        """user_id → that user's interactions, oldest first."""
        df = self._read(self._config.interactions_file, "interactions")
        df["timestamp"] = pd.to_datetime(df["timestamp"])
        df = df.sort_values("timestamp", kind="stable")

        by_user: dict[str, list[InteractionRecord]] = {}
        for _, row in df.iterrows():
            by_user.setdefault(str(row["user_id"]), []).append(InteractionRecord(
                product_id=str(row["product_id"]),
                type=str(row["type"]),
                timestamp=row["timestamp"].to_pydatetime(),
                rating=_optional(row.get("rating"), float),
            ))

        print(f"  → {len(df):,} interactions from {len(by_user):,} users")
        return by_user

    def extract_order_items(self) -> dict[str, list[str]]:
        """order_id → product ids in that order."""
        df = self._read(self._config.order_items_file, "order_items")
        order_items = {
            str(order_id): group["product_id"].astype(str).tolist()
            for order_id, group in df.groupby("order_id", sort=False)
        }
        print(f"  → {len(order_items):,} orders")
        return order_items

    def _read(self, filename: str, dataset: str) -> pd.DataFrame:
        """Read one CSV from the data directory.

        Raises:
            FileNotFoundError: If the file doesn't exist.
            ValueError: If required columns are missing.
        """
        path = self._config.data_dir / filename
        if not path.exists():
            raise FileNotFoundError(
                f"Input file not found: {path}\n"
                f"Export it from the host application and place it at: {path}"
            )

        print(f"  Reading {filename}...")
        df = pd.read_csv(path)
        self._validate_columns(df, filename, dataset)
        return df

    def _validate_columns(self, df: pd.DataFrame, filename: str, dataset: str) -> None:
        """Verify all required columns for this file are present.

        Raises:
            ValueError: If expected columns are missing.
        """
        expected = set(REQUIRED_COLUMNS[dataset])
        actual = set(df.columns)
        missing = expected - actual
        if missing:
            raise ValueError(
                f"Missing expected columns in {filename}: {sorted(missing)}\n"
                f"Found columns: {sorted(actual)}"
            )
