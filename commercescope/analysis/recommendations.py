"""Product Recommendations: collaborative, content-based, and hybrid ranking.

Three classes:
- CollaborativeFilter: item-item Jaccard similarity over shared users
- ContentBasedFilter: item-item similarity over category, price, rating
- RecommendationEngine: merges both into one ranked list, backfills with
  popular products, and answers "frequently bought together"

Equal scores are ordered by product_id ascending so output is stable
across runs and Python versions.

Usage:
    python -m commercescope.analysis.recommendations
"""

import logging
import math
from collections import Counter
from collections.abc import Iterable, Mapping, Sequence
from pathlib import Path

import pandas as pd
import matplotlib
matplotlib.use("Agg")
import matplotlib.pyplot as plt

from commercescope.analysis.records import (
    InteractionRecord, ProductFeature, Recommendation,
)
from commercescope.etl.config import (
    DEFAULT_BOUGHT_TOGETHER_LIMIT, DEFAULT_RECOMMENDATION_LIMIT,
    DEFAULT_SIMILAR_LIMIT, ETLConfig, RecommenderConfig,
)

logger = logging.getLogger(__name__)


def _ranked(scored: Iterable[tuple[str, float]]) -> list[tuple[str, float]]:
    """Sort (product_id, score) pairs: score descending, product_id ascending."""
    return sorted(scored, key=lambda item: (-item[1], item[0]))


# ── Collaborative Filtering ───────────────────────────────────

class CollaborativeFilter:
    """Item-item similarity from the sets of users who touched each product."""

    def __init__(self, config: RecommenderConfig | None = None):
        self._config = config or RecommenderConfig()

    @staticmethod
    def build_product_user_matrix(
        interactions_by_user: Mapping[str, Sequence[InteractionRecord]],
    ) -> dict[str, set[str]]:
        """product_id → ids of users with any interaction on it.

        Products appear in order of first sighting.
        """
        matrix: dict[str, set[str]] = {}
        for user_id, interactions in interactions_by_user.items():
            for interaction in interactions:
                matrix.setdefault(interaction.product_id, set()).add(user_id)
        return matrix

    @staticmethod
    def similarity(product_a: str, product_b: str, matrix: Mapping[str, set[str]]) -> float:
        """Jaccard index of the two products' user sets."""
        users_a = matrix.get(product_a, set())
        users_b = matrix.get(product_b, set())
        union = users_a | users_b
        if not users_a or not users_b:
            return 0.0
        return len(users_a & users_b) / len(union)

    def find_similar_products(
        self, target_id: str, matrix: Mapping[str, set[str]], limit: int = DEFAULT_SIMILAR_LIMIT,
    ) -> list[tuple[str, float]]:
        """Top `limit` products sharing at least one user with target_id."""
        if not matrix.get(target_id):
            return []

        similarities = []
        for product_id in matrix:
            if product_id == target_id:
                continue
            similarity = self.similarity(target_id, product_id, matrix)
            if similarity > 0:
                similarities.append((product_id, similarity))

        return _ranked(similarities)[:max(limit, 0)]

    def recommend_for_user(
        self,
        interacted_ids: Sequence[str],
        matrix: Mapping[str, set[str]],
        products: Mapping[str, ProductFeature],
        limit: int = DEFAULT_SIMILAR_LIMIT,
    ) -> list[Recommendation]:
        """Average neighbour similarity across everything the user touched.

        Args:
            interacted_ids: Products the user interacted with (duplicates ignored).
            matrix: Output of build_product_user_matrix.
            products: Catalogue by product_id; unknown candidates are skipped.
            limit: Maximum recommendations returned.

        Returns:
            Recommendations with method "collaborative", never containing
            an interacted product.
        """
        sources = list(dict.fromkeys(interacted_ids))
        if not sources or limit <= 0:
            return []
        seen = set(sources)

        # candidate → [similarity sum, hit count]
        totals: dict[str, list[float]] = {}
        for product_id in sources:
            neighbours = self.find_similar_products(
                product_id, matrix, self._config.neighbours_per_product,
            )
            for candidate, similarity in neighbours:
                if candidate in seen:
                    continue
                entry = totals.setdefault(candidate, [0.0, 0])
                entry[0] += similarity
                entry[1] += 1

        scored = []
        for candidate, (total, count) in totals.items():
            if candidate not in products:
                continue
            scored.append((candidate, total / count))

        hits = {candidate: count for candidate, (_, count) in totals.items()}
        return [
            Recommendation(
                product_id=candidate,
                product_name=products[candidate].product_name,
                score=score,
                confidence=min(self._config.collaborative_confidence_cap,
                               hits[candidate] / len(sources)),
                reason="Customers who bought your items also bought this",
                method="collaborative",
            )
            for candidate, score in _ranked(scored)[:limit]
        ]


# ── Content-Based Filtering ───────────────────────────────────

class ContentBasedFilter:
    """Item-item similarity from product attributes."""

    def __init__(self, config: RecommenderConfig | None = None):
        self._config = config or RecommenderConfig()

    def calculate_similarity(self, product_a: ProductFeature, product_b: ProductFeature) -> float:
        """Mean of the available factors: category match, price closeness, rating closeness.

        Category and rating only count when both products have them.
        """
        factors = []

        if product_a.category_id is not None and product_b.category_id is not None:
            factors.append(1.0 if product_a.category_id == product_b.category_id else 0.0)

        price_avg = (product_a.price + product_b.price) / 2
        if price_avg > 0:
            price_diff = abs(product_a.price - product_b.price)
            factors.append(1 - min(1.0, price_diff / (price_avg * self._config.price_tolerance)))
        else:
            factors.append(1.0)

        if product_a.rating is not None and product_b.rating is not None:
            rating_diff = abs(product_a.rating - product_b.rating)
            factors.append(1 - rating_diff / self._config.rating_scale)

        return sum(factors) / len(factors)

    def recommend_similar(
        self,
        target: ProductFeature,
        candidates: Sequence[ProductFeature],
        limit: int = DEFAULT_SIMILAR_LIMIT,
        method: str = "content-based",
        reason: str = "Similar to products you viewed",
    ) -> list[Recommendation]:
        """Candidates above the similarity cutoff, most similar first."""
        if limit <= 0:
            return []

        by_id: dict[str, ProductFeature] = {}
        scored = []
        for product in candidates:
            if product.product_id == target.product_id or product.product_id in by_id:
                continue
            by_id[product.product_id] = product
            similarity = self.calculate_similarity(target, product)
            if similarity > self._config.content_similarity_cutoff:
                scored.append((product.product_id, similarity))

        return [
            Recommendation(
                product_id=product_id,
                product_name=by_id[product_id].product_name,
                score=similarity,
                confidence=self._config.content_confidence,
                reason=reason,
                method=method,
            )
            for product_id, similarity in _ranked(scored)[:limit]
        ]


# ── Hybrid Orchestration ──────────────────────────────────────

class RecommendationEngine:
    """Hybrid recommendations with a popularity fallback."""

    def __init__(self, config: RecommenderConfig | None = None):
        self._config = config or RecommenderConfig()
        self._collaborative = CollaborativeFilter(self._config)
        self._content = ContentBasedFilter(self._config)

    def get_recommendations(
        self,
        user_id: str,
        user_interactions: Sequence[InteractionRecord],
        products: Sequence[ProductFeature],
        interactions_by_user: Mapping[str, Sequence[InteractionRecord]],
        limit: int = DEFAULT_RECOMMENDATION_LIMIT,
    ) -> list[Recommendation]:
        """Personalized recommendations for one user.

        Args:
            user_id: The requesting user.
            user_interactions: That user's history.
            products: Candidate catalogue.
            interactions_by_user: Every user's history, including this user's.
                If the user is missing, user_interactions is added under user_id.
            limit: Maximum recommendations returned.

        Returns:
            Up to `limit` recommendations, de-duplicated, none of which the
            user has interacted with.
        """
        if limit <= 0:
            return []

        product_map = self._catalogue(products)
        interacted = list(dict.fromkeys(i.product_id for i in user_interactions))

        if user_id not in interactions_by_user:
            interactions_by_user = {**interactions_by_user, user_id: list(user_interactions)}
        matrix = self._collaborative.build_product_user_matrix(interactions_by_user)

        collaborative = self._collaborative.recommend_for_user(
            interacted, matrix, product_map,
            math.ceil(limit * self._config.collaborative_share),
        )

        content: list[Recommendation] = []
        for product_id in self._recent_products(user_interactions):
            product = product_map.get(product_id)
            if product is None:
                continue
            content += self._content.recommend_similar(
                product, products, self._config.content_per_interaction,
            )

        merged = self.merge_recommendations(collaborative, content, interacted)
        logger.debug("User %s: %d collaborative, %d content, %d merged",
                     user_id, len(collaborative), len(content), len(merged))

        if len(merged) < limit:
            exclude = set(interacted) | {r.product_id for r in merged}
            merged += self.get_popular_products(products, exclude, limit - len(merged))

        return merged[:limit]

    def merge_recommendations(
        self,
        collaborative: Sequence[Recommendation],
        content_based: Sequence[Recommendation],
        exclude_ids: Iterable[str] = (),
    ) -> list[Recommendation]:
        """Boost collaborative scores, average products found by both, rank.

        A product in both lists gets the mean of the boosted collaborative
        score and the content score, the mean confidence, and method "hybrid".
        Repeats within the content list keep their best score.
        """
        exclude = set(exclude_ids)
        boost = self._config.collaborative_boost

        merged: dict[str, Recommendation] = {}
        for rec in collaborative:
            if rec.product_id in exclude or rec.product_id in merged:
                continue
            merged[rec.product_id] = Recommendation(
                product_id=rec.product_id,
                product_name=rec.product_name,
                score=rec.score * boost,
                confidence=rec.confidence,
                reason=rec.reason,
                method=rec.method,
            )

        best_content: dict[str, Recommendation] = {}
        for rec in content_based:
            if rec.product_id in exclude:
                continue
            current = best_content.get(rec.product_id)
            if current is None or rec.score > current.score:
                best_content[rec.product_id] = rec

        for product_id, rec in best_content.items():
            existing = merged.get(product_id)
            if existing is None:
                merged[product_id] = rec
                continue
            merged[product_id] = Recommendation(
                product_id=product_id,
                product_name=existing.product_name,
                score=(existing.score + rec.score) / 2,
                confidence=(existing.confidence + rec.confidence) / 2,
                reason="Matches your purchase history and browsing",
                method="hybrid",
            )

        return sorted(merged.values(), key=lambda r: (-r.score, r.product_id))

    def get_popular_products(
        self,
        products: Sequence[ProductFeature],
        exclude_ids: Iterable[str] = (),
        limit: int = DEFAULT_RECOMMENDATION_LIMIT,
    ) -> list[Recommendation]:
        """Rank by 0.7 × purchases + 0.3 × views; missing counts are 0."""
        if limit <= 0:
            return []
        exclude = set(exclude_ids)
        product_map = self._catalogue(products)

        scored = [
            (product_id, self.popularity_score(product))
            for product_id, product in product_map.items()
            if product_id not in exclude
        ]
        return [
            Recommendation(
                product_id=product_id,
                product_name=product_map[product_id].product_name,
                score=score,
                confidence=self._config.popular_confidence,
                reason="Popular with other customers",
                method="popular",
            )
            for product_id, score in _ranked(scored)[:limit]
        ]

    def popularity_score(self, product: ProductFeature) -> float:
        return (
            (product.purchases or 0) * self._config.popularity_purchase_weight
            + (product.views or 0) * self._config.popularity_view_weight
        )

    def get_similar_products(
        self,
        product_id: str,
        products: Sequence[ProductFeature],
        limit: int = DEFAULT_SIMILAR_LIMIT,
    ) -> list[Recommendation]:
        """Attribute-similar products for a product page. Unknown product → []."""
        target = self._catalogue(products).get(product_id)
        if target is None:
            return []
        return self._content.recommend_similar(
            target, products, limit, method="similar", reason="Similar to this product",
        )

    def get_frequently_bought_together(
        self,
        product_id: str,
        order_items: Mapping[str, Sequence[str]],
        products: Sequence[ProductFeature],
        limit: int = DEFAULT_BOUGHT_TOGETHER_LIMIT,
    ) -> list[Recommendation]:
        """Products most often in the same order as product_id.

        Args:
            product_id: The anchor product.
            order_items: order_id → product ids in that order.
            products: Catalogue, used for names only.
            limit: Maximum recommendations returned.

        Returns:
            Recommendations scored by co-occurrence count / number of orders
            supplied. The anchor product never appears.
        """
        if limit <= 0 or not order_items:
            return []

        co_occurrences: Counter[str] = Counter()
        for items in order_items.values():
            basket = set(items)
            if product_id not in basket:
                continue
            basket.discard(product_id)
            co_occurrences.update(basket)

        product_map = self._catalogue(products)
        total_orders = len(order_items)
        ranked = _ranked((pid, count) for pid, count in co_occurrences.items())[:limit]

        return [
            Recommendation(
                product_id=pid,
                product_name=product_map[pid].product_name if pid in product_map else "Unknown",
                score=count / total_orders,
                confidence=self._config.bought_together_confidence,
                reason="Frequently bought together",
                method="collaborative",
            )
            for pid, count in ranked
        ]

    # ── Helpers ───────────────────────────────────────────────

    @staticmethod
    def _catalogue(products: Sequence[ProductFeature]) -> dict[str, ProductFeature]:
        """product_id → product; the first entry wins on duplicate ids."""
        catalogue: dict[str, ProductFeature] = {}
        for product in products:
            catalogue.setdefault(product.product_id, product)
        return catalogue

    def _recent_products(self, interactions: Sequence[InteractionRecord]) -> list[str]:
        """Distinct products from the most recent interactions, newest first."""
        recent: list[str] = []
        for interaction in sorted(interactions, key=lambda i: i.timestamp, reverse=True):
            if interaction.product_id not in recent:
                recent.append(interaction.product_id)
            if len(recent) == self._config.recent_interactions:
                break
        return recent

    # ── Visualization ─────────────────────────────────────────

    def plot_popularity(self, products: Sequence[ProductFeature], output_dir: Path,
                        top_n: int = 15) -> None:
        """Horizontal bar chart of the most popular products."""
        popular = self.get_popular_products(products, limit=top_n)
        if not popular:
            return

        fig, ax = plt.subplots(figsize=(10, 8))
        ax.barh(
            [r.product_name for r in popular][::-1],
            [r.score for r in popular][::-1],
            color="#3498db", alpha=0.8,
        )
        ax.set_xlabel("Popularity score (0.7 × purchases + 0.3 × views)")
        ax.set_title(f"Top {len(popular)} Popular Products")

        plt.tight_layout()
        fig.savefig(output_dir / "popular_products.png")
        plt.close(fig)


# ── CLI Entry Point ───────────────────────────────────────────

def main():
    from commercescope.etl.extract import Extractor

    print("=" * 60)
    print("CommerceScope Product Recommendations")
    print("=" * 60)

    config = ETLConfig()
    output_dir = config.reports_dir / "recommendations"
    output_dir.mkdir(parents=True, exist_ok=True)
    extractor = Extractor(config)

    # Step 1: Load catalogue and behaviour
    print("\n[1/4] Loading products, interactions, and orders...")
    products = extractor.extract_products()
    interactions_by_user = extractor.extract_interactions()
    order_items = extractor.extract_order_items()

    engine = RecommendationEngine()

    # Step 2: Personalized recommendations
    print("\n[2/4] Generating personalized recommendations...")
    rows = []
    for user_id, interactions in interactions_by_user.items():
        for rank, rec in enumerate(
            engine.get_recommendations(user_id, interactions, products, interactions_by_user), 1
        ):
            rows.append({"user_id": user_id, "rank": rank, **rec.to_dict()})
    user_recs = pd.DataFrame(rows)
    print(f"  {len(user_recs):,} recommendations for {len(interactions_by_user):,} users")

    # Step 3: Frequently bought together
    print("\n[3/4] Computing frequently bought together...")
    rows = []
    for product in products:
        for rec in engine.get_frequently_bought_together(product.product_id, order_items, products):
            rows.append({"anchor_product_id": product.product_id, **rec.to_dict()})
    together = pd.DataFrame(rows)
    print(f"  {len(together):,} co-purchase pairs")

    # Step 4: Visualize
    print("\n[4/4] Generating visualizations...")
    engine.plot_popularity(products, output_dir)

    user_recs.to_csv(output_dir / "user_recommendations.csv", index=False)
    together.to_csv(output_dir / "frequently_bought_together.csv", index=False)

    print(f"\n✅ Recommendations complete. Reports saved to {output_dir}/")


if __name__ == "__main__":
    main()
