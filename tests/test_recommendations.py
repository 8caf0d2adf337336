"""
Tests for CollaborativeFilter, ContentBasedFilter, and RecommendationEngine.

These tests verify:
1. Jaccard similarity over shared users
2. Attribute similarity over category, price, and rating
3. Hybrid merging, exclusion, de-duplication, and popularity backfill
4. Similar products and frequently bought together
"""
import pytest

from commercescope.analysis.recommendations import CollaborativeFilter, ContentBasedFilter
from commercescope.analysis.records import Recommendation

from conftest import make_interaction, make_product


def make_rec(product_id, score, method="content-based", confidence=0.7):
    return Recommendation(
        product_id=product_id, product_name=f"Product {product_id}", score=score,
        confidence=confidence, reason="test", method=method,
    )


class TestCollaborativeFilter:

    def test_matrix_maps_products_to_users(self, shared_users):
        matrix = CollaborativeFilter.build_product_user_matrix(shared_users)
        assert matrix["A"] == {"u1", "u2", "u3", "u4"}
        assert matrix["C"] == {"u1", "u5"}

    def test_jaccard_similarity(self, shared_users):
        matrix = CollaborativeFilter.build_product_user_matrix(shared_users)
        assert CollaborativeFilter.similarity("A", "B", matrix) == pytest.approx(0.75)
        assert CollaborativeFilter.similarity("A", "C", matrix) == pytest.approx(0.2)

    def test_similarity_with_unknown_product_is_zero(self, shared_users):
        matrix = CollaborativeFilter.build_product_user_matrix(shared_users)
        assert CollaborativeFilter.similarity("A", "Z", matrix) == 0.0

    def test_higher_overlap_ranks_first(self, shared_users):
        matrix = CollaborativeFilter.build_product_user_matrix(shared_users)
        similar = CollaborativeFilter().find_similar_products("A", matrix)
        assert similar == [("B", pytest.approx(0.75)), ("C", pytest.approx(0.2))]

    def test_unknown_target_has_no_neighbours(self, shared_users):
        matrix = CollaborativeFilter.build_product_user_matrix(shared_users)
        assert CollaborativeFilter().find_similar_products("Z", matrix) == []

    def test_recommend_for_user_excludes_interacted(self, shared_users, catalogue):
        matrix = CollaborativeFilter.build_product_user_matrix(shared_users)
        products = {p.product_id: p for p in catalogue}
        recs = CollaborativeFilter().recommend_for_user(["A", "B"], matrix, products)

        assert [r.product_id for r in recs] == ["C"]
        assert recs[0].method == "collaborative"

    def test_scores_average_over_hits_and_confidence_is_hit_ratio(self, shared_users, catalogue):
        """C is a neighbour of A (0.2) and B (1/4): mean 0.225, hit by 2 of 3 sources."""
        matrix = CollaborativeFilter.build_product_user_matrix(shared_users)
        products = {p.product_id: p for p in catalogue}
        matrix["D"] = {"u9"}
        rec = CollaborativeFilter().recommend_for_user(["A", "B", "D"], matrix, products)[0]

        assert rec.score == pytest.approx(0.225)
        assert rec.confidence == pytest.approx(2 / 3)

    def test_candidates_missing_from_catalogue_are_skipped(self, shared_users):
        matrix = CollaborativeFilter.build_product_user_matrix(shared_users)
        products = {"A": make_product("A")}
        assert CollaborativeFilter().recommend_for_user(["A"], matrix, products) == []


class TestContentBasedFilter:

    def test_identical_products_score_one(self):
        a = make_product("A", category_id="shoes", price=100.0, rating=4.0)
        b = make_product("B", category_id="shoes", price=100.0, rating=4.0)
        assert ContentBasedFilter().calculate_similarity(a, b) == pytest.approx(1.0)

    def test_category_mismatch_with_equal_price(self):
        a = make_product("A", category_id="shoes", price=50.0)
        b = make_product("B", category_id="hats", price=50.0)
        assert ContentBasedFilter().calculate_similarity(a, b) == pytest.approx(0.5)

    def test_price_closeness_relative_to_tolerance(self):
        """Prices 90 and 110: diff 20 over 30% of 100 → 1 - 2/3."""
        a = make_product("A", price=90.0)
        b = make_product("B", price=110.0)
        assert ContentBasedFilter().calculate_similarity(a, b) == pytest.approx(1 / 3)

    def test_far_prices_contribute_zero(self):
        a = make_product("A", price=10.0, rating=3.0)
        b = make_product("B", price=100.0, rating=3.0)
        assert ContentBasedFilter().calculate_similarity(a, b) == pytest.approx(0.5)

    def test_two_free_products_match_on_price(self):
        a = make_product("A", price=0.0)
        b = make_product("B", price=0.0)
        assert ContentBasedFilter().calculate_similarity(a, b) == 1.0

    def test_rating_only_counts_when_both_present(self):
        a = make_product("A", price=20.0, rating=5.0)
        b = make_product("B", price=20.0)
        assert ContentBasedFilter().calculate_similarity(a, b) == 1.0

    def test_recommend_similar_applies_cutoff_and_excludes_target(self):
        target = make_product("A", category_id="x", price=10.0)
        candidates = [
            target,
            make_product("B", category_id="x", price=10.0),
            make_product("C", category_id="y", price=500.0),
            make_product("D", category_id="y", price=10.0),
        ]
        recs = ContentBasedFilter().recommend_similar(target, candidates)
        assert [r.product_id for r in recs] == ["B", "D"]
        assert [r.score for r in recs] == [pytest.approx(1.0), pytest.approx(0.5)]
        assert all(r.confidence == 0.7 and r.method == "content-based" for r in recs)


class TestMergeRecommendations:

    def test_boosts_collaborative_and_averages_overlap(self, engine):
        collaborative = [make_rec("B", 0.5, "collaborative", 0.9)]
        content = [make_rec("B", 0.8)]
        merged = engine.merge_recommendations(collaborative, content)

        assert len(merged) == 1
        assert merged[0].score == pytest.approx((0.5 * 1.2 + 0.8) / 2)
        assert merged[0].confidence == pytest.approx(0.8)
        assert merged[0].method == "hybrid"

    def test_collaborative_only_keeps_method(self, engine):
        merged = engine.merge_recommendations([make_rec("B", 0.5, "collaborative")], [])
        assert merged[0].method == "collaborative"
        assert merged[0].score == pytest.approx(0.6)

    def test_content_duplicates_keep_best_score(self, engine):
        merged = engine.merge_recommendations([], [make_rec("B", 0.4), make_rec("B", 0.9)])
        assert len(merged) == 1
        assert merged[0].score == pytest.approx(0.9)

    def test_sorted_descending_with_id_tiebreak(self, engine):
        merged = engine.merge_recommendations([], [make_rec("Z", 0.5), make_rec("M", 0.5), make_rec("A", 0.9)])
        assert [r.product_id for r in merged] == ["A", "M", "Z"]

    def test_excluded_ids_dropped(self, engine):
        merged = engine.merge_recommendations(
            [make_rec("B", 0.5, "collaborative")], [make_rec("C", 0.5)], exclude_ids=["B", "C"],
        )
        assert merged == []


class TestGetRecommendations:

    def test_shared_users_scenario(self, engine, shared_users, catalogue):
        recs = engine.get_recommendations("u4", shared_users["u4"], catalogue, shared_users)
        ids = [r.product_id for r in recs]

        assert ids == ["B", "C"]
        assert recs[0].method == "hybrid"
        assert recs[0].score == pytest.approx((0.75 * 1.2 + 1.0) / 2)
        assert recs[1].method == "collaborative"
        assert recs[1].score == pytest.approx(0.2 * 1.2)

    def test_never_recommends_interacted_products(self, engine, shared_users, catalogue):
        extra = catalogue + [make_product(p, purchases=5) for p in "DEFG"]
        recs = engine.get_recommendations("u1", shared_users["u1"], extra, shared_users)
        ids = [r.product_id for r in recs]

        assert not {"A", "B", "C"} & set(ids)
        assert len(ids) == len(set(ids))

    def test_respects_limit(self, engine, shared_users):
        products = [make_product(f"P{i:02d}", purchases=i) for i in range(30)]
        recs = engine.get_recommendations("u4", shared_users["u4"], products, shared_users, limit=5)
        assert len(recs) == 5

    def test_new_user_gets_popular_products(self, engine):
        products = [
            make_product("A", purchases=1, views=0),
            make_product("B", purchases=10, views=100),
            make_product("C", purchases=50, views=0),
        ]
        recs = engine.get_recommendations("new", [], products, {}, limit=2)
        assert [r.product_id for r in recs] == ["B", "C"]
        assert all(r.method == "popular" and r.confidence == 0.6 for r in recs)

    def test_user_missing_from_matrix_is_added(self, engine, shared_users, catalogue):
        """u6 touched C; with u6 added, Jaccard(C, B) = 1/5 beats Jaccard(C, A) = 1/6."""
        interactions = [make_interaction("C")]
        recs = engine.get_recommendations("u6", interactions, catalogue, shared_users)
        collaborative = [r for r in recs if r.method in ("collaborative", "hybrid")]
        assert [r.product_id for r in collaborative] == ["B", "A"]

    def test_zero_limit(self, engine, shared_users, catalogue):
        assert engine.get_recommendations("u4", shared_users["u4"], catalogue, shared_users, limit=0) == []

    def test_content_uses_three_most_recent_products(self, engine):
        prices = {"A": 10.0, "B": 100.0, "C": 1000.0, "D": 10000.0, "E": 100000.0}
        products = [make_product(p, category_id=p, price=price) for p, price in prices.items()]
        products.append(make_product("A2", category_id="A", price=10.0))
        products.append(make_product("E2", category_id="E", price=100000.0))
        interactions = [make_interaction(p, minutes=i) for i, p in enumerate("ABCDE")]

        recs = engine.get_recommendations("u", interactions, products, {"u": interactions})
        content = [r for r in recs if r.method == "content-based"]
        assert "E2" in [r.product_id for r in content]
        assert "A2" not in [r.product_id for r in content]


class TestPopularProducts:

    def test_popularity_weights(self, engine):
        assert engine.popularity_score(make_product("A", purchases=10, views=100)) == pytest.approx(37.0)
        assert engine.popularity_score(make_product("B")) == 0.0

    def test_ranked_with_exclusions(self, engine):
        products = [
            make_product("A", purchases=10, views=100),
            make_product("B", purchases=50),
            make_product("C", purchases=1),
        ]
        recs = engine.get_popular_products(products, exclude_ids=["B"], limit=5)
        assert [r.product_id for r in recs] == ["A", "C"]
        assert recs[0].reason == "Popular with other customers"

    def test_ties_ordered_by_product_id(self, engine):
        products = [make_product("B", purchases=3), make_product("A", purchases=3)]
        assert [r.product_id for r in engine.get_popular_products(products)] == ["A", "B"]


class TestSimilarProducts:

    def test_similar_products_for_product_page(self, engine):
        products = [
            make_product("A", category_id="x", price=10.0),
            make_product("B", category_id="x", price=11.0),
            make_product("C", category_id="y", price=900.0),
        ]
        recs = engine.get_similar_products("A", products)
        assert [r.product_id for r in recs] == ["B"]
        assert recs[0].method == "similar"

    def test_unknown_product(self, engine, catalogue):
        assert engine.get_similar_products("Z", catalogue) == []


class TestFrequentlyBoughtTogether:

    @pytest.fixture
    def orders(self):
        return {
            "o1": ["A", "B", "C"],
            "o2": ["A", "B"],
            "o3": ["B", "C"],
            "o4": ["A", "A", "D"],
        }

    def test_scores_are_share_of_all_orders(self, engine, orders, catalogue):
        recs = engine.get_frequently_bought_together("A", orders, catalogue)
        assert [r.product_id for r in recs] == ["B", "C", "D"]
        assert [r.score for r in recs] == [pytest.approx(0.5), pytest.approx(0.25), pytest.approx(0.25)]
        assert all(r.confidence == 0.85 and r.reason == "Frequently bought together" for r in recs)

    def test_anchor_never_recommended(self, engine, orders, catalogue):
        recs = engine.get_frequently_bought_together("A", orders, catalogue)
        assert "A" not in [r.product_id for r in recs]

    def test_unknown_product_named_unknown(self, engine, orders, catalogue):
        recs = engine.get_frequently_bought_together("A", orders, catalogue)
        assert recs[-1].product_name == "Unknown"

    def test_limit(self, engine, orders, catalogue):
        assert len(engine.get_frequently_bought_together("A", orders, catalogue, limit=1)) == 1

    def test_no_orders(self, engine, catalogue):
        assert engine.get_frequently_bought_together("A", {}, catalogue) == []
