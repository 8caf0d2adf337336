"""Recommendation endpoints: personalized, similar, popular, bought together."""

from fastapi import APIRouter, Depends

from commercescope.analysis.recommendations import RecommendationEngine
from commercescope.app.dependencies import get_recommender
from commercescope.app.schemas import (
    BoughtTogetherRequest, PopularProductsRequest, RecommendationOut,
    SimilarProductsRequest, UserRecommendationRequest,
)

router = APIRouter(prefix="/recommendations", tags=["Recommendations"])


@router.post("/user", response_model=list[RecommendationOut])
def recommend_for_user(
    request: UserRecommendationRequest,
    engine: RecommendationEngine = Depends(get_recommender),
):
    recommendations = engine.get_recommendations(
        request.user_id,
        [i.to_record() for i in request.user_interactions],
        [p.to_record() for p in request.products],
        {
            user_id: [i.to_record() for i in interactions]
            for user_id, interactions in request.interactions_by_user.items()
        },
        limit=request.limit,
    )
    return [r.to_dict() for r in recommendations]


@router.post("/similar", response_model=list[RecommendationOut])
def similar_products(
    request: SimilarProductsRequest,
    engine: RecommendationEngine = Depends(get_recommender),
):
    recommendations = engine.get_similar_products(
        request.product_id, [p.to_record() for p in request.products], limit=request.limit,
    )
    return [r.to_dict() for r in recommendations]


@router.post("/popular", response_model=list[RecommendationOut])
def popular_products(
    request: PopularProductsRequest,
    engine: RecommendationEngine = Depends(get_recommender),
):
    recommendations = engine.get_popular_products(
        [p.to_record() for p in request.products], request.exclude_ids, limit=request.limit,
    )
    return [r.to_dict() for r in recommendations]


@router.post("/frequently-bought-together", response_model=list[RecommendationOut])
def frequently_bought_together(
    request: BoughtTogetherRequest,
    engine: RecommendationEngine = Depends(get_recommender),
):
    recommendations = engine.get_frequently_bought_together(
        request.product_id,
        request.order_items,
        [p.to_record() for p in request.products],
        limit=request.limit,
    )
    return [r.to_dict() for r in recommendations]
