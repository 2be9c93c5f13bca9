"""
Rating API endpoints.
"""

from fastapi import APIRouter, Depends, status
import logging

from unipool.api.deps import get_rating_service
from unipool.api.v1.schemas import RatingCreate, RatingResponse, RatingSummary
from unipool.core.identity import current_user_id
from unipool.services.ratings import RatingService

logger = logging.getLogger(__name__)
router = APIRouter()

@router.post("/", response_model=RatingResponse, status_code=status.HTTP_201_CREATED)
async def submit_rating(
    rating_data: RatingCreate,
    rater_id: str = Depends(current_user_id),
    ratings: RatingService = Depends(get_rating_service)
):
    """Rate another rider or driver."""

    return await ratings.submit_rating(
        rater_id,
        rating_data.ratee_id,
        rating_data.stars,
        ride_id=rating_data.ride_id,
        comment=rating_data.comment,
        rater_name=rating_data.rater_name,
    )

@router.get("/user/{user_id}", response_model=RatingSummary)
async def get_user_ratings(
    user_id: str,
    ratings: RatingService = Depends(get_rating_service)
):
    """Ratings a user has received, with their average."""

    received = await ratings.list_ratings_for(user_id)
    return RatingSummary(
        user_id=user_id,
        average=await ratings.average_rating(user_id),
        count=len(received),
        ratings=[RatingResponse.model_validate(r) for r in received],
    )
