"""
Ratings between riders and drivers.
"""

import logging
from typing import List, Optional

from sqlalchemy import select, update, func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from unipool.core.config import settings
from unipool.core.exceptions import DuplicateRatingError, ValidationError
from unipool.models.rating import Rating
from unipool.models.user import UserProfile
from unipool.services.notifications import NotificationEmitter
from unipool.services.rides import RideInventory

logger = logging.getLogger(__name__)

class RatingService:
    def __init__(self, session: AsyncSession, emitter: NotificationEmitter):
        self.session = session
        self.emitter = emitter

    async def submit_rating(
        self,
        rater_id: str,
        ratee_id: str,
        stars: int,
        ride_id: Optional[int] = None,
        comment: Optional[str] = None,
        rater_name: Optional[str] = None,
    ) -> Rating:
        if not settings.MIN_RATING <= stars <= settings.MAX_RATING:
            raise ValidationError(
                f"Rating must be between {settings.MIN_RATING} and {settings.MAX_RATING} stars",
                field="stars",
                value=stars,
            )
        if rater_id == ratee_id:
            raise ValidationError("Users cannot rate themselves", field="ratee_id")
        if ride_id is not None:
            await RideInventory(self.session).get_ride(ride_id)

        # NULL ride ids never collide in a unique constraint, so check explicitly
        if await self._existing_rating_id(rater_id, ratee_id, ride_id) is not None:
            raise DuplicateRatingError(rater_id, ratee_id, ride_id)

        rating = Rating(
            ride_id=ride_id,
            rater_id=rater_id,
            ratee_id=ratee_id,
            stars=stars,
            comment=(comment or "").strip() or None,
        )
        self.session.add(rating)

        try:
            await self.session.flush()
            await self.session.execute(
                update(UserProfile)
                .where(UserProfile.id == ratee_id)
                .values(
                    rating_total=UserProfile.rating_total + stars,
                    rating_count=UserProfile.rating_count + 1,
                )
                .execution_options(synchronize_session=False)
            )
            await self.session.commit()
        except IntegrityError:
            await self.session.rollback()
            if await self._existing_rating_id(rater_id, ratee_id, ride_id) is None:
                raise
            raise DuplicateRatingError(rater_id, ratee_id, ride_id)

        logger.info(f"Rating {rating.id}: {rater_id} gave {ratee_id} {stars} stars")

        await self.emitter.notify_new_rating(
            ratee_id,
            rater_name or rater_id,
            stars,
            ride_id=ride_id,
            rating_id=rating.id,
        )
        return rating

    async def _existing_rating_id(self, rater_id, ratee_id, ride_id) -> Optional[int]:
        result = await self.session.execute(
            select(Rating.id).where(
                Rating.rater_id == rater_id,
                Rating.ratee_id == ratee_id,
                Rating.ride_id.is_(None) if ride_id is None else Rating.ride_id == ride_id,
            )
        )
        return result.scalars().first()

    async def list_ratings_for(self, user_id: str) -> List[Rating]:
        result = await self.session.execute(
            select(Rating)
            .where(Rating.ratee_id == user_id)
            .order_by(Rating.created_at.desc(), Rating.id.desc())
        )
        return list(result.scalars().all())

    async def average_rating(self, user_id: str) -> Optional[float]:
        """Average stars received, computed from the ratings themselves."""
        result = await self.session.execute(
            select(func.avg(Rating.stars)).where(Rating.ratee_id == user_id)
        )
        average = result.scalar_one()
        return round(float(average), 2) if average is not None else None
