from typing import Any, Dict, List

from flask import current_app
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import joinedload

from ..errors import AggregationFailure, DuplicateReviewError, NotAuthorizedError, NotFoundError, ValidationError
from ..extensions import db
from ..identity import Identity
from ..models.review import Review


MIN_RATING = 1
MAX_RATING = 5


def validate_rating(value: Any) -> int:
    if isinstance(value, bool) or value is None:
        raise ValidationError("Rating must be an integer between 1 and 5")
    if isinstance(value, float):
        if not value.is_integer():
            raise ValidationError("Rating must be an integer between 1 and 5")
        value = int(value)
    try:
        rating = int(value)
    except (TypeError, ValueError):
        raise ValidationError("Rating must be an integer between 1 and 5")
    if not (MIN_RATING <= rating <= MAX_RATING):
        raise ValidationError("Rating must be an integer between 1 and 5")
    return rating


def validate_comment(value: Any) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValidationError("Comment is required")
    return value.strip()


def _as_id(value: Any, message: str) -> int:
    if isinstance(value, bool):
        raise ValidationError(message)
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValidationError(message)


def is_owner(review: Review, identity: Identity) -> bool:
    """Only the author of a review may change or remove it."""
    if review is None or identity is None:
        return False
    return int(review.user_id) == int(identity.user_id)


class ReviewService:
    """
    Review create/update/delete with the one-review-per-user-per-movie rule.

    Each mutation and the movie aggregate it changes are written in a single
    transaction under the movie's aggregation lock, so no reader sees one
    without the other. If the aggregate cannot be written, the mutation is
    committed alone, the failure is logged, and the reconcile sweep repairs
    the aggregate later.
    """

    def __init__(self, catalog, aggregator):
        self.catalog = catalog
        self.aggregator = aggregator

    def list_for_movie(self, movie_id) -> List[Review]:
        try:
            movie_id = int(movie_id)
        except (TypeError, ValueError):
            raise NotFoundError("Movie not found")
        return (
            Review.query.options(joinedload(Review.user))
            .filter(Review.movie_id == movie_id)
            .order_by(Review.created_at.desc(), Review.id.desc())
            .all()
        )

    def find_for_user(self, movie_id: int, user_id: int):
        return Review.query.filter_by(movie_id=movie_id, user_id=user_id).first()

    def create(self, movie_id, identity: Identity, rating, comment) -> Review:
        movie_id = _as_id(movie_id, "movieId is required")
        rating = validate_rating(rating)
        comment = validate_comment(comment)

        def add_review():
            review = Review(
                movie_id=movie_id,
                user_id=identity.user_id,
                username=identity.username,
                rating=rating,
                comment=comment,
            )
            db.session.add(review)
            return review

        with self.aggregator.serialized(movie_id):
            if not self.catalog.exists(movie_id):
                raise NotFoundError("Movie not found")
            if self.find_for_user(movie_id, identity.user_id):
                raise DuplicateReviewError()
            try:
                review = self._write(movie_id, add_review)
            except IntegrityError:
                # Unique (movie_id, user_id) constraint: another process got there first
                raise DuplicateReviewError()
            current_app.logger.info(
                f"User {identity.user_id} reviewed movie {movie_id} (review {review.id}, rating {rating})."
            )
        return review

    def update(self, review_id, identity: Identity, rating, comment) -> Review:
        review = self._get(review_id)
        with self.aggregator.serialized(review.movie_id):
            review = self._get(review_id)
            if not is_owner(review, identity):
                raise NotAuthorizedError()
            rating = validate_rating(rating)
            comment = validate_comment(comment)
            movie_id = review.movie_id

            def change_review():
                target = self._get(review_id)
                target.rating = rating
                target.comment = comment
                return target

            review = self._write(movie_id, change_review)
            current_app.logger.info(f"User {identity.user_id} updated review {review.id} on movie {movie_id}.")
        return review

    def delete(self, review_id, identity: Identity) -> Dict[str, str]:
        review = self._get(review_id)
        with self.aggregator.serialized(review.movie_id):
            review = self._get(review_id)
            if not is_owner(review, identity):
                raise NotAuthorizedError()
            movie_id = review.movie_id

            def remove_review():
                db.session.delete(self._get(review_id))

            self._write(movie_id, remove_review)
            current_app.logger.info(f"User {identity.user_id} deleted review {review_id} on movie {movie_id}.")
        return {"message": "Review deleted"}

    def _get(self, review_id) -> Review:
        try:
            review_id = int(review_id)
        except (TypeError, ValueError):
            raise NotFoundError("Review not found")
        review = db.session.get(Review, review_id, populate_existing=True)
        if review is None:
            raise NotFoundError("Review not found")
        return review

    def _write(self, movie_id: int, mutation):
        """
        Apply mutation and the movie aggregate in one commit. mutation must be
        safe to call again: after a failed aggregate write the transaction is
        rolled back and the mutation is replayed and committed on its own.
        """
        try:
            result = mutation()
            db.session.flush()
        except SQLAlchemyError:
            db.session.rollback()
            raise

        try:
            self.aggregator.apply(movie_id)
        except AggregationFailure as e:
            db.session.rollback()
            current_app.logger.error(f"Rating aggregate for movie {movie_id} is stale: {e.message}", exc_info=e)
            result = mutation()

        try:
            db.session.commit()
        except SQLAlchemyError:
            db.session.rollback()
            raise
        return result
