import threading
import weakref
from contextlib import contextmanager
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable, List, Optional, Tuple

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from ..errors import AggregationFailure
from ..extensions import db
from ..models.movie import Movie
from ..models.review import Review


ONE_PLACE = Decimal("0.1")


def average_of(ratings: Iterable[int]) -> Tuple[Decimal, int]:
    """
    Mean and count of a rating set, mean rounded half-up to one decimal place.
    An empty set gives (0, 0).
    """
    values = [int(r) for r in ratings]
    if not values:
        return Decimal("0.0"), 0
    mean = Decimal(sum(values)) / Decimal(len(values))
    return mean.quantize(ONE_PLACE, rounding=ROUND_HALF_UP), len(values)


class AggregationEngine:
    """
    Sole writer of Movie.average_rating / Movie.total_reviews.

    Every aggregate write is a full pass over the movie's reviews. Review
    mutations call apply() inside their own transaction so the review change
    and the aggregate become visible together in one commit. serialized()
    orders writers on the same movie; the lock table only holds locks that are
    in use, and is per process.
    """

    def __init__(self):
        self._guard = threading.Lock()
        self._locks = weakref.WeakValueDictionary()

    def lock_for(self, movie_id: int) -> threading.RLock:
        with self._guard:
            lock = self._locks.get(movie_id)
            if lock is None:
                lock = threading.RLock()
                self._locks[movie_id] = lock
            return lock

    @contextmanager
    def serialized(self, movie_id: int):
        lock = self.lock_for(int(movie_id))
        with lock:
            yield

    def apply(self, movie_id: int) -> Movie:
        """
        Write the aggregate into the current transaction without committing.
        Pending review changes in the session are flushed first and counted.
        """
        movie_id = int(movie_id)
        with self.serialized(movie_id):
            try:
                movie = db.session.get(Movie, movie_id)
                if movie is None:
                    raise AggregationFailure(movie_id, f"Movie {movie_id} vanished before aggregation")
                ratings = db.session.query(Review.rating).filter(Review.movie_id == movie_id).all()
                average, count = average_of(r for (r,) in ratings)
                movie.average_rating = average
                movie.total_reviews = count
                db.session.flush()
            except SQLAlchemyError as e:
                raise AggregationFailure(movie_id) from e
        current_app.logger.debug(f"Movie {movie_id} aggregate: {average} over {count} review(s).")
        return movie

    def recompute(self, movie_id: int) -> Movie:
        movie_id = int(movie_id)
        with self.serialized(movie_id):
            try:
                movie = self.apply(movie_id)
                db.session.commit()
            except AggregationFailure:
                db.session.rollback()
                raise
            except SQLAlchemyError as e:
                db.session.rollback()
                raise AggregationFailure(movie_id) from e
            return movie

    def reconcile(self, movie_ids: Optional[Iterable[int]] = None) -> Tuple[List[int], List[int]]:
        """
        Corrective sweep: recompute each movie. Returns (repaired, failed):
        the ids whose stored aggregate did not match their review set, and the
        ids that could not be recomputed. A failure never stops the sweep.
        """
        if movie_ids is None:
            movie_ids = [mid for (mid,) in db.session.query(Movie.id).order_by(Movie.id).all()]

        repaired, failed = [], []
        for movie_id in movie_ids:
            with self.serialized(movie_id):
                movie = db.session.get(Movie, int(movie_id), populate_existing=True)
                if movie is None:
                    current_app.logger.warning(f"Reconcile skipped unknown movie {movie_id}.")
                    continue
                before = (Decimal(movie.average_rating or 0).quantize(ONE_PLACE), movie.total_reviews or 0)
                try:
                    self.recompute(movie_id)
                except AggregationFailure as e:
                    current_app.logger.error(f"Reconcile could not recompute movie {movie_id}: {e.message}", exc_info=e)
                    failed.append(int(movie_id))
                    continue
                after = (Decimal(movie.average_rating).quantize(ONE_PLACE), movie.total_reviews)
                if before != after:
                    current_app.logger.warning(
                        f"Movie {movie_id} aggregate was stale: {before[0]}/{before[1]} -> {after[0]}/{after[1]}."
                    )
                    repaired.append(int(movie_id))
        return repaired, failed
