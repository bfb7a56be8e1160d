import logging
import threading
from decimal import Decimal
from unittest.mock import patch

import pytest
from sqlalchemy.exc import OperationalError

from movie_review.errors import AggregationFailure
from movie_review.extensions import db
from movie_review.models.movie import Movie
from movie_review.models.review import Review
from movie_review.services import aggregator, average_of, catalog, AggregationEngine
from movie_review.errors import NotFoundError

from .conftest import create_movie, create_user


def _add_review(movie, identity, rating):
    db.session.add(Review(movie_id=movie.id, user_id=identity.user_id, username=identity.username,
                          rating=rating, comment="written directly"))
    db.session.commit()


def _stored(movie_id):
    movie = db.session.get(Movie, movie_id, populate_existing=True)
    return Decimal(movie.average_rating), movie.total_reviews


@pytest.mark.parametrize("ratings, expected", [
    ([], (Decimal("0.0"), 0)),
    ([4], (Decimal("4.0"), 1)),
    ([4, 5], (Decimal("4.5"), 2)),
    ([4, 5, 5], (Decimal("4.7"), 3)),
    ([1, 2, 2], (Decimal("1.7"), 3)),
    ([2, 2, 2, 3], (Decimal("2.3"), 4)),  # 2.25 rounds half up, not to even
    ([1, 1, 1, 1, 1, 1, 1, 2], (Decimal("1.1"), 8)),
])
def test_average_of(ratings, expected):
    assert average_of(ratings) == expected


def test_recompute_matches_review_set(ctx):
    movie = create_movie()
    for name, rating in [("ann", 5), ("bob", 3), ("cy", 4)]:
        _add_review(movie, create_user(name), rating)

    aggregator.recompute(movie.id)

    assert _stored(movie.id) == (Decimal("4.0"), 3)


def test_recompute_is_idempotent(ctx):
    movie = create_movie()
    _add_review(movie, create_user("ann"), 2)
    _add_review(movie, create_user("bob"), 3)

    aggregator.recompute(movie.id)
    first = _stored(movie.id)
    aggregator.recompute(movie.id)

    assert _stored(movie.id) == first == (Decimal("2.5"), 2)


def test_recompute_without_reviews_resets(ctx):
    movie = create_movie()
    movie.average_rating = Decimal("3.3")
    movie.total_reviews = 7
    db.session.commit()

    aggregator.recompute(movie.id)

    assert _stored(movie.id) == (Decimal("0.0"), 0)


def test_recompute_unknown_movie_fails(ctx):
    with pytest.raises(AggregationFailure) as exc:
        aggregator.recompute(4242)
    assert exc.value.movie_id == 4242


def test_recompute_storage_error_rolls_back(ctx):
    movie = create_movie()
    _add_review(movie, create_user("ann"), 5)

    boom = OperationalError("UPDATE movies", {}, Exception("disk I/O error"))
    with patch.object(db.session, "commit", side_effect=boom):
        with pytest.raises(AggregationFailure):
            aggregator.recompute(movie.id)

    assert _stored(movie.id) == (Decimal("0.0"), 0)


def test_reconcile_reports_only_stale_movies(ctx):
    fresh = create_movie(title="Fresh")
    stale = create_movie(title="Stale")
    ann = create_user("ann")
    _add_review(fresh, ann, 4)
    aggregator.recompute(fresh.id)
    _add_review(stale, ann, 2)

    assert aggregator.reconcile() == ([stale.id], [])
    assert _stored(stale.id) == (Decimal("2.0"), 1)
    assert aggregator.reconcile() == ([], [])


def test_reconcile_skips_unknown_ids(ctx):
    movie = create_movie()
    assert aggregator.reconcile([movie.id, 999]) == ([], [])


def test_lock_table_is_keyed_by_movie():
    engine = AggregationEngine()
    assert engine.lock_for(1) is engine.lock_for(1)
    assert engine.lock_for(1) is not engine.lock_for(2)


def test_serialized_is_reentrant_and_exclusive():
    engine = AggregationEngine()
    acquired = []

    def try_acquire():
        lock = engine.lock_for(7)
        got = lock.acquire(blocking=False)
        if got:
            lock.release()
        acquired.append(got)

    with engine.serialized(7):
        with engine.serialized("7"):
            worker = threading.Thread(target=try_acquire)
            worker.start()
            worker.join()

    assert acquired == [False]


def test_reconcile_continues_past_failures(ctx, caplog):
    broken_id = create_movie(title="Broken").id
    good = create_movie(title="Good")
    ann = create_user("ann")
    _add_review(db.session.get(Movie, broken_id), ann, 1)
    _add_review(good, ann, 4)
    good_id = good.id
    real_recompute = aggregator.recompute

    def flaky(movie_id):
        if int(movie_id) == broken_id:
            raise AggregationFailure(movie_id)
        return real_recompute(movie_id)

    with patch.object(aggregator, "recompute", side_effect=flaky):
        with caplog.at_level(logging.ERROR):
            assert aggregator.reconcile() == ([good_id], [broken_id])

    assert _stored(good_id) == (Decimal("4.0"), 1)
    assert _stored(broken_id) == (Decimal("0.0"), 0)
    assert any(f"could not recompute movie {broken_id}" in rec.getMessage() for rec in caplog.records)


def test_apply_leaves_commit_to_caller(ctx):
    movie = create_movie()
    _add_review(movie, create_user("ann"), 3)
    movie_id = movie.id

    aggregator.apply(movie_id)
    db.session.rollback()

    assert _stored(movie_id) == (Decimal("0.0"), 0)


def test_lock_table_drops_unused_locks():
    engine = AggregationEngine()
    with engine.serialized(5):
        assert 5 in engine._locks
    assert 5 not in engine._locks
    assert len(engine._locks) == 0


def test_missing_movie_lookup_does_not_grow_lock_table(ctx):
    before = len(aggregator._locks)
    for movie_id in range(1000, 1050):
        with pytest.raises(NotFoundError):
            catalog.get(movie_id)
    assert len(aggregator._locks) == before
