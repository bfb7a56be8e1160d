from typing import Any, Dict, Iterable, List, Tuple

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from ..errors import NotFoundError, ValidationError
from ..extensions import db
from ..models.movie import Movie, PLACEHOLDER_POSTER
from . import tmdb


REQUIRED_TEXT_FIELDS = ("title", "director", "description")


def _clean_text(data: Dict[str, Any], field: str) -> str:
    value = data.get(field)
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{field} is required")
    return value.strip()


def _clean_year(value: Any) -> int:
    if isinstance(value, bool):
        raise ValidationError("year must be an integer")
    try:
        year = int(value)
    except (TypeError, ValueError):
        raise ValidationError("year must be an integer")
    if isinstance(value, float) and not value.is_integer():
        raise ValidationError("year must be an integer")
    return year


def _clean_genre(value: Any) -> List[str]:
    if not isinstance(value, (list, tuple)):
        raise ValidationError("genre must be a non-empty list")
    genres = [g.strip() for g in value if isinstance(g, str) and g.strip()]
    if not genres or len(genres) != len(value):
        raise ValidationError("genre must be a non-empty list")
    return genres


def validate_movie(data: Dict[str, Any]) -> Dict[str, Any]:
    """
    Check the required catalog fields and return the cleaned values.
    Aggregate fields are never taken from input.
    """
    if not isinstance(data, dict):
        raise ValidationError("Movie data must be an object")
    cleaned = {field: _clean_text(data, field) for field in REQUIRED_TEXT_FIELDS}
    cleaned["year"] = _clean_year(data.get("year"))
    cleaned["genre"] = _clean_genre(data.get("genre"))

    poster = data.get("poster")
    if poster is not None and not isinstance(poster, str):
        raise ValidationError("poster must be a URL string")
    cleaned["poster"] = (poster or "").strip() or None
    return cleaned


class CatalogService:
    def list(self) -> List[Movie]:
        return Movie.query.order_by(Movie.created_at.desc(), Movie.id.desc()).all()

    def get(self, movie_id) -> Movie:
        try:
            movie_id = int(movie_id)
        except (TypeError, ValueError):
            raise NotFoundError("Movie not found")
        movie = db.session.get(Movie, movie_id, populate_existing=True)
        if movie is None:
            raise NotFoundError("Movie not found")
        return movie

    def exists(self, movie_id: int) -> bool:
        return db.session.query(Movie.id).filter(Movie.id == movie_id).first() is not None

    def create(self, data: Dict[str, Any]) -> Movie:
        cleaned = validate_movie(data)
        movie = Movie(
            title=cleaned["title"],
            year=cleaned["year"],
            genre=cleaned["genre"],
            director=cleaned["director"],
            description=cleaned["description"],
            poster=cleaned["poster"] or self._default_poster(),
            average_rating=0,
            total_reviews=0,
        )
        db.session.add(movie)
        try:
            db.session.commit()
        except SQLAlchemyError:
            db.session.rollback()
            raise
        current_app.logger.info(f"Movie '{movie.title}' (ID: {movie.id}) added to catalog.")
        return movie

    def import_many(self, records: Iterable[Dict[str, Any]], enrich: bool = False) -> Tuple[int, int]:
        """
        Batch ingestion. Records already present by (title, year) are skipped,
        invalid records are logged and skipped. With enrich=True a missing
        poster is looked up on TMDB before the record is stored.
        """
        created = skipped = 0
        for record in records:
            try:
                cleaned = validate_movie(record)
            except ValidationError as e:
                current_app.logger.warning(f"Skipping invalid movie record {record!r}: {e.message}")
                skipped += 1
                continue

            existing = Movie.query.filter_by(title=cleaned["title"], year=cleaned["year"]).first()
            if existing:
                skipped += 1
                continue

            if enrich and not cleaned["poster"]:
                cleaned["poster"] = tmdb.find_poster(cleaned["title"], cleaned["year"])

            self.create(cleaned)
            created += 1
        return created, skipped

    def summary(self, limit: int = 5) -> Dict[str, Any]:
        return {
            "total": Movie.query.count(),
            "latest": Movie.query.order_by(Movie.created_at.desc(), Movie.id.desc()).limit(limit).all(),
        }

    @staticmethod
    def _default_poster() -> str:
        return current_app.config.get("DEFAULT_POSTER") or PLACEHOLDER_POSTER
