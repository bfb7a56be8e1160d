from datetime import datetime
from . import db


PLACEHOLDER_POSTER = "https://via.placeholder.com/300x450?text=No+Poster"


class Movie(db.Model):
    __tablename__ = "movies"

    id = db.Column(db.Integer, primary_key=True)
    title = db.Column(db.String(255), nullable=False)
    year = db.Column(db.Integer, nullable=False)
    genre = db.Column(db.JSON, nullable=False, default=list)
    director = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, nullable=False)
    poster = db.Column(db.String(512), nullable=False, default=PLACEHOLDER_POSTER)

    # Written only by the aggregation engine
    average_rating = db.Column(db.Numeric(3, 1), nullable=False, default=0)
    total_reviews = db.Column(db.Integer, nullable=False, default=0)

    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    reviews = db.relationship("Review", back_populates="movie", cascade="all, delete-orphan")

    def to_dict(self):
        return {
            "id": self.id,
            "title": self.title,
            "year": self.year,
            "genre": list(self.genre or []),
            "director": self.director,
            "description": self.description,
            "poster": self.poster,
            "averageRating": float(self.average_rating or 0),
            "totalReviews": self.total_reviews or 0,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
            "updatedAt": self.updated_at.isoformat() if self.updated_at else None,
        }

    def __repr__(self):
        return f"<Movie {self.title} ({self.year})>"
