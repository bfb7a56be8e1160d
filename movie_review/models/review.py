from datetime import datetime
from . import db


class Review(db.Model):
    __tablename__ = "reviews"

    id = db.Column(db.Integer, primary_key=True)
    movie_id = db.Column(db.Integer, db.ForeignKey("movies.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)
    username = db.Column(db.String(50), nullable=False)  # snapshot at creation, never re-synced
    rating = db.Column(db.Integer, nullable=False)  # 1 - 5
    comment = db.Column(db.Text, nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    movie = db.relationship("Movie", back_populates="reviews")
    user = db.relationship("User", back_populates="reviews")

    __table_args__ = (db.UniqueConstraint("movie_id", "user_id", name="uq_review_movie_user"),)

    def to_dict(self, include_author=False):
        data = {
            "id": self.id,
            "movie": self.movie_id,
            "user": self.user_id,
            "username": self.username,
            "rating": self.rating,
            "comment": self.comment,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
            "updatedAt": self.updated_at.isoformat() if self.updated_at else None,
        }
        if include_author:
            # Live name for display; the snapshot above stays as written
            data["user"] = {
                "id": self.user_id,
                "username": self.user.username if self.user else None,
            }
        return data

    def __repr__(self):
        return f"<Review movie_id={self.movie_id} user_id={self.user_id} rating={self.rating}>"
