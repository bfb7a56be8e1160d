from flask import Blueprint, jsonify, request
from flask_login import login_required, current_user

from ..identity import Identity
from ..services import reviews

reviews_bp = Blueprint("reviews", __name__)


@reviews_bp.get("/movie/<int:movie_id>")
def list_reviews(movie_id):
    # "username" is the snapshot taken at creation, "user.username" is the author's current name
    return jsonify([r.to_dict(include_author=True) for r in reviews.list_for_movie(movie_id)])


@reviews_bp.post("")
@login_required
def create_review():
    data = request.get_json(silent=True) or {}
    review = reviews.create(
        data.get("movieId"),
        Identity.from_user(current_user),
        data.get("rating"),
        data.get("comment"),
    )
    return jsonify(review.to_dict()), 201


@reviews_bp.put("/<int:review_id>")
@login_required
def update_review(review_id):
    data = request.get_json(silent=True) or {}
    review = reviews.update(review_id, Identity.from_user(current_user), data.get("rating"), data.get("comment"))
    return jsonify(review.to_dict())


@reviews_bp.delete("/<int:review_id>")
@login_required
def delete_review(review_id):
    return jsonify(reviews.delete(review_id, Identity.from_user(current_user)))
