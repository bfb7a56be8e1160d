from flask import Blueprint, jsonify, request

from ..services import catalog

movies_bp = Blueprint("movies", __name__)


@movies_bp.get("")
def list_movies():
    return jsonify([m.to_dict() for m in catalog.list()])


@movies_bp.get("/<int:movie_id>")
def get_movie(movie_id):
    return jsonify(catalog.get(movie_id).to_dict())


@movies_bp.post("")
def create_movie():
    """
    Create a movie for seeding or admin use. Aggregate fields in the body are ignored.
    """
    data = request.get_json(silent=True) or {}
    movie = catalog.create(data)
    return jsonify(movie.to_dict()), 201
