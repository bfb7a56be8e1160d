import logging

from flask import Flask, jsonify
from werkzeug.exceptions import HTTPException

from .config import get_config
from .errors import MovieReviewError
from .extensions import db, login_manager, csrf, migrate
from .routes.auth import auth_bp
from .routes.movies import movies_bp
from .routes.reviews import reviews_bp
from .models.user import User
from .models.movie import Movie  # noqa: F401
from .models.review import Review  # noqa: F401
from .services.cache import init_requests_cache
from .commands import register_commands


def create_app(config_object=None):
    app = Flask(__name__)
    app.config.from_object(config_object or get_config())
    app.logger.setLevel(getattr(logging, app.config.get("LOG_LEVEL", "INFO"), logging.INFO))
    init_requests_cache(app)

    # Init extensions
    db.init_app(app)
    migrate.init_app(app, db)
    login_manager.init_app(app)
    csrf.init_app(app)

    # Auth config
    login_manager.session_protection = None  # keep it simple

    @login_manager.user_loader
    def load_user(user_id):
        try:
            return db.session.get(User, int(user_id))
        except (TypeError, ValueError):
            return None

    @login_manager.unauthorized_handler
    def unauthorized():
        return jsonify({"message": "Authentication required"}), 401

    # JSON-only API
    for bp in (auth_bp, movies_bp, reviews_bp):
        csrf.exempt(bp)

    # Register blueprints
    app.register_blueprint(auth_bp, url_prefix="/auth")
    app.register_blueprint(movies_bp, url_prefix="/movies")
    app.register_blueprint(reviews_bp, url_prefix="/reviews")

    _register_error_handlers(app)
    register_commands(app)

    with app.app_context():
        db.create_all()

    return app


def _register_error_handlers(app: Flask):
    @app.errorhandler(MovieReviewError)
    def handle_domain_error(error):
        if error.status_code >= 500:
            app.logger.error(f"{type(error).__name__}: {error.message}", exc_info=error)
            return jsonify({"message": "Server error"}), error.status_code
        return jsonify({"message": error.message}), error.status_code

    @app.errorhandler(HTTPException)
    def handle_http_error(error):
        message = "Not found" if error.code == 404 else error.description
        return jsonify({"message": message}), error.code

    @app.errorhandler(Exception)
    def handle_unexpected(error):
        db.session.rollback()
        app.logger.error(f"Unhandled error: {error}", exc_info=error)
        return jsonify({"message": "Server error"}), 500
