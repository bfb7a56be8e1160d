"""
Error taxonomy for the catalog and review services.
Every error carries the client-facing message and the HTTP status the API maps it to.
"""


class MovieReviewError(Exception):
    status_code = 500
    message = "Server error"

    def __init__(self, message=None):
        if message is not None:
            self.message = message
        super().__init__(self.message)


class ValidationError(MovieReviewError):
    status_code = 400
    message = "Invalid request"


class NotFoundError(MovieReviewError):
    status_code = 404
    message = "Not found"


class NotAuthorizedError(MovieReviewError):
    status_code = 403
    message = "Not authorized"


class DuplicateReviewError(MovieReviewError):
    status_code = 400
    message = "You have already reviewed this movie"


class AggregationFailure(MovieReviewError):
    """Recompute could not read or write after a committed review mutation."""

    def __init__(self, movie_id, message=None):
        self.movie_id = movie_id
        super().__init__(message or f"Could not recompute rating aggregate for movie {movie_id}")
