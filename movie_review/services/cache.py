import requests_cache


def init_requests_cache(app):
    """
    Install a global requests-cache for outbound HTTP calls (TMDB poster lookups).
    SQLite backend, 24h expiry unless configured otherwise.
    """
    if not app.config.get("HTTP_CACHE_ENABLED", True):
        return False
    requests_cache.install_cache(
        app.config.get("HTTP_CACHE_NAME", "http_cache"),
        expire_after=app.config.get("HTTP_CACHE_EXPIRE", 86400),
    )
    return True
