from typing import Any, Dict, Optional

import requests
from flask import current_app


TMDB_API_BASE = "https://api.themoviedb.org/3"
IMAGE_BASE = "https://image.tmdb.org/t/p"


def _auth_headers() -> Dict[str, str]:
    """
    Prefer Bearer token if available; otherwise return empty headers and rely on api_key query.
    """
    token = current_app.config.get("TMDB_BEARER_TOKEN", "")
    headers = {}
    if token:
        headers["Authorization"] = f"Bearer {token}"
    return headers


def _api_key_param() -> Dict[str, str]:
    """
    Provide api_key param if no bearer token provided.
    """
    if "Authorization" in _auth_headers():
        return {}
    api_key = current_app.config.get("TMDB_API_KEY", "")
    return {"api_key": api_key} if api_key else {}


def is_configured() -> bool:
    return bool(_auth_headers() or _api_key_param())


def _image_url(path: Optional[str], size: str = "w500") -> Optional[str]:
    if not path:
        return None
    return f"{IMAGE_BASE}/{size}{path}"


def find_poster(title: str, year: Optional[int] = None) -> Optional[str]:
    """
    Poster URL of the top TMDB search hit for title/year, or None when TMDB is
    not configured, the request fails, or nothing matches.
    """
    if not title or not is_configured():
        return None

    url = f"{TMDB_API_BASE}/search/movie"
    params: Dict[str, Any] = {"query": title, "include_adult": "false", **_api_key_param()}
    if year:
        params["year"] = year

    try:
        resp = requests.get(url, headers=_auth_headers(), params=params, timeout=10)
        resp.raise_for_status()
        data = resp.json() or {}
    except (requests.RequestException, ValueError) as e:
        current_app.logger.warning(f"TMDB poster lookup failed for '{title}': {e}")
        return None

    for result in data.get("results", []) or []:
        poster = _image_url((result or {}).get("poster_path"))
        if poster:
            return poster
    return None
