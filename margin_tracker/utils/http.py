# utils/http.py
from __future__ import annotations

import requests
from requests.adapters import HTTPAdapter, Retry

from ..constants import APP_NAME

_RETRIES = Retry(
    total=2,
    status_forcelist=(429, 500, 502, 503, 504),
    backoff_factor=0.6,
    allowed_methods=("GET",),
)


def build_session(headers: dict | None = None) -> requests.Session:
    """
    requests.Session with a short retry policy on idempotent GETs.
    Writes (POST) are never retried automatically.
    """
    session = requests.Session()
    session.headers.update({"User-Agent": f"{APP_NAME}/1.0", "Accept": "application/json"})
    if headers:
        session.headers.update(headers)
    adapter = HTTPAdapter(max_retries=_RETRIES)
    session.mount("https://", adapter)
    session.mount("http://", adapter)
    return session


def describe_http_error(exc: requests.RequestException) -> str:
    """One-line text for status bars: status code + short body when there is a response."""
    response = getattr(exc, "response", None)
    if response is None:
        return str(exc) or exc.__class__.__name__
    body = (response.text or "").strip().replace("\n", " ")
    if len(body) > 200:
        body = body[:200] + "..."
    return f"HTTP {response.status_code}: {body}" if body else f"HTTP {response.status_code}"
