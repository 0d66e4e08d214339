from __future__ import annotations

from typing import Any, Dict, Optional, Protocol
import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry


class Transport(Protocol):
    """What provider clients need from an HTTP layer (RequestsTransport, ReplayTransport, test fakes)."""

    def post(self, url: str, *, headers: Optional[Dict[str, str]] = None, data: Any = None, json: Any = None, params: Optional[Dict[str, Any]] = None):
        ...

    def get(self, url: str, *, headers: Optional[Dict[str, str]] = None, params: Optional[Dict[str, Any]] = None):
        ...


class RequestsTransport:
    """Requests session wrapper with optional retry/backoff.

    Rate providers are built with max_retries=0 so a single slow carrier
    cannot multiply its latency; 401 is never in the retry list because token
    refresh is handled by the provider client itself.
    """

    def __init__(self, timeout: float = 10, max_retries: int = 0, backoff_factor: float = 0.3) -> None:
        self.session = requests.Session()
        self.timeout = timeout

        retry = Retry(
            total=max_retries,
            read=max_retries,
            connect=max_retries,
            backoff_factor=backoff_factor,
            status_forcelist=(429, 500, 502, 503, 504),
            allowed_methods=("GET", "POST"),
            raise_on_status=False,
        )
        adapter = HTTPAdapter(max_retries=retry)
        self.session.mount("https://", adapter)
        self.session.mount("http://", adapter)

    def post(self, url: str, *, headers: Optional[Dict[str, str]] = None, data: Any = None, json: Any = None, params: Optional[Dict[str, Any]] = None):
        return self.session.post(url, headers=headers, data=data, json=json, params=params, timeout=self.timeout)

    def get(self, url: str, *, headers: Optional[Dict[str, str]] = None, params: Optional[Dict[str, Any]] = None):
        return self.session.get(url, headers=headers, params=params, timeout=self.timeout)


def truncate(text: Optional[str], limit: int = 2000) -> Optional[str]:
    """Shorten response bodies before they reach the logs."""
    if text and len(text) > limit:
        return text[:limit] + "..."
    return text


def response_text(resp: Any) -> Optional[str]:
    try:
        return resp.text
    except Exception:
        return None


def response_json(resp: Any) -> Any:
    """Parsed body, or None when the body is not JSON."""
    try:
        return resp.json()
    except ValueError:
        return None
