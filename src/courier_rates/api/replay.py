# src/courier_rates/api/replay.py
from __future__ import annotations
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional
import json


@dataclass
class ReplayResponse:
    """Just enough of requests.Response for the provider clients."""

    status_code: int
    body: Any = None
    url: str = ""

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 400

    @property
    def text(self) -> str:
        if isinstance(self.body, str):
            return self.body
        return json.dumps(self.body, ensure_ascii=False)

    def json(self) -> Any:
        if isinstance(self.body, str):
            return json.loads(self.body)
        return self.body

    def raise_for_status(self) -> None:
        if not self.ok:
            import requests
            raise requests.HTTPError(
                f"{self.status_code} replayed error for url: {self.url}")


@dataclass
class ReplayTransport:
    """Replay transport that serves recorded provider responses from one JSON file.

    The file holds a JSON array (or a single object) of entries:

        {"method": "GET", "url_contains": "rate_calculator",
         "status": 200, "body": {"rate": 180}}

    The first entry whose method matches and whose `url_contains` is a
    substring of the requested URL wins. Unmatched requests get a 404 so the
    provider treats them like any other failure. Every request is appended to
    `calls` for inspection.
    """

    replay_file: Path
    calls: List[Dict[str, Any]] = field(default_factory=list)
    _entries: List[Dict[str, Any]] | None = None

    def __post_init__(self) -> None:
        self.replay_file = Path(self.replay_file)
        if not self.replay_file.exists():
            raise ValueError(f"Replay file does not exist: {self.replay_file}")
        if not self.replay_file.is_file():
            raise ValueError(
                "ReplayTransport requires a single JSON file of recorded responses; directories are not supported."
            )

        raw = json.loads(self.replay_file.read_text(encoding="utf-8"))
        entries = raw if isinstance(raw, list) else [raw]
        self._entries = [e for e in entries if isinstance(e, dict)]

    def _match(self, method: str, url: str) -> ReplayResponse:
        for entry in self._entries or []:
            want = str(entry.get("method", "GET")).upper()
            if want != method:
                continue
            if str(entry.get("url_contains", "")) in url:
                return ReplayResponse(
                    status_code=int(entry.get("status", 200)),
                    body=entry.get("body"),
                    url=url,
                )
        return ReplayResponse(status_code=404, body={"error": "no replay entry"}, url=url)

    def post(self, url: str, *, headers: Optional[Dict[str, str]] = None, data: Any = None, json: Any = None, params: Optional[Dict[str, Any]] = None):
        self.calls.append({"method": "POST", "url": url,
                          "headers": headers, "data": data, "json": json, "params": params})
        return self._match("POST", url)

    def get(self, url: str, *, headers: Optional[Dict[str, str]] = None, params: Optional[Dict[str, Any]] = None):
        self.calls.append({"method": "GET", "url": url,
                          "headers": headers, "params": params})
        return self._match("GET", url)
