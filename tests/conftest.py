import json
from typing import Any

import pytest
import requests


class FakeResponse:
    """Stand-in for requests.Response with a fixed status and body."""

    def __init__(self, status_code: int = 200, body: Any = None, text: str | None = None):
        self.status_code = status_code
        self._body = body
        self._text = text

    @property
    def ok(self) -> bool:
        return self.status_code < 400

    @property
    def text(self) -> str:
        if self._text is not None:
            return self._text
        return json.dumps(self._body)

    def json(self):
        if self._body is None:
            raise ValueError("No JSON object could be decoded")
        return self._body

    def raise_for_status(self) -> None:
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} Error")


class FakeTransport:
    """Records every request and answers from per-URL queues.

    `add(method, url_part, *responses)` registers answers for requests whose
    URL contains `url_part`; they are handed out in order and the last one
    repeats. A response may be an exception instance, which is raised.
    """

    def __init__(self):
        self.routes: list[list[Any]] = []
        self.calls: list[dict[str, Any]] = []

    def add(self, method: str, url_part: str, *responses):
        self.routes.append([method.upper(), url_part, list(responses)])
        return self

    def _respond(self, method: str, url: str):
        for m, part, queue in self.routes:
            if m == method and part in url:
                item = queue.pop(0) if len(queue) > 1 else queue[0]
                if isinstance(item, BaseException):
                    raise item
                return item
        raise requests.ConnectionError(f"no fake route for {method} {url}")

    def calls_to(self, url_part: str, method: str | None = None):
        return [c for c in self.calls
                if url_part in c["url"] and (method is None or c["method"] == method)]

    def get(self, url, *, headers=None, params=None):
        self.calls.append({"method": "GET", "url": url,
                          "headers": headers, "params": params})
        return self._respond("GET", url)

    def post(self, url, *, headers=None, data=None, json=None, params=None):
        self.calls.append({"method": "POST", "url": url, "headers": headers,
                          "data": data, "json": json, "params": params})
        return self._respond("POST", url)


@pytest.fixture
def transport():
    return FakeTransport()


@pytest.fixture
def response():
    """Factory: response(status, body) -> FakeResponse."""
    def _make(status_code: int = 200, body: Any = None, text: str | None = None):
        return FakeResponse(status_code, body, text)
    return _make
