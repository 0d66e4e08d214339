from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional
import logging
import threading

from courier_rates.models import DetailedRateRequest, ProviderResult, RateRequest
from courier_rates.models.env_cfg import DEFAULT_SHIPROCKET_BASE_URL

from .normalize import normalize_shiprocket, normalize_shiprocket_detailed
from .transport import RequestsTransport, Transport, response_json, response_text, truncate

PROVIDER = "shiprocket"
LOGIN_PATH = "/v1/external/auth/login"
SERVICEABILITY_PATH = "/v1/external/courier/serviceability/"
DEFAULT_DIMENSION_CM = 10
DEFAULT_DECLARED_VALUE = 1000


@dataclass
class ShiprocketConfig:
    auth_token: str = ""
    email: str = ""
    password: str = ""
    base_url: str = DEFAULT_SHIPROCKET_BASE_URL


def _plain(n: float) -> float | int:
    return int(n) if float(n).is_integer() else n


class ShiprocketClient:
    """Shiprocket serviceability client with reactive token refresh.

    Token strategy: the last token minted by login() (cached on the client),
    else the static token from configuration. A 401 from the serviceability
    call triggers exactly one login() followed by exactly one retry; any other
    status is final. A failed login means no rates.
    """

    name = PROVIDER

    def __init__(
        self,
        cfg: ShiprocketConfig,
        transport: Optional[Transport] = None,
        *,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.cfg = cfg
        self.transport = transport or RequestsTransport()
        self._minted_token: Optional[str] = None
        self._lock = threading.Lock()
        self.logger: logging.Logger = logger or logging.getLogger(
            "courier_rates.api.shiprocket"
        )

    @property
    def configured(self) -> bool:
        return bool(self.cfg.auth_token or self._can_login)

    @property
    def _can_login(self) -> bool:
        return bool(self.cfg.email and self.cfg.password)

    def _url(self, path: str) -> str:
        return self.cfg.base_url.rstrip("/") + path

    def current_token(self) -> Optional[str]:
        with self._lock:
            return self._minted_token or self.cfg.auth_token or None

    def login(self) -> Optional[str]:
        """Mint a fresh token with email/password. Returns None on any failure."""
        if not self._can_login:
            self.logger.warning("Shiprocket login credentials not configured")
            return None

        url = self._url(LOGIN_PATH)
        self.logger.info("Attempting Shiprocket login")
        try:
            resp = self.transport.post(
                url,
                headers={"Content-Type": "application/json"},
                json={"email": self.cfg.email, "password": self.cfg.password},
            )
        except Exception as ex:
            self.logger.warning("Shiprocket login request failed: %s", ex)
            return None

        body = response_json(resp)
        token = body.get("token") if isinstance(body, dict) else None
        if not token:
            self.logger.warning(
                "Shiprocket login failed status=%s response_body=%s",
                getattr(resp, "status_code", None),
                truncate(response_text(resp)),
            )
            return None

        with self._lock:
            self._minted_token = token
        self.logger.info("Shiprocket login succeeded; token refreshed")
        return token

    def _serviceability(self, token: str, params: Dict[str, Any]):
        return self.transport.get(
            self._url(SERVICEABILITY_PATH),
            headers={
                "Authorization": f"Bearer {token}",
                "Content-Type": "application/json",
            },
            params=params,
        )

    def _call_with_refresh(self, params: Dict[str, Any]) -> tuple[Any, Optional[str]]:
        """Serviceability GET with the one-shot 401 refresh. Returns (body, error)."""
        token = self.current_token()
        refreshed = False
        if not token:
            token = self.login()
            if not token:
                return None, "no Shiprocket token and login failed"
            refreshed = True

        try:
            resp = self._serviceability(token, params)
            if getattr(resp, "status_code", None) == 401 and not refreshed:
                self.logger.info(
                    "Shiprocket token rejected (401); retrying once with a fresh login")
                token = self.login()
                if not token:
                    self.logger.error("Could not refresh Shiprocket token. Aborting.")
                    return None, "token refresh failed"
                resp = self._serviceability(token, params)
        except Exception as ex:
            self.logger.warning("Shiprocket serviceability request failed: %s", ex)
            return None, f"transport error: {ex}"

        status = getattr(resp, "status_code", None)
        body = response_json(resp)
        if body is None:
            self.logger.warning(
                "Shiprocket returned a non-JSON body status=%s: %s", status, truncate(response_text(resp)))
            return None, f"HTTP {status}: malformed response"
        if status is not None and status >= 400:
            self.logger.warning(
                "Shiprocket serviceability returned error status=%s response_body=%s",
                status, truncate(response_text(resp)),
            )
            return None, f"HTTP {status}"
        return body, None

    def rate_params(self, request: RateRequest) -> Dict[str, Any]:
        return {
            "pickup_postcode": request.origin_pincode,
            "delivery_postcode": request.destination_pincode,
            "weight": _plain(request.weight),
            "cod": 1 if request.is_cod else 0,
            "declared_value": _plain(request.declared_value),
        }

    def detailed_params(self, request: DetailedRateRequest) -> Dict[str, Any]:
        return {
            "pickup_postcode": str(request.origin_pincode).strip(),
            "delivery_postcode": str(request.destination_pincode).strip(),
            "cod": "1" if request.is_cod else "0",
            "weight": _plain(request.weight),
            "pieces": request.pieces,
            "length": request.length or DEFAULT_DIMENSION_CM,
            "width": request.width or DEFAULT_DIMENSION_CM,
            "breadth": request.height or DEFAULT_DIMENSION_CM,
            "declared_value": _plain(request.declared_value or DEFAULT_DECLARED_VALUE),
        }

    def _fetch(self, params: Dict[str, Any], normalizer: Callable[[Any], List[Any]]) -> ProviderResult:
        if not self.configured:
            self.logger.debug("Shiprocket credentials not configured; skipping")
            return ProviderResult.skip(PROVIDER)

        body, err = self._call_with_refresh(params)
        if err:
            return ProviderResult.failed(PROVIDER, err)

        rates = normalizer(body)
        if not rates:
            self.logger.warning(
                "Shiprocket serviceability returned no couriers: %s", truncate(str(body)))
        return ProviderResult.success(PROVIDER, rates)

    def fetch_rates(self, request: RateRequest) -> ProviderResult:
        return self._fetch(self.rate_params(request), normalize_shiprocket)

    def fetch_detailed_rates(self, request: DetailedRateRequest) -> ProviderResult:
        return self._fetch(self.detailed_params(request), normalize_shiprocket_detailed)
