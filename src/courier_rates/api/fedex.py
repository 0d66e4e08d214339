from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional
import json
import threading
import time
import logging

from courier_rates.models import ProviderResult, RateRequest
from courier_rates.models.env_cfg import DEFAULT_FEDEX_API_URL

from .normalize import normalize_fedex
from .transport import RequestsTransport, Transport, response_text, truncate

PROVIDER = "fedex"
HOME_COUNTRY = "IN"
DEFAULT_DIMENSION_CM = 10


@dataclass
class FedExConfig:
    rate_url: str = DEFAULT_FEDEX_API_URL
    account_number: str = ""


@dataclass
class FedExAuth:
    client_id: str
    client_secret: str
    token_url: str


class FedExClient:
    """FedEx Rate API client.

    Responsibilities:
    - authenticate(): acquires an OAuth token using client_id/client_secret in
      the x-www-form-urlencoded body (no Basic auth header). Failure returns
      None so the provider simply contributes no rates.
    - fetch_rates(request): POST one rate-quote for a single package and map
      the reply through normalize_fedex.
    """

    name = PROVIDER

    def __init__(
        self,
        auth: FedExAuth,
        cfg: FedExConfig,
        transport: Optional[Transport] = None,
        *,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.auth = auth
        self.cfg = cfg
        self.transport = transport or RequestsTransport()
        self._token: Optional[str] = None
        self._token_expires_at: float = 0.0
        self._lock = threading.Lock()
        self.logger: logging.Logger = logger or logging.getLogger(
            "courier_rates.api.fedex"
        )

    @property
    def configured(self) -> bool:
        return bool(self.auth.client_id and self.auth.client_secret and self.auth.token_url)

    def authenticate(self) -> Optional[str]:
        """Ensure an access token is available and return it.

        Acquires token by POSTing application/x-www-form-urlencoded with
        grant_type=client_credentials, client_id and client_secret. Caches
        token in-memory until expiry.
        """
        with self._lock:
            now = time.time()
            if self._token and now < self._token_expires_at - 10:
                return self._token

            data = {
                "grant_type": "client_credentials",
                "client_id": self.auth.client_id,
                "client_secret": self.auth.client_secret,
            }
            headers = {"Content-Type": "application/x-www-form-urlencoded"}
            self.logger.debug(
                "Requesting FedEx OAuth token (form body) from %s", self.auth.token_url)

            try:
                resp = self.transport.post(
                    self.auth.token_url, headers=headers, data=data)
            except Exception as ex:  # network/transport error
                self.logger.warning("FedEx token request failed: %s", ex)
                self._clear_token()
                return None

            status = getattr(resp, "status_code", None)
            try:
                resp.raise_for_status()
                j = resp.json()
                token = j.get("access_token")
                if not token:
                    raise ValueError("no access_token in token response")
                expires_in = int(j.get("expires_in", 3600))
            except Exception as ex:
                self.logger.warning(
                    "FedEx token request returned error status=%s exception=%s response_body=%s",
                    status,
                    ex,
                    truncate(response_text(resp)),
                )
                self._clear_token()
                return None

            self._token = token
            self._token_expires_at = time.time() + expires_in
            self.logger.debug(
                "FedEx token acquired (expires_in=%s status=%s)", expires_in, status)
            return self._token

    def _clear_token(self) -> None:
        self._token = None
        self._token_expires_at = 0.0

    def build_rate_payload(self, request: RateRequest) -> Dict[str, Any]:
        """Rate-quote body for one package; unset dimensions default to 10 cm."""
        return {
            "accountNumber": {"value": self.cfg.account_number},
            "requestedShipment": {
                "shipper": {"address": {"postalCode": request.origin_pincode, "countryCode": HOME_COUNTRY}},
                "recipient": {"address": {"postalCode": request.destination_pincode, "countryCode": HOME_COUNTRY}},
                "pickupType": "USE_SCHEDULED_PICKUP",
                "packagingType": "YOUR_PACKAGING",
                "rateRequestType": ["ACCOUNT"],
                "requestedPackageLineItems": [{
                    "weight": {"units": "KG", "value": request.weight},
                    "dimensions": {
                        "length": request.length or DEFAULT_DIMENSION_CM,
                        "width": request.width or DEFAULT_DIMENSION_CM,
                        "height": request.height or DEFAULT_DIMENSION_CM,
                        "units": "CM",
                    },
                }],
            },
        }

    def fetch_rates(self, request: RateRequest) -> ProviderResult:
        if not self.configured:
            self.logger.debug("FedEx credentials not configured; skipping")
            return ProviderResult.skip(PROVIDER)

        token = self.authenticate()
        if not token:
            return ProviderResult.failed(PROVIDER, "no FedEx access token")

        headers = {"Authorization": f"Bearer {token}",
                   "Content-Type": "application/json"}
        body = self.build_rate_payload(request)
        self.logger.debug(
            "FedEx POST endpoint=%s request_body=%s",
            self.cfg.rate_url,
            truncate(json.dumps(body, ensure_ascii=False), 4000),
        )

        try:
            resp = self.transport.post(self.cfg.rate_url, headers=headers, json=body)
        except Exception as ex:
            self.logger.warning(
                "FedEx transport POST failed for endpoint=%s: %s", self.cfg.rate_url, ex)
            return ProviderResult.failed(PROVIDER, f"transport error: {ex}")

        status = getattr(resp, "status_code", None)
        try:
            resp.raise_for_status()
            j = resp.json()
        except Exception as ex:
            self.logger.warning(
                "FedEx POST endpoint=%s returned error status=%s exception=%s response_body=%s",
                self.cfg.rate_url,
                status,
                ex,
                truncate(response_text(resp), 4000),
            )
            return ProviderResult.failed(PROVIDER, f"HTTP {status}: {ex}")

        rates = normalize_fedex(j)
        self.logger.debug("FedEx returned %d rate(s) status=%s", len(rates), status)
        return ProviderResult.success(PROVIDER, rates)
