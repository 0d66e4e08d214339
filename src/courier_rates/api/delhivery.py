from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional
import logging
import math

from courier_rates.models import DetailedRateRequest, PaymentType, ProviderResult, RateRequest
from courier_rates.models.env_cfg import DEFAULT_DELHIVERY_BASE_URL

from .normalize import delhivery_error, normalize_delhivery, normalize_delhivery_detailed
from .transport import RequestsTransport, Transport, response_json, response_text, truncate

PROVIDER = "delhivery"
RATE_CALCULATOR_PATH = "/api/kkg/service/rate_calculator"
INVOICE_CHARGES_PATH = "/api/kinko/v1/invoice/charges/.json"
DEFAULT_DIMENSION_CM = 10


@dataclass
class DelhiveryConfig:
    api_token: str
    base_url: str = DEFAULT_DELHIVERY_BASE_URL


def grams(weight_kg: float) -> float | int:
    """kg -> g without rounding; integral results drop the trailing .0 (2.5 -> 2500)."""
    g = weight_kg * 1000
    return int(g) if float(g).is_integer() else g


def grams_rounded(weight_kg: float) -> int:
    """kg -> whole grams, halves rounded up."""
    return int(math.floor(weight_kg * 1000 + 0.5))


class DelhiveryClient:
    """Delhivery client using a static, long-lived API token.

    Two endpoints:
    - rate calculator (summary): one price per call.
    - invoice/charges (detailed): itemised charges, needs a shipment status.
    """

    name = PROVIDER

    def __init__(
        self,
        cfg: DelhiveryConfig,
        transport: Optional[Transport] = None,
        *,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.cfg = cfg
        self.transport = transport or RequestsTransport()
        self.logger: logging.Logger = logger or logging.getLogger(
            "courier_rates.api.delhivery"
        )

    @property
    def configured(self) -> bool:
        return bool(self.cfg.api_token)

    def _headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"Token {self.cfg.api_token}",
            "Content-Type": "application/json",
        }

    def _url(self, path: str) -> str:
        return self.cfg.base_url.rstrip("/") + path

    def rate_params(self, request: RateRequest) -> Dict[str, Any]:
        return {
            "origin": request.origin_pincode,
            "destination": request.destination_pincode,
            "weight": grams(request.weight),
        }

    def charges_params(self, request: DetailedRateRequest) -> Dict[str, Any]:
        # Provider short codes: md=billing mode, ss=shipment status, cgm=grams
        return {
            "md": request.billing_mode.value,
            "ss": request.shipment_status.strip(),
            "d_pin": str(request.destination_pincode).strip(),
            "o_pin": str(request.origin_pincode).strip(),
            "cgm": grams_rounded(request.weight),
            "pt": "COD" if request.payment_type is PaymentType.COD else "Pre-paid",
            "pieces": request.pieces,
            "length": request.length or DEFAULT_DIMENSION_CM,
            "width": request.width or DEFAULT_DIMENSION_CM,
            "breadth": request.height or DEFAULT_DIMENSION_CM,
        }

    def _get(self, path: str, params: Dict[str, Any]) -> tuple[Any, Optional[str]]:
        """GET and parse JSON. Returns (body, error)."""
        url = self._url(path)
        try:
            resp = self.transport.get(url, headers=self._headers(), params=params)
        except Exception as ex:
            self.logger.warning("Delhivery GET failed for endpoint=%s: %s", url, ex)
            return None, f"transport error: {ex}"

        status = getattr(resp, "status_code", None)
        if not getattr(resp, "ok", False):
            self.logger.warning(
                "Delhivery endpoint=%s returned error status=%s response_body=%s",
                url, status, truncate(response_text(resp)),
            )
            return None, f"HTTP {status}"

        body = response_json(resp)
        if body is None:
            self.logger.warning(
                "Delhivery endpoint=%s returned a non-JSON body: %s", url, truncate(response_text(resp)))
            return None, "malformed response"
        return body, None

    def fetch_rates(self, request: RateRequest) -> ProviderResult:
        if not self.configured:
            self.logger.debug("Delhivery token not configured; skipping")
            return ProviderResult.skip(PROVIDER)

        body, err = self._get(RATE_CALCULATOR_PATH, self.rate_params(request))
        if err:
            return ProviderResult.failed(PROVIDER, err)

        reason = delhivery_error(body)
        if reason:
            self.logger.warning("Delhivery API Error: %s", reason)
            return ProviderResult.failed(PROVIDER, reason)

        return ProviderResult.success(PROVIDER, normalize_delhivery(body))

    def fetch_detailed_rates(self, request: DetailedRateRequest) -> ProviderResult:
        if not self.configured:
            self.logger.debug("Delhivery token not configured; skipping detailed rates")
            return ProviderResult.skip(PROVIDER)
        if not request.shipment_status.strip():
            # invoice/charges is meaningless without a shipment status
            return ProviderResult.skip(PROVIDER)

        body, err = self._get(INVOICE_CHARGES_PATH, self.charges_params(request))
        if err:
            return ProviderResult.failed(PROVIDER, err)
        return ProviderResult.success(PROVIDER, normalize_delhivery_detailed(body))
