from __future__ import annotations

import asyncio
import math
from typing import Any, Dict, Mapping, Tuple

from courier_rates.aggregator import RateAggregator
from courier_rates.models import (
    BillingMode,
    DetailedRateRequest,
    PaymentType,
    RateRequest,
)

DEFAULT_DIMENSION_CM = 10
DEFAULT_DECLARED_VALUE = 1000


class RateRequestError(ValueError):
    """The quote body is missing required fields or carries unusable values."""


class NoRatesFoundError(LookupError):
    """Every provider came back empty for both summary and detailed quotes."""


def _number(value: Any) -> float:
    """Finite float, else 0.0 (missing, non-numeric, NaN or inf)."""
    try:
        n = float(value)
    except (TypeError, ValueError, OverflowError):
        return 0.0
    return n if math.isfinite(n) else 0.0


def parse_quote_body(body: Mapping[str, Any]) -> Tuple[RateRequest, DetailedRateRequest]:
    """
    Turn a rates-endpoint JSON body into the summary and detailed requests.

    Multi-package shipments are collapsed: weights are summed and the first
    package's dimensions stand in for the whole shipment (missing or zero
    dimensions fall back to 10 cm).
    """
    if not isinstance(body, Mapping):
        raise RateRequestError("Missing required fields")

    origin = body.get("origin") or {}
    destination = body.get("destination") or {}
    packages = body.get("packages") or []
    origin_pin = str(origin.get("pincode") or "").strip() if isinstance(origin, Mapping) else ""
    dest_pin = str(destination.get("pincode") or "").strip() if isinstance(destination, Mapping) else ""

    if not origin_pin or not dest_pin or not isinstance(packages, list) or not packages:
        raise RateRequestError("Missing required fields")

    total_weight = sum(_number(p.get("weight")) for p in packages if isinstance(p, Mapping))
    if total_weight <= 0:
        raise RateRequestError("Total package weight must be greater than zero")

    first = packages[0] if isinstance(packages[0], Mapping) else {}

    try:
        payment_type = PaymentType.parse(body.get("paymentType"))
        billing_mode = BillingMode.parse(body.get("billingMode"))
    except ValueError as ex:
        raise RateRequestError(str(ex)) from ex

    request = RateRequest(
        origin_pincode=origin_pin,
        destination_pincode=dest_pin,
        weight=total_weight,
        length=_number(first.get("length")) or DEFAULT_DIMENSION_CM,
        width=_number(first.get("width")) or DEFAULT_DIMENSION_CM,
        height=_number(first.get("height")) or DEFAULT_DIMENSION_CM,
        payment_type=payment_type,
        declared_value=_number(body.get("declaredValue")) or DEFAULT_DECLARED_VALUE,
    )
    detailed = DetailedRateRequest.from_rate_request(
        request,
        pieces=int(_number(body.get("pieces"))) or 1,
        billing_mode=billing_mode,
        shipment_status=str(body.get("status") or ""),
    )
    return request, detailed


async def calculate_rates(aggregator: RateAggregator, body: Mapping[str, Any]) -> Dict[str, Any]:
    """Summary and detailed quotes for one request body, run concurrently.

    Raises RateRequestError for a malformed body (before any provider is
    called) and NoRatesFoundError when both lists come back empty.
    """
    request, detailed = parse_quote_body(body)
    rates, detailed_rates = await asyncio.gather(
        aggregator.get_all_rates(request),
        aggregator.get_detailed_rates(detailed),
    )
    if not rates and not detailed_rates:
        raise NoRatesFoundError("No rates found from any courier")
    return {
        "rates": [r.to_dict() for r in rates],
        "detailedRates": [r.to_dict() for r in detailed_rates],
    }
