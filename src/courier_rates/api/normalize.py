# src/courier_rates/api/normalize.py
from __future__ import annotations

import math
from typing import Any, Dict, List, Optional

from courier_rates.models import CHARGE_CODES, CourierRate, ShippingRate

FEDEX = "FedEx"
DELHIVERY = "Delhivery"
DOMESTIC_CURRENCY = "INR"


def _num(value: Any) -> Optional[float]:
    """Coerce numbers and numeric strings; anything else, NaN and inf become None."""
    if value is None or isinstance(value, bool):
        return None
    try:
        n = float(value) if isinstance(value, (int, float)) else float(str(value).strip())
    except (ValueError, OverflowError):
        return None
    return n if math.isfinite(n) else None


def _str(value: Any) -> Optional[str]:
    if value is None:
        return None
    return str(value)


def _tax_data(value: Any) -> Optional[Dict[str, float]]:
    if not isinstance(value, dict):
        return None
    out: Dict[str, float] = {}
    for k, v in value.items():
        n = _num(v)
        if n is not None:
            out[str(k)] = n
    return out


def _first_dict(payload: Any) -> Dict[str, Any]:
    if isinstance(payload, dict):
        return payload
    if isinstance(payload, list) and payload and isinstance(payload[0], dict):
        return payload[0]
    return {}


def normalize_fedex(payload: Dict[str, Any]) -> List[CourierRate]:
    """
    One CourierRate per output.rateReplyDetails[*] that carries a net charge.
    Price and currency come from the first ratedShipmentDetails entry;
    replies without a charge are skipped.
    """
    out = payload.get("output") if isinstance(payload, dict) else None
    if not isinstance(out, dict):
        return []
    details = out.get("rateReplyDetails")
    if not isinstance(details, list):
        return []

    rates: List[CourierRate] = []
    for detail in details:
        if not isinstance(detail, dict):
            continue
        rsd = detail.get("ratedShipmentDetails")
        if not isinstance(rsd, list) or not rsd or not isinstance(rsd[0], dict):
            continue
        amount = _num(rsd[0].get("totalNetCharge"))
        if not amount:
            continue
        eta = None
        commit = detail.get("commit")
        if isinstance(commit, dict) and isinstance(commit.get("dateDetail"), dict):
            eta = _str(commit["dateDetail"].get("dayFormat"))
        rates.append(CourierRate(
            courier_name=FEDEX,
            service_name=str(detail.get("serviceType") or ""),
            rate=amount,
            currency=str(rsd[0].get("currency") or ""),
            expected_delivery_date=eta,
        ))
    return rates


def delhivery_error(payload: Any) -> Optional[str]:
    """The rate calculator reports failures in-band; return the reason or None."""
    body = _first_dict(payload)
    if str(body.get("status", "")) == "False" or body.get("error"):
        return str(body.get("error") or "Unknown Error")
    return None


def normalize_delhivery(payload: Any) -> List[CourierRate]:
    """Delhivery quotes a single price per call, under `rate` or `total_amount`."""
    body = _first_dict(payload)
    rate = _num(body.get("rate")) or _num(body.get("total_amount"))
    if not rate:
        return []
    return [CourierRate(
        courier_name=DELHIVERY,
        service_name="Express",
        rate=rate,
        currency=DOMESTIC_CURRENCY,
    )]


def normalize_delhivery_detailed(payload: Any) -> List[ShippingRate]:
    """
    Map the first invoice/charges element into one ShippingRate.

    Every charge_* code is copied verbatim. The coarse rollups are derived
    from the itemised codes: COD handling from charge_COD, freight from
    charge_AIR and other charges from charge_CWH.
    """
    if not isinstance(payload, list) or not payload:
        return []
    row = payload[0] if isinstance(payload[0], dict) else {}

    total = _num(row.get("total_amount")) or 0.0
    if total < 0:
        return []
    charges = {f"charge_{code}": _num(row.get(f"charge_{code}"))
               for code in CHARGE_CODES}

    return [ShippingRate(
        courier_company_id=int(_num(row.get("courier_company_id")) or 1),
        courier_name=DELHIVERY,
        total_amount=total,
        estimated_delivery_days=str(row.get("status") or ""),
        provider="delhivery",
        cod_charges=charges["charge_COD"],
        freight_charge=charges["charge_AIR"],
        other_charges=charges["charge_CWH"],
        gross_amount=_num(row.get("gross_amount")),
        charged_weight=_num(row.get("charged_weight")),
        status=_str(row.get("status")),
        zone=_str(row.get("zone")),
        tax_data=_tax_data(row.get("tax_data")),
        wt_rule_id=_str(row.get("wt_rule_id")),
        zonal_cl=_str(row.get("zonal_cl")),
        adhoc_data=row.get("adhoc_data") if isinstance(
            row.get("adhoc_data"), dict) else None,
        **charges,
    )]


def _shiprocket_companies(payload: Any) -> List[Dict[str, Any]]:
    data = payload.get("data") if isinstance(payload, dict) else None
    companies = data.get("available_courier_companies") if isinstance(
        data, dict) else None
    if not isinstance(companies, list):
        return []
    return [c for c in companies if isinstance(c, dict)]


def normalize_shiprocket(payload: Any) -> List[CourierRate]:
    """
    Serviceability answer for the summary view. Only a body with status 200
    counts; the call does not distinguish service tiers, so every entry is
    labelled "Standard".
    """
    if not isinstance(payload, dict) or _num(payload.get("status")) != 200:
        return []
    rates: List[CourierRate] = []
    for c in _shiprocket_companies(payload):
        rate = _num(c.get("rate"))
        if rate is None:
            continue
        rates.append(CourierRate(
            courier_name=str(c.get("courier_name") or ""),
            service_name="Standard",
            rate=rate,
            currency=DOMESTIC_CURRENCY,
            expected_delivery_date=_str(c.get("etd")),
        ))
    return rates


def normalize_shiprocket_detailed(payload: Any) -> List[ShippingRate]:
    rates: List[ShippingRate] = []
    for c in _shiprocket_companies(payload):
        amount = _num(c.get("rate"))
        if amount is None or amount < 0:
            continue
        eta = c.get("estimated_delivery_days")
        if eta is None:
            eta = c.get("etd")
        rates.append(ShippingRate(
            courier_company_id=int(_num(c.get("courier_company_id")) or 0),
            courier_name=str(c.get("courier_name") or ""),
            total_amount=amount,
            estimated_delivery_days=str(eta if eta is not None else ""),
            provider="shiprocket",
            cod_charges=_num(c.get("cod_charges")),
            freight_charge=_num(c.get("freight_charge")),
            other_charges=_num(c.get("other_charges")),
            status=_str(c.get("delivery_type")),
            zone=_str(c.get("zone_type")),
            charged_weight=_num(c.get("chargeable_weight")),
            gross_amount=amount,
        ))
    return rates
