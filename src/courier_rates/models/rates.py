from __future__ import annotations

from dataclasses import dataclass, asdict, field, fields
from enum import Enum
from typing import Any, Optional


class PaymentType(str, Enum):
    PREPAID = "Prepaid"
    COD = "COD"

    @classmethod
    def parse(cls, value: Any) -> "PaymentType":
        """Accepts enum members, 'Prepaid'/'Pre-paid'/'COD' (any case). Empty -> PREPAID."""
        if isinstance(value, cls):
            return value
        text = str(value or "").strip().replace("-", "").lower()
        if not text or text == "prepaid":
            return cls.PREPAID
        if text == "cod":
            return cls.COD
        raise ValueError(f"Unknown payment type: {value!r}")


class BillingMode(str, Enum):
    EXPRESS = "E"
    SURFACE = "S"

    @classmethod
    def parse(cls, value: Any) -> "BillingMode":
        if isinstance(value, cls):
            return value
        text = str(value or "").strip().upper()
        if text in ("", "E", "EXPRESS"):
            return cls.EXPRESS
        if text in ("S", "SURFACE"):
            return cls.SURFACE
        raise ValueError(f"Unknown billing mode: {value!r}")


@dataclass(frozen=True)
class RateRequest:
    """One shipment to quote. Weight in kg, dimensions in cm."""

    origin_pincode: str
    destination_pincode: str
    weight: float
    length: Optional[float] = None
    width: Optional[float] = None
    height: Optional[float] = None
    payment_type: PaymentType = PaymentType.PREPAID
    declared_value: float = 0.0

    def __post_init__(self) -> None:
        if not str(self.origin_pincode or "").strip():
            raise ValueError("origin_pincode must be non-empty")
        if not str(self.destination_pincode or "").strip():
            raise ValueError("destination_pincode must be non-empty")
        if not self.weight or self.weight <= 0:
            raise ValueError(f"weight must be > 0 (got {self.weight!r})")
        for name in ("length", "width", "height"):
            v = getattr(self, name)
            if v is not None and v <= 0:
                raise ValueError(f"{name} must be positive when given (got {v!r})")
        if self.declared_value is not None and self.declared_value < 0:
            raise ValueError("declared_value must be >= 0")
        # normalise loosely-typed inputs (e.g. "COD" from a spreadsheet)
        object.__setattr__(self, "payment_type",
                           PaymentType.parse(self.payment_type))

    @property
    def is_cod(self) -> bool:
        return self.payment_type is PaymentType.COD


@dataclass(frozen=True)
class DetailedRateRequest(RateRequest):
    pieces: int = 1
    billing_mode: BillingMode = BillingMode.EXPRESS
    shipment_status: str = ""

    def __post_init__(self) -> None:
        super().__post_init__()
        if int(self.pieces) < 1:
            raise ValueError(f"pieces must be >= 1 (got {self.pieces!r})")
        object.__setattr__(self, "pieces", int(self.pieces))
        object.__setattr__(self, "billing_mode",
                           BillingMode.parse(self.billing_mode))
        object.__setattr__(self, "shipment_status",
                           str(self.shipment_status or ""))

    @classmethod
    def from_rate_request(cls, request: RateRequest, **extra: Any) -> "DetailedRateRequest":
        base = {f.name: getattr(request, f.name) for f in fields(RateRequest)}
        base.update(extra)
        return cls(**base)


@dataclass(frozen=True)
class CourierRate:
    courier_name: str
    service_name: str
    rate: float
    currency: str
    expected_delivery_date: Optional[str] = None
    error: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        """Wire shape used by the rates endpoint (camelCase, optional keys omitted)."""
        out: dict[str, Any] = {
            "courierName": self.courier_name,
            "serviceName": self.service_name,
            "rate": self.rate,
            "currency": self.currency,
        }
        if self.expected_delivery_date is not None:
            out["expectedDeliveryDate"] = self.expected_delivery_date
        if self.error is not None:
            out["error"] = self.error
        return out


CHARGE_CODES: tuple[str, ...] = (
    "AIR", "AWB", "CCOD", "CNC", "COD", "COVID", "CWH", "DEMUR", "DL",
    "DOCUMENT", "DPH", "DTO", "E2E", "FOD", "FOV", "FS", "FSC", "INS",
    "LABEL", "LM", "MPS", "POD", "QC", "REATTEMPT", "ROV", "RTO", "WOD",
    "pickup",
)

# charged_weight is reported in grams by Delhivery and kilograms by Shiprocket
WEIGHT_UNITS = {"delhivery": "g", "shiprocket": "kg"}


@dataclass(frozen=True)
class ShippingRate:
    courier_company_id: int
    courier_name: str
    total_amount: float
    estimated_delivery_days: str
    provider: str

    cod_charges: Optional[float] = None
    freight_charge: Optional[float] = None
    other_charges: Optional[float] = None
    gross_amount: Optional[float] = None
    charged_weight: Optional[float] = None
    status: Optional[str] = None
    zone: Optional[str] = None
    tax_data: Optional[dict[str, float]] = None
    wt_rule_id: Optional[str] = None
    zonal_cl: Optional[str] = None
    adhoc_data: Optional[dict[str, Any]] = None

    charge_AIR: Optional[float] = None
    charge_AWB: Optional[float] = None
    charge_CCOD: Optional[float] = None
    charge_CNC: Optional[float] = None
    charge_COD: Optional[float] = None
    charge_COVID: Optional[float] = None
    charge_CWH: Optional[float] = None
    charge_DEMUR: Optional[float] = None
    charge_DL: Optional[float] = None
    charge_DOCUMENT: Optional[float] = None
    charge_DPH: Optional[float] = None
    charge_DTO: Optional[float] = None
    charge_E2E: Optional[float] = None
    charge_FOD: Optional[float] = None
    charge_FOV: Optional[float] = None
    charge_FS: Optional[float] = None
    charge_FSC: Optional[float] = None
    charge_INS: Optional[float] = None
    charge_LABEL: Optional[float] = None
    charge_LM: Optional[float] = None
    charge_MPS: Optional[float] = None
    charge_POD: Optional[float] = None
    charge_QC: Optional[float] = None
    charge_REATTEMPT: Optional[float] = None
    charge_ROV: Optional[float] = None
    charge_RTO: Optional[float] = None
    charge_WOD: Optional[float] = None
    charge_pickup: Optional[float] = None

    def __post_init__(self) -> None:
        if self.total_amount < 0:
            raise ValueError(
                f"total_amount must be >= 0 (got {self.total_amount!r})")
        if not self.provider:
            raise ValueError("provider must be set by the normalizer")

    @property
    def weight_unit(self) -> str:
        return WEIGHT_UNITS.get(self.provider, "kg")

    def charged_weight_label(self) -> str:
        if not self.charged_weight:
            return "-"
        return f"{self.charged_weight:g}{self.weight_unit}"

    def itemized_charges(self) -> dict[str, float]:
        """Non-zero itemised charges keyed by charge code; absent or zero means not applicable."""
        out: dict[str, float] = {}
        for code in CHARGE_CODES:
            v = getattr(self, f"charge_{code}")
            if v:
                out[code] = v
        return out

    def tax_total(self) -> float:
        total = 0.0
        for v in (self.tax_data or {}).values():
            try:
                total += float(v)
            except (TypeError, ValueError):
                continue
        return total

    def to_dict(self) -> dict[str, Any]:
        d = asdict(self)
        d["_provider"] = d.pop("provider")
        return d


@dataclass
class ProviderResult:
    """Outcome of one provider call.

    `rates` is always a list (possibly empty). `error` carries a short
    operator-facing reason when the provider failed; `skipped` marks an
    intentional no-op such as missing credentials or a missing shipment status.
    """

    provider: str
    rates: list[Any] = field(default_factory=list)
    error: Optional[str] = None
    skipped: bool = False

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, provider: str, rates: list[Any]) -> "ProviderResult":
        return cls(provider=provider, rates=list(rates))

    @classmethod
    def failed(cls, provider: str, error: str) -> "ProviderResult":
        return cls(provider=provider, error=error)

    @classmethod
    def skip(cls, provider: str) -> "ProviderResult":
        return cls(provider=provider, skipped=True)
