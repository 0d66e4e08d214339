from .env_cfg import EnvCfg
from .rates import (
    CHARGE_CODES,
    BillingMode,
    CourierRate,
    DetailedRateRequest,
    PaymentType,
    ProviderResult,
    RateRequest,
    ShippingRate,
)

__all__ = [
    "EnvCfg",
    "CHARGE_CODES",
    "BillingMode",
    "CourierRate",
    "DetailedRateRequest",
    "PaymentType",
    "ProviderResult",
    "RateRequest",
    "ShippingRate",
]
