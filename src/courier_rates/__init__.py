# src/courier_rates/__init__.py
from .aggregator import RateAggregator, build_aggregator
from .models import (
    CourierRate,
    DetailedRateRequest,
    RateRequest,
    ShippingRate,
)

__all__ = [
    "RateAggregator",
    "build_aggregator",
    "CourierRate",
    "DetailedRateRequest",
    "RateRequest",
    "ShippingRate",
]
