"""Concurrent fan-out over the courier rate providers.

Every provider call runs in its own worker thread (the clients are blocking
``requests`` code) and is awaited together with the others, so their network
I/O overlaps. Each call is bounded by a timeout, and any failure, timeout or
unexpected exception turns into an empty contribution for that provider.
``get_all_rates`` and ``get_detailed_rates`` never raise.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable, List, Optional, Protocol, Sequence

from courier_rates.api.delhivery import DelhiveryClient, DelhiveryConfig
from courier_rates.api.fedex import FedExAuth, FedExClient, FedExConfig
from courier_rates.api.shiprocket import ShiprocketClient, ShiprocketConfig
from courier_rates.api.transport import RequestsTransport, Transport
from courier_rates.models import (
    CourierRate,
    DetailedRateRequest,
    EnvCfg,
    ProviderResult,
    RateRequest,
    ShippingRate,
)

DEFAULT_TIMEOUT_SECONDS = 10.0


class RateProvider(Protocol):
    name: str

    def fetch_rates(self, request: RateRequest) -> ProviderResult:
        ...


class DetailedRateProvider(Protocol):
    name: str

    def fetch_detailed_rates(self, request: DetailedRateRequest) -> ProviderResult:
        ...


class RateAggregator:
    def __init__(
        self,
        providers: Sequence[RateProvider],
        detailed_providers: Sequence[DetailedRateProvider] = (),
        *,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.providers = list(providers)
        self.detailed_providers = list(detailed_providers)
        self.timeout = timeout
        self.logger = logger or logging.getLogger("courier_rates.aggregator")

    async def _run(self, name: str, call: Callable[[Any], ProviderResult], request: Any) -> List[Any]:
        try:
            result = await asyncio.wait_for(asyncio.to_thread(call, request), timeout=self.timeout)
        except asyncio.TimeoutError:
            self.logger.warning(
                "%s timed out after %.1fs; no rates from this provider", name, self.timeout)
            return []
        except Exception:
            self.logger.exception("%s failed unexpectedly; no rates from this provider", name)
            return []

        if not isinstance(result, ProviderResult):
            self.logger.error("%s returned %r instead of a ProviderResult", name, type(result).__name__)
            return []
        if result.skipped:
            self.logger.debug("%s skipped", name)
            return []
        if result.error:
            self.logger.warning("%s failed: %s", name, result.error)
            return []
        if not result.rates:
            self.logger.info("%s returned no rates.", name)
        return list(result.rates)

    async def _fan_out(self, calls: Sequence[tuple[str, Callable[[Any], ProviderResult]]], request: Any) -> List[Any]:
        # all coroutines are created before any is awaited
        outcomes = await asyncio.gather(*(self._run(name, call, request) for name, call in calls))
        merged: List[Any] = []
        for rates in outcomes:
            merged.extend(rates)
        return merged

    async def get_all_rates(self, request: RateRequest) -> List[CourierRate]:
        """Summary quotes from every provider, cheapest first."""
        self.logger.info(
            "Starting rate calculation %s -> %s (%.3f kg, %s)",
            request.origin_pincode,
            request.destination_pincode,
            request.weight,
            request.payment_type.value,
        )
        rates = await self._fan_out(
            [(p.name, p.fetch_rates) for p in self.providers], request)
        self.logger.info("Total rates found: %d", len(rates))
        return sorted(rates, key=lambda r: r.rate)

    async def get_detailed_rates(self, request: DetailedRateRequest) -> List[ShippingRate]:
        """Itemised quotes from the providers that bill per charge code, cheapest first."""
        rates = await self._fan_out(
            [(p.name, p.fetch_detailed_rates) for p in self.detailed_providers], request)
        self.logger.info("Total detailed rates found: %d", len(rates))
        return sorted(rates, key=lambda r: r.total_amount)


def build_aggregator(
    env_cfg: EnvCfg,
    *,
    transport_factory: Optional[Callable[[], Transport]] = None,
    timeout: Optional[float] = None,
    logger: Optional[logging.Logger] = None,
) -> RateAggregator:
    """Construct the FedEx, Delhivery and Shiprocket clients from configuration.

    Each client gets its own transport (a separate requests session) unless a
    factory is supplied, e.g. one returning a shared ReplayTransport.
    """
    per_call = float(timeout if timeout is not None else env_cfg.RATES_PROVIDER_TIMEOUT)

    def _transport() -> Transport:
        if transport_factory is not None:
            return transport_factory()
        return RequestsTransport(timeout=per_call, max_retries=int(env_cfg.RATES_HTTP_RETRIES))

    fedex = FedExClient(
        FedExAuth(
            client_id=env_cfg.FEDEX_CLIENT_ID,
            client_secret=env_cfg.FEDEX_CLIENT_SECRET,
            token_url=env_cfg.FEDEX_OAUTH_URL,
        ),
        FedExConfig(rate_url=env_cfg.FEDEX_API_URL,
                    account_number=env_cfg.FEDEX_ACCOUNT_NUMBER),
        transport=_transport(),
    )
    delhivery = DelhiveryClient(
        DelhiveryConfig(api_token=env_cfg.DELHIVERY_API_TOKEN,
                        base_url=env_cfg.DELHIVERY_BASE_URL),
        transport=_transport(),
    )
    shiprocket = ShiprocketClient(
        ShiprocketConfig(
            auth_token=env_cfg.SHIPROCKET_AUTH_TOKEN,
            email=env_cfg.SHIPROCKET_API_EMAIL,
            password=env_cfg.SHIPROCKET_API_PASSWORD,
            base_url=env_cfg.SHIPROCKET_BASE_URL,
        ),
        transport=_transport(),
    )
    return RateAggregator(
        [fedex, delhivery, shiprocket],
        [delhivery, shiprocket],
        timeout=per_call,
        logger=logger,
    )
