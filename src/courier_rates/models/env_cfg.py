from __future__ import annotations
from dataclasses import dataclass, replace

DEFAULT_FEDEX_OAUTH_URL = "https://apis.fedex.com/oauth/token"
DEFAULT_FEDEX_API_URL = "https://apis.fedex.com/rate/v1/rates/quotes"
DEFAULT_DELHIVERY_BASE_URL = "https://track.delhivery.com"
DEFAULT_SHIPROCKET_BASE_URL = "https://apiv2.shiprocket.in"


@dataclass(frozen=True)
class EnvCfg:
    """Provider credentials and tuning knobs returned by get_app_env()."""
    FEDEX_CLIENT_ID: str = ""
    FEDEX_CLIENT_SECRET: str = ""
    FEDEX_OAUTH_URL: str = DEFAULT_FEDEX_OAUTH_URL
    FEDEX_API_URL: str = DEFAULT_FEDEX_API_URL
    FEDEX_ACCOUNT_NUMBER: str = ""

    DELHIVERY_API_TOKEN: str = ""
    DELHIVERY_BASE_URL: str = DEFAULT_DELHIVERY_BASE_URL

    SHIPROCKET_AUTH_TOKEN: str = ""
    SHIPROCKET_API_EMAIL: str = ""
    SHIPROCKET_API_PASSWORD: str = ""
    SHIPROCKET_BASE_URL: str = DEFAULT_SHIPROCKET_BASE_URL

    RATES_PROVIDER_TIMEOUT: float = 10.0
    RATES_HTTP_RETRIES: int = 0

    @property
    def fedex_configured(self) -> bool:
        return bool(self.FEDEX_CLIENT_ID and self.FEDEX_CLIENT_SECRET)

    @property
    def delhivery_configured(self) -> bool:
        return bool(self.DELHIVERY_API_TOKEN)

    @property
    def shiprocket_configured(self) -> bool:
        return bool(self.SHIPROCKET_AUTH_TOKEN or (
            self.SHIPROCKET_API_EMAIL and self.SHIPROCKET_API_PASSWORD))

    def configured_providers(self) -> list[str]:
        out = []
        if self.fedex_configured:
            out.append("fedex")
        if self.delhivery_configured:
            out.append("delhivery")
        if self.shiprocket_configured:
            out.append("shiprocket")
        return out

    def with_placeholder_credentials(self) -> "EnvCfg":
        """Fill blank credentials so every provider is usable against a replay file."""
        return replace(
            self,
            FEDEX_CLIENT_ID=self.FEDEX_CLIENT_ID or "replay",
            FEDEX_CLIENT_SECRET=self.FEDEX_CLIENT_SECRET or "replay",
            DELHIVERY_API_TOKEN=self.DELHIVERY_API_TOKEN or "replay",
            SHIPROCKET_AUTH_TOKEN=self.SHIPROCKET_AUTH_TOKEN or "replay",
        )
