"""
Environment-driven settings for the wallet client.

Variables
---------
WALLET_API_URL       Base URL of the remote ledger (PostgREST root, without /rest/v1)
WALLET_API_KEY       Anon/service key sent as `apikey` and bearer token
WALLET_STORE_PATH    JSON file backing the durable local store
WALLET_HTTP_TIMEOUT  Transport timeout in seconds for remote calls
WALLET_LOG_LEVEL     Root log level used by the HTTP facade
"""

import os
from typing import Optional
from pydantic import BaseModel, Field

from .exceptions import ConfigurationError


class Settings(BaseModel):
    api_url: str
    api_key: Optional[str] = None
    store_path: str = ".wallet_store.json"
    http_timeout: float = Field(default=10.0, gt=0)
    log_level: str = "INFO"

    @property
    def rest_url(self) -> str:
        return self.api_url.rstrip("/") + "/rest/v1"

    @classmethod
    def from_env(cls) -> "Settings":
        api_url = os.getenv("WALLET_API_URL")
        if not api_url:
            raise ConfigurationError("Missing required environment variable: WALLET_API_URL")
        try:
            timeout = float(os.getenv("WALLET_HTTP_TIMEOUT", "10"))
        except ValueError:
            raise ConfigurationError("WALLET_HTTP_TIMEOUT must be a number of seconds")
        return cls(
            api_url=api_url,
            api_key=os.getenv("WALLET_API_KEY") or None,
            store_path=os.getenv("WALLET_STORE_PATH", ".wallet_store.json"),
            http_timeout=timeout,
            log_level=os.getenv("WALLET_LOG_LEVEL", "INFO").upper(),
        )
