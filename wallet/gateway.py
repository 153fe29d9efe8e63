"""
Thin async binding to the remote ledger's PostgREST interface.

Every call either returns parsed rows or raises a GatewayError; deciding
whether a failure is swallowed or surfaced is left to the callers.
"""

import json
import logging
from typing import Any, Mapping, Optional

import httpx

from .config import Settings
from .exceptions import GatewayError, GatewayTransportError

logger = logging.getLogger(__name__)

WALLET_BALANCES = "wallet_balances"
USER_STATE = "user_state"
INVITE_EDGES = "invite_edges"
PAYOUT_ADDRESSES = "user_payout_addresses"
WITHDRAW_REQUESTS = "withdraw_requests"
DEPOSIT_LEDGER = "deposit_ledger"


def eq(value: Any) -> str:
    return f"eq.{value}"


def lt(value: Any) -> str:
    return f"lt.{value}"


class LedgerGateway:
    def __init__(
        self,
        base_url: str,
        api_key: Optional[str] = None,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        headers = {"Content-Type": "application/json", "Accept": "application/json"}
        if api_key:
            headers["apikey"] = api_key
            headers["Authorization"] = f"Bearer {api_key}"
        self.client = httpx.AsyncClient(
            base_url=base_url.rstrip("/"), headers=headers, timeout=timeout, transport=transport,
        )

    @classmethod
    def from_settings(cls, settings: Settings, transport: Optional[httpx.AsyncBaseTransport] = None) -> "LedgerGateway":
        return cls(settings.rest_url, settings.api_key, settings.http_timeout, transport=transport)

    async def aclose(self) -> None:
        await self.client.aclose()

    async def __aenter__(self) -> "LedgerGateway":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def select(
        self,
        table: str,
        columns: str = "*",
        filters: Optional[Mapping[str, str]] = None,
        limit: Optional[int] = None,
    ) -> list[dict]:
        params = {"select": columns, **(filters or {})}
        if limit is not None:
            params["limit"] = str(limit)
        response = await self._request("GET", table, params=params)
        rows = self._decode(response, table)
        return [r for r in rows if isinstance(r, dict)] if isinstance(rows, list) else []

    async def insert(self, table: str, record: Mapping[str, Any]) -> Optional[dict]:
        response = await self._request(
            "POST", table, json=dict(record), headers={"Prefer": "return=representation"},
        )
        data = self._decode(response, table) if response.content else None
        if isinstance(data, list) and data and isinstance(data[0], dict):
            return data[0]
        return None

    async def patch(self, table: str, filters: Mapping[str, str], fields: Mapping[str, Any]) -> None:
        await self._request("PATCH", table, params=dict(filters), json=dict(fields))

    async def _request(self, method: str, table: str, **kwargs) -> httpx.Response:
        try:
            response = await self.client.request(method, f"/{table}", **kwargs)
        except httpx.RequestError as e:
            raise GatewayTransportError(f"{method} {table} failed: {e}") from e
        logger.debug("%s %s -> %s", method, table, response.status_code)
        if response.is_error:
            raise GatewayError(
                f"{method} {table} returned {response.status_code}",
                status_code=response.status_code,
                body=response.text,
            )
        return response

    def _decode(self, response: httpx.Response, table: str) -> Any:
        try:
            return response.json()
        except json.JSONDecodeError as e:
            raise GatewayError(
                f"{table} returned a non-JSON body", status_code=response.status_code, body=response.text,
            ) from e
