"""Unit Tests for the ledger gateway binding."""

import httpx
import pytest

from wallet.config import Settings
from wallet.exceptions import GatewayError, GatewayTransportError
from wallet.gateway import LedgerGateway, eq, lt


class TestGateway:
    @pytest.mark.asyncio
    async def test_auth_headers(self, ledger, gateway):
        await gateway.select("wallet_balances", filters={"user_id": eq("u")})

        headers = ledger.calls[0]["headers"]
        assert headers["apikey"] == "anon-key"
        assert headers["authorization"] == "Bearer anon-key"

    @pytest.mark.asyncio
    async def test_no_auth_headers_without_key(self, ledger):
        gateway = LedgerGateway("http://ledger.test/rest/v1", transport=httpx.MockTransport(ledger.handle))
        await gateway.select("wallet_balances")
        assert "apikey" not in ledger.calls[0]["headers"]
        assert "authorization" not in ledger.calls[0]["headers"]

    @pytest.mark.asyncio
    async def test_select_filters_and_limit(self, ledger, gateway):
        ledger.seed("invite_edges", {"ancestor_id": "u", "depth": 1}, {"ancestor_id": "u", "depth": 5})

        rows = await gateway.select("invite_edges", "depth", {"ancestor_id": eq("u"), "depth": lt(4)}, limit=10)

        assert rows == [{"depth": 1}]
        assert ledger.calls[0]["params"] == {
            "select": "depth", "ancestor_id": "eq.u", "depth": "lt.4", "limit": "10",
        }

    @pytest.mark.asyncio
    async def test_insert_returns_first_created_row(self, gateway):
        row = await gateway.insert("deposit_ledger", {"payment_id": "x"})
        assert row == {"payment_id": "x", "id": 1}

    @pytest.mark.asyncio
    async def test_insert_without_representation_returns_none(self):
        transport = httpx.MockTransport(lambda request: httpx.Response(201))
        gateway = LedgerGateway("http://ledger.test/rest/v1", transport=transport)
        assert await gateway.insert("deposit_ledger", {"payment_id": "x"}) is None

    @pytest.mark.asyncio
    async def test_patch_updates_matching_rows(self, ledger, gateway):
        ledger.seed("wallet_balances", {"user_id": "u", "usdt_balance": "1"}, {"user_id": "v", "usdt_balance": "2"})

        await gateway.patch("wallet_balances", {"user_id": eq("u")}, {"usdt_balance": "5"})

        assert ledger.tables["wallet_balances"][0]["usdt_balance"] == "5"
        assert ledger.tables["wallet_balances"][1]["usdt_balance"] == "2"

    @pytest.mark.asyncio
    async def test_error_status_raises_with_body(self, ledger, gateway):
        ledger.failures[("GET", "user_state")] = (404, "relation does not exist")

        with pytest.raises(GatewayError) as exc_info:
            await gateway.select("user_state")

        assert exc_info.value.status_code == 404
        assert exc_info.value.body == "relation does not exist"

    @pytest.mark.asyncio
    async def test_transport_error(self, ledger, gateway):
        ledger.offline = True
        with pytest.raises(GatewayTransportError):
            await gateway.patch("wallet_balances", {"user_id": eq("u")}, {"usdt_balance": "1"})

    @pytest.mark.asyncio
    async def test_non_json_body(self):
        transport = httpx.MockTransport(lambda request: httpx.Response(200, text="<html>"))
        gateway = LedgerGateway("http://ledger.test/rest/v1", transport=transport)
        with pytest.raises(GatewayError):
            await gateway.select("user_state")

    @pytest.mark.asyncio
    async def test_from_settings_targets_rest_root(self):
        seen = []

        def handler(request):
            seen.append(str(request.url))
            return httpx.Response(200, json=[])

        settings = Settings(api_url="https://project.example.co/", api_key="k")
        async with LedgerGateway.from_settings(settings, transport=httpx.MockTransport(handler)) as gateway:
            await gateway.select("user_state", "current_level")

        assert seen[0].startswith("https://project.example.co/rest/v1/user_state?")
