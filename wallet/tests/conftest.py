"""Shared fixtures: an in-memory stand-in for the remote ledger's REST API."""

import json
from typing import Optional

import httpx
import pytest

from wallet.background import BackgroundTasks
from wallet.cache import WalletCache
from wallet.gateway import LedgerGateway
from wallet.identity import StaticIdentityProvider
from wallet.storage import MemoryStore


USER_ID = "user-1"
BASE_URL = "http://ledger.test/rest/v1"


class FakeLedger:
    """
    Serves select/insert/patch the way PostgREST does, against plain dicts.
    Failures can be forced per (method, table) or for every call.
    """

    def __init__(self):
        self.tables: dict[str, list[dict]] = {}
        self.calls: list[dict] = []
        self.failures: dict[tuple[str, str], tuple[int, str]] = {}
        self.offline = False
        self.honour_filters = True
        # columns the server fills in (or nulls out) on the row it returns from an insert
        self.echo: dict[str, dict] = {}

    def seed(self, table: str, *rows: dict) -> None:
        self.tables.setdefault(table, []).extend(dict(r) for r in rows)

    def calls_to(self, method: str, table: str) -> list[dict]:
        return [c for c in self.calls if c["method"] == method and c["table"] == table]

    def handle(self, request: httpx.Request) -> httpx.Response:
        table = request.url.path.rsplit("/", 1)[-1]
        params = dict(request.url.params)
        body = json.loads(request.content) if request.content else None
        self.calls.append({
            "method": request.method, "table": table, "params": dict(params),
            "body": body, "headers": request.headers,
        })

        if self.offline:
            raise httpx.ConnectError("ledger unreachable", request=request)
        failure = self.failures.get((request.method, table))
        if failure:
            status_code, text = failure
            return httpx.Response(status_code, text=text)

        columns = params.pop("select", "*")
        limit = params.pop("limit", None)
        rows = self.tables.setdefault(table, [])
        matching = [r for r in rows if self._matches(r, params)]

        if request.method == "GET":
            result = [self._project(r, columns) for r in matching]
            if limit is not None:
                result = result[:int(limit)]
            return httpx.Response(200, json=result)
        if request.method == "POST":
            row = dict(body, id=len(rows) + 1)
            rows.append(row)
            return httpx.Response(201, json=[dict(row, **self.echo.get(table, {}))])
        if request.method == "PATCH":
            for r in matching:
                r.update(body)
            return httpx.Response(204)
        return httpx.Response(405)

    def _matches(self, row: dict, filters: dict) -> bool:
        if not self.honour_filters:
            return True
        for column, expr in filters.items():
            op, _, value = expr.partition(".")
            actual = row.get(column)
            if op == "eq" and str(actual) != value:
                return False
            if op == "lt" and not (actual is not None and float(actual) < float(value)):
                return False
        return True

    @staticmethod
    def _project(row: dict, columns: str) -> dict:
        if columns == "*":
            return dict(row)
        return {c: row.get(c) for c in columns.split(",")}


class ErrorLog:
    def __init__(self):
        self.entries: list[tuple[str, BaseException]] = []

    def __call__(self, operation: str, exc: BaseException) -> None:
        self.entries.append((operation, exc))

    @property
    def operations(self) -> list[str]:
        return [op for op, _ in self.entries]


def make_gateway(ledger: FakeLedger, api_key: Optional[str] = "anon-key") -> LedgerGateway:
    return LedgerGateway(BASE_URL, api_key=api_key, transport=httpx.MockTransport(ledger.handle))


@pytest.fixture
def ledger():
    return FakeLedger()


@pytest.fixture
def gateway(ledger):
    return make_gateway(ledger)


@pytest.fixture
def store():
    return MemoryStore()


@pytest.fixture
def identity():
    return StaticIdentityProvider(USER_ID, phone="+10000000000")


@pytest.fixture
def anonymous():
    return StaticIdentityProvider()


@pytest.fixture
def errors():
    return ErrorLog()


@pytest.fixture
def background(errors):
    return BackgroundTasks(on_error=errors)


@pytest.fixture
def cache(gateway, identity, store, background):
    return WalletCache(gateway, identity, store, background)
