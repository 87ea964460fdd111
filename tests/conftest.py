"""
Shared fixtures: upstream payload builders, an httpx mock transport and an
in-memory stand-in for the handful of MongoDB calls the store makes.
"""

import copy
from types import SimpleNamespace

import bson
import httpx
import pytest
from pymongo.errors import OperationFailure, PyMongoError, ServerSelectionTimeoutError

from bazaar_agent.agent.database import BazaarStore
from bazaar_agent.hypixel.bazaar import BazaarClient

BAZAAR_URL = "https://api.test/skyblock/bazaar"


# ── Upstream payloads ────────────────────────────────────────────────

def quick_status(product_id: str) -> dict:
    return {
        "productId": product_id,
        "sellPrice": 10.5,
        "sellVolume": 1200,
        "sellMovingWeek": 56000,
        "sellOrders": 14,
        "buyPrice": 11.25,
        "buyVolume": 900,
        "buyMovingWeek": 61000,
        "buyOrders": 9,
    }


def price_point(amount: int, price: float, orders: int = 1) -> dict:
    return {"amount": amount, "pricePerUnit": price, "orders": orders}


def product(product_id: str, sell=None, buy=None) -> dict:
    return {
        "product_id": product_id,
        "sell_summary": sell if sell is not None else [],
        "buy_summary": buy if buy is not None else [],
        "quick_status": quick_status(product_id),
    }


def bazaar_payload(last_updated: int, products: dict, success: bool = True) -> dict:
    return {"success": success, "lastUpdated": last_updated, "products": products}


@pytest.fixture
def make_product():
    return product


@pytest.fixture
def make_payload():
    return bazaar_payload


@pytest.fixture
def make_point():
    return price_point


# ── HTTP ─────────────────────────────────────────────────────────────

class ScriptedUpstream:
    """Serves queued responses in order; the last one repeats."""

    def __init__(self):
        self.responses = []
        self.requests = 0

    def queue(self, *responses) -> None:
        self.responses.extend(responses)

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests += 1
        item = self.responses.pop(0) if len(self.responses) > 1 else self.responses[0]
        if isinstance(item, Exception):
            raise item
        if isinstance(item, httpx.Response):
            return item
        return httpx.Response(200, json=item)


@pytest.fixture
def upstream():
    return ScriptedUpstream()


@pytest.fixture
def fetcher(upstream):
    client = httpx.AsyncClient(transport=httpx.MockTransport(upstream.handler))
    return BazaarClient(url=BAZAAR_URL, client=client)


# ── MongoDB ──────────────────────────────────────────────────────────

class FakeCollection:
    def __init__(self, name: str):
        self.name = name
        self.docs = []
        self.insert_calls = 0
        self.fail_on_insert = None
        self.transient_failures = 0
        self.unreachable = False

    async def insert_one(self, document, session=None):
        self.insert_calls += 1
        if self.unreachable:
            raise ServerSelectionTimeoutError("localhost:27017: connection refused")
        if self.transient_failures:
            self.transient_failures -= 1
            raise OperationFailure(
                "write conflict", code=112,
                details={"errorLabels": ["TransientTransactionError"]},
            )
        if self.fail_on_insert == self.insert_calls:
            raise OperationFailure("write rejected")
        # Same encoding step the driver performs before sending
        bson.encode(document)
        self.docs.append(document)
        return SimpleNamespace(inserted_id=len(self.docs))

    async def update_one(self, filter, update, upsert=False, session=None):
        if self.unreachable:
            raise ServerSelectionTimeoutError("localhost:27017: connection refused")
        (field,) = filter
        for doc in self.docs:
            if field in doc:
                for key, amount in update["$inc"].items():
                    doc[key] = doc.get(key, 0) + amount
                return SimpleNamespace(matched_count=1, upserted_id=None)
        if upsert:
            self.docs.append(dict(update["$inc"]))
            return SimpleNamespace(matched_count=0, upserted_id=len(self.docs))
        return SimpleNamespace(matched_count=0, upserted_id=None)

    def counter(self, field: str = "bazaarupdated"):
        for doc in self.docs:
            if field in doc:
                return doc[field]
        return None


class FakeSession:
    """
    Runs the callback and restores every collection if it raises; retries
    errors labelled TransientTransactionError like the driver does.
    """

    def __init__(self, database):
        self.database = database

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info):
        return False

    async def with_transaction(self, callback):
        self.attempts = 0
        while True:
            self.attempts += 1
            saved = {
                name: copy.deepcopy(coll.docs)
                for name, coll in self.database.collections.items()
            }
            try:
                return await callback(self)
            except Exception as e:
                for name, docs in saved.items():
                    self.database.collections[name].docs = docs
                if isinstance(e, PyMongoError) and e.has_error_label("TransientTransactionError"):
                    continue
                raise


class FakeClient:
    def __init__(self, database):
        self.database = database
        self.closed = False

    def start_session(self):
        return FakeSession(self.database)

    async def close(self):
        self.closed = True


class FakeDatabase:
    def __init__(self):
        self.collections = {}
        self.client = FakeClient(self)
        self.unreachable = False

    def __getitem__(self, name):
        return self.collections.setdefault(name, FakeCollection(name))

    async def command(self, name):
        if self.unreachable:
            raise ServerSelectionTimeoutError("localhost:27017: connection refused")
        return {"ok": 1.0}


@pytest.fixture
def database():
    db = FakeDatabase()
    db["config"].docs.append({"bazaarupdated": 0})
    return db


@pytest.fixture
def store(database):
    return BazaarStore(database)
