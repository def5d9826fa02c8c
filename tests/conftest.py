import time
from decimal import Decimal

import httpx
import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from shipping.codes import DEFAULT_PRODUCT_CODE_MAP, load_code_map
from shipping.conf import SenditConfig
from shipping.districts import DistrictCatalog, DistrictEntry
from shipping.domain import Customer, LineItem, Order, OrderShippingInfo
from shipping.sendit import SenditClient


class FakeRedis:
    """The three string commands the catalog cache uses."""

    def __init__(self, fail=False):
        self.data = {}
        self.fail = fail
        self.expiry = {}

    def _check(self):
        if self.fail:
            raise RedisConnectionError("Redis is down")

    def get(self, key):
        self._check()
        return self.data.get(key)

    def set(self, key, value, ex=None):
        self._check()
        self.data[key] = value
        self.expiry[key] = ex
        return True

    def delete(self, key):
        self._check()
        return 1 if self.data.pop(key, None) is not None else 0


class FakeSendit:
    """
    MockTransport handler answering like the courier API.

    Scripted responses are ``(status, json)`` tuples or exceptions; the last
    one of a route keeps being served.
    """

    def __init__(self):
        self.requests = []
        self.routes = {}
        self.on("POST", "login", (200, {"success": True, "data": {"token": "tok-1"}}))

    def on(self, method, path, *responses):
        self.routes[(method, path)] = list(responses)

    def calls(self, method, path):
        return [r for r in self.requests if r.method == method and self._path(r) == path]

    @staticmethod
    def _path(request):
        return request.url.path.split("/api/v1/", 1)[-1]

    def __call__(self, request):
        self.requests.append(request)
        queue = self.routes.get((request.method, self._path(request)))
        if not queue:
            return httpx.Response(404, json={"success": False, "message": "Not found"})
        outcome = queue.pop(0) if len(queue) > 1 else queue[0]
        if isinstance(outcome, Exception):
            raise outcome
        status, body = outcome
        if isinstance(body, str):
            return httpx.Response(status, text=body)
        return httpx.Response(status, json=body)


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


@pytest.fixture(autouse=True)
def fake_redis(monkeypatch):
    redis_client = FakeRedis()
    monkeypatch.setattr("shipping.districts.get_redis", lambda: redis_client)
    return redis_client


@pytest.fixture
def sendit_config():
    return SenditConfig(
        public_key="pk-test",
        secret_key="sk-test",
        code_map=load_code_map(DEFAULT_PRODUCT_CODE_MAP),
    )


@pytest.fixture
def fake_sendit():
    return FakeSendit()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def sendit_client(sendit_config, fake_sendit, clock):
    sleeps = []
    http = httpx.Client(base_url=sendit_config.base_url, transport=httpx.MockTransport(fake_sendit))
    client = SenditClient(sendit_config, http=http, clock=clock, sleep=sleeps.append)
    client.sleeps = sleeps
    yield client
    client.close()


def district(id, name, city, arabic_name="", price="35"):
    return DistrictEntry(id=id, name=name, arabic_name=arabic_name, city=city, price=Decimal(price))


@pytest.fixture
def catalog():
    return DistrictCatalog(
        [
            district(46, "Casablanca - Autres quartiers", "Casablanca", "الدار البيضاء - أحياء أخرى", "19"),
            district(47, "Maarif", "Casablanca", "المعاريف", "19"),
            district(70, "Sidi Maarouf", "Casablanca", "سيدي معروف", "19"),
            district(53, "Rabat", "Rabat", "الرباط"),
            district(60, "Agdal", "Rabat", "أكدال"),
            district(56, "Marrakech", "Marrakech", "مراكش"),
            district(139, "Fes", "Fes", "فاس"),
        ],
        updated_at=time.time(),
    )


@pytest.fixture
def make_order():
    def make(**overrides):
        shipping = overrides.pop("shipping", None) or OrderShippingInfo(
            address="12 Rue Ibn Batouta",
            landmark="Near the mosque",
            district_id=47,
            postal_code="20250",
            notes="Call before delivery",
        )
        fields = dict(
            order_number="TAR-1700000000000",
            customer=Customer(first_name="Yassine", last_name="Alami", phone="+212 6 12 34 56 78"),
            shipping=shipping,
            items=(
                LineItem(name="Casquette Patriot - Edition", quantity=2, size="M", variation="patriot-edition"),
            ),
            total=Decimal("598.00"),
        )
        fields.update(overrides)
        return Order(**fields)

    return make
