import json
from decimal import Decimal

import httpx
import pytest
from django.urls import reverse

from orders.models import Order
from payment.paypal import PayPalClient, PayPalConfig, PayPalError, funding_source, mad_to_usd
from payment.tasks import forward_tracking_to_paypal

CAPTURED = {
    "id": "PP-1",
    "status": "COMPLETED",
    "payer": {"payer_id": "PAYER-1", "email_address": "buyer@example.com"},
    "payment_source": {"paypal": {}},
    "purchase_units": [{"payments": {"captures": [{"id": "CAP-1", "status": "COMPLETED"}]}}],
}


class FakePayPalAPI:
    def __init__(self):
        self.requests = []
        self.responses = {}

    def __call__(self, request):
        self.requests.append(request)
        if request.url.path == "/v1/oauth2/token":
            return httpx.Response(200, json={"access_token": "A21", "expires_in": 32400})
        status, body = self.responses.get(request.url.path, (404, {"message": "not found"}))
        return httpx.Response(status, json=body)

    def calls(self, path):
        return [r for r in self.requests if r.url.path == path]


@pytest.fixture
def paypal_api():
    return FakePayPalAPI()


@pytest.fixture
def paypal(paypal_api):
    config = PayPalConfig(client_id="cid", secret="secret", use_sandbox=True, mad_to_usd_rate=Decimal("0.1"))
    http = httpx.Client(base_url=config.base_url, transport=httpx.MockTransport(paypal_api))
    with PayPalClient(config, http=http) as client:
        yield client


def test_mad_to_usd():
    assert mad_to_usd(499, "0.1") == Decimal("49.90")
    assert mad_to_usd(Decimal("333.33"), Decimal("0.0987")) == Decimal("32.90")


def test_sandbox_and_live_urls():
    assert PayPalConfig("id", "s", use_sandbox=True).base_url == "https://api-m.sandbox.paypal.com"
    assert PayPalConfig("id", "s", use_sandbox=False).base_url == "https://api-m.paypal.com"


def test_create_order_converts_the_amount(paypal, paypal_api):
    paypal_api.responses["/v2/checkout/orders"] = (201, {"id": "PP-1", "status": "CREATED"})

    assert paypal.create_order(Decimal("598"), item_count=2)["id"] == "PP-1"
    paypal.create_order(Decimal("100"))

    body = json.loads(paypal_api.calls("/v2/checkout/orders")[0].content)
    assert body["intent"] == "CAPTURE"
    assert body["purchase_units"][0]["amount"] == {"currency_code": "USD", "value": "59.80"}
    assert len(paypal_api.calls("/v1/oauth2/token")) == 1


def test_token_request_uses_basic_auth(paypal, paypal_api):
    paypal.access_token()
    request = paypal_api.calls("/v1/oauth2/token")[0]
    assert request.headers["Authorization"].startswith("Basic ")
    assert request.content == b"grant_type=client_credentials"


def test_capture_order(paypal, paypal_api):
    paypal_api.responses["/v2/checkout/orders/PP-1/capture"] = (201, CAPTURED)
    outcome = paypal.capture_order("PP-1")

    assert outcome.method == "paypal"
    assert outcome.order_id == "PP-1"
    assert outcome.transaction_id == "CAP-1"
    assert outcome.payer_id == "PAYER-1"
    assert outcome.funding_source == "paypal_account"


def test_capture_not_completed(paypal, paypal_api):
    paypal_api.responses["/v2/checkout/orders/PP-2/capture"] = (201, {"id": "PP-2", "status": "PENDING"})
    with pytest.raises(PayPalError):
        paypal.capture_order("PP-2")


def test_capture_refused(paypal, paypal_api):
    paypal_api.responses["/v2/checkout/orders/PP-3/capture"] = (422, {"name": "UNPROCESSABLE_ENTITY", "message": "Declined"})
    with pytest.raises(PayPalError) as exc:
        paypal.capture_order("PP-3")
    assert exc.value.status_code == 422


def test_funding_source():
    assert funding_source({"payment_source": {"card": {}}}) == "credit_card"
    assert funding_source({}) == "paypal"


def test_add_tracking(paypal, paypal_api):
    paypal_api.responses["/v1/shipping/trackers-batch"] = (200, {"tracker_identifiers": []})
    paypal.add_tracking("CAP-1", "DLV-1")

    body = json.loads(paypal_api.calls("/v1/shipping/trackers-batch")[0].content)
    assert body == {
        "trackers": [{"transaction_id": "CAP-1", "tracking_number": "DLV-1", "status": "SHIPPED", "carrier": "OTHER"}]
    }


def test_missing_credentials():
    client = PayPalClient(PayPalConfig(client_id="", secret=""), http=httpx.Client())
    with pytest.raises(PayPalError):
        client.access_token()


class RecordingPayPal:
    trackers = []

    def __init__(self, *args, **kwargs):
        pass

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        pass

    def add_tracking(self, transaction_id, tracking_number, carrier="OTHER"):
        self.trackers.append((transaction_id, tracking_number, carrier))
        return {}


def make_order(**fields):
    defaults = dict(
        order_number="TAR-1",
        first_name="Yassine",
        last_name="Alami",
        email="yassine@example.com",
        phone="0612345678",
        address="12 Rue X",
    )
    defaults.update(fields)
    return Order.objects.create(**defaults)


@pytest.mark.django_db
def test_forward_tracking_prefers_the_capture_id(monkeypatch):
    RecordingPayPal.trackers = []
    monkeypatch.setattr("payment.tasks.PayPalClient", RecordingPayPal)
    order = make_order(tracking_code="DLV-1", paypal_order_id="PP-1", transaction_id="CAP-1")

    assert forward_tracking_to_paypal(order.id) == 1
    assert RecordingPayPal.trackers == [("CAP-1", "DLV-1", "OTHER")]


@pytest.mark.django_db
def test_forward_tracking_falls_back_to_order_id(monkeypatch):
    RecordingPayPal.trackers = []
    monkeypatch.setattr("payment.tasks.PayPalClient", RecordingPayPal)
    order = make_order(tracking_code="DLV-2", paypal_order_id="PP-2")

    forward_tracking_to_paypal(order.id)
    assert RecordingPayPal.trackers == [("PP-2", "DLV-2", "OTHER")]


@pytest.mark.django_db
def test_forward_tracking_skips_orders_without_tracking(monkeypatch):
    monkeypatch.setattr("payment.tasks.PayPalClient", RecordingPayPal)
    order = make_order(paypal_order_id="PP-3")
    assert forward_tracking_to_paypal(order.id) == 0


def test_config_view_hides_the_secret(client, settings):
    settings.PAYPAL_USE_SANDBOX = True
    settings.PAYPAL_CLIENT_ID_SANDBOX = "sandbox-id"
    settings.PAYPAL_SECRET_SANDBOX = "top-secret"

    response = client.get(reverse("payment:paypal-config"))
    assert response.json() == {"client_id": "sandbox-id", "use_sandbox": True, "mad_to_usd_rate": 0.1}
    assert b"top-secret" not in response.content


def test_create_order_view_rejects_bad_totals(client):
    for total in (None, "abc", "-10", "0"):
        response = client.post(
            reverse("payment:paypal-create"), data=json.dumps({"total": total}), content_type="application/json"
        )
        assert response.status_code == 400


@pytest.mark.django_db
def test_tracking_view_is_staff_only(client):
    response = client.post(reverse("payment:paypal-tracking"), data="{}", content_type="application/json")
    assert response.status_code == 302


@pytest.mark.django_db
def test_tracking_view(admin_client, monkeypatch):
    RecordingPayPal.trackers = []
    monkeypatch.setattr("payment.views.PayPalClient", RecordingPayPal)
    response = admin_client.post(
        reverse("payment:paypal-tracking"),
        data=json.dumps({"order_id": "CAP-5", "tracking_number": "DLV-5"}),
        content_type="application/json",
    )
    assert response.status_code == 200
    assert RecordingPayPal.trackers == [("CAP-5", "DLV-5", "OTHER")]
