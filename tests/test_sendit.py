import json

import httpx
import pytest

from shipping.exceptions import AuthenticationError, SenditAPIError, TransportError


def test_token_is_cached_until_expiry(sendit_client, fake_sendit, clock):
    fake_sendit.on("GET", "deliveries/DLV1", (200, {"success": True, "data": {"code": "DLV1", "status": "PENDING"}}))

    sendit_client.get_delivery("DLV1")
    sendit_client.get_delivery("DLV1")
    assert len(fake_sendit.calls("POST", "login")) == 1
    assert fake_sendit.calls("GET", "deliveries/DLV1")[0].headers["Authorization"] == "Bearer tok-1"

    clock.now += 3601
    sendit_client.get_delivery("DLV1")
    assert len(fake_sendit.calls("POST", "login")) == 2


def test_login_sends_the_keys(sendit_client, fake_sendit):
    assert sendit_client.login() == "tok-1"
    body = json.loads(fake_sendit.calls("POST", "login")[0].content)
    assert body == {"public_key": "pk-test", "secret_key": "sk-test"}


def test_login_refused(sendit_client, fake_sendit):
    fake_sendit.on("POST", "login", (401, {"success": False, "message": "Bad keys"}))
    with pytest.raises(AuthenticationError):
        sendit_client.login()


@pytest.mark.parametrize("body", ["<html>maintenance</html>", ["unexpected"], {"success": True, "data": ["tok"]}])
def test_login_with_malformed_body(sendit_client, fake_sendit, body):
    fake_sendit.on("POST", "login", (200, body))
    with pytest.raises(AuthenticationError):
        sendit_client.login()


def test_login_without_token(sendit_client, fake_sendit):
    fake_sendit.on("POST", "login", (200, {"success": True, "data": {}}))
    with pytest.raises(AuthenticationError):
        sendit_client.token()


def test_revoked_token_triggers_one_new_login(sendit_client, fake_sendit):
    fake_sendit.on(
        "GET",
        "deliveries/DLV1",
        (401, {"success": False, "message": "Unauthenticated"}),
        (200, {"success": True, "data": {"code": "DLV1"}}),
    )
    assert sendit_client.get_delivery("DLV1") == {"code": "DLV1"}
    assert len(fake_sendit.calls("POST", "login")) == 2


def test_business_error_in_envelope(sendit_client, fake_sendit):
    fake_sendit.on("POST", "deliveries", (200, {"success": False, "code": "251", "message": "Produits inexistants"}))
    with pytest.raises(SenditAPIError) as exc:
        sendit_client.create_delivery({"district_id": 46})

    assert exc.value.code == 251
    assert exc.value.is_stock_error()
    assert str(exc.value.user_message) == "Some products do not exist in the courier stock."
    assert len(fake_sendit.calls("POST", "deliveries")) == 1


def test_http_error_code_falls_back_to_status(sendit_client, fake_sendit):
    fake_sendit.on("POST", "deliveries", (422, {"message": "The phone field is required.", "errors": {"phone": []}}))
    with pytest.raises(SenditAPIError) as exc:
        sendit_client.create_delivery({})

    assert exc.value.code == 422
    assert exc.value.status_code == 422
    assert not exc.value.is_stock_error()


def test_server_errors_are_retried_with_backoff(sendit_client, fake_sendit):
    fake_sendit.on(
        "GET",
        "all-status-deliveries",
        (503, {"message": "unavailable"}),
        (502, {"message": "bad gateway"}),
        (200, {"success": True, "data": {"PENDING": "En attente"}}),
    )
    assert sendit_client.delivery_statuses() == {"PENDING": "En attente"}
    assert len(fake_sendit.calls("GET", "all-status-deliveries")) == 3
    assert sendit_client.sleeps == [0.5, 1.0]


def test_transport_error_after_bounded_retries(sendit_client, fake_sendit):
    fake_sendit.on("GET", "deliveries/DLV1", httpx.ConnectError("connection refused"))
    with pytest.raises(TransportError):
        sendit_client.get_delivery("DLV1")

    assert len(fake_sendit.calls("GET", "deliveries/DLV1")) == 3
    assert sendit_client.sleeps == [0.5, 1.0]


def test_timeouts_are_transport_errors(sendit_client, fake_sendit):
    fake_sendit.on("GET", "deliveries/DLV1", httpx.ReadTimeout("timed out"))
    with pytest.raises(TransportError):
        sendit_client.get_delivery("DLV1")


def test_create_delivery_requires_a_code(sendit_client, fake_sendit):
    fake_sendit.on("POST", "deliveries", (200, {"success": True, "data": {}}))
    with pytest.raises(SenditAPIError):
        sendit_client.create_delivery({})


def test_districts_are_paginated(sendit_client, fake_sendit):
    pages = {
        "1": {"success": True, "data": [{"id": 1, "name": "A"}, {"id": 2, "name": "B"}], "current_page": 1, "last_page": 2},
        "2": {"success": True, "data": {"data": [{"id": 3, "name": "C"}], "current_page": 2, "last_page": 2}},
    }

    def handler(request):
        fake_sendit.requests.append(request)
        if request.url.path.endswith("/login"):
            return httpx.Response(200, json={"success": True, "data": {"token": "tok"}})
        return httpx.Response(200, json=pages[request.url.params["page"]])

    sendit_client.http = httpx.Client(base_url=sendit_client.config.base_url, transport=httpx.MockTransport(handler))

    districts = sendit_client.list_districts()
    assert [d["id"] for d in districts] == [1, 2, 3]


def test_districts_pagination_stops_on_empty_page(sendit_client, fake_sendit):
    fake_sendit.on("GET", "districts", (200, {"success": True, "data": [], "current_page": 1, "last_page": 5}))
    assert sendit_client.list_districts() == []
    assert len(fake_sendit.calls("GET", "districts")) == 1


def test_find_delivery_by_reference(sendit_client, fake_sendit):
    fake_sendit.on(
        "GET",
        "deliveries",
        (200, {"success": True, "data": {"0": {"code": "DLV9", "reference": "TAR-1"}}}),
    )
    assert sendit_client.find_delivery_by_reference("TAR-1")["code"] == "DLV9"
    assert fake_sendit.calls("GET", "deliveries")[0].url.params["reference"] == "TAR-1"


def test_find_delivery_by_reference_without_match(sendit_client, fake_sendit):
    fake_sendit.on("GET", "deliveries", (200, {"success": True, "data": []}))
    assert sendit_client.find_delivery_by_reference("TAR-2") is None
