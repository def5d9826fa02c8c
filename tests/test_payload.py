import dataclasses
from decimal import Decimal

import pytest

from shipping.domain import Customer, LineItem, OrderShippingInfo
from shipping.exceptions import ValidationError
from shipping.payload import build, build_attempt_chain, compose_address, normalize_phone, validate_amount


@pytest.mark.parametrize(
    "raw",
    ["0612345678", "212612345678", "+212 6 12 34 56 78", "612345678", "06-12-34-56-78", "00212612345678"],
)
def test_phone_formats_normalize_to_the_same_number(raw):
    assert normalize_phone(raw) == "0612345678"


@pytest.mark.parametrize("phone", ["0512345678", "0612345678", "0798765432"])
def test_phone_normalization_is_idempotent(phone):
    assert normalize_phone(phone) == phone
    assert normalize_phone(normalize_phone(phone)) == phone


@pytest.mark.parametrize("raw", ["", None, "12345", "0812345678", "abc"])
def test_invalid_phones_are_rejected(raw):
    with pytest.raises(ValidationError) as exc:
        normalize_phone(raw)
    assert exc.value.field == "phone"


def test_amount_validation():
    assert validate_amount("199.999") == 200.0
    assert validate_amount(0) == 0.0
    for bad in (-5, "-0.01", float("nan"), "abc", None):
        with pytest.raises(ValidationError):
            validate_amount(bad)


def test_same_codes_are_aggregated_per_level(sendit_config):
    items = [
        LineItem(name="Patriot", quantity=2, size="M", variation="patriot-edition"),
        LineItem(name="Patriot", quantity=3, size="M", variation="patriot-edition"),
    ]
    chain = build_attempt_chain(items, sendit_config.code_map)
    assert chain[0] == "PRA427:5"
    assert chain == ("PRA427:5", "PRA425:5")


def test_shorter_chains_drop_out_of_later_levels(sendit_config):
    items = [
        LineItem(name="Patriot", quantity=1, size="M", variation="patriot-edition"),
        LineItem(name="Signature", quantity=2, size="L", variation="signature-rouge"),
    ]
    chain = build_attempt_chain(items, sendit_config.code_map)
    assert chain == ("PRA427:1;PRA42B:2", "PRA425:1;PRA3DE:2", "PRA3DF:2")


def test_build_payload(sendit_config, make_order):
    request = build(make_order(), sendit_config)
    payload = request.payload

    assert payload["district_id"] == 47
    assert payload["pickup_district_id"] == 1
    assert payload["name"] == "Yassine Alami"
    assert payload["phone"] == "0612345678"
    assert payload["address"] == "12 Rue Ibn Batouta (Near the mosque) - 20250"
    assert payload["amount"] == 598.0
    assert payload["reference"] == "TAR-1700000000000"
    assert payload["products"] == request.attempt_chain[0] == "PRA427:2"
    assert payload["packaging_id"] == 8
    assert payload["allow_open"] == 1
    assert payload["option_exchange"] == 0
    assert payload["delivery_exchange_id"] is None
    assert payload["comment"] == (
        "Call before delivery | PRODUITS: Casquette Patriot (Patriot Edition)"
        " - Taille: N.7 ou N.8 ou N.9 (57-59cm) x2 | Landmark: Near the mosque"
    )


def test_build_is_pure(sendit_config, make_order):
    order = make_order()
    assert build(order, sendit_config) == build(order, sendit_config)


def test_missing_district_is_rejected(sendit_config, make_order):
    order = make_order(shipping=OrderShippingInfo(address="12 Rue X", district_id=None))
    with pytest.raises(ValidationError) as exc:
        build(order, sendit_config)
    assert exc.value.field == "district_id"


@pytest.mark.parametrize("district_id", [0, -3, "abc", "", True])
def test_bad_district_ids_are_rejected(sendit_config, make_order, district_id):
    order = make_order(shipping=OrderShippingInfo(address="12 Rue X", district_id=district_id))
    with pytest.raises(ValidationError):
        build(order, sendit_config)


def test_negative_amount_is_rejected(sendit_config, make_order):
    with pytest.raises(ValidationError) as exc:
        build(make_order(total=Decimal("-5")), sendit_config)
    assert exc.value.field == "amount"


def test_empty_name_and_address_are_rejected(sendit_config, make_order):
    with pytest.raises(ValidationError) as exc:
        build(make_order(customer=Customer(first_name=" ", last_name="", phone="0612345678")), sendit_config)
    assert exc.value.field == "name"

    with pytest.raises(ValidationError) as exc:
        build(make_order(shipping=OrderShippingInfo(address="  ", district_id=46)), sendit_config)
    assert exc.value.field == "address"


def test_products_not_from_stock(sendit_config, make_order):
    config = dataclasses.replace(sendit_config, products_from_stock=False)
    request = build(make_order(), config)
    assert request.attempt_chain == ()
    assert request.payload["products"] is None
    assert "packaging_id" not in request.payload


def test_optional_fields_are_none(sendit_config, make_order):
    order = make_order(
        order_number="",
        shipping=OrderShippingInfo(address="12 Rue X", district_id="46"),
        items=(),
    )
    payload = build(order, sendit_config).payload
    assert payload["district_id"] == 46
    assert payload["reference"] is None
    assert payload["comment"] is None
    assert payload["products"] is None


def test_exchange_delivery_code(sendit_config, make_order):
    config = dataclasses.replace(sendit_config, option_exchange=True)
    payload = build(make_order(exchange_delivery_code=" DLV-42 "), config).payload
    assert payload["option_exchange"] == 1
    assert payload["delivery_exchange_id"] == "DLV-42"


def test_compose_address_without_extras():
    assert compose_address(OrderShippingInfo(address=" 5 Avenue Hassan II ")) == "5 Avenue Hassan II"
