import json

import pytest
from fastapi.testclient import TestClient

from webshop.config import Settings
from webshop.gateways.payment import FakePaymentGateway
from webshop.gateways.shipping import FakeShippingGateway
from webshop.main import create_app

CATALOG = [
    {"id": 1, "name": "Bögre", "price": 1000, "quantity": 10, "description": "Kézzel festett"},
    {"id": 2, "name": "Karkötő", "price": 2500, "quantity": 5},
]


@pytest.fixture()
def data_dir(tmp_path):
    (tmp_path / "products.json").write_text(json.dumps(CATALOG), encoding="utf-8")
    return tmp_path


@pytest.fixture()
def catalog_path(data_dir):
    return data_dir / "products.json"


@pytest.fixture()
def ledger_path(data_dir):
    return data_dir / "rendelesek.xlsx"


@pytest.fixture()
def settings(data_dir):
    return Settings(data_dir=data_dir)


@pytest.fixture()
def payments():
    return FakePaymentGateway()


@pytest.fixture()
def shipping():
    return FakeShippingGateway()


@pytest.fixture()
def client(settings, payments, shipping):
    app = create_app(settings, payments=payments, shipping=shipping)
    with TestClient(app) as client:
        yield client


@pytest.fixture()
def make_order():
    """Build a storefront order payload (home delivery by default)."""

    def _make(order_id="O1", items=None, shipping_method="home", **overrides):
        payload = {
            "orderId": order_id,
            "items": [{"id": 1, "name": "Bögre", "quantity": 3, "price": 1000}] if items is None else items,
            "customerInfo": {
                "name": "Kiss Anna",
                "email": "anna@example.com",
                "phone": "+36301234567",
                "zipCode": "1132",
                "city": "Budapest",
                "address": "Váci út 5.",
            },
            "shippingMethod": shipping_method,
            "total": 3000,
        }
        if shipping_method == "foxpost":
            payload["foxpostLocationId"] = 1
            payload["foxpostLocation"] = "Budapest, Nyugati tér"
        payload.update(overrides)
        return payload

    return _make


@pytest.fixture()
def stock(catalog_path):
    """Return the stored quantity of every product, keyed by id."""

    def _stock():
        products = json.loads(catalog_path.read_text(encoding="utf-8"))
        return {p["id"]: p["quantity"] for p in products}

    return _stock
