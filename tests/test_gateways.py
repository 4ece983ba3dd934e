import asyncio
import json
from urllib.parse import parse_qs

import httpx
import pytest

from webshop.config import Settings
from webshop.errors import ShippingUnavailable
from webshop.gateways import build_payment_gateway, build_shipping_gateway
from webshop.gateways.payment import FakePaymentGateway, StripeGateway
from webshop.gateways.shipping import FakeShippingGateway, FoxpostGateway, ShipmentRequest


def mock(handler, seen):
    def _handler(request):
        seen.append(request)
        return handler(request)

    return httpx.MockTransport(_handler)


class TestStripeGateway:
    def test_creates_payment_intent(self):
        seen = []
        transport = mock(
            lambda r: httpx.Response(200, json={"id": "pi_123", "client_secret": "pi_123_secret_abc"}),
            seen,
        )
        gateway = StripeGateway("sk_test_key", transport=transport)

        intent = asyncio.run(
            gateway.create_payment_intent(3000, "huf", {"orderId": "O1", "customerName": "Kiss Anna"})
        )

        assert intent.payment_intent_id == "pi_123"
        assert intent.client_secret == "pi_123_secret_abc"
        [request] = seen
        assert request.url == "https://api.stripe.com/v1/payment_intents"
        assert request.headers["Authorization"] == "Bearer sk_test_key"
        form = {k: v[0] for k, v in parse_qs(request.content.decode()).items()}
        assert form == {
            "amount": "3000",
            "currency": "huf",
            "automatic_payment_methods[enabled]": "true",
            "metadata[orderId]": "O1",
            "metadata[customerName]": "Kiss Anna",
        }

    def test_error_status_raises(self):
        transport = mock(lambda r: httpx.Response(402, json={"error": {"message": "declined"}}), [])
        gateway = StripeGateway("sk_test_key", transport=transport)

        with pytest.raises(httpx.HTTPStatusError):
            asyncio.run(gateway.create_payment_intent(1000, "huf", {}))


class TestFoxpostGateway:
    def test_lists_pickup_points(self):
        seen = []
        points = [{"id": 501, "name": "Győr, Árkád", "address": "9021 Győr, Budai út 1.", "open": "0-24"}]
        gateway = FoxpostGateway("fp_key", transport=mock(lambda r: httpx.Response(200, json=points), seen))

        result = asyncio.run(gateway.list_pickup_points())

        assert [p.model_dump() for p in result] == points
        assert seen[0].url == "https://api.foxpost.hu/v1/automata"
        assert seen[0].headers["Authorization"] == "Bearer fp_key"

    @pytest.mark.parametrize(
        "response",
        [httpx.Response(500), httpx.Response(200, content=b"<html>"), httpx.Response(200, json=[{"id": 1}])],
    )
    def test_listing_failures_raise_shipping_unavailable(self, response):
        gateway = FoxpostGateway("fp_key", transport=mock(lambda r: response, []))

        with pytest.raises(ShippingUnavailable):
            asyncio.run(gateway.list_pickup_points())

    def test_registers_shipment(self):
        seen = []
        transport = mock(lambda r: httpx.Response(201, json={"tracking_number": "FP123"}), seen)
        gateway = FoxpostGateway("fp_key", transport=transport)
        request = ShipmentRequest(
            order_id="O1",
            pickup_point_id=1,
            recipient_name="Kiss Anna",
            recipient_email="anna@example.com",
            recipient_phone="+36301234567",
        )

        result = asyncio.run(gateway.register_shipment(request))

        assert result == {"tracking_number": "FP123"}
        [sent] = seen
        assert sent.method == "POST"
        assert sent.url == "https://api.foxpost.hu/v1/shipment"
        assert json.loads(sent.content) == {
            "recipient": {"name": "Kiss Anna", "email": "anna@example.com", "phone": "+36301234567"},
            "delivery_point_id": 1,
            "cod_amount": 0,
            "package_weight": 1,
            "order_number": "O1",
        }

    def test_connection_error_raises_shipping_unavailable(self):
        def refuse(request):
            raise httpx.ConnectError("connection refused", request=request)

        gateway = FoxpostGateway("fp_key", transport=httpx.MockTransport(refuse))
        request = ShipmentRequest("O1", 1, "Kiss Anna", "anna@example.com", "+36301234567")

        with pytest.raises(ShippingUnavailable):
            asyncio.run(gateway.register_shipment(request))


class TestGatewayFactory:
    def test_fake_by_default(self):
        settings = Settings()

        assert isinstance(build_payment_gateway(settings), FakePaymentGateway)
        assert isinstance(build_shipping_gateway(settings), FakeShippingGateway)

    def test_real_adapters_use_configured_credentials(self):
        settings = Settings(
            payment_adapter="stripe",
            stripe_secret_key="sk_live",
            shipping_adapter="foxpost",
            foxpost_api_key="fp_live",
            foxpost_api_url="https://sandbox.foxpost.hu/v1/",
        )

        payments = build_payment_gateway(settings)
        shipping = build_shipping_gateway(settings)

        assert isinstance(payments, StripeGateway)
        assert payments.secret_key == "sk_live"
        assert isinstance(shipping, FoxpostGateway)
        assert shipping.api_url == "https://sandbox.foxpost.hu/v1"

    @pytest.mark.parametrize(
        "settings",
        [
            Settings(payment_adapter="stripe"),
            Settings(payment_adapter="paypal"),
        ],
    )
    def test_invalid_payment_configuration(self, settings):
        with pytest.raises(ValueError):
            build_payment_gateway(settings)

    def test_foxpost_requires_api_key(self):
        with pytest.raises(ValueError):
            build_shipping_gateway(Settings(shipping_adapter="foxpost"))
