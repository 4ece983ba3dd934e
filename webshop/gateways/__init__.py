"""
外部サービスのアダプタ

設定に応じて本番アダプタ (Stripe / FoxPost) か、開発・テスト用の
Fake アダプタを組み立てる。
"""

from ..config import Settings
from .payment import FakePaymentGateway, PaymentGateway, StripeGateway
from .shipping import FakeShippingGateway, FoxpostGateway, ShippingGateway


def build_payment_gateway(settings: Settings) -> PaymentGateway:
    if settings.payment_adapter == "fake":
        return FakePaymentGateway()
    if settings.payment_adapter == "stripe":
        if not settings.stripe_secret_key:
            raise ValueError("PAYMENT_ADAPTER=stripe requires STRIPE_SECRET_KEY")
        return StripeGateway(
            settings.stripe_secret_key,
            api_url=settings.stripe_api_url,
            timeout=settings.http_timeout,
        )
    raise ValueError(f"Unknown payment adapter: {settings.payment_adapter}")


def build_shipping_gateway(settings: Settings) -> ShippingGateway:
    if settings.shipping_adapter == "fake":
        return FakeShippingGateway()
    if settings.shipping_adapter == "foxpost":
        if not settings.foxpost_api_key:
            raise ValueError("SHIPPING_ADAPTER=foxpost requires FOXPOST_API_KEY")
        return FoxpostGateway(
            settings.foxpost_api_key,
            api_url=settings.foxpost_api_url,
            timeout=settings.http_timeout,
        )
    raise ValueError(f"Unknown shipping adapter: {settings.shipping_adapter}")
