from pathlib import Path

from webshop.config import Settings


def test_defaults(monkeypatch):
    for name in ("DATA_DIR", "PAYMENT_ADAPTER", "SHIPPING_ADAPTER", "REDIS_URL", "PORT"):
        monkeypatch.delenv(name, raising=False)

    settings = Settings.from_env()

    assert settings.catalog_path == Path("data/products.json")
    assert settings.ledger_path == Path("data/rendelesek.xlsx")
    assert settings.payment_adapter == "fake"
    assert settings.redis_url is None
    assert settings.port == 3000


def test_reads_environment(monkeypatch):
    monkeypatch.setenv("DATA_DIR", "/srv/shop")
    monkeypatch.setenv("LEDGER_FILE", "orders.xlsx")
    monkeypatch.setenv("PAYMENT_ADAPTER", "stripe")
    monkeypatch.setenv("STRIPE_SECRET_KEY", "sk_test")
    monkeypatch.setenv("HTTP_TIMEOUT", "2.5")
    monkeypatch.setenv("REDIS_URL", "")
    monkeypatch.setenv("PORT", "8080")

    settings = Settings.from_env()

    assert settings.ledger_path == Path("/srv/shop/orders.xlsx")
    assert settings.stripe_secret_key == "sk_test"
    assert settings.http_timeout == 2.5
    assert settings.redis_url is None
    assert settings.port == 8080
