"""
Webshop: 設定

環境変数は起動時に一度だけ読み込み、Settings としてストアや
アダプタに注入する。API キーをソースに埋め込まない。
"""

import os
from pathlib import Path

from pydantic import BaseModel


class Settings(BaseModel):
    data_dir: Path = Path("data")
    catalog_file: str = "products.json"
    ledger_file: str = "rendelesek.xlsx"

    payment_adapter: str = "fake"
    stripe_secret_key: str | None = None
    stripe_api_url: str = "https://api.stripe.com/v1"

    shipping_adapter: str = "fake"
    foxpost_api_key: str | None = None
    foxpost_api_url: str = "https://api.foxpost.hu/v1"

    http_timeout: float = 10.0
    redis_url: str | None = None
    log_level: str = "INFO"
    port: int = 3000

    @property
    def catalog_path(self) -> Path:
        return self.data_dir / self.catalog_file

    @property
    def ledger_path(self) -> Path:
        return self.data_dir / self.ledger_file

    @classmethod
    def from_env(cls) -> "Settings":
        env = os.environ
        return cls(
            data_dir=Path(env.get("DATA_DIR", "data")),
            catalog_file=env.get("CATALOG_FILE", "products.json"),
            ledger_file=env.get("LEDGER_FILE", "rendelesek.xlsx"),
            payment_adapter=env.get("PAYMENT_ADAPTER", "fake"),
            stripe_secret_key=env.get("STRIPE_SECRET_KEY"),
            stripe_api_url=env.get("STRIPE_API_URL", "https://api.stripe.com/v1"),
            shipping_adapter=env.get("SHIPPING_ADAPTER", "fake"),
            foxpost_api_key=env.get("FOXPOST_API_KEY"),
            foxpost_api_url=env.get("FOXPOST_API_URL", "https://api.foxpost.hu/v1"),
            http_timeout=float(env.get("HTTP_TIMEOUT", "10.0")),
            redis_url=env.get("REDIS_URL") or None,
            log_level=env.get("LOG_LEVEL", "INFO"),
            port=int(env.get("PORT", "3000")),
        )
