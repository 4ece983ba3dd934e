"""
Webshop: FastAPI エントリーポイント

小さな小売カタログの注文を受け付けるストアフロント API。
在庫はカタログ JSON、確定した注文は Excel 台帳に記録し、
決済 (Stripe) と配送 (FoxPost) は外部アダプタ経由で呼ぶ。

  ┌────────────┐     ┌────────────────────┐     ┌──────────────┐
  │ Storefront │────▶│ Fulfillment        │────▶│ Catalog JSON │
  │            │     │ Pipeline           │────▶│ Ledger XLSX  │
  │            │     │                    │────▶│ Stripe       │
  │            │     │                    │────▶│ FoxPost      │
  └────────────┘     └────────────────────┘     └──────────────┘
"""

import logging
from contextlib import asynccontextmanager

import redis.asyncio as aioredis
from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from .catalog import CatalogStore
from .config import Settings
from .errors import OrderFailed, ShopError
from .events import EventPublisher
from .gateways import build_payment_gateway, build_shipping_gateway
from .gateways.payment import PaymentGateway
from .gateways.shipping import ShippingGateway
from .ledger import LedgerStore
from .models import Order, PaymentOrderData
from .pipeline import OrderFulfillmentPipeline
from .shipments import ShipmentDispatcher

logger = logging.getLogger(__name__)


# ── Request Models ───────────────────────────────


class PaymentIntentRequest(BaseModel):
    amount: float = Field(gt=0)
    order_data: PaymentOrderData = Field(alias="orderData")


class ConfirmationRequest(BaseModel):
    email: str
    order_data: dict = Field(default_factory=dict, alias="orderData")


def create_app(
    settings: Settings | None = None,
    payments: PaymentGateway | None = None,
    shipping: ShippingGateway | None = None,
) -> FastAPI:
    """
    アプリケーションを組み立てる。

    設定とゲートウェイは起動時に注入する（テストでは Fake を渡す）。
    """
    settings = settings or Settings.from_env()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logging.basicConfig(
            level=settings.log_level.upper(),
            format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        )
        shipping_gateway = shipping or build_shipping_gateway(settings)
        redis_pool = (
            aioredis.from_url(settings.redis_url, decode_responses=True)
            if settings.redis_url
            else None
        )
        dispatcher = ShipmentDispatcher(shipping_gateway)
        app.state.pipeline = OrderFulfillmentPipeline(
            catalog=CatalogStore(settings.catalog_path),
            ledger=LedgerStore(settings.ledger_path),
            payments=payments or build_payment_gateway(settings),
            shipping=shipping_gateway,
            dispatcher=dispatcher,
            publisher=EventPublisher(redis_pool),
        )
        await dispatcher.start()
        logger.info("Webshop started, data directory: %s", settings.data_dir)
        yield
        await dispatcher.stop()
        if redis_pool is not None:
            await redis_pool.aclose()

    app = FastAPI(title="Webshop", lifespan=lifespan)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(ShopError)
    async def shop_error_handler(request: Request, exc: ShopError):
        return JSONResponse(status_code=exc.status_code, content=exc.to_response())

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        return JSONResponse(
            status_code=422,
            content={
                "error": "Érvénytelen kérés",
                "kind": "invalid_request",
                "detail": jsonable_encoder(exc.errors()),
            },
        )

    def pipeline(request: Request) -> OrderFulfillmentPipeline:
        return request.app.state.pipeline

    # ── Catalog ──────────────────────────────────

    @app.get("/api/products")
    async def list_products(request: Request):
        products = await pipeline(request).catalog.load()
        return [p.model_dump() for p in products]

    @app.get("/api/products/{product_id}")
    async def get_product(product_id: str, request: Request):
        try:
            product = await pipeline(request).catalog.get(int(product_id))
        except ValueError:
            product = None
        if product is None:
            return JSONResponse(
                status_code=404,
                content={"error": "Termék nem található", "kind": "not_found"},
            )
        return product.model_dump()

    # ── Shipping / Payment ───────────────────────

    @app.get("/api/foxpost/locations")
    async def list_pickup_points(request: Request):
        points = await pipeline(request).list_pickup_points()
        return [p.model_dump() for p in points]

    @app.post("/api/create-payment-intent")
    async def create_payment_intent(req: PaymentIntentRequest, request: Request):
        intent = await pipeline(request).create_payment_intent(req.amount, req.order_data)
        return {
            "clientSecret": intent.client_secret,
            "paymentIntentId": intent.payment_intent_id,
        }

    # ── Orders ───────────────────────────────────

    @app.post("/api/complete-order")
    async def complete_order(order: Order, request: Request):
        try:
            return await pipeline(request).complete_order(order)
        except ShopError:
            raise
        except Exception as e:
            logger.exception("Unexpected error while completing order %s", order.order_id)
            raise OrderFailed(str(e)) from e

    @app.post("/api/send-confirmation")
    async def send_confirmation(req: ConfirmationRequest):
        # メール送信は未実装（スタブ）
        logger.info(
            "Confirmation requested for %s (order %s), not sent",
            req.email,
            req.order_data.get("orderId"),
        )
        return {"success": True, "message": "Email elküldve"}

    @app.get("/api/admin/orders")
    async def list_orders(request: Request):
        rows = await pipeline(request).ledger.read_all()
        return [row.model_dump(by_alias=True) for row in rows]

    @app.get("/health")
    async def health():
        return {"status": "ok", "service": "webshop"}

    return app


app = create_app()


def run() -> None:
    import uvicorn

    settings = Settings.from_env()
    logging.basicConfig(level=settings.log_level.upper())
    logger.info("Webshop API: http://localhost:%d/api", settings.port)
    uvicorn.run("webshop.main:app", host="0.0.0.0", port=settings.port)
