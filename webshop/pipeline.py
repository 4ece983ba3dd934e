"""
Webshop: 注文確定パイプライン

フロー:
  ┌──────────────────────────────────────────────────────────┐
  │  1. 在庫引き当て: カタログを読み、明細数量を引いて書き戻す   │
  │  2. 台帳確定: 注文を1行にまとめて台帳に追記                 │
  │     └─ 失敗 → 引き当てた在庫を戻す (補償トランザクション)     │
  │  3. 発送登録 (FoxPost のみ): ディスパッチャのキューに積む     │
  │     └─ 失敗しても 1, 2 の結果は変わらない                   │
  └──────────────────────────────────────────────────────────┘

2 が完了した時点で注文は確定扱い。1〜2 はパイプラインのロックで
直列化するため、同時注文で在庫が食い違ったりマイナスになったりしない。
"""

import asyncio
import logging
from datetime import datetime, timezone
from decimal import ROUND_HALF_UP, Decimal

from .catalog import CatalogStore
from .errors import DuplicateOrder, PaymentFailed
from .events import EventPublisher, OrderCompleted
from .gateways.payment import PaymentGateway, PaymentIntent
from .gateways.shipping import ShipmentRequest, ShippingGateway
from .ledger import LedgerStore
from .models import (
    LedgerRow,
    Order,
    PaymentOrderData,
    PickupPoint,
    Product,
    ShippingMethod,
)
from .shipments import ShipmentDispatcher

logger = logging.getLogger(__name__)

CURRENCY = "huf"
PAYMENT_METHOD_LABEL = "Bankkártya (Stripe)"
DEFAULT_PAYMENT_STATUS = "Sikeres"
SUCCESS_MESSAGE = "Rendelés sikeresen rögzítve"
PLACEHOLDER = "-"

SHIPPING_LABELS = {
    ShippingMethod.FOXPOST: "FoxPost automata",
    ShippingMethod.HOME: "Házhozszállítás",
}

# 配送 API に届かないときに表示する受け取りポイント（空のセレクタを出さないため）
FALLBACK_PICKUP_POINTS = [
    {"id": 1, "name": "Budapest, Nyugati tér", "address": "1132 Budapest, Váci út 1-3."},
    {"id": 2, "name": "Szentendre, Duna korzó", "address": "2000 Szentendre, Duna korzó 15."},
    {"id": 3, "name": "Budapest, Oktogon", "address": "1067 Budapest, Teréz körút 1."},
]


def format_amount(value: int | float) -> str:
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def to_minor_units(amount: int | float) -> int:
    """フォリントは補助単位が無いので、整数に四捨五入する。"""
    return int(Decimal(str(amount)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def build_ledger_row(
    order: Order,
    products: dict[int, Product],
    now: datetime,
) -> LedgerRow:
    """注文を台帳の1行に平坦化する。明細名は注文側 → カタログ側の順で採用。"""
    summary = []
    for item in order.items:
        product = products.get(item.product_id)
        name = item.name or (product.name if product else f"#{item.product_id}")
        summary.append(f"{name} ({item.quantity}db × {format_amount(item.unit_price)} Ft)")

    customer = order.customer_info
    is_foxpost = order.shipping_method is ShippingMethod.FOXPOST
    if is_foxpost:
        pickup_point = order.foxpost_location or str(order.foxpost_location_id)
        address = PLACEHOLDER
    else:
        pickup_point = PLACEHOLDER
        address = f"{customer.zip_code} {customer.city}, {customer.address}"

    return LedgerRow(
        order_id=order.order_id,
        date=now.strftime("%Y. %m. %d. %H:%M:%S"),
        name=customer.name,
        email=customer.email,
        phone=customer.phone,
        shipping_method=SHIPPING_LABELS[order.shipping_method],
        foxpost_location=pickup_point,
        address=address,
        items_summary="; ".join(summary),
        total_quantity=order.total_quantity,
        total=order.total,
        payment_method=PAYMENT_METHOD_LABEL,
        payment_status=order.payment_status or DEFAULT_PAYMENT_STATUS,
        notes=customer.notes or PLACEHOLDER,
    )


class OrderFulfillmentPipeline:
    def __init__(
        self,
        catalog: CatalogStore,
        ledger: LedgerStore,
        payments: PaymentGateway,
        shipping: ShippingGateway,
        dispatcher: ShipmentDispatcher,
        publisher: EventPublisher | None = None,
    ) -> None:
        self.catalog = catalog
        self.ledger = ledger
        self.payments = payments
        self.shipping = shipping
        self.dispatcher = dispatcher
        self.publisher = publisher or EventPublisher()
        self._commit_lock = asyncio.Lock()

    async def complete_order(self, order: Order) -> dict:
        """
        注文を確定する。

        在庫不足 (InsufficientStock)、同一 orderId の再送 (DuplicateOrder)、
        ストレージ障害 (StorageUnavailable) は例外として呼び出し側へ。
        発送登録の成否は結果に含まれない。
        """
        async with self._commit_lock:
            if await self.ledger.contains(order.order_id):
                raise DuplicateOrder(order.order_id)

            # ── Step 1: 在庫引き当て ────────────────────
            products = await self.catalog.reserve(order.items)

            # ── Step 2: 台帳に確定 ──────────────────────
            row = build_ledger_row(order, products, datetime.now())
            try:
                await self.ledger.append_order(row)
            except Exception:
                logger.error(
                    "Ledger commit failed for order %s, restoring stock",
                    order.order_id,
                )
                await self._compensate(order)
                raise

        logger.info(
            "Order %s committed (%d items, total %s)",
            order.order_id,
            order.total_quantity,
            format_amount(order.total),
        )
        await self.publisher.publish(
            OrderCompleted(
                order_id=order.order_id,
                customer_email=order.customer_info.email,
                shipping_method=order.shipping_method.value,
                total_quantity=order.total_quantity,
                total=order.total,
                timestamp=datetime.now(timezone.utc),
            )
        )

        # ── Step 3: 発送登録 (非クリティカル) ──────────
        if order.shipping_method is ShippingMethod.FOXPOST:
            self.dispatcher.submit(
                ShipmentRequest(
                    order_id=order.order_id,
                    pickup_point_id=order.foxpost_location_id,
                    recipient_name=order.customer_info.name,
                    recipient_email=order.customer_info.email,
                    recipient_phone=order.customer_info.phone,
                )
            )

        return {"success": True, "orderId": order.order_id, "message": SUCCESS_MESSAGE}

    async def _compensate(self, order: Order) -> None:
        try:
            await self.catalog.restore(order.items)
        except Exception:
            logger.exception("Failed to restore stock for order %s", order.order_id)

    async def create_payment_intent(
        self,
        amount: int | float,
        order: PaymentOrderData,
    ) -> PaymentIntent:
        """決済プロバイダに PaymentIntent を作成する。リトライはしない。"""
        try:
            intent = await self.payments.create_payment_intent(
                to_minor_units(amount),
                CURRENCY,
                {
                    "orderId": order.order_id,
                    "customerEmail": order.customer_info.email,
                    "customerName": order.customer_info.name,
                },
            )
        except Exception as e:
            logger.exception("Payment intent creation failed for order %s", order.order_id)
            raise PaymentFailed(str(e)) from e
        logger.info(
            "Payment intent %s created for order %s",
            intent.payment_intent_id,
            order.order_id,
        )
        return intent

    async def list_pickup_points(self) -> list[PickupPoint]:
        try:
            points = await self.shipping.list_pickup_points()
        except Exception:
            logger.warning("Pickup point listing failed, using fallback list", exc_info=True)
            points = []
        if not points:
            return [PickupPoint(**p) for p in FALLBACK_PICKUP_POINTS]
        return points
