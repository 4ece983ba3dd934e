"""
Webshop: 発送登録ディスパッチャ

発送登録は注文確定に必須ではない後続処理。注文確定パスはキューに
ShipmentRequest を積むだけで、バックグラウンドのワーカーが配送
ゲートウェイを呼ぶ。失敗はログに残すだけで、確定済みの注文には
一切影響しない。

┌──────────────┐  submit   ┌───────┐  worker  ┌──────────────────┐
│ Fulfillment  │ ────────▶ │ Queue │ ───────▶ │ Shipping Gateway │
│ Pipeline     │           └───────┘          │ (FoxPost)        │
└──────────────┘                              └──────────────────┘
"""

import asyncio
import logging

from .gateways.shipping import ShipmentRequest, ShippingGateway

logger = logging.getLogger(__name__)


class ShipmentDispatcher:
    def __init__(self, gateway: ShippingGateway) -> None:
        self.gateway = gateway
        self._queue: asyncio.Queue[ShipmentRequest] = asyncio.Queue()
        self._worker: asyncio.Task | None = None

    @property
    def running(self) -> bool:
        return self._worker is not None and not self._worker.done()

    async def start(self) -> None:
        if not self.running:
            self._worker = asyncio.create_task(self._run())

    async def stop(self) -> None:
        """キューに残っている発送登録を処理しきってからワーカーを止める。"""
        if self._worker is None:
            return
        await self._queue.join()
        self._worker.cancel()
        try:
            await self._worker
        except asyncio.CancelledError:
            pass
        self._worker = None

    def submit(self, request: ShipmentRequest) -> None:
        self._queue.put_nowait(request)
        logger.info("Shipment for order %s queued", request.order_id)

    async def join(self) -> None:
        """キューが空になるまで待つ。"""
        await self._queue.join()

    async def _run(self) -> None:
        while True:
            request = await self._queue.get()
            try:
                result = await self.gateway.register_shipment(request)
                logger.info(
                    "Shipment registered for order %s: %s", request.order_id, result
                )
            except Exception:
                logger.exception(
                    "Shipment registration failed for order %s (non-critical)",
                    request.order_id,
                )
            finally:
                self._queue.task_done()
