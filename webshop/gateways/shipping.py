"""
配送ゲートウェイ (FoxPost パーセルロッカー)

受け取りポイント（ロッカー）一覧の取得と、注文の発送登録を行う。
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from uuid import uuid4

import httpx
from pydantic import TypeAdapter, ValidationError

from ..errors import ShippingUnavailable
from ..models import PickupPoint

_pickup_points = TypeAdapter(list[PickupPoint])


@dataclass(frozen=True)
class ShipmentRequest:
    order_id: str
    pickup_point_id: int | str
    recipient_name: str
    recipient_email: str
    recipient_phone: str


class ShippingGateway(ABC):
    @abstractmethod
    async def list_pickup_points(self) -> list[PickupPoint]:
        ...

    @abstractmethod
    async def register_shipment(self, request: ShipmentRequest) -> dict:
        """発送を登録し、プロバイダの応答（追跡番号など）を返す。"""
        ...


class FoxpostGateway(ShippingGateway):
    def __init__(
        self,
        api_key: str,
        api_url: str = "https://api.foxpost.hu/v1",
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.api_key = api_key
        self.api_url = api_url.rstrip("/")
        self.timeout = timeout
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.api_url,
            timeout=self.timeout,
            transport=self._transport,
            headers={
                "Authorization": f"Bearer {self.api_key}",
                "Content-Type": "application/json",
            },
        )

    async def list_pickup_points(self) -> list[PickupPoint]:
        try:
            async with self._client() as client:
                resp = await client.get("/automata")
                resp.raise_for_status()
                return _pickup_points.validate_python(resp.json())
        except (httpx.HTTPError, ValueError, ValidationError) as e:
            raise ShippingUnavailable(f"FoxPost automata listing failed: {e}") from e

    async def register_shipment(self, request: ShipmentRequest) -> dict:
        payload = {
            "recipient": {
                "name": request.recipient_name,
                "email": request.recipient_email,
                "phone": request.recipient_phone,
            },
            "delivery_point_id": request.pickup_point_id,
            "cod_amount": 0,
            "package_weight": 1,
            "order_number": request.order_id,
        }
        try:
            async with self._client() as client:
                resp = await client.post("/shipment", json=payload)
                resp.raise_for_status()
                return resp.json()
        except (httpx.HTTPError, ValueError) as e:
            raise ShippingUnavailable(
                f"FoxPost shipment for order {request.order_id} failed: {e}"
            ) from e


class FakeShippingGateway(ShippingGateway):
    """外部呼び出しをしない配送ゲートウェイ。成功/失敗を実行時に切り替えられる。"""

    def __init__(self, pickup_points: list[PickupPoint] | None = None) -> None:
        self.should_succeed = True
        self.failure_reason = "Carrier unavailable"
        self.pickup_points = pickup_points or [
            PickupPoint(id=101, name="Fake automata", address="1000 Budapest, Teszt utca 1.")
        ]
        self.shipments: list[ShipmentRequest] = []

    def configure(self, should_succeed: bool = True, failure_reason: str = "Carrier unavailable") -> None:
        self.should_succeed = should_succeed
        self.failure_reason = failure_reason

    async def list_pickup_points(self) -> list[PickupPoint]:
        if not self.should_succeed:
            raise ShippingUnavailable(self.failure_reason)
        return list(self.pickup_points)

    async def register_shipment(self, request: ShipmentRequest) -> dict:
        if not self.should_succeed:
            raise ShippingUnavailable(self.failure_reason)
        self.shipments.append(request)
        return {
            "order_number": request.order_id,
            "tracking_number": f"FAKE-{uuid4().hex[:12].upper()}",
        }
