"""
決済ゲートウェイ

PaymentIntent を作成し、フロントエンドが決済を完了するための
client secret を返す。本番は Stripe の REST API を httpx で直接呼ぶ。
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from uuid import uuid4

import httpx


@dataclass(frozen=True)
class PaymentIntent:
    client_secret: str
    payment_intent_id: str


class PaymentGateway(ABC):
    @abstractmethod
    async def create_payment_intent(
        self,
        amount: int,
        currency: str,
        metadata: dict[str, str],
    ) -> PaymentIntent:
        """amount は最小通貨単位の整数。失敗時は例外を投げる。"""
        ...


class StripeGateway(PaymentGateway):
    def __init__(
        self,
        secret_key: str,
        api_url: str = "https://api.stripe.com/v1",
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.secret_key = secret_key
        self.api_url = api_url.rstrip("/")
        self.timeout = timeout
        self._transport = transport

    async def create_payment_intent(
        self,
        amount: int,
        currency: str,
        metadata: dict[str, str],
    ) -> PaymentIntent:
        form = {
            "amount": str(amount),
            "currency": currency,
            "automatic_payment_methods[enabled]": "true",
        }
        for key, value in metadata.items():
            form[f"metadata[{key}]"] = value

        async with httpx.AsyncClient(
            timeout=self.timeout, transport=self._transport
        ) as client:
            resp = await client.post(
                f"{self.api_url}/payment_intents",
                data=form,
                headers={"Authorization": f"Bearer {self.secret_key}"},
            )
            resp.raise_for_status()
            body = resp.json()

        return PaymentIntent(
            client_secret=body["client_secret"],
            payment_intent_id=body["id"],
        )


class FakePaymentGateway(PaymentGateway):
    """外部呼び出しをしない決済ゲートウェイ。成功/失敗を実行時に切り替えられる。"""

    def __init__(self) -> None:
        self.should_succeed = True
        self.failure_reason = "Card declined"
        self.calls: list[dict] = []

    def configure(self, should_succeed: bool, failure_reason: str = "Card declined") -> None:
        self.should_succeed = should_succeed
        self.failure_reason = failure_reason

    async def create_payment_intent(
        self,
        amount: int,
        currency: str,
        metadata: dict[str, str],
    ) -> PaymentIntent:
        self.calls.append(
            {"amount": amount, "currency": currency, "metadata": dict(metadata)}
        )
        if not self.should_succeed:
            raise RuntimeError(self.failure_reason)
        intent_id = f"pi_fake_{uuid4().hex[:16]}"
        return PaymentIntent(
            client_secret=f"{intent_id}_secret_{uuid4().hex[:8]}",
            payment_intent_id=intent_id,
        )
