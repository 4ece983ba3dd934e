"""
Webshop: 例外定義

API クライアントが分岐できるよう、各例外は機械可読な kind と
HTTP ステータスを持つ。メッセージはストアフロント向けの固定文言。
"""


class ShopError(Exception):
    kind = "internal_error"
    status_code = 500
    message = "Belső hiba"

    def __init__(self, detail: str = "") -> None:
        super().__init__(detail or self.message)
        self.detail = detail

    def to_response(self) -> dict:
        return {"error": self.message, "kind": self.kind}


class StorageUnavailable(ShopError):
    """カタログ/台帳ファイルの読み書きに失敗した"""
    kind = "storage_unavailable"
    message = "Hiba a rendelés véglegesítésekor"


class InsufficientStock(ShopError):
    """在庫不足（在庫をマイナスにする注文は拒否する）"""
    kind = "insufficient_stock"
    status_code = 409
    message = "Nincs elegendő készlet"

    def __init__(self, product_id: int, requested: int, available: int) -> None:
        super().__init__(
            f"Insufficient stock: product={product_id}, "
            f"requested={requested}, available={available}"
        )
        self.product_id = product_id
        self.requested = requested
        self.available = available

    def to_response(self) -> dict:
        return {
            **super().to_response(),
            "productId": self.product_id,
            "requested": self.requested,
            "available": self.available,
        }


class DuplicateOrder(ShopError):
    """同じ orderId の注文がすでに台帳に存在する"""
    kind = "duplicate_order"
    status_code = 409
    message = "A rendelés már rögzítve van"

    def __init__(self, order_id: str) -> None:
        super().__init__(f"Order already recorded: {order_id}")
        self.order_id = order_id

    def to_response(self) -> dict:
        return {**super().to_response(), "orderId": self.order_id}


class PaymentFailed(ShopError):
    kind = "payment_failed"
    message = "Hiba a fizetés létrehozásakor"


class ShippingUnavailable(ShopError):
    """配送プロバイダの呼び出しに失敗した（呼び出し側で握りつぶされる）"""
    kind = "shipping_unavailable"
    status_code = 502
    message = "FoxPost API hiba"


class OrderFailed(ShopError):
    """注文確定中の想定外のエラー"""
    kind = "order_failed"
    message = "Hiba a rendelés véglegesítésekor"
