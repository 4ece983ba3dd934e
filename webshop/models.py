"""
Webshop: ドメインモデル

ストアフロントの JSON は camelCase。Python 側は snake_case で扱い、
入出力時にエイリアスで変換する。注文明細は旧フロントエンドの
{id, name, price, quantity} 形式も受け付ける。
"""

from enum import Enum
from typing import Any

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    PositiveInt,
    model_validator,
)
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Product(BaseModel):
    """カタログの商品。説明や画像などの追加メタデータはそのまま保持する。"""

    model_config = ConfigDict(extra="allow")

    id: int
    name: str
    price: int | float
    quantity: int


class PickupPoint(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: int | str
    name: str
    address: str


class ShippingMethod(str, Enum):
    FOXPOST = "foxpost"
    HOME = "home"


class OrderItem(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    product_id: int = Field(
        validation_alias=AliasChoices("productId", "id", "product_id"),
        serialization_alias="productId",
    )
    quantity: PositiveInt
    unit_price: int | float = Field(
        validation_alias=AliasChoices("unitPrice", "price", "unit_price"),
        serialization_alias="unitPrice",
    )
    name: str | None = None


class CustomerInfo(CamelModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        coerce_numbers_to_str=True,
    )

    name: str
    email: str
    phone: str
    zip_code: str | None = None
    city: str | None = None
    address: str | None = None
    notes: str | None = None


class Order(CamelModel):
    order_id: str = Field(min_length=1)
    items: list[OrderItem] = Field(min_length=1)
    customer_info: CustomerInfo
    shipping_method: ShippingMethod
    foxpost_location_id: int | str | None = None
    foxpost_location: str | None = None
    total: int | float
    payment_status: str | None = None

    @model_validator(mode="after")
    def _check_destination(self) -> "Order":
        if self.shipping_method is ShippingMethod.FOXPOST:
            if self.foxpost_location_id in (None, ""):
                raise ValueError("foxpostLocationId is required for foxpost shipping")
        else:
            missing = [
                to_camel(f)
                for f in ("zip_code", "city", "address")
                if not getattr(self.customer_info, f)
            ]
            if missing:
                raise ValueError(
                    f"home delivery requires customerInfo fields: {', '.join(missing)}"
                )
        return self

    @property
    def total_quantity(self) -> int:
        return sum(item.quantity for item in self.items)


class LedgerRow(BaseModel):
    """
    台帳の1行。フィールドの定義順がシートの列順と一致する。

    読み戻し時は列位置で値を割り当てるだけで検証しない（型はゆるい）。
    """

    model_config = ConfigDict(populate_by_name=True)

    order_id: Any = Field(None, alias="orderId")
    date: Any = None
    name: Any = None
    email: Any = None
    phone: Any = None
    shipping_method: Any = Field(None, alias="shippingMethod")
    foxpost_location: Any = Field(None, alias="foxpostLocation")
    address: Any = None
    items_summary: Any = Field(None, alias="items")
    total_quantity: Any = Field(None, alias="totalQuantity")
    total: Any = None
    payment_method: Any = Field(None, alias="paymentMethod")
    payment_status: Any = Field(None, alias="paymentStatus")
    notes: Any = None

    @classmethod
    def from_cells(cls, cells: tuple) -> "LedgerRow":
        values = dict(zip(LEDGER_FIELDS, cells))
        return cls.model_construct(**{f: values.get(f) for f in LEDGER_FIELDS})

    def cells(self) -> list:
        return [getattr(self, f) for f in LEDGER_FIELDS]


LEDGER_FIELDS: list[str] = list(LedgerRow.model_fields)


class PaymentCustomer(BaseModel):
    model_config = ConfigDict(extra="ignore")

    name: str = ""
    email: str = ""


class PaymentOrderData(CamelModel):
    """決済作成時点の注文情報。メタデータとして決済プロバイダに渡すだけ。"""

    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, extra="ignore"
    )

    order_id: str
    customer_info: PaymentCustomer = Field(default_factory=PaymentCustomer)
