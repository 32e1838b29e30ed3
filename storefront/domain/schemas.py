# storefront/domain/schemas.py
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, List

from pydantic import BaseModel, ConfigDict, Field, field_serializer


class WireModel(BaseModel):
    """Base for payloads coming from the backend (Mongo-style `_id` keys)."""

    model_config = ConfigDict(
        populate_by_name=True,
        extra="allow",
        coerce_numbers_to_str=True,
    )


def _json_number(value: Decimal) -> int | float:
    #backend expects plain numbers, not decimal strings
    if value == value.to_integral_value():
        return int(value)
    return float(value)


class PaymentMethod(str, Enum):
    BANK_TRANSFER = "bank_transfer"
    COD = "cod"


class CategoryRef(WireModel):
    id: str = Field(..., alias="_id")
    name: str | None = None


class Category(WireModel):
    id: str = Field(..., alias="_id")
    name: str


class ProductRef(WireModel):
    id: str = Field(..., alias="_id")
    name: str | None = None
    thumbnail: str | None = None
    thumbnail_url: str | None = None


class Variant(WireModel):
    """A purchasable configuration of a product (size/color) with its own price and stock."""

    id: str = Field(..., alias="_id")
    product_id: ProductRef | str | None = None
    sku: str | None = None
    price: Decimal = Field(Decimal("0"), ge=0)
    stock: int = Field(0, ge=0)
    attributes: Dict[str, Any] = Field(default_factory=dict)


class CartLine(WireModel):
    """One row of the cart as returned by GET /cart."""

    id: str = Field(..., alias="_id")
    #bare id string when the backend did not populate the reference
    variant_id: Variant | str | None = None
    quantity: int = Field(..., ge=1)
    is_checked: bool = False

    @property
    def variant(self) -> Variant | None:
        return self.variant_id if isinstance(self.variant_id, Variant) else None

    @property
    def variant_key(self) -> str | None:
        return self.variant.id if self.variant else None

    @property
    def unit_price(self) -> Decimal:
        return self.variant.price if self.variant else Decimal("0")

    @property
    def line_total(self) -> Decimal:
        return self.unit_price * self.quantity

    @property
    def stock(self) -> int | None:
        return self.variant.stock if self.variant else None

    @property
    def product_name(self) -> str:
        product = self.variant.product_id if self.variant else None
        if isinstance(product, ProductRef) and product.name:
            return product.name
        return "Product"


class ProductImage(WireModel):
    image_url: str
    is_primary: bool = False


class Product(WireModel):
    id: str = Field(..., alias="_id")
    name: str = ""
    short_description: str | None = None
    description: str | None = None
    thumbnail: str | None = None
    thumbnail_url: str | None = None
    category_id: CategoryRef | str | None = None
    price_min: Decimal | None = None
    price: Decimal | None = None
    total_stock: int | None = None
    stock: int | None = None
    variants: List[Variant] = Field(default_factory=list)

    @property
    def category_key(self) -> str | None:
        if isinstance(self.category_id, CategoryRef):
            return self.category_id.id
        return self.category_id


class ProductDetail(WireModel):
    product: Product
    variants: List[Variant] = Field(default_factory=list)
    images: List[ProductImage] = Field(default_factory=list)


class User(WireModel):
    id: str = Field(..., alias="_id")
    username: str | None = None
    email: str | None = None
    role: str = "customer"


class AuthPayload(WireModel):
    token: str | None = None
    user: User | None = None


class OrderItem(WireModel):
    id: str | None = Field(None, alias="_id")
    variant_id: Variant | None = None
    variant_attributes: Dict[str, Any] | None = None
    quantity: int = 1
    price: Decimal | None = None
    thumbnail: str | None = None


class Order(WireModel):
    id: str = Field(..., alias="_id")
    order_number: str | None = None
    status: str = "pending"
    payment_status: str | None = None
    payment_method: str | None = None
    shipping_address: str | None = None
    shipping_method: str | None = None
    shipping_cost: Decimal = Decimal("0")
    subtotal: Decimal | None = None
    total_amount: Decimal = Decimal("0")
    created_at: datetime | None = Field(None, alias="createdAt")
    snap_redirect_url: str | None = None


class OrderDetail(WireModel):
    order: Order
    items: List[OrderItem] = Field(default_factory=list)


class DashboardStats(WireModel):
    total_revenue: Decimal = Field(Decimal("0"), alias="totalRevenue")
    total_orders: int = Field(0, alias="totalOrders")
    total_products: int = Field(0, alias="totalProducts")
    total_users: int = Field(0, alias="totalUsers")
    recent_orders: List[Order] = Field(default_factory=list, alias="recentOrders")


class CheckoutRequest(BaseModel):
    """Body of POST /orders/checkout. Line items are never sent."""

    shipping_address: str = Field(..., min_length=1)
    payment_method: PaymentMethod
    shipping_method: str
    shipping_cost: Decimal = Field(..., ge=0)

    @field_serializer("shipping_cost")
    def _serialize_cost(self, value: Decimal):
        return _json_number(value)


class CheckoutSummary(BaseModel):
    lines: List[CartLine]
    item_count: int
    subtotal: Decimal
    shipping_cost: Decimal
    total: Decimal


class VariantForm(BaseModel):
    sku: str = ""
    price: Decimal | None = None
    stock: int | None = None
    attributes: Dict[str, Any] = Field(default_factory=lambda: {"size": "", "color": ""})

    @field_serializer("price")
    def _serialize_price(self, value: Decimal | None):
        return _json_number(value) if value is not None else None


class ProductForm(BaseModel):
    name: str = ""
    short_description: str = ""
    description: str = ""
    category_id: str = ""
    thumbnail_url: str = ""
    variants: List[VariantForm] = Field(default_factory=lambda: [VariantForm()])
