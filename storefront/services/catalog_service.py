# storefront/services/catalog_service.py
from decimal import Decimal
from typing import Iterable, List

from storefront.domain.schemas import Category, Product, ProductDetail, Variant
from storefront.services.api_client import StorefrontClient
from storefront.utils.logging import get_logger

logger = get_logger(__name__)


def product_price(product: Product) -> Decimal:
    """Display price: explicit price_min, else cheapest variant, else flat price."""
    if product.price_min is not None:
        return product.price_min
    if product.variants:
        return min(v.price for v in product.variants)
    return product.price or Decimal("0")


def product_stock(product: Product) -> int:
    if product.total_stock is not None:
        return product.total_stock
    if product.variants:
        return sum(v.stock for v in product.variants)
    return product.stock or 0


def default_variant(detail: ProductDetail) -> Variant | None:
    """The variant preselected on the detail page: the first one, if any."""
    return detail.variants[0] if detail.variants else None


def current_price(detail: ProductDetail, selected: Variant | None = None) -> Decimal:
    if selected is None:
        selected = default_variant(detail)
    if selected is not None:
        return selected.price
    return product_price(detail.product)


def current_stock(detail: ProductDetail, selected: Variant | None = None) -> int:
    if selected is None:
        selected = default_variant(detail)
    if selected is not None:
        return selected.stock
    return product_stock(detail.product)


def filter_products(
    products: Iterable[Product],
    search: str | None = None,
    category_id: str | None = None,
) -> List[Product]:
    needle = (search or "").strip().lower()
    return [
        p
        for p in products
        if needle in (p.name or "").lower()
        and (not category_id or p.category_key == category_id)
    ]


class CatalogService:
    def __init__(self, client: StorefrontClient):
        self.client = client

    def list_products(self) -> List[Product]:
        data = self.client.list_products()
        raw = data.get("products", []) if isinstance(data, dict) else (data or [])
        return [Product.model_validate(p) for p in raw]

    def get_product(self, product_id: str) -> ProductDetail:
        data = self.client.fetch_product(product_id) or {}
        #some backends return the product itself with its variants inline
        if "product" not in data:
            data = {"product": data, "variants": data.get("variants") or [], "images": data.get("images") or []}
        detail = ProductDetail.model_validate(data)
        logger.info(f"Product {product_id} loaded with {len(detail.variants)} variant(s)")
        return detail

    def list_categories(self) -> List[Category]:
        return [Category.model_validate(c) for c in self.client.list_categories()]
