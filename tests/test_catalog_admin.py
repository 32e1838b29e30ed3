import json
from decimal import Decimal
from unittest.mock import MagicMock

import pytest

from storefront.domain.schemas import Product, ProductDetail, ProductForm, VariantForm
from storefront.services.admin_service import AdminService
from storefront.services.api_client import ApiError, StorefrontClient
from storefront.services.catalog_service import (
    CatalogService,
    current_price,
    current_stock,
    default_variant,
    filter_products,
    product_price,
    product_stock,
)


def _product(**overrides) -> Product:
    data = {"_id": "p1", "name": "T-Shirt Premium", "category_id": {"_id": "c1", "name": "T-Shirts"}}
    data.update(overrides)
    return Product.model_validate(data)


@pytest.fixture()
def admin(api, notifications, confirmer) -> AdminService:
    return AdminService(api, notifications, confirm=confirmer)


def test_product_price_prefers_price_min():
    product = _product(price_min=9000, variants=[{"_id": "v1", "price": 12000, "stock": 1}], price=15000)

    assert product_price(product) == Decimal("9000")


def test_product_price_falls_back_to_cheapest_variant_then_flat_price():
    with_variants = _product(
        variants=[{"_id": "v1", "price": 12000, "stock": 1}, {"_id": "v2", "price": 8000, "stock": 3}]
    )

    assert product_price(with_variants) == Decimal("8000")
    assert product_price(_product(price=15000)) == Decimal("15000")
    assert product_price(_product()) == Decimal("0")


def test_product_stock_derivation():
    assert product_stock(_product(total_stock=4)) == 4
    assert product_stock(_product(variants=[{"_id": "v1", "price": 1, "stock": 2}, {"_id": "v2", "price": 1, "stock": 3}])) == 5
    assert product_stock(_product(stock=9)) == 9
    assert product_stock(_product()) == 0


def test_first_variant_is_preselected_on_detail_page():
    detail = ProductDetail.model_validate(
        {
            "product": {"_id": "p1", "name": "T-Shirt Premium"},
            "variants": [{"_id": "v1", "price": 10000, "stock": 5}, {"_id": "v2", "price": 12000, "stock": 2}],
        }
    )

    assert current_price(detail) == Decimal("10000")
    assert current_stock(detail) == 5
    assert current_price(detail, detail.variants[1]) == Decimal("12000")
    assert current_stock(detail, detail.variants[1]) == 2
    assert default_variant(detail).id == "v1"


def test_detail_without_variants_uses_product_aggregates():
    detail = ProductDetail.model_validate({"product": {"_id": "p1", "price_min": 9000, "total_stock": 3}})

    assert default_variant(detail) is None
    assert current_price(detail) == Decimal("9000")
    assert current_stock(detail) == 3


def test_get_product_accepts_nested_or_flat_payload():
    client = MagicMock(spec=StorefrontClient)
    catalog = CatalogService(client)
    variants = [{"_id": "v1", "price": 10000, "stock": 5}, {"_id": "v2", "price": 12000, "stock": 2}]

    client.fetch_product.return_value = {"product": {"_id": "p1", "name": "T-Shirt Premium"}, "variants": variants}
    nested = catalog.get_product("p1")

    client.fetch_product.return_value = {"_id": "p1", "name": "T-Shirt Premium", "variants": variants}
    flat = catalog.get_product("p1")

    assert flat.product.id == nested.product.id == "p1"
    assert [v.id for v in flat.variants] == [v.id for v in nested.variants] == ["v1", "v2"]
    assert current_price(flat) == Decimal("10000")
    assert current_stock(flat) == 5


def test_filter_products_by_name_and_category():
    products = [
        _product(),
        _product(_id="p2", name="Running Shoes", category_id="c2"),
        _product(_id="p3", name="Shirt Dress", category_id="c2"),
    ]

    assert [p.id for p in filter_products(products, search="  SHIRT ")] == ["p1", "p3"]
    assert [p.id for p in filter_products(products, category_id="c2")] == ["p2", "p3"]
    assert [p.id for p in filter_products(products, search="shirt", category_id="c1")] == ["p1"]
    assert len(filter_products(products)) == 3


def test_list_products_accepts_wrapped_or_bare_list():
    client = MagicMock(spec=StorefrontClient)
    catalog = CatalogService(client)

    client.list_products.return_value = {"products": [{"_id": "p1", "name": "A"}]}
    assert [p.id for p in catalog.list_products()] == ["p1"]

    client.list_products.return_value = [{"_id": "p2", "name": "B"}]
    assert [p.id for p in catalog.list_products()] == ["p2"]


def test_blank_category_name_makes_no_call(admin, api):
    with pytest.raises(ValueError):
        admin.save_category("   ")

    api.create_category.assert_not_called()
    api.update_category.assert_not_called()


def test_save_category_creates_or_updates(admin, api, notifications):
    assert admin.save_category(" Bags ") is True
    api.create_category.assert_called_once_with("Bags")

    assert admin.save_category("Bags", "c9") is True
    api.update_category.assert_called_once_with("c9", "Bags")
    assert [n.message for n in notifications.history] == ["Category added", "Category updated"]


def test_declined_delete_makes_no_call(admin, api, confirmer):
    confirmer.answer = False

    assert admin.delete_category("c1", "T-Shirts") is False
    assert admin.delete_product("p1", "T-Shirt Premium") is False

    api.delete_category.assert_not_called()
    api.delete_product.assert_not_called()
    assert len(confirmer.asked) == 2


def test_admin_without_confirm_callable_declines(api, notifications):
    admin = AdminService(api, notifications)

    assert admin.delete_product("p1") is False
    api.delete_product.assert_not_called()


def test_delete_failure_is_notified(admin, api, notifications):
    api.delete_category.side_effect = ApiError(400, "Category still has products")

    assert admin.delete_category("c1") is False
    assert [n.message for n in notifications.errors()] == ["Category still has products"]


@pytest.mark.parametrize(
    "form",
    [
        ProductForm(name="", category_id="c1", variants=[VariantForm(price=Decimal("1"), stock=1)]),
        ProductForm(name="Tote", category_id="", variants=[VariantForm(price=Decimal("1"), stock=1)]),
        ProductForm(name="Tote", category_id="c1", variants=[]),
        ProductForm(name="Tote", category_id="c1", variants=[VariantForm(price=None, stock=1)]),
        ProductForm(name="Tote", category_id="c1", variants=[VariantForm(price=Decimal("1"), stock=None)]),
    ],
)
def test_incomplete_product_form_makes_no_call(admin, api, form):
    with pytest.raises(ValueError):
        admin.save_product(form)

    api.create_product.assert_not_called()


def test_product_variants_are_sent_as_json_string(admin, api):
    form = ProductForm(
        name="Tote",
        category_id="c1",
        variants=[VariantForm(sku="TB-1", price=Decimal("75000"), stock=4, attributes={"color": "navy"})],
    )

    assert admin.save_product(form, "p1") is True

    product_id, payload = api.update_product.call_args.args
    assert product_id == "p1"
    assert payload["name"] == "Tote"
    variants = json.loads(payload["variants"])
    assert variants[0]["sku"] == "TB-1"
    assert variants[0]["stock"] == 4
    assert variants[0]["attributes"] == {"color": "navy"}
