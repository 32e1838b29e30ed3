from decimal import Decimal
from unittest.mock import MagicMock

import pytest

from storefront.domain.cart import reconcile
from storefront.domain.order_status import OrderStatus, payment_status_color, status_color
from storefront.services.api_client import ApiError, StorefrontClient
from storefront.services.order_service import CheckoutValidationError, OrderService
from storefront.utils.formatters import format_currency, selected_label


@pytest.fixture()
def orders(api, cart, notifications) -> OrderService:
    return OrderService(api, cart, notifications, shipping_method="Standard", shipping_cost=Decimal("15000"))


def _order(**overrides) -> dict:
    data = {
        "_id": "o1",
        "order_number": "ORD-20260101-0001",
        "status": "pending",
        "payment_status": "pending",
        "shipping_cost": 15000,
        "subtotal": 20000,
        "total_amount": 35000,
        "createdAt": "2026-01-01T10:00:00+00:00",
    }
    data.update(overrides)
    return data


def test_checkout_sends_only_shipping_and_payment(orders, api, line, notifications):
    api.checkout.return_value = _order()
    lines = reconcile([line("l1", price=10000, qty=2, checked=True), line("l2", "B", checked=False)])

    order = orders.checkout(lines, "  Jl. Merdeka 1, Jakarta  ", "cod")

    api.checkout.assert_called_once_with(
        {
            "shipping_address": "Jl. Merdeka 1, Jakarta",
            "payment_method": "cod",
            "shipping_method": "Standard",
            "shipping_cost": 15000,
        }
    )
    assert order.status == "pending"
    assert order.order_number == "ORD-20260101-0001"
    assert order.total_amount == Decimal("35000")
    assert notifications.history[-1].level == "success"


@pytest.mark.parametrize("address", ["", "   ", "\n\t"])
def test_checkout_with_blank_address_makes_no_call(orders, api, line, notifications, address):
    lines = reconcile([line("l1", checked=True)])

    with pytest.raises(CheckoutValidationError):
        orders.checkout(lines, address, "bank_transfer")

    api.checkout.assert_not_called()
    assert notifications.history[-1].level == "warning"


def test_checkout_without_checked_lines_makes_no_call(orders, api, line):
    lines = reconcile([line("l1", checked=False), line("l2", "B", checked=False)])

    with pytest.raises(CheckoutValidationError):
        orders.checkout(lines, "Jl. Merdeka 1", "bank_transfer")

    api.checkout.assert_not_called()


def test_checkout_with_unknown_payment_method_makes_no_call(orders, api, line):
    with pytest.raises(CheckoutValidationError):
        orders.checkout(reconcile([line("l1")]), "Jl. Merdeka 1", "crypto")

    api.checkout.assert_not_called()


def test_checkout_server_rejection_is_notified_and_raised(orders, api, line, notifications):
    api.checkout.side_effect = ApiError(400, "No checked items in cart")

    with pytest.raises(ApiError):
        orders.checkout(reconcile([line("l1")]), "Jl. Merdeka 1", "cod")

    assert [n.message for n in notifications.errors()] == ["No checked items in cart"]


def test_checkout_does_not_clear_local_cart(orders, api, cart, line):
    api.list_cart.return_value = [line("l1", checked=True)]
    cart.load()
    api.checkout.return_value = _order()

    orders.checkout(cart.lines, "Jl. Merdeka 1", "cod")

    assert [l.id for l in cart.lines] == ["l1"]


def test_prepare_checkout_refetches_and_sums_checked_lines(orders, api, cart, line):
    api.list_cart.return_value = [
        line("l1", "A", price=10000, qty=1, checked=True),
        line("l2", "A", price=10000, qty=1, checked=True),
        line("l3", "B", price=5000, qty=1, checked=False),
    ]

    summary = orders.prepare_checkout()

    api.list_cart.assert_called_once()
    assert [l.id for l in summary.lines] == ["l1"]
    assert summary.item_count == 1
    assert summary.subtotal == Decimal("20000")
    assert summary.total == Decimal("35000")


def test_prepare_checkout_with_nothing_checked(orders, api, line):
    api.list_cart.return_value = [line("l1", checked=False)]

    with pytest.raises(CheckoutValidationError):
        orders.prepare_checkout()


def test_list_and_get_orders(orders, api):
    api.list_orders.return_value = [_order(), _order(_id="o2", status="shipped")]
    api.fetch_order.return_value = {
        "order": _order(),
        "items": [{"_id": "i1", "quantity": 2, "price": 10000, "variant_attributes": {"size": "M"}}],
    }

    assert [o.status for o in orders.list_orders()] == ["pending", "shipped"]
    detail = orders.get_order("o1")
    assert detail.order.id == "o1"
    assert detail.items[0].quantity == 2


def test_admin_list_orders_accepts_wrapped_or_bare_list(orders, api):
    api.list_all_orders.return_value = {"orders": [_order(), _order(_id="o2", shipping_address="Bandung")]}
    assert len(orders.admin_list_orders()) == 2
    assert [o.id for o in orders.admin_list_orders("bandung")] == ["o2"]

    api.list_all_orders.return_value = [_order()]
    assert len(orders.admin_list_orders()) == 1


def test_admin_update_status_validates_locally(orders, api):
    with pytest.raises(ValueError):
        orders.admin_update_status("o1", "refunded")
    api.update_order_status.assert_not_called()

    assert orders.admin_update_status("o1", "Shipped") == OrderStatus.SHIPPED
    api.update_order_status.assert_called_once_with("o1", "shipped")


@pytest.mark.parametrize(
    "status,color",
    [
        ("pending", "warning"),
        ("paid", "accent"),
        ("shipped", "primary"),
        ("completed", "accent"),
        ("cancelled", "error"),
        ("CANCELLED", "error"),
        ("refunded", "textSecondary"),
        (None, "textSecondary"),
    ],
)
def test_status_color(status, color):
    assert status_color(status) == color


def test_payment_status_color():
    assert payment_status_color("paid") == "accent"
    assert payment_status_color("PAID") == "accent"
    assert payment_status_color("pending") == "warning"
    assert payment_status_color(None) == "warning"


def test_format_currency():
    assert format_currency(Decimal("20000")) == "Rp 20.000"
    assert format_currency(None) == "Rp 0"
    assert format_currency(1250000) == "Rp 1.250.000"
    assert selected_label(1) == "1 item(s) selected"


def test_order_service_uses_configured_defaults(cart, notifications):
    service = OrderService(MagicMock(spec=StorefrontClient), cart, notifications)

    assert service.shipping_method == "Standard"
    assert service.shipping_cost == Decimal("15000")
