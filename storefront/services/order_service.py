# storefront/services/order_service.py
from decimal import Decimal
from typing import List

from storefront.domain.cart import checked_count, checked_lines, derive_checkout_total
from storefront.domain.order_status import OrderStatus, parse_status
from storefront.domain.schemas import (
    CartLine,
    CheckoutRequest,
    CheckoutSummary,
    Order,
    OrderDetail,
    PaymentMethod,
)
from storefront.services.api_client import StorefrontClient, StorefrontError, UnauthorizedError
from storefront.services.cart_service import CartService
from storefront.services.notification_service import NotificationService
from storefront.utils.formatters import format_currency
from storefront.utils.settings import DEFAULT_SHIPPING_COST, DEFAULT_SHIPPING_METHOD
from storefront.utils.logging import get_logger

logger = get_logger(__name__)


class CheckoutValidationError(ValueError):
    pass


class OrderService:
    """
    Orders domain, kept apart from CartService.
    The backend builds the order from the lines it holds as checked,
    the client only sends shipping and payment data.
    """

    def __init__(
        self,
        client: StorefrontClient,
        cart: CartService,
        notifications: NotificationService,
        shipping_method: str | None = None,
        shipping_cost: Decimal | None = None,
    ):
        self.client = client
        self.cart = cart
        self.notifications = notifications
        self.shipping_method = shipping_method or DEFAULT_SHIPPING_METHOD
        self.shipping_cost = DEFAULT_SHIPPING_COST if shipping_cost is None else shipping_cost

    def prepare_checkout(self) -> CheckoutSummary:
        """
        Use Case: checkout summary.

        Refetches the cart right before building the summary so the lines
        shown are as close as possible to what the backend will order.
        """
        lines = self.cart.load()
        selected = checked_lines(lines)

        if not selected:
            raise CheckoutValidationError("No items selected for checkout")

        subtotal = derive_checkout_total(selected)
        return CheckoutSummary(
            lines=selected,
            item_count=checked_count(selected),
            subtotal=subtotal,
            shipping_cost=self.shipping_cost,
            total=subtotal + self.shipping_cost,
        )

    def checkout(
        self,
        lines: List[CartLine],
        shipping_address: str,
        payment_method: PaymentMethod | str = PaymentMethod.BANK_TRANSFER,
    ) -> Order:
        """
        Use Case: place an order.

        Local guards only (the backend validates again):
        - at least one checked line
        - non-blank shipping address
        - known payment method
        """
        try:
            request = self._validate_checkout(lines, shipping_address, payment_method)
        except CheckoutValidationError as e:
            self.notifications.warning("Warning", str(e))
            raise

        logger.info(
            f"Checkout of {checked_count(lines)} line(s), "
            f"client total {format_currency(derive_checkout_total(lines) + self.shipping_cost)}"
        )

        try:
            data = self.client.checkout(request.model_dump(mode="json"))
        except UnauthorizedError:
            raise
        except StorefrontError as e:
            logger.error(f"Checkout failed: {e}")
            self.notifications.error(
                "Failed", getattr(e, "message", None) or "Something went wrong while placing the order"
            )
            raise

        #some backends wrap the created order
        if isinstance(data, dict) and isinstance(data.get("order"), dict):
            data = data["order"]
        order = Order.model_validate(data)

        logger.info(f"Order {order.order_number or order.id} created with status {order.status}")
        self.notifications.success("Success", "Your order has been placed")
        return order

    def _validate_checkout(self, lines, shipping_address, payment_method) -> CheckoutRequest:
        if checked_count(lines) == 0:
            raise CheckoutValidationError("Select the items to check out first")

        address = (shipping_address or "").strip()
        if not address:
            raise CheckoutValidationError("Shipping address is required")

        try:
            method = PaymentMethod(payment_method)
        except ValueError:
            raise CheckoutValidationError(f"Unsupported payment method: {payment_method}")

        return CheckoutRequest(
            shipping_address=address,
            payment_method=method,
            shipping_method=self.shipping_method,
            shipping_cost=self.shipping_cost,
        )

    def list_orders(self) -> List[Order]:
        return [Order.model_validate(o) for o in self.client.list_orders()]

    def get_order(self, order_id: str) -> OrderDetail:
        return OrderDetail.model_validate(self.client.fetch_order(order_id))

    # admin
    def admin_list_orders(self, search: str | None = None) -> List[Order]:
        data = self.client.list_all_orders()
        raw = data.get("orders", []) if isinstance(data, dict) else (data or [])
        orders = [Order.model_validate(o) for o in raw]

        if not search:
            return orders

        needle = search.strip().lower()
        return [
            o
            for o in orders
            if needle in (o.order_number or "").lower()
            or needle in (o.shipping_address or "").lower()
        ]

    def admin_update_status(self, order_id: str, status: OrderStatus | str) -> OrderStatus:
        parsed = parse_status(status.value if isinstance(status, OrderStatus) else status)
        if parsed is None:
            raise ValueError(f"Unknown order status: {status}")

        try:
            self.client.update_order_status(order_id, parsed.value)
        except UnauthorizedError:
            raise
        except StorefrontError as e:
            self.notifications.error("Error", getattr(e, "message", None) or "Failed to update status")
            raise

        logger.info(f"Order {order_id} status set to {parsed.value}")
        self.notifications.success("Success", "Order status updated")
        return parsed
