# storefront/domain/order_status.py
from enum import Enum


class OrderStatus(str, Enum):
    """Transitions happen on the backend only, the client just displays them."""

    PENDING = "pending"
    PAID = "paid"
    SHIPPED = "shipped"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


STATUS_COLORS = {
    OrderStatus.PENDING: "warning",
    OrderStatus.PAID: "accent",
    OrderStatus.SHIPPED: "primary",
    OrderStatus.COMPLETED: "accent",
    OrderStatus.CANCELLED: "error",
}
DEFAULT_STATUS_COLOR = "textSecondary"


def parse_status(value: str | None) -> OrderStatus | None:
    try:
        return OrderStatus((value or "").strip().lower())
    except ValueError:
        return None


def status_color(value: str | None) -> str:
    status = parse_status(value)
    return STATUS_COLORS.get(status, DEFAULT_STATUS_COLOR) if status else DEFAULT_STATUS_COLOR


def payment_status_color(value: str | None) -> str:
    return "accent" if (value or "").lower() == "paid" else "warning"
