# storefront/utils/formatters.py
from decimal import Decimal, ROUND_HALF_UP


def format_currency(amount: Decimal | int | float | None) -> str:
    """Rupiah without minor units, id-ID grouping: 20000 -> 'Rp 20.000'."""
    value = Decimal(str(amount or 0)).quantize(Decimal("1"), rounding=ROUND_HALF_UP)
    sign = "-" if value < 0 else ""
    grouped = f"{abs(value):,}".replace(",", ".")
    return f"{sign}Rp {grouped}"


def selected_label(count: int) -> str:
    return f"{count} item(s) selected"
