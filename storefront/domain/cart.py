# storefront/domain/cart.py
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, Iterable, List

from storefront.domain.schemas import CartLine


def reconcile(raw_lines: Iterable[CartLine | Dict[str, Any]]) -> List[CartLine]:
    """
    Merge server lines that point at the same variant.

    - lines without a variant are kept as they are (nothing to merge on)
    - a repeated variant adds its quantity to the first occurrence
    - first-occurrence order is kept, the input is never mutated
    """
    merged: List[CartLine] = []
    positions: Dict[str, int] = {}

    for raw in raw_lines:
        line = raw if isinstance(raw, CartLine) else CartLine.model_validate(raw)
        key = line.variant_key

        if key is None:
            merged.append(line)
            continue

        if key in positions:
            idx = positions[key]
            first = merged[idx]
            merged[idx] = first.model_copy(update={"quantity": first.quantity + line.quantity})
        else:
            positions[key] = len(merged)
            merged.append(line)

    return merged


def checked_lines(lines: Iterable[CartLine]) -> List[CartLine]:
    return [line for line in lines if line.is_checked]


def derive_checkout_total(lines: Iterable[CartLine]) -> Decimal:
    return sum((line.line_total for line in lines if line.is_checked), Decimal("0"))


def checked_count(lines: Iterable[CartLine]) -> int:
    return sum(1 for line in lines if line.is_checked)


class MutationKind(str, Enum):
    INCREASE = "increase"
    DECREASE = "decrease"
    REMOVE = "remove"
    TOGGLE = "toggle"


class MutationOutcome(str, Enum):
    APPLIED = "applied"  # optimistic change confirmed by the server
    REJECTED = "rejected"  # refused by a local guard, nothing sent
    CANCELLED = "cancelled"  # user declined the confirmation
    ROLLED_BACK = "rolled_back"  # server refused, state refetched


class LineState(str, Enum):
    SYNCED = "synced"
    PENDING = "pending"
    REVERTING = "reverting"


@dataclass
class LineStatus:
    """
    Per-line mutation state:
    SYNCED -> PENDING(kind) -> SYNCED on ack
    SYNCED -> PENDING(kind) -> REVERTING -> SYNCED on failure
    """

    state: LineState = LineState.SYNCED
    pending: MutationKind | None = None

    def begin(self, kind: MutationKind):
        if self.state != LineState.SYNCED:
            raise RuntimeError(f"Line is busy ({self.state.value})")
        self.state = LineState.PENDING
        self.pending = kind

    def ack(self):
        self._expect(LineState.PENDING)
        self.state = LineState.SYNCED
        self.pending = None

    def fail(self):
        self._expect(LineState.PENDING)
        self.state = LineState.REVERTING

    def settle(self):
        self._expect(LineState.REVERTING)
        self.state = LineState.SYNCED
        self.pending = None

    def reset(self):
        self.state = LineState.SYNCED
        self.pending = None

    def _expect(self, state: LineState):
        if self.state != state:
            raise RuntimeError(f"Invalid line transition from {self.state.value}, expected {state.value}")
