# storefront/services/cart_service.py
import threading
from contextlib import contextmanager
from decimal import Decimal
from typing import Any, Callable, Dict, Iterator, List

from pydantic import ValidationError

from storefront.domain.cart import (
    LineState,
    LineStatus,
    MutationKind,
    MutationOutcome,
    checked_count,
    derive_checkout_total,
    reconcile,
)
from storefront.domain.schemas import CartLine, Variant
from storefront.services.api_client import StorefrontClient, StorefrontError, UnauthorizedError
from storefront.services.notification_service import NotificationService
from storefront.services.session_service import SessionService
from storefront.utils.logging import get_logger

logger = get_logger(__name__)

ConfirmFn = Callable[[str, str], bool]


class LoginRequiredError(PermissionError):
    pass


def _decline(title: str, message: str) -> bool:
    return False


class CartService:
    """
    Client-side view of the cart held by the backend.

    -load(): fetch GET /cart and reconcile duplicated lines
    -increase/decrease/remove/toggle: optimistic local change, then the call;
     a failed call throws the local change away, refetches and notifies once
    -mutations on the same line are serialized, the next one is evaluated
     against the state the previous one left behind
    """

    def __init__(
        self,
        client: StorefrontClient,
        session: SessionService,
        notifications: NotificationService,
        confirm: ConfirmFn | None = None,
    ):
        self.client = client
        self.session = session
        self.notifications = notifications
        self.confirm = confirm or _decline

        self._lines: List[CartLine] = []
        self._status: Dict[str, LineStatus] = {}
        self._lock = threading.RLock()
        self._line_locks: Dict[str, threading.RLock] = {}
        self._lock_users: Dict[str, int] = {}

        self._unsubscribe = session.subscribe(self._on_unauthorized)

    def close(self):
        self._unsubscribe()

    # query
    @property
    def lines(self) -> List[CartLine]:
        with self._lock:
            return list(self._lines)

    def get_line(self, line_id: str) -> CartLine | None:
        with self._lock:
            for line in self._lines:
                if line.id == line_id:
                    return line
        return None

    def line_state(self, line_id: str) -> LineState:
        with self._lock:
            status = self._status.get(line_id)
        return status.state if status else LineState.SYNCED

    def total(self) -> Decimal:
        return derive_checkout_total(self.lines)

    def checked_count(self) -> int:
        return checked_count(self.lines)

    def can_increase(self, line_id: str) -> bool:
        line = self.get_line(line_id)
        return line is not None and self._below_stock(line)

    def load(self) -> List[CartLine]:
        if not self.session.is_logged_in:
            with self._lock:
                self._lines = []
            return []

        raw = self.client.list_cart()
        lines = reconcile(raw)

        with self._lock:
            self._lines = lines
            ids = {line.id for line in lines}
            #keep in-flight state machines, drop the ones for lines that are gone
            self._status = {
                line_id: status
                for line_id, status in self._status.items()
                if line_id in ids or status.state != LineState.SYNCED
            }
            self._line_locks = {
                line_id: lock
                for line_id, lock in self._line_locks.items()
                if line_id in ids or line_id in self._lock_users
            }

        logger.info(f"Cart loaded: {len(raw)} raw lines reconciled into {len(lines)}")
        return list(lines)

    # commands
    def increase_quantity(self, line_id: str) -> MutationOutcome:
        self._require_session()

        with self._line_lock(line_id):
            line = self._require_line(line_id)

            if not self._below_stock(line):
                logger.info(f"Increase refused for line {line_id}: stock ceiling {line.stock} reached")
                return MutationOutcome.REJECTED

            return self._run_mutation(
                line_id,
                MutationKind.INCREASE,
                lambda l: l.model_copy(update={"quantity": l.quantity + 1}),
                lambda: self.client.increase_quantity(line_id),
                "Failed to increase quantity",
            )

    def decrease_quantity(self, line_id: str) -> MutationOutcome:
        self._require_session()

        with self._line_lock(line_id):
            line = self._require_line(line_id)

            #quantity 0 is not a valid line, going below 1 means removing it
            if line.quantity <= 1:
                return self.remove_line(line_id)

            return self._run_mutation(
                line_id,
                MutationKind.DECREASE,
                lambda l: l.model_copy(update={"quantity": l.quantity - 1}),
                lambda: self.client.decrease_quantity(line_id),
                "Failed to decrease quantity",
            )

    def remove_line(self, line_id: str) -> MutationOutcome:
        self._require_session()

        with self._line_lock(line_id):
            self._require_line(line_id)

            if not self.confirm("Remove item", "Remove this item from your cart?"):
                logger.info(f"Removal of line {line_id} cancelled by user")
                return MutationOutcome.CANCELLED

            return self._run_mutation(
                line_id,
                MutationKind.REMOVE,
                lambda l: None,
                lambda: self.client.remove_line(line_id),
                "Failed to remove item",
            )

    def toggle_checked(self, line_id: str) -> MutationOutcome:
        self._require_session()

        with self._line_lock(line_id):
            self._require_line(line_id)

            return self._run_mutation(
                line_id,
                MutationKind.TOGGLE,
                lambda l: l.model_copy(update={"is_checked": not l.is_checked}),
                lambda: self.client.toggle_checked(line_id),
                "Failed to update item selection",
            )

    def add_to_cart(self, variant: Variant | None, quantity: int = 1) -> bool:
        self._require_session()

        if variant is None:
            raise ValueError("Select a variant first")
        if quantity < 1:
            raise ValueError("Quantity must be at least 1")
        if quantity > variant.stock:
            raise ValueError(f"Only {variant.stock} left in stock")

        try:
            self.client.add_to_cart(variant.id, quantity)
        except UnauthorizedError:
            return False
        except StorefrontError as e:
            self.notifications.error("Error", getattr(e, "message", None) or "Failed to add to cart")
            return False

        logger.info(f"Added variant {variant.id} x{quantity} to cart")
        self.notifications.success("Success", "Product added to cart")
        return True

    # internals
    def _run_mutation(
        self,
        line_id: str,
        kind: MutationKind,
        apply: Callable[[CartLine], CartLine | None],
        call: Callable[[], Any],
        failure_message: str,
    ) -> MutationOutcome:
        status = self._status_for(line_id)
        status.begin(kind)

        try:
            index, snapshot = self._apply_local(line_id, apply)
            logger.info(f"Optimistic {kind.value} on line {line_id}")

            try:
                call()
            except UnauthorizedError:
                #session channel already cleared the cart, nothing to refetch
                status.fail()
                status.settle()
                return MutationOutcome.ROLLED_BACK
            except StorefrontError as e:
                status.fail()
                logger.warning(f"{kind.value} on line {line_id} failed, rolling back: {e}")
                self._rollback(line_id, index, snapshot)
                status.settle()
                if not self.session.is_logged_in:
                    #refetch hit a 401, the session channel already handled it
                    return MutationOutcome.ROLLED_BACK
                self.notifications.error("Error", getattr(e, "message", None) or failure_message)
                return MutationOutcome.ROLLED_BACK

            status.ack()
            return MutationOutcome.APPLIED
        finally:
            if status.state != LineState.SYNCED:
                status.reset()

    def _apply_local(self, line_id: str, apply) -> tuple[int, CartLine]:
        with self._lock:
            index = self._index_of(line_id)
            snapshot = self._lines[index]
            updated = apply(snapshot)
            if updated is None:
                del self._lines[index]
            else:
                self._lines[index] = updated
        return index, snapshot

    def _rollback(self, line_id: str, index: int, snapshot: CartLine):
        try:
            self.load()
            return
        except (StorefrontError, ValidationError) as e:
            logger.error(f"Refetch after failed mutation on line {line_id} failed: {e}")

        if not self.session.is_logged_in:
            return

        #no fresh state available, put back what we had before the mutation
        with self._lock:
            for i, line in enumerate(self._lines):
                if line.id == line_id:
                    self._lines[i] = snapshot
                    return
            self._lines.insert(min(index, len(self._lines)), snapshot)

    def _on_unauthorized(self):
        with self._lock:
            self._lines = []
        logger.info("Cart cleared after session invalidation")

    def _require_session(self):
        if not self.session.is_logged_in:
            raise LoginRequiredError("Login required to use the cart")

    def _require_line(self, line_id: str) -> CartLine:
        line = self.get_line(line_id)
        if line is None:
            raise ValueError(f"Cart line {line_id} not found")
        return line

    def _index_or_none(self, line_id: str) -> int | None:
        for i, line in enumerate(self._lines):
            if line.id == line_id:
                return i
        return None

    def _index_of(self, line_id: str) -> int:
        index = self._index_or_none(line_id)
        if index is None:
            raise ValueError(f"Cart line {line_id} not found")
        return index

    def _status_for(self, line_id: str) -> LineStatus:
        with self._lock:
            return self._status.setdefault(line_id, LineStatus())

    @contextmanager
    def _line_lock(self, line_id: str) -> Iterator[None]:
        with self._lock:
            lock = self._line_locks.setdefault(line_id, threading.RLock())
            self._lock_users[line_id] = self._lock_users.get(line_id, 0) + 1
        try:
            with lock:
                yield
        finally:
            with self._lock:
                self._lock_users[line_id] -= 1
                if not self._lock_users[line_id]:
                    del self._lock_users[line_id]
                    if self._index_or_none(line_id) is None:
                        self._line_locks.pop(line_id, None)

    @staticmethod
    def _below_stock(line: CartLine) -> bool:
        #no variant snapshot, no known ceiling: the backend decides
        if line.stock is None:
            return True
        return line.quantity < line.stock
