# storefront/services/notification_service.py
import threading
from collections import deque
from dataclasses import dataclass
from typing import Callable, Deque, List

from storefront.utils.logging import get_logger

logger = get_logger(__name__)

HISTORY_LIMIT = 100


@dataclass(frozen=True)
class Notification:
    title: str
    message: str
    level: str = "info"  # info, success, warning, error


class NotificationService:
    """
    User-visible messages (the alerts of the app).
    The UI subscribes and renders them, everything is also logged.
    """

    def __init__(self, history_limit: int = HISTORY_LIMIT):
        self._subscribers: List[Callable[[Notification], None]] = []
        self._lock = threading.Lock()
        #most recent notifications only
        self.history: Deque[Notification] = deque(maxlen=history_limit)

    def subscribe(self, callback: Callable[[Notification], None]) -> Callable[[], None]:
        with self._lock:
            self._subscribers.append(callback)

        def unsubscribe():
            with self._lock:
                if callback in self._subscribers:
                    self._subscribers.remove(callback)

        return unsubscribe

    def notify(self, title: str, message: str, level: str = "info") -> Notification:
        notification = Notification(title=title, message=message, level=level)
        logger.info(f"[NOTIFICATION:{level}] {title}: {message}")

        with self._lock:
            self.history.append(notification)
            subscribers = list(self._subscribers)

        for callback in subscribers:
            callback(notification)

        return notification

    def error(self, title: str, message: str) -> Notification:
        return self.notify(title, message, level="error")

    def warning(self, title: str, message: str) -> Notification:
        return self.notify(title, message, level="warning")

    def success(self, title: str, message: str) -> Notification:
        return self.notify(title, message, level="success")

    def errors(self) -> List[Notification]:
        with self._lock:
            return [n for n in self.history if n.level == "error"]
