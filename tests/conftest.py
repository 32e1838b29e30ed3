from collections.abc import Generator
from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient

from storefront.domain.schemas import User
from storefront.mock_backend.main import create_app
from storefront.mock_backend.store import MockStore, seed
from storefront.services.admin_service import AdminService
from storefront.services.api_client import StorefrontClient
from storefront.services.cart_service import CartService
from storefront.services.catalog_service import CatalogService
from storefront.services.notification_service import NotificationService
from storefront.services.order_service import OrderService
from storefront.services.session_service import AuthService, InMemoryTokenStore, SessionService


class Confirmer:
    """Stands in for the confirmation dialog."""

    def __init__(self, answer: bool = True):
        self.answer = answer
        self.asked: list[tuple[str, str]] = []

    def __call__(self, title: str, message: str) -> bool:
        self.asked.append((title, message))
        return self.answer


def make_line(
    line_id: str,
    variant: str | None = "v1",
    qty: int = 1,
    price: int = 10000,
    stock: int = 10,
    checked: bool = True,
) -> dict:
    return {
        "_id": line_id,
        "variant_id": None
        if variant is None
        else {
            "_id": variant,
            "price": price,
            "stock": stock,
            "attributes": {"size": "M"},
            "product_id": {"_id": f"p-{variant}", "name": f"Product {variant}"},
        },
        "quantity": qty,
        "is_checked": checked,
    }


# unit fixtures: fake transport


@pytest.fixture()
def line():
    return make_line


@pytest.fixture()
def session() -> SessionService:
    session = SessionService(InMemoryTokenStore())
    session.start("token-1", User(id="u1", username="budi", role="customer"))
    return session


@pytest.fixture()
def notifications() -> NotificationService:
    return NotificationService()


@pytest.fixture()
def confirmer() -> Confirmer:
    return Confirmer(True)


@pytest.fixture()
def api() -> MagicMock:
    return MagicMock(spec=StorefrontClient)


@pytest.fixture()
def cart(api, session, notifications, confirmer) -> Generator[CartService, None, None]:
    service = CartService(api, session, notifications, confirm=confirmer)
    yield service
    service.close()


# integration fixtures: real client against the dev backend


@pytest.fixture()
def store() -> MockStore:
    return seed(MockStore())


@pytest.fixture()
def backend(store: MockStore) -> Generator[TestClient, None, None]:
    with TestClient(create_app(store)) as test_client:
        yield test_client


@pytest.fixture()
def live_session() -> SessionService:
    return SessionService(InMemoryTokenStore())


@pytest.fixture()
def live_client(backend: TestClient, live_session: SessionService) -> StorefrontClient:
    return StorefrontClient(base_url="http://testserver", timeout=5, session=live_session, http=backend)


@pytest.fixture()
def auth(live_client, live_session) -> AuthService:
    return AuthService(live_client, live_session)


@pytest.fixture()
def live_cart(live_client, live_session, notifications, confirmer) -> Generator[CartService, None, None]:
    service = CartService(live_client, live_session, notifications, confirm=confirmer)
    yield service
    service.close()


@pytest.fixture()
def live_orders(live_client, live_cart, notifications) -> OrderService:
    return OrderService(live_client, live_cart, notifications)


@pytest.fixture()
def catalog(live_client) -> CatalogService:
    return CatalogService(live_client)


@pytest.fixture()
def admin(live_client, notifications, confirmer) -> AdminService:
    return AdminService(live_client, notifications, confirm=confirmer)
