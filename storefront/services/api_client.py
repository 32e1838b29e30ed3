# storefront/services/api_client.py
from typing import Any, Dict

import requests
from requests import RequestException

from storefront.utils.settings import STOREFRONT_API_URL, STOREFRONT_API_TIMEOUT
from storefront.utils.logging import get_logger

logger = get_logger(__name__)


class StorefrontError(Exception):
    pass


class NetworkError(StorefrontError):
    """Connection failure or timeout, treated as transient."""


class ApiError(StorefrontError):
    """Backend answered with a non-2xx status."""

    def __init__(self, status_code: int, message: str | None = None, payload: Any = None):
        self.status_code = status_code
        #server-provided message, None when the body carried none
        self.message = message
        self.payload = payload
        super().__init__(message or f"HTTP {status_code}")


class UnauthorizedError(ApiError):
    pass


def _error_message(resp) -> tuple[str | None, Any]:
    try:
        body = resp.json()
    except ValueError:
        return None, None

    if isinstance(body, dict):
        message = body.get("message") or body.get("error") or body.get("detail")
        if isinstance(message, str) and message:
            return message, body
    return None, body


class StorefrontClient:
    """
    REST client for the storefront backend.
    Bearer token comes from the session, a 401 invalidates that session.
    `http` is anything with requests' `request(method, url, json=, headers=, timeout=)`.
    """

    def __init__(
        self,
        base_url: str | None = None,
        timeout: float | None = None,
        session=None,
        http=None,
    ):
        self.base_url = (base_url or STOREFRONT_API_URL).rstrip("/")
        self.timeout = timeout or STOREFRONT_API_TIMEOUT
        self.session = session
        self.http = http or requests.Session()

    def request(self, method: str, path: str, json: Dict[str, Any] | None = None, auth: bool = True) -> Any:
        url = f"{self.base_url}{path}"
        headers = {"Accept": "application/json"}

        token = self.session.token if (auth and self.session is not None) else None
        if token:
            headers["Authorization"] = f"Bearer {token}"

        logger.info(f"StorefrontClient {method} {url}")

        try:
            resp = self.http.request(method, url, json=json, headers=headers, timeout=self.timeout)
        except RequestException as e:
            logger.warning(f"StorefrontClient {method} {url} failed: {e}")
            raise NetworkError(str(e)) from e

        return self._handle_response(resp, method, url, authenticated=bool(token))

    def _handle_response(self, resp, method: str, url: str, authenticated: bool) -> Any:
        if 200 <= resp.status_code < 300:
            if not resp.content:
                return None
            try:
                return resp.json()
            except ValueError:
                return None

        message, payload = _error_message(resp)
        logger.warning(f"StorefrontClient {method} {url} -> {resp.status_code}: {message}")

        if resp.status_code == 401:
            #only a rejected token ends the session, a wrong password on login does not
            if authenticated and self.session is not None:
                self.session.invalidate()
            raise UnauthorizedError(resp.status_code, message, payload)

        raise ApiError(resp.status_code, message, payload)

    def get(self, path: str, auth: bool = True) -> Any:
        return self.request("GET", path, auth=auth)

    def post(self, path: str, json: Dict[str, Any] | None = None, auth: bool = True) -> Any:
        return self.request("POST", path, json=json, auth=auth)

    def put(self, path: str, json: Dict[str, Any] | None = None) -> Any:
        return self.request("PUT", path, json=json)

    def patch(self, path: str, json: Dict[str, Any] | None = None) -> Any:
        return self.request("PATCH", path, json=json)

    def delete(self, path: str) -> Any:
        return self.request("DELETE", path)

    # auth
    def login(self, email: str, password: str) -> dict:
        return self.post("/auth/login", {"email": email, "password": password}, auth=False)

    def register(self, username: str, email: str, password: str, role: str) -> dict:
        return self.post(
            "/auth/register",
            {"username": username, "email": email, "password": password, "role": role},
            auth=False,
        )

    # catalog
    def list_products(self) -> Any:
        return self.get("/product")

    def fetch_product(self, product_id: str) -> dict:
        return self.get(f"/product/{product_id}")

    def create_product(self, payload: dict) -> Any:
        return self.post("/product", payload)

    def update_product(self, product_id: str, payload: dict) -> Any:
        return self.put(f"/product/{product_id}", payload)

    def delete_product(self, product_id: str) -> Any:
        return self.delete(f"/product/{product_id}")

    def list_categories(self) -> list:
        return self.get("/categories") or []

    def create_category(self, name: str) -> Any:
        return self.post("/categories", {"name": name})

    def update_category(self, category_id: str, name: str) -> Any:
        return self.put(f"/categories/{category_id}", {"name": name})

    def delete_category(self, category_id: str) -> Any:
        return self.delete(f"/categories/{category_id}")

    # cart
    def list_cart(self) -> list:
        return self.get("/cart") or []

    def add_to_cart(self, variant_id: str, quantity: int) -> Any:
        return self.post("/cart/add", {"variant_id": variant_id, "quantity": quantity})

    def increase_quantity(self, line_id: str) -> Any:
        return self.patch(f"/cart/{line_id}/increase")

    def decrease_quantity(self, line_id: str) -> Any:
        return self.patch(f"/cart/{line_id}/decrease")

    def remove_line(self, line_id: str) -> Any:
        return self.delete(f"/cart/{line_id}")

    def toggle_checked(self, line_id: str) -> Any:
        return self.patch(f"/cart/{line_id}/toggle-checked")

    # orders
    def checkout(self, payload: dict) -> Any:
        return self.post("/orders/checkout", payload)

    def list_orders(self) -> list:
        return self.get("/orders") or []

    def fetch_order(self, order_id: str) -> dict:
        return self.get(f"/orders/{order_id}")

    def list_all_orders(self) -> Any:
        return self.get("/orders/admin/all")

    def update_order_status(self, order_id: str, status: str) -> Any:
        return self.patch(f"/orders/admin/{order_id}/status", {"status": status})

    def dashboard(self) -> dict:
        return self.get("/dashboard") or {}
