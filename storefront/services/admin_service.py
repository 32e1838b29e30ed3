# storefront/services/admin_service.py
import json
from typing import Callable, List

from storefront.domain.schemas import Category, DashboardStats, ProductForm
from storefront.services.api_client import StorefrontClient, StorefrontError, UnauthorizedError
from storefront.services.notification_service import NotificationService
from storefront.utils.logging import get_logger

logger = get_logger(__name__)


def _decline(title: str, message: str) -> bool:
    return False


class AdminService:
    """
    Admin panels: categories, products, dashboard.
    Deletes need confirmation, required fields are checked before any call.
    """

    def __init__(
        self,
        client: StorefrontClient,
        notifications: NotificationService,
        confirm: Callable[[str, str], bool] | None = None,
    ):
        self.client = client
        self.notifications = notifications
        self.confirm = confirm or _decline

    def dashboard(self) -> DashboardStats:
        return DashboardStats.model_validate(self.client.dashboard())

    # categories
    def list_categories(self, search: str | None = None) -> List[Category]:
        categories = [Category.model_validate(c) for c in self.client.list_categories()]
        if not search:
            return categories
        needle = search.strip().lower()
        return [c for c in categories if needle in c.name.lower()]

    def save_category(self, name: str, category_id: str | None = None) -> bool:
        name = (name or "").strip()
        if not name:
            raise ValueError("Category name must not be empty")

        def call():
            if category_id:
                self.client.update_category(category_id, name)
            else:
                self.client.create_category(name)

        done = "Category updated" if category_id else "Category added"
        return self._run(call, done, "Failed to save category")

    def delete_category(self, category_id: str, name: str = "") -> bool:
        if not self.confirm("Delete category", f"Delete category {name or category_id}?"):
            return False
        return self._run(lambda: self.client.delete_category(category_id), "Category deleted", "Failed to delete category")

    # products
    def save_product(self, form: ProductForm, product_id: str | None = None) -> bool:
        if not form.name.strip() or not form.category_id:
            raise ValueError("Name and category are required")
        if not form.variants or any(v.price is None or v.stock is None for v in form.variants):
            raise ValueError("Every variant needs a price and a stock")

        payload = form.model_dump(mode="json", exclude={"variants"})
        #backend takes the variants as a JSON encoded string
        payload["variants"] = json.dumps([v.model_dump(mode="json") for v in form.variants])

        def call():
            if product_id:
                self.client.update_product(product_id, payload)
            else:
                self.client.create_product(payload)

        done = "Product updated" if product_id else "Product added"
        return self._run(call, done, "Failed to save product")

    def delete_product(self, product_id: str, name: str = "") -> bool:
        if not self.confirm("Delete product", f"Delete product {name or product_id}?"):
            return False
        return self._run(lambda: self.client.delete_product(product_id), "Product deleted", "Failed to delete product")

    def _run(self, call: Callable[[], object], done: str, failed: str) -> bool:
        try:
            call()
        except UnauthorizedError:
            return False
        except StorefrontError as e:
            logger.error(f"{failed}: {e}")
            self.notifications.error("Error", getattr(e, "message", None) or failed)
            return False

        logger.info(done)
        self.notifications.success("Success", done)
        return True
