# storefront/mock_backend/store.py
import threading
import uuid
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Dict, List


class StoreError(Exception):
    def __init__(self, status_code: int, message: str):
        self.status_code = status_code
        self.message = message
        super().__init__(message)


def _new_id() -> str:
    return uuid.uuid4().hex[:24]


def _money(value: Decimal) -> int | float:
    return int(value) if value == value.to_integral_value() else float(value)


class MockStore:
    """
    In-memory data of the dev backend.
    POST /cart/add always appends a new row, like the production backend
    sometimes does, so GET /cart can return duplicated variants.
    """

    def __init__(self):
        self.lock = threading.RLock()
        self.users: Dict[str, dict] = {}
        self.tokens: Dict[str, str] = {}
        self.categories: Dict[str, dict] = {}
        self.products: Dict[str, dict] = {}
        self.variants: Dict[str, dict] = {}
        self.cart: Dict[str, dict] = {}
        self.orders: Dict[str, dict] = {}
        self.order_items: Dict[str, List[dict]] = {}
        self._order_seq = 0

    # auth
    def register(self, username: str, email: str, password: str, role: str = "customer") -> dict:
        with self.lock:
            if any(u["email"] == email for u in self.users.values()):
                raise StoreError(400, "Email already registered")
            user = {"_id": _new_id(), "username": username, "email": email, "password": password, "role": role}
            self.users[user["_id"]] = user
            return self._issue_token(user)

    def login(self, email: str, password: str) -> dict:
        with self.lock:
            for user in self.users.values():
                if user["email"] == email and user["password"] == password:
                    return self._issue_token(user)
        raise StoreError(401, "Invalid email or password")

    def _issue_token(self, user: dict) -> dict:
        token = uuid.uuid4().hex
        self.tokens[token] = user["_id"]
        return {"token": token, "user": self._public_user(user)}

    def user_for_token(self, token: str | None) -> dict:
        user_id = self.tokens.get(token or "")
        if not user_id or user_id not in self.users:
            raise StoreError(401, "Unauthorized")
        return self.users[user_id]

    def revoke(self, token: str):
        self.tokens.pop(token, None)

    @staticmethod
    def _public_user(user: dict) -> dict:
        return {k: v for k, v in user.items() if k != "password"}

    # catalog
    def add_category(self, name: str) -> dict:
        with self.lock:
            category = {"_id": _new_id(), "name": name}
            self.categories[category["_id"]] = category
            return category

    def update_category(self, category_id: str, name: str) -> dict:
        with self.lock:
            category = self._get(self.categories, category_id, "Category not found")
            category["name"] = name
            return category

    def delete_category(self, category_id: str):
        with self.lock:
            self._get(self.categories, category_id, "Category not found")
            if any(p["category_id"] == category_id for p in self.products.values()):
                raise StoreError(400, "Category still has products")
            del self.categories[category_id]

    def save_product(self, data: Dict[str, Any], variants: List[dict], product_id: str | None = None) -> dict:
        with self.lock:
            if data.get("category_id") not in self.categories:
                raise StoreError(400, "Category not found")

            if product_id:
                product = self._get(self.products, product_id, "Product not found")
                for vid in [v for v, var in self.variants.items() if var["product_id"] == product_id]:
                    del self.variants[vid]
            else:
                product = {"_id": _new_id()}
                self.products[product["_id"]] = product

            product.update(
                name=data["name"],
                short_description=data.get("short_description") or "",
                description=data.get("description") or "",
                category_id=data["category_id"],
                thumbnail=data.get("thumbnail_url") or data.get("thumbnail") or None,
            )
            for v in variants:
                variant = {
                    "_id": _new_id(),
                    "product_id": product["_id"],
                    "sku": v.get("sku") or "",
                    "price": Decimal(str(v["price"])),
                    "stock": int(v["stock"]),
                    "attributes": v.get("attributes") or {},
                }
                self.variants[variant["_id"]] = variant
            return self.product_json(product["_id"])

    def delete_product(self, product_id: str):
        with self.lock:
            self._get(self.products, product_id, "Product not found")
            del self.products[product_id]
            for vid in [v for v, var in self.variants.items() if var["product_id"] == product_id]:
                del self.variants[vid]

    def product_variants(self, product_id: str) -> List[dict]:
        return [v for v in self.variants.values() if v["product_id"] == product_id]

    def product_json(self, product_id: str) -> dict:
        product = self._get(self.products, product_id, "Product not found")
        variants = self.product_variants(product_id)
        category = self.categories.get(product["category_id"])
        return {
            **product,
            "category_id": dict(category) if category else product["category_id"],
            "price_min": _money(min(v["price"] for v in variants)) if variants else None,
            "total_stock": sum(v["stock"] for v in variants),
        }

    def variant_json(self, variant_id: str) -> dict | None:
        variant = self.variants.get(variant_id)
        if not variant:
            return None
        product = self.products.get(variant["product_id"], {})
        return {
            **variant,
            "price": _money(variant["price"]),
            "product_id": {
                "_id": variant["product_id"],
                "name": product.get("name"),
                "thumbnail": product.get("thumbnail"),
            },
        }

    # cart
    def cart_json(self, user_id: str) -> List[dict]:
        with self.lock:
            return [
                {
                    "_id": line["_id"],
                    "variant_id": self.variant_json(line["variant_id"]),
                    "quantity": line["quantity"],
                    "is_checked": line["is_checked"],
                }
                for line in self.cart.values()
                if line["user_id"] == user_id
            ]

    def add_to_cart(self, user_id: str, variant_id: str, quantity: int) -> dict:
        with self.lock:
            variant = self._get(self.variants, variant_id, "Variant not found")
            if quantity < 1:
                raise StoreError(400, "Quantity must be at least 1")
            if quantity > variant["stock"]:
                raise StoreError(400, "Stock not sufficient")
            line = {
                "_id": _new_id(),
                "user_id": user_id,
                "variant_id": variant_id,
                "quantity": quantity,
                "is_checked": True,
            }
            self.cart[line["_id"]] = line
            return line

    def change_quantity(self, user_id: str, line_id: str, delta: int) -> dict:
        with self.lock:
            line = self._own_line(user_id, line_id)
            quantity = line["quantity"] + delta
            if quantity < 1:
                raise StoreError(400, "Quantity cannot go below 1")
            variant = self.variants.get(line["variant_id"])
            if variant and quantity > variant["stock"]:
                raise StoreError(400, "Stock not sufficient")
            line["quantity"] = quantity
            return line

    def toggle_checked(self, user_id: str, line_id: str) -> dict:
        with self.lock:
            line = self._own_line(user_id, line_id)
            line["is_checked"] = not line["is_checked"]
            return line

    def remove_line(self, user_id: str, line_id: str):
        with self.lock:
            self._own_line(user_id, line_id)
            del self.cart[line_id]

    def _own_line(self, user_id: str, line_id: str) -> dict:
        line = self._get(self.cart, line_id, "Cart item not found")
        if line["user_id"] != user_id:
            raise StoreError(404, "Cart item not found")
        return line

    # orders
    def checkout(self, user_id: str, shipping_address: str, payment_method: str,
                 shipping_method: str, shipping_cost: Decimal) -> dict:
        with self.lock:
            lines = [l for l in self.cart.values() if l["user_id"] == user_id and l["is_checked"]]
            if not lines:
                raise StoreError(400, "No checked items in cart")

            items = []
            subtotal = Decimal("0")
            for line in lines:
                variant = self._get(self.variants, line["variant_id"], "Variant not found")
                if line["quantity"] > variant["stock"]:
                    raise StoreError(400, f"Stock not sufficient for {variant['sku'] or variant['_id']}")
                subtotal += variant["price"] * line["quantity"]
                items.append((line, variant))

            self._order_seq += 1
            now = datetime.now(timezone.utc)
            order = {
                "_id": _new_id(),
                "order_number": f"ORD-{now:%Y%m%d}-{self._order_seq:04d}",
                "user_id": user_id,
                "status": "pending",
                "payment_status": "pending",
                "payment_method": payment_method,
                "shipping_address": shipping_address,
                "shipping_method": shipping_method,
                "shipping_cost": _money(shipping_cost),
                "subtotal": _money(subtotal),
                "total_amount": _money(subtotal + shipping_cost),
                "createdAt": now.isoformat(),
            }
            self.orders[order["_id"]] = order
            self.order_items[order["_id"]] = [
                {
                    "_id": _new_id(),
                    "variant_id": self.variant_json(variant["_id"]),
                    "variant_attributes": variant["attributes"],
                    "quantity": line["quantity"],
                    "price": _money(variant["price"]),
                }
                for line, variant in items
            ]

            for line, variant in items:
                variant["stock"] -= line["quantity"]
                del self.cart[line["_id"]]

            return order

    def user_orders(self, user_id: str) -> List[dict]:
        return [o for o in self.orders.values() if o["user_id"] == user_id]

    def order_detail(self, user: dict, order_id: str) -> dict:
        order = self._get(self.orders, order_id, "Order not found")
        if order["user_id"] != user["_id"] and user["role"] != "admin":
            raise StoreError(404, "Order not found")
        return {"order": order, "items": self.order_items.get(order_id, [])}

    def update_order_status(self, order_id: str, status: str) -> dict:
        with self.lock:
            order = self._get(self.orders, order_id, "Order not found")
            order["status"] = status
            if status in ("paid", "shipped", "completed"):
                order["payment_status"] = "paid"
            return order

    def dashboard(self) -> dict:
        orders = sorted(self.orders.values(), key=lambda o: o["createdAt"], reverse=True)
        revenue = sum(
            (Decimal(str(o["total_amount"])) for o in orders if o["status"] != "cancelled"),
            Decimal("0"),
        )
        return {
            "totalRevenue": _money(revenue),
            "totalOrders": len(orders),
            "totalProducts": len(self.products),
            "totalUsers": len(self.users),
            "recentOrders": orders[:5],
        }

    @staticmethod
    def _get(table: Dict[str, dict], key: str, message: str) -> dict:
        item = table.get(key)
        if item is None:
            raise StoreError(404, message)
        return item


def seed(store: MockStore) -> MockStore:
    """Demo catalog and two accounts (admin@example.com / customer@example.com, password 'secret')."""
    store.register("admin", "admin@example.com", "secret", role="admin")
    store.register("customer", "customer@example.com", "secret")

    shirts = store.add_category("T-Shirts")
    shoes = store.add_category("Shoes")

    store.save_product(
        {"name": "T-Shirt Premium", "category_id": shirts["_id"], "short_description": "Cotton tee"},
        [
            {"sku": "TS-M-BLK", "price": 10000, "stock": 5, "attributes": {"size": "M", "color": "black"}},
            {"sku": "TS-L-WHT", "price": 12000, "stock": 2, "attributes": {"size": "L", "color": "white"}},
        ],
    )
    store.save_product(
        {"name": "Running Shoes", "category_id": shoes["_id"]},
        [{"sku": "RS-42", "price": 5000, "stock": 10, "attributes": {"size": "42"}}],
    )
    return store
