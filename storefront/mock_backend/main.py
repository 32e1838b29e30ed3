# storefront/mock_backend/main.py
import json
from decimal import Decimal
from typing import Any, Dict, List

import uvicorn
from fastapi import Depends, FastAPI, Header, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from storefront.domain.order_status import OrderStatus
from storefront.mock_backend.store import MockStore, StoreError, seed
from storefront.utils.settings import MOCK_BACKEND_HOST, MOCK_BACKEND_PORT
from storefront.utils.logging import get_logger

logger = get_logger(__name__)


class LoginIn(BaseModel):
    email: str
    password: str


class RegisterIn(BaseModel):
    username: str = Field(..., min_length=1)
    email: str = Field(..., min_length=3)
    password: str = Field(..., min_length=1)
    role: str = "customer"


class CategoryIn(BaseModel):
    name: str = Field(..., min_length=1)


class ProductIn(BaseModel):
    name: str = Field(..., min_length=1)
    category_id: str
    short_description: str = ""
    description: str = ""
    thumbnail_url: str = ""
    variants: str  # JSON encoded list, as the mobile app sends it


class AddToCartIn(BaseModel):
    variant_id: str
    quantity: int = Field(1, gt=0)


class CheckoutIn(BaseModel):
    shipping_address: str = Field(..., min_length=1)
    payment_method: str
    shipping_method: str = "Standard"
    shipping_cost: Decimal = Field(Decimal("0"), ge=0)


class StatusIn(BaseModel):
    status: OrderStatus


def create_app(store: MockStore | None = None) -> FastAPI:
    """Dev backend with the same REST surface as the production one."""
    store = store if store is not None else seed(MockStore())

    app = FastAPI(title="Storefront Backend (dev mock)", version="1.0.0")
    app.state.store = store

    @app.exception_handler(StoreError)
    def store_error_handler(request: Request, exc: StoreError):
        return JSONResponse(status_code=exc.status_code, content={"message": exc.message})

    def current_user(authorization: str | None = Header(None)) -> dict:
        token = None
        if authorization and authorization.startswith("Bearer "):
            token = authorization[len("Bearer "):]
        return store.user_for_token(token)

    def admin_user(user: dict = Depends(current_user)) -> dict:
        if user["role"] != "admin":
            raise StoreError(403, "Admin only")
        return user

    # auth
    @app.post("/auth/login")
    def login(payload: LoginIn):
        return store.login(payload.email, payload.password)

    @app.post("/auth/register", status_code=201)
    def register(payload: RegisterIn):
        return store.register(payload.username, payload.email, payload.password, payload.role)

    # catalog
    @app.get("/product")
    def list_products():
        return {"products": [store.product_json(pid) for pid in list(store.products)]}

    @app.get("/product/{product_id}")
    def get_product(product_id: str):
        product = store.product_json(product_id)
        return {
            "product": product,
            "variants": [store.variant_json(v["_id"]) for v in store.product_variants(product_id)],
            "images": [],
        }

    @app.post("/product", status_code=201)
    def create_product(payload: ProductIn, user: dict = Depends(admin_user)):
        return store.save_product(payload.model_dump(), _parse_variants(payload.variants))

    @app.put("/product/{product_id}")
    def update_product(product_id: str, payload: ProductIn, user: dict = Depends(admin_user)):
        return store.save_product(payload.model_dump(), _parse_variants(payload.variants), product_id)

    @app.delete("/product/{product_id}")
    def delete_product(product_id: str, user: dict = Depends(admin_user)):
        store.delete_product(product_id)
        return {"message": "Product deleted"}

    @app.get("/categories")
    def list_categories():
        return list(store.categories.values())

    @app.post("/categories", status_code=201)
    def create_category(payload: CategoryIn, user: dict = Depends(admin_user)):
        return store.add_category(payload.name.strip())

    @app.put("/categories/{category_id}")
    def update_category(category_id: str, payload: CategoryIn, user: dict = Depends(admin_user)):
        return store.update_category(category_id, payload.name.strip())

    @app.delete("/categories/{category_id}")
    def delete_category(category_id: str, user: dict = Depends(admin_user)):
        store.delete_category(category_id)
        return {"message": "Category deleted"}

    # cart
    @app.get("/cart")
    def get_cart(user: dict = Depends(current_user)):
        return store.cart_json(user["_id"])

    @app.post("/cart/add", status_code=201)
    def add_to_cart(payload: AddToCartIn, user: dict = Depends(current_user)):
        return store.add_to_cart(user["_id"], payload.variant_id, payload.quantity)

    @app.patch("/cart/{line_id}/increase")
    def increase(line_id: str, user: dict = Depends(current_user)):
        return store.change_quantity(user["_id"], line_id, 1)

    @app.patch("/cart/{line_id}/decrease")
    def decrease(line_id: str, user: dict = Depends(current_user)):
        return store.change_quantity(user["_id"], line_id, -1)

    @app.patch("/cart/{line_id}/toggle-checked")
    def toggle_checked(line_id: str, user: dict = Depends(current_user)):
        return store.toggle_checked(user["_id"], line_id)

    @app.delete("/cart/{line_id}")
    def remove_line(line_id: str, user: dict = Depends(current_user)):
        store.remove_line(user["_id"], line_id)
        return {"message": "Item removed"}

    # orders (admin routes first, /orders/{id} would swallow them)
    @app.get("/orders/admin/all")
    def all_orders(user: dict = Depends(admin_user)):
        return {"orders": list(store.orders.values())}

    @app.patch("/orders/admin/{order_id}/status")
    def update_status(order_id: str, payload: StatusIn, user: dict = Depends(admin_user)):
        return store.update_order_status(order_id, payload.status.value)

    @app.post("/orders/checkout", status_code=201)
    def checkout(payload: CheckoutIn, user: dict = Depends(current_user)):
        order = store.checkout(
            user["_id"],
            payload.shipping_address.strip(),
            payload.payment_method,
            payload.shipping_method,
            payload.shipping_cost,
        )
        logger.info(f"Order {order['order_number']} placed by user {user['_id']}")
        return order

    @app.get("/orders")
    def list_orders(user: dict = Depends(current_user)):
        return store.user_orders(user["_id"])

    @app.get("/orders/{order_id}")
    def get_order(order_id: str, user: dict = Depends(current_user)):
        return store.order_detail(user, order_id)

    @app.get("/dashboard")
    def dashboard(user: dict = Depends(admin_user)):
        return store.dashboard()

    return app


def _parse_variants(raw: str) -> List[Dict[str, Any]]:
    try:
        variants = json.loads(raw)
    except ValueError:
        raise StoreError(400, "variants must be a JSON list")
    if not isinstance(variants, list) or not variants:
        raise StoreError(400, "At least one variant is required")
    for v in variants:
        if v.get("price") in (None, "") or v.get("stock") in (None, ""):
            raise StoreError(400, "Variant price and stock are required")
    return variants


app = create_app()

if __name__ == "__main__":
    uvicorn.run(app, host=MOCK_BACKEND_HOST, port=MOCK_BACKEND_PORT)
