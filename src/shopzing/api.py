"""FastAPI REST API for the shopzing catalog and orders."""

import logging
from dataclasses import dataclass
from typing import Any, Optional

from fastapi import Depends, FastAPI, Header, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from pydantic import BaseModel, ConfigDict, Field

from . import __version__
from .config import Settings
from .errors import (
    CheckoutCancelledError,
    NotFoundError,
    PaymentDeclinedError,
    PaymentTimeoutError,
    PermissionDeniedError,
    PersistenceError,
    ShopzingError,
    ValidationError,
)
from .models import Order, Product
from .services import CatalogService, OrderService, build_services

logger = logging.getLogger(__name__)

# Seconds a client should wait before retrying after a PersistenceError
RETRY_AFTER_SECONDS = 5


# --- Pydantic Schemas ---


class ProductSchema(BaseModel):
    id: str
    title: str
    description: str
    price: float
    image: str
    category: str
    rating: float
    stock: int
    brand: str
    tags: list[str]
    featured: bool


class ProductCreateRequest(BaseModel):
    """Request body for adding a product. The catalog assigns the ID."""

    model_config = ConfigDict(extra="forbid")

    title: str
    description: str = ""
    price: float
    image: str = ""
    category: str
    rating: float = 0.0
    stock: int = 0
    brand: str = ""
    tags: list[str] = Field(default_factory=list)
    featured: bool = False


class ProductUpdateRequest(BaseModel):
    """Request body for updating a product. Only provided fields change."""

    model_config = ConfigDict(extra="forbid")

    title: Optional[str] = None
    description: Optional[str] = None
    price: Optional[float] = None
    image: Optional[str] = None
    category: Optional[str] = None
    rating: Optional[float] = None
    stock: Optional[int] = None
    brand: Optional[str] = None
    tags: Optional[list[str]] = None
    featured: Optional[bool] = None


class ProductListResponse(BaseModel):
    products: list[ProductSchema]
    count: int
    total: int  # catalog size before search and filters


class CategoryListResponse(BaseModel):
    categories: list[str]


class OrderItemRequest(BaseModel):
    productId: str
    title: str
    price: float
    quantity: int
    image: str = ""


class ShippingAddressSchema(BaseModel):
    street: str
    city: str
    state: str
    zipCode: str
    country: str


class OrderCreateRequest(BaseModel):
    userId: str
    items: list[OrderItemRequest]
    shippingAddress: ShippingAddressSchema
    paymentMethod: str = "Credit Card"


class OrderItemSchema(BaseModel):
    productId: str
    title: str
    price: str  # decimal string, e.g. "19.99"
    quantity: int
    image: str


class OrderSchema(BaseModel):
    id: str
    userId: str
    items: list[OrderItemSchema]
    subtotal: str
    shipping: str
    tax: str
    total: str
    status: str
    shippingAddress: ShippingAddressSchema
    paymentMethod: str
    createdAt: str
    updatedAt: str


class OrderCreatedResponse(BaseModel):
    id: str
    status: str
    total: str


class OrderListResponse(BaseModel):
    orders: list[OrderSchema]
    count: int


class StatusUpdateRequest(BaseModel):
    status: str


# --- Helper Functions ---


@dataclass(frozen=True)
class Caller:
    """Identity as asserted by the upstream auth layer."""

    user_id: Optional[str]
    is_admin: bool


def get_caller(
    x_user_id: Optional[str] = Header(default=None),
    x_user_role: Optional[str] = Header(default=None),
) -> Caller:
    return Caller(user_id=x_user_id, is_admin=(x_user_role or "").lower() == "admin")


def get_catalog_service(request: Request) -> CatalogService:
    return request.app.state.catalog_service


def get_order_service(request: Request) -> OrderService:
    return request.app.state.order_service


def product_to_schema(product: Product) -> ProductSchema:
    return ProductSchema(**product.to_dict())


def order_to_schema(order: Order) -> OrderSchema:
    return OrderSchema(**order.to_dict())


# --- Global Exception Handler ---


# Map exception types to HTTP status codes; subclasses inherit their base's code
ERROR_STATUS_CODES: dict[type, int] = {
    NotFoundError: 404,
    ValidationError: 400,
    PermissionDeniedError: 403,
    PaymentDeclinedError: 402,
    CheckoutCancelledError: 409,
    PaymentTimeoutError: 504,
    PersistenceError: 503,
}


def status_code_for(exc: ShopzingError) -> int:
    for cls in type(exc).__mro__:
        if cls in ERROR_STATUS_CODES:
            return ERROR_STATUS_CODES[cls]
    return 500


def _serialize_result(result: Any) -> Any:
    if hasattr(result, "to_dict"):
        return result.to_dict()
    return result


async def shopzing_error_handler(request: Request, exc: ShopzingError) -> JSONResponse:
    """Map ShopzingError subclasses to appropriate HTTP responses."""
    status_code = status_code_for(exc)
    if status_code >= 500:
        logger.warning("%s %s failed: %s", request.method, request.url.path, exc)
    content: dict[str, Any] = {"detail": str(exc), "error_type": type(exc).__name__}
    headers = None

    if isinstance(exc, PersistenceError):
        # The change is live in memory; tell the caller it may not survive a restart.
        content["warning"] = "Change applied but not yet durable; retry persistence later."
        content["result"] = _serialize_result(exc.result)
        headers = {"Retry-After": str(RETRY_AFTER_SECONDS)}

    return JSONResponse(status_code=status_code, content=content, headers=headers)


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Report malformed request bodies and parameters as 400, like ValidationError."""
    messages = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error.get("loc", ()) if part != "body")
        messages.append(f"{location}: {error.get('msg', 'invalid')}")
    return JSONResponse(
        status_code=400,
        content={"detail": "; ".join(messages), "error_type": "ValidationError"},
    )


# --- FastAPI App ---


def create_app(
    settings: Optional[Settings] = None,
    catalog_service: Optional[CatalogService] = None,
    order_service: Optional[OrderService] = None,
) -> FastAPI:
    """
    Build the API around explicitly constructed services.

    Services not passed in are built from ``settings`` (default: environment).
    """
    settings = settings or Settings.from_env()
    if catalog_service is None or order_service is None:
        built_catalog, built_orders = build_services(settings)
        catalog_service = catalog_service or built_catalog
        order_service = order_service or built_orders

    app = FastAPI(
        title="shopzing API",
        description="REST API for the storefront catalog and order ledger",
        version=__version__,
    )
    app.state.catalog_service = catalog_service
    app.state.order_service = order_service

    # CORS for the storefront frontend
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(ShopzingError, shopzing_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)

    register_routes(app)
    return app


def register_routes(app: FastAPI) -> None:
    # --- Endpoints ---

    @app.get("/api/health")
    def health_check(
        catalog: CatalogService = Depends(get_catalog_service),
        orders: OrderService = Depends(get_order_service),
    ):
        """Health check endpoint."""
        return {
            "status": "ok",
            "product_count": len(catalog.catalog),
            "order_count": len(orders.orders),
        }

    # --- Product Endpoints ---

    @app.get("/api/products", response_model=ProductListResponse)
    def list_products(
        search: Optional[str] = Query(default=None),
        category: Optional[str] = Query(default=None),
        min_price: Optional[float] = Query(default=None, alias="minPrice"),
        max_price: Optional[float] = Query(default=None, alias="maxPrice"),
        min_rating: Optional[float] = Query(default=None, alias="minRating"),
        in_stock: bool = Query(default=False, alias="inStock"),
        catalog: CatalogService = Depends(get_catalog_service),
    ):
        """List products matching the search text and every given filter."""
        products = catalog.list_products(
            search=search,
            category=category,
            min_price=min_price,
            max_price=max_price,
            min_rating=min_rating,
            in_stock=in_stock,
        )
        return ProductListResponse(
            products=[product_to_schema(p) for p in products],
            count=len(products),
            total=len(catalog.catalog),
        )

    @app.get("/api/products/featured", response_model=list[ProductSchema])
    def featured_products(catalog: CatalogService = Depends(get_catalog_service)):
        return [product_to_schema(p) for p in catalog.featured_products()]

    @app.get("/api/categories", response_model=CategoryListResponse)
    def list_categories(catalog: CatalogService = Depends(get_catalog_service)):
        return CategoryListResponse(categories=catalog.categories())

    @app.get("/api/products/{product_id}", response_model=ProductSchema)
    def get_product(product_id: str, catalog: CatalogService = Depends(get_catalog_service)):
        return product_to_schema(catalog.get_product(product_id))

    @app.get("/api/products/{product_id}/recommendations", response_model=list[ProductSchema])
    def get_recommendations(product_id: str, catalog: CatalogService = Depends(get_catalog_service)):
        """Up to four most similar products, best first."""
        return [product_to_schema(p) for p in catalog.recommendations(product_id)]

    @app.post("/api/products", response_model=ProductSchema, status_code=201)
    def create_product(
        request: ProductCreateRequest,
        caller: Caller = Depends(get_caller),
        catalog: CatalogService = Depends(get_catalog_service),
    ):
        """Add a product (admin only)."""
        product = catalog.add_product(request.model_dump(), is_admin=caller.is_admin)
        return product_to_schema(product)

    @app.put("/api/products/{product_id}", response_model=ProductSchema)
    def update_product(
        product_id: str,
        request: ProductUpdateRequest,
        caller: Caller = Depends(get_caller),
        catalog: CatalogService = Depends(get_catalog_service),
    ):
        """Merge the provided fields into a product (admin only)."""
        product = catalog.update_product(
            product_id, request.model_dump(exclude_unset=True), is_admin=caller.is_admin
        )
        return product_to_schema(product)

    @app.delete("/api/products/{product_id}", response_model=ProductSchema)
    def delete_product(
        product_id: str,
        caller: Caller = Depends(get_caller),
        catalog: CatalogService = Depends(get_catalog_service),
    ):
        """Remove a product (admin only). Existing orders are unaffected."""
        return product_to_schema(catalog.delete_product(product_id, is_admin=caller.is_admin))

    # --- Order Endpoints ---

    @app.post("/api/orders", response_model=OrderCreatedResponse, status_code=201)
    def create_order(request: OrderCreateRequest, orders: OrderService = Depends(get_order_service)):
        """Record an order without running payment."""
        body = request.model_dump()
        order = orders.create_order(
            body["userId"], body["items"], body["shippingAddress"], body["paymentMethod"]
        )
        return OrderCreatedResponse(id=order.id, status=order.status, total=str(order.total))

    @app.post("/api/checkout", response_model=OrderCreatedResponse, status_code=201)
    def checkout(request: OrderCreateRequest, orders: OrderService = Depends(get_order_service)):
        """Authorize payment, then record the order. No order on decline or timeout."""
        body = request.model_dump()
        order = orders.checkout(
            body["userId"], body["items"], body["shippingAddress"], body["paymentMethod"]
        )
        return OrderCreatedResponse(id=order.id, status=order.status, total=str(order.total))

    @app.get("/api/orders", response_model=OrderListResponse)
    def list_orders(
        user_id: Optional[str] = Query(default=None, alias="userId"),
        caller: Caller = Depends(get_caller),
        orders: OrderService = Depends(get_order_service),
    ):
        """
        List orders, newest first.

        With ``userId`` (or a non-admin caller's own id) only that user's
        orders; otherwise all orders, which requires the admin role.
        """
        target = user_id or (None if caller.is_admin else caller.user_id)
        if target:
            result = orders.user_orders(target)
        else:
            result = orders.all_orders(is_admin=caller.is_admin)
        return OrderListResponse(orders=[order_to_schema(o) for o in result], count=len(result))

    @app.get("/api/orders/{order_id}", response_model=OrderSchema)
    def get_order(order_id: str, orders: OrderService = Depends(get_order_service)):
        return order_to_schema(orders.get_order(order_id))

    @app.patch("/api/orders/{order_id}/status", response_model=OrderSchema)
    def update_order_status(
        order_id: str,
        request: StatusUpdateRequest,
        caller: Caller = Depends(get_caller),
        orders: OrderService = Depends(get_order_service),
    ):
        """Advance an order's status (admin only)."""
        return order_to_schema(orders.update_status(order_id, request.status, is_admin=caller.is_admin))

    # --- Maintenance ---

    @app.post("/api/persist", status_code=204)
    def persist(
        caller: Caller = Depends(get_caller),
        catalog: CatalogService = Depends(get_catalog_service),
        orders: OrderService = Depends(get_order_service),
    ):
        """Retry writing both collections after a 503 (admin only)."""
        catalog.flush(is_admin=caller.is_admin)
        orders.flush(is_admin=caller.is_admin)
        return Response(status_code=204)
