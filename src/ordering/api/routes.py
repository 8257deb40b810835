"""FastAPI routes for the Ordering domain — products, carts, orders and admin.

Handlers are plain functions: stock-touching operations wait on per-product
locks and retry with backoff, so FastAPI runs them in its threadpool instead
of on the event loop.
"""

from fastapi import APIRouter, Depends, Query, Request
from protean.utils.globals import current_domain

from ordering.api.schemas import (
    AddToCartRequest,
    AdjustStockRequest,
    CancelOrderRequest,
    CartItemResponse,
    CartResponse,
    CreateOrderRequest,
    OrderListResponse,
    OrderResponse,
    ProductIdResponse,
    ProductResponse,
    RecordPaymentRequest,
    RegisterProductRequest,
    StatusResponse,
    TrackOrderResponse,
    UpdateCartQuantityRequest,
    UpdateNotesRequest,
    UpdateStatusRequest,
)
from ordering.cart.cart import ShoppingCart
from ordering.cart.items import AddToCart, RemoveFromCart, UpdateCartQuantity
from ordering.catalogue.product import Product
from ordering.catalogue.registration import RegisterProduct
from ordering.inventory.ledger import StockLedger
from ordering.order.service import OrderService


def get_order_service(request: Request) -> OrderService:
    return request.app.state.order_service


def _order_response(order) -> OrderResponse:
    return OrderResponse(
        reference=order.reference,
        customer_id=str(order.customer_id),
        status=order.status,
        items=[
            {
                "product_id": str(item.product_id),
                "name": item.name,
                "unit_price": item.unit_price,
                "quantity": item.quantity,
                "image": item.image,
            }
            for item in order.items
        ],
        pricing=order.pricing.to_dict(),
        shipping_address=order.shipping_address.to_dict(),
        payment={
            "method": order.payment_method,
            "status": order.payment_status,
            "transaction_id": order.transaction_id,
            "paid_at": order.paid_at,
        },
        tracking=[
            {
                "status": update.status,
                "message": update.message,
                "timestamp": update.timestamp,
                "location": update.location,
            }
            for update in order.timeline()
        ],
        total_items=order.total_items,
        is_cancellable=order.is_cancellable,
        is_returnable=order.is_returnable(),
        cancel_reason=order.cancel_reason,
        admin_notes=order.admin_notes,
        refund_amount=order.refund_amount,
        notes=order.notes,
        coupon_code=order.coupon_code,
        delivered_at=order.delivered_at,
        cancelled_at=order.cancelled_at,
        created_at=order.created_at,
    )


def _order_list_response(result: dict) -> OrderListResponse:
    return OrderListResponse(
        orders=[_order_response(order) for order in result["orders"]],
        pagination=result["pagination"],
    )


# ---------------------------------------------------------------------------
# Product Router
# ---------------------------------------------------------------------------
product_router = APIRouter(prefix="/products", tags=["products"])


@product_router.post("", status_code=201, response_model=ProductIdResponse)
def register_product(body: RegisterProductRequest) -> ProductIdResponse:
    command = RegisterProduct(
        name=body.name,
        price=body.price,
        stock=body.stock,
        image=body.image,
        low_stock_threshold=body.low_stock_threshold,
    )
    result = current_domain.process(command, asynchronous=False)
    return ProductIdResponse(product_id=result)


@product_router.get("/{product_id}", response_model=ProductResponse)
def get_product(product_id: str) -> ProductResponse:
    product = current_domain.repository_for(Product).get_product(product_id)
    return ProductResponse(
        product_id=str(product.id),
        name=product.name,
        price=product.price,
        stock=product.stock,
        image=product.image,
        is_available=product.is_available,
        stock_status=product.stock_status,
    )


@product_router.post("/{product_id}/stock", response_model=ProductResponse)
def adjust_product_stock(product_id: str, body: AdjustStockRequest) -> ProductResponse:
    StockLedger().adjust(product_id, body.delta)
    return get_product(product_id)


# ---------------------------------------------------------------------------
# Cart Router
# ---------------------------------------------------------------------------
cart_router = APIRouter(prefix="/carts", tags=["carts"])


@cart_router.get("/{customer_id}", response_model=CartResponse)
def get_cart(customer_id: str) -> CartResponse:
    cart = current_domain.repository_for(ShoppingCart).for_customer(customer_id)
    if cart is None:
        return CartResponse(customer_id=customer_id)
    return CartResponse(
        customer_id=customer_id,
        items=[CartItemResponse(**line) for line in cart.snapshot()],
        total_items=cart.total_items,
    )


@cart_router.post("/{customer_id}/items", response_model=StatusResponse)
def add_cart_item(customer_id: str, body: AddToCartRequest) -> StatusResponse:
    command = AddToCart(
        customer_id=customer_id,
        product_id=body.product_id,
        quantity=body.quantity,
    )
    current_domain.process(command, asynchronous=False)
    return StatusResponse()


@cart_router.put("/{customer_id}/items/{product_id}", response_model=StatusResponse)
def update_cart_item_quantity(
    customer_id: str, product_id: str, body: UpdateCartQuantityRequest
) -> StatusResponse:
    command = UpdateCartQuantity(
        customer_id=customer_id,
        product_id=product_id,
        new_quantity=body.quantity,
    )
    current_domain.process(command, asynchronous=False)
    return StatusResponse()


@cart_router.delete("/{customer_id}/items/{product_id}", response_model=StatusResponse)
def remove_cart_item(customer_id: str, product_id: str) -> StatusResponse:
    command = RemoveFromCart(
        customer_id=customer_id,
        product_id=product_id,
    )
    current_domain.process(command, asynchronous=False)
    return StatusResponse()


# ---------------------------------------------------------------------------
# Order Router
# ---------------------------------------------------------------------------
order_router = APIRouter(prefix="/orders", tags=["orders"])


@order_router.post("", status_code=201, response_model=OrderResponse)
def create_order(
    body: CreateOrderRequest,
    service: OrderService = Depends(get_order_service),
) -> OrderResponse:
    order = service.create_order(
        user_id=body.customer_id,
        shipping_address=body.shipping_address.model_dump(),
        payment_method=body.payment_method,
        notes=body.notes,
        coupon_code=body.coupon_code,
        customer_email=body.customer_email,
    )
    return _order_response(order)


@order_router.get("", response_model=OrderListResponse)
def list_orders(
    customer_id: str,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    service: OrderService = Depends(get_order_service),
) -> OrderListResponse:
    return _order_list_response(service.list_orders(customer_id, page=page, limit=limit))


@order_router.get("/{reference}", response_model=OrderResponse)
def get_order(
    reference: str,
    customer_id: str | None = None,
    service: OrderService = Depends(get_order_service),
) -> OrderResponse:
    return _order_response(service.get_order(reference, user_id=customer_id))


@order_router.get("/{reference}/track", response_model=TrackOrderResponse)
def track_order(
    reference: str,
    customer_id: str,
    service: OrderService = Depends(get_order_service),
) -> TrackOrderResponse:
    return TrackOrderResponse(**service.track_order(reference, customer_id))


@order_router.put("/{reference}/cancel", response_model=OrderResponse)
def cancel_order(
    reference: str,
    body: CancelOrderRequest,
    service: OrderService = Depends(get_order_service),
) -> OrderResponse:
    order = service.cancel_order(reference, body.customer_id, body.reason)
    return _order_response(order)


# ---------------------------------------------------------------------------
# Admin Router
# ---------------------------------------------------------------------------
admin_router = APIRouter(prefix="/admin", tags=["admin"])


@admin_router.get("/orders", response_model=OrderListResponse)
def list_all_orders(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    status: str | None = None,
    service: OrderService = Depends(get_order_service),
) -> OrderListResponse:
    return _order_list_response(service.list_all_orders(page=page, limit=limit, status=status))


@admin_router.put("/orders/{reference}/status", response_model=OrderResponse)
def update_order_status(
    reference: str,
    body: UpdateStatusRequest,
    service: OrderService = Depends(get_order_service),
) -> OrderResponse:
    order = service.transition_status(reference, body.status, message=body.message, location=body.location)
    return _order_response(order)


@admin_router.put("/orders/{reference}/notes", response_model=OrderResponse)
def update_order_notes(
    reference: str,
    body: UpdateNotesRequest,
    service: OrderService = Depends(get_order_service),
) -> OrderResponse:
    return _order_response(service.update_admin_notes(reference, body.admin_notes))


@admin_router.put("/orders/{reference}/payment", response_model=OrderResponse)
def record_order_payment(
    reference: str,
    body: RecordPaymentRequest,
    service: OrderService = Depends(get_order_service),
) -> OrderResponse:
    order = service.record_payment(
        reference,
        body.payment_status,
        transaction_id=body.transaction_id,
        gateway_order_id=body.gateway_order_id,
        gateway_payment_id=body.gateway_payment_id,
    )
    return _order_response(order)
