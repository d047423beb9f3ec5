"""FastAPI routes over the ClassroomClient held in ``app.state.client``."""

from fastapi import APIRouter, Request
from fastapi.responses import Response

from classorder.api.schemas import (
    ActionResponse,
    AddItemRequest,
    AdjustQuantityRequest,
    CartResponse,
    DashboardResponse,
    DeadlineRequest,
    ExtendDeadlineRequest,
    IdentityResponse,
    ItemTallySchema,
    LoginRequest,
    MaxPriceRequest,
    MenuItemSchema,
    OrderSummarySchema,
    RetryResponse,
    SettingsResponse,
    StatusResponse,
    SyncStatusResponse,
    ToggleSystemRequest,
    WriteFailureSchema,
)
from classorder.client import ClassroomClient
from classorder.reporting.export import item_details


def _client(request: Request) -> ClassroomClient:
    return request.app.state.client


def _outcome(client: ClassroomClient, accepted: bool) -> ActionResponse:
    return ActionResponse(accepted=accepted, blockers=[] if accepted else client.last_refusal)


def _identity_response(identity) -> IdentityResponse:
    return IdentityResponse(
        user_id=identity.user_id,
        name=identity.name,
        seat_number=identity.seat_number,
        role=identity.role,
    )


# ---------------------------------------------------------------------------
# Session Router
# ---------------------------------------------------------------------------
session_router = APIRouter(prefix="/session", tags=["session"])


@session_router.post("/login", response_model=IdentityResponse)
async def login(request: Request, body: LoginRequest) -> IdentityResponse:
    identity = _client(request).login(
        body.name,
        body.seat_number,
        is_admin=body.is_admin,
        passphrase=body.passphrase,
    )
    return _identity_response(identity)


@session_router.post("/logout", response_model=StatusResponse)
async def logout(request: Request) -> StatusResponse:
    _client(request).logout()
    return StatusResponse()


@session_router.get("", response_model=IdentityResponse | None)
async def current_identity(request: Request) -> IdentityResponse | None:
    identity = _client(request).identity
    return _identity_response(identity) if identity else None


# ---------------------------------------------------------------------------
# Shared queries
# ---------------------------------------------------------------------------
query_router = APIRouter(tags=["queries"])


@query_router.get("/menu", response_model=list[MenuItemSchema])
async def menu(request: Request, category: str | None = None) -> list[MenuItemSchema]:
    return [
        MenuItemSchema(
            item_id=item.item_id,
            name=item.name,
            price=item.price,
            category=item.category.value,
            category_label=item.category_label,
        )
        for item in _client(request).menu(category)
    ]


@query_router.get("/settings", response_model=SettingsResponse)
async def settings(request: Request) -> SettingsResponse:
    client = _client(request)
    current = client.settings
    remaining = client.time_remaining()
    return SettingsResponse(
        is_open=current.is_open,
        deadline=current.deadline,
        max_price=current.max_price,
        seconds_remaining=int(remaining.total_seconds()) if remaining is not None else None,
    )


@query_router.get("/sync", response_model=SyncStatusResponse)
async def sync_status(request: Request) -> SyncStatusResponse:
    client = _client(request)
    return SyncStatusResponse(
        state=client.state.value,
        notices=[
            WriteFailureSchema(path=notice.path, message=notice.message, occurred_at=notice.occurred_at)
            for notice in client.notices
        ],
        failed_paths=client.sync.failed_paths,
    )


@query_router.post("/sync/retry", response_model=RetryResponse)
async def retry_writes(request: Request) -> RetryResponse:
    return RetryResponse(retried=_client(request).retry_failed_writes())


@query_router.delete("/sync/notices", response_model=StatusResponse)
async def dismiss_notices(request: Request) -> StatusResponse:
    _client(request).dismiss_notices()
    return StatusResponse()


# ---------------------------------------------------------------------------
# Cart Router (student)
# ---------------------------------------------------------------------------
cart_router = APIRouter(prefix="/cart", tags=["cart"])


@cart_router.get("", response_model=CartResponse | None)
async def cart(request: Request) -> CartResponse | None:
    summary = _client(request).cart_summary()
    return CartResponse(**summary) if summary else None


@cart_router.post("/items", response_model=ActionResponse)
async def add_item(request: Request, body: AddItemRequest) -> ActionResponse:
    client = _client(request)
    return _outcome(client, client.add_item(body.item_id))


@cart_router.patch("/items/{item_id}", response_model=ActionResponse)
async def adjust_quantity(request: Request, item_id: str, body: AdjustQuantityRequest) -> ActionResponse:
    client = _client(request)
    return _outcome(client, client.set_quantity(item_id, body.delta))


@cart_router.delete("/items/{item_id}", response_model=ActionResponse)
async def remove_item(request: Request, item_id: str) -> ActionResponse:
    client = _client(request)
    return _outcome(client, client.remove_item(item_id))


@cart_router.post("/submit", response_model=ActionResponse)
async def submit(request: Request) -> ActionResponse:
    client = _client(request)
    return _outcome(client, client.submit())


@cart_router.post("/cancel", response_model=ActionResponse)
async def cancel(request: Request) -> ActionResponse:
    client = _client(request)
    return _outcome(client, client.cancel())


# ---------------------------------------------------------------------------
# Admin Router
# ---------------------------------------------------------------------------
admin_router = APIRouter(prefix="/admin", tags=["admin"])


@admin_router.put("/system", response_model=ActionResponse)
async def toggle_system(request: Request, body: ToggleSystemRequest) -> ActionResponse:
    client = _client(request)
    return _outcome(client, client.toggle_system(body.is_open))


@admin_router.put("/deadline", response_model=ActionResponse)
async def set_deadline(request: Request, body: DeadlineRequest) -> ActionResponse:
    client = _client(request)
    return _outcome(client, client.set_deadline(body.deadline))


@admin_router.post("/deadline/extend", response_model=ActionResponse)
async def extend_deadline(request: Request, body: ExtendDeadlineRequest) -> ActionResponse:
    client = _client(request)
    return _outcome(client, client.extend_deadline(body.minutes))


@admin_router.delete("/deadline", response_model=ActionResponse)
async def clear_deadline(request: Request) -> ActionResponse:
    client = _client(request)
    return _outcome(client, client.clear_deadline())


@admin_router.put("/max-price", response_model=ActionResponse)
async def set_max_price(request: Request, body: MaxPriceRequest) -> ActionResponse:
    client = _client(request)
    return _outcome(client, client.set_max_price(body.max_price))


@admin_router.post("/orders/{order_id}/reset", response_model=ActionResponse)
async def reset_order(request: Request, order_id: str) -> ActionResponse:
    client = _client(request)
    return _outcome(client, client.reset_order(order_id))


@admin_router.delete("/orders", response_model=ActionResponse)
async def reset_all(request: Request) -> ActionResponse:
    client = _client(request)
    return _outcome(client, client.reset_all())


@admin_router.get("/orders", response_model=list[OrderSummarySchema])
async def search_orders(request: Request, term: str = "") -> list[OrderSummarySchema]:
    return [
        OrderSummarySchema(
            order_id=str(order.id),
            user_id=str(order.user_id),
            user_name=order.user_name,
            seat_number=order.seat_number,
            status=order.status,
            total_price=order.total_price,
            items=item_details(order),
        )
        for order in _client(request).search_orders(term)
    ]


@admin_router.get("/dashboard", response_model=DashboardResponse)
async def dashboard(request: Request) -> DashboardResponse:
    return DashboardResponse(**_client(request).dashboard())


@admin_router.get("/tallies", response_model=list[ItemTallySchema])
async def item_tallies(request: Request) -> list[ItemTallySchema]:
    return [
        ItemTallySchema(item_id=row.item_id, name=row.name, quantity=row.quantity, revenue=row.revenue)
        for row in _client(request).item_tallies()
    ]


@admin_router.get("/export")
async def export_csv(request: Request) -> Response:
    client = _client(request)
    return Response(
        content=client.export_csv().encode("utf-8"),
        media_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": f'attachment; filename="{client.export_filename()}"'},
    )
