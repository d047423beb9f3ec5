"""Pydantic request/response schemas for the classroom ordering API.

These are the contracts a user interface codes against. They stay separate
from the Protean aggregates behind the client.
"""

from datetime import datetime

from pydantic import BaseModel, Field


# ---------------------------------------------------------------------------
# Session
# ---------------------------------------------------------------------------
class LoginRequest(BaseModel):
    name: str = ""
    seat_number: str = ""
    is_admin: bool = False
    passphrase: str | None = None

    model_config = {
        "json_schema_extra": {
            "examples": [
                {"name": "王小明", "seat_number": "12", "is_admin": False},
                {"is_admin": True, "passphrase": "admin"},
            ]
        }
    }


class IdentityResponse(BaseModel):
    user_id: str
    name: str
    seat_number: str
    role: str


# ---------------------------------------------------------------------------
# Student actions
# ---------------------------------------------------------------------------
class AddItemRequest(BaseModel):
    item_id: str


class AdjustQuantityRequest(BaseModel):
    delta: int


# ---------------------------------------------------------------------------
# Administrator actions
# ---------------------------------------------------------------------------
class ToggleSystemRequest(BaseModel):
    is_open: bool


class DeadlineRequest(BaseModel):
    deadline: datetime | None = None


class ExtendDeadlineRequest(BaseModel):
    minutes: int = Field(default=60, ge=1)


class MaxPriceRequest(BaseModel):
    max_price: int = Field(ge=1)


# ---------------------------------------------------------------------------
# Responses
# ---------------------------------------------------------------------------
class ActionResponse(BaseModel):
    """Outcome of an action; a refusal lists why, for disabling the control."""

    accepted: bool
    blockers: list[str] = []


class StatusResponse(BaseModel):
    status: str = "ok"


class MenuItemSchema(BaseModel):
    item_id: str
    name: str
    price: int
    category: str
    category_label: str


class SettingsResponse(BaseModel):
    is_open: bool
    deadline: datetime | None = None
    max_price: int
    seconds_remaining: int | None = None


class WriteFailureSchema(BaseModel):
    path: str
    message: str
    occurred_at: datetime


class SyncStatusResponse(BaseModel):
    state: str
    notices: list[WriteFailureSchema] = []
    failed_paths: list[str] = []


class RetryResponse(BaseModel):
    retried: int


class CartLineSchema(BaseModel):
    item_id: str
    name: str
    price: int
    category: str
    quantity: int
    subtotal: int


class CartResponse(BaseModel):
    order_id: str
    status: str
    lines: list[CartLineSchema]
    total_price: int
    max_price: int
    over_budget: bool
    main_count: int
    set_count: int
    blockers: list[str]
    can_submit: bool
    can_withdraw: bool


class OrderSummarySchema(BaseModel):
    order_id: str
    user_id: str
    user_name: str
    seat_number: str
    status: str
    total_price: int
    items: str


class ItemTallySchema(BaseModel):
    item_id: str
    name: str
    quantity: int
    revenue: int


class DashboardResponse(BaseModel):
    order_count: int
    submitted_count: int
    draft_count: int
    revenue: int
    is_open: bool
    deadline: datetime | None = None
    max_price: int
    over_budget: list[str]
