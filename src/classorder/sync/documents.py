"""Wire documents for the shared store.

Orders and settings travel as camelCase JSON with epoch-millisecond times,
the shape every client of the class shares:

    orders/<userId>  {id, userId, userName, seatNumber,
                      items: [{menuItem: {id, name, price, category}, quantity}],
                      totalPrice, status, timestamp}
    settings         {isOpen, deadline, maxPrice}

Reading is forgiving. The store drops empty lists, so an order without
``items`` is an empty cart; lines that cannot be priced or counted are
dropped; ``totalPrice`` is always recomputed from the lines that remain.
"""

from datetime import UTC, datetime

import structlog
from protean.exceptions import ValidationError

from classorder.config import DEFAULT_MAX_PRICE
from classorder.menu.catalog import Category
from classorder.order.order import CartLine, OrderStatus, StudentOrder, new_order_id
from classorder.settings.settings import SETTINGS_ID, SystemSettings

logger = structlog.get_logger(__name__)


def to_millis(moment):
    if moment is None:
        return None
    return int(moment.timestamp() * 1000)


def from_millis(value):
    if value is None or isinstance(value, bool):
        return None
    try:
        return datetime.fromtimestamp(int(value) / 1000, tz=UTC)
    except (TypeError, ValueError, OverflowError, OSError):
        return None


def _positive_int(value):
    if isinstance(value, bool):
        return None
    try:
        number = int(value)
    except (TypeError, ValueError):
        return None
    if number != value and not isinstance(value, str):
        return None
    return number if number > 0 else None


# ---------------------------------------------------------------------------
# Orders
# ---------------------------------------------------------------------------
def order_to_document(order):
    return {
        "id": str(order.id),
        "userId": str(order.user_id),
        "userName": order.user_name,
        "seatNumber": order.seat_number,
        "items": [
            {
                "menuItem": {
                    "id": line.item_id,
                    "name": line.name,
                    "price": line.price,
                    "category": line.category,
                },
                "quantity": line.quantity,
            }
            for line in order.items
        ],
        "totalPrice": order.total_price,
        "status": order.status,
        "timestamp": to_millis(order.updated_at),
    }


def _raw_lines(items):
    if items is None:
        return []
    # Arrays with gaps come back from the store as index-keyed objects
    if isinstance(items, dict):
        keys = sorted(items, key=lambda key: int(key) if str(key).isdigit() else float("inf"))
        return [items[key] for key in keys]
    if isinstance(items, list):
        return items
    return []


def _read_lines(items):
    lines = {}
    for raw in _raw_lines(items):
        if not isinstance(raw, dict) or not isinstance(raw.get("menuItem"), dict):
            continue
        menu_item = raw["menuItem"]
        item_id = menu_item.get("id")
        price = _positive_int(menu_item.get("price"))
        quantity = _positive_int(raw.get("quantity"))
        category = menu_item.get("category")
        if not item_id or price is None or quantity is None or category not in Category._value2member_map_:
            continue

        if item_id in lines:
            lines[item_id]["quantity"] += quantity
        else:
            lines[item_id] = {
                "item_id": str(item_id),
                "name": str(menu_item.get("name") or item_id),
                "price": price,
                "category": category,
                "quantity": quantity,
            }
    return list(lines.values())


def order_from_document(data, user_id=None):
    """Build a StudentOrder from a stored document, normalizing as it goes."""
    user_id = str(data.get("userId") or user_id or "")
    lines = [CartLine(**fields) for fields in _read_lines(data.get("items"))]

    status = data.get("status")
    if status not in OrderStatus._value2member_map_:
        status = OrderStatus.DRAFT.value

    return StudentOrder(
        id=str(data.get("id") or new_order_id()),
        user_id=user_id,
        user_name=str(data.get("userName") or user_id),
        seat_number=str(data.get("seatNumber") or user_id),
        items=lines,
        total_price=sum(line.price * line.quantity for line in lines),
        status=status,
        updated_at=from_millis(data.get("timestamp")),
    )


def orders_from_snapshot(snapshot):
    """Turn the whole ``orders`` collection into a mirror keyed by user id."""
    if not isinstance(snapshot, dict):
        return {}

    orders = {}
    for key, data in snapshot.items():
        if not isinstance(data, dict):
            continue
        try:
            order = order_from_document(data, user_id=key)
        except ValidationError as exc:
            logger.warning("order_document_skipped", key=key, errors=exc.messages)
            continue
        orders[str(order.user_id)] = order
    return orders


# ---------------------------------------------------------------------------
# Settings
# ---------------------------------------------------------------------------
def settings_to_document(settings):
    return {
        "isOpen": settings.is_open,
        "deadline": to_millis(settings.deadline),
        "maxPrice": settings.max_price,
    }


def settings_from_document(data, default_max_price=DEFAULT_MAX_PRICE):
    """Read the settings singleton; anything missing takes its default."""
    if not isinstance(data, dict):
        return SystemSettings.initial(max_price=default_max_price)

    is_open = data.get("isOpen")
    return SystemSettings(
        id=SETTINGS_ID,
        is_open=is_open if isinstance(is_open, bool) else True,
        deadline=from_millis(data.get("deadline")),
        max_price=_positive_int(data.get("maxPrice")) or default_max_price,
    )
