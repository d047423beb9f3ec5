"""Class-wide figures for the administrator: item tallies, dashboard, search.

Only SUBMITTED orders count towards tallies and revenue; drafts are work in
progress and may still change.
"""

from dataclasses import dataclass


@dataclass(frozen=True)
class ItemTally:
    item_id: str
    name: str
    quantity: int
    revenue: int


def submitted_orders(orders):
    return [order for order in orders if order.is_submitted]


def seat_sort_key(seat_number):
    """Sort numeric seats by value ("2" before "10") and anything else after them."""
    seat = str(seat_number).strip()
    if seat.isdigit():
        return (0, int(seat), seat)
    return (1, 0, seat)


def tally_items(orders) -> list[ItemTally]:
    """Units and revenue per menu item, busiest item first."""
    tallies = {}
    for order in submitted_orders(orders):
        for line in order.items:
            name, quantity, revenue = tallies.get(line.item_id, (line.name, 0, 0))
            tallies[line.item_id] = (name, quantity + line.quantity, revenue + line.subtotal)

    rows = [
        ItemTally(item_id=item_id, name=name, quantity=quantity, revenue=revenue)
        for item_id, (name, quantity, revenue) in tallies.items()
    ]
    return sorted(rows, key=lambda row: row.quantity, reverse=True)


def total_revenue(orders) -> int:
    return sum(row.revenue for row in tally_items(orders))


def dashboard(orders, settings) -> dict:
    orders = list(orders)
    submitted = submitted_orders(orders)
    return {
        "order_count": len(orders),
        "submitted_count": len(submitted),
        "draft_count": sum(1 for order in orders if order.is_draft),
        "revenue": total_revenue(orders),
        "is_open": settings.is_open,
        "deadline": settings.deadline,
        "max_price": settings.max_price,
        # Orders submitted under an older, higher cap
        "over_budget": sorted(str(order.id) for order in submitted if order.total_price > settings.max_price),
    }


def search_orders(orders, term=""):
    """Orders whose student name or seat contains ``term``, in seat order."""
    term = (term or "").strip()
    matches = [order for order in orders if term in order.user_name or term in order.seat_number]
    return sorted(matches, key=lambda order: seat_sort_key(order.seat_number))
