"""ClassroomClient: the action/query surface a user interface calls.

One client serves one device. It ties together the session (who is acting),
the synchronization layer (what the class has ordered so far) and the
ordering rules. Each action follows the same steps:

1. apply queued remote snapshots,
2. check who is acting (``AccessDenied`` for the wrong role or nobody),
3. check the store is online and the rules allow it,
4. change the aggregate and commit it to the mirror, which publishes it.

A rule that says no is not an error. The action returns False and the
reasons are kept in ``last_refusal`` so the UI can disable its control.
Bad input (an unknown menu item, a non-positive price cap) raises Protean's
``ValidationError`` or ``ObjectNotFoundError``.

Every call must run inside the domain context (``classorder.domain_context()``).
"""

from datetime import UTC, datetime, timedelta

import structlog
from protean.exceptions import ObjectNotFoundError

from classorder.config import ClientConfig
from classorder.exceptions import AccessDenied
from classorder.menu.catalog import get_menu_item, menu_items
from classorder.order.order import StudentOrder
from classorder.order.policy import (
    Blocker,
    can_add,
    can_adjust,
    can_submit,
    main_count,
    set_count,
    submission_blockers,
)
from classorder.reporting import export, stats
from classorder.session.identity import Role
from classorder.session.resolver import SessionResolver, SessionStore
from classorder.store.firebase import FirebaseStore
from classorder.store.memory import InMemoryStore
from classorder.sync.mirror import OrderSync

logger = structlog.get_logger(__name__)

STORE_OFFLINE = "STORE_OFFLINE"
NOT_SUBMITTED = "NOT_SUBMITTED"


def build_store(config):
    """Firebase when a database URL is configured, otherwise an in-process store."""
    if config.store_url:
        return FirebaseStore(config.store_url, auth=config.store_auth)
    return InMemoryStore()


class ClassroomClient:
    def __init__(self, sync, sessions):
        self.sync = sync
        self.sessions = sessions
        self.last_refusal = []

    @classmethod
    def from_config(cls, config=None):
        config = config or ClientConfig.from_env()
        sync = OrderSync(build_store(config), default_max_price=config.default_max_price)
        sessions = SessionResolver(SessionStore(config.session_file), config.admin_passphrase)
        return cls(sync, sessions)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------
    def start(self):
        """Connect to the store and bring back the last session, if any."""
        self.sync.connect()
        identity = self.sessions.restore()
        if identity is not None and identity.is_student and self.sync.is_online:
            self._ensure_order(identity)
        return self.state

    def close(self):
        self.sync.close()

    def login(self, name, seat_number, is_admin=False, passphrase=None):
        identity = self.sessions.login(name, seat_number, is_admin=is_admin, passphrase=passphrase)
        self.sync.pump()
        if identity.is_student and self.sync.is_online:
            self._ensure_order(identity)
        return identity

    def logout(self):
        self.sessions.logout()

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------
    @property
    def identity(self):
        return self.sessions.current

    @property
    def state(self):
        return self.sync.state

    @property
    def settings(self):
        self.sync.pump()
        return self.sync.settings

    @property
    def orders(self):
        self.sync.pump()
        return list(self.sync.orders.values())

    @property
    def current_order(self):
        """The acting student's order; None for the administrator or nobody."""
        self.sync.pump()
        identity = self.identity
        if identity is None or not identity.is_student:
            return None
        return self.sync.order_for(identity.user_id)

    @property
    def notices(self):
        return self.sync.notices

    def menu(self, category=None):
        return menu_items(category)

    def can_add(self, item_id):
        order = self.current_order
        if order is None or not self.sync.is_online or not self.sync.settings.is_open:
            return False
        return can_add(order, get_menu_item(item_id))

    def can_submit(self):
        order = self.current_order
        return order is not None and self.sync.is_online and can_submit(order, self.sync.settings)

    def can_withdraw(self):
        order = self.current_order
        return order is not None and self.sync.is_online and order.is_submitted and self.sync.settings.is_open

    def time_remaining(self, now=None):
        return self.settings.time_remaining(now)

    def cart_summary(self):
        order = self.current_order
        settings = self.sync.settings
        if order is None:
            return None
        return {
            "order_id": str(order.id),
            "status": order.status,
            "lines": [
                {
                    "item_id": line.item_id,
                    "name": line.name,
                    "price": line.price,
                    "category": line.category,
                    "quantity": line.quantity,
                    "subtotal": line.subtotal,
                }
                for line in order.items
            ],
            "total_price": order.total_price,
            "max_price": settings.max_price,
            "over_budget": order.total_price > settings.max_price,
            "main_count": main_count(order),
            "set_count": set_count(order),
            "blockers": [blocker.value for blocker in submission_blockers(order, settings)],
            "can_submit": self.can_submit(),
            "can_withdraw": self.can_withdraw(),
        }

    # Administrator reports

    def dashboard(self):
        self._require(Role.ADMIN)
        return stats.dashboard(self.orders, self.sync.settings)

    def item_tallies(self):
        self._require(Role.ADMIN)
        return stats.tally_items(self.orders)

    def search_orders(self, term=""):
        self._require(Role.ADMIN)
        return stats.search_orders(self.orders, term)

    def export_csv(self):
        self._require(Role.ADMIN)
        return export.export_csv(self.orders)

    def export_filename(self, day=None):
        return export.export_filename(day)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------
    def _require(self, role):
        identity = self.identity
        if identity is None:
            raise AccessDenied("Nobody is logged in")
        if identity.role != role.value:
            raise AccessDenied(f"Only a {role.value.lower()} may do this")
        return identity

    def _begin(self, role):
        """Common start of every action: fresh snapshots, right role, store online."""
        self.last_refusal = []
        self.sync.pump()
        identity = self._require(role)
        if not self.sync.is_online:
            return None
        return identity

    def _refuse(self, action, *reasons):
        self.last_refusal = [getattr(reason, "value", reason) for reason in reasons]
        logger.info("action_refused", action=action, reasons=self.last_refusal)
        return False

    def _ensure_order(self, identity):
        order = self.sync.order_for(identity.user_id)
        if order is None:
            order = StudentOrder.open(identity.user_id, identity.name, identity.seat_number)
            self.sync.commit_order(order)
            logger.info("order_opened", order_id=str(order.id), user_id=identity.user_id)
        return order

    def _student_order(self, action):
        """The acting student's order, or None when the action cannot go ahead."""
        identity = self._begin(Role.STUDENT)
        if identity is None:
            self._refuse(action, STORE_OFFLINE)
            return None
        # Recreated when an administrator removed every order
        order = self._ensure_order(identity)
        if not self.sync.settings.is_open:
            self._refuse(action, Blocker.SYSTEM_CLOSED)
            return None
        return order

    def _admin(self, action):
        identity = self._begin(Role.ADMIN)
        if identity is None:
            self._refuse(action, STORE_OFFLINE)
        return identity

    # ------------------------------------------------------------------
    # Student actions
    # ------------------------------------------------------------------
    def add_item(self, item_id):
        menu_item = get_menu_item(item_id)
        order = self._student_order("add_item")
        if order is None:
            return False
        if not order.is_draft:
            return self._refuse("add_item", Blocker.NOT_DRAFT)
        if not can_add(order, menu_item):
            return self._refuse("add_item", Blocker.SET_EXCEEDS_MAIN)

        order.add_item(menu_item)
        self.sync.commit_order(order)
        return True

    def remove_item(self, item_id):
        order = self._student_order("remove_item")
        if order is None:
            return False
        if not order.is_draft:
            return self._refuse("remove_item", Blocker.NOT_DRAFT)

        order.remove_item(item_id)
        self.sync.commit_order(order)
        return True

    def set_quantity(self, item_id, delta):
        """Move a cart line's quantity by ``delta``; zero or below removes it."""
        order = self._student_order("set_quantity")
        if order is None:
            return False
        if not order.is_draft:
            return self._refuse("set_quantity", Blocker.NOT_DRAFT)
        if not can_adjust(order, item_id, delta):
            return self._refuse("set_quantity", Blocker.SET_EXCEEDS_MAIN)

        order.adjust_quantity(item_id, delta)
        self.sync.commit_order(order)
        return True

    def submit(self):
        order = self._student_order("submit")
        if order is None:
            return False
        blockers = submission_blockers(order, self.sync.settings)
        if blockers:
            return self._refuse("submit", *blockers)

        order.submit(self.sync.settings)
        self.sync.commit_order(order)
        logger.info("order_submitted", order_id=str(order.id), total_price=order.total_price)
        return True

    def cancel(self):
        """Take a submitted order back to draft. Refused once ordering is closed."""
        order = self._student_order("cancel")
        if order is None:
            return False
        if not order.is_submitted:
            return self._refuse("cancel", NOT_SUBMITTED)

        order.withdraw()
        self.sync.commit_order(order)
        return True

    # ------------------------------------------------------------------
    # Administrator actions
    # ------------------------------------------------------------------
    def toggle_system(self, is_open):
        if self._admin("toggle_system") is None:
            return False
        settings = self.sync.settings
        settings.toggle(is_open)
        self.sync.commit_settings(settings)
        logger.info("ordering_toggled", is_open=settings.is_open)
        return True

    def set_deadline(self, deadline):
        if self._admin("set_deadline") is None:
            return False
        settings = self.sync.settings
        settings.set_deadline(deadline)
        self.sync.commit_settings(settings)
        return True

    def extend_deadline(self, minutes=60, now=None):
        """Set the deadline ``minutes`` from now, like the quick "+1 hour" button."""
        now = now or datetime.now(UTC)
        return self.set_deadline(now + timedelta(minutes=minutes))

    def clear_deadline(self):
        return self.set_deadline(None)

    def set_max_price(self, amount):
        if self._admin("set_max_price") is None:
            return False
        settings = self.sync.settings
        settings.set_max_price(amount)
        self.sync.commit_settings(settings)
        return True

    def reset_order(self, order_id):
        """Empty one order and return it to draft, whatever its status."""
        if self._admin("reset_order") is None:
            return False
        order = self.sync.find_order(order_id)
        if order is None:
            raise ObjectNotFoundError(f"Order {order_id!r} does not exist")

        order.reset()
        self.sync.commit_order(order)
        logger.info("order_reset", order_id=str(order.id), user_id=str(order.user_id))
        return True

    def reset_all(self):
        """Delete every order; students get a fresh one on their next action."""
        if self._admin("reset_all") is None:
            return False
        self.sync.discard_orders()
        return True

    # ------------------------------------------------------------------
    # Write failures
    # ------------------------------------------------------------------
    def retry_failed_writes(self):
        self.sync.pump()
        if not self.sync.is_online:
            return 0
        return self.sync.retry_failed_writes()

    def dismiss_notices(self):
        self.sync.dismiss_notices()
