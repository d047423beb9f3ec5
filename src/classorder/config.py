"""Runtime configuration for a classroom ordering client.

Values come from the environment so the same build can point at a shared
Realtime Database in class and at an in-process store everywhere else.
"""

import os
from dataclasses import dataclass
from pathlib import Path

ADMIN_USER_ID = "admin"
ADMIN_NAME = "小老師"
ADMIN_SEAT = "ADMIN"

DEFAULT_MAX_PRICE = 170
DEFAULT_ADMIN_PASSPHRASE = "admin"
DEFAULT_SESSION_FILE = "data/session.json"

ORDERS_PATH = "orders"
SETTINGS_PATH = "settings"


@dataclass(frozen=True)
class ClientConfig:
    """Settings for one client process."""

    store_url: str | None = None
    store_auth: str | None = None
    admin_passphrase: str = DEFAULT_ADMIN_PASSPHRASE
    session_file: Path = Path(DEFAULT_SESSION_FILE)
    default_max_price: int = DEFAULT_MAX_PRICE

    @classmethod
    def from_env(cls) -> "ClientConfig":
        return cls(
            store_url=os.getenv("CLASSORDER_STORE_URL") or None,
            store_auth=os.getenv("CLASSORDER_STORE_AUTH") or None,
            admin_passphrase=os.getenv("CLASSORDER_ADMIN_PASSPHRASE", DEFAULT_ADMIN_PASSPHRASE),
            session_file=Path(os.getenv("CLASSORDER_SESSION_FILE", DEFAULT_SESSION_FILE)),
            default_max_price=int(os.getenv("CLASSORDER_DEFAULT_MAX_PRICE", DEFAULT_MAX_PRICE)),
        )
