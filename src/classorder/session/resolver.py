"""Session resolution: turn a login form into an Identity and remember it.

Students are identified by seat, which also becomes their key in the shared
store, so seat and name are cleaned of the characters the store cannot have
in a path. The administrator proves nothing beyond a shared passphrase;
everything after login trusts the cached identity.
"""

import json
import unicodedata
from pathlib import Path

import structlog
from protean.exceptions import ValidationError

from classorder.session.identity import Identity

logger = structlog.get_logger(__name__)

SESSION_KEY = "classorder.current_user"

# Characters the Realtime Database refuses in keys and paths
_UNSAFE_KEY_CHARS = frozenset(".#$[]/")


def sanitize_key(value):
    """Strip a value down to something usable as a store key."""
    if value is None:
        return ""
    cleaned = "".join(
        char
        for char in str(value)
        if char not in _UNSAFE_KEY_CHARS and unicodedata.category(char) != "Cc"
    )
    return cleaned.strip()


class SessionStore:
    """The identity of the last login, kept in a small JSON file."""

    def __init__(self, path):
        self.path = Path(path)

    def load(self):
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return None
        except (OSError, ValueError) as exc:
            logger.warning("session_file_unreadable", path=str(self.path), error=str(exc))
            return None
        if not isinstance(data, dict):
            return None
        return data.get(SESSION_KEY)

    def save(self, identity):
        self.path.parent.mkdir(parents=True, exist_ok=True)
        payload = {SESSION_KEY: identity.to_document()}
        self.path.write_text(json.dumps(payload, ensure_ascii=False), encoding="utf-8")

    def clear(self):
        self.path.unlink(missing_ok=True)


class SessionResolver:
    """Establishes, restores and forgets the acting identity."""

    def __init__(self, store, admin_passphrase):
        self.store = store
        self.admin_passphrase = admin_passphrase
        self.current = None

    def login(self, name, seat_number, is_admin=False, passphrase=None):
        if is_admin:
            if passphrase != self.admin_passphrase:
                logger.warning("admin_login_rejected")
                raise ValidationError({"passphrase": ["Incorrect administrator passphrase"]})
            identity = Identity.admin()
        else:
            seat = sanitize_key(seat_number)
            student_name = (name or "").strip()
            errors = {}
            if not student_name:
                errors["name"] = ["Name is required"]
            if not seat:
                errors["seat_number"] = ["Seat number is required"]
            if errors:
                raise ValidationError(errors)
            identity = Identity.student(user_id=seat, name=student_name, seat_number=seat)

        self.store.save(identity)
        self.current = identity
        logger.info("session_established", user_id=identity.user_id, role=identity.role)
        return identity

    def logout(self):
        """Forget the identity. Orders and settings in the store are untouched."""
        if self.current is not None:
            logger.info("session_ended", user_id=self.current.user_id)
        self.current = None
        self.store.clear()

    def restore(self):
        """Bring back the identity saved by an earlier login, if it is still readable."""
        data = self.store.load()
        if not data:
            return None
        try:
            identity = Identity.from_document(data)
        except (KeyError, TypeError, ValidationError) as exc:
            logger.warning("session_restore_failed", error=str(exc))
            return None
        self.current = identity
        logger.info("session_restored", user_id=identity.user_id, role=identity.role)
        return identity
