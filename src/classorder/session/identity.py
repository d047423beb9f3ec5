"""Identity value object: who is acting on this client."""

from enum import Enum

from protean import invariant
from protean.exceptions import ValidationError
from protean.fields import String

from classorder.config import ADMIN_NAME, ADMIN_SEAT, ADMIN_USER_ID
from classorder.domain import classorder


class Role(Enum):
    STUDENT = "STUDENT"
    ADMIN = "ADMIN"


@classorder.value_object
class Identity:
    """The acting student or the administrator.

    A student's ``user_id`` is their sanitized seat number, so logging in again
    with the same seat always lands on the same order. The administrator uses
    fixed sentinel values and owns no order.
    """

    user_id: String(required=True, max_length=50)
    name: String(required=True, max_length=100)
    seat_number: String(required=True, max_length=50)
    role: String(required=True, choices=Role)

    @invariant.post
    def admin_uses_sentinel_id(self):
        if self.role == Role.ADMIN.value and self.user_id != ADMIN_USER_ID:
            raise ValidationError({"user_id": [f"Administrator id must be {ADMIN_USER_ID!r}"]})

    @classmethod
    def student(cls, user_id, name, seat_number):
        return cls(user_id=user_id, name=name, seat_number=seat_number, role=Role.STUDENT.value)

    @classmethod
    def admin(cls):
        return cls(user_id=ADMIN_USER_ID, name=ADMIN_NAME, seat_number=ADMIN_SEAT, role=Role.ADMIN.value)

    @property
    def is_admin(self):
        return self.role == Role.ADMIN.value

    @property
    def is_student(self):
        return self.role == Role.STUDENT.value

    def to_document(self):
        """Session-file form, in the same camelCase as the shared store."""
        return {
            "id": self.user_id,
            "name": self.name,
            "seatNumber": self.seat_number,
            "role": self.role,
        }

    @classmethod
    def from_document(cls, data):
        return cls(
            user_id=data["id"],
            name=data["name"],
            seat_number=data["seatNumber"],
            role=data["role"],
        )
