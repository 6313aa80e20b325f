"""
Purpose: Who is calling, and what they may do.
Authentication happens upstream (Django/DRF); this module only answers
"does this caller have role X" in the vocabulary of the tracking service.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Iterable

from trips.errors import Forbidden


class Role(str, Enum):
    CUSTOMER = "CUSTOMER"
    RIDER = "RIDER"
    STORE_MANAGER = "STORE_MANAGER"
    ADMIN = "ADMIN"


# Roles allowed to run a trip: start it, push locations, confirm deliveries.
# A plain RIDER may only touch trips assigned to them.
RIDER_ROLES = frozenset({Role.RIDER, Role.STORE_MANAGER, Role.ADMIN})


@dataclass(frozen=True)
class Caller:
    user_id: str
    role: Role

    @classmethod
    def new(cls, user_id, role) -> "Caller":
        return cls(user_id=str(user_id), role=Role(role))

    @property
    def is_customer(self) -> bool:
        return self.role == Role.CUSTOMER


def require_role(caller: Caller, roles: Iterable[Role]) -> None:
    if caller.role not in roles:
        raise Forbidden("Insufficient permissions")
