# storefront/domain/identity.py
from dataclasses import dataclass
from typing import Union


@dataclass(frozen=True)
class UserIdentity:
    """Authenticated caller."""

    user_id: int

    @property
    def owner_key(self) -> str:
        return f"user:{self.user_id}"


@dataclass(frozen=True)
class SessionIdentity:
    """Anonymous caller keyed by a client-generated session token."""

    token: str

    @property
    def owner_key(self) -> str:
        return f"session:{self.token}"


Identity = Union[UserIdentity, SessionIdentity]


def owner_columns(identity: Identity) -> dict:
    """Column values identifying the owner of a cart or order row."""
    if isinstance(identity, UserIdentity):
        return {"user_id": identity.user_id, "session_token": None}
    return {"user_id": None, "session_token": identity.token}
