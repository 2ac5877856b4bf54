"""Role -> capability mapping.

Routes ask for a capability (``resource:action``) instead of checking the role
string themselves. Ownership rules (a user editing their own record or their
own reservations) are decided in the route with ``can_act_on``.
"""

from __future__ import annotations

from typing import Any, Callable, Dict, FrozenSet

from fastapi import Depends, HTTPException

from .deps import get_current_user


RESTAURANTS_READ = "restaurants:read"
RESTAURANTS_WRITE = "restaurants:write"
USERS_READ_ANY = "users:read_any"
USERS_WRITE_ANY = "users:write_any"
RESERVATIONS_READ_ANY = "reservations:read_any"
RESERVATIONS_WRITE_ANY = "reservations:write_any"

_USER_CAPS: FrozenSet[str] = frozenset({RESTAURANTS_READ})

ROLE_CAPABILITIES: Dict[str, FrozenSet[str]] = {
    "user": _USER_CAPS,
    "admin": _USER_CAPS
    | {
        RESTAURANTS_WRITE,
        USERS_READ_ANY,
        USERS_WRITE_ANY,
        RESERVATIONS_READ_ANY,
        RESERVATIONS_WRITE_ANY,
    },
}


def capabilities_for(role: str | None) -> FrozenSet[str]:
    return ROLE_CAPABILITIES.get((role or "").strip().lower(), frozenset())


def has_capability(user: Dict[str, Any], capability: str) -> bool:
    return capability in capabilities_for(user.get("role"))


def can_act_on(user: Dict[str, Any], owner_id: int, capability: str) -> bool:
    """Owners may always act on their own records; others need the capability."""
    return int(user["id"]) == int(owner_id) or has_capability(user, capability)


def forbidden() -> HTTPException:
    return HTTPException(status_code=403, detail="forbidden")


def require_capability(capability: str) -> Callable[..., Dict[str, Any]]:
    """Dependency factory: authenticate, then demand ``capability``."""

    def _dep(user: Dict[str, Any] = Depends(get_current_user)) -> Dict[str, Any]:
        if not has_capability(user, capability):
            raise forbidden()
        return user

    return _dep
