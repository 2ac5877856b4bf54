from __future__ import annotations

from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, Query, Response
from pydantic import BaseModel

from redrice_platform.api.common import not_found, parse_id, store_errors
from redrice_platform.auth.crud import create_user, delete_user, get_user_by_id, list_users, public_user, update_user
from redrice_platform.auth.deps import get_config, get_current_user
from redrice_platform.auth.permissions import (
    RESERVATIONS_READ_ANY,
    USERS_READ_ANY,
    USERS_WRITE_ANY,
    can_act_on,
    forbidden,
    has_capability,
    require_capability,
)
from redrice_platform.config import Config
from redrice_platform.db import connect
from redrice_platform.reservations.crud import list_reservations


router = APIRouter(prefix="/users", tags=["users"])


class CreateUserRequest(BaseModel):
    name: str
    email: str
    password: str
    telephone: str = ""
    role: str = "user"  # admin|user


class UpdateUserRequest(BaseModel):
    name: Optional[str] = None
    email: Optional[str] = None
    password: Optional[str] = None
    telephone: Optional[str] = None
    role: Optional[str] = None


@router.get("")
def get_users(
    limit: int = Query(100, ge=1, le=500),
    offset: int = Query(0, ge=0),
    _admin: Dict[str, Any] = Depends(require_capability(USERS_READ_ANY)),
    cfg: Config = Depends(get_config),
) -> List[Dict[str, Any]]:
    with store_errors("user_list_failed"):
        with connect(cfg.DB_DSN) as conn:
            return list_users(conn, limit=limit, offset=offset)


@router.post("", status_code=201)
def post_user(
    payload: CreateUserRequest,
    _admin: Dict[str, Any] = Depends(require_capability(USERS_WRITE_ANY)),
    cfg: Config = Depends(get_config),
) -> Dict[str, Any]:
    with store_errors("user_create_failed"):
        with connect(cfg.DB_DSN) as conn:
            return create_user(
                conn,
                name=payload.name,
                email=payload.email,
                password=payload.password,
                telephone=payload.telephone,
                role=(payload.role or "user").strip().lower(),
            )


@router.get("/{user_id}")
def get_user(
    user_id: str,
    user: Dict[str, Any] = Depends(get_current_user),
    cfg: Config = Depends(get_config),
) -> Dict[str, Any]:
    uid = parse_id(user_id, "user")
    if not can_act_on(user, uid, USERS_READ_ANY):
        raise forbidden()

    with connect(cfg.DB_DSN) as conn:
        row = get_user_by_id(conn, uid)
    if row is None:
        raise not_found("user")
    return public_user(row)


@router.put("/{user_id}")
def put_user(
    user_id: str,
    payload: UpdateUserRequest,
    user: Dict[str, Any] = Depends(get_current_user),
    cfg: Config = Depends(get_config),
) -> Dict[str, Any]:
    uid = parse_id(user_id, "user")
    if not can_act_on(user, uid, USERS_WRITE_ANY):
        raise forbidden()

    role = (payload.role or "").strip().lower() or None
    # Changing roles (including one's own) is an admin operation.
    if role is not None and not has_capability(user, USERS_WRITE_ANY):
        raise forbidden()

    with store_errors("user_update_failed"):
        with connect(cfg.DB_DSN) as conn:
            updated = update_user(
                conn,
                uid,
                name=payload.name,
                email=payload.email,
                password=payload.password,
                telephone=payload.telephone,
                role=role,
            )
    if updated is None:
        raise not_found("user")
    return updated


@router.delete("/{user_id}", status_code=204)
def remove_user(
    user_id: str,
    user: Dict[str, Any] = Depends(get_current_user),
    cfg: Config = Depends(get_config),
) -> Response:
    uid = parse_id(user_id, "user")
    if not can_act_on(user, uid, USERS_WRITE_ANY):
        raise forbidden()

    with store_errors("user_delete_failed"):
        with connect(cfg.DB_DSN) as conn:
            deleted = delete_user(conn, uid)
    if not deleted:
        raise not_found("user")
    return Response(status_code=204)


@router.get("/{user_id}/reservations")
def get_user_reservations(
    user_id: str,
    limit: int = Query(100, ge=1, le=500),
    offset: int = Query(0, ge=0),
    user: Dict[str, Any] = Depends(get_current_user),
    cfg: Config = Depends(get_config),
) -> List[Dict[str, Any]]:
    uid = parse_id(user_id, "user")
    if not can_act_on(user, uid, RESERVATIONS_READ_ANY):
        raise forbidden()

    with connect(cfg.DB_DSN) as conn:
        if get_user_by_id(conn, uid) is None:
            raise not_found("user")
        return list_reservations(conn, user_id=uid, limit=limit, offset=offset)
