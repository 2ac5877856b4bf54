from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Response
from pydantic import BaseModel, ConfigDict, Field

from redrice_platform.api.common import not_found, parse_id, store_errors
from redrice_platform.auth.crud import get_user_by_id
from redrice_platform.auth.deps import get_config, get_current_user
from redrice_platform.auth.permissions import (
    RESERVATIONS_READ_ANY,
    RESERVATIONS_WRITE_ANY,
    can_act_on,
    forbidden,
    has_capability,
)
from redrice_platform.config import Config
from redrice_platform.db import connect
from redrice_platform.reservations.crud import (
    create_reservation,
    delete_reservation,
    get_reservation,
    list_reservations,
    update_reservation,
)
from redrice_platform.restaurants.crud import restaurant_exists
from redrice_platform.util.time import parse_iso_datetime


router = APIRouter(prefix="/reservations", tags=["reservations"])


class CreateReservationRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    date_time: str = Field(alias="dateTime")
    restaurant_id: int = Field(alias="restaurantId")
    # Defaults to the caller; booking for someone else needs reservations:write_any.
    user_id: Optional[int] = Field(default=None, alias="userId")


class UpdateReservationRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    date_time: Optional[str] = Field(default=None, alias="dateTime")
    restaurant_id: Optional[int] = Field(default=None, alias="restaurantId")


def _parse_when(raw: str) -> datetime:
    try:
        return parse_iso_datetime(raw)
    except ValueError:
        raise HTTPException(status_code=400, detail="invalid_datetime")


def _load_owned(conn: Any, reservation_id: int, user: Dict[str, Any], capability: str) -> Dict[str, Any]:
    r = get_reservation(conn, reservation_id)
    if r is None:
        raise not_found("reservation")
    if not can_act_on(user, r["userId"], capability):
        raise forbidden()
    return r


@router.get("")
def get_reservations(
    user_id: Optional[int] = Query(None, alias="userId", ge=1),
    restaurant_id: Optional[int] = Query(None, alias="restaurantId", ge=1),
    limit: int = Query(100, ge=1, le=500),
    offset: int = Query(0, ge=0),
    user: Dict[str, Any] = Depends(get_current_user),
    cfg: Config = Depends(get_config),
) -> List[Dict[str, Any]]:
    """List reservations. Non-admin callers only ever see their own."""
    if not has_capability(user, RESERVATIONS_READ_ANY):
        user_id = int(user["id"])

    with store_errors("reservation_list_failed"):
        with connect(cfg.DB_DSN) as conn:
            return list_reservations(
                conn,
                user_id=user_id,
                restaurant_id=restaurant_id,
                limit=limit,
                offset=offset,
            )


@router.get("/{reservation_id}")
def get_one_reservation(
    reservation_id: str,
    user: Dict[str, Any] = Depends(get_current_user),
    cfg: Config = Depends(get_config),
) -> Dict[str, Any]:
    rid = parse_id(reservation_id, "reservation")
    with connect(cfg.DB_DSN) as conn:
        return _load_owned(conn, rid, user, RESERVATIONS_READ_ANY)


@router.post("", status_code=201)
def post_reservation(
    payload: CreateReservationRequest,
    user: Dict[str, Any] = Depends(get_current_user),
    cfg: Config = Depends(get_config),
) -> Dict[str, Any]:
    when = _parse_when(payload.date_time)
    owner_id = payload.user_id if payload.user_id is not None else int(user["id"])
    if not can_act_on(user, owner_id, RESERVATIONS_WRITE_ANY):
        raise forbidden()

    with store_errors("reservation_create_failed"):
        with connect(cfg.DB_DSN) as conn:
            if get_user_by_id(conn, owner_id) is None:
                raise not_found("user")
            if not restaurant_exists(conn, payload.restaurant_id):
                raise not_found("restaurant")
            return create_reservation(
                conn,
                date_time=when,
                user_id=owner_id,
                restaurant_id=payload.restaurant_id,
            )


@router.put("/{reservation_id}")
def put_reservation(
    reservation_id: str,
    payload: UpdateReservationRequest,
    user: Dict[str, Any] = Depends(get_current_user),
    cfg: Config = Depends(get_config),
) -> Dict[str, Any]:
    rid = parse_id(reservation_id, "reservation")
    when = _parse_when(payload.date_time) if payload.date_time else None

    with store_errors("reservation_update_failed"):
        with connect(cfg.DB_DSN) as conn:
            _load_owned(conn, rid, user, RESERVATIONS_WRITE_ANY)
            if payload.restaurant_id is not None and not restaurant_exists(conn, payload.restaurant_id):
                raise not_found("restaurant")
            updated = update_reservation(conn, rid, date_time=when, restaurant_id=payload.restaurant_id)
    if updated is None:
        raise not_found("reservation")
    return updated


@router.delete("/{reservation_id}", status_code=204)
def remove_reservation(
    reservation_id: str,
    user: Dict[str, Any] = Depends(get_current_user),
    cfg: Config = Depends(get_config),
) -> Response:
    rid = parse_id(reservation_id, "reservation")
    with store_errors("reservation_delete_failed"):
        with connect(cfg.DB_DSN) as conn:
            _load_owned(conn, rid, user, RESERVATIONS_WRITE_ANY)
            delete_reservation(conn, rid)
    return Response(status_code=204)
