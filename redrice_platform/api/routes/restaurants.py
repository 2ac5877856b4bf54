from __future__ import annotations

import math
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, Request, Response, UploadFile

from redrice_platform.api.common import not_found, parse_id, store_errors
from redrice_platform.auth.deps import get_config
from redrice_platform.auth.permissions import RESTAURANTS_READ, RESTAURANTS_WRITE, require_capability
from redrice_platform.config import Config
from redrice_platform.db import connect
from redrice_platform.restaurants.crud import (
    create_restaurant,
    delete_restaurant,
    get_restaurant,
    list_restaurants,
    restaurant_exists,
    update_restaurant,
)
from redrice_platform.restaurants.storage import ImageUploadError, validate_image


router = APIRouter(prefix="/restaurants", tags=["restaurants"])


def _parse_number(raw: Optional[str], detail: str) -> Optional[float]:
    s = (raw or "").strip()
    if not s:
        return None
    try:
        value = float(s)
    except ValueError:
        raise HTTPException(status_code=400, detail=detail)
    if not math.isfinite(value):
        raise HTTPException(status_code=400, detail=detail)
    return value


def _form_values(
    *,
    name: str,
    address: str,
    telephone: str,
    description: str,
    facebook: str,
    instagram: str,
    open_time: str,
    close_time: str,
    rating: Optional[str],
    comment_count: Optional[str],
) -> Dict[str, Any]:
    return {
        "name": name,
        "address": address,
        "telephone": telephone,
        "description": description,
        "facebook": facebook,
        "instagram": instagram,
        "openTime": open_time,
        "closeTime": close_time,
        "rating": _parse_number(rating, "invalid_rating"),
        "commentCount": _parse_number(comment_count, "invalid_comment_count"),
    }


def _upload_image(request: Request, cfg: Config, image: Optional[UploadFile]) -> Optional[str]:
    """Forward an optional image part to the uploader; returns the stored URL."""
    if image is None or not image.filename:
        return None

    # Never buffer more than the cap plus one byte.
    data = image.file.read(int(cfg.MAX_IMAGE_BYTES) + 1)
    try:
        validate_image(cfg, filename=image.filename, data=data)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    uploader = request.app.state.uploader
    try:
        url = uploader.upload(data, image.filename, image.content_type)
    except ImageUploadError:
        raise HTTPException(status_code=500, detail="image_upload_failed")
    if not url:
        raise HTTPException(status_code=500, detail="image_upload_failed")
    return url


@router.get("")
def get_restaurants(
    limit: int = Query(100, ge=1, le=500),
    offset: int = Query(0, ge=0),
    _user: Dict[str, Any] = Depends(require_capability(RESTAURANTS_READ)),
    cfg: Config = Depends(get_config),
) -> List[Dict[str, Any]]:
    with store_errors("restaurant_list_failed"):
        with connect(cfg.DB_DSN) as conn:
            return list_restaurants(conn, limit=limit, offset=offset)


@router.get("/{restaurant_id}")
def get_one_restaurant(
    restaurant_id: str,
    _user: Dict[str, Any] = Depends(require_capability(RESTAURANTS_READ)),
    cfg: Config = Depends(get_config),
) -> Dict[str, Any]:
    rid = parse_id(restaurant_id, "restaurant")
    with connect(cfg.DB_DSN) as conn:
        r = get_restaurant(conn, rid)
    if r is None:
        raise not_found("restaurant")
    return r


@router.post("", status_code=201)
def post_restaurant(
    request: Request,
    name: str = Form(""),
    address: str = Form(""),
    telephone: str = Form(""),
    description: str = Form(""),
    facebook: str = Form(""),
    instagram: str = Form(""),
    open_time: str = Form("", alias="openTime"),
    close_time: str = Form("", alias="closeTime"),
    rating: Optional[str] = Form(None),
    comment_count: Optional[str] = Form(None, alias="commentCount"),
    image: Optional[UploadFile] = File(None),
    _admin: Dict[str, Any] = Depends(require_capability(RESTAURANTS_WRITE)),
    cfg: Config = Depends(get_config),
) -> Dict[str, Any]:
    values = _form_values(
        name=name,
        address=address,
        telephone=telephone,
        description=description,
        facebook=facebook,
        instagram=instagram,
        open_time=open_time,
        close_time=close_time,
        rating=rating,
        comment_count=comment_count,
    )
    # Reject incomplete forms before paying for an upload.
    if not name.strip():
        raise HTTPException(status_code=400, detail="name_blank")
    if not address.strip():
        raise HTTPException(status_code=400, detail="address_blank")

    values["imageUrl"] = _upload_image(request, cfg, image)

    with store_errors("restaurant_create_failed"):
        with connect(cfg.DB_DSN) as conn:
            return create_restaurant(conn, values)


@router.put("/{restaurant_id}")
def put_restaurant(
    request: Request,
    restaurant_id: str,
    name: str = Form(""),
    address: str = Form(""),
    telephone: str = Form(""),
    description: str = Form(""),
    facebook: str = Form(""),
    instagram: str = Form(""),
    open_time: str = Form("", alias="openTime"),
    close_time: str = Form("", alias="closeTime"),
    rating: Optional[str] = Form(None),
    comment_count: Optional[str] = Form(None, alias="commentCount"),
    image: Optional[UploadFile] = File(None),
    _admin: Dict[str, Any] = Depends(require_capability(RESTAURANTS_WRITE)),
    cfg: Config = Depends(get_config),
) -> Dict[str, Any]:
    rid = parse_id(restaurant_id, "restaurant")
    values = _form_values(
        name=name,
        address=address,
        telephone=telephone,
        description=description,
        facebook=facebook,
        instagram=instagram,
        open_time=open_time,
        close_time=close_time,
        rating=rating,
        comment_count=comment_count,
    )

    with connect(cfg.DB_DSN) as conn:
        if not restaurant_exists(conn, rid):
            raise not_found("restaurant")

    # No image part keeps the current imageUrl.
    values["imageUrl"] = _upload_image(request, cfg, image)

    with store_errors("restaurant_update_failed"):
        with connect(cfg.DB_DSN) as conn:
            updated = update_restaurant(conn, rid, values)
    if updated is None:
        raise not_found("restaurant")
    return updated


@router.delete("/{restaurant_id}", status_code=204)
def remove_restaurant(
    restaurant_id: str,
    _admin: Dict[str, Any] = Depends(require_capability(RESTAURANTS_WRITE)),
    cfg: Config = Depends(get_config),
) -> Response:
    rid = parse_id(restaurant_id, "restaurant")
    with store_errors("restaurant_delete_failed"):
        with connect(cfg.DB_DSN) as conn:
            deleted = delete_restaurant(conn, rid)
    if not deleted:
        raise not_found("restaurant")
    return Response(status_code=204)
