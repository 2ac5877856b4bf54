from __future__ import annotations

from typing import Any, Dict

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel

from redrice_platform.api.common import not_found, store_errors
from redrice_platform.auth.crud import create_user, get_user_by_email, get_user_by_id, public_user
from redrice_platform.auth.deps import get_config, get_current_user
from redrice_platform.auth.security import create_access_token, verify_password
from redrice_platform.config import Config
from redrice_platform.db import connect


router = APIRouter(tags=["auth"])


class RegisterRequest(BaseModel):
    """Public self-serve registration.

    Only the "user" role can be requested here; admins are created by other
    admins through POST /users (or the bootstrap admin).
    """

    name: str
    email: str
    password: str
    telephone: str = ""
    role: str = "user"


class SignInRequest(BaseModel):
    email: str
    password: str


@router.post("/auth/register", status_code=201)
def auth_register(payload: RegisterRequest, cfg: Config = Depends(get_config)) -> Dict[str, Any]:
    role = (payload.role or "user").strip().lower()
    if role == "admin":
        raise HTTPException(status_code=403, detail="admin_registration_forbidden")

    with store_errors("user_create_failed"):
        with connect(cfg.DB_DSN) as conn:
            u = create_user(
                conn,
                name=payload.name,
                email=payload.email,
                password=payload.password,
                telephone=payload.telephone,
                role=role,
            )

    return {"message": "user_registered", "user": u}


@router.post("/auth/signin")
def auth_signin(payload: SignInRequest, cfg: Config = Depends(get_config)) -> Dict[str, Any]:
    with connect(cfg.DB_DSN) as conn:
        row = get_user_by_email(conn, payload.email)
    if row is None:
        raise not_found("user")
    if not verify_password(payload.password, str(row["password_hash"])):
        raise HTTPException(status_code=401, detail="invalid_credentials")

    token = create_access_token(
        secret=cfg.AUTH_JWT_SECRET,
        user_id=int(row["id"]),
        role=str(row["role"]),
        expires_minutes=int(cfg.AUTH_TOKEN_EXPIRE_MINUTES),
    )
    return {"token": token}


@router.get("/me")
def get_me(
    user: Dict[str, Any] = Depends(get_current_user),
    cfg: Config = Depends(get_config),
) -> Dict[str, Any]:
    with connect(cfg.DB_DSN) as conn:
        row = get_user_by_id(conn, int(user["id"]))
    if row is None:
        raise not_found("user")
    return public_user(row)
