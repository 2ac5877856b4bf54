from datetime import datetime, timedelta, timezone

import jwt
import pytest

from redrice_platform.auth.security import (
    create_access_token,
    decode_access_token,
    hash_password,
    verify_password,
)


def test_hash_password_is_one_way_and_verifiable():
    h = hash_password("s3cret")
    assert h != "s3cret"
    assert verify_password("s3cret", h)
    assert not verify_password("wrong", h)


def test_hash_password_rejects_blank():
    with pytest.raises(ValueError):
        hash_password("")


def test_verify_password_handles_garbage_hash():
    assert not verify_password("s3cret", "not-a-real-hash")
    assert not verify_password("", "whatever")


def test_token_carries_user_id_and_role():
    token = create_access_token(secret="k", user_id=42, role="admin", expires_minutes=60)
    payload = decode_access_token(token=token, secret="k")
    assert payload["sub"] == "42"
    assert payload["role"] == "admin"
    assert payload["exp"] - payload["iat"] == 3600


def test_expired_token_is_rejected():
    issued = datetime.now(timezone.utc) - timedelta(days=2)
    token = create_access_token(secret="k", user_id=1, role="user", expires_minutes=60, now=issued)
    with pytest.raises(jwt.ExpiredSignatureError):
        decode_access_token(token=token, secret="k")


def test_token_signed_with_other_secret_is_rejected():
    token = create_access_token(secret="rotated-away", user_id=1, role="user", expires_minutes=60)
    with pytest.raises(jwt.InvalidSignatureError):
        decode_access_token(token=token, secret="k")


def test_create_token_requires_secret():
    with pytest.raises(ValueError):
        create_access_token(secret="", user_id=1, role="user", expires_minutes=60)
