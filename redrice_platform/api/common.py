from __future__ import annotations

from contextlib import contextmanager
from typing import Iterator

from fastapi import HTTPException


def _debug(msg: str) -> None:
    print(f"[api] {msg}")


# ValueError codes raised by the store modules that are not plain 400s.
_VALUE_ERROR_STATUS = {
    "email_exists": 409,
}


def parse_id(raw: str, what: str) -> int:
    """Path ids must be plain positive decimal integers; anything else is a 400."""
    s = str(raw)
    if not (s.isascii() and s.isdigit()):
        raise HTTPException(status_code=400, detail=f"invalid_{what}_id")
    value = int(s)
    if value <= 0:
        raise HTTPException(status_code=400, detail=f"invalid_{what}_id")
    return value


def not_found(what: str) -> HTTPException:
    return HTTPException(status_code=404, detail=f"{what}_not_found")


@contextmanager
def store_errors(failure_detail: str) -> Iterator[None]:
    """Translate store-layer failures into HTTP errors.

    - HTTPException passes through untouched.
    - ValueError("<code>") becomes 400 (or 409 for conflicts) with that code.
    - Anything else is a store failure: 500 with ``failure_detail``.
    """
    try:
        yield
    except HTTPException:
        raise
    except ValueError as e:
        detail = str(e)
        raise HTTPException(status_code=_VALUE_ERROR_STATUS.get(detail, 400), detail=detail) from e
    except Exception as e:
        _debug(f"{failure_detail}: {e!r}")
        raise HTTPException(status_code=500, detail=failure_detail) from e
