from __future__ import annotations

from typing import Any, Dict, List, Optional

from redrice_platform.db import insert_returning
from redrice_platform.util.time import utcnow_iso


# API field name -> column
TEXT_FIELDS: Dict[str, str] = {
    "name": "name",
    "address": "address",
    "telephone": "telephone",
    "description": "description",
    "imageUrl": "image_url",
    "facebook": "facebook",
    "instagram": "instagram",
    "openTime": "open_time",
    "closeTime": "close_time",
}
NUMBER_FIELDS: Dict[str, str] = {
    "rating": "rating",
    "commentCount": "comment_count",
}


def public_restaurant(row: Any | Dict[str, Any]) -> Dict[str, Any]:
    d = dict(row)
    out: Dict[str, Any] = {"id": int(d["id"])}
    for key, col in TEXT_FIELDS.items():
        out[key] = d.get(col) or ""
    for key, col in NUMBER_FIELDS.items():
        v = d.get(col)
        out[key] = float(v) if v is not None else None
    out["createdAt"] = d.get("created_at")
    out["updatedAt"] = d.get("updated_at")
    return out


def get_restaurant(conn: Any, restaurant_id: int) -> Optional[Dict[str, Any]]:
    row = conn.execute("SELECT * FROM restaurants WHERE id=?", (int(restaurant_id),)).fetchone()
    return public_restaurant(row) if row is not None else None


def restaurant_exists(conn: Any, restaurant_id: int) -> bool:
    row = conn.execute("SELECT 1 FROM restaurants WHERE id=?", (int(restaurant_id),)).fetchone()
    return row is not None


def list_restaurants(conn: Any, *, limit: int = 100, offset: int = 0) -> List[Dict[str, Any]]:
    rows = conn.execute(
        "SELECT * FROM restaurants ORDER BY id LIMIT ? OFFSET ?",
        (int(limit), int(offset)),
    ).fetchall()
    return [public_restaurant(r) for r in rows]


def _columns(values: Dict[str, Any]) -> list[tuple[str, Any]]:
    """Map provided API fields to (column, value), skipping empty values."""
    cols: list[tuple[str, Any]] = []
    for key, col in TEXT_FIELDS.items():
        v = values.get(key)
        if v is not None and str(v).strip():
            cols.append((col, str(v).strip()))
    for key, col in NUMBER_FIELDS.items():
        v = values.get(key)
        if v is not None:
            cols.append((col, float(v)))
    return cols


def create_restaurant(conn: Any, values: Dict[str, Any]) -> Dict[str, Any]:
    if not (values.get("name") or "").strip():
        raise ValueError("name_blank")
    if not (values.get("address") or "").strip():
        raise ValueError("address_blank")

    now = utcnow_iso()
    cols = _columns(values) + [("created_at", now), ("updated_at", now)]
    names = ", ".join(c for c, _ in cols)
    marks = ",".join("?" for _ in cols)
    row = insert_returning(
        conn,
        f"INSERT INTO restaurants ({names}) VALUES ({marks}) RETURNING *",
        [v for _, v in cols],
    )
    return public_restaurant(row)


def update_restaurant(conn: Any, restaurant_id: int, values: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    """Merge the provided non-empty fields. Returns None when the row is missing."""
    if not restaurant_exists(conn, restaurant_id):
        return None

    cols = _columns(values)
    if cols:
        cols.append(("updated_at", utcnow_iso()))
        sets = ", ".join([f"{c}=?" for c, _ in cols])
        conn.execute(
            f"UPDATE restaurants SET {sets} WHERE id=?",
            [v for _, v in cols] + [int(restaurant_id)],
        )
    return get_restaurant(conn, restaurant_id)


def delete_restaurant(conn: Any, restaurant_id: int) -> bool:
    cur = conn.execute("DELETE FROM restaurants WHERE id=?", (int(restaurant_id),))
    return int(cur.rowcount or 0) > 0
