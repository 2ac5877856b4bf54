from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional

from redrice_platform.db import insert_returning
from redrice_platform.util.time import to_iso, utcnow_iso


def public_reservation(row: Any | Dict[str, Any]) -> Dict[str, Any]:
    d = dict(row)
    return {
        "id": int(d["id"]),
        "dateTime": d.get("date_time"),
        "userId": int(d["user_id"]),
        "restaurantId": int(d["restaurant_id"]),
        "createdAt": d.get("created_at"),
        "updatedAt": d.get("updated_at"),
    }


def get_reservation(conn: Any, reservation_id: int) -> Optional[Dict[str, Any]]:
    row = conn.execute("SELECT * FROM reservations WHERE id=?", (int(reservation_id),)).fetchone()
    return public_reservation(row) if row is not None else None


def list_reservations(
    conn: Any,
    *,
    user_id: int | None = None,
    restaurant_id: int | None = None,
    limit: int = 100,
    offset: int = 0,
) -> List[Dict[str, Any]]:
    where: List[str] = []
    params: List[Any] = []
    if user_id is not None:
        where.append("user_id=?")
        params.append(int(user_id))
    if restaurant_id is not None:
        where.append("restaurant_id=?")
        params.append(int(restaurant_id))

    sql = "SELECT * FROM reservations"
    if where:
        sql += " WHERE " + " AND ".join(where)
    sql += " ORDER BY id LIMIT ? OFFSET ?"
    params.extend([int(limit), int(offset)])

    rows = conn.execute(sql, tuple(params)).fetchall()
    return [public_reservation(r) for r in rows]


def create_reservation(
    conn: Any,
    *,
    date_time: datetime,
    user_id: int,
    restaurant_id: int,
) -> Dict[str, Any]:
    """Insert a reservation. Callers check that the user and restaurant exist."""
    now = utcnow_iso()
    row = insert_returning(
        conn,
        """
        INSERT INTO reservations (date_time, user_id, restaurant_id, created_at, updated_at)
        VALUES (?,?,?,?,?)
        RETURNING *
        """,
        (to_iso(date_time), int(user_id), int(restaurant_id), now, now),
    )
    return public_reservation(row)


def update_reservation(
    conn: Any,
    reservation_id: int,
    *,
    date_time: datetime | None = None,
    restaurant_id: int | None = None,
) -> Optional[Dict[str, Any]]:
    if get_reservation(conn, reservation_id) is None:
        return None

    fields: list[tuple[str, Any]] = []
    if date_time is not None:
        fields.append(("date_time", to_iso(date_time)))
    if restaurant_id is not None:
        fields.append(("restaurant_id", int(restaurant_id)))

    if fields:
        fields.append(("updated_at", utcnow_iso()))
        sets = ", ".join([f"{k}=?" for k, _ in fields])
        conn.execute(
            f"UPDATE reservations SET {sets} WHERE id=?",
            [v for _, v in fields] + [int(reservation_id)],
        )
    return get_reservation(conn, reservation_id)


def delete_reservation(conn: Any, reservation_id: int) -> bool:
    cur = conn.execute("DELETE FROM reservations WHERE id=?", (int(reservation_id),))
    return int(cur.rowcount or 0) > 0
