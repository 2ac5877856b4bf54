from __future__ import annotations

from typing import Any, Dict, List, Optional

from redrice_platform.config import Config
from redrice_platform.db import connect, insert_returning, is_integrity_error
from redrice_platform.util.time import utcnow_iso

from .security import hash_password


ROLES = ("admin", "user")


def _debug(msg: str) -> None:
    print(f"[auth] {msg}")


def normalize_email(email: str) -> str:
    return (email or "").strip().lower()


def _validate_email(email: str) -> str:
    e = normalize_email(email)
    if not e:
        raise ValueError("email_blank")
    local, _, domain = e.partition("@")
    if not local or "." not in domain:
        raise ValueError("invalid_email")
    return e


def public_user(row: Any | Dict[str, Any]) -> Dict[str, Any]:
    """API shape for a user row. The password hash never leaves this module."""
    d = dict(row)
    return {
        "id": int(d["id"]),
        "name": d.get("name") or "",
        "email": d.get("email") or "",
        "telephone": d.get("telephone") or "",
        "role": d.get("role") or "user",
        "createdAt": d.get("created_at"),
        "updatedAt": d.get("updated_at"),
    }


def get_user_by_email(conn: Any, email: str) -> Optional[Any]:
    e = normalize_email(email)
    if not e:
        return None
    return conn.execute("SELECT * FROM users WHERE email=?", (e,)).fetchone()


def get_user_by_id(conn: Any, user_id: int) -> Optional[Any]:
    return conn.execute("SELECT * FROM users WHERE id=?", (int(user_id),)).fetchone()


def list_users(conn: Any, *, limit: int = 100, offset: int = 0) -> List[Dict[str, Any]]:
    rows = conn.execute(
        "SELECT * FROM users ORDER BY id LIMIT ? OFFSET ?",
        (int(limit), int(offset)),
    ).fetchall()
    return [public_user(r) for r in rows]


def create_user(
    conn: Any,
    *,
    name: str,
    email: str,
    password: str,
    telephone: str = "",
    role: str = "user",
) -> Dict[str, Any]:
    n = (name or "").strip()
    if not n:
        raise ValueError("name_blank")
    e = _validate_email(email)
    if not password:
        raise ValueError("password_blank")
    if role not in ROLES:
        raise ValueError("invalid_role")

    if get_user_by_email(conn, e) is not None:
        raise ValueError("email_exists")

    now = utcnow_iso()
    try:
        row = insert_returning(
            conn,
            """
            INSERT INTO users (name, email, password_hash, telephone, role, created_at, updated_at)
            VALUES (?,?,?,?,?,?,?)
            RETURNING *
            """,
            (n, e, hash_password(password), (telephone or "").strip(), role, now, now),
        )
    except Exception as exc:
        # A concurrent registration won the UNIQUE(email) race.
        if is_integrity_error(exc):
            raise ValueError("email_exists") from exc
        raise
    return public_user(row)


def update_user(
    conn: Any,
    user_id: int,
    *,
    name: str | None = None,
    email: str | None = None,
    password: str | None = None,
    telephone: str | None = None,
    role: str | None = None,
) -> Optional[Dict[str, Any]]:
    """Partially update a user. Returns None when the user does not exist."""
    current = get_user_by_id(conn, user_id)
    if current is None:
        return None

    # Only touch provided, non-empty fields.
    fields: list[tuple[str, Any]] = []
    if name is not None and name.strip():
        fields.append(("name", name.strip()))
    if email is not None and email.strip():
        e = _validate_email(email)
        if e != current["email"]:
            other = get_user_by_email(conn, e)
            if other is not None and int(other["id"]) != int(user_id):
                raise ValueError("email_exists")
            fields.append(("email", e))
    if password:
        fields.append(("password_hash", hash_password(password)))
    if telephone is not None and telephone.strip():
        fields.append(("telephone", telephone.strip()))
    if role is not None and role.strip():
        if role not in ROLES:
            raise ValueError("invalid_role")
        fields.append(("role", role))

    if not fields:
        return public_user(current)

    fields.append(("updated_at", utcnow_iso()))
    sets = ", ".join([f"{k}=?" for k, _ in fields])
    params = [v for _, v in fields] + [int(user_id)]
    try:
        conn.execute(f"UPDATE users SET {sets} WHERE id=?", params)
    except Exception as exc:
        if is_integrity_error(exc):
            raise ValueError("email_exists") from exc
        raise

    row = get_user_by_id(conn, user_id)
    assert row is not None
    return public_user(row)


def delete_user(conn: Any, user_id: int) -> bool:
    cur = conn.execute("DELETE FROM users WHERE id=?", (int(user_id),))
    return int(cur.rowcount or 0) > 0


def bootstrap_admin_if_needed(cfg: Config) -> Optional[Dict[str, Any]]:
    """Create the first admin user if the users table is empty.

    Controlled via environment variables so a fresh deployment has a
    deterministic way to log in:

    - AUTH_BOOTSTRAP_ADMIN (default: on)
    - AUTH_BOOTSTRAP_ADMIN_EMAIL (default: admin@redrice.local)
    - AUTH_BOOTSTRAP_ADMIN_PASSWORD (default: admin)
    """

    if not cfg.AUTH_BOOTSTRAP_ADMIN:
        return None

    email = normalize_email(cfg.AUTH_BOOTSTRAP_ADMIN_EMAIL)
    password = cfg.AUTH_BOOTSTRAP_ADMIN_PASSWORD
    if not email or not password:
        return None

    with connect(cfg.DB_DSN) as conn:
        n = conn.execute("SELECT COUNT(*) AS n FROM users").fetchone()["n"]
        if int(n) > 0:
            return None

        u = create_user(conn, name="Administrator", email=email, password=password, role="admin")
        _debug(f"Bootstrapped initial admin user: email={u['email']}")
        return u
