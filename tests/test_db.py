import pytest

from redrice_platform.db import _qmark_to_pct, connect, detect_dialect, init_db
from redrice_platform.schema import get_schema_sql
from redrice_platform.util.time import parse_iso_datetime, to_iso


def test_detect_dialect():
    assert detect_dialect("postgresql://u:p@localhost/redrice") == "postgres"
    assert detect_dialect("postgres://localhost/redrice") == "postgres"
    assert detect_dialect("./redrice.sqlite") == "sqlite"
    assert detect_dialect("sqlite:///tmp/x.sqlite") == "sqlite"
    assert detect_dialect("") == "sqlite"


def test_qmark_conversion_skips_literals():
    sql = "SELECT * FROM users WHERE email=? AND name='who?' AND role=?"
    assert _qmark_to_pct(sql) == "SELECT * FROM users WHERE email=%s AND name='who?' AND role=%s"


def test_postgres_schema_uses_bigserial():
    ddl = get_schema_sql("postgres")
    assert "AUTOINCREMENT" not in ddl
    assert "BIGSERIAL PRIMARY KEY" in ddl
    assert "PRAGMA" not in ddl
    assert "DOUBLE PRECISION" in ddl


def test_init_db_is_idempotent(cfg):
    init_db(cfg.DB_DSN)
    init_db(cfg.DB_DSN)
    with connect(cfg.DB_DSN) as conn:
        names = {
            r["name"]
            for r in conn.execute("SELECT name FROM sqlite_master WHERE type='table'").fetchall()
        }
    assert {"users", "restaurants", "reservations"} <= names


def test_connect_rolls_back_on_error(cfg):
    init_db(cfg.DB_DSN)
    with pytest.raises(RuntimeError):
        with connect(cfg.DB_DSN) as conn:
            conn.execute(
                "INSERT INTO restaurants (name, address, created_at, updated_at) VALUES (?,?,?,?)",
                ("Temp", "Nowhere", "2030-01-01T00:00:00Z", "2030-01-01T00:00:00Z"),
            )
            raise RuntimeError("boom")

    with connect(cfg.DB_DSN) as conn:
        assert conn.execute("SELECT COUNT(*) AS n FROM restaurants").fetchone()["n"] == 0


def test_foreign_keys_are_enforced(cfg):
    init_db(cfg.DB_DSN)
    with pytest.raises(Exception) as exc:
        with connect(cfg.DB_DSN) as conn:
            conn.execute(
                """
                INSERT INTO reservations (date_time, user_id, restaurant_id, created_at, updated_at)
                VALUES (?,?,?,?,?)
                """,
                ("2030-01-01T00:00:00Z", 99, 99, "2030-01-01T00:00:00Z", "2030-01-01T00:00:00Z"),
            )
    assert "FOREIGN KEY" in str(exc.value).upper()


def test_iso_helpers():
    assert to_iso(parse_iso_datetime("2030-02-03T04:05:06Z")) == "2030-02-03T04:05:06Z"
    assert to_iso(parse_iso_datetime("2030-02-03T11:05:06+07:00")) == "2030-02-03T04:05:06Z"
    # Naive values are taken as UTC.
    assert to_iso(parse_iso_datetime("2030-02-03T04:05")) == "2030-02-03T04:05:00Z"
    with pytest.raises(ValueError):
        parse_iso_datetime("")
    with pytest.raises(ValueError):
        parse_iso_datetime("tomorrow")


def test_schema_declares_review_columns(cfg):
    init_db(cfg.DB_DSN)
    with connect(cfg.DB_DSN) as conn:
        cols = {r["name"] for r in conn.execute("PRAGMA table_info(restaurants)").fetchall()}
    assert {"rating", "comment_count"} <= cols
