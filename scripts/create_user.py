"""Create a user directly in the DB.

Usage:
  python scripts/create_user.py --name Alice --email alice@example.com --password '...' --role admin

NOTE: This is intended for local/dev and for creating additional admins.
"""

import argparse
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT))

from redrice_platform.auth.crud import create_user
from redrice_platform.config import load_config
from redrice_platform.db import connect, init_db


def main() -> None:
    ap = argparse.ArgumentParser()
    ap.add_argument("--name", required=True)
    ap.add_argument("--email", required=True)
    ap.add_argument("--password", required=True)
    ap.add_argument("--telephone", default="")
    ap.add_argument("--role", choices=["user", "admin"], default="user")
    args = ap.parse_args()

    cfg = load_config()
    init_db(cfg.DB_DSN)

    try:
        with connect(cfg.DB_DSN) as conn:
            u = create_user(
                conn,
                name=args.name,
                email=args.email,
                password=args.password,
                telephone=args.telephone,
                role=args.role,
            )
    except ValueError as e:
        raise SystemExit(f"Could not create user: {e}")

    print("Created user:")
    print(u)


if __name__ == "__main__":
    main()
