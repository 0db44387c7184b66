from __future__ import annotations

import argparse
import importlib
import os

from dotenv import load_dotenv

from ulb_staff.database.bootstrap import ensure_admin_user
from ulb_staff.settings import get_settings_module


def main() -> None:
    load_dotenv(override=False)
    parser = argparse.ArgumentParser(description="Create or reset the bootstrap administrator.")
    parser.add_argument("--email", default=os.getenv("ADMIN_EMAIL", "admin@ulb.local"))
    parser.add_argument("--password", default=os.getenv("ADMIN_PASSWORD"))
    parser.add_argument("--name", default="Administrator")
    args = parser.parse_args()
    if not args.password:
        parser.error("--password (or ADMIN_PASSWORD) is required")

    settings = importlib.import_module(get_settings_module())
    db_config = dict(settings.DB_CONFIG)
    ensure_admin_user(db_config, email=args.email.lower(), password=args.password, full_name=args.name)
    print(f"OK: administrator {args.email} ready in {db_config.get('database')}")


if __name__ == "__main__":
    main()
