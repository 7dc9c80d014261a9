"""
Release-phase helper.

- Fail fast if DATABASE_URL is missing or is sqlite in production.
- Run alembic migrations to head.
- Confirm the audit trail table exists afterwards.

Usage:
  python scripts/release.py
"""

from __future__ import annotations

import os
import sys
from pathlib import Path


ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

REQUIRED_TABLES = ("audit_events",)


def _require_env(name: str) -> str:
    v = (os.environ.get(name) or "").strip()
    if not v:
        raise RuntimeError(f"Missing required environment variable {name}.")
    return v


def _check_schema(db_url: str) -> None:
    from sqlalchemy import inspect

    from scripts._db_utils import create_script_engine

    engine = create_script_engine(db_url)
    try:
        insp = inspect(engine)
        missing = [t for t in REQUIRED_TABLES if not insp.has_table(t)]
    finally:
        engine.dispose()
    if missing:
        raise RuntimeError(f"Migrations finished but tables are missing: {', '.join(missing)}")


def run_release() -> None:
    db_url = _require_env("DATABASE_URL")
    env = (os.environ.get("ENV") or "").strip().lower()
    if env in ("prod", "production") and db_url.startswith("sqlite"):
        raise RuntimeError("Refusing to run release on sqlite DATABASE_URL in production. Set DATABASE_URL to Postgres.")

    print(f"=== Territory Manager release (ENV={env or '(unset)'}) ===", flush=True)

    from alembic import command
    from alembic.config import Config

    cfg = Config(str(ROOT / "alembic.ini"))
    cfg.set_main_option("sqlalchemy.url", db_url)
    command.upgrade(cfg, "head")
    _check_schema(db_url)
    print("Migrations complete; schema OK.", flush=True)


def main() -> None:
    run_release()


if __name__ == "__main__":
    main()
