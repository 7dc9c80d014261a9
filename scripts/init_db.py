"""
Create the application tables directly from the models (local/dev databases).

Production databases are migrated with Alembic (scripts/release.py); running this
against an already-migrated database is a no-op.

Usage:
    python scripts/init_db.py
"""
import sys
from pathlib import Path

# Ensure repo root is on sys.path when running as a script (Windows-friendly).
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from app.tmgr.models import Base  # noqa: E402
from scripts._db_utils import create_script_engine, database_url_from_env  # noqa: E402


def create_schema(*, database_url: str | None = None) -> list[str]:
    db_url = (database_url or database_url_from_env()).strip()
    engine = create_script_engine(db_url)
    try:
        Base.metadata.create_all(bind=engine)
    finally:
        engine.dispose()
    return sorted(Base.metadata.tables)


def main() -> None:
    tables = create_schema()
    print("Initialized database schema.")
    print(f"Tables: {', '.join(tables)}")


if __name__ == "__main__":
    main()
