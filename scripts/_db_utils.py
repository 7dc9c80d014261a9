from __future__ import annotations

import os
from contextlib import contextmanager

from sqlalchemy import create_engine
from sqlalchemy.orm import Session

from app.tmgr.db import engine_options, make_sessionmaker


def database_url_from_env() -> str:
    return (os.environ.get("DATABASE_URL") or "sqlite:///tmgr.db").strip()


def create_script_engine(db_url: str):
    return create_engine(db_url, **engine_options(db_url))


@contextmanager
def script_session(db_url: str):
    """Session on a throwaway engine; commits on success, disposes the engine either way."""
    engine = create_script_engine(db_url)
    s: Session = make_sessionmaker(engine)()
    try:
        yield s
        s.commit()
    except Exception:
        s.rollback()
        raise
    finally:
        s.close()
        engine.dispose()
