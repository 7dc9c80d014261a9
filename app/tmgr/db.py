from __future__ import annotations

from contextlib import contextmanager
from collections.abc import Generator

from flask import Flask, g
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker


def engine_options(db_url: str) -> dict[str, object]:
    """create_engine() kwargs for the app and the maintenance scripts."""
    opts: dict[str, object] = {"future": True, "pool_pre_ping": True}
    if db_url.startswith("postgres"):
        opts.update({"pool_recycle": 1800, "pool_size": 5, "max_overflow": 10, "pool_timeout": 30})
    elif db_url.startswith("sqlite"):
        # threaded server shares the engine across request threads
        opts["connect_args"] = {"check_same_thread": False}
    return opts


def make_sessionmaker(engine: Engine) -> sessionmaker:
    return sessionmaker(
        bind=engine,
        class_=Session,
        autoflush=False,
        autocommit=False,
        expire_on_commit=False,
        future=True,
    )


def init_db(app: Flask) -> None:
    db_url = app.config["DATABASE_URL"]
    engine = create_engine(db_url, **engine_options(db_url))
    app.extensions["sqlalchemy_engine"] = engine
    app.extensions["sqlalchemy_sessionmaker"] = make_sessionmaker(engine)


def db_session(app: Flask | None = None) -> Session:
    """
    Request-scoped session, closed on app-context teardown.
    """
    s: Session | None = getattr(g, "db_session", None)
    if s is not None:
        return s
    if app is None:
        from flask import current_app

        app = current_app
    s = app.extensions["sqlalchemy_sessionmaker"]()
    g.db_session = s
    return s


def teardown_db_session(_exc: BaseException | None) -> None:
    s: Session | None = g.pop("db_session", None)
    if s is not None:
        s.close()


@contextmanager
def session_scope(app: Flask) -> Generator[Session, None, None]:
    """
    Non-request helper for scripts and tests: yields a session and commits/rolls back.
    """
    s: Session = app.extensions["sqlalchemy_sessionmaker"]()
    try:
        yield s
        s.commit()
    except Exception:
        s.rollback()
        raise
    finally:
        s.close()
