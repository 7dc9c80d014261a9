#!/usr/bin/env python3
"""
Production startup script.

1. Runs migrations (release.py)
2. Starts gunicorn (replaces this process via os.execvp)

Usage:
    python scripts/start.py

The customer dataset lives in process memory, so gunicorn runs a single worker
(threads for concurrency). Set LOAD_SNAPSHOT_ON_START=1 to restore the last
imported dataset at boot.
"""

from __future__ import annotations

import os
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

DEFAULT_PORT = 8080
WSGI_TARGET = "app.tmgr.wsgi:app"


def port_from_env(raw: str | None) -> int:
    """PORT value -> int; blank means the default. Raises ValueError outside 1-65535."""
    raw = (raw or "").strip()
    if not raw:
        return DEFAULT_PORT
    port = int(raw)
    if port < 1 or port > 65535:
        raise ValueError(f"Port out of range: {port}")
    return port


def gunicorn_argv(port: int, *, threads: int = 4) -> list[str]:
    return [
        "gunicorn",
        WSGI_TARGET,
        "--bind", f"0.0.0.0:{port}",
        "--workers", "1",
        "--threads", str(threads),
        "--timeout", "60",
        "--access-logfile", "-",
        "--error-logfile", "-",
    ]


def main() -> None:
    try:
        port = port_from_env(os.environ.get("PORT"))
    except ValueError:
        print(f"ERROR: Invalid PORT value '{os.environ.get('PORT')}'. Must be integer 1-65535.", flush=True)
        sys.exit(1)

    print("=== Running release phase ===", flush=True)
    from scripts.release import run_release
    try:
        run_release()
    except Exception as e:
        print(f"Release failed: {e}", flush=True)
        sys.exit(1)

    argv = gunicorn_argv(port, threads=int(os.environ.get("GUNICORN_THREADS") or 4))
    print(f"=== Starting gunicorn on 0.0.0.0:{port} ===", flush=True)
    os.execvp(argv[0], argv)


if __name__ == "__main__":
    main()
