#!/usr/bin/env python3
"""
Deploy entry point for the CRM API.

    python scripts/start.py            # release, then serve
    python scripts/start.py release    # migrations + Admin seed only
    python scripts/start.py serve      # gunicorn only

Release applies the same production guardrails as `create_app()` before
touching the database, so a misconfigured deploy fails here and not on the
first request.
"""

from __future__ import annotations

import os
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from app.crm.config import check_production_config, load_config  # noqa: E402

DEFAULT_PORT = 8080


def parse_port(raw: str | None) -> int:
    raw = (raw or "").strip()
    if not raw:
        return DEFAULT_PORT
    if not raw.isascii() or not raw.isdigit() or not 1 <= int(raw) <= 65535:
        raise ValueError(f"Invalid PORT value {raw!r}. Must be an integer 1-65535.")
    return int(raw)


def gunicorn_argv(port: int, config: dict) -> list[str]:
    workers = (os.environ.get("WEB_CONCURRENCY") or "2").strip()
    return [
        "gunicorn",
        "app.wsgi:app",
        "--bind", f"0.0.0.0:{port}",
        "--workers", workers,
        "--timeout", "60",
        "--log-level", str(config.get("LOG_LEVEL") or "INFO").lower(),
        "--access-logfile", "-",
        "--error-logfile", "-",
    ]


def run_release(config: dict) -> None:
    check_production_config(config)
    db_url = config["DATABASE_URL"]

    from alembic import command
    from alembic.config import Config

    print(f"Migrating ENV={config['ENV']}...", flush=True)
    cfg = Config(str(ROOT / "alembic.ini"))
    cfg.set_main_option("script_location", str(ROOT / "migrations"))
    cfg.set_main_option("sqlalchemy.url", db_url)
    command.upgrade(cfg, "head")

    from scripts import init_db

    init_db.seed_only(database_url=db_url)
    print("Release complete.", flush=True)


def serve(config: dict) -> None:
    port = parse_port(os.environ.get("PORT"))
    print(f"Starting gunicorn on 0.0.0.0:{port}", flush=True)
    # exec so gunicorn becomes PID 1 and receives signals directly
    argv = gunicorn_argv(port, config)
    os.execvp(argv[0], argv)


def main(argv: list[str] | None = None) -> None:
    args = sys.argv[1:] if argv is None else argv
    command = args[0] if args else "all"
    if command not in ("all", "release", "serve"):
        print(f"Unknown command {command!r}; expected release or serve.", flush=True)
        sys.exit(2)

    config = load_config()
    try:
        if command in ("all", "serve"):
            parse_port(os.environ.get("PORT"))
        if command in ("all", "release"):
            run_release(config)
    except (RuntimeError, ValueError) as e:
        print(f"ERROR: {e}", flush=True)
        sys.exit(1)
    if command in ("all", "serve"):
        serve(config)


if __name__ == "__main__":
    main()
