"""
Release step for a record store deployment.

Checks the environment the app will start with, then brings the schema to the
latest Alembic revision. Production must point at Postgres; a missing
DATABASE_URL or ADMIN_PRINCIPAL stops the release before any migration runs.

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


def _require_env(name: str) -> str:
    v = (os.environ.get(name) or "").strip()
    if not v:
        raise RuntimeError(f"Missing required environment variable {name}.")
    return v


def release_database_url() -> str:
    """Database URL the migrations will run against."""
    db_url = _require_env("DATABASE_URL")
    # The app refuses to start without an administrator, so the release does too.
    _require_env("ADMIN_PRINCIPAL")
    env = (os.environ.get("ENV") or "").strip().lower()
    if env in ("prod", "production") and db_url.startswith("sqlite"):
        raise RuntimeError("Refusing to run release on sqlite DATABASE_URL in production. Set DATABASE_URL to Postgres.")
    return db_url


def upgrade_schema(db_url: str, revision: str = "head") -> None:
    from alembic import command
    from alembic.config import Config

    cfg = Config(str(ROOT / "alembic.ini"))
    cfg.set_main_option("script_location", str(ROOT / "migrations"))
    cfg.set_main_option("sqlalchemy.url", db_url)
    command.upgrade(cfg, revision)


def run_release() -> None:
    db_url = release_database_url()
    env = (os.environ.get("ENV") or "").strip().lower()

    print("=== recordstore release start ===", flush=True)
    print(f"ENV={env or '(unset)'}", flush=True)
    print("Running Alembic migrations...", flush=True)
    upgrade_schema(db_url)
    print("Migrations complete.", flush=True)
    print("=== recordstore release done ===", flush=True)


def main() -> None:
    run_release()


if __name__ == "__main__":
    main()
