import sys
from pathlib import Path
import os

from sqlalchemy import create_engine

# Ensure repo root is on sys.path when running as a script (Windows-friendly).
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from app.recordstore.models import Base


def create_schema(*, database_url: str | None = None) -> None:
    """
    Create every record store table that does not exist yet (idempotent).
    Development helper; deployments run Alembic migrations instead.
    """
    db_url = (database_url or os.environ.get("DATABASE_URL") or "sqlite:///recordstore.db").strip()
    engine = create_engine(db_url, future=True)
    try:
        Base.metadata.create_all(bind=engine)
    finally:
        engine.dispose()
    print(f"Initialized database schema ({', '.join(sorted(Base.metadata.tables))}).")


def main() -> None:
    create_schema(database_url=None)


if __name__ == "__main__":
    main()
