"""Create database tables in the configured database.

Reads DATABASE_URL from .env / environment and creates all registered ORM tables.

Usage:
  python scripts/create_tables.py
"""

from __future__ import annotations

import pathlib
import sys

from dotenv import load_dotenv
from sqlalchemy import text

PROJECT_ROOT = pathlib.Path(__file__).resolve().parents[1]
sys.path.insert(0, str(PROJECT_ROOT))

from double_draw.config import resolve_database_url  # noqa: E402
from double_draw.db import create_app_engine  # noqa: E402
from double_draw.models.base import Base  # noqa: E402

# Import models so they register with Base.metadata
from double_draw import models  # noqa: E402,F401


def main() -> int:
    """Create all ORM tables in the target database."""

    load_dotenv()
    env_local = PROJECT_ROOT / ".env.local"
    if env_local.exists():
        load_dotenv(dotenv_path=env_local, override=True)

    database_url = resolve_database_url()

    engine = create_app_engine(database_url)
    Base.metadata.create_all(bind=engine)

    # create_all() does not add indexes to existing tables.
    if engine.dialect.name == "postgresql":
        ddl = [
            "CREATE INDEX IF NOT EXISTS ix_lottery_events_player ON lottery_events (player)",
            "CREATE INDEX IF NOT EXISTS ix_ciphertext_grants_identity ON ciphertext_grants (identity)",
        ]
        with engine.begin() as conn:
            for stmt in ddl:
                conn.execute(text(stmt))

    print("Tables created (or already exist).")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
