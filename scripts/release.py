"""
Release phase: bring the schema to head, verify it, then seed.

1. Refuse to run without DATABASE_URL, or on SQLite in production
2. `alembic upgrade head`
3. Compare the migrated schema with the models (fail on missing tables/columns)
4. Seed the bootstrap enterprise (idempotent; never changes an existing owner)

Usage:
  python scripts/release.py [--skip-seed]
"""

from __future__ import annotations

import argparse
import os
import sys
from pathlib import Path


ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))


def _database_url() -> str:
    db_url = (os.environ.get("DATABASE_URL") or "").strip()
    if not db_url:
        raise RuntimeError("Missing required environment variable DATABASE_URL.")
    env = (os.environ.get("ENV") or "").strip().lower()
    if env in ("prod", "production") and db_url.startswith("sqlite"):
        raise RuntimeError("Refusing to run release on sqlite DATABASE_URL in production. Set DATABASE_URL to Postgres.")
    return db_url


def upgrade_schema(db_url: str) -> None:
    from alembic import command
    from alembic.config import Config

    cfg = Config(str(ROOT / "alembic.ini"))
    cfg.set_main_option("script_location", str(ROOT / "migrations"))
    cfg.set_main_option("sqlalchemy.url", db_url)
    command.upgrade(cfg, "head")


def missing_schema(db_url: str) -> list[str]:
    """Tables/columns the models expect that the database lacks."""
    from sqlalchemy import create_engine, inspect

    from app.registry.models import Base

    engine = create_engine(db_url, future=True)
    try:
        insp = inspect(engine)
        missing: list[str] = []
        for table in Base.metadata.sorted_tables:
            if not insp.has_table(table.name):
                missing.append(f"{table.name} (table)")
                continue
            cols = {c["name"] for c in insp.get_columns(table.name)}
            missing.extend(f"{table.name}.{c.name}" for c in table.columns if c.name not in cols)
        return missing
    finally:
        engine.dispose()


def run_release(*, seed: bool = True) -> None:
    db_url = _database_url()

    print("Running Alembic migrations...", flush=True)
    upgrade_schema(db_url)

    missing = missing_schema(db_url)
    if missing:
        raise RuntimeError(f"Schema out of date after upgrade; missing: {', '.join(missing)}")
    print("Migrations complete; schema matches models.", flush=True)

    if seed:
        from scripts import init_db

        init_db.seed_only(database_url=db_url)


def main() -> None:
    parser = argparse.ArgumentParser(description="Migrate, verify and seed the registry database.")
    parser.add_argument("--skip-seed", action="store_true", help="Do not register the bootstrap enterprise.")
    args = parser.parse_args()
    run_release(seed=not args.skip_seed)


if __name__ == "__main__":
    main()
