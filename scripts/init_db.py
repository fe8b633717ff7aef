import argparse
import os
import sys
from contextlib import contextmanager
from pathlib import Path

from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker

# Ensure repo root is on sys.path when running as a script (Windows-friendly).
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from app.registry.models import Base
from app.registry.modules.enterprises import service as enterprises_service


@contextmanager
def _session_scope(database_url: str, *, create_schema: bool = False):
    engine = create_engine(database_url, future=True)
    if create_schema:
        Base.metadata.create_all(bind=engine)
    sm = sessionmaker(bind=engine, class_=Session, autoflush=False, autocommit=False, expire_on_commit=False, future=True)
    s: Session = sm()
    try:
        yield s
        s.commit()
    except Exception:
        s.rollback()
        raise
    finally:
        s.close()
        engine.dispose()


def seed_only(*, database_url: str | None = None, create_schema: bool = False) -> None:
    """
    Register the bootstrap enterprise in an idempotent way.
    Does NOT touch an enterprise that already exists (its owner is immutable).
    """
    enterprise_id = (os.environ.get("BOOTSTRAP_ENTERPRISE_ID") or "").strip()
    owner = (os.environ.get("BOOTSTRAP_OWNER") or "").strip()
    name = (os.environ.get("BOOTSTRAP_ENTERPRISE_NAME") or enterprise_id).strip()

    db_url = (database_url or os.environ.get("DATABASE_URL") or "sqlite:///registry.db").strip()

    # Direct engine/session so this can run in release without building the Flask app.
    with _session_scope(db_url, create_schema=create_schema) as s:
        if not enterprise_id or not owner:
            print("BOOTSTRAP_ENTERPRISE_ID/BOOTSTRAP_OWNER not set; nothing to seed.")
            return
        existing = enterprises_service.lookup(s, enterprise_id)
        if existing:
            print(f"Enterprise {enterprise_id} already registered (owner={existing.owner}).")
            return
        enterprises_service.register(s, enterprise_id=enterprise_id, name=name, caller=owner)

    print("Initialized database (seed_only).")
    print(f"Enterprise: {enterprise_id}")
    print(f"Owner: {owner}")


def main() -> None:
    parser = argparse.ArgumentParser(description="Create the registry schema and seed the bootstrap enterprise.")
    parser.add_argument(
        "--create-schema",
        action="store_true",
        help="Create tables directly from the models (local dev; production uses alembic).",
    )
    args = parser.parse_args()
    seed_only(database_url=None, create_schema=args.create_schema)


if __name__ == "__main__":
    main()
