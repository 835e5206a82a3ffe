"""Create (or recreate with --reset) the profiles/cards schema."""
from __future__ import annotations

import argparse

from sqlalchemy.exc import SQLAlchemyError

from .session import Base, get_engine
from . import models  # noqa: F401  # registers Profile/Card on the metadata


def create_all(reset: bool = False) -> None:
    engine = get_engine()
    if reset:
        Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)


if __name__ == "__main__":
    ap = argparse.ArgumentParser(description="Create card/profile tables")
    ap.add_argument("--reset", action="store_true", help="Drop existing tables first")
    args = ap.parse_args()
    try:
        create_all(reset=args.reset)
        print("Database tables created successfully.")
    except SQLAlchemyError as exc:
        raise SystemExit(f"Failed to create tables: {exc}") from exc
