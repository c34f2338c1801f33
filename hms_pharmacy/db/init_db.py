# hms_pharmacy/db/init_db.py
from __future__ import annotations

import argparse
import logging

from sqlalchemy import inspect
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from hms_pharmacy.db.base import Base
from hms_pharmacy.db.session import engine as default_engine

# Import all models so metadata is complete
import hms_pharmacy.models  # noqa: F401

logger = logging.getLogger(__name__)


def create_tables(engine: Engine = default_engine) -> None:
    Base.metadata.create_all(bind=engine)


def drop_tables(engine: Engine = default_engine) -> None:
    Base.metadata.drop_all(bind=engine)


def main() -> None:
    parser = argparse.ArgumentParser(description="Create pharmacy purchasing tables")
    parser.add_argument("--drop", action="store_true", help="Drop all tables first")
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO)
    try:
        if args.drop:
            drop_tables()
            logger.info("Dropped all tables")
        create_tables()
    except SQLAlchemyError:
        logger.exception("Schema creation failed")
        raise

    logger.info("Tables: %s", sorted(inspect(default_engine).get_table_names()))


if __name__ == "__main__":
    main()
