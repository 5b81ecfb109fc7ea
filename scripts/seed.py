"""
Seed the database with gram panchayats and their performance metrics.

Usage:
    python scripts/seed.py [path/to/data.json]

The path defaults to SEED_DATA_PATH, then to data/gram_panchayats.json.
"""
import argparse
import sys
from pathlib import Path

from swm_dashboard.core.config import settings
from swm_dashboard.core.database import Database
from swm_dashboard.core.exceptions import AppError
from swm_dashboard.core.logging import get_logger, setup_logging
from swm_dashboard.services.seed_service import SeedService, load_seed_records

DEFAULT_DATA_PATH = Path(__file__).resolve().parent.parent / "data" / "gram_panchayats.json"

logger = get_logger("scripts.seed")


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Seed gram panchayats and performance metrics")
    parser.add_argument("path", nargs="?", default=settings.SEED_DATA_PATH or str(DEFAULT_DATA_PATH))
    args = parser.parse_args(argv)

    setup_logging()
    database = Database(settings.DATABASE_URL, echo=settings.DATABASE_ECHO).connect()
    try:
        database.create_all()
        records = load_seed_records(args.path)
        db = database.session()
        try:
            SeedService(db).seed(records)
        finally:
            db.close()
    except (AppError, OSError) as e:
        logger.error(f"Failed to seed database: {e}")
        return 1
    finally:
        database.close()
    return 0


if __name__ == "__main__":
    sys.exit(main())
