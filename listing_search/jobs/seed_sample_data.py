"""CLI job to create the listings schema and load the sample listings."""

import argparse
import logging

from listing_search.core.config import get_settings
from listing_search.core.db import close_pool
from listing_search.sample_data import seed_sample_listings
from listing_search.service import build_index

logger = logging.getLogger(__name__)


def run_seed_job(*, force: bool) -> int:
    settings = get_settings()
    if settings.backend == "memory":
        logger.warning("LISTINGS_BACKEND=memory; seeded listings will not outlive this process")

    index = build_index(settings)
    try:
        ensure_schema = getattr(index, "ensure_schema", None)
        if ensure_schema is not None:
            ensure_schema()

        seeded = seed_sample_listings(index, force=force)
    finally:
        close_pool()
    logger.info("Completed seed run: listings_seeded=%d", seeded)
    return seeded


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Load the sample business listings")
    parser.add_argument(
        "--force",
        action="store_true",
        help="Load the sample listings even if the store already has data",
    )
    return parser


def main() -> None:
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s - %(message)s")
    parser = build_parser()
    args = parser.parse_args()

    run_seed_job(force=args.force)


if __name__ == "__main__":
    main()
