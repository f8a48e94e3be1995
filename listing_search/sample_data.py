"""Sample Bengaluru listings used for demos and local development."""

import logging
import uuid
from typing import Tuple

from listing_search.models import GeoPoint, ListingRecord
from listing_search.search.index import SearchIndex

logger = logging.getLogger(__name__)


def sample_listings() -> Tuple[ListingRecord, ...]:
    """Return fresh copies of the sample listings with newly generated ids."""
    return (
        ListingRecord(
            id=str(uuid.uuid4()),
            name="Sunrise Cafe",
            description="Cozy coffee & brunch spot",
            categories=("cafe", "breakfast", "coffee"),
            address="MG Road, Bengaluru",
            location=GeoPoint(lon=77.612, lat=12.975),
            phone="+91-9876543210",
            website="https://sunrisecafe.example.com",
            rating=4.3,
        ),
        ListingRecord(
            id=str(uuid.uuid4()),
            name="TechFix Solutions",
            description="Laptop & phone repairs",
            categories=("electronics", "repair"),
            address="Koramangala, Bengaluru",
            location=GeoPoint(lon=77.628, lat=12.935),
            phone="+91-9900011111",
            website="https://techfix.example.com",
            rating=4.6,
        ),
        ListingRecord(
            id=str(uuid.uuid4()),
            name="Spice Route Restaurant",
            description="Authentic Indian cuisine",
            categories=("restaurant", "indian"),
            address="Indiranagar, Bengaluru",
            location=GeoPoint(lon=77.640, lat=12.971),
            phone="+91-9988776655",
            website="https://spiceroute.example.com",
            rating=4.5,
        ),
        ListingRecord(
            id=str(uuid.uuid4()),
            name="GreenLeaf Grocers",
            description="Organic produce & daily needs",
            categories=("grocery", "organic"),
            address="HSR Layout, Bengaluru",
            location=GeoPoint(lon=77.651, lat=12.912),
            phone="+91-9123456780",
            website="https://greenleaf.example.com",
            rating=4.1,
        ),
    )


def seed_sample_listings(index: SearchIndex, force: bool = False) -> int:
    """Store the sample listings unless the index already holds data."""
    if not force and index.count() > 0:
        logger.info("Listing store already populated; skipping sample data")
        return 0

    records = sample_listings()
    for record in records:
        index.save(record)
    logger.info("Seeded %d sample listings", len(records))
    return len(records)
