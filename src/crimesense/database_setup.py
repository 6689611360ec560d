"""
database_setup.py
------------------
Creates (or migrates) the local store schema and optionally loads demo data.

Run with:
    python -m crimesense.database_setup           # just create the tables
    python -m crimesense.database_setup --seed    # ...and add demo reports/records
"""

import logging
import sys

from crimesense import config
from crimesense.db.store import LocalStore
from crimesense.repository import CrimeRepository

logger = logging.getLogger(__name__)

DEMO_REPORTS = [
    {
        "name": "John Doe",
        "contact": "john@example.com",
        "location": "Central Park",
        "type": "Theft",
        "date": "2023-10-15",
        "time": "14:30",
        "description": "Wallet stolen near fountain",
    },
    {
        "name": "Jane Smith",
        "contact": "555-1234",
        "location": "Main Street",
        "type": "Vandalism",
        "date": "2023-10-14",
        "time": "20:15",
        "description": "Graffiti on storefront",
    },
]

DEMO_RECORDS = [
    {
        "name": "Michael Johnson",
        "alias": "Mikey",
        "crime_type": "Burglary",
        "risk_level": "High",
        "last_known_location": "West District",
        "notes": "Multiple break-ins",
    },
    {
        "name": "Sarah Williams",
        "alias": None,
        "crime_type": "Fraud",
        "risk_level": "Medium",
        "last_known_location": "Downtown",
        "notes": "Credit card scams",
    },
]


def seed_demo_data(repository):
    """Add the demo reports and records. Returns (report_ids, record_ids)."""
    report_ids = [repository.save_report(report) for report in DEMO_REPORTS]
    record_ids = [repository.save_record(record) for record in DEMO_RECORDS]
    return report_ids, record_ids


def initialize_database(database_url=None, seed=False):
    store = LocalStore(database_url)
    store.open()
    logger.info("Database and tables initialized successfully.")

    if seed:
        report_ids, record_ids = seed_demo_data(CrimeRepository(store))
        logger.info("Seeded reports %s and records %s", report_ids, record_ids)

    return store


if __name__ == "__main__":
    logging.basicConfig(level=config.LOG_LEVEL)
    store = initialize_database(seed="--seed" in sys.argv[1:])
    store.close()
