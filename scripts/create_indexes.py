#!/usr/bin/env python3
"""Create MongoDB indexes for the claim and EDI transaction collections.

Collection names and the connection URI come from the toolkit settings
(config file and RCM_EDI_* environment), so indexes land on the same
collections main.py queries.
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from pymongo import MongoClient, ASCENDING, DESCENDING
from pymongo.errors import OperationFailure, ConnectionFailure, PyMongoError

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from rcm_edi.config.settings import DatabaseConfig, Settings

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

IndexSpec = Tuple[List[Tuple[str, int]], Dict[str, Any]]

# Keyed by the DatabaseConfig attribute holding the collection name
INDEXES: Dict[str, List[IndexSpec]] = {
    "claim_collection": [
        ([("claim_id", ASCENDING)],
         {"unique": True, "sparse": True, "name": "idx_claim_id_unique"}),
        # --payer-id with --date-range
        ([("payer_id", ASCENDING), ("service_date", DESCENDING)],
         {"name": "idx_payer_service_date"}),
        ([("status", ASCENDING)],
         {"name": "idx_status"}),
        # Outstanding balance scan for A/R aging
        ([("balance", ASCENDING)],
         {"name": "idx_balance"}),
    ],
    "transaction_collection": [
        ([("status", ASCENDING), ("created_at", DESCENDING)],
         {"name": "idx_status_created"}),
        ([("control_number", ASCENDING)],
         {"name": "idx_control_number"}),
    ],
}


class IndexCreator:
    """Creates and verifies the indexes the toolkit's queries rely on."""

    def __init__(self, config: Optional[DatabaseConfig] = None):
        self.config = config or DatabaseConfig()
        self.client: Optional[MongoClient] = None
        self.db = None

    def collection_name(self, key: str) -> str:
        return getattr(self.config, key)

    def connect(self):
        """Establish database connection.

        Raises:
            ConnectionFailure: If the server cannot be reached
        """
        self.client = MongoClient(self.config.uri, serverSelectionTimeoutMS=self.config.timeout_ms)
        try:
            self.client.admin.command('ping')
        except ConnectionFailure as e:
            logger.error(f"Failed to connect to MongoDB: {e}")
            raise
        self.db = self.client[self.config.database_name]
        logger.info(f"Connected to MongoDB: {self.config.database_name}")

    def create_indexes(self) -> Dict[str, List[str]]:
        """Create every missing index.

        Returns:
            Collection name -> index names, existing ones marked "(existing)"
        """
        if self.db is None:
            raise RuntimeError("Not connected to database")

        results = {}
        for key, specs in INDEXES.items():
            name = self.collection_name(key)
            collection = self.db[name]
            existing = {idx['name'] for idx in collection.list_indexes()}
            results[name] = [self._ensure_index(collection, spec, options, existing) for spec, options in specs]

        return results

    def _ensure_index(self, collection, spec, options: Dict[str, Any], existing: set) -> str:
        index_name = options["name"]
        if index_name in existing:
            logger.info(f"Index {index_name} already exists on {collection.name}")
            return f"{index_name} (existing)"

        try:
            created = collection.create_index(spec, **options)
        except OperationFailure as e:
            logger.error(f"Failed to create index {index_name} on {collection.name}: {e}")
            return f"{index_name} (failed)"

        logger.info(f"Created index {created} on {collection.name}")
        return created

    def missing_indexes(self) -> Dict[str, List[str]]:
        """Return the expected index names absent from each collection."""
        if self.db is None:
            raise RuntimeError("Not connected to database")

        missing = {}
        for key, specs in INDEXES.items():
            name = self.collection_name(key)
            present = {idx['name'] for idx in self.db[name].list_indexes()}
            absent = [options["name"] for _, options in specs if options["name"] not in present]
            if absent:
                logger.warning(f"Collection {name} is missing indexes: {absent}")
            missing[name] = absent
        return missing

    def close(self):
        if self.client is not None:
            self.client.close()
            logger.info("Database connection closed")


def main() -> int:
    parser = argparse.ArgumentParser(description="Create MongoDB indexes for the RCM EDI toolkit")
    parser.add_argument("--config", help="Path to JSON configuration file")
    parser.add_argument("--uri", help="MongoDB connection URI (default: from settings)")
    parser.add_argument("--database", help="Database name (default: from settings)")
    parser.add_argument(
        "--verify-only",
        action="store_true",
        help="Only report missing indexes, don't create new ones"
    )
    args = parser.parse_args()

    settings = Settings(config_file=args.config)
    if args.uri:
        settings.database.uri = args.uri
    if args.database:
        settings.database.database_name = args.database

    creator = IndexCreator(settings.database)
    try:
        creator.connect()
        if not args.verify_only:
            logger.info(f"Index creation complete: {creator.create_indexes()}")
        missing = creator.missing_indexes()
    except (PyMongoError, RuntimeError) as e:
        logger.error(f"Error: {e}")
        return 1
    finally:
        creator.close()

    return 1 if any(missing.values()) else 0


if __name__ == "__main__":
    sys.exit(main())
