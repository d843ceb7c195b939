"""MongoDB connection and database operations.

This module provides claim queries for 837P generation and A/R aging,
and persistence of EDI transaction records.
"""

import logging
from typing import Dict, List, Optional, Any, Tuple
from pymongo import MongoClient, DESCENDING
from pymongo.errors import ConnectionFailure, OperationFailure, PyMongoError

from ..config.settings import DatabaseConfig
from ..models.claim import ClaimData
from ..models.transaction import EDITransaction

logger = logging.getLogger(__name__)


class DatabaseConnection:
    """Manages MongoDB connection and provides claim/transaction queries."""

    def __init__(self, config: DatabaseConfig, client: Optional[MongoClient] = None):
        """Initialize database connection.

        Args:
            config: Database configuration settings
            client: Pre-built client (connect() then only selects the database)
        """
        self.config = config
        self.client: Optional[MongoClient] = client
        self.db = None

    def connect(self) -> bool:
        """Establish connection to MongoDB.

        Returns:
            True if connection successful, False otherwise
        """
        try:
            if self.client is None:
                self.client = MongoClient(
                    self.config.uri,
                    serverSelectionTimeoutMS=self.config.timeout_ms
                )

            # Test connection
            self.client.admin.command('ping')
            self.db = self.client[self.config.database_name]

            logger.info(f"Connected to MongoDB: {self.config.database_name}")
            return True

        except ConnectionFailure as e:
            logger.error(f"Failed to connect to MongoDB: {e}")
            return False

        except PyMongoError as e:
            logger.error(f"Unexpected error connecting to MongoDB: {e}")
            return False

    def close(self):
        """Close MongoDB connection."""
        if self.client:
            self.client.close()
            logger.info("MongoDB connection closed")

    @staticmethod
    def build_claim_filter(
        claim_ids: Optional[List[str]] = None,
        payer_id: Optional[str] = None,
        date_range: Optional[Tuple[str, str]] = None,
        statuses: Optional[List[str]] = None
    ) -> Dict[str, Any]:
        """Build the claim match conditions.

        Args:
            claim_ids: Specific claim IDs to retrieve
            payer_id: Filter by payer ID
            date_range: Tuple of (start_date, end_date) as YYYY-MM-DD strings
            statuses: List of claim statuses to include

        Returns:
            MongoDB filter document
        """
        match_conditions: Dict[str, Any] = {}

        if claim_ids:
            match_conditions["claim_id"] = {"$in": claim_ids}

        if payer_id:
            match_conditions["payer_id"] = payer_id

        if statuses:
            match_conditions["status"] = {"$in": statuses}

        if date_range and len(date_range) == 2:
            match_conditions["service_date"] = {
                "$gte": date_range[0],
                "$lte": date_range[1]
            }

        return match_conditions

    def get_claims(
        self,
        claim_ids: Optional[List[str]] = None,
        payer_id: Optional[str] = None,
        date_range: Optional[Tuple[str, str]] = None,
        statuses: Optional[List[str]] = None,
        limit: Optional[int] = None
    ) -> List[ClaimData]:
        """Get claims ready for 837P generation.

        Returns:
            List of ClaimData, empty on database errors
        """
        match_conditions = self.build_claim_filter(claim_ids, payer_id, date_range, statuses)

        try:
            collection = self.db[self.config.claim_collection]
            cursor = collection.find(match_conditions).limit(limit or self.config.default_limit)
            claims = [ClaimData.from_dict(doc) for doc in cursor]
            logger.info(f"Retrieved {len(claims)} claims")
            return claims

        except OperationFailure as e:
            logger.error(f"MongoDB claim query failed: {e}")
            return []

        except PyMongoError as e:
            logger.error(f"Unexpected error retrieving claims: {e}")
            return []

    def get_outstanding_claims(self, limit: Optional[int] = None) -> List[Dict[str, Any]]:
        """Get claims with an open balance for A/R aging.

        Returns:
            Raw claim documents projected to the aging fields
        """
        pipeline = [
            {"$match": {"balance": {"$gt": 0}}},
            {"$project": {
                "_id": 0,
                "claim_id": 1,
                "balance": 1,
                "total_charges": 1,
                "service_date": 1,
                "last_payment_date": 1
            }},
        ]
        if limit:
            pipeline.append({"$limit": limit})

        try:
            collection = self.db[self.config.claim_collection]
            results = list(collection.aggregate(pipeline))
            logger.info(f"Retrieved {len(results)} outstanding claims")
            return results

        except OperationFailure as e:
            logger.error(f"MongoDB aggregation failed: {e}")
            return []

        except PyMongoError as e:
            logger.error(f"Unexpected error in aggregation: {e}")
            return []

    def save_transaction(self, transaction: EDITransaction) -> bool:
        """Insert or replace an EDI transaction record.

        Returns:
            True if the record was written
        """
        document = transaction.to_document()
        try:
            collection = self.db[self.config.transaction_collection]
            collection.replace_one({"_id": document["_id"]}, document, upsert=True)
            logger.info(f"Saved EDI transaction {transaction.id} ({transaction.status})")
            return True

        except PyMongoError as e:
            logger.error(f"Error saving EDI transaction {transaction.id}: {e}")
            return False

    def get_transactions(self, status: Optional[str] = None, limit: int = 100) -> List[EDITransaction]:
        """Get EDI transactions, newest first.

        Args:
            status: Only return transactions in this status
            limit: Maximum number of transactions to return

        Returns:
            List of EDITransaction
        """
        query = {"status": status} if status else {}
        try:
            collection = self.db[self.config.transaction_collection]
            cursor = collection.find(query).sort("created_at", DESCENDING).limit(limit)
            return [EDITransaction.from_document(doc) for doc in cursor]

        except PyMongoError as e:
            logger.error(f"Error retrieving EDI transactions: {e}")
            return []

    def validate_collections(self) -> bool:
        """Validate that all required collections exist.

        Returns:
            True if all collections exist, False otherwise
        """
        required_collections = [
            self.config.claim_collection,
        ]

        try:
            existing_collections = self.db.list_collection_names()

            missing = [c for c in required_collections if c not in existing_collections]

            if missing:
                logger.error(f"Missing required collections: {missing}")
                return False

            logger.info("All required collections validated")
            return True

        except PyMongoError as e:
            logger.error(f"Error validating collections: {e}")
            return False
