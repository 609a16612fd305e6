# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
MongoDB service layer with connection pooling.
"""

import os
import logging
from typing import List, Dict, Optional, Any
from pymongo import MongoClient, ASCENDING, DESCENDING
from pymongo.collection import Collection
from pymongo.database import Database
from pymongo.errors import (
    ConnectionFailure,
    ServerSelectionTimeoutError,
    DuplicateKeyError
)
from bson import ObjectId
from bson.errors import InvalidId

logger = logging.getLogger(__name__)

AGREEMENTS = "agreements"
AMENDMENTS = "amendments"
FISCALIZATION_REPORTS = "fiscalization_reports"
USERS = "users"


class DuplicateDocumentError(ValueError):
    """Raised when an insert violates a unique index."""


class MongoDBService:
    """MongoDB service with connection pooling."""

    def __init__(self, connection_string: str = None, database_name: str = None):
        """Initialize MongoDB service with connection pooling."""
        self.connection_string = connection_string or os.getenv(
            'MONGODB_URI',
            'mongodb://localhost:27017/gestao_contratos_dev'
        )
        self.database_name = database_name or os.getenv('MONGODB_DATABASE', 'gestao_contratos_dev')
        self._client: Optional[MongoClient] = None
        self._database: Optional[Database] = None

        # Connection pool settings
        self.max_pool_size = int(os.getenv('MONGODB_MAX_POOL_SIZE', '10'))
        self.min_pool_size = int(os.getenv('MONGODB_MIN_POOL_SIZE', '1'))
        self.max_idle_time_ms = int(os.getenv('MONGODB_MAX_IDLE_TIME_MS', '30000'))
        self.server_selection_timeout_ms = int(os.getenv('MONGODB_SERVER_SELECTION_TIMEOUT_MS', '5000'))

        logger.info(f"MongoDB service initialized for database: {self.database_name}")

    @property
    def client(self) -> MongoClient:
        """Get MongoDB client with connection pooling."""
        if self._client is None:
            try:
                self._client = MongoClient(
                    self.connection_string,
                    maxPoolSize=self.max_pool_size,
                    minPoolSize=self.min_pool_size,
                    maxIdleTimeMS=self.max_idle_time_ms,
                    serverSelectionTimeoutMS=self.server_selection_timeout_ms,
                    retryWrites=True,
                    retryReads=True,
                    tz_aware=True
                )
                # Test connection
                self._client.admin.command('ping')
                logger.info("MongoDB connection established successfully")
            except (ConnectionFailure, ServerSelectionTimeoutError) as e:
                logger.error(f"Failed to connect to MongoDB: {e}")
                raise

        return self._client

    @property
    def database(self) -> Database:
        """Get MongoDB database."""
        if self._database is None:
            self._database = self.client[self.database_name]
        return self._database

    def get_collection(self, collection_name: str) -> Collection:
        """Get MongoDB collection."""
        return self.database[collection_name]

    def health_check(self) -> Dict[str, Any]:
        """Check MongoDB connection health."""
        try:
            result = self.client.admin.command('ping')
            server_info = self.client.server_info()

            return {
                'status': 'healthy',
                'ping': result.get('ok') == 1,
                'version': server_info.get('version'),
                'database': self.database_name,
                'connection_pool_size': self.max_pool_size
            }
        except (ConnectionFailure, ServerSelectionTimeoutError) as e:
            logger.error(f"MongoDB health check failed: {e}")
            return {
                'status': 'unhealthy',
                'error': str(e),
                'database': self.database_name
            }

    @staticmethod
    def to_object_id(doc_id: str) -> ObjectId:
        """Validate and convert string ID to ObjectId."""
        try:
            return ObjectId(doc_id)
        except (InvalidId, TypeError):
            raise ValueError(f"Invalid ObjectId format: {doc_id}")

    @staticmethod
    def _from_storage(document: Optional[Dict]) -> Optional[Dict]:
        """Expose the ObjectId as a string ``id`` key."""
        if document is not None and "_id" in document:
            document["id"] = str(document.pop("_id"))
        return document

    # CRUD Operations

    def insert(self, collection: str, document: Dict) -> str:
        """
        Insert a new document.

        Raises:
            DuplicateDocumentError: If a unique index is violated
        """
        document = dict(document)
        if "id" in document:
            document["_id"] = self.to_object_id(document.pop("id"))
        elif "_id" not in document:
            document["_id"] = ObjectId()

        try:
            result = self.get_collection(collection).insert_one(document)
        except DuplicateKeyError as e:
            logger.warning(f"Duplicate key error in {collection}: {e}")
            raise DuplicateDocumentError("Document with this identifier already exists")

        logger.info(f"Created document in {collection}: {result.inserted_id}")
        return str(result.inserted_id)

    def find_by_id(self, collection: str, doc_id: str) -> Optional[Dict]:
        """Find a single document by ID; None for unknown or malformed IDs."""
        try:
            object_id = self.to_object_id(doc_id)
        except ValueError as e:
            logger.debug(f"Invalid document ID {doc_id}: {e}")
            return None

        document = self.get_collection(collection).find_one({"_id": object_id})
        if document is None:
            logger.debug(f"Document {doc_id} not found in {collection}")
        return self._from_storage(document)

    def find_one(self, collection: str, query: Dict) -> Optional[Dict]:
        """Find the first document matching ``query``."""
        return self._from_storage(self.get_collection(collection).find_one(query))

    def find(self, collection: str, query: Dict = None, sort: List = None) -> List[Dict]:
        """Find documents matching ``query``, optionally sorted."""
        cursor = self.get_collection(collection).find(query or {})
        if sort:
            cursor = cursor.sort(sort)
        documents = [self._from_storage(doc) for doc in cursor]
        logger.debug(f"Found {len(documents)} documents in {collection}")
        return documents

    def update_where(self, collection: str, query: Dict, updates: Dict) -> bool:
        """
        Apply ``$set`` updates to the single document matching ``query``.

        Returns:
            True if a document matched the query
        """
        result = self.get_collection(collection).update_one(query, {"$set": updates})
        if result.matched_count == 0:
            logger.debug(f"No document matched update in {collection}: {query}")
            return False
        return True

    # Index Management

    def create_indexes(self) -> None:
        """Create performance and uniqueness indexes for all collections."""
        logger.info("Creating MongoDB indexes...")

        agreements = self.get_collection(AGREEMENTS)
        agreements.create_index("identifier")
        agreements.create_index([("department", ASCENDING), ("endDate", ASCENDING)])

        amendments = self.get_collection(AMENDMENTS)
        amendments.create_index([("agreementId", ASCENDING), ("entryDate", ASCENDING)])

        # One report per agreement and reference month
        reports = self.get_collection(FISCALIZATION_REPORTS)
        reports.create_index(
            [("agreementId", ASCENDING), ("referenceMonth", ASCENDING)],
            unique=True
        )
        reports.create_index([("agreementId", ASCENDING), ("referenceMonth", DESCENDING)])
        reports.create_index("status")

        users = self.get_collection(USERS)
        users.create_index("email", unique=True)

        logger.info("MongoDB indexes created successfully")

