from dataclasses import dataclass
from typing import Any, TypeAlias

from pymongo.asynchronous.collection import AsyncCollection
from pymongo.asynchronous.database import AsyncDatabase
from pymongo.asynchronous.mongo_client import AsyncMongoClient

# MongoDocument represents the raw document type returned by PyMongo operations
MongoDocument: TypeAlias = dict[str, Any]
DBClient: TypeAlias = AsyncMongoClient[MongoDocument]
Database: TypeAlias = AsyncDatabase[MongoDocument]
Collection: TypeAlias = AsyncCollection[MongoDocument]


@dataclass(frozen=True)
class DatabaseConfig:
    mongodb_url: str
    db_name: str
    server_selection_timeout_ms: int = 5000
    connect_timeout_ms: int = 10000
    max_pool_size: int = 100
    min_pool_size: int = 10
    retry_writes: bool = True
    retry_reads: bool = True


def create_client(config: DatabaseConfig) -> DBClient:
    """Create a tz-aware client so datetimes come back with tzinfo=UTC."""
    return AsyncMongoClient(
        config.mongodb_url,
        tz_aware=True,
        serverSelectionTimeoutMS=config.server_selection_timeout_ms,
        connectTimeoutMS=config.connect_timeout_ms,
        maxPoolSize=config.max_pool_size,
        minPoolSize=config.min_pool_size,
        retryWrites=config.retry_writes,
        retryReads=config.retry_reads,
    )
