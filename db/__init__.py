"""
Krishna108 - Database Layer

PostgreSQL storage for published posts, which is also the publication
history the verse selector reads. Consumers depend on the interfaces;
PostgresClient implements them.

Usage:
    from db import PostgresClient, IHistoryReader
"""
from db.interfaces import IHistoryReader, IPostRepository
from db.postgres import PostgresClient, get_db_client, close_db_client

__all__ = [
    "IHistoryReader",
    "IPostRepository",
    "PostgresClient",
    "get_db_client",
    "close_db_client",
]
