"""Database connection helpers for mongo-toolkit."""

from .client import MongoHandles, get_client, mongo_session, redact_uri

__all__ = ["MongoHandles", "get_client", "mongo_session", "redact_uri"]
