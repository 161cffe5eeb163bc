"""Database connection module."""

from src.core.database.firestore import (
    FirestoreConnection,
    get_firestore_client,
    init_firestore,
    shutdown_firestore,
)


__all__ = [
    "FirestoreConnection",
    "get_firestore_client",
    "init_firestore",
    "shutdown_firestore",
]
