"""Async Firestore connection via the Firebase Admin SDK.

Provides:
- Firebase app initialisation (service account or application default creds)
- A shared ``google.cloud.firestore.AsyncClient``
- Emulator support for local development and integration tests
"""

import os
from pathlib import Path
from typing import TYPE_CHECKING

import firebase_admin
import structlog
from firebase_admin import credentials, firestore_async

from src.config.settings import Settings, get_settings


if TYPE_CHECKING:
    from google.cloud.firestore import AsyncClient


logger = structlog.get_logger(__name__)

FIRESTORE_EMULATOR_ENV = "FIRESTORE_EMULATOR_HOST"


class FirestoreConnection:
    """Firestore connection manager.

    Owns the Firebase app and the async Firestore client for the lifetime of
    the process. ``connect`` is idempotent.
    """

    _app: firebase_admin.App | None = None
    _client: "AsyncClient | None" = None

    @classmethod
    def _credential(cls, settings: Settings) -> credentials.Base:
        creds_path = settings.firebase_credentials_path
        if not creds_path:
            return credentials.ApplicationDefault()

        path = Path(creds_path)
        if not path.is_absolute():
            # Relative to the API root
            path = Path(__file__).resolve().parents[3] / path
        if not path.exists():
            msg = f"Firebase credentials file not found: {path}"
            raise ConnectionError(msg)
        return credentials.Certificate(str(path))

    @classmethod
    def connect(cls, settings: Settings | None = None) -> "AsyncClient":
        """Initialise the Firebase app and return the async Firestore client.

        Raises:
            ConnectionError: If the app or client cannot be created.
        """
        if cls._client is not None:
            return cls._client

        settings = settings or get_settings()

        if settings.firestore_emulator_host:
            os.environ[FIRESTORE_EMULATOR_ENV] = settings.firestore_emulator_host

        options = None
        if settings.firebase_project_id:
            options = {"projectId": settings.firebase_project_id}

        try:
            if cls._app is None:
                cls._app = firebase_admin.initialize_app(
                    cls._credential(settings), options
                )
            cls._client = firestore_async.client(cls._app)
        except ConnectionError:
            raise
        except Exception as e:
            logger.exception("firestore_connection_failed", error=str(e))
            msg = f"Failed to connect to Firestore: {e}"
            raise ConnectionError(msg) from e

        logger.info(
            "firestore_connected",
            project_id=settings.firebase_project_id,
            emulator=settings.firestore_emulator_host,
        )
        return cls._client

    @classmethod
    def get_client(cls) -> "AsyncClient":
        """Get the active client, connecting if necessary."""
        if cls._client is None:
            return cls.connect()
        return cls._client

    @classmethod
    def get_app(cls) -> firebase_admin.App | None:
        return cls._app

    @classmethod
    def disconnect(cls) -> None:
        """Release the client and delete the Firebase app."""
        cls._client = None
        if cls._app is not None:
            firebase_admin.delete_app(cls._app)
            cls._app = None
            logger.info("firestore_disconnected")

    @classmethod
    def is_connected(cls) -> bool:
        return cls._client is not None


def get_firestore_client() -> "AsyncClient":
    """Get the shared async Firestore client (dependency injection helper)."""
    return FirestoreConnection.get_client()


async def init_firestore(settings: Settings | None = None) -> "AsyncClient":
    """Initialise the Firestore connection at application startup."""
    return FirestoreConnection.connect(settings)


async def shutdown_firestore() -> None:
    FirestoreConnection.disconnect()
