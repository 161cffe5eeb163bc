# Core infrastructure
from src.core.context import (
    RequestContext,
    clear_context,
    get_context,
    get_request_id,
    get_trace_id,
    get_user_id,
    set_request_id,
    set_trace_id,
    set_user_id,
)
from src.core.database import get_firestore_client, init_firestore, shutdown_firestore
from src.core.logging import configure_structlog, get_logger
from src.core.middleware import RequestContextMiddleware


__all__ = [
    "RequestContext",
    "RequestContextMiddleware",
    "clear_context",
    "configure_structlog",
    "get_context",
    "get_firestore_client",
    "get_logger",
    "get_request_id",
    "get_trace_id",
    "get_user_id",
    "init_firestore",
    "set_request_id",
    "set_trace_id",
    "set_user_id",
    "shutdown_firestore",
]
