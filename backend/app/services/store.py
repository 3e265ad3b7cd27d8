"""Application wiring for the entitlement store."""
from __future__ import annotations

import logging
from functools import lru_cache

from ..store import EntitlementStore, InMemoryEntitlementStore, PostgresEntitlementStore

try:
    from backend import app_context
except ModuleNotFoundError as exc:  # pragma: no cover - fallback for running from backend/
    if exc.name != "backend":
        raise
    import app_context  # type: ignore[no-redef]


logger = logging.getLogger(__name__)


@lru_cache(maxsize=1)
def get_entitlement_store() -> EntitlementStore:
    config = app_context.get_config()
    if config.store_backend == "memory":
        logger.warning("Using in-memory entitlement store; data is lost on restart")
        return InMemoryEntitlementStore()
    logger.info("Using PostgreSQL entitlement store at %s/%s", config.db_host, config.db_name)
    return PostgresEntitlementStore(app_context.get_conn)


__all__ = ["get_entitlement_store"]
