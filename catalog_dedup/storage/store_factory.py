# catalog_dedup/storage/store_factory.py

"""Pick the catalog backend once, at startup."""

import logging
import sqlite3
from pathlib import Path

from catalog_dedup.config.settings import Settings
from catalog_dedup.storage.catalog_store import (
    CatalogStore,
    InMemoryCatalogStore,
)
from catalog_dedup.storage.sqlite_store import SqliteCatalogStore

logger = logging.getLogger("catalog_dedup.store")

BACKENDS: tuple[str, ...] = ("sqlite", "memory")


def open_store(
    backend: str | None = None,
    db_path: Path | None = None,
) -> CatalogStore:
    """Open the configured store.

    A SQLite database that cannot be opened degrades to an empty
    in-memory store with a warning, so ingestion keeps working.
    """
    name = (backend or Settings.STORE_BACKEND).lower()
    if name not in BACKENDS:
        raise ValueError(
            f"Unknown store backend {name!r}; expected one of {BACKENDS}"
        )

    if name == "memory":
        logger.info("Using in-memory catalog store")
        return InMemoryCatalogStore()

    try:
        store = SqliteCatalogStore(db_path=db_path)
    except (sqlite3.Error, OSError) as exc:
        logger.warning(
            "Could not open SQLite catalog (%s), falling back to memory",
            exc,
        )
        return InMemoryCatalogStore()

    logger.info("Using SQLite catalog store at %s", store.path)
    return store
