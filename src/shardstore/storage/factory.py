# SPDX-License-Identifier: MIT
"""Storage backend factory.

Reads ``SHARDSTORE_BACKEND`` env var (default ``"dropbox"``) and returns the
appropriate singleton backend instance.
"""

from __future__ import annotations

import atexit
import logging
import os
from functools import lru_cache

from dotenv import load_dotenv

from ..config import get_settings
from .dropbox import DropboxStorage
from .pool import ClientPool
from .protocol import StorageBackend

logger = logging.getLogger("shardstore")


@lru_cache(maxsize=1)
def get_storage() -> StorageBackend:
    """Return the configured :class:`StorageBackend` (cached singleton).

    The httpx clients held by the backend are closed automatically at
    process exit via :func:`atexit`.

    Configuration
    -------------
    ``SHARDSTORE_BACKEND``
        ``"dropbox"`` (default) – stores chunks in a Dropbox folder.
            Requires ``DROPBOX_ACCESS_TOKEN`` and ``SHARDSTORE_STORAGE_DIR``;
            see :func:`shardstore.config.get_settings` for optional tuning.
    """
    load_dotenv()  # Load environment variables at runtime
    backend_type = os.getenv("SHARDSTORE_BACKEND", "dropbox").lower()

    if backend_type == "dropbox":
        settings = get_settings()
        clients = ClientPool.for_dropbox(settings.access_token, settings.threads)
        try:
            backend = DropboxStorage(
                clients,
                settings.storage_dir,
                settings.minimum_nesting,
                download_rate_limit=settings.download_rate_limit,
                upload_rate_limit=settings.upload_rate_limit,
            )
        except Exception:
            clients.close()
            raise
        logger.info(
            "Dropbox storage ready at %s (%d thread(s), minimum nesting %d)",
            backend.storage_dir,
            settings.threads,
            settings.minimum_nesting,
        )
        _register_cleanup(backend)
        return backend

    raise RuntimeError(f"Unknown SHARDSTORE_BACKEND: {backend_type!r}. Use 'dropbox'.")


def _register_cleanup(backend: StorageBackend) -> None:
    """Register an atexit handler to close the backend's clients."""

    def _cleanup() -> None:
        backend.close()
        logger.debug("Storage backend clients closed")

    atexit.register(_cleanup)
