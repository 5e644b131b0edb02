# SPDX-License-Identifier: MIT
"""Configuration management for shardstore.

This module handles:
- Logging setup
- Environment variable validation
- Dropbox backend settings
"""

import logging
import os
import sys
from functools import lru_cache

from pydantic import BaseModel, Field, ValidationError, field_validator

# ---------- Logging configuration ----------
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    stream=sys.stderr,
)
logger = logging.getLogger("shardstore")


# ---------- Backend settings ----------
class DropboxSettings(BaseModel, frozen=True):
    """Validated settings for :class:`~shardstore.storage.dropbox.DropboxStorage`.

    Rate limits are in kilobytes per second across all clients; ``0`` means
    unlimited.
    """

    access_token: str
    storage_dir: str
    threads: int = Field(default=1, ge=1)
    minimum_nesting: int = Field(default=1, ge=0)
    download_rate_limit: int = Field(default=0, ge=0)
    upload_rate_limit: int = Field(default=0, ge=0)

    @field_validator("access_token")
    @classmethod
    def _validate_token(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("access token must not be blank")
        return v.strip()


_REQUIRED: dict[str, str] = {
    "DROPBOX_ACCESS_TOKEN": "Dropbox API access token",
    "SHARDSTORE_STORAGE_DIR": "Storage root folder inside Dropbox (e.g. /backups/repo)",
}

_OPTIONAL: dict[str, str] = {
    "threads": "SHARDSTORE_THREADS",
    "minimum_nesting": "SHARDSTORE_MINIMUM_NESTING",
    "download_rate_limit": "SHARDSTORE_DOWNLOAD_RATE_LIMIT",
    "upload_rate_limit": "SHARDSTORE_UPLOAD_RATE_LIMIT",
}


@lru_cache(maxsize=1)
def get_settings() -> DropboxSettings:
    """Read and validate backend settings from the environment (cached).

    Returns:
        Validated settings

    Raises:
        RuntimeError: If a required variable is missing or a value is invalid
    """
    missing = [name for name in _REQUIRED if not os.getenv(name, "").strip()]
    if missing:
        details = "\n".join(f"  - {name}: {_REQUIRED[name]}" for name in missing)
        raise RuntimeError(f"Missing required shardstore environment variable(s):\n{details}")

    values: dict[str, str] = {
        "access_token": os.environ["DROPBOX_ACCESS_TOKEN"],
        "storage_dir": os.environ["SHARDSTORE_STORAGE_DIR"].strip(),
    }
    for field, env_var in _OPTIONAL.items():
        raw = os.getenv(env_var, "").strip()
        if raw:
            values[field] = raw

    try:
        return DropboxSettings(**values)
    except ValidationError as e:
        raise RuntimeError(f"Invalid shardstore configuration: {e}") from e
