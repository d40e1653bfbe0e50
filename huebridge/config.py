"""Discovery and connection settings."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field

DEFAULT_MULTICAST_HOST = "239.255.255.250"
DEFAULT_MULTICAST_PORT = 1900
DEFAULT_REMOTE_URL = "https://discovery.meethue.com"
DEFAULT_CACHE_FILENAME = ".hue"


class DiscoveryConfig(BaseModel):
    """Endpoints, deadlines and cache location used by discovery and pairing."""

    multicast_host: str = Field(default=DEFAULT_MULTICAST_HOST)
    multicast_port: int = Field(default=DEFAULT_MULTICAST_PORT, ge=1, le=65535)
    search_deadline: float = Field(default=5.0, gt=0)
    remote_url: str = Field(default=DEFAULT_REMOTE_URL)
    cache_filename: str = Field(default=DEFAULT_CACHE_FILENAME, min_length=1)
    cache_path: Optional[Path] = Field(default=None)
    http_timeout: float = Field(default=5.0, gt=0)
    vendor_marker: str = Field(default="Philips hue", min_length=1)

    @classmethod
    def from_env(cls, env_file: Optional[Path] = None) -> "DiscoveryConfig":
        """Build settings from ``HUE_*`` environment variables.

        A ``.env`` file is loaded first when present; variables already set
        in the environment win.
        """
        env_file = env_file or Path(".env")
        if env_file.exists():
            load_dotenv(env_file)

        values = {}
        if os.getenv("HUE_REMOTE_URL"):
            values["remote_url"] = os.environ["HUE_REMOTE_URL"]
        if os.getenv("HUE_SEARCH_DEADLINE"):
            values["search_deadline"] = os.environ["HUE_SEARCH_DEADLINE"]
        if os.getenv("HUE_HTTP_TIMEOUT"):
            values["http_timeout"] = os.environ["HUE_HTTP_TIMEOUT"]
        if os.getenv("HUE_CACHE_PATH"):
            values["cache_path"] = os.environ["HUE_CACHE_PATH"]
        return cls(**values)
