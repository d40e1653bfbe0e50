"""Persistent cache for the paired bridge."""

from __future__ import annotations

from pathlib import Path
from typing import Optional

from loguru import logger

from .config import DEFAULT_CACHE_FILENAME
from .models import CacheRecord, PairedBridge


class BridgeCache:
    """Best-effort storage of a paired bridge under the user's home directory.

    Nothing here raises: a cache that cannot be read behaves like an empty
    one and a cache that cannot be written is skipped. There is no locking,
    so concurrent writers race and the last one wins.
    """

    def __init__(self, path: Optional[Path] = None, filename: str = DEFAULT_CACHE_FILENAME) -> None:
        self._path = Path(path) if path is not None else None
        self.filename = filename

    @property
    def path(self) -> Path:
        """Location of the cache file. May raise if there is no home directory."""
        if self._path is not None:
            return self._path
        return Path.home() / self.filename

    def load(self) -> Optional[PairedBridge]:
        """Return the cached bridge, or None when there is none to use."""
        try:
            path = self.path
        except (RuntimeError, KeyError) as e:
            logger.warning(f"could not retrieve cache: {e}")
            return None

        if not path.exists():
            return None

        try:
            record = CacheRecord.model_validate_json(path.read_text(encoding="utf-8"))
            bridge = record.to_bridge()
        except (OSError, ValueError) as e:
            logger.warning(f"could not retrieve cache from {path}: {e}")
            return None

        logger.debug(f"Loaded bridge {bridge.id} from cache {path}")
        return bridge

    def save(self, bridge: PairedBridge) -> None:
        """Write ``bridge`` to the cache file, replacing its contents."""
        try:
            path = self.path
            path.write_text(
                CacheRecord.from_bridge(bridge).model_dump_json(by_alias=True),
                encoding="utf-8",
            )
        except (RuntimeError, KeyError, OSError) as e:
            logger.warning(f"could not cache bridge {bridge.id}: {e}")
            return

        logger.info(f"Bridge {bridge.id} cached to {path}")

    def forget(self) -> bool:
        """Delete the cache file. Returns True if a file was removed."""
        try:
            path = self.path
            path.unlink()
        except FileNotFoundError:
            return False
        except (RuntimeError, KeyError, OSError) as e:
            logger.warning(f"could not remove cache: {e}")
            return False

        logger.info(f"Removed bridge cache {path}")
        return True
