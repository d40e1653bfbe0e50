"""Bridge identity models and the on-disk cache record."""

from __future__ import annotations

import httpx
from pydantic import BaseModel, ConfigDict, Field, field_validator


class BridgeIdentity(BaseModel):
    """A discovered bridge: its serial number and base URL."""

    model_config = ConfigDict(frozen=True)

    id: str
    address: str

    @field_validator("address")
    @classmethod
    def normalize_address(cls, v: str) -> str:
        """Store the base URL with exactly one trailing slash."""
        stripped = v.strip().rstrip("/")
        if not stripped:
            raise ValueError("bridge address must not be empty")
        try:
            host = httpx.URL(stripped).host
        except httpx.InvalidURL as e:
            raise ValueError(f"invalid bridge address {v!r}: {e}") from e
        if not host:
            raise ValueError(f"bridge address {v!r} has no host")
        return stripped + "/"

    @property
    def is_paired(self) -> bool:
        return False


class PairedBridge(BridgeIdentity):
    """A bridge identity together with the username the bridge issued."""

    username: str = ""

    @property
    def is_paired(self) -> bool:
        return self.username != ""


class CacheRecord(BaseModel):
    """Layout of the cache file: ``{"ID": ..., "IP": ..., "Username": ...}``."""

    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(alias="ID")
    address: str = Field(alias="IP")
    username: str = Field(default="", alias="Username")

    @classmethod
    def from_bridge(cls, bridge: PairedBridge) -> "CacheRecord":
        return cls(id=bridge.id, address=bridge.address, username=bridge.username)

    def to_bridge(self) -> PairedBridge:
        return PairedBridge(id=self.id, address=self.address, username=self.username)
