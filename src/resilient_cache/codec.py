"""Serialization of cache entries to and from the store's string form.

Entries are stored as JSON objects::

    {"value": ..., "createdAt": 1700000000.0, "expiresAt": 1700000300.0}

Payloads written by the older hook format (``data`` and ``timestamp``,
with epoch milliseconds) are accepted on decode, converted to seconds,
and rewritten in the current format on the next successful fetch.
"""

from typing import Any

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    model_validator,
)
from pydantic_core import PydanticSerializationError

from resilient_cache.entities import CacheEntry
from resilient_cache.errors import DecodeError, EncodeError


class StoredEntry(BaseModel):
    """Wire schema of a persisted cache entry."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    value: Any = Field(
        validation_alias=AliasChoices("value", "data"),
        serialization_alias="value",
    )
    created_at: float = Field(
        validation_alias=AliasChoices("createdAt", "timestamp"),
        serialization_alias="createdAt",
    )
    expires_at: float = Field(
        validation_alias="expiresAt",
        serialization_alias="expiresAt",
    )

    @model_validator(mode="before")
    @classmethod
    def _legacy_milliseconds(cls, data: Any) -> Any:
        if not isinstance(data, dict) or "timestamp" not in data or "createdAt" in data:
            return data
        # The older hook wrote epoch milliseconds
        data = dict(data)
        for name in ("timestamp", "expiresAt"):
            stamp = data.get(name)
            if isinstance(stamp, (int, float)) and not isinstance(stamp, bool):
                data[name] = stamp / 1000
        return data

    @model_validator(mode="after")
    def _check_window(self) -> "StoredEntry":
        if self.expires_at < self.created_at:
            raise ValueError("expiresAt precedes createdAt")
        return self


class CacheEntryCodec:
    """Encode/decode CacheEntry objects as JSON strings.

    Any failure is reported as a CodecError subclass so the cache can
    treat it exactly like a missing entry.
    """

    def encode(self, entry: CacheEntry[Any]) -> str:
        """Serialize an entry.

        Args:
            entry: The entry to serialize

        Returns:
            JSON string containing value, createdAt and expiresAt

        Raises:
            EncodeError: If the value is not JSON-serializable
        """
        record = StoredEntry.model_construct(
            value=entry.value,
            created_at=entry.created_at,
            expires_at=entry.expires_at,
        )
        try:
            return record.model_dump_json(by_alias=True)
        except PydanticSerializationError as e:
            raise EncodeError(f"Value of type {type(entry.value).__name__} is not serializable: {e}") from e

    def decode(self, raw: str | bytes) -> CacheEntry[Any]:
        """Deserialize an entry.

        Args:
            raw: The stored payload

        Returns:
            The decoded CacheEntry

        Raises:
            DecodeError: If the payload is malformed or fails schema validation
        """
        try:
            record = StoredEntry.model_validate_json(raw)
        except ValidationError as e:
            raise DecodeError(f"Invalid cache entry: {e.error_count()} validation error(s)") from e

        return CacheEntry(
            value=record.value,
            created_at=record.created_at,
            expires_at=record.expires_at,
        )
