"""
Almanac Data Models

Period records and registry notifications.
"""
from __future__ import annotations

import hashlib
from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, Optional, Union

HASH_SIZE = 32
ZERO_HASH = bytes(HASH_SIZE)
MAX_INDICATOR = 2 ** 256 - 1


class EventName(str, Enum):
    CONTROL_TRANSFERRED = "ControlTransferred"
    NEW_ENTRY = "NewEntry"


def coerce_hash(value: Union[bytes, bytearray, str]) -> bytes:
    """
    Accept raw 32 bytes or a 64-char hex string (optional 0x prefix).

    Raises ValueError for anything else.
    """
    if isinstance(value, (bytes, bytearray)):
        raw = bytes(value)
    elif isinstance(value, str):
        text = value.strip()
        if text[:2].lower() == "0x":
            text = text[2:]
        try:
            raw = bytes.fromhex(text)
        except ValueError as e:
            raise ValueError(f"Content hash is not valid hex: {value!r}") from e
    else:
        raise ValueError(f"Content hash must be bytes or hex, got {type(value).__name__}")
    if len(raw) != HASH_SIZE:
        raise ValueError(f"Content hash must be {HASH_SIZE} bytes, got {len(raw)}")
    return raw


def coerce_indicator(value: Any) -> int:
    # bool is an int subclass; reject it explicitly
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"Indicator value must be an integer, got {type(value).__name__}")
    if value < 0 or value > MAX_INDICATOR:
        raise ValueError(f"Indicator value out of unsigned 256-bit range: {value}")
    return value


def hash_document(document: bytes) -> bytes:
    """sha256 digest used as a record's content hash."""
    return hashlib.sha256(document).digest()


@dataclass(frozen=True)
class PeriodRecord:
    """One quarter's published statistic."""
    content_hash: bytes
    document_location: str
    indicator_value: int

    def __post_init__(self):
        object.__setattr__(self, "content_hash", coerce_hash(self.content_hash))
        object.__setattr__(self, "indicator_value", coerce_indicator(self.indicator_value))
        if not isinstance(self.document_location, str):
            raise ValueError("Document location must be a string")

    @property
    def content_hash_hex(self) -> str:
        return self.content_hash.hex()

    @property
    def indicator_decimal(self) -> Decimal:
        """Indicator in natural units (stored as tenths)."""
        return Decimal(self.indicator_value).scaleb(-1)

    def is_sentinel(self) -> bool:
        return self.content_hash == ZERO_HASH

    def to_dict(self) -> dict:
        return {
            "content_hash": self.content_hash_hex,
            "document_location": self.document_location,
            "indicator_value": self.indicator_value,
            "indicator_decimal": str(self.indicator_decimal),
        }


@dataclass(frozen=True)
class RegistryEvent:
    """An append-only notification, chained to its predecessor by hash."""
    id: int
    name: EventName
    args: Dict[str, Any]
    timestamp: str
    hash: str
    prev_hash: Optional[str] = None
    period_key: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name.value,
            "period_key": self.period_key,
            "args": dict(self.args),
            "timestamp": self.timestamp,
            "prev_hash": self.prev_hash,
            "hash": self.hash,
        }


@dataclass
class EventFilter:
    """Subscription filter on the indexed fields of an event."""
    name: Optional[EventName] = None
    period_key: Optional[str] = None
    extra: Dict[str, Any] = field(default_factory=dict)

    def matches(self, event: RegistryEvent) -> bool:
        if self.name is not None and event.name != self.name:
            return False
        if self.period_key is not None and event.period_key != self.period_key:
            return False
        return all(event.args.get(k) == v for k, v in self.extra.items())
