"""
Almanac Period Registry

Maps validated quarter keys to records {content hash, document location,
indicator}. Writes are administrator-only; reads are public.

Usage:
    from almanac.registry import PeriodRegistry
    from almanac.store import RegistryStore

    registry = PeriodRegistry.deploy(RegistryStore(path), admin_address)
    registry.commit(admin_address, "2025Q2", digest, "https://example.org/q2.pdf", 215)
    record = registry.read("2025Q2")
"""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional, Union

from . import config
from .access import AccessController
from .errors import InvalidTimePeriod, NoData, RegistryNotDeployed
from .events import EventLog
from .models import EventName, PeriodRecord
from .period import canonical_period
from .store import RegistryStore

logger = logging.getLogger(__name__)


class PeriodRegistry:
    def __init__(self, store: RegistryStore, zero_hash_is_absent: Optional[bool] = None):
        self.store = store
        self.events = EventLog(store)
        self.access = AccessController(store, self.events)
        if zero_hash_is_absent is None:
            zero_hash_is_absent = config.zero_hash_is_absent()
        self.zero_hash_is_absent = zero_hash_is_absent

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    @classmethod
    def deploy(
        cls,
        store: Union[RegistryStore, str, Path],
        administrator: str,
        deployer: Optional[str] = None,
        **kwargs,
    ) -> "PeriodRegistry":
        """Initialize a fresh store with its first administrator."""
        if not isinstance(store, RegistryStore):
            store = RegistryStore(store)
        registry = cls(store, **kwargs)
        with store.write_lock:
            with store.transaction() as conn:
                if store.get_administrator(conn) is not None:
                    raise ValueError(f"Registry already deployed at {store.db_path}")
                event = registry.access.initialize(conn, administrator, deployer)
            registry.events.publish(event)
        logger.info("Registry deployed at %s with administrator %s",
                    store.db_path, event.args["new_holder"])
        return registry

    @classmethod
    def open(cls, store: Union[RegistryStore, str, Path], **kwargs) -> "PeriodRegistry":
        """Attach to an already deployed store."""
        if not isinstance(store, RegistryStore):
            store = RegistryStore(store)
        if not store.is_deployed():
            raise RegistryNotDeployed(f"No registry deployed at {store.db_path}")
        return cls(store, **kwargs)

    @property
    def administrator(self) -> str:
        return self.access.administrator

    def transfer_control(self, caller: Optional[str], new_holder: Optional[str]) -> bool:
        return self.access.transfer_control(caller, new_holder)

    # =========================================================================
    # WRITE / READ
    # =========================================================================

    def commit(
        self,
        caller: Optional[str],
        period_key: Union[str, bytes],
        content_hash: Union[bytes, str],
        document_location: str,
        indicator_value: int,
    ) -> bool:
        """
        Store (or fully overwrite) the record for ``period_key``.

        Raises:
            Unauthorized: caller is not the administrator
            InvalidTimePeriod: period_key is not YYYYQ[1-4] with year 2000-2099
        """
        with self.store.write_lock:
            with self.store.transaction() as conn:
                self.access.require_administrator(caller, conn)
                key = canonical_period(period_key)
                if key is None:
                    logger.warning("Rejected commit for invalid period key %r", period_key)
                    raise InvalidTimePeriod(f"Invalid period key: {period_key!r}")
                record = PeriodRecord(content_hash, document_location, indicator_value)
                event = self.events.append(
                    conn,
                    EventName.NEW_ENTRY,
                    {"period_key": key, "content_hash": record.content_hash_hex},
                    period_key=key,
                )
                self.store.put_record(conn, key, record)
            logger.info("Committed %s hash=%s value=%d", key,
                        record.content_hash_hex[:16], record.indicator_value)
            self.events.publish(event)
        return True

    def read(self, period_key: Union[str, bytes]) -> PeriodRecord:
        """Public lookup. Raises NoData when nothing is stored for the key."""
        key = canonical_period(period_key)
        record = self.store.get_record(key) if key is not None else None
        if record is None:
            raise NoData(f"No data for period {period_key!r}")
        if self.zero_hash_is_absent and record.is_sentinel():
            raise NoData(f"No data for period {period_key!r}")
        return record
