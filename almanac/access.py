"""
Single-holder access control.

Exactly one administrator exists once a registry is deployed. Only that holder
may mutate the registry or hand control to someone else.
"""
from __future__ import annotations

import logging
import sqlite3
from typing import Optional

from .errors import InvalidTarget, RegistryNotDeployed, Unauthorized
from .events import EventLog
from .identity import NULL_ADDRESS, normalize_address
from .models import EventName, RegistryEvent
from .store import RegistryStore

logger = logging.getLogger(__name__)


class AccessController:
    def __init__(self, store: RegistryStore, events: EventLog):
        self.store = store
        self.events = events

    @property
    def administrator(self) -> str:
        admin = self.store.get_administrator()
        if admin is None:
            raise RegistryNotDeployed()
        return admin

    def initialize(
        self,
        conn: sqlite3.Connection,
        administrator: str,
        deployer: Optional[str] = None,
    ) -> RegistryEvent:
        """
        Install the first holder inside an open transaction.

        When ``deployer`` is given it is recorded in the genesis event.

        The initializer is trusted: no null check here, matching deployment
        semantics where the bootstrap tool does that validation.
        """
        admin = normalize_address(administrator)
        args = {"old_holder": NULL_ADDRESS, "new_holder": admin}
        if deployer is not None:
            args["deployer"] = normalize_address(deployer)
        event = self.events.append(conn, EventName.CONTROL_TRANSFERRED, args)
        self.store.set_administrator(conn, admin)
        return event

    def require_administrator(self, caller: Optional[str], conn: Optional[sqlite3.Connection] = None) -> str:
        """Guard for mutating operations. Returns the administrator address."""
        admin = self.store.get_administrator(conn)
        if admin is None:
            raise RegistryNotDeployed()
        try:
            who = normalize_address(caller)
        except ValueError:
            who = None
        if who != admin:
            logger.warning("Rejected mutating call from %s (administrator is %s)", caller, admin)
            raise Unauthorized(f"Caller {caller} is not the administrator")
        return admin

    def transfer_control(self, caller: Optional[str], new_holder: Optional[str]) -> bool:
        """
        Hand control to ``new_holder``.

        Raises:
            Unauthorized: caller is not the current holder
            InvalidTarget: new_holder is the null identity
            ValueError: new_holder is not an address at all
        """
        with self.store.write_lock:
            with self.store.transaction() as conn:
                old_holder = self.require_administrator(caller, conn)
                target = normalize_address(new_holder)
                if target == NULL_ADDRESS:
                    raise InvalidTarget("Cannot transfer control to the null identity")
                event = self.events.append(
                    conn,
                    EventName.CONTROL_TRANSFERRED,
                    {"old_holder": old_holder, "new_holder": target},
                )
                self.store.set_administrator(conn, target)
            logger.info("Control transferred from %s to %s", old_holder, target)
            self.events.publish(event)
        return True
