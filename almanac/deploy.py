"""
Almanac bootstrap.

Reads the administrator address and the deployer's credential from the
environment and publishes one registry instance:

    ALMANAC_ADMIN_ADDRESS=<40 hex>  ALMANAC_DEPLOYER_KEY=<hex ed25519 key> \
        python -m almanac.cli deploy
"""
from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Optional

from . import config
from .identity import address_from_private_key, is_null_address, normalize_address
from .registry import PeriodRegistry
from .store import RegistryStore

logger = logging.getLogger(__name__)


class DeploymentError(RuntimeError):
    pass


@dataclass
class Deployment:
    db_path: str
    administrator: str
    deployer: str
    genesis_event_id: int
    genesis_hash: str

    def to_dict(self) -> dict:
        return asdict(self)


def deploy(
    administrator: Optional[str],
    deployer_key: Optional[str],
    db_path: Optional[Path] = None,
) -> Deployment:
    if not deployer_key:
        raise DeploymentError("ALMANAC_DEPLOYER_KEY is not set")
    try:
        deployer = address_from_private_key(deployer_key)
    except ValueError as e:
        raise DeploymentError(str(e)) from e

    if not administrator:
        raise DeploymentError("ALMANAC_ADMIN_ADDRESS is not set")
    try:
        admin = normalize_address(administrator)
    except ValueError as e:
        raise DeploymentError(str(e)) from e
    if is_null_address(admin):
        raise DeploymentError("Refusing to deploy with the null administrator")

    store = RegistryStore(db_path or config.get_db_path())
    if store.is_deployed():
        raise DeploymentError(f"Registry already deployed at {store.db_path}")

    registry = PeriodRegistry.deploy(store, admin, deployer=deployer)
    genesis = registry.events.list_events(limit=1)[0]
    logger.info("Deployed by %s", deployer)
    return Deployment(
        db_path=str(store.db_path),
        administrator=registry.administrator,
        deployer=deployer,
        genesis_event_id=genesis.id,
        genesis_hash=genesis.hash,
    )


def deploy_from_env(db_path: Optional[Path] = None) -> Deployment:
    return deploy(config.get_admin_address(), config.get_deployer_key(), db_path)
