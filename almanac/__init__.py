"""
ALMANAC - Quarterly Statistics Registry

An authenticated key-value registry binding fiscal quarters ("2025Q2") to a
content hash, the hashed document's location, and a GDP indicator in tenths.

Components:
- period.py: YYYYQ[1-4] key validator (years 2000-2099)
- access.py: single-administrator access control with transfer
- registry.py: validated commit / public read over the period store
- events.py: hash-chained, subscribable ControlTransferred / NewEntry log
- store.py: SQLite persistence
- auth.py: Ed25519 challenge-response authentication for the API
- api_server.py: FastAPI server
- deploy.py: bootstrap from environment
- client.py / cli.py: HTTP client, document verification, command line
"""

__version__ = "0.1.0"

# Lazy imports - only import what's needed when used
_EXPORTS = {
    "PeriodRegistry": ".registry",
    "AccessController": ".access",
    "EventLog": ".events",
    "RegistryStore": ".store",
    "PeriodRecord": ".models",
    "RegistryEvent": ".models",
    "EventName": ".models",
    "is_valid_period": ".period",
    "canonical_period": ".period",
    "RegistryError": ".errors",
    "Unauthorized": ".errors",
    "InvalidTarget": ".errors",
    "InvalidTimePeriod": ".errors",
    "NoData": ".errors",
    "RegistryClient": ".client",
    "verify_document": ".client",
}


def __getattr__(name):
    if name in _EXPORTS:
        import importlib
        module = importlib.import_module(_EXPORTS[name], __name__)
        return getattr(module, name)
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


__all__ = ["__version__", *_EXPORTS]
