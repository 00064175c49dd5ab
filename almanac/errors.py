"""
Almanac error taxonomy.

Every guard failure raises a distinct subclass of RegistryError so callers can
branch on it (retry with a corrected key, surface "no data yet", or surface
"access denied"). None of these are caught inside the core.
"""
from __future__ import annotations


class RegistryError(Exception):
    """Base class for registry failures."""

    code = "registry_error"

    def __init__(self, message: str = ""):
        super().__init__(message or self.__class__.__doc__ or self.code)
        self.message = str(self.args[0])

    def to_dict(self) -> dict:
        return {"code": self.code, "detail": self.message}


class Unauthorized(RegistryError):
    """Caller is not the current administrator."""

    code = "unauthorized"


class InvalidTarget(RegistryError):
    """Control cannot be transferred to the null identity."""

    code = "invalid_target"


class InvalidTimePeriod(RegistryError):
    """Period key must have the shape YYYYQ[1-4] with a year in 2000-2099."""

    code = "invalid_time_period"


class NoData(RegistryError):
    """No record is stored for this period."""

    code = "no_data"


class RegistryNotDeployed(RegistryError):
    """Registry store has no administrator; run the deployment first."""

    code = "not_deployed"


ERRORS_BY_CODE = {
    cls.code: cls
    for cls in (Unauthorized, InvalidTarget, InvalidTimePeriod, NoData, RegistryNotDeployed)
}


def error_from_code(code: str, message: str = "") -> RegistryError:
    """Rebuild the matching error from its wire code."""
    cls = ERRORS_BY_CODE.get(code, RegistryError)
    return cls(message)
