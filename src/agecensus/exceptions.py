"""
Exception hierarchy for agecensus.

Every failure that leaves a public call is a CensusError so callers can catch
one type and still read a human readable cause.

    CensusError (base)
    ├── ConfigurationError
    ├── InvalidAge
    ├── RegionNotFound
    └── ResourceReleaseFailure

RegionNotFound is raised by age sources to signal absence. The engine handles
it internally and never lets it reach the caller.
"""

from __future__ import annotations

from typing import Any, Dict, Optional


class CensusError(Exception):
    """
    Base exception for all agecensus errors.

    details holds context such as the region name and is filled in by the
    coordinator when an error crosses a region boundary. cause is the
    exception from the source or factory that was wrapped, if any.
    """

    def __init__(
        self,
        message: str,
        *,
        details: Optional[Dict[str, Any]] = None,
        cause: Optional[BaseException] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.details = dict(details or {})
        self.cause = cause

    @property
    def region(self) -> Optional[str]:
        return self.details.get("region")


class ConfigurationError(CensusError):
    """Raised when a configuration value cannot be used."""


class InvalidAge(CensusError):
    """Raised when a source produces a negative or non integer age."""

    def __init__(self, message: str, *, age: Any = None, **kwargs: Any) -> None:
        super().__init__(message, **kwargs)
        if age is not None:
            self.details.setdefault("age", age)

    @property
    def age(self) -> Any:
        return self.details.get("age")


class RegionNotFound(CensusError):
    """Raised by an age source when the requested region does not exist."""


class ResourceReleaseFailure(CensusError):
    """Raised when closing a region's age source fails."""
