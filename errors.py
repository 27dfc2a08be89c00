#!/usr/bin/env python3
"""Error types raised while acquiring boat telemetry."""
from __future__ import annotations


class TelemetryError(RuntimeError):
    """Base class for failures inside one refresh cycle."""


class NetworkError(TelemetryError):
    """A request to the local device or to AirVantage did not complete."""


class CredentialsLoadError(TelemetryError):
    """The AirVantage login/password could not be loaded."""


class AuthError(TelemetryError):
    """AirVantage refused to issue an access token."""


class DataFetchError(TelemetryError):
    """AirVantage rejected the data query or returned garbage."""


class PreconditionError(TelemetryError):
    """An operation was called in a state that does not allow it."""


class MappingWarning(UserWarning):
    """Unrecognized field path in a raw record. Logged, never raised."""
