"""Error taxonomy for a rate adjustment run."""

from __future__ import annotations


class DynamicRateError(Exception): ...


class ConfigError(DynamicRateError): ...


class AuthError(DynamicRateError): ...


class FetchError(DynamicRateError): ...


class UpdateError(DynamicRateError):
    """A single node update was rejected; the rest of the batch continues."""

    def __init__(self, message: str, node_id: object = None, node_type: object = None) -> None:
        super().__init__(message)
        self.node_id = node_id
        self.node_type = node_type


def require(condition: bool, message: str, exc: type[DynamicRateError] = DynamicRateError) -> None:
    """Raise the given exception if condition is False."""
    if not condition:
        raise exc(message)
