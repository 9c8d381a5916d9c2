"""Exceptions raised by the ADR engine."""

from __future__ import annotations


class AdrError(Exception):
    """Base class for every error raised by :mod:`loraadr`."""


class UnknownRegionError(AdrError, KeyError):
    """The region configuration requested by an ADR evaluation does not exist."""

    def __init__(self, region_config_id) -> None:
        super().__init__(region_config_id)
        self.region_config_id = region_config_id

    def __str__(self) -> str:
        return f"Unknown region configuration: {self.region_config_id!r}"


class InvalidRequestError(AdrError, ValueError):
    """An ADR request could not be decoded from its wire representation."""


class ConfigurationError(AdrError, ValueError):
    """ADR settings or region definitions are invalid."""


__all__ = [
    "AdrError",
    "UnknownRegionError",
    "InvalidRequestError",
    "ConfigurationError",
]
