"""Stream resolution exceptions."""

from __future__ import annotations


class StreamfinderError(Exception):
    """Base class for all streamfinder errors."""


class ConfigurationError(StreamfinderError):
    """Raised when a required connector is missing from the configuration.

    Terminal: surfaced to the caller immediately and never retried.
    """
