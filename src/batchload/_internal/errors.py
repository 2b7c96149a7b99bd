"""Custom exception hierarchy for batchload."""

from __future__ import annotations


class BatchLoadError(Exception):
    """Base exception for all batchload errors.

    All custom exceptions raised by batchload inherit from this class,
    making it easy to catch any batchload-specific error with a single
    except clause.
    """


class ConfigError(BatchLoadError):
    """Raised when the run configuration is invalid or incomplete.

    These errors are fatal and are raised before any request is issued.

    Examples:
        - No target URL was given.
        - The request body file cannot be read.
        - An environment variable has an invalid value.
    """


class EngineError(BatchLoadError):
    """Raised when the dispatch engine fails unexpectedly.

    Per-request failures never raise this; they are reported as synthetic
    outcomes instead.
    """
