"""batchload: batched concurrent HTTP load generator."""

from __future__ import annotations

from batchload._internal.config import ClientSettings, RunConfig, resolve_config
from batchload.engine.protocol import Outcome, RequestSpec
from batchload.engine.runner import LoadRunner
from batchload.metrics.models import ProgressSnapshot, RunResult, RunSummary

__version__ = "0.1.0"

__all__ = [
    "ClientSettings",
    "LoadRunner",
    "Outcome",
    "ProgressSnapshot",
    "RequestSpec",
    "RunConfig",
    "RunResult",
    "RunSummary",
    "resolve_config",
]
