"""Shared type aliases for batchload."""

from __future__ import annotations

# HTTP headers dictionary.
Headers = dict[str, str]

# HTTP status code as reported in outcomes.
StatusCode = int
