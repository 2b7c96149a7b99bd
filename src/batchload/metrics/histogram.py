"""Latency histogram backed by HdrHistogram.

Values go in and come out in milliseconds; the underlying histogram stores
integer microseconds.
"""

from __future__ import annotations

from hdrh.histogram import HdrHistogram  # type: ignore[import-untyped]

# 1 microsecond to 120 seconds, comfortably above any client timeout.
_LOWEST_TRACKABLE_US = 1
_HIGHEST_TRACKABLE_US = 120_000_000
_SIGNIFICANT_DIGITS = 3


class LatencyHistogram:
    """Cumulative request latency distribution for one run."""

    def __init__(self) -> None:
        self._histogram: HdrHistogram = HdrHistogram(  # type: ignore[no-any-unimported]
            _LOWEST_TRACKABLE_US, _HIGHEST_TRACKABLE_US, _SIGNIFICANT_DIGITS
        )

    @property
    def count(self) -> int:
        """Return the number of recorded values."""
        return int(self._histogram.total_count)

    def record(self, latency_ms: float) -> None:
        """Record one latency, clamped to the trackable range.

        Args:
            latency_ms: Latency in milliseconds.
        """
        value_us = int(latency_ms * 1000)
        value_us = max(_LOWEST_TRACKABLE_US, min(value_us, _HIGHEST_TRACKABLE_US))
        self._histogram.record_value(value_us)

    def percentile(self, percentile: float) -> float:
        """Return the latency at ``percentile`` (0-100), or 0.0 if empty."""
        if self.count == 0:
            return 0.0
        return float(self._histogram.get_value_at_percentile(percentile)) / 1000.0

    def mean(self) -> float:
        """Return the mean latency, or 0.0 if empty."""
        if self.count == 0:
            return 0.0
        return float(self._histogram.get_mean_value()) / 1000.0

    def max(self) -> float:
        """Return the largest recorded latency, or 0.0 if empty."""
        if self.count == 0:
            return 0.0
        return float(self._histogram.get_max_value()) / 1000.0
