"""Weighted two-phase progress model: acquisition then analysis."""

from __future__ import annotations

import math
import threading
from typing import Callable, Optional


class ProgressTracker:
    """
    Acquisition covers [0, acquisition_weight]; each finished acquisition
    (success or failure) adds acquisition_weight / total_sites. Analysis covers
    the rest; each finished specialist stage adds analysis_weight /
    successful_sites. ``complete()`` forces 100.

    Emitted values are integers, never decreasing, and only emitted when they
    change. Each step returns the newly emitted value, or None when the
    integer did not move.
    """

    def __init__(
        self,
        total_sites: int,
        reporter: Optional[Callable[[int, str], None]] = None,
        acquisition_weight: float = 50.0,
        analysis_weight: float = 50.0,
    ):
        total_weight = acquisition_weight + analysis_weight
        if total_weight <= 0:
            raise ValueError("Progress weights must sum to a positive value")
        # Rescale so the phases always span exactly 0-100.
        self._acquisition_weight = 100.0 * acquisition_weight / total_weight
        self._analysis_weight = 100.0 * analysis_weight / total_weight
        self._acquisition_step = self._acquisition_weight / max(1, int(total_sites))
        self._analysis_step = 0.0
        self._value = 0.0
        self._emitted = 0
        self._reporter = reporter
        self._lock = threading.Lock()

    @property
    def percent(self) -> int:
        return self._emitted

    def site_acquired(self, message: str = "") -> Optional[int]:
        return self._advance(self._acquisition_step, message)

    def begin_analysis(self, successful_sites: int, message: str = "") -> Optional[int]:
        self._analysis_step = self._analysis_weight / max(1, int(successful_sites))
        # Acquisition is over even if rounding left a remainder.
        with self._lock:
            self._value = max(self._value, self._acquisition_weight)
        return self._emit(message)

    def site_analyzed(self, message: str = "") -> Optional[int]:
        return self._advance(self._analysis_step, message)

    def complete(self, message: str = "Complete") -> Optional[int]:
        with self._lock:
            self._value = 100.0
        return self._emit(message)

    def _advance(self, step: float, message: str) -> Optional[int]:
        with self._lock:
            # Only complete() may reach 100.
            self._value = min(99.0, self._value + step)
        return self._emit(message)

    def _emit(self, message: str) -> Optional[int]:
        with self._lock:
            candidate = min(100, max(0, int(math.floor(self._value + 1e-9))))
            if candidate <= self._emitted:
                return None
            self._emitted = candidate
        if self._reporter:
            self._reporter(candidate, message)
        return candidate
