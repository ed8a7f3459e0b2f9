#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
pulse_throttle.py — Minimum spacing between doze pulses

Bucket of size one: no queueing, no burst. A rejected pulse is dropped.
"""

from __future__ import annotations
from typing import Optional


class PulseThrottle:
    """Allows one pulse per min_interval_ms."""

    def __init__(self, min_interval_ms: int = 5000):
        self._min_interval_ms = min_interval_ms
        self._last_pulse_ms: Optional[int] = None

    @property
    def last_pulse_ms(self) -> Optional[int]:
        """Time of the last allowed pulse, None if none since reset."""
        return self._last_pulse_ms

    def since_last(self, now_ms: int) -> int:
        """Elapsed ms since the last pulse; min interval if none."""
        if self._last_pulse_ms is None:
            return self._min_interval_ms
        return now_ms - self._last_pulse_ms

    def should_fire(self, now_ms: int) -> bool:
        """Check and record. Returns True if a pulse may be emitted now."""
        if self.since_last(now_ms) >= self._min_interval_ms:
            self._last_pulse_ms = now_ms
            return True
        return False

    def reset(self) -> None:
        self._last_pulse_ms = None
