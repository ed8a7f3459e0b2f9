#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
sensor_arbiter.py — Sensor power arbitration

Single authority over which sensors are powered.

Rules:
    - Enabling ORIENTATION always disables PICKUP first, and vice versa.
    - reset=True clears the port's internal debounce state before the
      enable/disable.
    - Arming ORIENTATION takes a bounded wake-hold.
    - A missing port (None) turns every call on it into a no-op.

The port contracts are defined here as abstract bases; real drivers,
the serial hub and the simulated ports implement them.
"""

from __future__ import annotations
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional
import logging
import time

from doze_gestures.events import SensorKind


# === Port contracts ===

class SensorPort(ABC):
    """Power control for one sensor. All calls are fire-and-forget."""

    @abstractmethod
    def enable(self) -> None: pass
    @abstractmethod
    def disable(self) -> None: pass
    @abstractmethod
    def reset(self) -> None: pass


class OrientationPort(SensorPort):
    """Orientation sensor; classification is re-read on each event."""

    @abstractmethod
    def is_face_down(self) -> bool: pass
    @abstractmethod
    def is_face_up(self) -> bool: pass
    @abstractmethod
    def is_vertical(self) -> bool: pass


# === Wake-hold ===

def monotonic_ms() -> int:
    return int(time.monotonic() * 1000)


@dataclass(frozen=True)
class WakeHold:
    """Handle for one acquisition. Expires on its own; no release call."""
    tag: str
    acquired_ms: int
    expires_ms: int


class WakeLock:
    """
    Bounded wake lock. Each acquire extends the hold to now + duration.

    on_acquire lets a platform layer forward the request (e.g. to a power
    manager); it receives the duration in ms.
    """

    def __init__(self, tag: str = "DozeSensors",
                 clock: Callable[[], int] = monotonic_ms,
                 on_acquire: Optional[Callable[[int], None]] = None):
        self._tag = tag
        self._clock = clock
        self._on_acquire = on_acquire
        self._held_until_ms: Optional[int] = None
        self._acquire_count = 0

    @property
    def acquire_count(self) -> int:
        return self._acquire_count

    def acquire(self, duration_ms: int) -> WakeHold:
        now = self._clock()
        expires = now + duration_ms
        if self._held_until_ms is None or expires > self._held_until_ms:
            self._held_until_ms = expires
        self._acquire_count += 1
        if self._on_acquire is not None:
            self._on_acquire(duration_ms)
        return WakeHold(tag=self._tag, acquired_ms=now, expires_ms=expires)

    def is_held(self) -> bool:
        return self._held_until_ms is not None and self._clock() < self._held_until_ms


# === Arbiter ===

class SensorArbiter:
    """Owns the power state of the ORIENTATION, PICKUP and PROXIMITY sensors."""

    def __init__(self,
                 orientation: Optional[OrientationPort],
                 pickup: Optional[SensorPort],
                 proximity: Optional[SensorPort],
                 wake_lock: WakeLock = None,
                 wakelock_duration_ms: int = 1000,
                 logger: logging.Logger = None):
        self._ports: Dict[SensorKind, Optional[SensorPort]] = {
            SensorKind.ORIENTATION: orientation,
            SensorKind.PICKUP: pickup,
            SensorKind.PROXIMITY: proximity,
        }
        self._enabled: Dict[SensorKind, bool] = {kind: False for kind in SensorKind}
        self._wake_lock = wake_lock or WakeLock()
        self._wakelock_duration_ms = wakelock_duration_ms
        self._logger = logger or logging.getLogger(__name__)
        self._listeners: List[Callable[[SensorKind, bool], None]] = []

    @property
    def orientation(self) -> Optional[OrientationPort]:
        return self._ports[SensorKind.ORIENTATION]

    @property
    def wake_lock(self) -> WakeLock:
        return self._wake_lock

    def is_enabled(self, kind: SensorKind) -> bool:
        return self._enabled[kind]

    def enabled_sensors(self) -> List[SensorKind]:
        return [kind for kind in SensorKind if self._enabled[kind]]

    def add_listener(self, listener: Callable[[SensorKind, bool], None]) -> None:
        """Called after every power change with (kind, enabled)."""
        self._listeners.append(listener)

    def hold_wake(self) -> WakeHold:
        return self._wake_lock.acquire(self._wakelock_duration_ms)

    def _apply(self, kind: SensorKind, enabled: bool, reset: bool) -> None:
        port = self._ports[kind]
        if reset:
            port.reset()
        if enabled:
            port.enable()
        else:
            port.disable()
        self._enabled[kind] = enabled
        self._logger.debug("SENSOR_SET sensor=%s enabled=%s reset=%s", kind.value, enabled, reset)
        for listener in self._listeners:
            listener(kind, enabled)

    def set_orientation(self, enabled: bool, reset: bool = False) -> None:
        if self._ports[SensorKind.ORIENTATION] is None:
            return
        if enabled:
            self.set_pickup(False)
            self.hold_wake()
        self._apply(SensorKind.ORIENTATION, enabled, reset)

    def set_pickup(self, enabled: bool, reset: bool = False) -> None:
        if self._ports[SensorKind.PICKUP] is None:
            return
        if enabled:
            self.set_orientation(False)
        self._apply(SensorKind.PICKUP, enabled, reset)

    def set_proximity(self, enabled: bool, reset: bool = False) -> None:
        if self._ports[SensorKind.PROXIMITY] is None:
            return
        self._apply(SensorKind.PROXIMITY, enabled, reset)

    def disable_all(self, reset: bool = True) -> None:
        self.set_orientation(False, reset)
        self.set_pickup(False, reset)
        self.set_proximity(False, reset)
