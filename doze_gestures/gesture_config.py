#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
gesture_config.py — Gesture toggles, system doze setting, engine constants

Three user toggles (handwave / pick-up / pocket) live in a small JSON-backed
preference store with change listeners. The global "doze enabled" switch is
a separate integer system setting and is polled, never cached.

Effective-enabled for a gesture = its own toggle AND doze_enabled.
"""

from __future__ import annotations
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional
import json
import logging

logger = logging.getLogger(__name__)


# === Preference keys ===

KEY_GESTURE_HAND_WAVE = "gesture_hand_wave"
KEY_GESTURE_PICK_UP = "gesture_pick_up"
KEY_GESTURE_POCKET = "gesture_pocket"

GESTURE_KEYS = (KEY_GESTURE_HAND_WAVE, KEY_GESTURE_PICK_UP, KEY_GESTURE_POCKET)

SETTING_DOZE_ENABLED = "doze_enabled"


# === Engine constants ===

@dataclass(frozen=True)
class EngineConfig:
    """Fixed timing constants for the gesture engine."""
    handwave_delta_ns: int = 1000 * 1000 * 1000   # Release within 1s of stow = handwave
    pulse_min_interval_ms: int = 5000             # Min spacing between pulses
    wakelock_duration_ms: int = 1000              # Bounded wake-hold duration


DEFAULT_ENGINE_CONFIG = EngineConfig()


# === Gesture configuration snapshot ===

@dataclass
class GestureConfig:
    """Per-gesture toggles plus the global doze gate."""
    doze_enabled: bool = True
    handwave_enabled: bool = False
    pickup_enabled: bool = False
    pocket_enabled: bool = False

    @property
    def handwave(self) -> bool:
        return self.handwave_enabled and self.doze_enabled

    @property
    def pickup(self) -> bool:
        return self.pickup_enabled and self.doze_enabled

    @property
    def pocket(self) -> bool:
        return self.pocket_enabled and self.doze_enabled

    @property
    def any_enabled(self) -> bool:
        return self.handwave or self.pickup or self.pocket

    def apply_change(self, key: str, value: bool) -> bool:
        """
        Update the single flag matching a preference key.
        Returns False for keys that are not gesture toggles.
        """
        if key == KEY_GESTURE_HAND_WAVE:
            self.handwave_enabled = bool(value)
        elif key == KEY_GESTURE_PICK_UP:
            self.pickup_enabled = bool(value)
        elif key == KEY_GESTURE_POCKET:
            self.pocket_enabled = bool(value)
        else:
            return False
        return True

    def to_dict(self) -> Dict[str, bool]:
        return {
            "doze": self.doze_enabled,
            "handwave": self.handwave_enabled,
            "pickup": self.pickup_enabled,
            "pocket": self.pocket_enabled,
        }


# === Preference store ===

PreferenceListener = Callable[["GesturePreferences", str], None]


class GesturePreferences:
    """
    Key/value store for the gesture toggles.

    Backed by an optional JSON file. Listeners are called once per changed
    key, after the new value is stored.
    """

    def __init__(self, values: Dict[str, Any] = None, path: Optional[Path] = None):
        self._values: Dict[str, Any] = dict(values or {})
        self._path = Path(path) if path is not None else None
        self._listeners: List[PreferenceListener] = []

    @classmethod
    def from_file(cls, path) -> "GesturePreferences":
        """Load from JSON; a missing file gives an empty store."""
        path = Path(path)
        values: Dict[str, Any] = {}
        if path.exists():
            with path.open("r", encoding="utf-8") as f:
                values = json.load(f)
            logger.debug("prefs loaded path=%s keys=%s", path, sorted(values))
        return cls(values=values, path=path)

    def get_bool(self, key: str, default: bool = False) -> bool:
        return bool(self._values.get(key, default))

    def set_bool(self, key: str, value: bool) -> None:
        old = self._values.get(key)
        self._values[key] = bool(value)
        if self._path is not None:
            self.save()
        if old != bool(value):
            for listener in list(self._listeners):
                listener(self, key)

    def save(self) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        with self._path.open("w", encoding="utf-8") as f:
            json.dump(self._values, f, indent=2, sort_keys=True)

    def register_listener(self, listener: PreferenceListener) -> None:
        if listener not in self._listeners:
            self._listeners.append(listener)

    def unregister_listener(self, listener: PreferenceListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)


def load_gesture_config(prefs: GesturePreferences, doze_enabled: bool = True) -> GestureConfig:
    """Build a GestureConfig snapshot from the preference store."""
    return GestureConfig(
        doze_enabled=doze_enabled,
        handwave_enabled=prefs.get_bool(KEY_GESTURE_HAND_WAVE, False),
        pickup_enabled=prefs.get_bool(KEY_GESTURE_PICK_UP, False),
        pocket_enabled=prefs.get_bool(KEY_GESTURE_POCKET, False),
    )


# === System settings ===

class SecureSettings:
    """Integer system settings. Only doze_enabled is read by the engine."""

    def __init__(self, values: Dict[str, int] = None):
        self._values: Dict[str, int] = dict(values or {})

    def get_int(self, key: str, default: int) -> int:
        return int(self._values.get(key, default))

    def put_int(self, key: str, value: int) -> None:
        self._values[key] = int(value)

    def is_doze_enabled(self) -> bool:
        return self.get_int(SETTING_DOZE_ENABLED, 1) != 0
