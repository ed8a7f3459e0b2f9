#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
events.py — Tagged inputs for the gesture engine

Every input (sensor callback, display transition, preference change) is one
of these dataclasses. They all travel through the same channel, so their
relative order is preserved.
"""

from __future__ import annotations
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional


class SensorKind(Enum):
    """The three sensors owned by the arbiter."""
    ORIENTATION = "ORIENTATION"
    PICKUP = "PICKUP"
    PROXIMITY = "PROXIMITY"


# === Sensor events ===

@dataclass(frozen=True)
class ProximityEvent:
    is_near: bool
    timestamp_ns: int

    sensor = SensorKind.PROXIMITY


@dataclass(frozen=True)
class ProximityInit:
    """First reading after the proximity sensor is enabled."""
    is_near: bool
    timestamp_ns: int

    sensor = SensorKind.PROXIMITY


@dataclass(frozen=True)
class OrientationEvent:
    """No payload: the engine re-reads the orientation port."""

    sensor = SensorKind.ORIENTATION


@dataclass(frozen=True)
class PickUpEvent:
    picked_up: bool

    sensor = SensorKind.PICKUP


@dataclass(frozen=True)
class PickUpInit:
    picked_up: bool

    sensor = SensorKind.PICKUP


# === Lifecycle / configuration events ===

@dataclass(frozen=True)
class DisplayOn:
    sensor = None


@dataclass(frozen=True)
class DisplayOff:
    sensor = None


@dataclass(frozen=True)
class GestureToggle:
    """A single gesture preference changed."""
    key: str
    enabled: bool

    sensor = None


def sensor_of(event) -> Optional[SensorKind]:
    """Sensor an event belongs to, None for non-sensor events."""
    return getattr(event, "sensor", None)


# === JSONL form (capture / replay) ===

def event_to_dict(event) -> Dict[str, Any]:
    if isinstance(event, ProximityEvent):
        return {"kind": "proximity", "is_near": event.is_near, "timestamp_ns": event.timestamp_ns}
    if isinstance(event, ProximityInit):
        return {"kind": "proximity_init", "is_near": event.is_near, "timestamp_ns": event.timestamp_ns}
    if isinstance(event, OrientationEvent):
        return {"kind": "orientation"}
    if isinstance(event, PickUpEvent):
        return {"kind": "pickup", "picked_up": event.picked_up}
    if isinstance(event, PickUpInit):
        return {"kind": "pickup_init", "picked_up": event.picked_up}
    if isinstance(event, DisplayOn):
        return {"kind": "display", "on": True}
    if isinstance(event, DisplayOff):
        return {"kind": "display", "on": False}
    if isinstance(event, GestureToggle):
        return {"kind": "pref", "key": event.key, "enabled": event.enabled}
    raise TypeError(f"unknown event type: {type(event).__name__}")


def event_from_dict(d: Dict[str, Any]):
    """Inverse of event_to_dict. Returns None for unknown kinds."""
    kind = d.get("kind")
    if kind == "proximity":
        return ProximityEvent(bool(d["is_near"]), int(d["timestamp_ns"]))
    if kind == "proximity_init":
        return ProximityInit(bool(d["is_near"]), int(d["timestamp_ns"]))
    if kind == "orientation":
        return OrientationEvent()
    if kind == "pickup":
        return PickUpEvent(bool(d["picked_up"]))
    if kind == "pickup_init":
        return PickUpInit(bool(d["picked_up"]))
    if kind == "display":
        return DisplayOn() if d.get("on") else DisplayOff()
    if kind == "pref":
        return GestureToggle(str(d["key"]), bool(d["enabled"]))
    return None
