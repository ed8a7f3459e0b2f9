#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
simulated.py — In-memory sensor ports and clock

Used by replay, the smoke script and the tests. Ports record every call so
power sequencing can be checked after the fact.
"""

from __future__ import annotations
from typing import List

from doze_gestures.sensor_arbiter import OrientationPort, SensorPort


class SimClock:
    """Manually advanced millisecond clock."""

    def __init__(self, start_ms: int = 100_000):
        self.now_ms = start_ms

    def __call__(self) -> int:
        return self.now_ms

    def advance(self, ms: int) -> int:
        self.now_ms += ms
        return self.now_ms

    def set(self, ms: int) -> None:
        self.now_ms = ms


class SimSensorPort(SensorPort):
    def __init__(self, name: str):
        self.name = name
        self.enabled = False
        self.calls: List[str] = []

    def enable(self) -> None:
        self.enabled = True
        self.calls.append("enable")

    def disable(self) -> None:
        self.enabled = False
        self.calls.append("disable")

    def reset(self) -> None:
        self.calls.append("reset")

    @property
    def reset_count(self) -> int:
        return self.calls.count("reset")


class SimOrientationPort(SimSensorPort, OrientationPort):
    """Orientation port whose classification is set by the caller."""

    def __init__(self, name: str = "orientation"):
        super().__init__(name)
        self.face_down = False
        self.face_up = False
        self.vertical = False

    def set_reading(self, face_down: bool = False, face_up: bool = False, vertical: bool = False) -> None:
        self.face_down = face_down
        self.face_up = face_up
        self.vertical = vertical

    def is_face_down(self) -> bool:
        return self.face_down

    def is_face_up(self) -> bool:
        return self.face_up

    def is_vertical(self) -> bool:
        return self.vertical
