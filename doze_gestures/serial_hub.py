#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
serial_hub.py — Sensor ports backed by a UART sensor hub

The hub MCU runs the sensor drivers and classification; the host only sees
binlink frames. Power commands go out as SENSOR_CMD frames, readings come
back as event frames and are turned into engine events.
"""

from __future__ import annotations
from typing import Callable
import logging

import serial

from doze_gestures import binlink
from doze_gestures.events import (
    DisplayOff,
    DisplayOn,
    OrientationEvent,
    PickUpEvent,
    PickUpInit,
    ProximityEvent,
    ProximityInit,
)
from doze_gestures.sensor_arbiter import OrientationPort, SensorPort

logger = logging.getLogger(__name__)

DEFAULT_PORT = "/dev/ttyUSB0"
DEFAULT_BAUD = 115200


def open_serial(port: str = DEFAULT_PORT, baud: int = DEFAULT_BAUD, timeout: float = 0.1) -> serial.Serial:
    return serial.Serial(port, baud, timeout=timeout)


class HubSensorPort(SensorPort):
    """Sends enable / disable / reset commands for one hub sensor."""

    def __init__(self, ser, sensor_id: int):
        self._ser = ser
        self._sensor_id = sensor_id

    def _send(self, op: int) -> None:
        self._ser.write(binlink.encode_frame(
            binlink.TYPE_SENSOR_CMD,
            binlink.pack_sensor_cmd(self._sensor_id, op)))

    def enable(self) -> None:
        self._send(binlink.OP_ENABLE)

    def disable(self) -> None:
        self._send(binlink.OP_DISABLE)

    def reset(self) -> None:
        self._send(binlink.OP_RESET)


class HubOrientationPort(HubSensorPort, OrientationPort):
    """Keeps the classification from the last ORIENTATION frame."""

    def __init__(self, ser):
        super().__init__(ser, binlink.SENSOR_ID_ORIENTATION)
        self.face_down = False
        self.face_up = False
        self.vertical = False

    def update(self, reading) -> None:
        self.face_down = reading["face_down"]
        self.face_up = reading["face_up"]
        self.vertical = reading["vertical"]

    def reset(self) -> None:
        self.face_down = self.face_up = self.vertical = False
        super().reset()

    def is_face_down(self) -> bool:
        return self.face_down

    def is_face_up(self) -> bool:
        return self.face_up

    def is_vertical(self) -> bool:
        return self.vertical


class SerialSensorHub:
    """The three hub sensors plus the frame decoder."""

    def __init__(self, ser):
        self.ser = ser
        self.stream = binlink.FrameStream(ser)
        self.orientation = HubOrientationPort(ser)
        self.pickup = HubSensorPort(ser, binlink.SENSOR_ID_PICKUP)
        self.proximity = HubSensorPort(ser, binlink.SENSOR_ID_PROXIMITY)
        self.frames_seen = 0
        self.frames_unknown = 0

    def decode(self, t: int, payload: bytes):
        """Map one frame to an engine event; None for frames the host ignores."""
        if t == binlink.TYPE_PROX_EVENT:
            p = binlink.parse_proximity(payload)
            return ProximityEvent(p["is_near"], p["timestamp_ns"])
        if t == binlink.TYPE_PROX_INIT:
            p = binlink.parse_proximity(payload)
            return ProximityInit(p["is_near"], p["timestamp_ns"])
        if t == binlink.TYPE_ORIENTATION:
            self.orientation.update(binlink.parse_orientation(payload))
            return OrientationEvent()
        if t == binlink.TYPE_PICKUP_EVENT:
            return PickUpEvent(binlink.parse_flag(payload))
        if t == binlink.TYPE_PICKUP_INIT:
            return PickUpInit(binlink.parse_flag(payload))
        if t == binlink.TYPE_DISPLAY:
            return DisplayOn() if binlink.parse_flag(payload) else DisplayOff()
        return None

    def pump(self, post: Callable[[object], None], size: int = 256) -> int:
        """Read one chunk from the port and post decoded events. Returns event count."""
        posted = 0
        for t, v, payload in self.stream.read_frames(size):
            self.frames_seen += 1
            event = self.decode(t, payload)
            if event is None:
                self.frames_unknown += 1
                logger.debug("[hub] ignored frame type=%s ver=%s len=%s", t, v, len(payload))
                continue
            post(event)
            posted += 1
        return posted

    def close(self) -> None:
        self.ser.close()
