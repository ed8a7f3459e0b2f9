#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
pulse_output.py — Doze pulse delivery and acknowledgment
"""

from __future__ import annotations
from enum import Enum
from typing import Callable, List
import logging

logger = logging.getLogger(__name__)

DOZE_PULSE_ACTION = "com.android.systemui.doze.pulse"

PulseListener = Callable[[str], None]


class RingerMode(Enum):
    SILENT = "SILENT"
    VIBRATE = "VIBRATE"
    NORMAL = "NORMAL"


class Acknowledger:
    """
    Acknowledgment step run before each pulse.

    Dispatches on ringer mode; no branch vibrates or plays a sound.
    """

    def __init__(self, ringer_mode: Callable[[], RingerMode] = None):
        self._ringer_mode = ringer_mode or (lambda: RingerMode.NORMAL)

    def acknowledge(self) -> RingerMode:
        mode = self._ringer_mode()
        if mode == RingerMode.SILENT:
            pass
        elif mode in (RingerMode.VIBRATE, RingerMode.NORMAL):
            pass
        logger.debug("DOZE_ACK ringer=%s", mode.value)
        return mode


class PulseBroadcaster:
    """Fire-and-forget pulse fan-out. Listener errors propagate."""

    def __init__(self, action: str = DOZE_PULSE_ACTION):
        self._action = action
        self._listeners: List[PulseListener] = []
        self._sent = 0

    @property
    def sent(self) -> int:
        return self._sent

    def register(self, listener: PulseListener) -> None:
        self._listeners.append(listener)

    def unregister(self, listener: PulseListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def send(self) -> None:
        self._sent += 1
        for listener in list(self._listeners):
            listener(self._action)
