#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
gesture_engine.py — Doze Gesture State Machine

Turns proximity / orientation / pick-up readings into a single rate-limited
doze pulse while the display is off.

States:
    DISPLAY_ON  - All sensors off, nothing evaluated
    STOWED      - Display off, proximity near, only PROXIMITY listening
    RELEASED    - Proximity far, no gesture pending (PICKUP may be armed)
    EVALUATING  - Proximity far, gesture(s) pending, ORIENTATION or PICKUP armed

Transitions:
    DISPLAY_ON -> STOWED/RELEASED   (display off, any gesture enabled)
    STOWED     -> EVALUATING        (proximity far, a gesture applies)
    STOWED     -> RELEASED          (proximity far, no gesture applies)
    EVALUATING -> RELEASED          (decision step, pulse or not)
    *          -> STOWED            (proximity near, window invalidated)
    *          -> DISPLAY_ON        (display on)

Decision step (first match wins):
    a. handwave pending AND not face-down
    b. pickup pending AND ((picked up AND not near) OR (not picked up AND face-down))
    c. pocket pending AND vertical
Afterwards PICKUP is re-armed when far and pick-up is enabled, and all
pending flags are cleared.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Optional
import logging

from doze_gestures.events import (
    DisplayOff,
    DisplayOn,
    GestureToggle,
    OrientationEvent,
    PickUpEvent,
    PickUpInit,
    ProximityEvent,
    ProximityInit,
    sensor_of,
)
from doze_gestures.gesture_config import DEFAULT_ENGINE_CONFIG, EngineConfig, GestureConfig
from doze_gestures.pulse_output import Acknowledger, PulseBroadcaster
from doze_gestures.pulse_throttle import PulseThrottle
from doze_gestures.sensor_arbiter import SensorArbiter, monotonic_ms


class DozeState(Enum):
    DISPLAY_ON = "DISPLAY_ON"
    STOWED = "STOWED"
    RELEASED = "RELEASED"
    EVALUATING = "EVALUATING"


class ReasonToken:
    """Decision outcomes."""
    HANDWAVE = "handwave"
    PICKUP_LIFTED = "pickup_lifted"
    PICKUP_FACE_DOWN = "pickup_face_down"
    POCKET_VERTICAL = "pocket_vertical"
    NO_MATCH = "no_match"


@dataclass
class GestureWindow:
    """Transient per-release state, owned by the engine."""
    handwave_pending: bool = False
    pickup_pending: bool = False
    pocket_pending: bool = False
    picked_up: bool = False
    proximity_near: bool = False

    @property
    def any_pending(self) -> bool:
        return self.handwave_pending or self.pickup_pending or self.pocket_pending

    def clear_pending(self) -> None:
        self.handwave_pending = False
        self.pickup_pending = False
        self.pocket_pending = False

    def pending_dict(self) -> Dict[str, bool]:
        return {
            "handwave": self.handwave_pending,
            "pickup": self.pickup_pending,
            "pocket": self.pocket_pending,
        }


@dataclass
class DecisionOutput:
    """Result of one decision step."""
    reason: str
    fired: bool
    throttled: bool
    timestamp_ms: int
    trigger: str
    pending: Dict[str, bool] = field(default_factory=dict)
    face_down: bool = False
    vertical: bool = False
    picked_up: bool = False
    pickup_rearmed: bool = False
    log_entries: List[str] = field(default_factory=list)

    @property
    def matched(self) -> bool:
        return self.reason != ReasonToken.NO_MATCH


def _format_log(event_type: str, **kwargs) -> str:
    parts = [event_type]
    for k, v in kwargs.items():
        parts.append(f"{k}={v}")
    return " ".join(parts)


class GestureEngine:
    """
    Gesture decision state machine.

    Not thread-safe: callers serialize every input through handle()
    (see DozeService).
    """

    VERSION = "1.0"

    def __init__(self,
                 arbiter: SensorArbiter,
                 config: GestureConfig = None,
                 doze_setting: Callable[[], bool] = None,
                 broadcaster: PulseBroadcaster = None,
                 acknowledger: Acknowledger = None,
                 engine_config: EngineConfig = None,
                 clock: Callable[[], int] = monotonic_ms,
                 logger: logging.Logger = None):
        self._arbiter = arbiter
        self._config = config or GestureConfig()
        self._doze_setting = doze_setting or (lambda: True)
        self._broadcaster = broadcaster or PulseBroadcaster()
        self._acknowledger = acknowledger or Acknowledger()
        self._engine_config = engine_config or DEFAULT_ENGINE_CONFIG
        self._clock = clock
        self._logger = logger or logging.getLogger(__name__)

        self._throttle = PulseThrottle(self._engine_config.pulse_min_interval_ms)
        self._window = GestureWindow()
        self._last_stowed_ns = 0
        self._display_on = True
        self._decision_count = 0
        self._pulse_count = 0
        self._log_buffer: List[str] = []

    # --- accessors ---

    @property
    def config(self) -> GestureConfig:
        return self._config

    @property
    def window(self) -> GestureWindow:
        return self._window

    @property
    def throttle(self) -> PulseThrottle:
        return self._throttle

    @property
    def last_stowed_ns(self) -> int:
        return self._last_stowed_ns

    @property
    def pulse_count(self) -> int:
        return self._pulse_count

    @property
    def state(self) -> DozeState:
        if self._display_on:
            return DozeState.DISPLAY_ON
        if self._window.proximity_near:
            return DozeState.STOWED
        if self._window.any_pending:
            return DozeState.EVALUATING
        return DozeState.RELEASED

    def _log(self, entry: str, level: int = logging.DEBUG) -> None:
        self._log_buffer.append(entry)
        self._logger.log(level, entry)

    def _refresh_doze(self) -> None:
        self._config.doze_enabled = bool(self._doze_setting())

    # --- single entry point ---

    def handle(self, event) -> Optional[DecisionOutput]:
        """
        Dispatch one input. Returns a DecisionOutput when a decision step ran.

        Sensor events for a sensor that is currently disabled are stale
        and dropped.
        """
        self._log_buffer = []
        sensor = sensor_of(event)
        if sensor is not None and not self._arbiter.is_enabled(sensor):
            self._log(_format_log("EVENT_STALE", sensor=sensor.value, event=type(event).__name__))
            return None

        if isinstance(event, ProximityEvent):
            self.on_proximity(event.is_near, event.timestamp_ns)
            return None
        if isinstance(event, ProximityInit):
            self.on_proximity_init(event.is_near, event.timestamp_ns)
            return None
        if isinstance(event, OrientationEvent):
            return self.on_orientation()
        if isinstance(event, PickUpEvent):
            return self.on_pickup(event.picked_up)
        if isinstance(event, PickUpInit):
            self.on_pickup_init(event.picked_up)
            return None
        if isinstance(event, DisplayOff):
            self.on_display_off()
            return None
        if isinstance(event, DisplayOn):
            self.on_display_on()
            return None
        if isinstance(event, GestureToggle):
            self.on_gesture_toggle(event.key, event.enabled)
            return None
        raise TypeError(f"unsupported engine event: {type(event).__name__}")

    # --- proximity ---

    def on_proximity(self, is_near: bool, timestamp_ns: int) -> None:
        quick_wave = (timestamp_ns - self._last_stowed_ns) < self._engine_config.handwave_delta_ns
        self._window.proximity_near = is_near
        self._refresh_doze()
        cfg = self._config
        w = self._window

        self._log(_format_log("PROX_EVENT", near=is_near, quick=quick_wave, t_ns=timestamp_ns))

        if is_near:
            self._last_stowed_ns = timestamp_ns
            w.clear_pending()
            self._arbiter.set_orientation(False)
            self._arbiter.set_pickup(False)
            return

        w.clear_pending()

        if cfg.handwave and cfg.pickup and cfg.pocket:
            w.handwave_pending = quick_wave
            w.pickup_pending = not quick_wave
            w.pocket_pending = not quick_wave
            self._arbiter.set_orientation(True)
        elif cfg.handwave and quick_wave:
            w.handwave_pending = True
            self._arbiter.set_orientation(True)
        elif (cfg.pickup or cfg.pocket) and not quick_wave:
            w.pickup_pending = cfg.pickup
            w.pocket_pending = cfg.pocket
            self._arbiter.set_orientation(True)
        elif cfg.pickup:
            self._arbiter.set_pickup(True)

        self._log(_format_log("WINDOW_OPEN", pending=w.pending_dict(), config=cfg.to_dict()))

    def on_proximity_init(self, is_near: bool, timestamp_ns: int) -> None:
        self._last_stowed_ns = timestamp_ns
        self._window.proximity_near = is_near
        self._log(_format_log("PROX_INIT", near=is_near, t_ns=timestamp_ns))

        if not self._window.any_pending and not is_near and self._config.pickup:
            self._arbiter.set_pickup(True)

    # --- orientation ---

    def on_orientation(self) -> Optional[DecisionOutput]:
        self._arbiter.set_orientation(False)
        self._log(_format_log("ORIENT_EVENT", near=self._window.proximity_near))
        if self._window.proximity_near:
            return None
        return self._analyse("orientation")

    # --- pick-up ---

    def on_pickup(self, picked_up: bool) -> Optional[DecisionOutput]:
        self._window.picked_up = picked_up
        self._refresh_doze()
        self._log(_format_log("PICKUP_EVENT", picked_up=picked_up))

        if picked_up and self._config.pickup:
            self._window.pickup_pending = True
            self._arbiter.hold_wake()
            return self._analyse("pickup")

        self._window.pickup_pending = False
        return None

    def on_pickup_init(self, picked_up: bool) -> None:
        self._window.picked_up = picked_up
        self._log(_format_log("PICKUP_INIT", picked_up=picked_up))

    # --- decision step ---

    def _read_orientation(self):
        port = self._arbiter.orientation
        if port is None:
            return False, False
        return port.is_face_down(), port.is_vertical()

    def _analyse(self, trigger: str) -> DecisionOutput:
        self._refresh_doze()
        w = self._window
        face_down, vertical = self._read_orientation()
        pending = w.pending_dict()

        if w.handwave_pending and not face_down:
            reason = ReasonToken.HANDWAVE
        elif w.pickup_pending and ((w.picked_up and not w.proximity_near) or
                                   (not w.picked_up and face_down)):
            reason = ReasonToken.PICKUP_LIFTED if w.picked_up else ReasonToken.PICKUP_FACE_DOWN
        elif w.pocket_pending and vertical:
            reason = ReasonToken.POCKET_VERTICAL
        else:
            reason = ReasonToken.NO_MATCH

        now_ms = self._clock()
        fired = False
        rearmed = False
        try:
            if reason != ReasonToken.NO_MATCH:
                fired = self._launch_pulse(now_ms)
        finally:
            # window closes even when a pulse listener fails
            if not w.proximity_near and self._config.pickup:
                self._arbiter.set_pickup(True)
                rearmed = True
            w.clear_pending()
            self._decision_count += 1

        self._log(_format_log(
            "DOZE_DECISION",
            trigger=trigger,
            reason=reason,
            fired=fired,
            pending=pending,
            face_down=face_down,
            vertical=vertical,
            picked_up=w.picked_up,
            t_ms=now_ms
        ), logging.INFO)

        return DecisionOutput(
            reason=reason,
            fired=fired,
            throttled=(reason != ReasonToken.NO_MATCH and not fired),
            timestamp_ms=now_ms,
            trigger=trigger,
            pending=pending,
            face_down=face_down,
            vertical=vertical,
            picked_up=w.picked_up,
            pickup_rearmed=rearmed,
            log_entries=list(self._log_buffer)
        )

    def _launch_pulse(self, now_ms: int) -> bool:
        since = self._throttle.since_last(now_ms)
        if not self._throttle.should_fire(now_ms):
            self._log(_format_log("DOZE_THROTTLED", since_ms=since))
            return False

        self._arbiter.hold_wake()
        self._acknowledger.acknowledge()
        self._broadcaster.send()
        self._pulse_count += 1
        self._log(_format_log("DOZE_PULSE", since_ms=since, t_ms=now_ms), logging.INFO)
        return True

    # --- display / config ---

    def on_display_off(self) -> None:
        self._display_on = False
        self._refresh_doze()
        self._throttle.reset()
        self._log(_format_log("DISPLAY_OFF", config=self._config.to_dict()))

        if self._config.any_enabled:
            self._window.clear_pending()
            self._arbiter.set_orientation(False, True)
            self._arbiter.set_pickup(False, True)
            self._arbiter.set_proximity(True, True)

    def on_display_on(self) -> None:
        self._display_on = True
        self._log(_format_log("DISPLAY_ON"))
        self._arbiter.disable_all(reset=True)

    def on_gesture_toggle(self, key: str, enabled: bool) -> None:
        if self._config.apply_change(key, enabled):
            self._log(_format_log("CONFIG_CHANGE", key=key, enabled=enabled))

    def shutdown(self) -> None:
        """Force every sensor off. Used when the service stops."""
        self._log_buffer = []
        self._window.clear_pending()
        self._arbiter.disable_all(reset=True)

    def get_debug_state(self) -> Dict[str, Any]:
        return {
            "version": self.VERSION,
            "state": self.state.value,
            "window": self._window.pending_dict(),
            "proximity_near": self._window.proximity_near,
            "picked_up": self._window.picked_up,
            "last_stowed_ns": self._last_stowed_ns,
            "last_pulse_ms": self._throttle.last_pulse_ms,
            "decision_count": self._decision_count,
            "pulse_count": self._pulse_count,
            "sensors": [k.value for k in self._arbiter.enabled_sensors()],
            "config": self._config.to_dict(),
        }
