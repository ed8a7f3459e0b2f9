#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
doze_service.py — Event channel and lifecycle around the gesture engine

Sensor callbacks arrive on their own threads, display and preference
notifications on others. Everything is posted to one queue and handled by
one worker (or drained by the caller), so the engine never sees two inputs
at once.
"""

from __future__ import annotations
from typing import Callable, List, Optional
import logging
import queue
import threading

from doze_gestures.events import DisplayOff, DisplayOn, GestureToggle
from doze_gestures.gesture_config import (
    GESTURE_KEYS,
    EngineConfig,
    GesturePreferences,
    SecureSettings,
    load_gesture_config,
)
from doze_gestures.gesture_engine import DecisionOutput, GestureEngine
from doze_gestures.pulse_output import Acknowledger, PulseBroadcaster
from doze_gestures.sensor_arbiter import (
    OrientationPort,
    SensorArbiter,
    SensorPort,
    WakeLock,
    monotonic_ms,
)

logger = logging.getLogger(__name__)

_STOP = object()

DecisionListener = Callable[[DecisionOutput], None]


class DozeService:
    """
    Owns the engine's input channel.

    start() registers for preference changes and, if the display is off,
    queues a DisplayOff. stop() unregisters and forces every sensor off.
    """

    def __init__(self,
                 engine: GestureEngine,
                 prefs: GesturePreferences = None,
                 is_interactive: Callable[[], bool] = None):
        self._engine = engine
        self._prefs = prefs
        self._is_interactive = is_interactive or (lambda: True)
        self._queue: "queue.Queue" = queue.Queue()
        self._lock = threading.Lock()
        self._worker: Optional[threading.Thread] = None
        self._decision_listeners: List[DecisionListener] = []
        self._running = False

    @property
    def engine(self) -> GestureEngine:
        return self._engine

    @property
    def running(self) -> bool:
        return self._running

    def add_decision_listener(self, listener: DecisionListener) -> None:
        self._decision_listeners.append(listener)

    # --- input side ---

    def post(self, event) -> None:
        """Thread-safe, non-blocking."""
        self._queue.put(event)

    def notify_display(self, interactive: bool) -> None:
        self.post(DisplayOn() if interactive else DisplayOff())

    def _on_pref_changed(self, prefs: GesturePreferences, key: str) -> None:
        if key in GESTURE_KEYS:
            self.post(GestureToggle(key, prefs.get_bool(key, False)))

    # --- processing ---

    def _dispatch(self, event) -> Optional[DecisionOutput]:
        with self._lock:
            out = self._engine.handle(event)
        if out is not None:
            for listener in list(self._decision_listeners):
                listener(out)
        return out

    def _discard_pending(self) -> int:
        dropped = 0
        while True:
            try:
                self._queue.get_nowait()
            except queue.Empty:
                return dropped
            dropped += 1

    def process_pending(self) -> List[DecisionOutput]:
        """Drain the queue on the calling thread. Nothing is handled after stop()."""
        if not self._running:
            self._discard_pending()
            return []
        outputs = []
        while True:
            try:
                event = self._queue.get_nowait()
            except queue.Empty:
                break
            if event is _STOP:
                continue
            out = self._dispatch(event)
            if out is not None:
                outputs.append(out)
        return outputs

    def _run(self) -> None:
        while True:
            event = self._queue.get()
            if event is _STOP or not self._running:
                break
            try:
                self._dispatch(event)
            except Exception:
                logger.exception("[doze] event handling failed event=%s", type(event).__name__)

    # --- lifecycle ---

    def start(self, threaded: bool = True) -> None:
        if self._running:
            return
        self._running = True
        if self._prefs is not None:
            self._prefs.register_listener(self._on_pref_changed)
        if not self._is_interactive():
            self.post(DisplayOff())
        if threaded:
            self._worker = threading.Thread(target=self._run, name="doze-engine", daemon=True)
            self._worker.start()
        logger.info("[doze] service started threaded=%s", threaded)

    def stop(self, timeout: float = 2.0) -> None:
        if not self._running:
            return
        self._running = False
        if self._prefs is not None:
            self._prefs.unregister_listener(self._on_pref_changed)
        if self._worker is not None:
            self._queue.put(_STOP)
            self._worker.join(timeout)
            self._worker = None
        dropped = self._discard_pending()
        with self._lock:
            self._engine.shutdown()
        logger.info("[doze] service stopped dropped=%s", dropped)


# === Convenience factory ===

def create_doze_service(orientation: Optional[OrientationPort],
                        pickup: Optional[SensorPort],
                        proximity: Optional[SensorPort],
                        prefs: GesturePreferences = None,
                        settings: SecureSettings = None,
                        is_interactive: Callable[[], bool] = None,
                        broadcaster: PulseBroadcaster = None,
                        acknowledger: Acknowledger = None,
                        engine_config: EngineConfig = None,
                        clock: Callable[[], int] = monotonic_ms) -> DozeService:
    """Wire ports, arbiter, engine and service together."""
    prefs = prefs or GesturePreferences()
    settings = settings or SecureSettings()
    engine_config = engine_config or EngineConfig()

    arbiter = SensorArbiter(
        orientation, pickup, proximity,
        wake_lock=WakeLock(clock=clock),
        wakelock_duration_ms=engine_config.wakelock_duration_ms,
    )
    engine = GestureEngine(
        arbiter,
        config=load_gesture_config(prefs, settings.is_doze_enabled()),
        doze_setting=settings.is_doze_enabled,
        broadcaster=broadcaster,
        acknowledger=acknowledger,
        engine_config=engine_config,
        clock=clock,
    )
    return DozeService(engine, prefs=prefs, is_interactive=is_interactive)
