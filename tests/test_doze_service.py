import threading
import unittest
from doze_gestures.doze_service import create_doze_service
from doze_gestures.events import OrientationEvent, ProximityEvent, SensorKind
from doze_gestures.gesture_config import (
    KEY_GESTURE_HAND_WAVE, KEY_GESTURE_POCKET, SETTING_DOZE_ENABLED,
    GesturePreferences, SecureSettings,
)
from doze_gestures.gesture_engine import ReasonToken
from doze_gestures.pulse_output import DOZE_PULSE_ACTION, PulseBroadcaster
from doze_gestures.simulated import SimClock, SimOrientationPort, SimSensorPort

MS = 1000 * 1000


class TestDozeService(unittest.TestCase):
    def setUp(self):
        self.clock = SimClock()
        self.orientation = SimOrientationPort()
        self.pickup = SimSensorPort("pickup")
        self.proximity = SimSensorPort("proximity")
        self.prefs = GesturePreferences({KEY_GESTURE_HAND_WAVE: True})
        self.settings = SecureSettings()
        self.interactive = False
        self.actions = []
        broadcaster = PulseBroadcaster()
        broadcaster.register(self.actions.append)
        self.service = create_doze_service(
            self.orientation, self.pickup, self.proximity,
            prefs=self.prefs, settings=self.settings,
            is_interactive=lambda: self.interactive,
            broadcaster=broadcaster, clock=self.clock)

    def tearDown(self):
        self.service.stop()

    def test_config_loaded_from_prefs(self):
        cfg = self.service.engine.config
        self.assertTrue(cfg.handwave_enabled)
        self.assertFalse(cfg.pickup_enabled)
        self.assertFalse(cfg.pocket_enabled)

    def test_start_with_display_off_arms_proximity(self):
        self.service.start(threaded=False)
        self.assertFalse(self.proximity.enabled)  # queued, not yet handled
        self.service.process_pending()
        self.assertTrue(self.proximity.enabled)

    def test_start_with_display_on_does_nothing(self):
        self.interactive = True
        self.service.start(threaded=False)
        self.service.process_pending()
        self.assertEqual(self.proximity.calls, [])

    def test_events_processed_in_post_order(self):
        self.service.start(threaded=False)
        self.service.post(ProximityEvent(True, 0))
        self.service.post(ProximityEvent(False, 400 * MS))
        self.service.post(OrientationEvent())
        outs = self.service.process_pending()
        self.assertEqual(len(outs), 1)
        self.assertEqual(outs[0].reason, ReasonToken.HANDWAVE)
        self.assertEqual(self.actions, [DOZE_PULSE_ACTION])

    def test_pref_change_reaches_engine_through_channel(self):
        self.service.start(threaded=False)
        self.prefs.set_bool(KEY_GESTURE_POCKET, True)
        self.assertFalse(self.service.engine.config.pocket_enabled)
        self.service.process_pending()
        self.assertTrue(self.service.engine.config.pocket_enabled)

    def test_events_after_stop_are_dropped(self):
        self.service.start(threaded=False)
        self.service.process_pending()
        self.service.post(ProximityEvent(True, 0))
        self.service.stop()
        calls = list(self.proximity.calls)

        self.service.post(ProximityEvent(False, 200 * MS))
        self.service.notify_display(False)
        self.assertEqual(self.service.process_pending(), [])
        self.assertEqual(self.proximity.calls, calls)
        self.assertEqual(self.service.engine.get_debug_state()["sensors"], [])
        self.assertFalse(self.orientation.enabled)

    def test_doze_setting_polled_at_display_off(self):
        self.settings.put_int(SETTING_DOZE_ENABLED, 0)
        self.service.start(threaded=False)
        self.service.process_pending()
        self.assertFalse(self.service.engine.config.doze_enabled)
        self.assertEqual(self.proximity.calls, [])

    def test_notify_display_on_tears_down(self):
        self.service.start(threaded=False)
        self.service.process_pending()
        self.service.notify_display(True)
        self.service.process_pending()
        self.assertEqual(self.service.engine.get_debug_state()["sensors"], [])
        self.assertEqual(self.service.engine.get_debug_state()["state"], "DISPLAY_ON")

    def test_stop_forces_sensors_off_and_unregisters(self):
        self.service.start(threaded=False)
        self.service.process_pending()
        self.service.stop()
        self.assertFalse(self.proximity.enabled)
        self.assertEqual(self.proximity.calls[-2:], ["reset", "disable"])

        self.prefs.set_bool(KEY_GESTURE_POCKET, True)
        self.assertEqual(self.service.process_pending(), [])
        self.assertFalse(self.service.engine.config.pocket_enabled)

    def test_decision_listener(self):
        seen = []
        self.service.add_decision_listener(seen.append)
        self.service.start(threaded=False)
        self.service.post(ProximityEvent(True, 0))
        self.service.post(ProximityEvent(False, 100 * MS))
        self.service.post(OrientationEvent())
        self.service.process_pending()
        self.assertEqual(len(seen), 1)
        self.assertTrue(seen[0].fired)

    def test_threaded_worker(self):
        done = threading.Event()
        self.service.add_decision_listener(lambda out: done.set())
        self.service.start()
        self.service.post(ProximityEvent(True, 0))
        self.service.post(ProximityEvent(False, 100 * MS))
        self.service.post(OrientationEvent())
        self.assertTrue(done.wait(2.0))
        self.service.stop()
        self.assertFalse(self.service.running)
        self.assertEqual(self.actions, [DOZE_PULSE_ACTION])
        self.assertEqual(self.service.engine.get_debug_state()["sensors"], [])

    def test_missing_sensor_degrades_to_no_pulse(self):
        service = create_doze_service(None, None, self.proximity,
                                      prefs=self.prefs, settings=self.settings,
                                      is_interactive=lambda: False, clock=self.clock)
        service.start(threaded=False)
        service.post(ProximityEvent(True, 0))
        service.post(ProximityEvent(False, 100 * MS))
        service.post(OrientationEvent())
        self.assertEqual(service.process_pending(), [])
        self.assertEqual(service.engine.pulse_count, 0)
        self.assertTrue(self.proximity.enabled)
        service.stop()
        self.assertNotIn(SensorKind.PROXIMITY.value, service.engine.get_debug_state()["sensors"])


if __name__ == '__main__':
    unittest.main()
