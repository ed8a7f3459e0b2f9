import unittest
from doze_gestures.events import SensorKind
from doze_gestures.sensor_arbiter import SensorArbiter, WakeLock
from doze_gestures.simulated import SimClock, SimOrientationPort, SimSensorPort


class TestSensorArbiter(unittest.TestCase):
    def setUp(self):
        self.clock = SimClock(start_ms=1000)
        self.orientation = SimOrientationPort()
        self.pickup = SimSensorPort("pickup")
        self.proximity = SimSensorPort("proximity")
        self.wake_lock = WakeLock(clock=self.clock)
        self.arbiter = SensorArbiter(self.orientation, self.pickup, self.proximity,
                                     wake_lock=self.wake_lock, wakelock_duration_ms=1000)
        self.both_on = []
        self.arbiter.add_listener(self._check_exclusion)

    def _check_exclusion(self, kind, enabled):
        if self.orientation.enabled and self.pickup.enabled:
            self.both_on.append(kind)

    def test_orientation_disables_pickup_first(self):
        self.arbiter.set_pickup(True)
        self.assertTrue(self.pickup.enabled)

        self.arbiter.set_orientation(True)
        self.assertTrue(self.orientation.enabled)
        self.assertFalse(self.pickup.enabled)
        self.assertEqual(self.both_on, [])

    def test_pickup_disables_orientation_first(self):
        self.arbiter.set_orientation(True)
        self.arbiter.set_pickup(True)
        self.assertTrue(self.pickup.enabled)
        self.assertFalse(self.orientation.enabled)
        self.assertFalse(self.arbiter.is_enabled(SensorKind.ORIENTATION))
        self.assertEqual(self.both_on, [])

    def test_reset_flag_resets_before_power_change(self):
        self.arbiter.set_proximity(True, reset=True)
        self.assertEqual(self.proximity.calls, ["reset", "enable"])
        self.arbiter.set_proximity(False)
        self.assertEqual(self.proximity.calls, ["reset", "enable", "disable"])

    def test_arming_orientation_takes_bounded_wake_hold(self):
        self.assertFalse(self.wake_lock.is_held())
        self.arbiter.set_orientation(True)
        self.assertEqual(self.wake_lock.acquire_count, 1)
        self.assertTrue(self.wake_lock.is_held())

        self.clock.advance(999)
        self.assertTrue(self.wake_lock.is_held())
        self.clock.advance(1)
        self.assertFalse(self.wake_lock.is_held())

    def test_disarming_orientation_takes_no_wake_hold(self):
        self.arbiter.set_orientation(False, reset=True)
        self.assertEqual(self.wake_lock.acquire_count, 0)

    def test_missing_port_is_noop(self):
        arbiter = SensorArbiter(None, self.pickup, None, wake_lock=self.wake_lock)
        arbiter.set_orientation(True)
        arbiter.set_proximity(True, reset=True)
        self.assertFalse(arbiter.is_enabled(SensorKind.ORIENTATION))
        self.assertFalse(arbiter.is_enabled(SensorKind.PROXIMITY))
        self.assertEqual(self.wake_lock.acquire_count, 0)

        # PICKUP still works; disabling the missing ORIENTATION is skipped
        arbiter.set_pickup(True)
        self.assertTrue(self.pickup.enabled)

    def test_disable_all(self):
        self.arbiter.set_proximity(True)
        self.arbiter.set_orientation(True)
        self.arbiter.disable_all(reset=True)
        self.assertEqual(self.arbiter.enabled_sensors(), [])
        for port in (self.orientation, self.pickup, self.proximity):
            self.assertFalse(port.enabled)
            self.assertEqual(port.reset_count, 1)

    def test_wake_hold_extends_not_shortens(self):
        hold = self.wake_lock.acquire(5000)
        self.assertEqual(hold.expires_ms, 6000)
        self.wake_lock.acquire(100)
        self.clock.advance(4000)
        self.assertTrue(self.wake_lock.is_held())


if __name__ == '__main__':
    unittest.main()
