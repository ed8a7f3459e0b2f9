import unittest
from doze_gestures import binlink
from doze_gestures.events import (
    DisplayOff, DisplayOn, OrientationEvent, PickUpEvent, PickUpInit, ProximityEvent, ProximityInit,
)
from doze_gestures.serial_hub import SerialSensorHub


class FakeSerial:
    """Stands in for serial.Serial: scripted reads, captured writes."""

    def __init__(self, chunks=None):
        self.chunks = list(chunks or [])
        self.written = bytearray()
        self.closed = False

    def read(self, size):
        return self.chunks.pop(0) if self.chunks else b""

    def write(self, data):
        self.written.extend(data)
        return len(data)

    def close(self):
        self.closed = True


class TestBinlink(unittest.TestCase):
    def test_crc_known_value(self):
        # CRC-16/CCITT-FALSE check value
        self.assertEqual(binlink.crc16_ccitt_false(b"123456789"), 0x29B1)

    def test_frame_layout(self):
        frame = binlink.encode_frame(binlink.TYPE_PICKUP_EVENT, binlink.pack_flag(True))
        self.assertEqual(frame[0], binlink.SYNC)
        self.assertEqual(frame[1], 0x41)
        self.assertEqual(frame[2], 1)
        self.assertEqual(frame[3], 1)
        self.assertEqual(len(frame), 6)

    def test_stream_resyncs_after_garbage_and_bad_crc(self):
        good = binlink.encode_frame(binlink.TYPE_PROX_EVENT, binlink.pack_proximity(True, 77))
        bad = bytearray(good)
        bad[-1] ^= 0xFF
        stream = binlink.FrameStream(FakeSerial())
        frames = list(stream.feed(b"\x00\x13" + bytes(bad) + good))
        self.assertEqual(len(frames), 1)
        t, v, payload = frames[0]
        self.assertEqual(t, binlink.TYPE_PROX_EVENT)
        self.assertEqual(v, binlink.VER)
        self.assertEqual(binlink.parse_proximity(payload), {"is_near": True, "timestamp_ns": 77})

    def test_stream_waits_for_split_frame(self):
        frame = binlink.encode_frame(binlink.TYPE_DISPLAY, binlink.pack_flag(False))
        stream = binlink.FrameStream(FakeSerial())
        self.assertEqual(list(stream.feed(frame[:3])), [])
        self.assertEqual(len(list(stream.feed(frame[3:]))), 1)

    def test_orientation_flags(self):
        reading = binlink.parse_orientation(binlink.pack_orientation(face_down=True, vertical=True))
        self.assertEqual(reading, {"face_down": True, "face_up": False, "vertical": True})


class TestSerialSensorHub(unittest.TestCase):
    def test_pump_decodes_all_event_kinds(self):
        frames = b"".join([
            binlink.encode_frame(binlink.TYPE_DISPLAY, binlink.pack_flag(False)),
            binlink.encode_frame(binlink.TYPE_PROX_INIT, binlink.pack_proximity(True, 5)),
            binlink.encode_frame(binlink.TYPE_PROX_EVENT, binlink.pack_proximity(False, 9)),
            binlink.encode_frame(binlink.TYPE_ORIENTATION, binlink.pack_orientation(vertical=True)),
            binlink.encode_frame(binlink.TYPE_PICKUP_INIT, binlink.pack_flag(False)),
            binlink.encode_frame(binlink.TYPE_PICKUP_EVENT, binlink.pack_flag(True)),
            binlink.encode_frame(binlink.TYPE_DISPLAY, binlink.pack_flag(True)),
            binlink.encode_frame(0xE, b"\x01\x02"),
        ])
        ser = FakeSerial([frames])
        hub = SerialSensorHub(ser)
        posted = []
        self.assertEqual(hub.pump(posted.append), 7)
        self.assertEqual(posted, [
            DisplayOff(),
            ProximityInit(True, 5),
            ProximityEvent(False, 9),
            OrientationEvent(),
            PickUpInit(False),
            PickUpEvent(True),
            DisplayOn(),
        ])
        self.assertTrue(hub.orientation.is_vertical())
        self.assertFalse(hub.orientation.is_face_down())
        self.assertEqual(hub.frames_seen, 8)
        self.assertEqual(hub.frames_unknown, 1)

    def test_empty_read_posts_nothing(self):
        hub = SerialSensorHub(FakeSerial())
        self.assertEqual(hub.pump(lambda ev: None), 0)

    def test_ports_write_sensor_commands(self):
        ser = FakeSerial()
        hub = SerialSensorHub(ser)
        hub.proximity.reset()
        hub.proximity.enable()
        hub.pickup.disable()

        stream = binlink.FrameStream(ser)
        cmds = [binlink.parse_sensor_cmd(p) for t, v, p in stream.feed(bytes(ser.written))
                if t == binlink.TYPE_SENSOR_CMD]
        self.assertEqual(cmds, [
            {"sensor_id": binlink.SENSOR_ID_PROXIMITY, "op": binlink.OP_RESET},
            {"sensor_id": binlink.SENSOR_ID_PROXIMITY, "op": binlink.OP_ENABLE},
            {"sensor_id": binlink.SENSOR_ID_PICKUP, "op": binlink.OP_DISABLE},
        ])

    def test_orientation_reset_clears_reading(self):
        ser = FakeSerial()
        hub = SerialSensorHub(ser)
        hub.orientation.update({"face_down": True, "face_up": False, "vertical": False})
        hub.orientation.reset()
        self.assertFalse(hub.orientation.is_face_down())
        self.assertGreater(len(ser.written), 0)

    def test_close(self):
        ser = FakeSerial()
        SerialSensorHub(ser).close()
        self.assertTrue(ser.closed)


if __name__ == '__main__':
    unittest.main()
