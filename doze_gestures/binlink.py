# binlink.py — sensor hub frame codec
import struct

SYNC = 0xA5
# TYPE upper nibble, VER lower nibble
TYPE_PROX_EVENT   = 0x1
TYPE_PROX_INIT    = 0x2
TYPE_ORIENTATION  = 0x3
TYPE_PICKUP_EVENT = 0x4
TYPE_PICKUP_INIT  = 0x5
TYPE_DISPLAY      = 0x6
TYPE_SENSOR_CMD   = 0x8  # host -> hub

VER = 0x1

# SENSOR_CMD ids / ops
SENSOR_ID_ORIENTATION = 0
SENSOR_ID_PICKUP      = 1
SENSOR_ID_PROXIMITY   = 2

OP_DISABLE = 0
OP_ENABLE  = 1
OP_RESET   = 2

# ORIENTATION flag bits
ORIENT_FACE_DOWN = 0x01
ORIENT_FACE_UP   = 0x02
ORIENT_VERTICAL  = 0x04


def crc16_ccitt_false(data: bytes) -> int:
    crc = 0xFFFF
    for ch in data:
        crc ^= (ch << 8) & 0xFFFF
        for _ in range(8):
            crc = ((crc << 1) ^ 0x1021) & 0xFFFF if (crc & 0x8000) else ((crc << 1) & 0xFFFF)
    return crc


def encode_frame(t: int, payload: bytes, ver: int = VER) -> bytes:
    """SYNC | TYPE<<4|VER | LEN | PAYLOAD | CRC16 (LE, over typever+len+payload)."""
    if len(payload) > 0xFF:
        raise ValueError(f"payload too long: {len(payload)}")
    body = bytes([((t & 0x0F) << 4) | (ver & 0x0F), len(payload)]) + payload
    return bytes([SYNC]) + body + struct.pack('<H', crc16_ccitt_false(body))


class FrameStream:
    def __init__(self, ser):
        self.ser = ser
        self.buf = bytearray()

    def feed(self, chunk: bytes):
        # generator: yields (type, ver, payload:bytes) for every complete frame
        self.buf.extend(chunk)
        while True:
            idx = self.buf.find(bytes([SYNC]))
            if idx < 0:
                self.buf.clear()
                break
            if idx > 0:
                del self.buf[:idx]
            if len(self.buf) < 4:
                break
            typever = self.buf[1]
            plen    = self.buf[2]
            need = 1 + 1 + 1 + plen + 2
            if len(self.buf) < need:
                break
            frame = bytes(self.buf[:need])
            crc_rx = struct.unpack('<H', frame[-2:])[0]
            crc_tx = crc16_ccitt_false(frame[1:3+plen])
            if crc_rx != crc_tx:
                # drop the SYNC byte only, a real frame may start inside
                del self.buf[:1]
                continue
            del self.buf[:need]
            t = (typever >> 4) & 0x0F
            v = typever & 0x0F
            payload = frame[3:-2]
            yield (t, v, payload)

    def read_frames(self, size: int = 256):
        chunk = self.ser.read(size)
        if not chunk:
            return
        yield from self.feed(chunk)


def parse_proximity(p):
    is_near, ts_ns = struct.unpack_from('<BQ', p, 0)
    return {"is_near": bool(is_near), "timestamp_ns": ts_ns}

def parse_orientation(p):
    flags = p[0]
    return {
        "face_down": bool(flags & ORIENT_FACE_DOWN),
        "face_up":   bool(flags & ORIENT_FACE_UP),
        "vertical":  bool(flags & ORIENT_VERTICAL),
    }

def parse_flag(p):
    return bool(p[0])

def parse_sensor_cmd(p):
    sensor_id, op = struct.unpack_from('<BB', p, 0)
    return {"sensor_id": sensor_id, "op": op}


def pack_proximity(is_near: bool, timestamp_ns: int) -> bytes:
    return struct.pack('<BQ', 1 if is_near else 0, timestamp_ns)

def pack_orientation(face_down=False, face_up=False, vertical=False) -> bytes:
    flags = ((ORIENT_FACE_DOWN if face_down else 0) |
             (ORIENT_FACE_UP if face_up else 0) |
             (ORIENT_VERTICAL if vertical else 0))
    return bytes([flags])

def pack_flag(value: bool) -> bytes:
    return bytes([1 if value else 0])

def pack_sensor_cmd(sensor_id: int, op: int) -> bytes:
    return struct.pack('<BB', sensor_id, op)
