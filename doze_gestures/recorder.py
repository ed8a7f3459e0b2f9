# recorder.py — JSONL logging of engine inputs and decisions
import json
import time

from doze_gestures.events import OrientationEvent, event_to_dict


# --- Batch writer: writes in batches instead of per line
class BatchWriter:
    def __init__(self, path, batch_size=256, flush_ms=500):
        self.path = path
        self.batch_size = batch_size
        self.flush_ms = flush_ms
        self.buf = []
        self.last_flush = time.time()
        self.f = open(path, "a", buffering=1024*1024)

    def add(self, line: str):
        self.buf.append(line)
        now = time.time()
        if len(self.buf) >= self.batch_size or (now - self.last_flush) * 1000.0 >= self.flush_ms:
            self.flush(now)

    def add_record(self, record: dict):
        self.add(json.dumps(record, sort_keys=True))

    def flush(self, now=None):
        if not self.buf: return
        self.f.write("\n".join(self.buf) + "\n")
        self.buf.clear()
        self.last_flush = now if now else time.time()

    def close(self):
        self.flush()
        self.f.close()


def event_record(event, t_ms: int, orientation=None) -> dict:
    """One JSONL line for an engine input.

    Orientation events carry no payload, so the port reading they refer to is
    stored with them when an orientation port is given.
    """
    rec = event_to_dict(event)
    rec["t_ms"] = t_ms
    if orientation is not None and isinstance(event, OrientationEvent):
        rec["face_down"] = bool(orientation.is_face_down())
        rec["face_up"] = bool(orientation.is_face_up())
        rec["vertical"] = bool(orientation.is_vertical())
    return rec


def decision_record(out) -> dict:
    return {
        "kind": "decision",
        "t_ms": out.timestamp_ms,
        "trigger": out.trigger,
        "reason": out.reason,
        "fired": out.fired,
        "throttled": out.throttled,
        "pending": out.pending,
        "face_down": out.face_down,
        "vertical": out.vertical,
        "picked_up": out.picked_up,
        "pickup_rearmed": out.pickup_rearmed,
    }


def load_records(path):
    """Read a JSONL file; blank and malformed lines are skipped."""
    records = []
    with open(path, "r", encoding="utf-8") as f:
        for line in f:
            line = line.strip()
            if not line:
                continue
            try:
                records.append(json.loads(line))
            except json.JSONDecodeError:
                continue
    return records
