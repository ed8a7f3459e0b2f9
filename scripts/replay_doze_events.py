#!/usr/bin/env python3
"""
replay_doze_events.py — Replay a doze event log through the gesture engine

Input: JSONL, one record per input, each with "t_ms" (simulated monotonic
clock) and "kind":
    proximity / proximity_init   is_near, timestamp_ns
    orientation                  face_down, face_up, vertical
    pickup / pickup_init         picked_up
    display                      on
    pref                         key, enabled

Output: CSV with one row per decision step, plus a summary on stdout.
"""

import os
import sys
import csv
import argparse
import logging
from collections import Counter
from pathlib import Path

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from doze_gestures.events import OrientationEvent, event_from_dict
from doze_gestures.gesture_config import (
    KEY_GESTURE_HAND_WAVE, KEY_GESTURE_PICK_UP, KEY_GESTURE_POCKET,
    SETTING_DOZE_ENABLED,
    GesturePreferences, SecureSettings,
)
from doze_gestures.doze_service import create_doze_service
from doze_gestures.pulse_output import PulseBroadcaster
from doze_gestures.recorder import decision_record, load_records
from doze_gestures.simulated import SimClock, SimOrientationPort, SimSensorPort

GESTURE_FLAGS = {
    "handwave": KEY_GESTURE_HAND_WAVE,
    "pickup": KEY_GESTURE_PICK_UP,
    "pocket": KEY_GESTURE_POCKET,
}

HEADERS = [
    "t_ms", "trigger", "reason", "fired", "throttled",
    "pending", "face_down", "vertical", "picked_up", "pickup_rearmed",
]


def build_prefs(args) -> GesturePreferences:
    if args.prefs:
        return GesturePreferences.from_file(args.prefs)
    prefs = GesturePreferences()
    for name in args.gestures:
        prefs.set_bool(GESTURE_FLAGS[name], True)
    return prefs


def replay(records, prefs, settings, clock=None):
    """Run records through a fresh service. Returns (decisions, pulses, ports)."""
    clock = clock or SimClock(start_ms=0)
    orientation = SimOrientationPort()
    pickup = SimSensorPort("pickup")
    proximity = SimSensorPort("proximity")
    pulses = []
    broadcaster = PulseBroadcaster()
    broadcaster.register(pulses.append)

    service = create_doze_service(orientation, pickup, proximity,
                                  prefs=prefs, settings=settings,
                                  broadcaster=broadcaster, clock=clock)
    service.start(threaded=False)

    decisions = []
    for rec in records:
        if "t_ms" in rec:
            clock.set(int(rec["t_ms"]))
        event = event_from_dict(rec)
        if event is None:
            continue
        if isinstance(event, OrientationEvent):
            orientation.set_reading(
                face_down=bool(rec.get("face_down", False)),
                face_up=bool(rec.get("face_up", False)),
                vertical=bool(rec.get("vertical", False)),
            )
        service.post(event)
        decisions.extend(service.process_pending())

    service.stop()
    return decisions, pulses, (orientation, pickup, proximity)


def main():
    parser = argparse.ArgumentParser(description='Replay doze gesture events')
    parser.add_argument('input', help='Input JSONL file')
    parser.add_argument('output', nargs='?', help='Output CSV (optional)')
    parser.add_argument('--prefs', help='Gesture preferences JSON')
    parser.add_argument('--gestures', nargs='*', choices=sorted(GESTURE_FLAGS), default=[],
                        help='Enabled gestures when no --prefs is given')
    parser.add_argument('--doze-disabled', action='store_true', help='Global doze setting off')
    parser.add_argument('--verbose', action='store_true')

    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if (args.verbose or os.getenv("DOZE_DEBUG")) else logging.WARNING,
        format="%(message)s",
        stream=sys.stdout,
    )

    input_path = Path(args.input)
    if args.output:
        output_path = Path(args.output)
    else:
        output_path = input_path.with_name(f"{input_path.stem}__decisions.csv")

    prefs = build_prefs(args)
    settings = SecureSettings({SETTING_DOZE_ENABLED: 0 if args.doze_disabled else 1})

    records = load_records(input_path)
    print(f"[i] Input: {input_path}")
    print(f"[i] Output: {output_path}")
    print(f"[i] Loaded {len(records)} records")

    decisions, pulses, ports = replay(records, prefs, settings)

    with open(output_path, "w", newline="") as f:
        writer = csv.DictWriter(f, fieldnames=HEADERS)
        writer.writeheader()
        for out in decisions:
            row = decision_record(out)
            row.pop("kind")
            writer.writerow(row)

    reasons = Counter(out.reason for out in decisions)
    print(f"[✓] Wrote {len(decisions)} decisions to {output_path}")
    print(f"Pulses   : {len(pulses)}")
    print(f"Throttled: {sum(1 for out in decisions if out.throttled)}")
    print(f"Reasons  : {dict(reasons)}")
    for port in ports:
        print(f"  {port.name}: enable={port.calls.count('enable')} "
              f"disable={port.calls.count('disable')} reset={port.reset_count}")

    return 0


if __name__ == "__main__":
    sys.exit(main())
