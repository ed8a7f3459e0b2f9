# capture_doze.py — live doze engine on a serial sensor hub
import os
import sys
import time
import argparse
import logging

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from doze_gestures.doze_service import create_doze_service
from doze_gestures.gesture_config import SETTING_DOZE_ENABLED, GesturePreferences, SecureSettings
from doze_gestures.pulse_output import PulseBroadcaster
from doze_gestures.recorder import BatchWriter, decision_record, event_record
from doze_gestures.sensor_arbiter import monotonic_ms
from doze_gestures.serial_hub import DEFAULT_BAUD, DEFAULT_PORT, SerialSensorHub, open_serial


def format_decision(out):
    """Format one decision for console output"""
    mark = "PULSE" if out.fired else ("THROTTLED" if out.throttled else "-")
    return (f"[DOZE] {out.trigger:<11} reason={out.reason:<16} {mark:<9} "
            f"face_down={int(out.face_down)} vertical={int(out.vertical)} "
            f"picked_up={int(out.picked_up)}")


def main():
    parser = argparse.ArgumentParser(description='Live doze gestures on a serial sensor hub')
    parser.add_argument('--port', default=DEFAULT_PORT)
    parser.add_argument('--baud', type=int, default=DEFAULT_BAUD)
    parser.add_argument('--prefs', default='doze_prefs.json', help='Gesture preferences JSON')
    parser.add_argument('--doze-disabled', action='store_true')
    parser.add_argument('--screen-off', action='store_true', help='Assume display is off at start')
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if os.getenv("DOZE_DEBUG") else logging.INFO,
        format="%(message)s",
        stream=sys.stdout,
    )

    ser = open_serial(args.port, args.baud)
    hub = SerialSensorHub(ser)

    evs = BatchWriter("doze_events.jsonl",    batch_size=128, flush_ms=400)
    dec = BatchWriter("doze_decisions.jsonl", batch_size=32,  flush_ms=800)

    pulses = []
    broadcaster = PulseBroadcaster()
    broadcaster.register(lambda action: pulses.append(monotonic_ms()))

    prefs = GesturePreferences.from_file(args.prefs)
    settings = SecureSettings({SETTING_DOZE_ENABLED: 0 if args.doze_disabled else 1})
    service = create_doze_service(
        hub.orientation, hub.pickup, hub.proximity,
        prefs=prefs, settings=settings,
        is_interactive=lambda: not args.screen_off,
        broadcaster=broadcaster,
    )

    def on_decision(out):
        dec.add_record(decision_record(out))
        print(format_decision(out))

    def post(event):
        evs.add_record(event_record(event, monotonic_ms(), hub.orientation))
        service.post(event)

    service.add_decision_listener(on_decision)

    print(f"[capture] listening on {args.port} @ {args.baud} … (Ctrl+C to stop)")
    print(f"[capture] gestures: {service.engine.config.to_dict()}")
    print(f"[capture] writing to:")
    print(f"  - events:    doze_events.jsonl")
    print(f"  - decisions: doze_decisions.jsonl")
    print()

    t0 = time.time()
    last_status = time.time()
    events_seen = 0

    service.start()
    try:
        while True:
            events_seen += hub.pump(post)
            now = time.time()
            if now - last_status > 5.0:
                dbg = service.engine.get_debug_state()
                print(f"[status] events: {events_seen}  frames: {hub.frames_seen}  "
                      f"state: {dbg['state']}  sensors: {dbg['sensors']}  pulses: {len(pulses)}")
                last_status = now
    except KeyboardInterrupt:
        print("\n[capture] interrupted by user")
    finally:
        service.stop()
        evs.close()
        dec.close()
        hub.close()

        elapsed = time.time() - t0
        print("\n" + "="*70)
        print("[capture] Session summary:")
        print(f"  Duration:  {elapsed:.1f}s")
        print(f"  Events:    {events_seen}")
        print(f"  Frames:    {hub.frames_seen} (ignored {hub.frames_unknown})")
        print(f"  Pulses:    {len(pulses)}")
        print("="*70)
        print("[capture] closed.")

if __name__ == "__main__":
    main()
