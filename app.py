"""Entry point for padbridge

Opens the configured query backend, starts a sampler for every connected
gamepad and logs state changes and keystrokes until interrupted.
"""
import argparse
import logging
import threading

from config import BACKENDS, load_profile
from core.errors import UnknownBatteryLevel
from core.events import EventDispatcher, EventKind
from devices.gamepad import get_connected_devices

LOG = logging.getLogger("padbridge")


def create_query(profile):
    if profile.backend == "pygame":
        from devices.pygame_pad import PygameQuery
        return PygameQuery(profile.pygame_layout)
    from devices.xinput import XInputQuery
    return XInputQuery()


def main(argv=None):
    parser = argparse.ArgumentParser(description="padbridge: gamepad state and keystroke monitor")
    parser.add_argument("--profile", help="YAML profile (defaults are used when omitted)")
    parser.add_argument("--backend", choices=BACKENDS, help="Override the profile's query backend")
    parser.add_argument("--log-level", default="INFO",
                        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
                        help="Logging level (default: INFO)")
    parser.add_argument("--log-format", default="%(levelname)s:%(name)s:%(message)s",
                        help="Logging format string (default: %(levelname)s:%(name)s:%(message)s)")
    parser.add_argument("--debug-modules", nargs="*", default=[],
                        help="Modules to set to DEBUG level (e.g., 'sampler', 'events', 'xinput', 'pygame')")
    args = parser.parse_args(argv)

    logging.basicConfig(level=getattr(logging, args.log_level), format=args.log_format)
    for module in args.debug_modules:
        logging.getLogger(f"padbridge.{module}").setLevel(logging.DEBUG)

    profile = load_profile(args.profile)
    if args.backend:
        profile.backend = args.backend
    query = create_query(profile)

    dispatcher = EventDispatcher()
    dispatcher.subscribe(EventKind.STATE_CHANGED,
                         lambda state: LOG.info("pad %d: %s", state.index, state.describe()))
    dispatcher.subscribe(EventKind.KEY_DOWN,
                         lambda stroke: LOG.info("pad %d: %s down", stroke.index, getattr(stroke.key, "name", stroke.key)))
    dispatcher.subscribe(EventKind.KEY_UP,
                         lambda stroke: LOG.info("pad %d: %s up", stroke.index, getattr(stroke.key, "name", stroke.key)))

    pads = get_connected_devices(query, profile.max_devices, dispatcher=dispatcher,
                                 filters=profile.filters, poll_interval=profile.poll_interval)
    if not pads:
        LOG.warning("no gamepads connected")
        return 1

    for pad in pads:
        try:
            info = pad.battery()
        except UnknownBatteryLevel as e:
            LOG.warning("pad %d battery: %s", pad.index, e)
            continue
        LOG.info("pad %d battery: %s %.0f%%", pad.index, info.battery_type.name, info.charge * 100)

    stop_event = threading.Event()
    try:
        LOG.info("padbridge running, press Ctrl+C to stop")
        while not stop_event.is_set():
            stop_event.wait(0.5)
    except KeyboardInterrupt:
        LOG.info("shutdown requested")
    finally:
        for pad in pads:
            pad.stop()
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
