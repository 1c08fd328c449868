"""Entry point for padbridge

Opens the pub/sub session, then the gamepad, and publishes every state change
until interrupted.
"""
import argparse
import json
import logging
import sys

from bridge import GamepadBridge
from bus.publisher import MessagePublisher
from bus.session import BusSession
from core.cancellation import CancellationToken
from core.config import BACKENDS, DISCONNECT_POLICIES, PUBLISH_ERROR_POLICIES, BridgeConfig
from core.errors import BridgeError, ConfigError, DeviceDisconnected, DeviceNotFound, PublishError, SessionUnreachable
from core.message import MESSAGE_SCHEMA
from core.shutdown import ShutdownCoordinator
from devices.hid_gamepad import HidGamepadReader
from devices.sdl_gamepad import SdlGamepadReader

LOG = logging.getLogger("padbridge")

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_USAGE = 2


def make_reader(device_config):
    if device_config.backend == "hid":
        return HidGamepadReader(device_config.axis_bytes, device_config.button_bytes)
    return SdlGamepadReader()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="padbridge: gamepad → pub/sub bus")
    parser.add_argument("-c", "--config", help="YAML configuration file")
    parser.add_argument("-t", "--topic", help="Topic to publish onto (default: remote-control/gamepad)")
    parser.add_argument("-e", "--connect", action="append", default=[], help="Endpoint to connect to (repeatable)")
    parser.add_argument("--listen", action="append", default=[], help="Endpoint to listen on (repeatable)")
    parser.add_argument("-s", "--sleep-ms", type=int, help="Device poll timeout in milliseconds (default: 50)")
    parser.add_argument("--heartbeat-ms", type=int,
                        help="Republish the idle state this often, 0 to disable (default: --sleep-ms)")
    parser.add_argument("--backend", choices=BACKENDS, help="Input backend (default: sdl)")
    parser.add_argument("--device-index", type=int, help="Use the n-th matching gamepad")
    parser.add_argument("--device-name", help="Use the first gamepad whose name contains this text")
    parser.add_argument("--on-disconnect", choices=DISCONNECT_POLICIES,
                        help="Exit or wait for the gamepad when it disconnects (default: exit)")
    parser.add_argument("--on-publish-error", choices=PUBLISH_ERROR_POLICIES,
                        help="Exit or drop the message when a publish fails (default: exit)")
    parser.add_argument("--list-devices", action="store_true", help="List gamepads and exit")
    parser.add_argument("--log-level", default="INFO",
                        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
                        help="Logging level (default: INFO)")
    parser.add_argument("--log-format", default="%(asctime)s %(levelname)s:%(name)s:%(message)s",
                        help="Logging format string")
    parser.add_argument("--debug-modules", nargs="*", default=[],
                        help="Modules to set to DEBUG level (e.g., 'sdl', 'hid', 'bus', 'bridge')")
    return parser


def resolve_config(args) -> BridgeConfig:
    cfg = BridgeConfig.load(args.config) if args.config else BridgeConfig()
    if args.topic:
        cfg.topic = args.topic
    if args.connect:
        cfg.session.connect = list(args.connect)
    if args.listen:
        cfg.session.listen = list(args.listen)
    if args.sleep_ms is not None:
        cfg.poll_timeout_ms = args.sleep_ms
    if args.heartbeat_ms is not None:
        cfg.heartbeat_ms = args.heartbeat_ms
    if args.backend:
        cfg.device.backend = args.backend
    if args.device_index is not None:
        cfg.device.index = args.device_index
    if args.device_name:
        cfg.device.name = args.device_name
    if args.on_disconnect:
        cfg.on_disconnect = args.on_disconnect
    if args.on_publish_error:
        cfg.on_publish_error = args.on_publish_error
    cfg.validate()
    return cfg


def setup_logging(level: str, fmt: str, debug_modules=()):
    logging.basicConfig(level=getattr(logging, level), format=fmt)
    for module in debug_modules:
        logging.getLogger(f"padbridge.{module}").setLevel(logging.DEBUG)


def run(cfg: BridgeConfig, token: CancellationToken, session_factory=BusSession, reader_factory=make_reader) -> int:
    """Run the bridge to completion and return the process exit code."""
    LOG.info("Publishing on %r", cfg.topic)
    LOG.info("Message schema:\n%s", json.dumps(MESSAGE_SCHEMA))
    try:
        with session_factory(cfg.session) as session:
            bridge = GamepadBridge(
                reader_factory(cfg.device),
                MessagePublisher(cfg.topic),
                cfg.device.selector(),
                token,
                poll_timeout=cfg.poll_timeout,
                on_disconnect=cfg.on_disconnect,
                reconnect_interval=cfg.reconnect_interval,
                on_publish_error=cfg.on_publish_error,
                heartbeat_interval=cfg.heartbeat_interval,
            )
            bridge.run(session)
    except SessionUnreachable as e:
        LOG.error("startup failed: %s", e)
        return EXIT_FAILURE
    except DeviceNotFound as e:
        LOG.error("startup failed: %s", e)
        return EXIT_FAILURE
    except DeviceDisconnected as e:
        LOG.error("stopping: %s", e)
        return EXIT_FAILURE
    except PublishError as e:
        LOG.error("stopping: %s", e)
        return EXIT_FAILURE
    except BridgeError:
        LOG.exception("bridge failed")
        return EXIT_FAILURE
    LOG.info("clean shutdown")
    return EXIT_OK


def list_devices(cfg: BridgeConfig) -> int:
    try:
        devices = make_reader(cfg.device).list_devices()
    except DeviceNotFound as e:
        LOG.error("%s", e)
        return EXIT_FAILURE
    if not devices:
        print("no gamepads found")
    for d in devices:
        print(f"{d.index}: {d.name} {d.path}".rstrip())
    return EXIT_OK


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging(args.log_level, args.log_format, args.debug_modules)

    try:
        cfg = resolve_config(args)
    except ConfigError as e:
        LOG.error("%s", e)
        return EXIT_USAGE

    if args.list_devices:
        return list_devices(cfg)

    LOG.info("Using config %s", args.config)
    token = CancellationToken()
    with ShutdownCoordinator(token):
        LOG.info("padbridge running — press Ctrl+C to stop")
        return run(cfg, token)


if __name__ == "__main__":
    sys.exit(main())
