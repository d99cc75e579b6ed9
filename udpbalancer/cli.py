"""Command line entry point.

Usage:
    udp-balancer [CONFIG] [--log-level LEVEL] [--log-file PATH] [--json-logs]
                 [--workers N] [--check] [--report SAMPLES [--plot PNG]]

Without options the relay loads ``/etc/udp-balancer.conf``, binds the listen
address and relays until receiving fails, then exits with status 1.
"""

from __future__ import annotations

import argparse
import logging
import queue
import sys
import threading
from collections.abc import Sequence

from udpbalancer import __version__
from udpbalancer.config import DEFAULT_CONFIG_PATH, RelayConfig, load_config
from udpbalancer.errors import ReceiveError, UDPBalancerError
from udpbalancer.logging_config import (
    configure_from_env,
    enable_console_logging,
    enable_file_logging,
    enable_json_logging,
)
from udpbalancer.relay import UDPRelay
from udpbalancer.selector import BackendSelector, RoutingCounter
from udpbalancer.sockets import open_listener

logger = logging.getLogger(__name__)

EXIT_FAILURE = 1
EXIT_INTERRUPTED = 130


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="udp-balancer",
        description="Round robin UDP relay with GELF chunk affinity.",
    )
    parser.add_argument(
        "config",
        nargs="?",
        default=str(DEFAULT_CONFIG_PATH),
        help=f"configuration file (default: {DEFAULT_CONFIG_PATH})",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="log level (default: INFO)",
    )
    parser.add_argument("--log-file", help="write logs to a rotating file instead of stderr")
    parser.add_argument("--json-logs", action="store_true", help="emit logs as JSON lines")
    parser.add_argument(
        "--workers",
        type=int,
        default=1,
        help="receiver threads sharing the listen address via SO_REUSEPORT (default: 1)",
    )
    parser.add_argument("--check", action="store_true", help="validate the configuration and exit")
    parser.add_argument(
        "--report",
        metavar="SAMPLES",
        help="route hex-encoded sample payloads (one per line) and print the per-upstream distribution",
    )
    parser.add_argument("--plot", metavar="PNG", help="with --report, also save a bar chart")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def _setup_logging(args: argparse.Namespace) -> None:
    if args.log_file:
        enable_file_logging(args.log_file, level=args.log_level, json_format=args.json_logs)
    elif args.json_logs:
        enable_json_logging(level=args.log_level)
    elif not configure_from_env():
        enable_console_logging(level=args.log_level)


def _describe(config: RelayConfig) -> str:
    lines = [f"listen {config.listen}"]
    lines.extend(f"upstream {upstream}" for upstream in config.upstreams)
    lines.append(f"handle-gelf {'on' if config.handle_gelf else 'off'}")
    if config.send_buffer is not None:
        lines.append(f"send-buffer {config.send_buffer}")
    if config.recv_buffer is not None:
        lines.append(f"recv-buffer {config.recv_buffer}")
    return "\n".join(lines)


def _report(config: RelayConfig, samples_path: str, plot_path: str | None) -> int:
    # pandas is only needed for reports, not for relaying
    from udpbalancer.analysis import backend_distribution, load_samples, plot_distribution, route_payloads

    frame = route_payloads(load_samples(samples_path), config)
    distribution = backend_distribution(frame, config)
    dropped = int((frame["route"] == "dropped").sum())

    print(distribution.to_string())
    print(f"\n{len(frame)} payloads, {dropped} dropped as malformed")

    if plot_path:
        plot_distribution(distribution, plot_path)
    return 0


def _run_workers(config: RelayConfig, workers: int) -> int:
    """Start ``workers`` relays sharing one routing counter.

    Returns once any relay stops. Worker threads are daemons, so the
    remaining ones end with the process.
    """
    counter = RoutingCounter()
    sockets = []
    try:
        for _ in range(workers):
            sockets.append(open_listener(config, reuse_port=workers > 1))
    except UDPBalancerError:
        for sock in sockets:
            sock.close()
        raise

    failures: queue.Queue[BaseException] = queue.Queue()

    def _serve(relay: UDPRelay) -> None:
        try:
            relay.run()
        except BaseException as exc:
            failures.put(exc)

    for index, sock in enumerate(sockets):
        relay = UDPRelay(sock, BackendSelector(config, counter), name=f"relay-{index}")
        threading.Thread(target=_serve, args=(relay,), name=relay.name, daemon=True).start()

    try:
        failure = failures.get()
    finally:
        for sock in sockets:
            sock.close()

    if isinstance(failure, ReceiveError):
        logger.error("Relay stopped: %s", failure)
        return EXIT_FAILURE
    raise failure


def main(argv: Sequence[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.workers < 1:
        parser.error("--workers must be at least 1")
    if args.plot and not args.report:
        parser.error("--plot requires --report")

    _setup_logging(args)

    try:
        config = load_config(args.config)

        if args.check:
            print(_describe(config))
            return 0
        if args.report:
            return _report(config, args.report, args.plot)

        return _run_workers(config, args.workers)
    except UDPBalancerError as exc:
        logger.error("%s", exc)
        return EXIT_FAILURE
    except (OSError, ValueError) as exc:
        logger.error("%s", exc)
        return EXIT_FAILURE
    except KeyboardInterrupt:
        logger.info("Interrupted")
        return EXIT_INTERRUPTED


if __name__ == "__main__":
    sys.exit(main())
