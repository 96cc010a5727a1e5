import argparse
import json
import sys

from selenium_launcher.core.config import settings
from selenium_launcher.core.exceptions import (
    DriverConfigError,
    MissingBrowserError,
    NoDriverForBrowserError,
    ServerLaunchError,
    ShutdownTimeoutError,
    StartTimeoutError,
)
from selenium_launcher.core.models import LaunchOptions
from selenium_launcher.utils.logger import get_logger, setup_root_logger
from selenium_launcher.workers.server_launcher import SeleniumServerController

logger = get_logger(__name__)

EXIT_OK = 0
EXIT_MISCONFIGURED = 1
EXIT_START_FAILED = 2
EXIT_SHUTDOWN_TIMEOUT = 3


def parse_param(raw: str) -> tuple[str, str | None]:
    """KEY=VALUE becomes (KEY, VALUE); a bare KEY is a value-less flag"""
    key, sep, value = raw.lstrip("-").partition("=")
    return key, value if sep else None


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="selenium-launcher",
        description="Start, stop and inspect a local Selenium standalone server.",
    )
    parser.add_argument(
        "command", choices=["start", "ensure", "stop", "status"], help="Action to run."
    )
    parser.add_argument(
        "-b", "--browser", help="chrome, firefox, MicrosoftEdge (edge) or 'internet explorer' (ie)."
    )
    parser.add_argument(
        "--insider", action="store_true", help="Use the Edge insider channel driver."
    )
    parser.add_argument("--host", default=None, help="Server host for probes.")
    parser.add_argument("--port", type=int, default=None, help="Server port.")
    parser.add_argument(
        "--param",
        action="append",
        default=[],
        metavar="KEY[=VALUE]",
        help="Extra server parameter, repeatable.",
    )
    parser.add_argument(
        "--timeout", type=int, default=None, help="Seconds to wait for start or stop."
    )
    parser.add_argument(
        "--strict",
        action="store_true",
        help="Fail stop when the server keeps listening after shutdown.",
    )
    parser.add_argument(
        "--no-register-shutdown",
        action="store_true",
        help="Do not run the server as a node with the lifecycle servlet.",
    )
    return parser


def build_controller(args: argparse.Namespace) -> SeleniumServerController:
    params = dict(parse_param(raw) for raw in args.param)
    if args.port is not None:
        params["port"] = str(args.port)

    # stop and status only need the port; any browser will do
    browser = args.browser
    if args.command in ("stop", "status") and not browser:
        browser = "chrome"

    options = LaunchOptions(
        browser=browser,
        insider=args.insider,
        selenium_params=params,
        register_shutdown=not args.no_register_shutdown,
    )
    return SeleniumServerController(options, host=args.host)


def run(args: argparse.Namespace) -> int:
    try:
        controller = build_controller(args)

        if args.command == "start":
            controller.start(args.timeout)
        elif args.command == "ensure":
            if not controller.ensure_running(args.timeout):
                return EXIT_START_FAILED
        elif args.command == "stop":
            controller.stop(args.timeout, strict=args.strict or None)
        else:
            print(json.dumps(controller.status().model_dump(mode="json"), indent=2))

    except (MissingBrowserError, NoDriverForBrowserError, DriverConfigError) as e:
        print(str(e), file=sys.stderr)
        return EXIT_MISCONFIGURED
    except (StartTimeoutError, ServerLaunchError) as e:
        logger.error(f"Selenium start failed: {e}")
        return EXIT_START_FAILED
    except ShutdownTimeoutError as e:
        logger.error(f"Selenium stop failed: {e}")
        return EXIT_SHUTDOWN_TIMEOUT

    return EXIT_OK


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    setup_root_logger(level=settings.log_level, log_file=settings.log_file)
    return run(args)


if __name__ == "__main__":
    try:
        sys.exit(main())
    except KeyboardInterrupt:
        logger.info("Application interrupted")
        sys.exit(0)
