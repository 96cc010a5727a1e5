import subprocess
import threading
from contextlib import contextmanager
from pathlib import Path
from time import monotonic, sleep

from ..core.config import settings
from ..core.exceptions import (
    ServerLaunchError,
    ShutdownTimeoutError,
    StartTimeoutError,
)
from ..core.models import ControllerState, LaunchOptions, ResolvedDriver, ServerStatus
from ..core.driver_resolver import (
    DriverConfig,
    detect_platform,
    load_driver_config,
    resolve_driver,
)
from ..utils.logger import get_logger
from ..utils.port_probe import find_pid_by_port, is_port_listening
from ..utils.status_client import fetch_readiness, request_shutdown

logger = get_logger(__name__)

# Floor for a single probe made right at the deadline
MIN_PROBE_TIMEOUT = 0.1

# Single-flight guards for ensure_running, one per port. Only covers callers in
# this process; two launcher processes can still race on the same port.
_port_guards: dict[int, threading.Lock] = {}
_port_guards_lock = threading.Lock()


@contextmanager
def port_guard(port: int):
    with _port_guards_lock:
        lock = _port_guards.setdefault(port, threading.Lock())
    with lock:
        yield


def render_params(params: dict[str, str | None]) -> list[str]:
    """Render server params as argv: ``-key value`` or a bare ``-key``"""
    args: list[str] = []
    for key, value in params.items():
        args.append(f"-{key}")
        if value is not None:
            args.append(value)
    return args


class SeleniumServerController:
    """Starts, watches and stops one Selenium server on one port.

    Liveness is sensed only through the TCP port and the status endpoint; the
    spawned process handle is never polled, so a server started by someone else
    on the same port is handled the same way.
    """

    def __init__(
        self,
        options: LaunchOptions,
        host: str | None = None,
        driver_config: DriverConfig | None = None,
        base_dir: str | Path | None = None,
        platform_name: str | None = None,
        strict_shutdown: bool | None = None,
    ):
        self.options = options
        self.host = host or settings.selenium_host
        self.port = options.port
        self.base_dir = Path(base_dir or settings.driver_config_dir)
        self.platform_name = platform_name or detect_platform()
        self.strict_shutdown = (
            settings.strict_shutdown if strict_shutdown is None else strict_shutdown
        )

        self._driver_config = driver_config
        self._state = ControllerState.STOPPED
        self._process: subprocess.Popen | None = None

    @property
    def state(self) -> ControllerState:
        return self._state

    def _set_state(self, state: ControllerState):
        if state is not self._state:
            logger.debug(
                f"Selenium {self.host}:{self.port} state {self._state.value} -> {state.value}"
            )
        self._state = state

    def is_listening(self, timeout: float | None = None) -> bool:
        return is_port_listening(self.host, self.port, timeout)

    def is_ready(self, timeout: float | None = None) -> bool:
        return fetch_readiness(self.host, self.port, timeout)

    def resolve_driver(self) -> ResolvedDriver:
        if self._driver_config is None:
            self._driver_config = load_driver_config(self.base_dir)
        return resolve_driver(
            self.platform_name,
            self.options.browser,
            self.options.insider,
            self._driver_config,
            self.base_dir,
        )

    def build_command(self, driver: ResolvedDriver) -> list[str]:
        """Build the server argv for this platform"""
        params = render_params(self.options.selenium_params)
        if self.platform_name == "windows":
            # JVM system properties must precede -jar
            return ["java.exe", driver.as_flag(), "-jar", settings.server_jar, *params]
        return [settings.server_binary, driver.as_flag(), *params]

    def _spawn(self, command: list[str]) -> subprocess.Popen:
        logger.info(f"Executing: {' '.join(command)}")
        try:
            if self.platform_name == "windows":
                return subprocess.Popen(
                    command, creationflags=subprocess.CREATE_NEW_CONSOLE
                )

            log_path = Path(settings.server_log)
            log_path.parent.mkdir(parents=True, exist_ok=True)
            with open(log_path, "ab") as log_file:
                return subprocess.Popen(
                    command,
                    stdin=subprocess.DEVNULL,
                    stdout=log_file,
                    stderr=subprocess.STDOUT,
                    start_new_session=True,
                )
        except OSError as e:
            raise ServerLaunchError(command, str(e)) from e

    def start(self, timeout: float | None = None):
        """
        Launch the server and block until it reports ready.

        Raises:
            NoDriverForBrowserError: no driver configured; nothing is spawned
            ServerLaunchError: the server executable could not be started
            StartTimeoutError: the server did not become ready in time
        """
        driver = self.resolve_driver()
        command = self.build_command(driver)

        self._set_state(ControllerState.STARTING)
        try:
            self._process = self._spawn(command)
        except ServerLaunchError:
            self._set_state(ControllerState.STOPPED)
            raise

        logger.info(
            f"Selenium server spawned | PID: {self._process.pid} | "
            f"Browser: {self.options.browser.value} | Port: {self.port}"
        )
        self.wait_for_ready(timeout)

    def ensure_running(self, timeout: float | None = None) -> bool:
        """
        Start the server unless something already listens on the port.

        Returns:
            Current readiness. An already listening port is only probed, never
            relaunched; a start timeout is logged and reported as not ready.
        """
        with port_guard(self.port):
            if self.is_listening():
                ready = self.is_ready()
                if ready:
                    self._set_state(ControllerState.READY)
                logger.info(
                    f"Port {self.port} already listening, skipping launch | Ready: {ready}"
                )
                return ready

            try:
                self.start(timeout)
            except StartTimeoutError as e:
                logger.warning(f"{e}; check {settings.server_log}")

            return self.is_ready()

    def _poll_until(self, check, timeout: float, probe_timeout: float) -> bool:
        """
        Run check once per poll interval until it passes or timeout elapses.

        Each check gets at most the time left before the deadline, so a server
        that accepts connections but never answers cannot stretch the wait.
        """
        deadline = monotonic() + timeout
        while True:
            remaining = deadline - monotonic()
            if check(min(probe_timeout, max(remaining, MIN_PROBE_TIMEOUT))):
                return True
            remaining = deadline - monotonic()
            if remaining <= 0:
                return False
            sleep(min(settings.poll_interval, remaining))

    def wait_for_ready(self, timeout: float | None = None):
        """Poll the status endpoint once per interval until ready or timeout"""
        timeout = settings.start_timeout if timeout is None else timeout

        if self._poll_until(self.is_ready, timeout, settings.status_timeout):
            self._set_state(ControllerState.READY)
            logger.info(f"Selenium ready on {self.host}:{self.port}")
            return

        self._set_state(ControllerState.STOPPED)
        logger.error(f"Selenium not ready on {self.host}:{self.port} after {timeout}s")
        raise StartTimeoutError(self.host, self.port, timeout)

    def wait_for_shutdown(self, timeout: float | None = None):
        """Poll the port once per interval until it stops listening or timeout"""
        timeout = settings.stop_timeout if timeout is None else timeout

        def stopped(probe_timeout: float) -> bool:
            return not self.is_listening(probe_timeout)

        if self._poll_until(stopped, timeout, settings.probe_timeout):
            logger.info(f"Selenium on {self.host}:{self.port} stopped listening")
            return

        raise ShutdownTimeoutError(self.host, self.port, timeout)

    def stop(self, timeout: float | None = None, strict: bool | None = None) -> bool:
        """
        Shut the server down through the lifecycle servlet.

        A silent port counts as stopped without any HTTP call. A listening
        server that is not ready is left alone. If the port keeps listening
        past the timeout, strict mode raises ShutdownTimeoutError, otherwise a
        warning is logged and success is still reported.
        """
        strict = self.strict_shutdown if strict is None else strict

        if not self.is_listening():
            self._set_state(ControllerState.STOPPED)
            logger.info(f"Nothing listening on port {self.port}, already stopped")
            return True

        if not self.is_ready():
            logger.info(
                f"Selenium on port {self.port} is not ready, not requesting shutdown"
            )
            return True

        self._set_state(ControllerState.STOPPING)
        request_shutdown(self.host, self.port)

        try:
            self.wait_for_shutdown(timeout)
        except ShutdownTimeoutError as e:
            self._set_state(ControllerState.READY)
            if strict:
                raise
            logger.warning(f"{e}; reporting stop as successful")
            return True

        self._set_state(ControllerState.STOPPED)
        self._process = None
        return True

    def status(self) -> ServerStatus:
        listening = self.is_listening()
        ready = self.is_ready() if listening else False
        return ServerStatus(
            host=self.host,
            port=self.port,
            state=self._state,
            listening=listening,
            ready=ready,
            pid=find_pid_by_port(self.port) if listening else None,
        )
