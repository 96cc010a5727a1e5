"""Errors raised while resolving, launching and stopping the Selenium server"""


class LauncherError(RuntimeError):
    """Base class for all launcher errors"""


class MissingBrowserError(LauncherError):
    def __init__(self):
        super().__init__("You need to specify a browser")


class NoDriverForBrowserError(LauncherError):
    def __init__(self, browser: str, platform: str | None = None):
        self.browser = browser
        self.platform = platform
        where = f" on {platform}" if platform else ""
        super().__init__(
            f"No driver for browser '{browser}'{where}. "
            "Check your browser configuration in config.ini"
        )


class DriverConfigError(LauncherError):
    def __init__(self, path, reason: str):
        self.path = path
        super().__init__(f"Driver configuration {path} is unusable: {reason}")


class ServerLaunchError(LauncherError):
    def __init__(self, command: list[str], reason: str):
        self.command = command
        super().__init__(f"Could not launch Selenium server ({command[0]}): {reason}")


class StartTimeoutError(LauncherError):
    def __init__(self, host: str, port: int, timeout: float):
        self.host = host
        self.port = port
        self.timeout = timeout
        super().__init__(
            f"Selenium server on {host}:{port} not ready after {timeout}s"
        )


class ShutdownTimeoutError(LauncherError):
    def __init__(self, host: str, port: int, timeout: float):
        self.host = host
        self.port = port
        self.timeout = timeout
        super().__init__(
            f"Selenium server on {host}:{port} still listening {timeout}s after shutdown"
        )
