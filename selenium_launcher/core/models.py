from enum import Enum
from pathlib import Path
from typing import Any

from pydantic import BaseModel, model_validator

from .config import settings
from .exceptions import MissingBrowserError, NoDriverForBrowserError

LIFECYCLE_SERVLET = "org.openqa.grid.web.servlet.LifecycleServlet"


class Browser(str, Enum):
    CHROME = "chrome"
    FIREFOX = "firefox"
    EDGE = "MicrosoftEdge"
    IE = "internet explorer"

    @classmethod
    def parse(cls, value: "Browser | str") -> "Browser":
        """Accept enum members, their values and the short edge/ie aliases"""
        if isinstance(value, cls):
            return value
        name = str(value).strip().lower()
        for browser in cls:
            if browser.value.lower() == name:
                return browser
        aliases = {"edge": cls.EDGE, "ie": cls.IE}
        if name in aliases:
            return aliases[name]
        raise NoDriverForBrowserError(str(value))


class ControllerState(str, Enum):
    STOPPED = "stopped"
    STARTING = "starting"
    READY = "ready"
    STOPPING = "stopping"


class LaunchOptions(BaseModel):
    """What to launch: the browser to drive and the server command-line params.

    Params are given as ``selenium_params`` (a mapping, or a list of bare
    flags) and stored as an immutable tuple of pairs; the ``selenium_params``
    property hands out a fresh dict. A ``None`` value is a bare flag
    (``-debug``). With ``register_shutdown`` the server runs as a node with the
    lifecycle servlet so it can later be stopped over HTTP.
    """

    browser: Browser
    insider: bool = False
    params: tuple[tuple[str, str | None], ...] = ()
    register_shutdown: bool = True

    class Config:
        frozen = True

    @model_validator(mode="before")
    @classmethod
    def _prepare(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data

        browser = data.get("browser")
        if browser is None or (isinstance(browser, str) and not browser.strip()):
            raise MissingBrowserError()

        if "selenium_params" in data:
            raw_params = data["selenium_params"] or {}
        else:
            raw_params = dict(data.get("params") or ())
        if isinstance(raw_params, (list, tuple)):
            raw_params = {str(flag): None for flag in raw_params}
        elif not isinstance(raw_params, dict):
            raw_params = {}

        params = {
            str(key): None if value is None else str(value)
            for key, value in raw_params.items()
        }

        if data.get("register_shutdown", True):
            params["role"] = "node"
            params["servlet"] = LIFECYCLE_SERVLET
            params["registerCycle"] = "0"
            params.setdefault("port", str(settings.selenium_port))

        data = {k: v for k, v in data.items() if k != "selenium_params"}
        return {**data, "browser": Browser.parse(browser), "params": tuple(params.items())}

    @property
    def selenium_params(self) -> dict[str, str | None]:
        return dict(self.params)

    @property
    def port(self) -> int:
        return int(self.selenium_params.get("port") or settings.selenium_port)


class ResolvedDriver(BaseModel):
    driver_kind_key: str
    path: Path

    class Config:
        frozen = True

    def as_flag(self) -> str:
        return f"-D{self.driver_kind_key}={self.path}"


class ServerStatus(BaseModel):
    host: str
    port: int
    state: ControllerState
    listening: bool
    ready: bool
    pid: int | None = None
