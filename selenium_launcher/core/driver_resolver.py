"""Resolve the browser driver Selenium should be started with"""

import configparser
import platform
from pathlib import Path

from pydantic import BaseModel

from .config import INSTALL_ROOT
from .exceptions import DriverConfigError, NoDriverForBrowserError
from .models import Browser, ResolvedDriver
from ..utils.logger import get_logger

logger = get_logger(__name__)

BASE_CONFIG_FILE = "config.dist.ini"
OVERRIDE_CONFIG_FILE = "config.ini"

INSIDER_KEY = "windowsInsider"

DRIVER_KIND_KEYS = {
    Browser.CHROME: "webdriver.chrome.driver",
    Browser.FIREFOX: "webdriver.gecko.driver",
    Browser.EDGE: "webdriver.edge.driver",
    Browser.IE: "webdriver.ie.driver",
}


class DriverConfig(BaseModel):
    """Driver paths per browser section, keyed by platform name"""

    entries: dict[str, dict[str, str]]
    source: Path | None = None

    def path_for(self, section: str, key: str) -> str | None:
        return self.entries.get(section, {}).get(key)


def detect_platform() -> str:
    """Return the driver config platform key: windows, mac or linux"""
    system = platform.system().lower()
    if "windows" in system:
        return "windows"
    if "darwin" in system:
        return "mac"
    return "linux"


def _read_ini(path: Path) -> dict[str, dict[str, str]]:
    parser = configparser.ConfigParser(interpolation=None)
    # Keys like windowsInsider are case sensitive
    parser.optionxform = str
    try:
        with open(path, encoding="utf-8") as f:
            parser.read_file(f)
    except (OSError, configparser.Error) as e:
        raise DriverConfigError(path, str(e)) from e

    return {
        section: {key: value.strip().strip('"').strip("'") for key, value in parser[section].items()}
        for section in parser.sections()
    }


def load_driver_config(base_dir: str | Path | None = None) -> DriverConfig:
    """
    Load driver paths from config.dist.ini, or from config.ini when present.

    The override file replaces the defaults entirely; sections are not merged.
    """
    base_dir = Path(base_dir) if base_dir else INSTALL_ROOT
    override = base_dir / OVERRIDE_CONFIG_FILE
    base = base_dir / BASE_CONFIG_FILE

    if override.is_file():
        logger.debug(f"Using driver config override {override}")
        return DriverConfig(entries=_read_ini(override), source=override)

    if not base.is_file():
        raise DriverConfigError(base, "file not found")

    return DriverConfig(entries=_read_ini(base), source=base)


def resolve_driver(
    platform_name: str,
    browser: Browser | str,
    insider: bool,
    config: DriverConfig,
    base_dir: str | Path | None = None,
) -> ResolvedDriver:
    """
    Pick the driver system property and binary path for a browser.

    Args:
        platform_name: windows, mac or linux
        browser: Browser member or its name
        insider: Use the Edge insider channel driver
        config: Loaded driver configuration
        base_dir: Directory driver paths are relative to (default: install root)

    Returns:
        ResolvedDriver with an absolute path

    Raises:
        NoDriverForBrowserError: unknown browser or no entry for this platform
    """
    browser = Browser.parse(browser)
    kind_key = DRIVER_KIND_KEYS.get(browser)
    if kind_key is None:
        raise NoDriverForBrowserError(browser.value, platform_name)

    base_dir = Path(base_dir) if base_dir else INSTALL_ROOT

    if browser is Browser.EDGE and insider:
        relative = config.path_for(browser.value, INSIDER_KEY)
    else:
        relative = config.path_for(browser.value, platform_name)

    if not relative:
        logger.error(
            f"No driver for {browser.value} on {platform_name} "
            f"(insider={insider}) in {config.source}"
        )
        raise NoDriverForBrowserError(browser.value, platform_name)

    driver = ResolvedDriver(
        driver_kind_key=kind_key, path=(base_dir / relative).resolve()
    )
    logger.debug(f"Resolved {browser.value} driver: {driver.as_flag()}")
    return driver
