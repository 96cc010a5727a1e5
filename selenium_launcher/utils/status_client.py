"""Readiness probe and shutdown request against the Selenium server's HTTP endpoints"""

import json

from ..core.config import settings
from ..utils import http_client
from ..utils.logger import get_logger

logger = get_logger(__name__)

STATUS_URL_FORMAT = "http://{host}:{port}/wd/hub/status"
SHUTDOWN_URL_FORMAT = "http://{host}:{port}/extra/LifecycleServlet?action=shutdown"


def parse_readiness(body: str) -> bool:
    """Extract value.ready from a status response body; anything unexpected is not ready"""
    try:
        payload = json.loads(body)
    except (TypeError, ValueError):
        return False

    if not isinstance(payload, dict):
        return False
    value = payload.get("value")
    if not isinstance(value, dict):
        return False
    return value.get("ready") is True


def fetch_readiness(host: str, port: int, timeout: float | None = None) -> bool:
    """
    Ask the server whether it accepts commands.

    Never raises: an unreachable server and a server that is not ready yet look
    the same to the caller.
    """
    timeout = settings.status_timeout if timeout is None else timeout
    url = STATUS_URL_FORMAT.format(host=host, port=port)
    success, status_code, body = http_client.get(url, timeout=timeout)

    if not success or status_code != 200:
        return False

    ready = parse_readiness(body)
    if not ready:
        logger.debug(f"Server on {host}:{port} answered but is not ready: {body[:200]}")
    return ready


def request_shutdown(host: str, port: int, timeout: float | None = None) -> None:
    """Fire the lifecycle servlet shutdown; the response is ignored"""
    timeout = settings.status_timeout if timeout is None else timeout
    url = SHUTDOWN_URL_FORMAT.format(host=host, port=port)
    logger.info(f"Requesting Selenium shutdown | URL: {url}")
    http_client.get(url, timeout=timeout)
