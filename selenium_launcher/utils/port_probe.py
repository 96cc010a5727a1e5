"""Local TCP port checks used to sense whether the Selenium server is up"""

import socket

import psutil

from ..core.config import settings
from ..utils.logger import get_logger

logger = get_logger(__name__)


def is_port_listening(host: str, port: int, timeout: float | None = None) -> bool:
    """
    Return True if something accepts TCP connections on host:port.

    A refused connection is the normal "not running" answer, so every socket
    error (refused, timeout, unresolvable host) reports False.
    """
    timeout = settings.probe_timeout if timeout is None else timeout
    try:
        with socket.create_connection((host, port), timeout=timeout):
            return True
    except OSError:
        return False


def find_pid_by_port(port: int) -> int | None:
    """Lookup PID of the process listening on port using psutil TCP connections"""
    try:
        for c in psutil.net_connections(kind="inet"):
            if (
                c.laddr
                and c.laddr.port == port
                and c.status == psutil.CONN_LISTEN
                and c.pid
            ):
                return c.pid
    except (psutil.AccessDenied, PermissionError):
        logger.debug(f"Access denied reading TCP table for port {port}")
    except Exception as e:
        logger.debug(f"psutil net_connections failed: {e}")
    return None
