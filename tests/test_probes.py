import asyncio
import os
import socket

import pytest

from selenium_launcher.utils import http_client
from selenium_launcher.utils.port_probe import find_pid_by_port, is_port_listening
from selenium_launcher.utils.status_client import (
    fetch_readiness,
    parse_readiness,
    request_shutdown,
)

from conftest import NOT_READY_BODY


def test_port_not_listening(free_port):
    assert is_port_listening("127.0.0.1", free_port) is False


def test_port_listening_after_bind():
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as listener:
        listener.bind(("127.0.0.1", 0))
        listener.listen()
        port = listener.getsockname()[1]

        assert is_port_listening("127.0.0.1", port) is True

    assert is_port_listening("127.0.0.1", port) is False


def test_socket_errors_are_not_listening(mocker):
    mocker.patch(
        "selenium_launcher.utils.port_probe.socket.create_connection",
        side_effect=socket.timeout("timed out"),
    )

    assert is_port_listening("127.0.0.1", 4444) is False


def test_find_pid_by_port(mocker, free_port):
    conn = mocker.Mock(
        laddr=mocker.Mock(port=free_port), status="LISTEN", pid=os.getpid()
    )
    mocker.patch(
        "selenium_launcher.utils.port_probe.psutil.net_connections", return_value=[conn]
    )
    mocker.patch("selenium_launcher.utils.port_probe.psutil.CONN_LISTEN", "LISTEN")

    assert find_pid_by_port(free_port) == os.getpid()
    assert find_pid_by_port(free_port + 1) is None


def test_find_pid_by_port_access_denied(mocker):
    import psutil

    mocker.patch(
        "selenium_launcher.utils.port_probe.psutil.net_connections",
        side_effect=psutil.AccessDenied(),
    )

    assert find_pid_by_port(4444) is None


@pytest.mark.parametrize(
    "body, expected",
    [
        ('{"value": {"ready": true}}', True),
        ('{"value": {"ready": false}}', False),
        ('{"value": {}}', False),
        ('{"value": {"ready": "yes"}}', False),
        ('{"value": null}', False),
        ('{"status": 0}', False),
        ("[1, 2]", False),
        ("<html>", False),
        ("", False),
    ],
)
def test_parse_readiness(body, expected):
    assert parse_readiness(body) is expected


def test_fetch_readiness_ready(status_server):
    assert fetch_readiness("127.0.0.1", status_server.port) is True
    assert status_server.requests == ["/wd/hub/status"]


def test_fetch_readiness_not_ready(status_server):
    status_server.status_body = NOT_READY_BODY

    assert fetch_readiness("127.0.0.1", status_server.port) is False


def test_fetch_readiness_server_error(status_server):
    status_server.status_code = 500

    assert fetch_readiness("127.0.0.1", status_server.port) is False


def test_fetch_readiness_malformed_json(status_server):
    status_server.status_body = "not json"

    assert fetch_readiness("127.0.0.1", status_server.port) is False


def test_fetch_readiness_nothing_listening(free_port):
    assert fetch_readiness("127.0.0.1", free_port, timeout=1) is False


def test_request_shutdown_hits_lifecycle_servlet(status_server):
    request_shutdown("127.0.0.1", status_server.port)

    assert status_server.requests == ["/extra/LifecycleServlet?action=shutdown"]


def test_request_shutdown_ignores_connection_errors(free_port):
    request_shutdown("127.0.0.1", free_port, timeout=1)


def test_get_rejects_empty_url():
    assert http_client.get("") == (False, None, "Empty URL")


def test_fetch_readiness_inside_running_event_loop(status_server, free_port):
    async def caller():
        return (
            fetch_readiness("127.0.0.1", status_server.port),
            fetch_readiness("127.0.0.1", free_port, timeout=1),
        )

    assert asyncio.run(caller()) == (True, False)


def test_request_shutdown_inside_running_event_loop(status_server):
    async def caller():
        request_shutdown("127.0.0.1", status_server.port)

    asyncio.run(caller())

    assert status_server.requests == ["/extra/LifecycleServlet?action=shutdown"]
