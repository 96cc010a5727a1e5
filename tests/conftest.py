import json
import socket
import threading
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer

import pytest

from selenium_launcher.core.config import settings

DRIVER_INI = """
[chrome]
windows = "drivers/chromedriver.exe"
mac = "drivers/chromedriver_mac"
linux = "drivers/chromedriver"

[firefox]
linux = drivers/geckodriver

[MicrosoftEdge]
windows = "drivers/MicrosoftWebDriver.exe"
linux = "drivers/msedgedriver_linux"
windowsInsider = "drivers/msedgedriver_insider.exe"

[internet explorer]
windows = "drivers/IEDriverServer.exe"
"""

READY_BODY = json.dumps({"value": {"ready": True, "message": "Selenium Grid ready."}})
NOT_READY_BODY = json.dumps({"value": {"ready": False}})


class StubSeleniumHandler(BaseHTTPRequestHandler):
    def do_GET(self):
        self.server.requests.append(self.path)
        if self.path == "/wd/hub/status":
            code, body = self.server.status_code, self.server.status_body
        elif self.path.startswith("/extra/LifecycleServlet"):
            code, body = 200, ""
        else:
            code, body = 404, ""

        data = body.encode()
        self.send_response(code)
        self.send_header("Content-Type", "application/json")
        self.send_header("Content-Length", str(len(data)))
        self.end_headers()
        self.wfile.write(data)

    def log_message(self, format, *args):
        pass


@pytest.fixture
def status_server():
    """A stub Selenium server answering the status and lifecycle endpoints"""
    server = ThreadingHTTPServer(("127.0.0.1", 0), StubSeleniumHandler)
    server.status_code = 200
    server.status_body = READY_BODY
    server.requests = []
    server.port = server.server_address[1]

    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()

    yield server

    server.shutdown()
    server.server_close()


@pytest.fixture
def free_port():
    """A port nothing listens on"""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(("127.0.0.1", 0))
        return s.getsockname()[1]


@pytest.fixture
def driver_dir(tmp_path):
    """Install root with a config.dist.ini"""
    (tmp_path / "config.dist.ini").write_text(DRIVER_INI)
    return tmp_path


@pytest.fixture
def no_sleep(mocker):
    """Replace the controller's clock; sleeping advances it instantly"""
    now = [0.0]

    def advance(seconds):
        now[0] += seconds

    mocker.patch(
        "selenium_launcher.workers.server_launcher.monotonic", side_effect=lambda: now[0]
    )
    return mocker.patch(
        "selenium_launcher.workers.server_launcher.sleep", side_effect=advance
    )


@pytest.fixture
def hung_server():
    """A port that accepts connections but never answers"""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as listener:
        listener.bind(("127.0.0.1", 0))
        listener.listen(16)
        yield listener.getsockname()[1]


@pytest.fixture
def server_log(tmp_path, mocker):
    log_path = tmp_path / "logs" / "selenium.log"
    mocker.patch.object(settings, "server_log", str(log_path))
    return log_path
