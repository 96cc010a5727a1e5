import os
from pathlib import Path

from dotenv import load_dotenv

# Package directory; drivers, bin/ and the driver config files live here
INSTALL_ROOT = Path(__file__).resolve().parent.parent

# Load .env from project root (parent of the package directory)
env_path = INSTALL_ROOT.parent / ".env"
load_dotenv(dotenv_path=env_path, override=True)


class Settings:
    selenium_host: str = os.getenv("SELENIUM_HOST", "localhost")
    selenium_port: int = int(os.getenv("SELENIUM_PORT", "4444"))

    start_timeout: int = int(os.getenv("START_TIMEOUT", "10"))
    stop_timeout: int = int(os.getenv("STOP_TIMEOUT", "10"))
    poll_interval: float = float(os.getenv("POLL_INTERVAL", "1.0"))
    probe_timeout: float = float(os.getenv("PROBE_TIMEOUT", "1.0"))
    status_timeout: int = int(os.getenv("STATUS_TIMEOUT", "2"))

    server_binary: str = os.getenv(
        "SERVER_BINARY", str(INSTALL_ROOT / "bin" / "selenium-server-standalone")
    )
    server_jar: str = os.getenv(
        "SERVER_JAR", str(INSTALL_ROOT / "bin" / "selenium-server-standalone.jar")
    )
    # Relative paths resolve against the caller's working directory
    server_log: str = os.getenv("SERVER_LOG", "selenium.log")

    driver_config_dir: str = os.getenv("DRIVER_CONFIG_DIR", str(INSTALL_ROOT))

    # When false, a server that keeps listening after shutdown still counts as stopped
    strict_shutdown: bool = os.getenv("STRICT_SHUTDOWN", "false").lower() == "true"

    log_level: str = os.getenv("LOG_LEVEL", "INFO")
    log_file: str | None = os.getenv("LOG_FILE") or None


settings = Settings()
