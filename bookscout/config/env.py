"""Bootstrap environment variables. No local dependencies - import first."""

import json
import os
from pathlib import Path


def string_to_bool(s: str) -> bool:
    """Convert string to boolean."""
    return s.lower() in ["true", "yes", "1", "y"]


def _read_debug_from_config() -> bool:
    """Read DEBUG from env var or config file (import-time safe)."""
    env_debug = os.environ.get("DEBUG")
    if env_debug is not None:
        return string_to_bool(env_debug)

    config_file = Path(os.getenv("CONFIG_DIR", "/config")) / "bookscout.json"

    if config_file.exists():
        try:
            with open(config_file, "r") as f:
                config = json.load(f)
                if "DEBUG" in config:
                    return bool(config["DEBUG"])
        except (json.JSONDecodeError, OSError):
            pass

    return False


# =============================================================================
# Bootstrap paths
# =============================================================================

CONFIG_DIR = Path(os.getenv("CONFIG_DIR", "/config"))
DB_PATH = Path(os.getenv("DB_PATH", str(CONFIG_DIR / "bookscout.db")))
LOG_ROOT = Path(os.getenv("LOG_ROOT", "/var/log/"))
LOG_DIR = LOG_ROOT / "bookscout"
LOG_FILE = LOG_DIR / "bookscout.log"

# Project root is one level up from this package
PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent
FRONTEND_DIST = Path(os.getenv("FRONTEND_DIST", str(PROJECT_ROOT / "frontend-dist")))


# =============================================================================
# Logger configuration
# =============================================================================

DEBUG = _read_debug_from_config()
LOG_LEVEL = "DEBUG" if DEBUG else "INFO"
ENABLE_LOGGING = string_to_bool(os.getenv("ENABLE_LOGGING", "true"))


# =============================================================================
# Flask configuration
# =============================================================================

FLASK_HOST = os.getenv("FLASK_HOST", "0.0.0.0")
FLASK_PORT = int(os.getenv("FLASK_PORT", "3000"))


# =============================================================================
# Sessions
# =============================================================================

SESSION_COOKIE_NAME = "bookscout_session"
PERMANENT_SESSION_LIFETIME = 604800  # 7 days in seconds


# =============================================================================
# Version information from Docker build
# =============================================================================

BUILD_VERSION = os.getenv("BUILD_VERSION", "N/A")
RELEASE_VERSION = os.getenv("RELEASE_VERSION", "N/A")
