"""
Application constants, configuration loading and logging setup.
"""
import json
import logging
import logging.handlers
import shutil
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

from readiness import WaitPolicy
from version import __version__

# --- Configuration Constants ---
APP_NAME = "Browser Search HUD"
APP_VERSION = __version__
APP_SUPPORT_DIR = Path.home() / "Library" / "Application Support" / "BrowserSearchHUD"
CONFIG_PATH = APP_SUPPORT_DIR / "config.json"
PREFS_PATH = APP_SUPPORT_DIR / "search_prefs.json"
LOG_DIR = APP_SUPPORT_DIR / ".logs"

DEFAULT_POLLING = {
    "default": WaitPolicy(attempts=10, interval=0.1),
    "frontmost": WaitPolicy(attempts=50, interval=0.1),
    "menu": WaitPolicy(attempts=10, interval=0.1),
}

# --- Logging Setup ---
LOG_LEVELS = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
    "CRITICAL": logging.CRITICAL,
    "NONE": None,  # Disables logging entirely
}
LOG_FORMAT = '%(asctime)s [%(levelname)s] %(name)s: %(message)s'

# Create logger
logger = logging.getLogger("BrowserSearchHUD")

# Module loggers of the search library, configured alongside the app logger
LIBRARY_LOGGER_NAMES = (
    "readiness",
    "ax_elements",
    "browser_columns",
    "search_state",
    "host_app",
    "browser_search",
    "panel_controller",
)
library_loggers = [logging.getLogger(name) for name in LIBRARY_LOGGER_NAMES]

# Track current log file path (set by setup_logging)
current_log_file_path: Optional[Path] = None


def setup_logging(config: Optional[Dict] = None, log_dir: Path = LOG_DIR):
    """Configure logging based on config file settings."""
    global current_log_file_path

    log_cfg = config.get("logging", {}) if config else {}
    log_level_str = log_cfg.get("level", "INFO").upper()
    log_level = LOG_LEVELS.get(log_level_str, logging.INFO)
    log_to_file = log_cfg.get("log_to_file", True)
    log_file_name = log_cfg.get("log_file_name", "search_hud.log")
    configured = [logger, *library_loggers]

    # Clear existing handlers; records stop at these loggers instead of the basicConfig root
    for log in configured:
        for handler in log.handlers:
            handler.close()
        log.handlers.clear()
        log.propagate = False

    # If logging is disabled (NONE), set to highest level and skip handlers
    if log_level is None:
        for log in configured:
            log.setLevel(logging.CRITICAL + 10)
        current_log_file_path = None
        return

    formatter = logging.Formatter(LOG_FORMAT)

    # Console handler
    console_handler = logging.StreamHandler()
    console_handler.setFormatter(formatter)
    handlers: List[logging.Handler] = [console_handler]

    # File handler (rotating: 2 MB max, keep 3 backups)
    if log_to_file:
        try:
            log_dir.mkdir(parents=True, exist_ok=True)
            current_log_file_path = log_dir / log_file_name
            file_handler = logging.handlers.RotatingFileHandler(
                current_log_file_path,
                maxBytes=2 * 1024 * 1024,  # 2 MB
                backupCount=3,
                encoding='utf-8'
            )
            file_handler.setFormatter(formatter)
            handlers.append(file_handler)
        except OSError as e:
            print(f"Failed to create log file: {e}")
            current_log_file_path = None
    else:
        current_log_file_path = None

    for log in configured:
        for handler in handlers:
            log.addHandler(handler)
        log.setLevel(log_level)


# Initial basic setup (will be reconfigured after config is loaded)
logging.basicConfig(level=logging.INFO, format=LOG_FORMAT)
logger.setLevel(logging.INFO)


def resource_path(relative_path: str) -> Path:
    """Get absolute path to a bundled resource, for dev runs and app bundles."""
    if getattr(sys, 'frozen', False):
        base_path = Path(sys.executable).parent.parent / 'Resources'
    else:
        base_path = Path(__file__).parent.parent
    return base_path / relative_path


def load_config(config_path: Path = CONFIG_PATH) -> Dict[str, Any]:
    """
    Load the application configuration.

    On first launch the bundled config.json is copied next to the
    preferences. A missing bundled file or invalid JSON yields an empty
    configuration, so every setting falls back to its default.
    """
    try:
        if not config_path.exists():
            bundled_config = resource_path("config.json")
            if not bundled_config.exists():
                logger.error("Could not find the bundled configuration file.")
                return {}
            config_path.parent.mkdir(parents=True, exist_ok=True)
            shutil.copy2(str(bundled_config), str(config_path))
            logger.info(f"Config: first run, copied bundled config to {config_path}")

        with open(config_path, 'r', encoding='utf-8') as f:
            config = json.load(f)
    except json.JSONDecodeError as e:
        logger.error(f"Invalid configuration file {config_path}: {e}")
        return {}
    except OSError as e:
        logger.error(f"Failed to load configuration from {config_path}: {e}")
        return {}
    if not isinstance(config, dict):
        logger.error(f"Invalid configuration file {config_path}: expected a JSON object")
        return {}
    return config


def polling_policy(config: Optional[Dict[str, Any]], name: str) -> WaitPolicy:
    """The wait policy ``name`` from the ``polling`` block of ``config``."""
    polling_cfg = (config or {}).get("polling", {})
    return WaitPolicy.from_config(polling_cfg.get(name), DEFAULT_POLLING[name])
