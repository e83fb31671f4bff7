"""
Configuration loader for the Cuti-E Link client.
Loads client defaults from YAML, with environment variable overrides.
"""

import yaml
import os
from pathlib import Path
from typing import Dict, Any, Optional

DEFAULT_CONFIG_PATH = Path(__file__).parent / "config.yaml"

PRODUCTION_URL = "https://api.cuti-e.com"
SANDBOX_URL = "https://cutie-worker-sandbox.invotekas.workers.dev"
APP_STORE_URL = "https://apps.apple.com/app/cuti-e-feedback/id0000000000"
DEFAULT_TIMEOUT = 60.0
DEFAULT_STORE_PATH = "~/.cutie/link.json"


def load_client_config(config_path: Optional[Path] = None) -> Dict[str, Any]:
    """Load client configuration from config.yaml file.

    Returns:
        Dict containing configuration, with empty dict as fallback.
    """
    config_path = Path(config_path) if config_path else DEFAULT_CONFIG_PATH

    if not config_path.exists():
        print(f"[Config] Warning: Configuration file not found: {config_path}")
        return {}

    try:
        with open(config_path, 'r') as file:
            config = yaml.safe_load(file)

        if not isinstance(config, dict):
            print("[Config] Warning: Configuration file is empty or invalid")
            return {}

        return config

    except yaml.YAMLError as e:
        print(f"[Config] Error parsing YAML configuration: {e}")
        return {}
    except OSError as e:
        print(f"[Config] Error loading configuration: {e}")
        return {}


def get_api_config(config: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """Get token API settings with environment variable overrides.

    Environment variables override YAML config:
    - CUTIE_LINK_API_URL
    - CUTIE_LINK_SANDBOX_URL
    - CUTIE_LINK_TIMEOUT
    """
    if config is None:
        config = load_client_config()
    api_cfg = config.get("api") or {}

    production_url = api_cfg.get("production_url", PRODUCTION_URL)
    sandbox_url = api_cfg.get("sandbox_url", SANDBOX_URL)
    timeout = api_cfg.get("timeout", DEFAULT_TIMEOUT)

    production_url = os.environ.get("CUTIE_LINK_API_URL", production_url)
    sandbox_url = os.environ.get("CUTIE_LINK_SANDBOX_URL", sandbox_url)
    try:
        timeout = float(os.environ.get("CUTIE_LINK_TIMEOUT", timeout))
    except (TypeError, ValueError):
        print(f"[Config] Warning: invalid timeout {timeout!r}, using {DEFAULT_TIMEOUT}")
        timeout = DEFAULT_TIMEOUT

    return {
        "production_url": production_url,
        "sandbox_url": sandbox_url,
        "timeout": timeout,
    }


def get_app_store_url(config: Optional[Dict[str, Any]] = None) -> str:
    """App Store page opened when the Feedback App is not installed."""
    if config is None:
        config = load_client_config()
    url = (config.get("app_store") or {}).get("url", APP_STORE_URL)
    return os.environ.get("CUTIE_LINK_APP_STORE_URL", url)


def get_store_config(config: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """Where the device identifier is persisted (CUTIE_LINK_STORE_PATH overrides)."""
    if config is None:
        config = load_client_config()
    store_cfg = config.get("store") or {}
    path = os.environ.get("CUTIE_LINK_STORE_PATH", store_cfg.get("path", DEFAULT_STORE_PATH))
    return {
        "path": Path(os.path.expanduser(path)),
    }


def get_dispatch_config(config: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """URL schemes considered registered on this machine.

    CUTIE_LINK_SCHEMES is a comma separated list, e.g. "cutie,itms-apps".
    """
    if config is None:
        config = load_client_config()
    dispatch_cfg = config.get("dispatch") or {}
    schemes = dispatch_cfg.get("registered_schemes") or []

    env_schemes = os.environ.get("CUTIE_LINK_SCHEMES")
    if env_schemes is not None:
        schemes = env_schemes.split(",")

    return {
        "registered_schemes": [s.strip().lower() for s in schemes if s and s.strip()],
    }


def get_credentials() -> Dict[str, Optional[str]]:
    """Credentials from the environment, used by the command line client."""
    return {
        "app_id": os.environ.get("CUTIE_LINK_APP_ID"),
        "api_key": os.environ.get("CUTIE_LINK_API_KEY"),
    }


def get_client_settings(config_path: Optional[Path] = None) -> Dict[str, Any]:
    """All settings a LinkClient needs, loaded from a single read of the YAML file."""
    config = load_client_config(config_path)
    api = get_api_config(config)
    return {
        "production_url": api["production_url"],
        "sandbox_url": api["sandbox_url"],
        "timeout": api["timeout"],
        "app_store_url": get_app_store_url(config),
        "store_path": get_store_config(config)["path"],
        "registered_schemes": get_dispatch_config(config)["registered_schemes"],
    }
