"""
gamecenter-cli shared configuration, constants, and module-level state.
Standalone module, no imports from other project files except exceptions.
"""

import json
import os
from dataclasses import dataclass

from gamecenter_cli.exceptions import SetupError

# ---------------------------------------------------------------------------
# .env path and helpers
# ---------------------------------------------------------------------------

_PACKAGE_DIR = os.path.dirname(os.path.abspath(__file__))
_PROJECT_ROOT = os.path.dirname(_PACKAGE_DIR)

ENV_PATH = os.path.join(_PROJECT_ROOT, ".env")

_KNOWN_ENV_KEYS = (
    "GAMECENTER_CONFIG_PATH",
    "GAMECENTER_HTTP_TIMEOUT_SECONDS",
    "GAMECENTER_HTTP_MAX_RETRIES",
    "GAMECENTER_HTTP_RETRY_BASE_SECONDS",
    "GAMECENTER_HTTP_MAX_RESPONSE_BYTES",
    "GAMECENTER_HTTP_LOG",
    "GAMECENTER_PACING_SECONDS",
)


def load_env():
    """Read KEY=VALUE pairs from .env, falling back to os.environ for known keys."""
    env = {}
    if os.path.exists(ENV_PATH):
        with open(ENV_PATH) as f:
            for line in f:
                line = line.strip()
                if line and not line.startswith("#") and "=" in line:
                    key, val = line.split("=", 1)
                    env[key.strip()] = val.strip()
    for key in _KNOWN_ENV_KEYS:
        if key not in env and os.environ.get(key):
            env[key] = os.environ[key]
    return env


def _env_bool(key, default=False):
    """Parse common boolean env formats."""
    raw = env.get(key)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def _env_int(key, default):
    """Parse integer env values with fallback."""
    raw = env.get(key)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_float(key, default):
    """Parse float env values with fallback."""
    raw = env.get(key)
    if raw is None or raw == "":
        return default
    try:
        return float(raw)
    except ValueError:
        return default


# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

VERSION = "0.1.0"

BASE_URL = "https://api.appstoreconnect.apple.com"
JWT_AUDIENCE = "appstoreconnect-v1"
JWT_LIFETIME_SECONDS = 20 * 60

# App Store Connect pages achievements; only the first page is read.
LIST_LIMIT = 200
DEFAULT_POINTS = 10
DEFAULT_LOCALE = "en-US"

DEFAULT_CONFIG_PATH = "~/.gamecenter-cli-config.json"
REQUIRED_CONFIG_KEYS = ("issuerId", "apiKeyId", "privateKeyPath", "appId")

# ---------------------------------------------------------------------------
# Module-level state (loaded from .env)
# ---------------------------------------------------------------------------

env = load_env()

CONFIG_PATH = env.get("GAMECENTER_CONFIG_PATH", DEFAULT_CONFIG_PATH)
HTTP_TIMEOUT_SECONDS = _env_int("GAMECENTER_HTTP_TIMEOUT_SECONDS", 30)
HTTP_MAX_RETRIES = _env_int("GAMECENTER_HTTP_MAX_RETRIES", 2)
HTTP_RETRY_BASE_SECONDS = _env_float("GAMECENTER_HTTP_RETRY_BASE_SECONDS", 1.0)
HTTP_MAX_RESPONSE_BYTES = _env_int("GAMECENTER_HTTP_MAX_RESPONSE_BYTES", 5_000_000)
HTTP_LOG_ENABLED = _env_bool("GAMECENTER_HTTP_LOG", False)
PACING_SECONDS = max(0.0, _env_float("GAMECENTER_PACING_SECONDS", 0.1))

# Runtime flags (set by cli.main)
RUNTIME_DRY_RUN = False
RUNTIME_QUIET = False
RUNTIME_VERBOSE = False

# ---------------------------------------------------------------------------
# Credential file
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class CliConfig:
    """App Store Connect credentials and the target app."""

    issuer_id: str
    api_key_id: str
    private_key_path: str
    app_id: str


def load_cli_config(path=None):
    """Load the JSON credential file. Raises SetupError when unusable."""
    raw_path = path or CONFIG_PATH
    full_path = os.path.expanduser(raw_path)
    hint = (
        "\n  Create it with: issuerId, apiKeyId, privateKeyPath, appId"
        "\n  (see: gamecenter-cli --help)"
    )
    if not os.path.exists(full_path):
        raise SetupError(f"[SETUP_NEEDED] Config file not found: {raw_path}{hint}")
    try:
        with open(full_path, encoding="utf-8") as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        raise SetupError(
            f"[SETUP_NEEDED] Invalid JSON in {raw_path}: {e.msg} at position {e.pos}"
        ) from None
    except OSError as e:
        raise SetupError(f"[SETUP_NEEDED] Cannot read {raw_path}: {e.strerror}") from e
    if not isinstance(data, dict):
        raise SetupError(f"[SETUP_NEEDED] {raw_path} must contain a JSON object.{hint}")

    missing = [k for k in REQUIRED_CONFIG_KEYS if not str(data.get(k) or "").strip()]
    if missing:
        raise SetupError(
            f"[SETUP_NEEDED] {raw_path} is missing: {', '.join(missing)}{hint}"
        )
    return CliConfig(
        issuer_id=str(data["issuerId"]).strip(),
        api_key_id=str(data["apiKeyId"]).strip(),
        private_key_path=os.path.expanduser(str(data["privateKeyPath"]).strip()),
        app_id=str(data["appId"]).strip(),
    )

