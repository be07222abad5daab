"""Portal configuration.

Values come from the environment; a ``.env`` file at the repository root is
loaded first if it exists.
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, List, Optional

from dotenv import load_dotenv

REPO_ROOT = Path(__file__).resolve().parents[1]

env_path = REPO_ROOT / ".env"
if env_path.exists():
    load_dotenv(env_path)


DEFAULT_API_TOKEN = "change_this_secret_token"
DEFAULT_DATABASE_URL = "sqlite:///erp_sync_portal.db"

_TRUTHY = {"1", "true", "yes", "on"}


@dataclass
class Settings:
    """Runtime settings for the portal."""
    database_url: str = DEFAULT_DATABASE_URL
    namespace: str = "test"
    api_token: str = DEFAULT_API_TOKEN
    host: str = "0.0.0.0"
    port: int = 8787
    store_timeout_seconds: float = 10.0
    log_level: str = "INFO"
    log_json: bool = False

    @property
    def uses_default_token(self) -> bool:
        return self.api_token == DEFAULT_API_TOKEN

    def validate(self, errors: Optional[List[str]] = None) -> None:
        """Raise ValueError listing every configuration problem.

        Args:
            errors: Problems already found while reading the environment
        """
        errors = list(errors or [])

        if not self.database_url:
            errors.append("DATABASE_URL is required")
        if not self.namespace:
            errors.append("SERVER_INSTANCE_DATABASE must not be empty")
        if not self.api_token:
            errors.append("PORTAL_API_TOKEN must not be empty")
        if not 0 < self.port < 65536:
            errors.append(f"PORTAL_PORT out of range: {self.port}")
        if self.store_timeout_seconds <= 0:
            errors.append(f"STORE_TIMEOUT_SECONDS must be positive: {self.store_timeout_seconds}")

        if errors:
            raise ValueError("Config errors:\n  " + "\n  ".join(errors))


def _env_number(name: str, default: str, cast: Callable[[str], Any], errors: List[str]) -> Any:
    """Parse a numeric variable; on failure record the problem and use the default."""
    raw = os.getenv(name, default)
    try:
        return cast(raw)
    except ValueError:
        errors.append(f"{name} is not a valid {cast.__name__}: {raw!r}")
        return cast(default)


def load_settings() -> Settings:
    """Build Settings from environment variables.

    Reads:
    - DATABASE_URL: store endpoint (memory://, sqlite:///file.db or a path)
    - SERVER_INSTANCE_DATABASE: root namespace for this instance's queue
    - PORTAL_API_TOKEN: shared bearer secret
    - PORTAL_HOST / PORTAL_PORT: listen address
    - STORE_TIMEOUT_SECONDS: bound on each store call
    - LOG_LEVEL / LOG_JSON: logging output

    Raises:
        ValueError: A numeric variable does not parse (reported together with
            any other configuration problem)
    """
    parse_errors: List[str] = []
    settings = Settings(
        database_url=os.getenv("DATABASE_URL", DEFAULT_DATABASE_URL),
        namespace=os.getenv("SERVER_INSTANCE_DATABASE", "test").strip("/"),
        api_token=os.getenv("PORTAL_API_TOKEN", DEFAULT_API_TOKEN),
        host=os.getenv("PORTAL_HOST", "0.0.0.0"),
        port=_env_number("PORTAL_PORT", "8787", int, parse_errors),
        store_timeout_seconds=_env_number("STORE_TIMEOUT_SECONDS", "10", float, parse_errors),
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        log_json=os.getenv("LOG_JSON", "false").lower() in _TRUTHY,
    )
    if parse_errors:
        settings.validate(parse_errors)
    return settings
