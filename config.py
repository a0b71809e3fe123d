"""
Runtime settings read from the environment.

.env.local and .env are loaded when present, .env.local winning over .env.
Real environment variables take precedence over both.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Mapping, Optional

from dotenv import load_dotenv

from utils.translator import Translator

DEFAULT_TRANSLATION_URL = Translator.DEFAULT_URL

BASE_DIR = Path(__file__).resolve().parent

DEFAULT_DATABASE_URL = "sqlite:///properties.db"

TRUE_VALUES = ("1", "true", "yes", "on")


@dataclass
class Settings:
    database_url: str = DEFAULT_DATABASE_URL
    log_level: str = "INFO"
    echo_sql: bool = False

    # Run options
    dry_run: bool = False
    regions: List[str] = field(default_factory=list)
    sources: List[str] = field(default_factory=list)
    max_pages: Optional[int] = None

    # Network
    request_timeout: float = 30.0

    # Translation
    translation_enabled: bool = True
    translation_delay: float = 5.0
    translation_url: str = DEFAULT_TRANSLATION_URL
    translation_max_retries: int = 3


def load_env_files(base_dir: Path = BASE_DIR) -> None:
    """Load .env.local then .env without overriding the real environment."""
    for name in (".env.local", ".env"):
        path = base_dir / name
        if path.exists():
            load_dotenv(path, override=False)


def _parse_bool(value: Optional[str], default: bool) -> bool:
    if value is None or value.strip() == "":
        return default
    return value.strip().lower() in TRUE_VALUES


def _parse_list(value: Optional[str]) -> List[str]:
    if not value:
        return []
    return [item.strip() for item in value.split(",") if item.strip()]


def _parse_number(env: Mapping[str, str], name: str, cast, default, minimum=None):
    raw = env.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = cast(raw.strip())
    except ValueError:
        raise ValueError(f"{name} must be a number, got {raw!r}") from None
    if minimum is not None and value < minimum:
        raise ValueError(f"{name} must be >= {minimum}, got {value}")
    return value


def load_settings(env: Optional[Mapping[str, str]] = None) -> Settings:
    """
    Build Settings from environment variables.

    Args:
        env: Mapping to read from (default: os.environ after loading .env files)

    Returns:
        Validated Settings

    Raises:
        ValueError: If a numeric variable is malformed or out of range
    """
    if env is None:
        load_env_files()
        env = os.environ

    return Settings(
        database_url=env.get("DATABASE_URL") or DEFAULT_DATABASE_URL,
        log_level=(env.get("LOG_LEVEL") or "INFO").upper(),
        echo_sql=_parse_bool(env.get("ECHO_SQL"), False),
        dry_run=_parse_bool(env.get("DRY_RUN"), False),
        regions=_parse_list(env.get("REGIONS")),
        sources=_parse_list(env.get("SOURCES")),
        max_pages=_parse_number(env, "MAX_PAGES", int, None, minimum=1),
        request_timeout=_parse_number(env, "REQUEST_TIMEOUT", float, 30.0, minimum=1),
        translation_enabled=_parse_bool(env.get("TRANSLATION_ENABLED"), True),
        translation_delay=_parse_number(env, "TRANSLATION_DELAY", float, 5.0, minimum=0),
        translation_url=env.get("TRANSLATION_URL") or DEFAULT_TRANSLATION_URL,
        translation_max_retries=_parse_number(env, "TRANSLATION_MAX_RETRIES", int, 3, minimum=1),
    )
