#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Configuration for clifood.

Precedence (low -> high): built-in defaults, ~/.clifood/config.json,
IFOOD_* environment variables (a .env file is honoured), CLI flags.
"""
import json
import os
from dataclasses import asdict, dataclass, replace
from pathlib import Path
from typing import Optional

import structlog
from dotenv import find_dotenv, load_dotenv
from pydantic import BaseModel, Field, ValidationError

from clifood.utils import ensure_parent_dir, parse_number
from clifood.ifood.errors import CliFoodError

logger = structlog.get_logger(__name__)

TRUE_VALUES = ("1", "true", "yes")

# camelCase file key -> dataclass field
FILE_KEYS = {
    "cdpUrl": "cdp_url",
    "profileDir": "profile_dir",
    "headless": "headless",
    "slowMo": "slow_mo",
    "locale": "locale",
    "timeoutMs": "timeout_ms",
}


class ConfigError(CliFoodError):
    """Raised when a config key or value is invalid."""
    pass


class ConfigFile(BaseModel):
    """Shape of config.json; every key is optional."""
    cdpUrl: Optional[str] = Field(default=None, pattern=r"^(https?|wss?)://.+")
    profileDir: Optional[str] = None
    headless: Optional[bool] = None
    slowMo: Optional[int] = Field(default=None, ge=0)
    locale: Optional[str] = None
    timeoutMs: Optional[int] = Field(default=None, gt=0)


def clifood_home() -> Path:
    return Path.home() / ".clifood"


def config_path() -> Path:
    return clifood_home() / "config.json"


@dataclass(frozen=True)
class CliFoodConfig:
    profile_dir: str
    cdp_url: Optional[str] = None
    headless: bool = False
    slow_mo: int = 0
    locale: str = "pt-BR"
    timeout_ms: int = 30_000

    def to_file_dict(self) -> dict:
        values = asdict(self)
        return {key: values[attr] for key, attr in FILE_KEYS.items() if values[attr] is not None}


def default_config() -> CliFoodConfig:
    return CliFoodConfig(profile_dir=str(clifood_home() / "profile"))


def _truthy(value: str) -> bool:
    return value.strip().lower() in TRUE_VALUES


def read_config_file(path: Optional[Path] = None) -> dict:
    """Return the validated file overrides as dataclass kwargs; {} when absent or broken."""
    path = path or config_path()
    try:
        raw = json.loads(Path(path).read_text(encoding="utf-8"))
        parsed = ConfigFile.model_validate(raw)
    except FileNotFoundError:
        return {}
    except (OSError, ValueError, ValidationError) as e:
        logger.warning("Ignoring unreadable config file", path=str(path), error=str(e))
        return {}
    data = parsed.model_dump(exclude_none=True)
    return {FILE_KEYS[k]: v for k, v in data.items()}


def env_overrides(defaults: CliFoodConfig) -> dict:
    overrides = {}
    if os.getenv("IFOOD_CDP_URL"):
        overrides["cdp_url"] = os.environ["IFOOD_CDP_URL"]
    if os.getenv("IFOOD_PROFILE_DIR"):
        overrides["profile_dir"] = os.environ["IFOOD_PROFILE_DIR"]
    if os.getenv("IFOOD_HEADLESS"):
        overrides["headless"] = _truthy(os.environ["IFOOD_HEADLESS"])
    if os.getenv("IFOOD_SLOW_MO"):
        overrides["slow_mo"] = parse_number(os.environ["IFOOD_SLOW_MO"], defaults.slow_mo)
    if os.getenv("IFOOD_LOCALE"):
        overrides["locale"] = os.environ["IFOOD_LOCALE"]
    if os.getenv("IFOOD_TIMEOUT_MS"):
        overrides["timeout_ms"] = parse_number(os.environ["IFOOD_TIMEOUT_MS"], defaults.timeout_ms)
    return overrides


def load_config(path: Optional[Path] = None) -> CliFoodConfig:
    # .env from the working directory; real environment variables win
    load_dotenv(find_dotenv(usecwd=True))
    defaults = default_config()
    merged = {**read_config_file(path), **env_overrides(defaults)}
    return replace(defaults, **merged)


def save_config(update: dict, path: Optional[Path] = None) -> CliFoodConfig:
    """
    Merge `update` (dataclass field names) into the current config, validate
    and write it back as camelCase JSON.
    """
    path = Path(path or config_path())
    current = load_config(path)
    try:
        nxt = replace(current, **update)
    except TypeError as e:
        raise ConfigError(str(e)) from e
    try:
        ConfigFile.model_validate(nxt.to_file_dict())
    except ValidationError as e:
        raise ConfigError(f"Invalid config: {e}") from e

    ensure_parent_dir(path)
    path.write_text(json.dumps(nxt.to_file_dict(), indent=2), encoding="utf-8")
    logger.info("Config saved", path=str(path))
    return nxt


def parse_config_value(key: str, value: str) -> dict:
    """Turn a `config set <key> <value>` pair into a dataclass update."""
    defaults = default_config()
    if key == "cdpUrl":
        return {"cdp_url": value}
    if key == "profileDir":
        return {"profile_dir": value}
    if key == "headless":
        return {"headless": _truthy(value)}
    if key == "slowMo":
        return {"slow_mo": parse_number(value, defaults.slow_mo)}
    if key == "locale":
        return {"locale": value}
    if key == "timeoutMs":
        return {"timeout_ms": parse_number(value, defaults.timeout_ms)}
    raise ConfigError(f"Unknown config key: {key}")


def apply_overrides(config: CliFoodConfig, cdp_url=None, profile_dir=None, headless=None,
                    slow_mo=None, timeout=None) -> CliFoodConfig:
    """Apply global CLI flags on top of the loaded config (None = not given)."""
    updates = {}
    if isinstance(cdp_url, str):
        updates["cdp_url"] = cdp_url
    if isinstance(profile_dir, str):
        updates["profile_dir"] = profile_dir
    if headless is not None:
        updates["headless"] = headless
    if slow_mo is not None:
        updates["slow_mo"] = parse_number(slow_mo, config.slow_mo)
    if timeout is not None:
        updates["timeout_ms"] = parse_number(timeout, config.timeout_ms)
    return replace(config, **updates)
