"""Configuration for rss_content_fixer.

Settings come from dataclass defaults, then an optional YAML file, then
RSS_FIXER_* environment variables. CLI options override host, port and log
level on top of that.
"""

import os
from dataclasses import dataclass, fields
from typing import Any, Dict, Optional

import yaml


DEFAULT_UPSTREAM_BASE_URL = "https://svenska.yle.fi/rss"
DEFAULT_USER_AGENT = "svenska-yle-rss-content-fixer/0.1"
DEFAULT_MAX_SIZE = 5 * 1024 * 1024  # 5 MiB

ENV_PREFIX = "RSS_FIXER_"


@dataclass
class ServerConfig:
    """Runtime settings for the feed rewriting server.

    Attributes:
        name: Service name used in log lines
        host: Interface to listen on
        port: Port to listen on
        upstream_base_url: Request paths are appended to this URL
        user_agent: User-Agent header for outbound requests
        max_workers: Concurrent article fetches per feed rewrite
        max_feed_size: Byte ceiling for the upstream feed body
        max_body_size: Byte ceiling for each article body
        request_timeout: Timeout in seconds for outbound requests
        log_level: Logging level name
    """

    name: str = "rss_content_fixer"
    host: str = "127.0.0.1"
    port: int = 8080
    upstream_base_url: str = DEFAULT_UPSTREAM_BASE_URL
    user_agent: str = DEFAULT_USER_AGENT
    max_workers: int = 5
    max_feed_size: int = DEFAULT_MAX_SIZE
    max_body_size: int = DEFAULT_MAX_SIZE
    request_timeout: float = 30.0
    log_level: str = "INFO"


_config: Optional[ServerConfig] = None


def load_config(path: Optional[str] = None) -> ServerConfig:
    """Load configuration from an optional YAML file and the environment.

    Args:
        path: Optional path to a YAML file with top-level keys matching
            ServerConfig fields

    Returns:
        A new ServerConfig instance

    Raises:
        ValueError: If the YAML file or an environment variable holds a value
            of the wrong type, or the file names a setting that does not exist
    """
    values: Dict[str, Any] = {}

    if path:
        with open(path, "r", encoding="utf-8") as f:
            raw = yaml.safe_load(f) or {}
        if not isinstance(raw, dict):
            raise ValueError(f"Config file {path} must contain a mapping")
        known = {field.name for field in fields(ServerConfig)}
        unknown = sorted(str(key) for key in raw if key not in known)
        if unknown:
            raise ValueError(f"Unknown keys in config file {path}: {', '.join(unknown)}")
        values.update(raw)

    for f in fields(ServerConfig):
        env_value = os.environ.get(ENV_PREFIX + f.name.upper())
        if env_value is not None:
            values[f.name] = env_value

    return _from_dict(values)


def get_config() -> ServerConfig:
    """Get or create the process-wide configuration."""
    global _config

    if _config is None:
        _config = load_config(os.environ.get(ENV_PREFIX + "CONFIG"))

    return _config


def _from_dict(values: Dict[str, Any]) -> ServerConfig:
    """Build a ServerConfig, coercing values to each field's type."""
    kwargs: Dict[str, Any] = {}
    for f in fields(ServerConfig):
        if f.name not in values:
            continue
        value = values[f.name]
        target = type(getattr(ServerConfig, f.name))
        try:
            kwargs[f.name] = target(value)
        except (TypeError, ValueError) as e:
            raise ValueError(f"Invalid value for {f.name}: {value!r}") from e
    return ServerConfig(**kwargs)
