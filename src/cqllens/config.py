"""Configuration management using TOML + environment variables."""

from __future__ import annotations

import os
import sys
from dataclasses import dataclass, field
from pathlib import Path

if sys.version_info >= (3, 11):
    import tomllib
else:
    try:
        import tomllib
    except ModuleNotFoundError:
        import tomli as tomllib  # type: ignore[no-redef]

import tomli_w

CONFIG_DIR = Path.home() / ".cqllens"
CONFIG_FILE = CONFIG_DIR / "config.toml"
LOG_FILE = CONFIG_DIR / "cqllens.log"


@dataclass
class TargetConfig:
    """A named cluster that statements can be routed to with ``-- @conn``."""

    name: str = ""
    contact_points: list[str] = field(default_factory=lambda: ["127.0.0.1"])
    port: int = 9042
    local_datacenter: str = "datacenter1"
    keyspace: str = ""
    username: str = ""
    password: str = ""


@dataclass
class EditorConfig:
    warn_on_target_switch: bool = True
    directive_window: int = 10


@dataclass
class QueryConfig:
    timeout: int = 30
    completion_message_format: str = "detailed"


@dataclass
class HistoryConfig:
    max_entries: int = 100
    evict_count: int = 20


@dataclass
class StorageConfig:
    db_path: str = "~/.cqllens/journal.db"
    enabled: bool = True


@dataclass
class LoggingConfig:
    level: str = "WARNING"
    file: str = "~/.cqllens/cqllens.log"


@dataclass
class AppConfig:
    targets: list[TargetConfig] = field(default_factory=list)
    default_target: str = ""
    editor: EditorConfig = field(default_factory=EditorConfig)
    query: QueryConfig = field(default_factory=QueryConfig)
    history: HistoryConfig = field(default_factory=HistoryConfig)
    storage: StorageConfig = field(default_factory=StorageConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    def find_target(self, name: str) -> TargetConfig | None:
        for target in self.targets:
            if target.name == name:
                return target
        return None


def ensure_config_dir() -> None:
    """Create config directory with secure permissions."""
    CONFIG_DIR.mkdir(parents=True, exist_ok=True)
    os.chmod(CONFIG_DIR, 0o700)


def _load_target(name: str, data: dict) -> TargetConfig:
    target = TargetConfig(name=name)
    target.contact_points = data.get("contact_points", target.contact_points)
    target.port = data.get("port", target.port)
    target.local_datacenter = data.get("local_datacenter", target.local_datacenter)
    target.keyspace = data.get("keyspace", target.keyspace)
    target.username = data.get("username", target.username)
    target.password = data.get("password", target.password)
    return target


def load_config() -> AppConfig:
    """Load configuration from TOML file with env var overrides."""
    config = AppConfig()

    if CONFIG_FILE.exists():
        with open(CONFIG_FILE, "rb") as f:
            data = tomllib.load(f)

        config.default_target = data.get("default_target", "")
        config.targets = [_load_target(name, values) for name, values in data.get("targets", {}).items()]

        editor = data.get("editor", {})
        config.editor.warn_on_target_switch = editor.get("warn_on_target_switch", config.editor.warn_on_target_switch)
        config.editor.directive_window = editor.get("directive_window", config.editor.directive_window)

        query = data.get("query", {})
        config.query.timeout = query.get("timeout", config.query.timeout)
        config.query.completion_message_format = query.get(
            "completion_message_format", config.query.completion_message_format
        )

        history = data.get("history", {})
        config.history.max_entries = history.get("max_entries", config.history.max_entries)
        config.history.evict_count = history.get("evict_count", config.history.evict_count)

        storage = data.get("storage", {})
        config.storage.db_path = storage.get("db_path", config.storage.db_path)
        config.storage.enabled = storage.get("enabled", config.storage.enabled)

        logging_cfg = data.get("logging", {})
        config.logging.level = logging_cfg.get("level", config.logging.level)
        config.logging.file = logging_cfg.get("file", config.logging.file)

    # Environment variable overrides
    if env_target := os.environ.get("CQLLENS_DEFAULT_TARGET"):
        config.default_target = env_target
    if env_timeout := os.environ.get("CQLLENS_QUERY_TIMEOUT"):
        config.query.timeout = int(env_timeout)
    if env_format := os.environ.get("CQLLENS_MESSAGE_FORMAT"):
        config.query.completion_message_format = env_format
    if env_db := os.environ.get("CQLLENS_DB_PATH"):
        config.storage.db_path = env_db
    if env_log_level := os.environ.get("CQLLENS_LOG_LEVEL"):
        config.logging.level = env_log_level
    # Credentials from the environment apply to every target without its own.
    env_user = os.environ.get("CQLLENS_USERNAME")
    env_password = os.environ.get("CQLLENS_PASSWORD")
    for target in config.targets:
        if env_user and not target.username:
            target.username = env_user
        if env_password and not target.password:
            target.password = env_password

    return config


def _dump_target(target: TargetConfig) -> dict:
    data: dict = {
        "contact_points": target.contact_points,
        "port": target.port,
        "local_datacenter": target.local_datacenter,
    }
    if target.keyspace:
        data["keyspace"] = target.keyspace
    if target.username:
        data["username"] = target.username
    if target.password:
        data["password"] = target.password
    return data


def save_config(config: AppConfig) -> None:
    """Save configuration to TOML file."""
    ensure_config_dir()

    data = {
        "default_target": config.default_target,
        "targets": {target.name: _dump_target(target) for target in config.targets},
        "editor": {
            "warn_on_target_switch": config.editor.warn_on_target_switch,
            "directive_window": config.editor.directive_window,
        },
        "query": {
            "timeout": config.query.timeout,
            "completion_message_format": config.query.completion_message_format,
        },
        "history": {
            "max_entries": config.history.max_entries,
            "evict_count": config.history.evict_count,
        },
        "storage": {
            "db_path": config.storage.db_path,
            "enabled": config.storage.enabled,
        },
        "logging": {
            "level": config.logging.level,
            "file": config.logging.file,
        },
    }

    with open(CONFIG_FILE, "wb") as f:
        tomli_w.dump(data, f)

    os.chmod(CONFIG_FILE, 0o600)
