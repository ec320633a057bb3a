"""habitkeeper configuration. All tunables in one place."""

import os
from dataclasses import dataclass, field
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()


@dataclass
class DBConfig:
    data_dir: Path = field(
        default_factory=lambda: Path(
            os.environ.get("HABITKEEPER_DATA_DIR", str(Path.home() / ".habitkeeper"))
        )
    )
    settle_s: float = field(
        default_factory=lambda: float(os.environ.get("HABITKEEPER_SETTLE_S", "0.1"))
    )
    keepalive_interval_s: float = field(
        default_factory=lambda: float(os.environ.get("HABITKEEPER_KEEPALIVE_S", "30"))
    )
    connect_timeout_s: float = field(
        default_factory=lambda: float(os.environ.get("HABITKEEPER_CONNECT_TIMEOUT_S", "10"))
    )
    pool_max_size: int = field(
        default_factory=lambda: int(os.environ.get("HABITKEEPER_POOL_MAX", "4"))
    )
    default_port: int = 5432

    @property
    def settings_path(self) -> Path:
        return self.data_dir / "settings.db"


@dataclass
class ServerConfig:
    host: str = field(default_factory=lambda: os.environ.get("HABITKEEPER_HOST", "127.0.0.1"))
    port: int = field(default_factory=lambda: int(os.environ.get("HABITKEEPER_PORT", "9100")))


@dataclass
class TimerConfig:
    tick_interval_s: float = 1.0
    write_drain_timeout_s: float = 5.0


@dataclass
class Config:
    db: DBConfig = field(default_factory=DBConfig)
    server: ServerConfig = field(default_factory=ServerConfig)
    timer: TimerConfig = field(default_factory=TimerConfig)
    log_level: str = field(
        default_factory=lambda: os.environ.get("HABITKEEPER_LOG_LEVEL", "INFO")
    )


config = Config()
