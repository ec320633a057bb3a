"""Timer entries and connection settings."""

from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from uuid import UUID, uuid4


class TimerType(str, Enum):
    """Session kinds. The value is the tag stored in habit_tracking.task_type."""

    TASK = "task"
    BREAK = "break"
    RECREATION = "recreation"
    HOBBY = "hobby"


@dataclass(frozen=True)
class TimerEntry:
    type: TimerType
    name: str
    description: str = ""
    start_time: datetime = field(default_factory=datetime.now)
    duration: int = 0
    end_time: datetime | None = None
    id: UUID = field(default_factory=uuid4)

    def __post_init__(self):
        if self.end_time is None:
            object.__setattr__(self, "end_time", self.start_time)

    def refreshed(self, now: datetime) -> "TimerEntry":
        """Copy with duration (whole minutes) and end_time recomputed at `now`.

        A clock reading earlier than the current end_time is ignored, so
        neither field ever moves backwards.
        """
        now = max(now, self.start_time, self.end_time)
        minutes = int((now - self.start_time).total_seconds() // 60)
        return replace(self, duration=minutes, end_time=now)

    @property
    def key(self) -> tuple[str, str, datetime]:
        return (self.type.value, self.name, self.start_time)

    def as_row(self) -> tuple:
        """Values in habit_tracking column order."""
        return (
            self.type.value,
            self.name,
            self.description,
            self.duration,
            self.start_time,
            self.end_time,
        )

    def to_dict(self) -> dict:
        return {
            "id": str(self.id),
            "type": self.type.value,
            "name": self.name,
            "description": self.description,
            "duration": self.duration,
            "start_time": self.start_time.isoformat(),
            "end_time": self.end_time.isoformat(),
        }


@dataclass(frozen=True)
class ConnectionConfig:
    host: str = ""
    port: int | None = None
    username: str = ""
    password: str | None = field(default=None, repr=False)
    database: str = ""

    def missing_fields(self) -> list[str]:
        missing = []
        if not self.host:
            missing.append("host")
        if self.port is None or not 1 <= self.port <= 65535:
            missing.append("port")
        if not self.username:
            missing.append("username")
        # an empty password is valid for trust auth
        if self.password is None:
            missing.append("password")
        if not self.database:
            missing.append("database")
        return missing

    def is_complete(self) -> bool:
        return not self.missing_fields()
