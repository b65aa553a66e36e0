from dataclasses import dataclass, field
from enum import Enum

from .scene import Scene

WEBM_MIME_TYPE = "video/webm"


class JobState(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


class ProgressPhase(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    DONE = "done"


class NotificationLevel(str, Enum):
    SUCCESS = "success"
    ERROR = "error"


@dataclass
class ProgressState:
    phase: ProgressPhase = ProgressPhase.IDLE
    current_scene_number: int = 0
    total_eligible_scenes: int = 0
    percent_complete: float = 0.0


@dataclass
class Notification:
    level: NotificationLevel
    message: str


@dataclass
class MediaBlob:
    data: bytes
    mime_type: str = WEBM_MIME_TYPE
    frame_count: int = 0
    duration_seconds: float = 0.0

    @property
    def size(self) -> int:
        return len(self.data)


@dataclass
class CompositionJob:
    scenes: list[Scene]
    width: int
    height: int
    total_planned_seconds: float
    project_title: str = ""
    elapsed_seconds: float = 0.0               # planned seconds of finished scenes
    current_index: int = -1
    state: JobState = JobState.IDLE
    output: MediaBlob | None = None
    emitted: bool = False
    audio_failures: list[str] = field(default_factory=list)   # scene ids played silently

    @property
    def current_scene(self) -> Scene | None:
        if 0 <= self.current_index < len(self.scenes):
            return self.scenes[self.current_index]
        return None
