from dataclasses import dataclass
from enum import Enum

DEFAULT_SCENE_SECONDS = 5.0


class SceneStatus(str, Enum):
    PENDING = "pending"
    GENERATING = "generating"
    COMPLETED = "completed"
    FAILED = "failed"


class AspectRatio(str, Enum):
    LANDSCAPE = "16:9"
    PORTRAIT = "9:16"

    @property
    def frame_size(self) -> tuple[int, int]:
        """(width, height) of the render surface for this ratio."""
        if self is AspectRatio.LANDSCAPE:
            return 1280, 720
        return 720, 1280


@dataclass
class Scene:
    id: str
    order: int                                 # externally supplied sequence index
    title: str = ""
    narration_text: str = ""
    image_url: str | None = None
    image_status: SceneStatus = SceneStatus.PENDING
    audio_url: str | None = None
    audio_status: SceneStatus = SceneStatus.PENDING
    estimated_duration: float | None = None    # seconds
    actual_duration: float | None = None       # seconds, measured from the voiceover

    @property
    def audio_ready(self) -> bool:
        return self.audio_status is SceneStatus.COMPLETED

    @property
    def planned_duration(self) -> float:
        return float(self.actual_duration or self.estimated_duration or DEFAULT_SCENE_SECONDS)
