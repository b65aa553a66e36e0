from pydantic import BaseModel, Field

from models import AspectRatio, Notification, ProgressPhase, ProgressState, Scene, SceneStatus


class SceneIn(BaseModel):
    id: str
    order: int
    title: str = ""
    narration_text: str = ""
    image_url: str | None = None
    image_status: SceneStatus = SceneStatus.PENDING
    audio_url: str | None = None
    audio_status: SceneStatus = SceneStatus.PENDING
    estimated_duration: float | None = Field(default=None, ge=0)
    actual_duration: float | None = Field(default=None, ge=0)

    def to_scene(self) -> Scene:
        return Scene(**self.model_dump())


class CompositionRequest(BaseModel):
    project_title: str
    aspect_ratio: AspectRatio = AspectRatio.LANDSCAPE
    scenes: list[SceneIn]


class CompositionStartResponse(BaseModel):
    total_eligible_scenes: int
    total_planned_seconds: float


class NotificationOut(BaseModel):
    level: str
    message: str


class ProgressResponse(BaseModel):
    phase: ProgressPhase
    current_scene_number: int
    total_eligible_scenes: int
    percent_complete: float
    notification: NotificationOut | None = None
    artifact: str | None = None

    @classmethod
    def from_state(
        cls,
        state: ProgressState,
        notification: Notification | None,
        artifact: str | None,
    ) -> "ProgressResponse":
        return cls(
            phase=state.phase,
            current_scene_number=state.current_scene_number,
            total_eligible_scenes=state.total_eligible_scenes,
            percent_complete=state.percent_complete,
            notification=(
                NotificationOut(level=notification.level.value, message=notification.message)
                if notification
                else None
            ),
            artifact=artifact,
        )
