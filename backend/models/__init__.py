from .composition import (
    WEBM_MIME_TYPE,
    CompositionJob,
    JobState,
    MediaBlob,
    Notification,
    NotificationLevel,
    ProgressPhase,
    ProgressState,
)
from .scene import DEFAULT_SCENE_SECONDS, AspectRatio, Scene, SceneStatus

__all__ = [
    "Scene",
    "SceneStatus",
    "AspectRatio",
    "DEFAULT_SCENE_SECONDS",
    "CompositionJob",
    "JobState",
    "MediaBlob",
    "Notification",
    "NotificationLevel",
    "ProgressPhase",
    "ProgressState",
    "WEBM_MIME_TYPE",
]
