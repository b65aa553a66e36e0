"""Select the scenes that can be composed into the video."""

from collections.abc import Iterable

from models import Scene


def is_eligible(scene: Scene) -> bool:
    return bool(scene.image_url) and bool(scene.audio_url) and scene.audio_ready


def eligible_scenes(scenes: Iterable[Scene]) -> list[Scene]:
    """Scenes with an image, an audio clip, and ready audio. Input order is kept."""
    return [scene for scene in scenes if is_eligible(scene)]


def sort_scenes(scenes: Iterable[Scene]) -> list[Scene]:
    """Order scene records by their sequence index, for callers holding unordered rows."""
    return sorted(scenes, key=lambda scene: scene.order)


def total_planned_seconds(scenes: Iterable[Scene]) -> float:
    return sum(scene.planned_duration for scene in scenes)
