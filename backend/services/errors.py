"""Error taxonomy for the scene-to-video compositor.

Fatal errors unwind the whole job. ``AudioDecodeError`` is the only non-fatal
one and never leaves the audio feeder.
"""

GENERIC_FAILURE_MESSAGE = "Failed to generate video. Please try the web player instead."
NO_ELIGIBLE_SCENES_MESSAGE = "No valid scenes with images and audio"


class CompositionError(Exception):
    """Base class for compositor errors. ``message`` is safe to show users."""

    message: str = GENERIC_FAILURE_MESSAGE

    def __init__(self, detail: str | None = None, *, message: str | None = None) -> None:
        self.detail = detail or self.__class__.__name__
        if message:
            self.message = message
        super().__init__(self.detail)


class NoEligibleScenes(CompositionError):
    message = NO_ELIGIBLE_SCENES_MESSAGE


class SurfaceUnavailable(CompositionError):
    pass


class ImageLoadError(CompositionError):
    pass


class AudioDecodeError(CompositionError):
    pass


class RecorderError(CompositionError):
    pass


class ArtifactError(CompositionError):
    pass
