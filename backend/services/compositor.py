"""
Timeline driver: turns an ordered list of scenes into one recorded video.

One run owns one surface and one mix bus. Scenes are drawn strictly in
order, each held on screen for its planned duration, while a StreamRecorder
captures both in the background. Image failures abort the run; audio
failures only silence the scene.
"""

from __future__ import annotations

import logging
import threading
from pathlib import Path
from typing import Callable, Protocol

from models import AspectRatio, CompositionJob, JobState, Notification, NotificationLevel, Scene
from services.artifact_emitter import ArtifactEmitter
from services.audio_feeder import AudioFeeder
from services.clock import MonotonicClock, monotonic_clock
from services.errors import GENERIC_FAILURE_MESSAGE, CompositionError, ImageLoadError, NoEligibleScenes
from services.frame_renderer import FrameRenderer
from services.mix_bus import MixBus
from services.progress import ProgressTracker
from services.scene_filter import eligible_scenes, total_planned_seconds
from services.stream_recorder import StreamRecorder
from services.surface import RenderSurface

logger = logging.getLogger(__name__)

SUCCESS_MESSAGE = "Video downloaded successfully!"
DEFAULT_TICK_SECONDS = 0.1


class Recorder(Protocol):
    async def start(self) -> None: ...
    def check(self) -> None: ...
    async def stop(self): ...
    async def abort(self) -> None: ...


RecorderFactory = Callable[[RenderSurface, MixBus], Recorder]


class Compositor:
    def __init__(
        self,
        *,
        renderer: FrameRenderer,
        feeder: AudioFeeder,
        emitter: ArtifactEmitter,
        recorder_factory: RecorderFactory | None = None,
        progress: ProgressTracker | None = None,
        clock: MonotonicClock | None = None,
        tick_seconds: float = DEFAULT_TICK_SECONDS,
        surface_factory: Callable[[int, int], RenderSurface] = RenderSurface,
        bus_factory: Callable[[], MixBus] = MixBus,
    ) -> None:
        self._renderer = renderer
        self._feeder = feeder
        self._emitter = emitter
        self._recorder_factory = recorder_factory or (lambda surface, bus: StreamRecorder(surface, bus))
        self.progress = progress or ProgressTracker()
        self._clock = clock or monotonic_clock
        self._tick = tick_seconds
        self._surface_factory = surface_factory
        self._bus_factory = bus_factory
        self._running = False
        self._claim_lock = threading.Lock()
        self.last_job: CompositionJob | None = None
        self.last_artifact: Path | None = None

    @property
    def is_running(self) -> bool:
        return self._running

    def prepare(self, scenes: list[Scene], aspect_ratio: AspectRatio, project_title: str) -> CompositionJob:
        """Build the job for a run. Raises NoEligibleScenes; allocates nothing."""
        eligible = eligible_scenes(scenes)
        if not eligible:
            raise NoEligibleScenes(f"0 of {len(scenes)} scenes have an image and ready audio")
        width, height = aspect_ratio.frame_size
        return CompositionJob(
            scenes=eligible,
            width=width,
            height=height,
            total_planned_seconds=total_planned_seconds(eligible),
            project_title=project_title,
        )

    def claim(self) -> bool:
        """
        Reserve the compositor for one run. False when a run is already reserved.

        Callers that claim must hand the job to run(), which releases the claim.
        """
        with self._claim_lock:
            if self._running:
                return False
            self._running = True
            return True

    def release(self) -> None:
        self._running = False

    async def generate(
        self,
        scenes: list[Scene],
        aspect_ratio: AspectRatio,
        project_title: str,
    ) -> Notification | None:
        """
        Run one composition end to end and return the user-facing notification.

        Returns None without doing anything when a run is already in progress.
        """
        if not self.claim():
            logger.info("[compositor] Generation already running; ignoring request")
            return None
        try:
            job = self.prepare(scenes, aspect_ratio, project_title)
        except NoEligibleScenes as exc:
            self.release()
            logger.info("[compositor] %s", exc.detail)
            self.progress.reset()
            return self._notify(NotificationLevel.ERROR, exc.message)
        return await self.run(job)

    async def run(self, job: CompositionJob) -> Notification:
        """Play a prepared job under an existing claim, then release the claim."""
        self.last_job = job
        try:
            return await self._run(job)
        finally:
            self.release()

    async def _run(self, job: CompositionJob) -> Notification:
        logger.info(
            "[compositor] Starting %d scenes, %.1fs planned, %dx%d",
            len(job.scenes),
            job.total_planned_seconds,
            job.width,
            job.height,
        )
        job.state = JobState.RUNNING
        self.progress.start(len(job.scenes))
        surface = self._surface_factory(job.width, job.height)
        bus = self._bus_factory()
        recorder: Recorder | None = None
        try:
            surface.open()
            bus.open()
            recorder = self._recorder_factory(surface, bus)
            await recorder.start()

            for index, scene in enumerate(job.scenes):
                await self._play_scene(job, index, scene, surface, bus, recorder)

            job.output = await recorder.stop()
            recorder = None
            bus.close()
            surface.close()
            self.last_artifact = await self._emitter.emit(job)
        except Exception as exc:  # noqa: BLE001
            await self._release(surface, bus, recorder)
            return self._fail(job, exc)

        job.state = JobState.COMPLETED
        self.progress.complete()
        logger.info("[compositor] Completed: %s", self.last_artifact)
        return self._notify(NotificationLevel.SUCCESS, SUCCESS_MESSAGE)

    async def _play_scene(
        self,
        job: CompositionJob,
        index: int,
        scene: Scene,
        surface: RenderSurface,
        bus: MixBus,
        recorder: Recorder,
    ) -> None:
        job.current_index = index
        self.progress.scene(index + 1)

        if not scene.image_url:
            raise ImageLoadError(f"scene {scene.id} has no image")
        await self._renderer.render(surface, scene.image_url)
        if not scene.audio_url or not await self._feeder.feed(bus, scene.audio_url, label=scene.id):
            job.audio_failures.append(scene.id)

        # Hold the frame for the planned duration, not the decoded audio length.
        duration = scene.planned_duration
        started = self._clock.monotonic()
        while self._clock.monotonic() - started < duration:
            await self._clock.sleep(self._tick)
            recorder.check()
            spent = min(self._clock.monotonic() - started, duration)
            self.progress.update((job.elapsed_seconds + spent) / job.total_planned_seconds * 100)

        job.elapsed_seconds += duration
        logger.info(
            "[compositor] Scene %d/%d (%s) done, %.1f/%.1fs",
            index + 1,
            len(job.scenes),
            scene.id,
            job.elapsed_seconds,
            job.total_planned_seconds,
        )

    async def _release(self, surface: RenderSurface, bus: MixBus, recorder: Recorder | None) -> None:
        if recorder is not None:
            try:
                await recorder.abort()
            except Exception as exc:  # noqa: BLE001
                logger.warning("[compositor] Recorder abort failed: %s", exc)
        bus.close()
        surface.close()

    def _fail(self, job: CompositionJob, exc: Exception) -> Notification:
        job.state = JobState.FAILED
        job.output = None
        scene = job.current_scene
        logger.error(
            "[compositor] Generation failed at scene %s: %s",
            scene.id if scene else "-",
            exc,
            exc_info=True,
        )
        self.progress.reset()
        message = exc.message if isinstance(exc, CompositionError) else GENERIC_FAILURE_MESSAGE
        return self._notify(NotificationLevel.ERROR, message)

    def _notify(self, level: NotificationLevel, message: str) -> Notification:
        notification = Notification(level=level, message=message)
        self.progress.notify(notification)
        return notification
