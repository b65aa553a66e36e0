"""Hand the finished recording to the user as a single downloadable file."""

from __future__ import annotations

import asyncio
import logging
import re
from pathlib import Path
from typing import Callable

from models import CompositionJob
from services.errors import ArtifactError

logger = logging.getLogger(__name__)

FILENAME_SUFFIX = "_video.webm"
PARTIAL_SUFFIX = ".part"
_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9]")

SaveSink = Callable[[str, bytes], Path]


def suggested_filename(project_title: str) -> str:
    """'My Story!' -> 'My_Story__video.webm'. Every non-alphanumeric becomes '_'."""
    return _UNSAFE_CHARS.sub("_", project_title) + FILENAME_SUFFIX


def directory_sink(directory: Path) -> SaveSink:
    """
    Sink that writes the file into ``directory``, replacing any previous copy.

    Bytes go to a ``.part`` sibling first and are renamed into place, so a failed
    write never leaves a truncated video under the served name.
    """

    def save(filename: str, data: bytes) -> Path:
        directory.mkdir(parents=True, exist_ok=True)
        path = directory / filename
        partial = path.with_name(path.name + PARTIAL_SUFFIX)
        try:
            partial.write_bytes(data)
            partial.replace(path)
        except OSError:
            partial.unlink(missing_ok=True)
            raise
        return path

    return save


class ArtifactEmitter:
    def __init__(self, sink: SaveSink) -> None:
        self._sink = sink

    async def emit(self, job: CompositionJob) -> Path:
        """
        Save the job's blob once, then drop the in-memory reference.

        Raises ArtifactError when there is nothing to save, the job was already
        emitted, or the sink fails.
        """
        if job.emitted:
            raise ArtifactError("artifact already emitted for this job")
        if job.output is None:
            raise ArtifactError("job has no output")
        filename = suggested_filename(job.project_title)
        try:
            path = await asyncio.to_thread(self._sink, filename, job.output.data)
        except OSError as exc:
            raise ArtifactError(f"cannot save {filename}: {exc}") from exc
        job.emitted = True
        size = job.output.size
        job.output = None
        logger.info("[artifact_emitter] Saved %s (%d bytes)", path, size)
        return path
