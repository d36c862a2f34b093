"""Progress reporting for import pipeline runs.

The pipeline publishes one event per stage transition. Publishing is
fire-and-forget: observers never block the pipeline and an observer that
raises is logged and ignored.
"""

from __future__ import annotations

import logging
import queue
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Iterable, Protocol

logger = logging.getLogger(__name__)


class PipelineStage(str, Enum):
    """Stages of an import run, in execution order."""

    STAGING = "staging"
    PREVIEW = "preview"
    MAPPING = "mapping"
    POSTING = "posting"


class StageStatus(str, Enum):
    """Status of a single stage."""

    IDLE = "idle"
    RUNNING = "running"
    DONE = "done"
    ERROR = "error"


@dataclass(frozen=True)
class ProgressEvent:
    """One stage transition."""

    stage: PipelineStage
    status: StageStatus
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> dict:
        return {
            "stage": self.stage.value,
            "status": self.status.value,
            "timestamp": self.timestamp.isoformat(),
        }


@dataclass
class PipelineRunState:
    """Per-stage status of a run plus the derived overall status.

    Overall is ``error`` if any stage errored, ``done`` once all stages are
    done, ``idle`` before anything happened, and ``running`` otherwise.
    """

    stages: dict[PipelineStage, StageStatus] = field(
        default_factory=lambda: {stage: StageStatus.IDLE for stage in PipelineStage}
    )

    def apply(self, event: ProgressEvent) -> None:
        self.stages[event.stage] = event.status

    @property
    def overall(self) -> StageStatus:
        statuses = self.stages.values()
        if any(s == StageStatus.ERROR for s in statuses):
            return StageStatus.ERROR
        if all(s == StageStatus.DONE for s in statuses):
            return StageStatus.DONE
        if all(s == StageStatus.IDLE for s in statuses):
            return StageStatus.IDLE
        return StageStatus.RUNNING

    def to_dict(self) -> dict:
        return {
            "stages": {stage.value: status.value for stage, status in self.stages.items()},
            "overall": self.overall.value,
        }


class ProgressObserver(Protocol):
    """Receives stage transitions from a pipeline run."""

    def on_progress(self, event: ProgressEvent) -> None: ...


class QueueProgressObserver:
    """Puts events on a bounded queue for a consumer in another thread.

    When the queue is full the event is dropped.
    """

    def __init__(self, maxsize: int = 32) -> None:
        self.events: queue.Queue[ProgressEvent] = queue.Queue(maxsize=maxsize)
        self.dropped = 0

    def on_progress(self, event: ProgressEvent) -> None:
        try:
            self.events.put_nowait(event)
        except queue.Full:
            self.dropped += 1
            logger.debug("Progress queue full, dropped %s=%s", event.stage.value, event.status.value)

    def drain(self) -> list[ProgressEvent]:
        """Return and remove all queued events."""
        drained: list[ProgressEvent] = []
        while True:
            try:
                drained.append(self.events.get_nowait())
            except queue.Empty:
                return drained


class LoggingProgressObserver:
    """Logs every transition and tracks the run state."""

    def __init__(self, log: logging.Logger | None = None) -> None:
        self.log = log or logger
        self.state = PipelineRunState()

    def on_progress(self, event: ProgressEvent) -> None:
        self.state.apply(event)
        level = logging.ERROR if event.status == StageStatus.ERROR else logging.INFO
        self.log.log(
            level,
            "Stage %-8s %-8s (overall: %s)",
            event.stage.value,
            event.status.value,
            self.state.overall.value,
        )


class CompositeProgressObserver:
    """Fans events out to several observers."""

    def __init__(self, observers: Iterable[ProgressObserver]) -> None:
        self.observers = list(observers)

    def on_progress(self, event: ProgressEvent) -> None:
        for observer in self.observers:
            notify(observer, event)


def notify(observer: ProgressObserver | None, event: ProgressEvent) -> None:
    """Deliver an event; observer failures are logged and swallowed."""
    if observer is None:
        return
    try:
        observer.on_progress(event)
    except Exception:
        logger.exception("Progress observer %r failed on %s", observer, event)
