"""Tests for pipeline progress reporting."""

import logging
from unittest.mock import MagicMock

from ledger_import.services.progress import (
    CompositeProgressObserver,
    LoggingProgressObserver,
    PipelineRunState,
    PipelineStage,
    ProgressEvent,
    QueueProgressObserver,
    StageStatus,
    notify,
)


def _event(stage: PipelineStage, status: StageStatus) -> ProgressEvent:
    return ProgressEvent(stage=stage, status=status)


class TestPipelineRunState:
    """Test derived overall status."""

    def test_initially_idle(self) -> None:
        """Test a fresh run state is idle."""
        state = PipelineRunState()

        assert set(state.stages.values()) == {StageStatus.IDLE}
        assert state.overall == StageStatus.IDLE

    def test_running_while_partially_done(self) -> None:
        """Test a partly finished run is running."""
        state = PipelineRunState()
        state.apply(_event(PipelineStage.STAGING, StageStatus.DONE))
        state.apply(_event(PipelineStage.PREVIEW, StageStatus.RUNNING))

        assert state.overall == StageStatus.RUNNING

    def test_done_when_all_done(self) -> None:
        """Test the run is done once every stage is done."""
        state = PipelineRunState()
        for stage in PipelineStage:
            state.apply(_event(stage, StageStatus.DONE))

        assert state.overall == StageStatus.DONE

    def test_any_error_wins(self) -> None:
        """Test one failed stage makes the run failed."""
        state = PipelineRunState()
        for stage in PipelineStage:
            state.apply(_event(stage, StageStatus.DONE))
        state.apply(_event(PipelineStage.POSTING, StageStatus.ERROR))

        assert state.overall == StageStatus.ERROR
        assert state.to_dict()["stages"]["posting"] == "error"


class TestObservers:
    """Test observer implementations."""

    def test_queue_observer_collects_events(self) -> None:
        """Test queued events drain in order."""
        observer = QueueProgressObserver(maxsize=4)
        observer.on_progress(_event(PipelineStage.STAGING, StageStatus.RUNNING))
        observer.on_progress(_event(PipelineStage.STAGING, StageStatus.DONE))

        drained = observer.drain()

        assert [(e.stage, e.status) for e in drained] == [
            (PipelineStage.STAGING, StageStatus.RUNNING),
            (PipelineStage.STAGING, StageStatus.DONE),
        ]
        assert observer.drain() == []

    def test_queue_observer_drops_when_full(self) -> None:
        """Publishing never blocks: events beyond capacity are dropped."""
        observer = QueueProgressObserver(maxsize=2)
        for stage in PipelineStage:
            observer.on_progress(_event(stage, StageStatus.RUNNING))

        assert len(observer.drain()) == 2
        assert observer.dropped == 2

    def test_logging_observer(self, caplog) -> None:
        """Test errors are logged at ERROR level."""
        observer = LoggingProgressObserver()

        with caplog.at_level(logging.INFO, logger="ledger_import.services.progress"):
            observer.on_progress(_event(PipelineStage.MAPPING, StageStatus.ERROR))

        assert observer.state.overall == StageStatus.ERROR
        assert any("mapping" in r.getMessage() for r in caplog.records)
        assert caplog.records[-1].levelno == logging.ERROR

    def test_composite_isolates_failing_observer(self) -> None:
        """Test one failing observer does not starve the others."""
        broken = MagicMock()
        broken.on_progress.side_effect = RuntimeError("boom")
        healthy = QueueProgressObserver()
        composite = CompositeProgressObserver([broken, healthy])

        composite.on_progress(_event(PipelineStage.POSTING, StageStatus.DONE))

        assert len(healthy.drain()) == 1

    def test_notify_without_observer(self) -> None:
        """Test notifying no observer is a no-op."""
        notify(None, _event(PipelineStage.STAGING, StageStatus.RUNNING))

    def test_event_to_dict(self) -> None:
        """Test events serialize stage, status and timestamp."""
        data = _event(PipelineStage.PREVIEW, StageStatus.DONE).to_dict()

        assert data["stage"] == "preview"
        assert data["status"] == "done"
        assert "timestamp" in data
