"""Tests for batch execution across workers."""

import threading
from pathlib import Path

from cvrt.hardware.models import BackendKind
from cvrt.logging.context import get_worker_context
from cvrt.workflow.batch import run_batch
from cvrt.workflow.results import FileResult, FileStatus


class StubPipeline:
    """Pipeline double: outcome chosen per file name, context recorded."""

    def __init__(self, outcomes: dict[str, object] | None = None) -> None:
        self.outcomes = outcomes or {}
        self.contexts: dict[str, tuple] = {}
        self._lock = threading.Lock()

    def process_file(self, source: Path) -> FileResult:
        with self._lock:
            self.contexts[source.name] = get_worker_context()
        outcome = self.outcomes.get(source.name, "ok")
        if isinstance(outcome, BaseException):
            raise outcome
        if outcome == "fail":
            return FileResult.failed(source, "Encode failed: boom")
        if outcome == "skip":
            return FileResult.skipped(source, "No audio streams found")
        return FileResult(
            source,
            FileStatus.SUCCESS,
            output_path=source.with_name(f"{source.stem}-converted.mkv"),
            backend=BackendKind.NVENC,
            attempted=(BackendKind.NVENC,),
        )


def paths(count: int) -> list[Path]:
    return [Path(f"/media/f{i}.mkv") for i in range(1, count + 1)]


class TestSequential:
    def test_counts(self):
        pipeline = StubPipeline({"f2.mkv": "fail", "f3.mkv": "skip"})

        summary = run_batch(pipeline, paths(4))

        assert (summary.success, summary.failed, summary.skipped) == (2, 1, 1)
        assert summary.total == 4
        assert summary.majority_encoder is BackendKind.NVENC

    def test_worker_and_file_ids(self):
        pipeline = StubPipeline()

        run_batch(pipeline, paths(10))

        assert pipeline.contexts["f1.mkv"][:2] == ("01", "F01")
        assert pipeline.contexts["f10.mkv"][:2] == ("01", "F10")
        assert pipeline.contexts["f10.mkv"][2] == "/media/f10.mkv"

    def test_interrupt_stops_batch(self):
        pipeline = StubPipeline({"f2.mkv": KeyboardInterrupt()})
        stop_event = threading.Event()

        summary = run_batch(pipeline, paths(3), stop_event=stop_event)

        assert summary.interrupted
        assert stop_event.is_set()
        assert summary.total == 1
        assert "f3.mkv" not in pipeline.contexts

    def test_empty(self):
        summary = run_batch(StubPipeline(), [])

        assert summary.total == 0
        assert summary.majority_encoder is None

    def test_callback_per_result(self):
        seen: list[Path] = []

        run_batch(StubPipeline(), paths(3), on_result=lambda r: seen.append(r.source))

        assert seen == paths(3)


class TestParallel:
    def test_every_file_counted_once(self):
        pipeline = StubPipeline({"f2.mkv": "fail", "f5.mkv": "skip"})
        seen: list[str] = []

        summary = run_batch(
            pipeline,
            paths(6),
            workers=3,
            on_result=lambda r: seen.append(r.source.name),
        )

        assert (summary.success, summary.failed, summary.skipped) == (4, 1, 1)
        assert sorted(seen) == sorted(p.name for p in paths(6))
        assert not summary.interrupted

    def test_worker_ids_rotate(self):
        pipeline = StubPipeline()

        run_batch(pipeline, paths(5), workers=2)

        ids = {name: ctx[:2] for name, ctx in pipeline.contexts.items()}
        assert ids["f1.mkv"] == ("01", "F1")
        assert ids["f2.mkv"] == ("02", "F2")
        assert ids["f3.mkv"] == ("01", "F3")
        assert ids["f5.mkv"] == ("01", "F5")

    def test_workers_capped_by_file_count(self):
        pipeline = StubPipeline()

        run_batch(pipeline, paths(2), workers=8)

        worker_ids = {ctx[0] for ctx in pipeline.contexts.values()}
        assert worker_ids == {"01", "02"}

    def test_unexpected_worker_error_is_failure(self):
        pipeline = StubPipeline({"f2.mkv": RuntimeError("worker crashed")})

        summary = run_batch(pipeline, paths(3), workers=2)

        assert summary.failed == 1
        assert summary.success == 2
        failed = [r for r in summary.results if not r.success]
        assert failed[0].message == "Unexpected error: worker crashed"

    def test_runs_concurrently(self):
        """Two workers overlap: both files reach the barrier together."""
        barrier = threading.Barrier(2, timeout=5)

        class BarrierPipeline(StubPipeline):
            def process_file(self, source):
                barrier.wait()
                return super().process_file(source)

        summary = run_batch(BarrierPipeline(), paths(2), workers=2)

        assert summary.success == 2

    def test_interrupt_records_running_conversions(self):
        """Files still converting at Ctrl-C are stopped, then counted."""
        stop_event = threading.Event()
        barrier = threading.Barrier(3, timeout=5)

        class InterruptedPipeline(StubPipeline):
            def process_file(self, source):
                barrier.wait()
                if source.name == "f1.mkv":
                    raise KeyboardInterrupt
                # Stands in for the runner killing ffmpeg on the stop event
                assert stop_event.wait(timeout=5)
                return super().process_file(source)

        summary = run_batch(
            InterruptedPipeline(), paths(3), workers=3, stop_event=stop_event
        )

        assert summary.interrupted
        assert stop_event.is_set()
        assert summary.success == 2
        assert sorted(r.source.name for r in summary.results) == ["f2.mkv", "f3.mkv"]

    def test_set_stop_event_starts_nothing(self):
        pipeline = StubPipeline()
        stop_event = threading.Event()
        stop_event.set()

        summary = run_batch(pipeline, paths(4), workers=2, stop_event=stop_event)

        assert summary.total == 0
        assert pipeline.contexts == {}
