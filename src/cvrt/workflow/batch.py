"""Batch execution across a pool of worker threads."""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Sequence
from concurrent.futures import Future, ThreadPoolExecutor, as_completed
from pathlib import Path

from cvrt.logging.context import worker_context
from cvrt.workflow.pipeline import ConversionPipeline
from cvrt.workflow.results import BatchStats, BatchSummary, FileResult

logger = logging.getLogger(__name__)

ResultCallback = Callable[[FileResult], None]


def _convert_one(
    pipeline: ConversionPipeline,
    source: Path,
    stop_event: threading.Event,
    worker_id: str,
    file_id: str,
) -> FileResult | None:
    """Worker function; returns None when the batch was stopped first."""
    if stop_event.is_set():
        return None
    with worker_context(worker_id, file_id, source):
        logger.info("=== FILE %s: %s", file_id, source)
        return pipeline.process_file(source)


def _finished(future: Future[FileResult | None]) -> bool:
    """Completed with a result or an ordinary error, not cancelled or interrupted."""
    if not future.done() or future.cancelled():
        return False
    return not isinstance(future.exception(), KeyboardInterrupt)


def run_batch(
    pipeline: ConversionPipeline,
    files: Sequence[Path],
    workers: int = 1,
    on_result: ResultCallback | None = None,
    stop_event: threading.Event | None = None,
) -> BatchSummary:
    """Convert ``files`` with up to ``workers`` concurrent conversions.

    Every file that ran contributes exactly one result to the summary.
    Ctrl-C stops scheduling new files and sets ``stop_event``, which the
    process runner watches to kill encodes in flight. Conversions already
    running are waited for and recorded, and the summary is marked as
    interrupted.

    Args:
        pipeline: Shared per-file pipeline.
        files: Files to convert, in submission order.
        workers: Maximum concurrent conversions.
        on_result: Called with each result as it completes.
        stop_event: Shared with the process runner; a fresh event is used
            when omitted.
    """
    stats = BatchStats()
    stop_event = stop_event if stop_event is not None else threading.Event()
    effective_workers = max(1, min(workers, len(files) or 1))
    # e.g. 50 files -> F01-F50, 5000 files -> F0001-F5000
    file_id_width = len(str(len(files)))

    def record(result: FileResult) -> None:
        stats.record(result)
        if on_result is not None:
            on_result(result)

    if effective_workers == 1:
        try:
            for file_idx, source in enumerate(files, start=1):
                file_id = f"F{file_idx:0{file_id_width}d}"
                result = _convert_one(pipeline, source, stop_event, "01", file_id)
                if result is not None:
                    record(result)
        except KeyboardInterrupt:
            stop_event.set()
            logger.warning("Interrupted, stopping batch")
            return stats.summary(interrupted=True)
        return stats.summary()

    interrupted = False
    with ThreadPoolExecutor(max_workers=effective_workers) as executor:
        futures: dict[Future[FileResult | None], Path] = {}
        for file_idx, source in enumerate(files, start=1):
            # Worker ID is a logical slot, not the thread running the file
            worker_id = f"{((file_idx - 1) % effective_workers) + 1:02d}"
            file_id = f"F{file_idx:0{file_id_width}d}"
            future = executor.submit(
                _convert_one, pipeline, source, stop_event, worker_id, file_id
            )
            futures[future] = source

        unrecorded = dict(futures)

        def collect(future: Future[FileResult | None]) -> None:
            source = unrecorded.pop(future)
            try:
                result = future.result()
            except Exception as e:
                logger.exception("Unexpected error for %s", source)
                result = FileResult.failed(source, f"Unexpected error: {e}")
            if result is not None:
                record(result)

        try:
            for future in as_completed(futures):
                collect(future)
        except KeyboardInterrupt:
            stop_event.set()
            interrupted = True
            logger.warning("Interrupted, stopping active conversions")
            executor.shutdown(wait=True, cancel_futures=True)
            # Conversions that finished while stopping still count
            for future in list(unrecorded):
                if _finished(future):
                    collect(future)

    return stats.summary(interrupted=interrupted)
