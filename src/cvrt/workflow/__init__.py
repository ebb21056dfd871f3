"""Batch workflow: discovery, per-file pipeline, results and the worker pool."""

from cvrt.workflow.batch import run_batch
from cvrt.workflow.discovery import discover_files, is_candidate
from cvrt.workflow.pipeline import ConversionPipeline, output_path_for
from cvrt.workflow.results import BatchStats, BatchSummary, FileResult, FileStatus

__all__ = [
    "BatchStats",
    "BatchSummary",
    "ConversionPipeline",
    "FileResult",
    "FileStatus",
    "discover_files",
    "is_candidate",
    "output_path_for",
    "run_batch",
]
