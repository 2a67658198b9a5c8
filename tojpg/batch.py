from __future__ import annotations

import logging
import threading
import traceback
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Callable, Optional, Sequence

from .codec import CodecService, default_codec
from .engine import convert_one
from .results import Action, BatchOutcome, ConversionResult, ConversionStatus
from .settings import ConversionRequest, prepare_output_folder


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BatchSummary:
    total_files: int
    transcoded: int
    copied: int
    renamed: int
    skipped: int
    failed: int
    unsupported: int

    @property
    def succeeded(self) -> int:
        return self.transcoded + self.copied + self.renamed + self.skipped


def run_batch(
    paths: Sequence[Path],
    cfg: ConversionRequest,
    codec: Optional[CodecService] = None,
    progress_callback: Optional[Callable[[int, int], None]] = None,
    cancel_event: Optional[threading.Event] = None,
) -> BatchOutcome:
    """
    Convert every path in input order and collect the outcome.

    A problem with one file never stops the batch. Only an unusable
    configuration (ConfigurationError) aborts, and it does so before the
    first file is touched.
    """
    output_folder = prepare_output_folder(cfg)
    if output_folder is not None:
        cfg = replace(cfg, output_folder=output_folder)

    codec = codec or default_codec()
    outcome = BatchOutcome()
    total = len(paths)

    for idx, path in enumerate(paths, start=1):
        # Checked between files only; a file is never left half written.
        if cancel_event and cancel_event.is_set():
            logger.warning("Cancelled after %d of %d files", idx - 1, total)
            break

        if progress_callback:
            progress_callback(idx, total)

        try:
            result = convert_one(Path(path), cfg, codec)
        except Exception:
            result = ConversionResult.failure(Path(path), traceback.format_exc().rstrip())

        outcome.record(result)
        _log_result(idx, total, result)

    _log_failures(outcome)
    return outcome


def summarize(outcome: BatchOutcome) -> BatchSummary:
    counts = {action: 0 for action in Action}
    for entry in outcome.succeeded:
        counts[entry.action] += 1

    return BatchSummary(
        total_files=len(outcome.succeeded) + len(outcome.failed) + len(outcome.unsupported),
        transcoded=counts[Action.TRANSCODE],
        copied=counts[Action.COPY_VERBATIM],
        renamed=counts[Action.RENAME_IN_PLACE],
        skipped=counts[Action.SKIP],
        failed=len(outcome.failed),
        unsupported=len(outcome.unsupported),
    )


def _log_result(idx: int, total: int, r: ConversionResult) -> None:
    prefix = f"[{idx}/{total}] {r.src_path}"

    if r.status is ConversionStatus.SUCCESS:
        if r.action is Action.SKIP or r.action is None:
            logger.info("%s: skip (already JPEG)", prefix)
        else:
            logger.info("%s: %s -> %s", prefix, r.action.value, r.out_path)
    elif r.status is ConversionStatus.UNSUPPORTED:
        logger.warning("%s: unsupported (%s)", prefix, r.reason)
    else:
        logger.error("%s: FAILED", prefix)


def _log_failures(outcome: BatchOutcome) -> None:
    if not outcome.failed:
        return

    logger.error("%d file(s) failed to convert:", len(outcome.failed))
    for entry in outcome.failed:
        logger.error("  %s\n    %s", entry.src_path, entry.error.replace("\n", "\n    "))
