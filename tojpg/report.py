from __future__ import annotations

import csv
import json
from dataclasses import asdict, dataclass, fields
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional

from .batch import BatchSummary
from .results import BatchOutcome, ConversionStatus


@dataclass(frozen=True)
class FileReport:
    src_path: str
    status: str
    action: Optional[str]
    out_path: Optional[str]
    error: Optional[str]


@dataclass(frozen=True)
class BatchReport:
    created_utc: str
    summary: dict
    files: List[FileReport]


def build_report(outcome: BatchOutcome, summary: BatchSummary) -> BatchReport:
    created_utc = datetime.now(timezone.utc).isoformat(timespec="seconds").replace("+00:00", "Z")

    files: List[FileReport] = []
    for s in outcome.succeeded:
        files.append(
            FileReport(
                src_path=str(s.src_path),
                status=ConversionStatus.SUCCESS.value,
                action=s.action.value,
                out_path=str(s.out_path),
                error=None,
            )
        )
    for f in outcome.failed:
        files.append(
            FileReport(
                src_path=str(f.src_path),
                status=ConversionStatus.FAILURE.value,
                action=None,
                out_path=None,
                error=f.error,
            )
        )
    for p in outcome.unsupported:
        files.append(
            FileReport(
                src_path=str(p),
                status=ConversionStatus.UNSUPPORTED.value,
                action=None,
                out_path=None,
                error=None,
            )
        )

    summary_dict = asdict(summary)
    summary_dict["succeeded"] = summary.succeeded

    return BatchReport(created_utc=created_utc, summary=summary_dict, files=files)


def save_report_json(report: BatchReport, path: Path) -> None:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    with path.open("w", encoding="utf-8") as f:
        json.dump(asdict(report), f, indent=2, ensure_ascii=False)


def save_report_csv(report: BatchReport, path: Path) -> None:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    columns = [f.name for f in fields(FileReport)]
    with path.open("w", encoding="utf-8", newline="") as f:
        writer = csv.DictWriter(f, fieldnames=columns)
        writer.writeheader()
        for row in report.files:
            writer.writerow(asdict(row))
