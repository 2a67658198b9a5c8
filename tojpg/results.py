from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import List, Optional


class CodecIdentity(str, Enum):
    JPEG = "jpeg"
    OTHER = "other"


class Action(str, Enum):
    RENAME_IN_PLACE = "rename_in_place"
    COPY_VERBATIM = "copy_verbatim"
    SKIP = "skip"
    TRANSCODE = "transcode"


class ConversionStatus(str, Enum):
    SUCCESS = "success"
    UNSUPPORTED = "unsupported"
    FAILURE = "failure"


@dataclass(frozen=True)
class ProbedImage:
    """What we learned about one source file from its header."""
    source_path: Path
    original_extension: str  # ".CR2", "" if none
    original_base_name: str  # file name without its last extension
    codec_identity: CodecIdentity
    codec_format: str = ""  # format name reported by the codec, e.g. "PNG"

    @property
    def original_name(self) -> str:
        return self.source_path.name


@dataclass(frozen=True)
class OutputPlan:
    output_folder: Path
    output_file_name: str
    action: Action

    @property
    def output_path(self) -> Path:
        return self.output_folder / self.output_file_name


@dataclass(frozen=True)
class ConversionResult:
    """
    Output of processing a single file.

    Keeping it immutable (frozen=True) makes it easier to reason about.
    """
    src_path: Path
    status: ConversionStatus
    action: Optional[Action] = None
    out_path: Optional[Path] = None  # None unless status is SUCCESS
    error: Optional[str] = None  # full error detail for FAILURE
    reason: Optional[str] = None  # why a file is UNSUPPORTED

    @classmethod
    def success(cls, src_path: Path, out_path: Path, action: Action) -> "ConversionResult":
        return cls(src_path=src_path, status=ConversionStatus.SUCCESS, action=action, out_path=out_path)

    @classmethod
    def unsupported(cls, src_path: Path, reason: str) -> "ConversionResult":
        return cls(src_path=src_path, status=ConversionStatus.UNSUPPORTED, reason=reason)

    @classmethod
    def failure(cls, src_path: Path, error: str, action: Optional[Action] = None) -> "ConversionResult":
        return cls(src_path=src_path, status=ConversionStatus.FAILURE, action=action, error=error)

    @property
    def ok(self) -> bool:
        return self.status is ConversionStatus.SUCCESS


@dataclass(frozen=True)
class SucceededEntry:
    src_path: Path
    out_path: Path
    action: Action


@dataclass(frozen=True)
class FailedEntry:
    src_path: Path
    error: str


@dataclass
class BatchOutcome:
    """
    Accumulated results of a batch, in input order.

    Only the batch runner appends to it (via record()).
    Unsupported files are kept apart: they are neither successes nor failures.
    """
    succeeded: List[SucceededEntry] = field(default_factory=list)
    failed: List[FailedEntry] = field(default_factory=list)
    unsupported: List[Path] = field(default_factory=list)

    def record(self, result: ConversionResult) -> None:
        if result.status is ConversionStatus.SUCCESS:
            self.succeeded.append(
                SucceededEntry(src_path=result.src_path, out_path=result.out_path, action=result.action)
            )
        elif result.status is ConversionStatus.FAILURE:
            self.failed.append(FailedEntry(result.src_path, result.error or "unknown error"))
        else:
            self.unsupported.append(result.src_path)

    @property
    def actions(self) -> List[Action]:
        return [e.action for e in self.succeeded]
