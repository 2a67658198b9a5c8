from __future__ import annotations

import logging
import os
import shutil
import tempfile
from pathlib import Path
from typing import Optional

from .codec import CodecError, CodecService, default_codec
from .naming import OUTPUT_EXT, plan
from .results import Action, CodecIdentity, ConversionResult, OutputPlan, ProbedImage
from .settings import ConversionRequest


logger = logging.getLogger(__name__)

# Errors that turn a recognized image into a recorded failure.
CONVERSION_ERRORS = (OSError, CodecError)


def convert_one(
    path: Path,
    cfg: ConversionRequest,
    codec: Optional[CodecService] = None,
) -> ConversionResult:
    """
    Convert a single file according to cfg.

    Never raises for expected problems:
      - not a file / not an image -> ConversionResult.unsupported
      - I/O or codec error on a recognized image -> ConversionResult.failure
    """
    codec = codec or default_codec()

    try:
        src_path = Path(path).expanduser().resolve(strict=True)
    except (OSError, RuntimeError):
        return ConversionResult.unsupported(Path(path), reason="not_found")

    if not src_path.is_file():
        return ConversionResult.unsupported(src_path, reason="not_a_file")

    try:
        stream = src_path.open("rb")
    except OSError as exc:
        logger.debug("Cannot open %s: %s", src_path, exc)
        return ConversionResult.unsupported(src_path, reason="unreadable")

    with stream:
        try:
            codec_format = codec.probe(stream)
        except CONVERSION_ERRORS as exc:
            logger.debug("Probe failed for %s: %s", src_path, exc)
            return ConversionResult.unsupported(src_path, reason="not_an_image")

        probed = ProbedImage(
            source_path=src_path,
            original_extension=src_path.suffix,
            original_base_name=src_path.stem,
            codec_identity=_classify(codec_format, codec),
            codec_format=codec_format,
        )
        out_plan = plan(probed, cfg)

        try:
            out_path = _execute(out_plan, probed, stream, codec)
        except CONVERSION_ERRORS as exc:
            return ConversionResult.failure(src_path, _describe(exc), action=out_plan.action)

    return ConversionResult.success(src_path, out_path, out_plan.action)


def _classify(codec_format: str, codec: CodecService) -> CodecIdentity:
    if codec_format == codec.JPEG_IDENTITY:
        return CodecIdentity.JPEG
    return CodecIdentity.OTHER


def _execute(out_plan: OutputPlan, probed: ProbedImage, stream, codec: CodecService) -> Path:
    src_path = probed.source_path
    out_path = out_plan.output_path

    if out_plan.action is Action.SKIP:
        return src_path

    if out_plan.action is Action.RENAME_IN_PLACE:
        _rename_in_place(src_path, out_path)
        return out_path

    if out_plan.action is Action.COPY_VERBATIM:
        if out_path != src_path:
            shutil.copyfile(src_path, out_path)
        return out_path

    # TRANSCODE: pixel data is only loaded now, never for skip/rename/copy.
    if out_path == src_path:
        raise FileExistsError(f"Refusing to replace the source with its own conversion: {out_path}")

    stream.seek(0)
    with codec.decode(stream) as bitmap:
        _write_jpeg(bitmap, out_path, codec)
    return out_path


def _rename_in_place(src_path: Path, out_path: Path) -> None:
    if out_path == src_path:
        return

    # Path.rename would silently replace an existing file on POSIX.
    if out_path.exists() and not _same_file(src_path, out_path):
        raise FileExistsError(f"Cannot rename, target already exists: {out_path}")

    src_path.rename(out_path)


def _same_file(a: Path, b: Path) -> bool:
    try:
        return os.path.samefile(a, b)
    except OSError:
        return False


def _write_jpeg(bitmap, out_path: Path, codec: CodecService) -> None:
    """
    Encode to a temp file in the destination folder, then move it into place.

    An existing destination is overwritten; a failed encode never leaves a
    partially written destination behind.
    """
    out_dir = out_path.parent
    fd, tmp_name = tempfile.mkstemp(prefix="tojpg_", suffix=OUTPUT_EXT, dir=str(out_dir))
    tmp_path = Path(tmp_name)

    try:
        with os.fdopen(fd, "wb") as dst:
            codec.encode_as_jpeg(bitmap, dst, generate_thumbnail=True)
            dst.flush()
            os.fsync(dst.fileno())
        # mkstemp creates 0600; give the result the usual umask-based mode
        os.chmod(tmp_path, 0o666 & ~_current_umask())
        tmp_path.replace(out_path)
    except BaseException:
        tmp_path.unlink(missing_ok=True)
        raise


def _current_umask() -> int:
    mask = os.umask(0)
    os.umask(mask)
    return mask


def _describe(exc: BaseException) -> str:
    detail = f"{type(exc).__name__}: {exc}"
    cause = exc.__cause__
    if cause is not None:
        detail += f" (caused by {type(cause).__name__}: {cause})"
    return detail
