from __future__ import annotations

from .results import Action, CodecIdentity, OutputPlan, ProbedImage
from .settings import ConversionRequest


JPEG_EXTS = {".jpg", ".jpeg"}
OUTPUT_EXT = ".jpg"


def extension_needs_fix(probed: ProbedImage, cfg: ConversionRequest) -> bool:
    return (
        probed.codec_identity is CodecIdentity.JPEG
        and cfg.fix_extension_if_jpeg
        and probed.original_extension.lower() not in JPEG_EXTS
    )


def plan(probed: ProbedImage, cfg: ConversionRequest) -> OutputPlan:
    """
    Decide where a probed file goes and what happens to it.

    Pure: no filesystem access, never raises.

    Non-JPEG sources are always transcoded:
      photo.CR2 -> photo.CR2.jpg  (or photo.jpg with remove_original_extension)

    JPEG sources are never re-encoded. In order of precedence:
      - output_unconverted + output_folder -> verbatim copy into the folder
      - wrong extension + fix_extension_if_jpeg -> rename in place
      - otherwise -> skip
    """
    source_folder = probed.source_path.parent
    folder = cfg.output_folder if cfg.output_folder is not None else source_folder

    if probed.codec_identity is CodecIdentity.OTHER:
        return OutputPlan(
            output_folder=folder,
            output_file_name=_transcode_base_name(probed, cfg) + OUTPUT_EXT,
            action=Action.TRANSCODE,
        )

    needs_fix = extension_needs_fix(probed, cfg)
    if needs_fix:
        name = probed.original_base_name + OUTPUT_EXT
    else:
        name = probed.original_name

    if cfg.output_unconverted and cfg.output_folder is not None:
        return OutputPlan(output_folder=folder, output_file_name=name, action=Action.COPY_VERBATIM)

    if needs_fix:
        # Renames never leave the source folder.
        return OutputPlan(output_folder=source_folder, output_file_name=name, action=Action.RENAME_IN_PLACE)

    return OutputPlan(output_folder=source_folder, output_file_name=name, action=Action.SKIP)


def _transcode_base_name(probed: ProbedImage, cfg: ConversionRequest) -> str:
    if cfg.remove_original_extension:
        return probed.original_base_name
    return probed.original_name
