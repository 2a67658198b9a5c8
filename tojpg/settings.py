from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional


logger = logging.getLogger(__name__)


class ConfigurationError(ValueError):
    """Raised before a batch starts when the configuration cannot be used."""


@dataclass(frozen=True)
class ConversionRequest:
    """
    User-configurable knobs for a conversion batch.

    Built once (from CLI flags or defaults) and reused for every file.
    Pure data object, no logic.
    """

    # ----- Output handling -----
    # None means "next to the source file".
    output_folder: Optional[Path] = None

    # ----- Already-JPEG files -----
    # photo.jpe (JPEG data) -> photo.jpg
    fix_extension_if_jpeg: bool = False
    # Copy JPEG files that need no conversion into output_folder too.
    output_unconverted: bool = False

    # ----- Naming -----
    # photo.png -> photo.jpg instead of photo.png.jpg
    remove_original_extension: bool = False


def prepare_output_folder(cfg: ConversionRequest) -> Optional[Path]:
    """
    Make sure the configured output folder exists before any file is touched.

    Returns the absolute folder, or None when output goes next to each source.
    Raises ConfigurationError if the folder cannot be used.
    """
    if cfg.output_folder is None:
        return None

    folder = Path(cfg.output_folder).expanduser()

    if folder.exists() and not folder.is_dir():
        raise ConfigurationError(f"Output folder is not a directory: {folder}")

    try:
        folder.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise ConfigurationError(f"Cannot create output folder {folder}: {exc}") from exc

    logger.debug("Output folder ready: %s", folder)
    return folder.resolve()
