from __future__ import annotations

import io
import logging
from pathlib import Path
from typing import BinaryIO, Optional, Protocol

import piexif
import pillow_heif
import rawpy
from PIL import Image, ImageOps, UnidentifiedImageError


logger = logging.getLogger(__name__)

# HEIC/HEIF become regular Pillow formats.
pillow_heif.register_heif_opener()


JPEG_FORMAT = "JPEG"
RAW_FORMAT = "RAW"

# Multi-picture JPEGs from cameras are still plain JPEG data.
JPEG_ALIASES = {"JPEG", "MPO"}

# Camera RAW containers handed to LibRaw first.
RAW_EXTS = {
    ".3fr", ".arw", ".cr2", ".cr3", ".crw", ".dcr", ".dng", ".erf", ".iiq",
    ".k25", ".kdc", ".mef", ".mos", ".mrw", ".nef", ".nrw", ".orf", ".pef",
    ".raf", ".raw", ".rw2", ".rwl", ".sr2", ".srf", ".srw", ".x3f",
}

DEFAULT_JPEG_QUALITY = 90
THUMBNAIL_SIZE = (160, 120)
THUMBNAIL_QUALITY = 75

# Library errors that mean "this data cannot be decoded/encoded".
_PIL_ERRORS = (UnidentifiedImageError, Image.DecompressionBombError, ValueError, SyntaxError, EOFError)


class CodecError(Exception):
    """A decode or encode step failed inside the image library."""


class CodecService(Protocol):
    """Synchronous image codec used by the conversion pipeline."""

    JPEG_IDENTITY: str

    def probe(self, stream: BinaryIO) -> str:
        """Return the format identity of the image in stream. Raises CodecError."""
        ...

    def decode(self, stream: BinaryIO) -> Image.Image:
        """Fully decode stream into a normalized RGB bitmap. Raises CodecError."""
        ...

    def encode_as_jpeg(self, bitmap: Image.Image, stream: BinaryIO, generate_thumbnail: bool = True) -> None:
        ...


class PillowCodecService:
    """
    Codec backed by Pillow, with two extensions:
      - pillow-heif for HEIC/HEIF
      - rawpy (LibRaw) for camera RAW files, picked by file extension

    RAW-looking files that LibRaw rejects fall back to Pillow, so a JPEG saved
    as photo.CR2 is still recognized as JPEG.
    """

    JPEG_IDENTITY = JPEG_FORMAT

    def __init__(self, jpeg_quality: int = DEFAULT_JPEG_QUALITY) -> None:
        self.jpeg_quality = int(jpeg_quality)

    # ---------------- probe ----------------
    def probe(self, stream: BinaryIO) -> str:
        if _looks_raw(stream):
            raw = _open_raw(stream)
            if raw is not None:
                raw.close()
                return RAW_FORMAT

        try:
            with Image.open(stream) as im:
                fmt = (im.format or "").upper()
        except (OSError, *_PIL_ERRORS) as exc:
            raise CodecError(f"unrecognized image data: {exc}") from exc

        if fmt in JPEG_ALIASES:
            return JPEG_FORMAT
        return fmt

    # ---------------- decode ----------------
    def decode(self, stream: BinaryIO) -> Image.Image:
        if _looks_raw(stream):
            raw = _open_raw(stream)
            if raw is not None:
                with raw:
                    try:
                        rgb = raw.postprocess(use_camera_wb=True, output_bps=8)
                    except rawpy.LibRawError as exc:
                        raise CodecError(f"RAW decode failed: {exc}") from exc
                return Image.fromarray(rgb)

        try:
            with Image.open(stream) as im:
                im.load()
                return _normalize(im)
        except _PIL_ERRORS as exc:
            raise CodecError(f"decode failed: {exc}") from exc

    # ---------------- encode ----------------
    def encode_as_jpeg(self, bitmap: Image.Image, stream: BinaryIO, generate_thumbnail: bool = True) -> None:
        save_kwargs: dict = {
            "quality": self.jpeg_quality,
            "optimize": True,
        }
        try:
            if generate_thumbnail:
                save_kwargs["exif"] = _thumbnail_exif(bitmap)

            # Pillow chooses encoder by format=... not extension
            bitmap.save(stream, format=JPEG_FORMAT, **save_kwargs)
        except (ValueError, KeyError, piexif.InvalidImageDataError) as exc:
            raise CodecError(f"JPEG encode failed: {exc}") from exc


_default_codec: Optional[PillowCodecService] = None


def default_codec() -> PillowCodecService:
    global _default_codec
    if _default_codec is None:
        _default_codec = PillowCodecService()
    return _default_codec


def _looks_raw(stream: BinaryIO) -> bool:
    name = getattr(stream, "name", None)
    if not isinstance(name, str):
        return False
    return Path(name).suffix.lower() in RAW_EXTS


def _open_raw(stream: BinaryIO) -> Optional["rawpy.RawPy"]:
    """Open stream with LibRaw, or rewind it and return None if LibRaw refuses it."""
    start = stream.tell()
    try:
        return rawpy.imread(stream)
    except rawpy.LibRawError as exc:
        logger.debug("LibRaw rejected %s: %s", getattr(stream, "name", "<stream>"), exc)
        stream.seek(start)
        return None


def _normalize(im: Image.Image) -> Image.Image:
    # Bake EXIF orientation into pixels; the new file carries no orientation tag.
    im = ImageOps.exif_transpose(im)

    if _has_alpha(im):
        return _flatten_alpha(im, (255, 255, 255))
    if im.mode != "RGB":
        return im.convert("RGB")
    return im


def _flatten_alpha(im: Image.Image, background_rgb: tuple[int, int, int]) -> Image.Image:
    # Ensure we are in RGBA so alpha exists
    rgba = im.convert("RGBA")
    bg = Image.new("RGBA", rgba.size, background_rgb + (255,))
    comp = Image.alpha_composite(bg, rgba)
    return comp.convert("RGB")


def _has_alpha(im: Image.Image) -> bool:
    if im.mode in ("RGBA", "LA", "PA"):
        return True
    if im.mode == "P" and "transparency" in im.info:
        return True
    return False


def _thumbnail_exif(bitmap: Image.Image) -> bytes:
    """EXIF block carrying only resolution tags and a small JPEG thumbnail (IFD1)."""
    thumb = bitmap.copy()
    try:
        thumb.thumbnail(THUMBNAIL_SIZE, Image.Resampling.LANCZOS)
        buf = io.BytesIO()
        thumb.convert("RGB").save(buf, format=JPEG_FORMAT, quality=THUMBNAIL_QUALITY)
    finally:
        thumb.close()

    resolution = {
        piexif.ImageIFD.XResolution: (72, 1),
        piexif.ImageIFD.YResolution: (72, 1),
        piexif.ImageIFD.ResolutionUnit: 2,
    }
    exif_dict = {
        "0th": dict(resolution),
        "Exif": {},
        "GPS": {},
        "Interop": {},
        "1st": {piexif.ImageIFD.Compression: 6, **resolution},
        "thumbnail": buf.getvalue(),
    }
    return piexif.dump(exif_dict)
