"""Shared fixtures: real Pillow images on disk and an in-memory fake codec."""

from __future__ import annotations

from pathlib import Path
from typing import BinaryIO, Callable, List, Optional

import pytest
from PIL import Image

from tojpg.codec import CodecError


@pytest.fixture
def make_image(tmp_path: Path) -> Callable[..., Path]:
    """Write a small real image and return its path."""

    def _make(
        name: str,
        fmt: str = "PNG",
        mode: str = "RGB",
        size: tuple[int, int] = (32, 24),
        folder: Optional[Path] = None,
    ) -> Path:
        folder = folder or tmp_path
        folder.mkdir(parents=True, exist_ok=True)
        path = folder / name
        color = (200, 30, 30, 128) if mode == "RGBA" else (200, 30, 30)
        with Image.new(mode, size, color) as im:
            im.save(path, format=fmt)
        return path

    return _make


class FakeBitmap:
    def __init__(self, source: str) -> None:
        self.source = source
        self.closed = False

    def __enter__(self) -> "FakeBitmap":
        return self

    def __exit__(self, *exc: object) -> None:
        self.closed = True


class FakeCodec:
    """
    Recognizes files by their first bytes:
      b"JPEG..." -> JPEG, b"IMG..." -> PNG, anything else -> CodecError.

    Records every stream and bitmap it sees so tests can check release.
    """

    JPEG_IDENTITY = "JPEG"

    def __init__(
        self,
        encode_error: Optional[BaseException] = None,
        decode_error: Optional[BaseException] = None,
    ) -> None:
        self.encode_error = encode_error
        self.decode_error = decode_error
        self.streams: List[BinaryIO] = []
        self.bitmaps: List[FakeBitmap] = []
        self.probed: List[str] = []
        self.decoded: List[str] = []

    def probe(self, stream: BinaryIO) -> str:
        self.streams.append(stream)
        self.probed.append(stream.name)
        head = stream.read(4)
        if head == b"JPEG":
            return "JPEG"
        if head[:3] == b"IMG":
            return "PNG"
        raise CodecError("unrecognized image data")

    def decode(self, stream: BinaryIO) -> FakeBitmap:
        self.decoded.append(stream.name)
        if self.decode_error is not None:
            raise self.decode_error
        bitmap = FakeBitmap(stream.read().decode("ascii"))
        self.bitmaps.append(bitmap)
        return bitmap

    def encode_as_jpeg(self, bitmap: FakeBitmap, stream: BinaryIO, generate_thumbnail: bool = True) -> None:
        stream.write(b"JPEG")
        if self.encode_error is not None:
            raise self.encode_error
        stream.write(("<" + bitmap.source + ">").encode("ascii"))

    def all_released(self) -> bool:
        return all(s.closed for s in self.streams) and all(b.closed for b in self.bitmaps)


@pytest.fixture
def fake_codec() -> FakeCodec:
    return FakeCodec()


def write_fake(folder: Path, name: str, content: bytes) -> Path:
    folder.mkdir(parents=True, exist_ok=True)
    path = folder / name
    path.write_bytes(content)
    return path
