from __future__ import annotations

from pathlib import Path

import pytest

from tojpg.settings import ConfigurationError, ConversionRequest, prepare_output_folder


def test_defaults_keep_output_next_to_source() -> None:
    cfg = ConversionRequest()

    assert cfg.output_folder is None
    assert prepare_output_folder(cfg) is None


def test_missing_output_folder_is_created(tmp_path: Path) -> None:
    target = tmp_path / "a" / "b"

    folder = prepare_output_folder(ConversionRequest(output_folder=target))

    assert target.is_dir()
    assert folder == target.resolve()


def test_output_folder_must_be_a_directory(tmp_path: Path) -> None:
    blocker = tmp_path / "file"
    blocker.write_text("x")

    with pytest.raises(ConfigurationError, match="not a directory"):
        prepare_output_folder(ConversionRequest(output_folder=blocker))


def test_request_is_immutable() -> None:
    cfg = ConversionRequest()

    with pytest.raises(AttributeError):
        cfg.fix_extension_if_jpeg = True  # type: ignore[misc]
