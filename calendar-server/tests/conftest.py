"""Shared fixtures: temporary config/holiday files and the built-in font."""

from datetime import timezone

import pytest
import yaml
from PIL import ImageFont


@pytest.fixture
def write_config(tmp_path):
    """Write a YAML config mapping to tmp_path and return its path."""

    def _write(data, name="config.yaml"):
        path = tmp_path / name
        path.write_text(yaml.safe_dump(data, allow_unicode=True), encoding="utf-8")
        return str(path)

    return _write


@pytest.fixture
def holiday_file(tmp_path):
    path = tmp_path / "holidays.csv"
    path.write_text(
        "2025/1/1,元日\n"
        "not a date\n"
        "2025/x/3,broken\n"
        "2025-2-11,建国記念の日\n",
        encoding="utf-8",
    )
    return str(path)


@pytest.fixture
def faces():
    font = ImageFont.load_default()
    return (font, font)


@pytest.fixture
def utc():
    return timezone.utc
