"""Pytest configuration and fixtures."""

import pytest

from services.screenshot_renamer.src.config import DEFAULT_CATEGORIES

# Smallest valid PNG: 1x1 transparent pixel
PNG_BYTES = bytes.fromhex(
    "89504e470d0a1a0a0000000d49484452000000010000000108060000001f15c489"
    "0000000d49444154789c6360000002000001e221bc330000000049454e44ae426082"
)


@pytest.fixture
def png_bytes():
    """Provide the bytes of a tiny PNG image."""
    return PNG_BYTES


@pytest.fixture
def categories():
    """Provide the default category set."""
    return dict(DEFAULT_CATEGORIES)


@pytest.fixture
def screenshot_dirs(tmp_path):
    """Create watch, output and backup directories like the bootstrap step does."""
    watch_dir = tmp_path / "Desktop"
    output_dir = watch_dir / "Screenshots"
    backup_dir = output_dir / "original"
    for name in DEFAULT_CATEGORIES:
        (output_dir / name).mkdir(parents=True)
    backup_dir.mkdir(parents=True)
    return {"watch": watch_dir, "output": output_dir, "backup": backup_dir}


# Pytest configuration
def pytest_configure(config):
    """Configure pytest with custom markers and settings."""
    config.addinivalue_line("markers", "integration: marks tests as integration tests")
    config.addinivalue_line("markers", "unit: marks tests as unit tests (default)")


def pytest_collection_modifyitems(config, items):
    """Modify test collection to add markers automatically."""
    for item in items:
        if "integration" in str(item.fspath):
            item.add_marker(pytest.mark.integration)
        else:
            item.add_marker(pytest.mark.unit)
