"""Shared fixtures."""

from pathlib import Path

import pytest

from helpers import make_site


@pytest.fixture
def www(tmp_path) -> Path:
    """A directory deep enough that compose searches stay inside tmp_path."""
    path = tmp_path / "srv" / "www" / "html"
    path.mkdir(parents=True)
    return path


@pytest.fixture
def site(www) -> Path:
    return make_site(www)
