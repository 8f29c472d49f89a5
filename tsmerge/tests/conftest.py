from __future__ import annotations

from pathlib import Path

import pytest

from tsmerge.pipeline import SourceText

FIXTURES = Path(__file__).with_name("fixtures")


@pytest.fixture
def fixture_source():
    """Load a `.ts` file from tests/fixtures as a SourceText."""

    def load(name: str) -> SourceText:
        return SourceText.from_path(FIXTURES / name)

    return load
