"""
Pytest configuration and shared fixtures for the modsys test suite.

Most tests build package trees in memory (ResolutionContext.source_overlay)
to keep file I/O off the critical path; integration tests use tmp_path.
"""

import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))
from modsys.module_system import ResolutionContext
from modsys.utils.io_utils import read_resource

from tests.test_utils import ROOT, overlay


# =============================================================================
# Function-scoped fixtures
# =============================================================================

@pytest.fixture
def context():
    """Empty resolution context (every read falls through to the filesystem)."""
    return ResolutionContext()


@pytest.fixture
def counting_reader():
    """
    Reader that serves an in-memory tree and counts reads per location.

    Usage:
        reader = counting_reader({"package.json": "{}"})
        context = ResolutionContext(reader=reader)
        ...
        assert reader.counts[ROOT / "a.py"] == 1
    """
    def _make(files):
        sources = overlay(files)

        async def reader(location, encoding):
            reader.counts[location] = reader.counts.get(location, 0) + 1
            if location in sources:
                return sources[location]
            return await read_resource(location, encoding)

        reader.counts = {}
        return reader

    return _make


@pytest.fixture
def root_location():
    return ROOT
