from __future__ import annotations

import pytest

from tests._fixtures.graph_builder import GraphBuilder


@pytest.fixture
def graph() -> GraphBuilder:
    """Provide an empty in-memory type graph."""
    return GraphBuilder()
