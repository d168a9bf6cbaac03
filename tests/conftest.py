"""
Shared fixtures for the viewbind test suite.

Every test builds its own `ViewTree` from fastcore FT components and drives
it through a dedicated `BindingEngine`, so no state leaks between tests.
"""

import pytest

from viewbind import BindingEngine, EngineConfig, Environment, ViewTree


@pytest.fixture
def config() -> EngineConfig:
    return EngineConfig.for_environment(Environment.TESTING)


@pytest.fixture
def make_tree():
    def _make(*components) -> ViewTree:
        return ViewTree.from_ft(*components)
    return _make


@pytest.fixture
def make_engine(config):
    """Build a tree from FT components and start an engine on it."""
    engines = []

    def _make(*components, **kwargs) -> BindingEngine:
        tree = ViewTree.from_ft(*components)
        engine = BindingEngine(tree, config=kwargs.pop("config", config), **kwargs)
        engines.append(engine)
        return engine.start()

    yield _make

    for engine in engines:
        engine.stop()
