import copy

import pytest

from liquidity_paths.core import config as lp_config


def pytest_configure(config):
    config.addinivalue_line("markers", "smoke: mark test as a smoke test")
    config.addinivalue_line(
        "markers", "integration: test talks to a live RPC or price API"
    )


def pytest_collection_modifyitems(config, items):
    for item in items:
        if "smoke" in item.nodeid:
            item.add_marker(pytest.mark.smoke)
        if "integration" in item.nodeid:
            item.add_marker(pytest.mark.integration)


@pytest.fixture
def restore_global_config():
    """Snapshot the module-level CONFIG and put it back after the test."""
    original = copy.deepcopy(lp_config.CONFIG)
    yield lp_config
    lp_config.set_config(original)
