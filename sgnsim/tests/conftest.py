"""
Fixtures and hooks used by the pytest test suite.
"""
import pytest

from sgnsim.config import default_config
from sgnsim.core.preferences import prefs


def pytest_configure(config):
    config.addinivalue_line(
        "markers", "long: tests that run complete simulations and take a while"
    )


@pytest.fixture(autouse=True)
def restore_preferences():
    prefs._backup()
    yield None
    prefs._restore()


@pytest.fixture
def config():
    return default_config()


@pytest.fixture
def short_config():
    # A small neuron and a short run, fast enough for unit tests
    cfg = default_config()
    return cfg.replace(
        dendrite=cfg.dendrite.replace(n_nodes=2),
        axon=cfg.axon.replace(n_nodes=6),
    ).with_simulation(
        tstop=2.0,
        dt=0.005,
        recording_sites=(("soma", "node", 0), ("axon", "node", 0), ("axon", "node", 5)),
    ).with_stimulus(delay=0.5, pulse_width=0.1)
