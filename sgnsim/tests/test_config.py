import dataclasses

import pytest
from numpy.testing import assert_allclose

from sgnsim.config import (
    FH_PNABAR,
    ModelConfig,
    SimulationParameters,
    StimulusParameters,
    default_config,
)
from sgnsim.core.base import ConfigurationError


def test_default_config():
    config = default_config()
    assert config.dendrite.n_nodes == 5
    assert config.soma.n_nodes == 1
    assert config.axon.n_nodes == 21
    assert config.soma_variant == "A"
    assert config.stimulus.amplitude == -8.75
    assert config.stimulus.pulse_width == 0.05
    assert config.stimulus.delay == 1.0
    assert config.simulation.tstop == 10.0
    assert config.simulation.dt == 0.001
    assert config.simulation.n_steps == 10000
    assert [r.name for r in config.regions] == ["dendrite", "soma", "axon"]
    assert default_config("B").soma_variant == "B"


def test_config_is_immutable():
    config = default_config()
    with pytest.raises(dataclasses.FrozenInstanceError):
        config.soma_variant = "B"
    with pytest.raises(dataclasses.FrozenInstanceError):
        config.axon.n_nodes = 3


def test_replace():
    config = default_config()
    changed = config.with_stimulus(amplitude=-1.0)
    assert changed.stimulus.amplitude == -1.0
    assert config.stimulus.amplitude == -8.75
    assert changed.axon is config.axon

    shorter = config.with_simulation(tstop=2.0)
    assert shorter.simulation.n_steps == 2000
    warm = config.with_membrane(celsius=37.0)
    assert warm.membrane.celsius == 37.0

    axon = config.axon.replace(n_nodes=3)
    assert config.replace(axon=axon).axon.n_nodes == 3


def test_stin_length():
    axon = default_config().axon
    assert_allclose(axon.stin_length, (175.0 - 1.0 - 2 * 3.0 - 2 * 5.3) / 6)


def test_node_totals_reproduce_densities():
    axon = default_config().axon
    area = 3.141592653589793 * axon.node_diameter * axon.node_length * 1e-8
    assert_allclose(axon.pna_total / area, FH_PNABAR)


@pytest.mark.parametrize(
    "changes",
    [
        {"n_nodes": 0},
        {"fiber_diameter": 0.0},
        {"node_length": -1.0},
        {"lamellae": 0},
        {"space_flut": 0.0},
        {"internode_length": 10.0},  # no room left for the STIN compartments
        {"pna_total": -1e-10},
    ],
)
def test_invalid_region(changes):
    axon = default_config().axon
    with pytest.raises(ConfigurationError):
        axon.replace(**changes)


def test_invalid_model():
    config = default_config()
    with pytest.raises(ConfigurationError):
        default_config("C")
    with pytest.raises(ConfigurationError):
        config.replace(soma=config.soma.replace(n_nodes=2))
    with pytest.raises(ConfigurationError):
        # region given under the wrong name
        ModelConfig(axon=config.dendrite)
    with pytest.raises(ConfigurationError):
        config.region("spine")


def test_invalid_stimulus():
    with pytest.raises(ConfigurationError):
        StimulusParameters(pulse_width=0.0)
    with pytest.raises(ConfigurationError):
        StimulusParameters(sigma=-1.0)
    with pytest.raises(ConfigurationError):
        StimulusParameters(shape="triangular")
    with pytest.raises(ConfigurationError):
        StimulusParameters(stimulated_region="spine")


def test_inconsistent_time_step():
    with pytest.raises(ConfigurationError):
        SimulationParameters(tstop=1.0, dt=0.3)
    with pytest.raises(ConfigurationError):
        SimulationParameters(dt=0.0)
    with pytest.raises(ConfigurationError):
        SimulationParameters(recording_sites=())
    # Rounding errors are tolerated
    assert SimulationParameters(tstop=0.3, dt=0.1).n_steps == 3
