import numpy as np
import pytest
from numpy.testing import assert_allclose

from sgnsim.core.base import ConfigurationError
from sgnsim.simulation import RunResult, Simulation
from sgnsim.utils.logger import catch_logs


@pytest.fixture
def simulation(short_config):
    return Simulation(short_config)


def test_setup(simulation, short_config):
    neuron = simulation.neuron
    assert simulation.stimulated_index == neuron.index("axon", "node", 0)
    x = neuron.morphology.x[simulation.stimulated_index] * 1e-3
    assert simulation.stimulus.position == (x, 0.0, short_config.stimulus.electrode_distance)
    # plain floats, also in the log output
    assert all(type(c) is float for c in simulation.stimulus.position)
    assert simulation.labels == ["soma node 0", "axon node 0", "axon node 5"]
    # axon node 5 is furthest away from the electrode
    assert simulation.furthest == 2
    assert simulation.monitor.v.shape == (3, 400)
    assert simulation.amplitude == -8.75
    # pulse from 0.5 to 0.6 ms, the last distorted sample is at 0.6 ms
    start, stop = simulation.pulse_window
    assert start == pytest.approx(0.5)
    assert 0.6 < stop < 0.605


def test_setup_is_logged(short_config):
    with catch_logs(log_level="DEBUG") as logs:
        Simulation(short_config)
    messages = [m for _, name, m in logs if name == "sgnsim.simulation"]
    assert len(messages) == 1
    assert "electrode at (" in messages[0]
    assert "float64" not in messages[0]


def test_subthreshold_stimulus(simulation):
    result = simulation.run(-0.01)
    assert isinstance(result, RunResult)
    assert result.amplitude == -0.01
    assert not np.any(result.crossed)
    assert np.all(np.isnan(result.latencies))
    assert not result.excited("any")
    # a small depolarization at the stimulated node, back to rest at the end
    v = result.monitor.v
    assert v[1].max() > -70.0
    assert_allclose(v[:, -1], -70.0, atol=0.5)
    assert_allclose(result.monitor.t[-1], 2.0)


@pytest.mark.long
def test_suprathreshold_stimulus(simulation):
    result = simulation.run()
    assert result.crossed[1] and result.crossed[2]
    assert result.excited("furthest")
    assert result.excited("any")
    assert result.peaks[1] > 0
    # the action potential starts below the electrode and travels along the axon
    latency_near, latency_far = result.latencies[1], result.latencies[2]
    assert 0.5 < latency_near < latency_far < 2.0
    assert "axon node 5" in result.summary()


@pytest.mark.long
def test_runs_reuse_buffers(simulation):
    first = simulation.run(-8.75)
    buffer = first.monitor.v
    peaks = first.peaks.copy()
    second = simulation.run(-0.01)
    assert second.monitor is first.monitor
    assert second.monitor.v is buffer
    assert np.all(second.peaks < peaks)
    # runs are independent of each other
    third = simulation.run(-8.75)
    assert_allclose(third.peaks, peaks)
    assert simulation.amplitude == -8.75


def test_excitation_criteria():
    result = RunResult(
        amplitude=-1.0,
        labels=["a", "b", "c"],
        peaks=np.array([10.0, 20.0, -60.0]),
        crossed=np.array([True, True, False]),
        latencies=np.array([1.1, 1.2, np.nan]),
        furthest=2,
        monitor=None,
    )
    assert not result.excited("furthest")
    assert not result.excited("all")
    assert result.excited("any")
    with pytest.raises(ConfigurationError):
        result.excited("most")


def test_invalid_recording_site(short_config):
    config = short_config.with_simulation(recording_sites=(("axon", "node", 6),))
    with pytest.raises(ConfigurationError):
        Simulation(config)


def test_biphasic_stimulus(short_config):
    config = short_config.with_stimulus(shape="biphasic", amplitude=-0.01)
    result = Simulation(config).run()
    assert not result.excited("any")


@pytest.mark.long
def test_default_model_spikes(config):
    result = Simulation(config).run()
    labels = result.labels
    assert result.peaks[labels.index("axon node 0")] > 0
    assert result.excited("furthest")
