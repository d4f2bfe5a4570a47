import numpy as np
import pytest
from numpy.testing import assert_allclose, assert_array_equal

from sgnsim.core.base import ConfigurationError
from sgnsim.monitors import StateMonitor


class ThreeCompartments:
    """Just enough of a neuron to be recorded from."""

    def __init__(self):
        self.v = np.full(3, -70.0)

    def __len__(self):
        return len(self.v)


def _record(neuron, mon, traces):
    # traces: one list of values per compartment, sampled every 0.1 ms
    for k, values in enumerate(zip(*traces)):
        neuron.v[:] = values
        mon.record_sample(k, (k + 1) * 0.1)


@pytest.fixture
def recorded():
    neuron = ThreeCompartments()
    mon = StateMonitor(neuron, [0, 2], n_samples=5, labels=["near", "far"])
    _record(
        neuron,
        mon,
        [
            [-70.0, 50.0, 40.0, -65.0, -70.0],  # large swing during the pulse only
            [-70.0, -70.0, -70.0, -70.0, 10.0],
            [-70.0, -70.0, -70.0, 20.0, -70.0],
        ],
    )
    return mon


def test_recording(recorded):
    assert recorded.n_recorded == 5
    assert_allclose(recorded.t, [0.1, 0.2, 0.3, 0.4, 0.5])
    assert recorded.v.shape == (2, 5)
    assert_allclose(recorded[2].v, [-70.0, -70.0, -70.0, 20.0, -70.0])
    assert_allclose(recorded[[0, 2]].v[0], recorded.v[0])
    with pytest.raises(IndexError):
        recorded[1]


def test_peak_and_crossings(recorded):
    assert_allclose(recorded.peak(), [50.0, 20.0])
    assert_array_equal(recorded.crossed(0.0), [True, True])
    assert_allclose(recorded.first_crossing(0.0), [0.2, 0.4])


def test_excluded_window(recorded):
    window = (0.1, 0.35)
    assert_allclose(recorded.peak(exclude=window), [-65.0, 20.0])
    assert_array_equal(recorded.crossed(0.0, exclude=window), [False, True])
    latency = recorded.first_crossing(0.0, exclude=window)
    assert np.isnan(latency[0])
    assert latency[1] == pytest.approx(0.4)
    # nothing left to evaluate
    assert np.all(np.isnan(recorded.peak(exclude=(0.0, 1.0))))


def test_reset(recorded):
    buffer = recorded.v
    recorded.reset()
    assert recorded.n_recorded == 0
    assert recorded.v is buffer
    assert np.all(np.isnan(recorded.peak()))
    assert np.all(np.isnan(recorded.first_crossing(0.0)))


def test_invalid_monitors():
    neuron = ThreeCompartments()
    with pytest.raises(ConfigurationError):
        StateMonitor(neuron, [], n_samples=5)
    with pytest.raises(ConfigurationError):
        StateMonitor(neuron, [3], n_samples=5)
    with pytest.raises(ConfigurationError):
        StateMonitor(neuron, [0], n_samples=0)
    with pytest.raises(ConfigurationError):
        StateMonitor(neuron, [0], n_samples=5, variables=("m",))
