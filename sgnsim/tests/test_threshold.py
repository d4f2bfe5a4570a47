import pytest

from sgnsim.core.base import ConfigurationError
from sgnsim.core.preferences import prefs
from sgnsim.simulation import Simulation
from sgnsim.threshold import SearchState, ThresholdSearch
from sgnsim.utils.logger import catch_logs


class _Outcome:
    def __init__(self, excited):
        self._excited = excited

    def excited(self, criterion="furthest"):
        return self._excited


class StepNeuron:
    """Excited whenever the stimulus magnitude reaches ``threshold``."""

    def __init__(self, threshold, amplitude=-1.0):
        self.threshold = threshold
        self.amplitude = amplitude
        self.runs = []

    def run(self, amplitude=None):
        if amplitude is not None:
            self.amplitude = amplitude
        self.runs.append(self.amplitude)
        return _Outcome(abs(self.amplitude) >= self.threshold - 1e-9)


def test_step_down():
    neuron = StepNeuron(threshold=0.55)
    search = ThresholdSearch(neuron, step=0.1)
    assert search.state is SearchState.SEARCHING
    result = search.run()
    assert search.state is SearchState.DONE
    assert result.converged
    assert result.threshold == pytest.approx(-0.6)
    assert result.failed_amplitude == pytest.approx(-0.5)
    assert result.iterations == 6
    assert [excited for _, excited in result.history] == [True] * 5 + [False]
    assert neuron.runs == pytest.approx([-1.0, -0.9, -0.8, -0.7, -0.6, -0.5])
    assert search.result is result


def test_positive_amplitudes():
    neuron = StepNeuron(threshold=0.25, amplitude=0.5)
    result = ThresholdSearch(neuron, step=0.1).run()
    assert result.threshold == pytest.approx(0.3)
    assert result.failed_amplitude == pytest.approx(0.2)


def test_start_does_not_excite():
    neuron = StepNeuron(threshold=2.0)
    with catch_logs(log_level="INFO") as logs:
        result = ThresholdSearch(neuron, step=0.1).run()
    assert result.threshold is None
    assert result.failed_amplitude == -1.0
    assert result.iterations == 1
    assert result.converged
    assert any("does not excite" in message for _, _, message in logs)


def test_always_excited():
    # stops before reaching zero
    neuron = StepNeuron(threshold=0.0)
    result = ThresholdSearch(neuron, step=0.25).run()
    assert result.converged
    assert result.threshold == pytest.approx(-0.25)
    assert result.failed_amplitude is None
    assert result.iterations == 4
    assert all(amplitude < 0 for amplitude in neuron.runs)


def test_iteration_limit():
    neuron = StepNeuron(threshold=0.05)
    with catch_logs() as logs:
        result = ThresholdSearch(neuron, step=0.1, max_iterations=3).run()
    assert not result.converged
    assert result.iterations == 3
    assert result.threshold == pytest.approx(-0.8)
    assert len(logs) == 1
    level, name, message = logs[0]
    assert level == "WARNING"
    assert name.endswith("nonconvergence")
    assert "3 iterations" in message


def test_iteration_limit_preference():
    prefs.search.max_iterations = 2
    neuron = StepNeuron(threshold=0.05)
    with catch_logs():
        result = ThresholdSearch(neuron, step=0.1).run()
    assert result.iterations == 2
    assert not result.converged


def test_bisection():
    neuron = StepNeuron(threshold=0.537)
    search = ThresholdSearch(neuron, step=0.1, method="bisection", tolerance=0.001)
    result = search.run()
    assert result.converged
    assert abs(result.threshold) >= 0.537 - 1e-9
    assert abs(result.threshold) - abs(result.failed_amplitude) <= 0.001
    assert result.threshold == pytest.approx(-0.537, abs=0.001)
    assert result.iterations > 6


def test_start_argument():
    neuron = StepNeuron(threshold=0.55, amplitude=-5.0)
    result = ThresholdSearch(neuron, step=0.1, start=-0.8).run()
    assert neuron.runs[0] == -0.8
    assert result.threshold == pytest.approx(-0.6)


@pytest.mark.parametrize(
    "kwds",
    [
        {"step": 0.0},
        {"step": -0.1},
        {"criterion": "most"},
        {"method": "newton"},
        {"tolerance": 0.0},
        {"max_iterations": 0},
    ],
)
def test_invalid_arguments(kwds):
    with pytest.raises(ConfigurationError):
        ThresholdSearch(StepNeuron(threshold=0.5), **kwds)


def test_zero_start():
    with pytest.raises(ConfigurationError):
        ThresholdSearch(StepNeuron(threshold=0.5), start=0.0).run()


@pytest.mark.long
def test_threshold_of_short_model(short_config):
    simulation = Simulation(short_config.with_stimulus(amplitude=-5.0))
    result = ThresholdSearch(simulation, step=1.0, method="bisection", tolerance=0.05).run()
    assert result.converged
    assert result.threshold is not None
    assert -5.0 <= result.threshold < 0
    assert simulation.run(result.threshold).excited()
    if result.failed_amplitude is not None:
        assert not simulation.run(result.failed_amplitude).excited()
