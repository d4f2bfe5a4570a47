"""
Search for the excitation threshold of a neuron.

Starting from a (supra-threshold) amplitude, the search repeatedly runs the
simulation and lowers the stimulus magnitude by a fixed step as long as the
neuron is excited. The last exciting amplitude is the threshold estimate. An
optional bisection refines the estimate between the last exciting and the
first non-exciting amplitude.
"""
import enum
import math
from dataclasses import dataclass, field

from sgnsim.core.base import ConfigurationError
from sgnsim.core.preferences import prefs
from sgnsim.simulation import EXCITATION_CRITERIA
from sgnsim.utils.logger import get_logger

logger = get_logger(__name__)

__all__ = ["SearchState", "ThresholdResult", "ThresholdSearch"]

# Magnitudes below this are treated as zero
_EPSILON = 1e-12


class SearchState(enum.Enum):
    SEARCHING = "searching"
    DONE = "done"


@dataclass
class ThresholdResult:
    """
    Outcome of a threshold search.

    Attributes
    ----------
    threshold : float or None
        The smallest-magnitude amplitude (mA) that excited the neuron, ``None``
        if the starting amplitude did not excite it.
    failed_amplitude : float or None
        The largest-magnitude amplitude that was tested and did not excite the
        neuron, ``None`` if all tested amplitudes excited it.
    iterations : int
        Number of simulation runs.
    converged : bool
        ``False`` if the search was stopped by the iteration limit.
    history : list of (float, bool)
        All tested amplitudes and whether they excited the neuron.
    """

    threshold: object = None
    failed_amplitude: object = None
    iterations: int = 0
    converged: bool = True
    history: list = field(default_factory=list)


class ThresholdSearch:
    """
    Threshold search by stepping down the stimulus magnitude.

    Parameters
    ----------
    simulation : `Simulation`
        The simulation to run. Any object with an ``amplitude`` attribute and
        a ``run(amplitude)`` method returning an object with an
        ``excited(criterion)`` method can be used.
    step : float, optional
        Decrease of the magnitude between runs (mA), defaults to 0.1.
    max_iterations : int, optional
        Maximum number of runs, defaults to the ``search.max_iterations``
        preference.
    criterion : {'furthest', 'all', 'any'}, optional
        When a run counts as an excitation, see `RunResult.excited`.
    method : {'step', 'bisection'}, optional
        With ``'bisection'``, the interval found by stepping down is refined
        until it is smaller than ``tolerance``.
    tolerance : float, optional
        Width (mA) of the final interval for the bisection method.
    start : float, optional
        Starting amplitude, defaults to the simulation's current amplitude.
    """

    def __init__(self, simulation, step=0.1, max_iterations=None,
                 criterion="furthest", method="step", tolerance=0.001,
                 start=None):
        if not step > 0:
            raise ConfigurationError(f"Step has to be positive, got {step}.")
        if criterion not in EXCITATION_CRITERIA:
            raise ConfigurationError(
                f"Unknown excitation criterion '{criterion}', has to be one of "
                f"{EXCITATION_CRITERIA}."
            )
        if method not in ("step", "bisection"):
            raise ConfigurationError(
                f"Unknown search method '{method}', use 'step' or 'bisection'."
            )
        if not tolerance > 0:
            raise ConfigurationError(
                f"Tolerance has to be positive, got {tolerance}."
            )
        if max_iterations is None:
            max_iterations = prefs.search.max_iterations
        if max_iterations < 1:
            raise ConfigurationError(
                f"Need at least one iteration, got {max_iterations}."
            )
        self.simulation = simulation
        self.step = step
        self.max_iterations = max_iterations
        self.criterion = criterion
        self.method = method
        self.tolerance = tolerance
        self.start = simulation.amplitude if start is None else start
        self.state = SearchState.SEARCHING
        self.result = None

    def _test(self, amplitude, result):
        excited = self.simulation.run(amplitude).excited(self.criterion)
        result.iterations += 1
        result.history.append((amplitude, excited))
        logger.debug(
            f"Iteration {result.iterations}: amplitude {amplitude:.6g} mA, "
            f"{'excited' if excited else 'not excited'}"
        )
        return excited

    def _capped(self, result):
        if result.iterations >= self.max_iterations:
            result.converged = False
            logger.warn(
                f"Threshold search stopped after {result.iterations} "
                f"iterations without converging (last exciting amplitude: "
                f"{result.threshold}).",
                name_suffix="nonconvergence",
            )
            return True
        return False

    def run(self):
        """
        Perform the search.

        Returns
        -------
        result : `ThresholdResult`
        """
        self.state = SearchState.SEARCHING
        result = ThresholdResult()
        sign = -1.0 if self.start < 0 else 1.0
        magnitude = abs(self.start)
        if magnitude < _EPSILON:
            raise ConfigurationError("Cannot start a threshold search at amplitude 0.")

        while self.state is SearchState.SEARCHING:
            if self._capped(result):
                break
            amplitude = sign * (magnitude - result.iterations * self.step)
            if self._test(amplitude, result):
                result.threshold = amplitude
                if abs(amplitude) - self.step < _EPSILON:
                    self.state = SearchState.DONE
            else:
                result.failed_amplitude = amplitude
                self.state = SearchState.DONE

        if result.threshold is None and result.converged:
            logger.info(
                f"The starting amplitude {self.start} mA does not excite the "
                "neuron."
            )
        elif self.method == "bisection" and result.converged:
            self._bisect(result, sign)

        self.state = SearchState.DONE
        self.result = result
        logger.info(
            f"Threshold search finished after {result.iterations} iterations: "
            f"threshold {result.threshold} mA"
        )
        return result

    def _bisect(self, result, sign):
        high = abs(result.threshold)
        low = 0.0 if result.failed_amplitude is None else abs(result.failed_amplitude)
        while high - low > self.tolerance:
            if self._capped(result):
                break
            middle = (high + low) / 2
            if self._test(sign * middle, result):
                high = middle
                result.threshold = sign * middle
            else:
                low = middle
                result.failed_amplitude = sign * middle
        if math.isclose(low, 0.0, abs_tol=_EPSILON):
            logger.debug("Bisection interval reaches down to 0 mA.")
