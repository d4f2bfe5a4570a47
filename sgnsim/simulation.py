"""
Running a stimulation experiment: the neuron, the imposed field, the solver and
the recordings, driven with a fixed time step.
"""
from dataclasses import dataclass

import numpy as np

from sgnsim.core.base import ConfigurationError
from sgnsim.monitors.statemonitor import StateMonitor
from sgnsim.spatialneuron.cable import CableSolver
from sgnsim.spatialneuron.spatialneuron import SpiralGanglionNeuron
from sgnsim.stimulation.field import PointSourceField
from sgnsim.stimulation.stimulus import Stimulus, make_waveform
from sgnsim.utils.logger import get_logger
from sgnsim.utils.stringtools import format_table

logger = get_logger(__name__)

__all__ = ["RunResult", "Simulation", "EXCITATION_CRITERIA"]

#: Supported ways to decide whether a run excited the neuron
EXCITATION_CRITERIA = ("furthest", "all", "any")


@dataclass
class RunResult:
    """
    Outcome of a single run.

    Attributes
    ----------
    amplitude : float
        The stimulus amplitude (mA).
    labels : list of str
        Names of the recording sites.
    peaks : `numpy.ndarray`
        Maximum membrane potential per site (mV). Samples taken while the
        stimulus pulse is on are left out, they mostly reflect the imposed
        field rather than the neuron's response.
    crossed : `numpy.ndarray`
        Whether the membrane potential crossed the spike threshold per site.
    latencies : `numpy.ndarray`
        Time of the first threshold crossing per site (ms, NaN if none).
    furthest : int
        Position (in ``labels``) of the site furthest from the electrode.
    monitor : `StateMonitor`
        The monitor holding the full recordings. Its buffers are reused by
        the next run of the same simulation.
    """

    amplitude: float
    labels: list
    peaks: np.ndarray
    crossed: np.ndarray
    latencies: np.ndarray
    furthest: int
    monitor: StateMonitor

    def excited(self, criterion="furthest"):
        """
        Whether the run counts as an excitation.

        Parameters
        ----------
        criterion : {'furthest', 'all', 'any'}
            ``'furthest'``: the action potential reached the recording site
            furthest from the electrode. ``'all'``/``'any'``: all/any sites
            crossed the threshold.
        """
        if criterion == "furthest":
            return bool(self.crossed[self.furthest])
        elif criterion == "all":
            return bool(np.all(self.crossed))
        elif criterion == "any":
            return bool(np.any(self.crossed))
        raise ConfigurationError(
            f"Unknown excitation criterion '{criterion}', has to be one of "
            f"{EXCITATION_CRITERIA}."
        )

    def summary(self):
        rows = [
            [label, float(peak), "yes" if c else "no", float(lat)]
            for label, peak, c, lat in zip(
                self.labels, self.peaks, self.crossed, self.latencies
            )
        ]
        return format_table(["site", "peak (mV)", "spike", "latency (ms)"], rows)


def _site_label(site):
    region, kind, ordinal = site
    if ordinal is None:
        return f"{region} {kind} (middle)"
    return f"{region} {kind} {ordinal}"


class Simulation:
    """
    A neuron stimulated by a point electrode, ready to be run repeatedly.

    All objects (neuron, field, solver, recording buffers) are created once;
    every call to `run` starts again from the resting state.

    Parameters
    ----------
    config : `ModelConfig`
        The model configuration.
    """

    def __init__(self, config):
        self.config = config
        sim = config.simulation
        stim = config.stimulus
        self.dt = sim.dt
        self.n_steps = sim.n_steps
        self.neuron = neuron = SpiralGanglionNeuron(config)

        self.stimulated_index = neuron.index(
            stim.stimulated_region, "node", stim.stimulated_node
        )
        x_ref = float(neuron.morphology.x[self.stimulated_index]) * 1e-3
        electrode = (x_ref, 0.0, stim.electrode_distance)
        self.stimulus = Stimulus(make_waveform(stim), electrode)
        self.field = PointSourceField(neuron.positions(), electrode, stim.sigma)
        self.solver = CableSolver(neuron, self.dt)

        self.sites = list(sim.recording_sites)
        record = neuron.indices(self.sites)
        self.labels = [_site_label(site) for site in self.sites]
        self.monitor = StateMonitor(neuron, record, self.n_steps, labels=self.labels)
        x = neuron.morphology.x
        distance = np.abs(x[record] - x[self.stimulated_index])
        self.furthest = int(np.argmax(distance))
        logger.debug(
            f"Simulation of {self.n_steps} steps (dt = {self.dt} ms), "
            f"electrode at {electrode} mm above compartment "
            f"{self.stimulated_index}, recording from {self.labels}"
        )

    @property
    def amplitude(self):
        return self.stimulus.amplitude

    @property
    def pulse_window(self):
        """
        Times (ms) between which recorded samples are distorted by the
        stimulus. The sample at time (k + 1) * dt follows the step that used
        the field at time k * dt.
        """
        waveform = self.stimulus.waveform
        return (waveform.delay, waveform.end + 0.5 * self.dt)

    def reinit(self):
        """Bring neuron, solver and recordings back to the initial state."""
        self.neuron.reinit()
        self.solver.reinit()
        self.monitor.reset()

    def run(self, amplitude=None):
        """
        Run a complete simulation.

        Parameters
        ----------
        amplitude : float, optional
            Stimulus amplitude in mA. If given, it replaces the current
            amplitude for this and all following runs.

        Returns
        -------
        result : `RunResult`
        """
        if amplitude is not None:
            self.stimulus = self.stimulus.with_amplitude(amplitude)
        self.reinit()
        neuron = self.neuron
        field = self.field
        stimulus = self.stimulus
        solver = self.solver
        monitor = self.monitor
        dt = self.dt
        for k in range(self.n_steps):
            t = k * dt
            field.at(t, stimulus, out=neuron.e_extracellular)
            solver.step(t)
            monitor.record_sample(k, (k + 1) * dt)

        threshold = self.config.simulation.spike_threshold
        window = self.pulse_window
        result = RunResult(
            amplitude=stimulus.amplitude,
            labels=self.labels,
            peaks=monitor.peak(exclude=window),
            crossed=monitor.crossed(threshold, exclude=window),
            latencies=monitor.first_crossing(threshold, exclude=window),
            furthest=self.furthest,
            monitor=monitor,
        )
        logger.debug(
            f"Run with amplitude {stimulus.amplitude:.4g} mA:\n{result.summary()}"
        )
        return result
