import numpy as np

from sgnsim.core.base import ConfigurationError
from sgnsim.core.preferences import prefs
from sgnsim.utils.logger import get_logger

__all__ = ["StateMonitor"]

logger = get_logger(__name__)


class StateMonitorView:
    """
    Recorded values of a subset of the recorded compartments, referred to by
    their global index.
    """

    def __init__(self, monitor, item):
        self.monitor = monitor
        self.item = item
        self.indices = self._calc_indices(item)

    def __getattr__(self, item):
        if item in ("monitor", "indices", "item"):
            raise AttributeError(item)
        mon = self.monitor
        if item == "t":
            return mon.t.copy()
        elif item in mon.record_variables:
            return mon._values[item][self.indices].copy()
        else:
            raise AttributeError(f"Unknown attribute {item}")

    def _calc_indices(self, item):
        """
        Convert the compartment indices to indices into the stored values. For
        example, if compartments [0, 5, 10] have been recorded, [5, 10] is
        converted to [1, 2].
        """
        record = self.monitor.record
        if isinstance(item, (int, np.integer)):
            indices = np.flatnonzero(record == item)
            if len(indices) == 0:
                raise IndexError(f"Index number {item} has not been recorded")
            return indices[0]
        indices = []
        for index in item:
            matches = np.flatnonzero(record == index)
            if len(matches) == 0:
                raise IndexError(f"Index number {index} has not been recorded")
            indices.append(matches[0])
        return np.array(indices)

    def __repr__(self):
        return (
            f"<{self.__class__.__name__}, giving access to elements "
            f"{self.item!r} recorded by {self.monitor!r}>"
        )


class StateMonitor:
    """
    Record values of state variables of a neuron during a run.

    The buffers are allocated once, with room for ``n_samples`` samples per
    recorded compartment, and are overwritten by every run. Recorded values
    have shape ``(len(record), n_samples)``. When indexing the `StateMonitor`
    directly, the returned object gives access to the recorded values for the
    specified compartment indices, i.e. ``mon[[5, 10]].v`` returns the values
    for compartments 5 and 10, whereas ``mon.v[[0, 1]]`` returns the values for
    the first and second *recorded* compartments.

    Parameters
    ----------
    neuron : `SpiralGanglionNeuron`
        The neuron to record from.
    record : sequence of int
        Global indices of the compartments to record.
    n_samples : int
        Number of samples per run.
    variables : sequence of str, optional
        The state variables to record, defaults to ``('v',)``.
    labels : sequence of str, optional
        Names of the recording sites, used for log output.
    """

    def __init__(self, neuron, record, n_samples, variables=("v",), labels=None):
        self.neuron = neuron
        self.record = np.asarray(record, dtype=np.int64)
        if self.record.ndim != 1 or len(self.record) == 0:
            raise ConfigurationError("A StateMonitor needs at least one index.")
        if np.any(self.record < 0) or np.any(self.record >= len(neuron)):
            raise ConfigurationError(
                f"Recorded indices {self.record.tolist()} are out of range "
                f"for a neuron with {len(neuron)} compartments."
            )
        if n_samples < 1:
            raise ConfigurationError(f"Need at least one sample, got {n_samples}.")
        for name in variables:
            if not isinstance(getattr(neuron, name, None), np.ndarray):
                raise ConfigurationError(f"Cannot record unknown variable '{name}'.")
        self.record_variables = tuple(variables)
        if labels is None:
            labels = [str(i) for i in self.record]
        self.labels = list(labels)
        self.n_samples = n_samples
        dtype = prefs.core.default_float_dtype
        self.t = np.zeros(n_samples)
        self._values = {
            name: np.zeros((len(self.record), n_samples), dtype=dtype)
            for name in self.record_variables
        }
        self.n_recorded = 0

    def __getattr__(self, item):
        if item in ("_values", "record_variables"):
            raise AttributeError(item)
        if item in self.record_variables:
            return self._values[item]
        raise AttributeError(f"Unknown attribute {item}")

    def __getitem__(self, item):
        if isinstance(item, (int, np.integer)):
            return StateMonitorView(self, item)
        index_array = np.asarray(item)
        if not np.issubdtype(index_array.dtype, np.integer):
            raise TypeError("Index has to be an integer or a sequence of integers")
        return StateMonitorView(self, index_array)

    def reset(self):
        """Clear the buffers (in place) before a new run."""
        self.t[:] = 0
        for values in self._values.values():
            values[:] = 0
        self.n_recorded = 0

    def record_sample(self, k, t):
        """Store the current state as sample ``k`` taken at time ``t``."""
        self.t[k] = t
        for name, values in self._values.items():
            values[:, k] = getattr(self.neuron, name)[self.record]
        self.n_recorded = max(self.n_recorded, k + 1)

    def _kept_samples(self, exclude):
        t = self.t[: self.n_recorded]
        if exclude is None:
            return np.ones(len(t), dtype=bool)
        start, stop = exclude
        return (t <= start) | (t >= stop)

    def peak(self, variable="v", exclude=None):
        """
        Maximum of the recorded values per site.

        Parameters
        ----------
        variable : str, optional
            The recorded variable, defaults to ``'v'``.
        exclude : (float, float), optional
            Samples taken strictly between these two times (ms) are ignored,
            e.g. the samples distorted by the stimulus pulse.
        """
        keep = self._kept_samples(exclude)
        if not keep.any():
            return np.full(len(self.record), np.nan)
        return self._values[variable][:, : self.n_recorded][:, keep].max(axis=1)

    def crossed(self, threshold, variable="v", exclude=None):
        """Whether the values crossed ``threshold`` at each site."""
        return self.peak(variable, exclude=exclude) > threshold

    def first_crossing(self, threshold, variable="v", exclude=None):
        """
        Time of the first sample above ``threshold`` at each site (NaN for
        sites that never crossed it). Samples within ``exclude`` are ignored,
        as in `peak`.
        """
        values = self._values[variable][:, : self.n_recorded]
        above = (values > threshold) & self._kept_samples(exclude)
        latency = np.full(len(self.record), np.nan)
        crossed = above.any(axis=1)
        if crossed.any():
            latency[crossed] = self.t[np.argmax(above[crossed], axis=1)]
        return latency

    def __repr__(self):
        return (
            f"<{self.__class__.__name__}, recording {self.record_variables!r} "
            f"from {len(self.record)} compartments>"
        )
