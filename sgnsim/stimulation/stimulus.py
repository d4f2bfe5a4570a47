"""
Current waveforms of the stimulating electrode.
"""
import dataclasses
from dataclasses import dataclass

import numpy as np

from sgnsim.core.base import ConfigurationError

__all__ = ["Waveform", "MonophasicPulse", "BiphasicPulse", "Stimulus", "make_waveform"]


class Waveform:
    """
    Base class for electrode current waveforms (currents in mA, times in ms).
    """

    def current(self, t):
        """The current at time ``t`` (scalar or array)."""
        raise NotImplementedError()

    def with_amplitude(self, amplitude):
        """Return a copy of the waveform with a different amplitude."""
        return dataclasses.replace(self, amplitude=amplitude)

    def charge(self):
        """Net charge delivered by the waveform (mA*ms)."""
        raise NotImplementedError()


def _in_window(t, start, duration):
    t = np.asarray(t)
    return (t >= start) & (t < start + duration)


@dataclass(frozen=True)
class MonophasicPulse(Waveform):
    """
    A rectangular pulse of ``amplitude`` starting at ``delay`` and lasting for
    ``duration``.

    Examples
    --------
    >>> pulse = MonophasicPulse(amplitude=-1.0, delay=1.0, duration=0.1)
    >>> float(pulse.current(1.05)), float(pulse.current(1.1))
    (-1.0, 0.0)
    """

    amplitude: float
    delay: float
    duration: float

    def __post_init__(self):
        if self.duration <= 0:
            raise ConfigurationError(
                f"Pulse duration has to be positive, got {self.duration}."
            )
        if self.delay < 0:
            raise ConfigurationError(f"Pulse delay cannot be negative, got {self.delay}.")

    @property
    def end(self):
        return self.delay + self.duration

    def current(self, t):
        return np.where(_in_window(t, self.delay, self.duration), self.amplitude, 0.0)

    def charge(self):
        return self.amplitude * self.duration


@dataclass(frozen=True)
class BiphasicPulse(Waveform):
    """
    A charge-balanced pulse: a phase of ``amplitude`` followed, after
    ``interphase_gap``, by a phase of ``-amplitude`` of the same duration. With
    a negative amplitude the cathodic phase comes first.
    """

    amplitude: float
    delay: float
    duration: float
    interphase_gap: float = 0.0

    def __post_init__(self):
        if self.duration <= 0:
            raise ConfigurationError(
                f"Pulse duration has to be positive, got {self.duration}."
            )
        if self.delay < 0 or self.interphase_gap < 0:
            raise ConfigurationError(
                "Pulse delay and interphase gap cannot be negative."
            )

    @property
    def end(self):
        return self.delay + 2 * self.duration + self.interphase_gap

    def current(self, t):
        second = self.delay + self.duration + self.interphase_gap
        return np.where(
            _in_window(t, self.delay, self.duration),
            self.amplitude,
            np.where(_in_window(t, second, self.duration), -self.amplitude, 0.0),
        )

    def charge(self):
        return 0.0


@dataclass(frozen=True)
class Stimulus:
    """
    A waveform delivered by a point electrode at ``position`` (x, y, z in mm).
    """

    waveform: Waveform
    position: tuple

    @property
    def amplitude(self):
        return self.waveform.amplitude

    def with_amplitude(self, amplitude):
        """Return a copy with the waveform amplitude replaced."""
        return Stimulus(self.waveform.with_amplitude(amplitude), self.position)

    def current(self, t):
        return self.waveform.current(t)


def make_waveform(stimulus):
    """
    Create the waveform described by `StimulusParameters`.
    """
    if stimulus.shape == "monophasic":
        return MonophasicPulse(
            amplitude=stimulus.amplitude,
            delay=stimulus.delay,
            duration=stimulus.pulse_width,
        )
    elif stimulus.shape == "biphasic":
        return BiphasicPulse(
            amplitude=stimulus.amplitude,
            delay=stimulus.delay,
            duration=stimulus.pulse_width,
            interphase_gap=stimulus.interphase_gap,
        )
    raise ConfigurationError(f"Unknown pulse shape '{stimulus.shape}'.")
